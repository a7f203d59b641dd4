"""Pytest configuration and shared fixtures."""

import io
import sys
import threading
from pathlib import Path
from typing import Callable, List

import numpy as np
import pytest
from PIL import Image

# Make the package importable without installation
sys.path.insert(0, str(Path(__file__).parent))

from ocr_classifier.ocr.base import OCREngine  # noqa: E402
from ocr_classifier.ocr.models import OCRRegion  # noqa: E402


class FakeOCREngine(OCREngine):
    """Deterministic engine driven by a responder function.

    The responder receives the encoded bytes and returns regions or raises.
    Every call is recorded.
    """

    name = 'fake'

    def __init__(self, responder: Callable[[bytes], List[OCRRegion]]):
        self.responder = responder
        self.calls: List[bytes] = []
        self._lock = threading.Lock()

    def detect(self, image_bytes: bytes) -> List[OCRRegion]:
        with self._lock:
            self.calls.append(image_bytes)
        return self.responder(image_bytes)


def region(text: str = 'hello', confidence: float = 90.0) -> OCRRegion:
    """Single region with a fixed box."""
    return OCRRegion(x=1, y=2, width=30, height=10, text=text, confidence=confidence)


def encode_pil(image: Image.Image, image_format: str = 'PNG') -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def make_image_bytes():
    """Factory for encoded solid-color images."""
    def _make(width: int, height: int, color=(255, 255, 255), image_format: str = 'PNG') -> bytes:
        return encode_pil(Image.new('RGB', (width, height), color), image_format)
    return _make


@pytest.fixture
def noise_image_bytes():
    """PNG of seeded random noise; every rotation of it encodes differently."""
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(48, 64, 3), dtype=np.uint8)
    return encode_pil(Image.fromarray(pixels))


@pytest.fixture
def make_region():
    """Factory for OCR regions."""
    return region


@pytest.fixture
def fake_engine():
    """Factory for FakeOCREngine instances."""
    return FakeOCREngine
