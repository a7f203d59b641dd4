"""OCR engine interface.

Every engine takes encoded image bytes and returns the regions it
recognized. The search engine depends only on this interface, so tests can
substitute a deterministic fake.
"""

from abc import ABC, abstractmethod
from typing import List

from ..errors import OCREngineError
from .models import OCRRegion


class OCREngine(ABC):
    """Abstract OCR engine."""

    name = 'base'

    @abstractmethod
    def detect(self, image_bytes: bytes) -> List[OCRRegion]:
        """Recognize text regions in an encoded image.

        Args:
            image_bytes: Encoded image (PNG, JPEG, ...)

        Returns:
            Regions in engine emission order

        Raises:
            OCREngineError: If the image cannot be loaded or recognition fails
        """


__all__ = ['OCREngine', 'OCREngineError', 'OCRRegion']
