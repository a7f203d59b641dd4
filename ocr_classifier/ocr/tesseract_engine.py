"""OCR engine integration using Tesseract (pytesseract)."""

import io
import logging
import os
from typing import Dict, List, Tuple

import numpy as np
import pytesseract
from pytesseract import Output
from PIL import Image, UnidentifiedImageError

from ..errors import OCREngineError
from .base import OCREngine
from .models import OCRRegion

logger = logging.getLogger('ocr_classifier')

# Tesseract result levels -> index of the last key component kept
_GROUPING_DEPTH = {
    'paragraph': 3,  # page, block, paragraph
    'line': 4,       # ... line
    'word': 5,       # ... word
}


def _safe_float(x) -> float:
    try:
        return float(x)
    except (TypeError, ValueError):
        return float("nan")


def group_words(data: Dict[str, List], granularity: str = 'paragraph') -> List[OCRRegion]:
    """Group image_to_data word tokens into regions.

    Words sharing (page, block, paragraph[, line[, word]]) form one region.
    The region box is the union of word boxes, the text joins words with
    spaces and lines with newlines, and the confidence is the mean word
    confidence.

    Args:
        data: pytesseract image_to_data output (Output.DICT)
        granularity: 'paragraph', 'line' or 'word'

    Returns:
        Regions in Tesseract's reading order
    """
    if granularity not in _GROUPING_DEPTH:
        raise ValueError(f"Unknown granularity: {granularity}")
    depth = _GROUPING_DEPTH[granularity]

    groups: Dict[Tuple[int, ...], List[int]] = {}
    n = len(data.get("text", []))

    for i in range(n):
        txt = (data["text"][i] or "").strip()
        if not txt:
            continue
        conf = _safe_float(data["conf"][i])
        if np.isnan(conf) or conf < 0:
            continue

        key = (
            int(data["page_num"][i]),
            int(data["block_num"][i]),
            int(data["par_num"][i]),
            int(data["line_num"][i]),
            int(data["word_num"][i]),
        )[:depth]
        groups.setdefault(key, []).append(i)

    regions: List[OCRRegion] = []
    for idxs in groups.values():
        lefts = [int(data["left"][j]) for j in idxs]
        tops = [int(data["top"][j]) for j in idxs]
        rights = [int(data["left"][j]) + int(data["width"][j]) for j in idxs]
        bottoms = [int(data["top"][j]) + int(data["height"][j]) for j in idxs]
        x0, y0, x1, y1 = min(lefts), min(tops), max(rights), max(bottoms)

        lines: Dict[int, List[str]] = {}
        for j in idxs:
            lines.setdefault(int(data["line_num"][j]), []).append(str(data["text"][j]).strip())
        text = "\n".join(" ".join(words) for words in lines.values())

        confs = [_safe_float(data["conf"][j]) for j in idxs]
        mean_conf = float(sum(confs) / len(confs))

        regions.append(OCRRegion(
            x=x0,
            y=y0,
            width=x1 - x0,
            height=y1 - y0,
            text=text,
            confidence=mean_conf
        ))

    return regions


class TesseractEngine(OCREngine):
    """Tesseract engine wrapper producing region-level results."""

    name = 'tesseract'

    def __init__(self, config: Dict):
        """Initialize Tesseract engine.

        Args:
            config: OCR configuration dictionary
        """
        self.config = config
        self.lang = config.get('lang', 'eng+rus')
        self.granularity = config.get('granularity', 'paragraph')
        self.psm = config.get('psm', 3)

        if self.granularity not in _GROUPING_DEPTH:
            raise ValueError(f"Unknown OCR granularity: {self.granularity}")

        # Allow overriding the binary location
        tesseract_cmd = os.getenv("TESSERACT_PATH") or config.get('tesseract_cmd')
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def detect(self, image_bytes: bytes) -> List[OCRRegion]:
        """Recognize text regions in an encoded image."""
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
            raise OCREngineError(f"Tesseract could not load image: {e}") from e

        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.lang,
                config=f'--psm {self.psm}',
                output_type=Output.DICT
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError, RuntimeError) as e:
            raise OCREngineError(f"Tesseract failed: {e}") from e

        regions = group_words(data, self.granularity)
        logger.debug(f"Tesseract found {len(regions)} {self.granularity} region(s)")
        return regions
