"""OCR engine integration using PaddleOCR."""

import logging
from typing import Dict, List

import cv2
import numpy as np
from paddleocr import PaddleOCR

from ..errors import OCREngineError
from .base import OCREngine
from .models import OCRRegion

logger = logging.getLogger('ocr_classifier')


class PaddleEngine(OCREngine):
    """PaddleOCR engine wrapper producing line-level regions."""

    name = 'paddle'

    def __init__(self, config: Dict):
        """Initialize PaddleOCR engine.

        Args:
            config: OCR configuration dictionary
        """
        self.config = config
        paddle_config = config.get('paddle_ocr', {})

        # Orientation is handled by the rotation search, not by Paddle's classifier
        self.ocr = PaddleOCR(
            use_angle_cls=False,
            lang=paddle_config.get('lang', 'en'),
            use_gpu=paddle_config.get('use_gpu', False),
            show_log=paddle_config.get('show_log', False)
        )

    def detect(self, image_bytes: bytes) -> List[OCRRegion]:
        """Recognize text lines in an encoded image."""
        image = cv2.imdecode(np.frombuffer(image_bytes, dtype=np.uint8), cv2.IMREAD_COLOR)
        if image is None:
            raise OCREngineError("PaddleOCR could not load image")

        try:
            result = self.ocr.ocr(image, cls=False)
        except Exception as e:
            raise OCREngineError(f"PaddleOCR failed: {e}") from e

        # Handle case where no text is found
        if not result or result[0] is None:
            return []

        regions = []
        # PaddleOCR result structure: [ [ [ [x1,y1], [x2,y2], ... ], (text, confidence) ], ... ]
        for box, (text, confidence) in result[0]:
            text = text.strip()
            if not text:
                continue

            points = np.array(box).astype(np.int32)
            x_min = int(np.min(points[:, 0]))
            y_min = int(np.min(points[:, 1]))
            x_max = int(np.max(points[:, 0]))
            y_max = int(np.max(points[:, 1]))

            regions.append(OCRRegion(
                x=x_min,
                y=y_min,
                width=x_max - x_min,
                height=y_max - y_min,
                text=text,
                confidence=float(confidence) * 100  # 0-1 -> 0-100 to match Tesseract
            ))

        logger.debug(f"PaddleOCR found {len(regions)} line region(s)")
        return regions
