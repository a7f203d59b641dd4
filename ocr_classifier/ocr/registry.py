"""OCR engine factory."""

from typing import Dict

from .base import OCREngine

ENGINE_NAMES = ('tesseract', 'paddle')


def create_engine(config: Dict) -> OCREngine:
    """Build the OCR engine named by config['engine'].

    Engines are imported on demand so an optional backend that is not
    installed does not break the others.

    Args:
        config: OCR configuration dictionary

    Returns:
        OCR engine instance

    Raises:
        ValueError: If the engine name is unknown
    """
    name = config.get('engine', 'tesseract')

    if name == 'tesseract':
        from .tesseract_engine import TesseractEngine
        return TesseractEngine(config)
    if name == 'paddle':
        from .paddle_engine import PaddleEngine
        return PaddleEngine(config)

    raise ValueError(f"Unknown OCR engine '{name}', expected one of {ENGINE_NAMES}")
