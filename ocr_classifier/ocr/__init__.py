"""OCR module."""

from .models import OCRRegion
from .base import OCREngine
from .registry import create_engine

__all__ = ['OCRRegion', 'OCREngine', 'create_engine']
