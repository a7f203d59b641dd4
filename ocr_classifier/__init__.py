"""OCR Classifier - detects readable text in images and scores the detection."""

__version__ = "1.0.0"

from .models import BoundingBox, ClassifierResult
from .core import ClassifierPipeline, RotationSearchEngine, SearchSettings
from .scoring import count_tokens
from .utils import load_config, setup_logging

__all__ = [
    "BoundingBox",
    "ClassifierResult",
    "ClassifierPipeline",
    "RotationSearchEngine",
    "SearchSettings",
    "count_tokens",
    "load_config",
    "setup_logging",
]
