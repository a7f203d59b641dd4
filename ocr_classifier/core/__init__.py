"""Core detection module."""

from .search import RotationSearchEngine, SearchSettings, RotationOutcome, DEFAULT_CANDIDATE_ANGLES
from .pipeline import ClassifierPipeline, FileResult

__all__ = [
    "RotationSearchEngine",
    "SearchSettings",
    "RotationOutcome",
    "DEFAULT_CANDIDATE_ANGLES",
    "ClassifierPipeline",
    "FileResult",
]
