"""Data models for raw OCR engine output."""

from dataclasses import dataclass


@dataclass(frozen=True)
class OCRRegion:
    """A text region as reported by an OCR engine."""
    x: int
    y: int
    width: int
    height: int
    text: str
    confidence: float  # raw engine score, 0-100
