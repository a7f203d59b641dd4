"""Data models for classification results."""

from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class BoundingBox:
    """A recognized text region in processed-image coordinates."""
    x: int
    y: int
    width: int
    height: int
    word: str
    confidence: float  # normalized to [0, 1]

    def to_dict(self) -> Dict:
        return {
            'x': self.x,
            'y': self.y,
            'width': self.width,
            'height': self.height,
            'word': self.word,
            'confidence': self.confidence
        }


@dataclass(frozen=True)
class ClassifierResult:
    """Outcome of one detection attempt, or the final answer."""
    mean_confidence: float
    weighted_confidence: float
    token_count: int
    boxes: Tuple[BoundingBox, ...] = field(default_factory=tuple)
    angle: int = 0
    scale_factor: float = 0.0

    @classmethod
    def empty(cls, angle: int = 0, scale_factor: float = 0.0) -> 'ClassifierResult':
        """Zero-confidence result with no boxes."""
        return cls(
            mean_confidence=0.0,
            weighted_confidence=0.0,
            token_count=0,
            boxes=(),
            angle=angle,
            scale_factor=scale_factor
        )

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization."""
        return {
            'mean_confidence': self.mean_confidence,
            'weighted_confidence': self.weighted_confidence,
            'token_count': self.token_count,
            'boxes': [box.to_dict() for box in self.boxes],
            'angle': self.angle,
            'scale_factor': self.scale_factor
        }
