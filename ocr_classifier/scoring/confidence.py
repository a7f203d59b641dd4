"""Confidence aggregation over recognized regions."""

from typing import Iterable, List

from ..models import BoundingBox, ClassifierResult
from ..ocr.models import OCRRegion
from ..utils import clamp
from .tokens import count_tokens


class ConfidenceAggregator:
    """Turns raw engine regions into a single-pass ClassifierResult.

    Regions with a non-positive raw confidence or no meaningful tokens are
    dropped as noise. The remaining boxes give an unweighted mean confidence
    and a token-weighted confidence, both normalized to [0, 1].
    """

    def __init__(self, raw_scale: float = 100.0):
        """Initialize aggregator.

        Args:
            raw_scale: Upper bound of the engine's raw confidence scale
        """
        self.raw_scale = raw_scale

    def aggregate(self,
                  regions: Iterable[OCRRegion],
                  angle: int = 0,
                  scale_factor: float = 0.0) -> ClassifierResult:
        """Aggregate regions from one detection attempt.

        Args:
            regions: Regions returned by the OCR engine
            angle: Rotation that produced the regions
            scale_factor: Preprocessing scale factor

        Returns:
            ClassifierResult for this attempt
        """
        boxes: List[BoundingBox] = []
        confidence_sum = 0.0
        weighted_sum = 0.0
        token_total = 0

        for region in regions:
            if region.confidence <= 0:
                continue
            tokens = count_tokens(region.text)
            if tokens == 0:
                continue

            confidence = clamp(region.confidence / self.raw_scale)
            boxes.append(BoundingBox(
                x=region.x,
                y=region.y,
                width=region.width,
                height=region.height,
                word=region.text,
                confidence=confidence
            ))
            confidence_sum += confidence
            weighted_sum += confidence * tokens
            token_total += tokens

        if not boxes:
            return ClassifierResult.empty(angle=angle, scale_factor=scale_factor)

        return ClassifierResult(
            mean_confidence=clamp(confidence_sum / len(boxes)),
            weighted_confidence=clamp(weighted_sum / token_total),
            token_count=token_total,
            boxes=tuple(boxes),
            angle=angle,
            scale_factor=scale_factor
        )
