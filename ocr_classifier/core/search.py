"""Two-phase text detection with a concurrent rotation search.

Phase 1 runs the OCR engine once on the preprocessed, unrotated image. If
the token-weighted confidence does not reach the acceptance threshold,
Phase 2 fans a fixed set of candidate rotations out to a small worker pool
and stops as soon as any rotation is accepted.
"""

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from ..errors import ImageDecodeError
from ..models import ClassifierResult
from ..ocr.base import OCREngine
from ..preprocessing import Preprocessor, rotate_image
from ..scoring import ConfidenceAggregator
from ..utils import decode_image, encode_image

logger = logging.getLogger('ocr_classifier')

# Deviations around 0 plus 90/180/270 and their deviations; 0 itself is Phase 1
DEFAULT_CANDIDATE_ANGLES: Tuple[int, ...] = (
    350, 355, 5, 10,
    80, 85, 90, 95, 100,
    170, 175, 180, 185, 190,
    260, 265, 270, 275, 280,
)


@dataclass(frozen=True)
class SearchSettings:
    """Immutable search configuration."""
    acceptance_threshold: float = 0.66
    candidate_angles: Tuple[int, ...] = DEFAULT_CANDIDATE_ANGLES
    worker_count: int = 4

    def __post_init__(self):
        if not 0.0 <= self.acceptance_threshold <= 1.0:
            raise ValueError("acceptance_threshold must be within [0, 1]")
        if self.worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        if any(angle % 360 == 0 for angle in self.candidate_angles):
            raise ValueError("candidate_angles must not contain 0, it is tried in phase 1")

    @classmethod
    def from_config(cls, config: Dict) -> 'SearchSettings':
        """Build settings from the 'search' configuration section."""
        return cls(
            acceptance_threshold=float(config.get('acceptance_threshold', 0.66)),
            candidate_angles=tuple(int(a) for a in config.get('candidate_angles', DEFAULT_CANDIDATE_ANGLES)),
            worker_count=int(config.get('worker_count', 4))
        )


@dataclass(frozen=True)
class RotationOutcome:
    """Result of one Phase 2 attempt."""
    angle: int
    result: Optional[ClassifierResult] = None
    error: Optional[Exception] = None


# Marker a worker puts on the outcome queue when it exits
_WORKER_DONE = object()


class RotationSearchEngine:
    """Detects text, searching rotations when the plain attempt is unconvincing."""

    def __init__(self,
                 ocr_engine: OCREngine,
                 settings: Optional[SearchSettings] = None,
                 preprocessor: Optional[Preprocessor] = None,
                 aggregator: Optional[ConfidenceAggregator] = None,
                 encode_format: str = 'png',
                 jpeg_quality: int = 95):
        """Initialize search engine.

        Args:
            ocr_engine: Engine used for every detection attempt
            settings: Search settings (defaults if omitted)
            preprocessor: Image preprocessor (defaults if omitted)
            aggregator: Confidence aggregator (defaults if omitted)
            encode_format: Format used to hand images to the engine
            jpeg_quality: JPEG quality when encode_format is 'jpeg'
        """
        self.ocr_engine = ocr_engine
        self.settings = settings or SearchSettings()
        self.preprocessor = preprocessor or Preprocessor()
        self.aggregator = aggregator or ConfidenceAggregator()
        self.encode_format = encode_format
        self.jpeg_quality = jpeg_quality

    def detect_text(self, image_bytes: bytes) -> ClassifierResult:
        """Detect text in an encoded image.

        Args:
            image_bytes: Encoded image bytes

        Returns:
            The first accepted result, or the best result seen

        Raises:
            OCREngineError: If the engine fails in Phase 1 or the raw fallback
            ImageEncodeError: If the preprocessed image cannot be encoded
        """
        try:
            image = decode_image(image_bytes)
        except ImageDecodeError as e:
            logger.info(f"Could not decode image ({e}), running OCR on raw bytes")
            return self._detect(image_bytes, angle=0, scale_factor=0.0)

        processed, scale_factor = self.preprocessor.preprocess(image)
        if processed is None:
            logger.info(f"Image {image.size[0]}x{image.size[1]} too small for detection")
            return ClassifierResult.empty()

        # Phase 1: no rotation
        logger.debug("Phase 1: unrotated detection")
        phase1 = self._detect(self._encode(processed), angle=0, scale_factor=scale_factor)
        if self._accepted(phase1):
            logger.info(f"Phase 1 accepted (weighted confidence {phase1.weighted_confidence:.4f})")
            return phase1

        # Phase 2: rotation search
        logger.debug(
            f"Phase 2: weighted confidence {phase1.weighted_confidence:.4f} below "
            f"{self.settings.acceptance_threshold}, searching {len(self.settings.candidate_angles)} rotations"
        )
        result = self._search_rotations(processed, scale_factor, phase1)
        logger.info(f"Best rotation {result.angle} (weighted confidence {result.weighted_confidence:.4f})")
        return result

    def _search_rotations(self,
                          processed: np.ndarray,
                          scale_factor: float,
                          phase1: ClassifierResult) -> ClassifierResult:
        """Run Phase 2 over the candidate angles."""
        angles = self.settings.candidate_angles
        if not angles:
            return phase1

        worker_count = min(self.settings.worker_count, len(angles))
        jobs: 'queue.Queue[int]' = queue.Queue(maxsize=len(angles))
        outcomes: queue.Queue = queue.Queue(maxsize=len(angles) + worker_count)
        cancelled = threading.Event()

        # Job queue holds every angle, so the producer never blocks
        for angle in angles:
            jobs.put_nowait(angle)

        executor = ThreadPoolExecutor(max_workers=worker_count, thread_name_prefix='rotation')
        try:
            for _ in range(worker_count):
                executor.submit(self._worker, processed, scale_factor, jobs, outcomes, cancelled)
            return self._collect(outcomes, worker_count, phase1, cancelled)
        finally:
            # Stragglers finish their in-flight call and exit on the cancel flag
            executor.shutdown(wait=False)

    def _worker(self,
                processed: np.ndarray,
                scale_factor: float,
                jobs: queue.Queue,
                outcomes: queue.Queue,
                cancelled: threading.Event) -> None:
        """Pull angles until the queue is empty or the search is cancelled."""
        try:
            while not cancelled.is_set():
                try:
                    angle = jobs.get_nowait()
                except queue.Empty:
                    break

                outcome = self._attempt_rotation(processed, scale_factor, angle)
                outcomes.put(outcome)

                if outcome.result is not None and self._accepted(outcome.result):
                    cancelled.set()
                    break
        finally:
            outcomes.put(_WORKER_DONE)

    def _attempt_rotation(self, processed: np.ndarray, scale_factor: float, angle: int) -> RotationOutcome:
        """Rotate, encode and detect a single candidate angle."""
        try:
            rotated = rotate_image(processed, angle)
            result = self._detect(self._encode(rotated), angle=angle, scale_factor=scale_factor)
        except Exception as e:
            return RotationOutcome(angle=angle, error=e)
        return RotationOutcome(angle=angle, result=result)

    def _collect(self,
                 outcomes: queue.Queue,
                 worker_count: int,
                 phase1: ClassifierResult,
                 cancelled: threading.Event) -> ClassifierResult:
        """Consume outcomes in completion order and select the winner."""
        best = phase1
        finished = 0

        while finished < worker_count:
            outcome = outcomes.get()
            if outcome is _WORKER_DONE:
                finished += 1
                continue

            if outcome.error is not None:
                logger.warning(f"Rotation {outcome.angle} failed: {outcome.error}")
                continue

            result = outcome.result
            logger.debug(f"Rotation {outcome.angle}: weighted confidence {result.weighted_confidence:.4f}")

            if self._accepted(result):
                cancelled.set()
                return result
            if result.weighted_confidence > best.weighted_confidence:
                best = result

        return best

    def _detect(self, image_bytes: bytes, angle: int, scale_factor: float) -> ClassifierResult:
        regions = self.ocr_engine.detect(image_bytes)
        return self.aggregator.aggregate(regions, angle=angle, scale_factor=scale_factor)

    def _encode(self, image: np.ndarray) -> bytes:
        return encode_image(image, self.encode_format, self.jpeg_quality)

    def _accepted(self, result: ClassifierResult) -> bool:
        return result.weighted_confidence >= self.settings.acceptance_threshold
