"""Preprocessing pipeline orchestrator."""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np
from PIL import Image

from .transforms import (
    apply_otsu_binarization,
    calculate_scale_dimensions,
    median_denoise,
    resize_cubic,
    to_grayscale,
)

logger = logging.getLogger('ocr_classifier')


class Preprocessor:
    """Normalizes an input image into a denoised grayscale raster."""

    def __init__(self, config: Optional[Dict] = None):
        """Initialize preprocessor.

        Args:
            config: Preprocessing configuration
        """
        config = config or {}
        self.config = config
        self.min_dimension = config.get('min_dimension', 32)
        self.median_ksize = config.get('median_ksize', 3)
        self.binarize = config.get('binarize', False)

    def preprocess(self, image: Image.Image) -> Tuple[Optional[np.ndarray], float]:
        """Scale, grayscale and denoise an image.

        Args:
            image: Decoded input image

        Returns:
            Tuple of (processed grayscale array, scale factor). The array is
            None and the scale factor 0.0 when the image is too small.
        """
        width, height = image.size

        if width <= self.min_dimension or height <= self.min_dimension:
            logger.debug(f"Image {width}x{height} too small, skipping preprocessing")
            return None, 0.0

        new_width, new_height, scale_factor = calculate_scale_dimensions(width, height)

        # Step 1: Resize with cubic interpolation
        scaled = resize_cubic(image, new_width, new_height)

        # Step 2: Grayscale
        gray = to_grayscale(scaled)

        # Step 3: Median blur for salt-and-pepper noise
        processed = median_denoise(gray, self.median_ksize)

        # Step 4 (optional): Otsu binarization
        if self.binarize:
            processed = apply_otsu_binarization(processed)

        logger.debug(
            f"Preprocessed {width}x{height} -> {new_width}x{new_height} "
            f"(scale {scale_factor:.4f}, steps {self.get_steps()})"
        )
        return processed, scale_factor

    def get_steps(self) -> List[str]:
        """Get list of preprocessing steps this pipeline applies."""
        steps = ['resize', 'grayscale', 'median_blur']
        if self.binarize:
            steps.append('otsu_threshold')
        return steps
