"""Preprocessing module."""

from .pipeline import Preprocessor
from .transforms import calculate_scale_dimensions, rotate_image, otsu_threshold

__all__ = ['Preprocessor', 'calculate_scale_dimensions', 'rotate_image', 'otsu_threshold']
