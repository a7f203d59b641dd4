"""Image transforms used by the preprocessing pipeline and rotation search.

Implements dynamic scaling, grayscale conversion, median denoising,
Otsu binarization and rotation.
"""

import math
from typing import Tuple

import cv2
import numpy as np
from PIL import Image

# Pixel-count thresholds for dynamic scaling
HALF_MEGAPIXEL = 500_000
ONE_MEGAPIXEL = 1_000_000
TWO_MEGAPIXELS = 2_000_000
THREE_MEGAPIXELS = 3_000_000

WHITE = 255


def calculate_scale_dimensions(width: int, height: int) -> Tuple[int, int, float]:
    """Choose target dimensions from the image's pixel count.

    Args:
        width: Source width in pixels
        height: Source height in pixels

    Returns:
        Tuple of (new_width, new_height, scale_factor)
    """
    pixels = width * height

    if pixels < HALF_MEGAPIXEL:
        return width * 4, height * 4, 4.0
    if pixels < ONE_MEGAPIXEL:
        return width * 3, height * 3, 3.0
    if pixels < TWO_MEGAPIXELS:
        return width * 3 // 2, height * 3 // 2, 1.5
    if pixels <= THREE_MEGAPIXELS:
        return width, height, 1.0

    # Downscale so the result stays near 3 MP
    scale_factor = math.sqrt(THREE_MEGAPIXELS / pixels)
    new_width = max(1, int(width * scale_factor))
    new_height = max(1, int(height * scale_factor))
    return new_width, new_height, scale_factor


def resize_cubic(image: Image.Image, width: int, height: int) -> Image.Image:
    """Resize with Pillow's bicubic (Catmull-Rom) kernel."""
    if image.size == (width, height):
        return image.copy()
    return image.resize((width, height), Image.BICUBIC)


def to_grayscale(image: Image.Image) -> np.ndarray:
    """Convert an RGB Pillow image to a single-channel uint8 array."""
    rgb = np.asarray(image.convert('RGB'))
    return cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)


def median_denoise(gray: np.ndarray, ksize: int = 3) -> np.ndarray:
    """Suppress salt-and-pepper noise with a ksize x ksize median window."""
    return cv2.medianBlur(gray, ksize)


def otsu_threshold(gray: np.ndarray) -> int:
    """Return the Otsu threshold level for a grayscale image."""
    level, _ = cv2.threshold(gray, 0, WHITE, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
    return int(level)


def apply_otsu_binarization(gray: np.ndarray) -> np.ndarray:
    """Binarize a grayscale image to pure black/white using Otsu's level."""
    _, binary = cv2.threshold(gray, 0, WHITE, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
    return binary


def rotate_image(image: np.ndarray, angle: int) -> np.ndarray:
    """Rotate image counter-clockwise by angle degrees.

    Multiples of 90 are exact transpositions. Other angles use an affine
    rotation on an enlarged canvas filled with white.

    Args:
        image: Input image (never modified)
        angle: Rotation angle in degrees

    Returns:
        A new rotated image
    """
    angle = angle % 360

    if angle == 0:
        return image.copy()
    if angle == 90:
        return cv2.rotate(image, cv2.ROTATE_90_COUNTERCLOCKWISE)
    if angle == 180:
        return cv2.rotate(image, cv2.ROTATE_180)
    if angle == 270:
        return cv2.rotate(image, cv2.ROTATE_90_CLOCKWISE)

    height, width = image.shape[:2]
    center = (width / 2, height / 2)

    rotation_matrix = cv2.getRotationMatrix2D(center, angle, 1.0)

    # Enlarge the canvas so no corner is clipped
    cos = np.abs(rotation_matrix[0, 0])
    sin = np.abs(rotation_matrix[0, 1])
    new_width = int(math.ceil((height * sin) + (width * cos)))
    new_height = int(math.ceil((height * cos) + (width * sin)))

    rotation_matrix[0, 2] += (new_width / 2) - center[0]
    rotation_matrix[1, 2] += (new_height / 2) - center[1]

    fill = WHITE if image.ndim == 2 else (WHITE,) * image.shape[2]
    return cv2.warpAffine(
        image,
        rotation_matrix,
        (new_width, new_height),
        flags=cv2.INTER_CUBIC,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=fill
    )
