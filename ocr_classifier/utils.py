"""Utility functions for the OCR classifier."""

import io
import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml
import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageDecodeError, ImageEncodeError

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'config.yaml'


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file (defaults to the packaged config.yaml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid
    """
    config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    return config or {}


def setup_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Setup logging configuration.

    Args:
        config: Logging configuration dictionary

    Returns:
        Configured logger instance
    """
    if config is None:
        config = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        }

    logger = logging.getLogger('ocr_classifier')
    logger.setLevel(getattr(logging, config.get('level', 'INFO')))

    # Repeated pipeline construction must not stack handlers
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        config.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(getattr(logging, config.get('console_level', 'INFO')))
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler with rotation
    if config.get('file'):
        file_handler = logging.handlers.RotatingFileHandler(
            config['file'],
            maxBytes=config.get('max_bytes', 10485760),
            backupCount=config.get('backup_count', 5)
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode raw bytes into an RGB Pillow image.

    Args:
        image_bytes: Encoded image (JPEG, PNG, ...)

    Returns:
        Decoded image in RGB mode

    Raises:
        ImageDecodeError: If the bytes are not a readable raster image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        return image.convert('RGB')
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as e:
        raise ImageDecodeError(f"Failed to decode image: {e}") from e


def encode_image(image: np.ndarray, image_format: str = 'png', jpeg_quality: int = 95) -> bytes:
    """Encode an OpenCV image for the OCR engine.

    Args:
        image: Image as numpy array
        image_format: 'png' or 'jpeg'
        jpeg_quality: JPEG quality when image_format is 'jpeg'

    Returns:
        Encoded image bytes

    Raises:
        ImageEncodeError: If the image cannot be encoded
    """
    if image is None or image.size == 0:
        raise ImageEncodeError("Cannot encode an empty image")

    if image_format == 'png':
        ext, params = '.png', []
    elif image_format in ('jpeg', 'jpg'):
        ext, params = '.jpg', [cv2.IMWRITE_JPEG_QUALITY, int(jpeg_quality)]
    else:
        raise ImageEncodeError(f"Unsupported encode format: {image_format}")

    try:
        ok, buffer = cv2.imencode(ext, image, params)
    except cv2.error as e:
        raise ImageEncodeError(f"Failed to encode image: {e}") from e

    if not ok:
        raise ImageEncodeError(f"Failed to encode image as {image_format}")

    return buffer.tobytes()


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value to [low, high]."""
    return max(low, min(high, value))


def truncate_text(text: str, max_len: int) -> str:
    """Shorten text to max_len characters, marking the cut with '...'."""
    if len(text) <= max_len:
        return text
    return text[:max_len - 3] + '...'
