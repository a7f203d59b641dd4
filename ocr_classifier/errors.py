"""Exceptions raised by the classifier."""


class ClassifierError(Exception):
    """Base class for classifier failures."""


class ImageDecodeError(ClassifierError, ValueError):
    """Image bytes could not be decoded as a raster image."""


class ImageEncodeError(ClassifierError, ValueError):
    """A processed image could not be serialized for the OCR engine."""


class OCREngineError(ClassifierError, RuntimeError):
    """The OCR engine failed to load or recognize an image."""
