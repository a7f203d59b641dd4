"""HTTP API for the classifier."""

from .models import ClassifyResponse, ErrorResponse, URLRequest
from .server import create_app

__all__ = ["ClassifyResponse", "ErrorResponse", "URLRequest", "create_app"]
