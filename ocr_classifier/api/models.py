"""Pydantic models for API requests and responses."""

from pydantic import BaseModel
from typing import List


class BoundingBoxModel(BaseModel):
    """A recognized text region."""
    x: int
    y: int
    width: int
    height: int
    word: str
    confidence: float


class ClassifyResponse(BaseModel):
    """Response model for text detection results."""
    mean_confidence: float
    weighted_confidence: float
    token_count: int
    boxes: List[BoundingBoxModel]
    angle: int
    scale_factor: float


class URLRequest(BaseModel):
    """Request model for classifying an image fetched from a URL."""
    image_url: str


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""
    error: str


class HealthResponse(BaseModel):
    status: str
