"""FastAPI server exposing text detection over HTTP."""

import logging
import os
from typing import Optional

import requests
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import ClientDisconnect

from ..core.pipeline import ClassifierPipeline
from ..utils import load_config
from .models import ClassifyResponse, ErrorResponse, HealthResponse, URLRequest

logger = logging.getLogger("ocr_classifier")

ACCEPTED_CONTENT_TYPES = ("image/jpeg", "image/png")
FETCH_TIMEOUT = 15

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    405: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _media_type(content_type: Optional[str]) -> str:
    return (content_type or "").split(";")[0].strip().lower()


async def _classify_bytes(request: Request, image_bytes: bytes):
    pipeline = request.app.state.pipeline
    if pipeline is None:
        return _error(500, "pipeline not initialized")

    try:
        result = await run_in_threadpool(pipeline.classify, image_bytes)
    except Exception as e:
        logger.error(f"Processing failed: {e}", exc_info=True)
        return _error(500, "failed to process image")

    logger.info(
        f"Processing complete: weighted confidence {result.weighted_confidence:.4f}, "
        f"angle {result.angle}, {len(result.boxes)} boxes"
    )
    return ClassifyResponse(**result.to_dict())


def create_app(pipeline: Optional[ClassifierPipeline] = None,
               config_path: Optional[str] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        pipeline: Pipeline to serve; built on startup from config_path if omitted
        config_path: Configuration file used when the pipeline is built on startup

    Returns:
        FastAPI application
    """
    app = FastAPI(
        title="OCR Classifier API",
        description="Detect readable text in images and score the detection"
    )
    app.state.pipeline = pipeline

    @app.on_event("startup")
    async def startup_event():
        if app.state.pipeline is None:
            logger.info("Initializing classifier pipeline...")
            app.state.pipeline = ClassifierPipeline(config_path)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405 and request.url.path.startswith("/classify"):
            return _error(405, "method not allowed, use POST")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error(400, "invalid request body")

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(status="ok")

    @app.post("/classify", response_model=ClassifyResponse, responses=_ERROR_RESPONSES)
    async def classify(request: Request):
        """Classify an image sent as the raw request body."""
        if _media_type(request.headers.get("content-type")) not in ACCEPTED_CONTENT_TYPES:
            return _error(400, "content-type must be image/jpeg or image/png")

        try:
            image_bytes = await request.body()
        except ClientDisconnect:
            return _error(400, "failed to read image data")

        if not image_bytes:
            return _error(400, "empty image data")

        return await _classify_bytes(request, image_bytes)

    @app.post("/classify/url", response_model=ClassifyResponse, responses=_ERROR_RESPONSES)
    async def classify_url(body: URLRequest, request: Request):
        """Fetch an image from a URL and classify it."""
        logger.info(f"Fetching image from: {body.image_url}")
        try:
            response = await run_in_threadpool(requests.get, body.image_url, timeout=FETCH_TIMEOUT)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Network error fetching image: {e}")
            return _error(400, "failed to fetch image")

        if _media_type(response.headers.get("content-type")) not in ACCEPTED_CONTENT_TYPES:
            return _error(400, "content-type must be image/jpeg or image/png")
        if not response.content:
            return _error(400, "empty image data")

        return await _classify_bytes(request, response.content)

    return app


app = create_app(config_path=os.getenv("OCR_CLASSIFIER_CONFIG"))


def main():
    """Run the API server."""
    config = load_config(os.getenv("OCR_CLASSIFIER_CONFIG"))
    server_config = config.get("server", {})
    port = int(os.getenv("PORT", server_config.get("port", 8080)))
    host = server_config.get("host", "0.0.0.0")

    print(f"Starting server on {host}:{port}...")
    uvicorn.run(app, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
