"""Map domain errors to HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from reelfeed.core.errors import (
    InvalidTaxonomyReference,
    NoSourceProvided,
    SourceFetchFailed,
    StorageError,
    StorageNotConfigured,
    VideoNotFound,
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidTaxonomyReference)
    def invalid_taxonomy(request: Request, exc: InvalidTaxonomyReference):
        return JSONResponse(status_code=400, content={"error": str(exc), **exc.result.as_dict()})

    @app.exception_handler(NoSourceProvided)
    def no_source(request: Request, exc: NoSourceProvided):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(SourceFetchFailed)
    def fetch_failed(request: Request, exc: SourceFetchFailed):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(StorageNotConfigured)
    def storage_not_configured(request: Request, exc: StorageNotConfigured):
        logger.error(f"[api] {exc}")
        return JSONResponse(status_code=503, content={"error": "Upload service unavailable"})

    @app.exception_handler(StorageError)
    def storage_error(request: Request, exc: StorageError):
        logger.error(f"[api] Storage error: {exc}")
        return JSONResponse(status_code=503, content={"error": "Upload service unavailable"})

    @app.exception_handler(VideoNotFound)
    def video_not_found(request: Request, exc: VideoNotFound):
        return JSONResponse(status_code=404, content={"error": "Video not found"})
