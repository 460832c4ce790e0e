"""Coloring Page Generator — FastAPI Application.

This module is the single entry point for the web application.  It defines
the application factory, all REST API routes, the error handlers and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
The application follows a stateless REST pattern:

- **Configuration** comes from :class:`~coloringpage.core.config.ColoringPageConfig`.
- **Processing** is performed by :class:`~coloringpage.core.pipeline.ColoringPipeline`,
  which is built once per application and stored on ``app.state``.
- **Persistence** is two flat directories — no database required.  Both are
  also served directly by FastAPI's ``StaticFiles`` so the browser can show
  the original and processed images.
- **Errors** are always JSON ``{"error": ..., "details": ...}``.  Pipeline
  failures are mapped in one place (:func:`_failure_response`); anything
  unexpected is caught by the catch-all handler and becomes a generic 500.

Endpoints
---------
========  ========================  ====================================
Method    Path                      Purpose
========  ========================  ====================================
GET       ``/``                     Serve the upload page
POST      ``/upload-image``         Upload a photo and run the pipeline
GET       ``/download/{id}``        Download the coloring page PDF
GET       ``/health``               Liveness probe
GET       ``/uploads/...``          Original uploads (static)
GET       ``/processed/...``        Processed images and PDFs (static)
========  ========================  ====================================

Usage
-----
CLI (installed entry point)::

    coloringpage

Direct invocation::

    python -m coloringpage.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import APIRouter, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from coloringpage import __version__
from coloringpage.api.models import ErrorResponse, HealthResponse, UploadResponse
from coloringpage.core.ai_client import ColoringAIClient, ColoringService
from coloringpage.core.config import ColoringPageConfig, config
from coloringpage.core.file_store import FileStore
from coloringpage.core.identifiers import InvalidJobIdError, parse_job_id
from coloringpage.core.pipeline import ColoringPipeline, ImageFetcher, UploadedImage
from coloringpage.core.results import FailureKind, StepFailure

logger = logging.getLogger(__name__)

TEMPLATES_DIR: Path = Path(__file__).resolve().parent.parent / "templates"

router = APIRouter()


# ---------------------------------------------------------------------------
# Error response helpers.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    """Build a JSON error response with the standard ``ErrorResponse`` shape."""
    payload = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=payload.model_dump(exclude_none=True))


def _failure_response(failure: StepFailure) -> JSONResponse:
    """Map a pipeline failure to its HTTP response.

    Validation failures are the client's fault (400) and carry the message
    as the error itself.  Every other kind is a processing failure (500).
    """
    if failure.kind is FailureKind.VALIDATION:
        return _error_response(400, failure.message)
    if failure.kind is FailureKind.NOT_FOUND:
        return _error_response(404, failure.message)
    return _error_response(500, "Failed to process image", failure.message)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
async def index():
    """Serve the upload page.

    Returns:
        The HTML content of ``templates/index.html``, or a 404 JSON error
        if the template is missing.
    """
    index_path = TEMPLATES_DIR / "index.html"
    if index_path.exists():
        return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
    return _error_response(404, "index.html not found")


@router.post(
    "/upload-image",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def upload_image(request: Request, image: UploadFile | None = File(default=None)):
    """Accept a photo and turn it into a coloring page.

    This endpoint:

    1. Rejects requests without an ``image`` file (400).
    2. Reads at most ``max_upload_bytes + 1`` bytes so oversized uploads are
       detected without buffering them completely.
    3. Runs the pipeline (validate, persist, describe, generate, fetch,
       render).
    4. Returns the three server-relative URLs on success.

    Args:
        request: Incoming request (gives access to ``app.state``).
        image: The uploaded file from the multipart ``image`` field.

    Returns:
        :class:`UploadResponse` on success, or an :class:`ErrorResponse`
        with status 400 or 500.
    """
    if image is None or not image.filename:
        return _error_response(400, "No image file provided")

    settings: ColoringPageConfig = request.app.state.config
    pipeline: ColoringPipeline = request.app.state.pipeline
    store: FileStore = request.app.state.store

    try:
        data = await image.read(settings.max_upload_bytes + 1)
    finally:
        await image.close()

    upload = UploadedImage(filename=image.filename, content_type=image.content_type, data=data)
    outcome = await pipeline.run(upload)

    if not outcome.succeeded:
        return _failure_response(outcome.failure)

    job_id = outcome.job.job_id
    return UploadResponse(
        original_image=store.upload_url(job_id, upload.filename),
        processed_image=store.processed_image_url(job_id),
        pdf_download=store.download_url(job_id),
        message="Image processed successfully!",
    )


@router.get(
    "/download/{image_id}",
    response_class=FileResponse,
    responses={404: {"model": ErrorResponse}},
)
async def download_pdf(image_id: str, request: Request):
    """Stream the coloring page PDF as an attachment.

    The path is derived from the identifier alone.  Identifiers that are
    malformed, unknown, or belong to a job that never finished rendering
    all produce the same 404.

    Args:
        image_id: Job identifier from the upload response.
        request: Incoming request (gives access to ``app.state``).

    Returns:
        The PDF file, or a 404 JSON error.
    """
    store: FileStore = request.app.state.store

    try:
        job_id = parse_job_id(image_id)
    except InvalidJobIdError:
        return _error_response(404, "PDF not found")

    pdf_path = store.find_pdf(job_id)
    if pdf_path is None:
        return _error_response(404, "PDF not found")

    return FileResponse(
        pdf_path,
        media_type="application/pdf",
        filename=f"coloring-page-{job_id}.pdf",
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse()


# ---------------------------------------------------------------------------
# Exception handlers.
# ---------------------------------------------------------------------------


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("Rejected malformed request to %s: %s", request.url.path, exc.errors())
    return _error_response(400, "Invalid request", "The request must be multipart form data with an 'image' file")


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error while serving %s", request.url.path)
    return _error_response(500, "Internal server error", str(exc))


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    settings: ColoringPageConfig | None = None,
    *,
    ai_service: ColoringService | None = None,
    fetcher: ImageFetcher | None = None,
) -> FastAPI:
    """Build a configured FastAPI application.

    The file store and pipeline are created eagerly so that static mounts
    and routes work even when the lifespan is not run.  No network
    connection is opened here: the default AI client connects lazily.

    Args:
        settings: Configuration; defaults to the global ``config``.
        ai_service: Replacement for the OpenAI-backed client (tests).
        fetcher: Replacement for the image download coroutine (tests).

    Returns:
        The application instance.
    """
    settings = settings or config
    store = FileStore(settings.uploads_dir, settings.processed_dir)
    owns_ai_client = ai_service is None
    ai = ai_service or ColoringAIClient(settings)
    pipeline = ColoringPipeline(store, ai, settings, fetcher=fetcher)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Manage application startup and shutdown lifecycle.

        On startup:
            Removes expired artifacts when ``artifact_max_age_hours`` is set.

        On shutdown:
            Closes the AI client's connection pool (only if this factory
            created it).
        """
        # --- Startup -------------------------------------------------------
        if settings.artifact_max_age_hours is not None:
            store.sweep_expired(settings.artifact_max_age_hours * 3600)
        logger.info(
            "Serving uploads from %s and processed files from %s.",
            store.uploads_dir.resolve(),
            store.processed_dir.resolve(),
        )

        yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        if owns_ai_client:
            await ai.close()
            logger.info("AI client closed on shutdown.")

    app = FastAPI(
        title="AI Coloring Page Generator",
        description="Turn photos into printable black-and-white coloring pages.",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = settings
    app.state.store = store
    app.state.pipeline = pipeline

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)

    app.include_router(router)

    app.mount("/uploads", StaticFiles(directory=str(store.uploads_dir)), name="uploads")
    app.mount("/processed", StaticFiles(directory=str(store.processed_dir)), name="processed")

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~coloringpage.core.config.config`
    (``COLORINGPAGE_SERVER_HOST``, ``COLORINGPAGE_SERVER_PORT`` and
    ``COLORINGPAGE_LOG_LEVEL``).  Defaults to ``0.0.0.0:5001``.

    This function is registered as the ``coloringpage`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "coloringpage.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
