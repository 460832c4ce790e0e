"""The upload → coloring page pipeline.

This module provides :class:`ColoringPipeline`, which turns one uploaded
photo into three artifacts on disk: the original, the AI-generated outline
image and the printable PDF.

State Machine
-------------
Every run moves through the stages of :class:`PipelineStage` strictly in
order::

    received → validated → described → generated → fetched → rendered → responded
        │           │           │           │          │          │
        └───────────┴───────────┴─────┬─────┴──────────┴──────────┘
                                      ▼
                                   failed

Each step is a method returning :class:`~coloringpage.core.results.Ok` or
:class:`~coloringpage.core.results.Err`.  :meth:`ColoringPipeline.run` stops
at the first ``Err``; no step is retried or skipped, and artifacts already
written by a failed run are left where they are.

Concurrency
-----------
A pipeline instance holds no per-request state, so one instance serves all
requests concurrently.  Runs never share files because every run gets a
fresh identifier.  File writes and PDF rendering block, so they run in a worker thread
via :func:`asyncio.to_thread` to keep the event loop responsive.

Usage
-----
::

    pipeline = ColoringPipeline(store, ColoringAIClient(config), config)
    outcome = await pipeline.run(UploadedImage("cat.jpg", "image/jpeg", data))
    if outcome.succeeded:
        print(outcome.job.pdf_path)
    else:
        print(outcome.failure.kind, outcome.failure.message)
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from coloringpage.core.ai_client import ColoringService
from coloringpage.core.config import ColoringPageConfig
from coloringpage.core.file_store import FileStore
from coloringpage.core.identifiers import JobId, new_job_id
from coloringpage.core.image_fetch import fetch_image
from coloringpage.core.pdf_renderer import render_coloring_page
from coloringpage.core.results import (
    AIServiceError,
    AIServiceTimeoutError,
    Err,
    FailureKind,
    ImageFetchError,
    Ok,
    PipelineStage,
    RenderError,
    StepFailure,
    StepResult,
)

logger = logging.getLogger(__name__)

ImageFetcher = Callable[[str], Awaitable[bytes]]

ALLOWED_CONTENT_TYPES = frozenset({"image/png", "image/jpeg"})
ALLOWED_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg"})


@dataclass(frozen=True)
class UploadedImage:
    """One file received from the client.

    Attributes:
        filename: Client-supplied filename (untrusted).
        content_type: Declared MIME type (untrusted).
        data: Raw file bytes.
    """

    filename: str | None
    content_type: str | None
    data: bytes

    @property
    def normalized_content_type(self) -> str:
        """Lower-cased MIME type with ``image/jpg`` folded into ``image/jpeg``."""
        ctype = (self.content_type or "").split(";")[0].strip().lower()
        return "image/jpeg" if ctype == "image/jpg" else ctype


@dataclass(frozen=True)
class ColoringPageJob:
    """Artifacts produced by one successful run."""

    job_id: JobId
    original_path: Path
    processed_image_path: Path
    pdf_path: Path
    description: str


@dataclass
class PipelineOutcome:
    """Result of :meth:`ColoringPipeline.run`.

    Attributes:
        job_id: Identifier assigned to the run, or ``None`` when the upload
            was rejected before an identifier was generated.
        stages: Stages reached, in order, ending in ``RESPONDED`` or
            ``FAILED``.
        job: Artifacts of a successful run.
        failure: Why the run failed.
    """

    job_id: JobId | None = None
    stages: list[PipelineStage] = field(default_factory=list)
    job: ColoringPageJob | None = None
    failure: StepFailure | None = None

    @property
    def succeeded(self) -> bool:
        return self.job is not None and self.failure is None


class ColoringPipeline:
    """Drives validate → persist → describe → generate → fetch → render.

    Attributes:
        store (FileStore): Where artifacts are written.
        ai_service (ColoringService): Describe and generate capabilities.
        config (ColoringPageConfig): Upload limits and download timeout.
        fetcher (ImageFetcher): Coroutine function downloading a URL.
    """

    def __init__(
        self,
        store: FileStore,
        ai_service: ColoringService,
        config: ColoringPageConfig,
        fetcher: ImageFetcher | None = None,
    ) -> None:
        self.store = store
        self.ai_service = ai_service
        self.config = config
        self.fetcher = fetcher or functools.partial(fetch_image, timeout=config.download_timeout)

    # -- Steps --------------------------------------------------------------

    def validate(self, upload: UploadedImage) -> StepResult[UploadedImage]:
        """Check type and size before anything touches the network or disk."""
        stage = PipelineStage.VALIDATED

        if not upload.data:
            return Err(StepFailure(stage, FailureKind.VALIDATION, "Uploaded file is empty"))

        if len(upload.data) > self.config.max_upload_bytes:
            limit_mb = self.config.max_upload_bytes / (1024 * 1024)
            return Err(
                StepFailure(
                    stage,
                    FailureKind.VALIDATION,
                    f"File too large (maximum {limit_mb:g} MB)",
                )
            )

        extension = PurePosixPath((upload.filename or "").replace("\\", "/")).suffix.lower()
        if upload.normalized_content_type not in ALLOWED_CONTENT_TYPES or extension not in ALLOWED_EXTENSIONS:
            return Err(StepFailure(stage, FailureKind.VALIDATION, "Only PNG and JPEG files are allowed!"))

        return Ok(upload)

    async def persist(self, job_id: JobId, upload: UploadedImage) -> StepResult[Path]:
        try:
            return Ok(await asyncio.to_thread(self.store.save_upload, job_id, upload.filename, upload.data))
        except OSError as e:
            return Err(
                StepFailure(PipelineStage.VALIDATED, FailureKind.IO, f"Could not store upload: {e}")
            )

    async def describe(self, upload: UploadedImage) -> StepResult[str]:
        try:
            return Ok(await self.ai_service.describe_image(upload.data, upload.normalized_content_type))
        except AIServiceError as e:
            return Err(StepFailure(PipelineStage.DESCRIBED, _ai_failure_kind(e), str(e)))

    async def generate(self, description: str) -> StepResult[str]:
        try:
            return Ok(await self.ai_service.generate_outline(description))
        except AIServiceError as e:
            return Err(StepFailure(PipelineStage.GENERATED, _ai_failure_kind(e), str(e)))

    async def fetch(self, job_id: JobId, url: str) -> StepResult[tuple[Path, bytes]]:
        """Download the generated image and store it as the processed image."""
        stage = PipelineStage.FETCHED
        try:
            data = await self.fetcher(url)
        except ImageFetchError as e:
            return Err(StepFailure(stage, FailureKind.EXTERNAL_SERVICE, str(e)))

        if not data:
            return Err(StepFailure(stage, FailureKind.EXTERNAL_SERVICE, "Downloaded image is empty"))

        try:
            path = await asyncio.to_thread(self.store.save_processed_image, job_id, data)
        except OSError as e:
            return Err(StepFailure(stage, FailureKind.IO, f"Could not store processed image: {e}"))
        return Ok((path, data))

    async def render(self, job_id: JobId, data: bytes) -> StepResult[Path]:
        try:
            path = await asyncio.to_thread(render_coloring_page, data, self.store.pdf_path(job_id))
        except RenderError as e:
            return Err(StepFailure(PipelineStage.RENDERED, FailureKind.IO, str(e)))
        return Ok(path)

    # -- Orchestration ------------------------------------------------------

    async def run(self, upload: UploadedImage, job_id: JobId | None = None) -> PipelineOutcome:
        """Run every step in order, stopping at the first failure.

        Args:
            upload: The received file.
            job_id: Identifier to use; a fresh one is generated when omitted.

        Returns:
            A :class:`PipelineOutcome` describing the artifacts or the failure.
        """
        outcome = PipelineOutcome(stages=[PipelineStage.RECEIVED])

        validated = self.validate(upload)
        if isinstance(validated, Err):
            return self._fail(outcome, validated.failure)
        outcome.stages.append(PipelineStage.VALIDATED)

        outcome.job_id = job_id or new_job_id()
        logger.info("Job %s: accepted upload %r (%d bytes).", outcome.job_id, upload.filename, len(upload.data))

        stored = await self.persist(outcome.job_id, upload)
        if isinstance(stored, Err):
            return self._fail(outcome, stored.failure)

        described = await self.describe(upload)
        if isinstance(described, Err):
            return self._fail(outcome, described.failure)
        outcome.stages.append(PipelineStage.DESCRIBED)

        generated = await self.generate(described.value)
        if isinstance(generated, Err):
            return self._fail(outcome, generated.failure)
        outcome.stages.append(PipelineStage.GENERATED)

        fetched = await self.fetch(outcome.job_id, generated.value)
        if isinstance(fetched, Err):
            return self._fail(outcome, fetched.failure)
        outcome.stages.append(PipelineStage.FETCHED)
        processed_path, processed_data = fetched.value

        rendered = await self.render(outcome.job_id, processed_data)
        if isinstance(rendered, Err):
            return self._fail(outcome, rendered.failure)
        outcome.stages.append(PipelineStage.RENDERED)

        outcome.job = ColoringPageJob(
            job_id=outcome.job_id,
            original_path=stored.value,
            processed_image_path=processed_path,
            pdf_path=rendered.value,
            description=described.value,
        )
        outcome.stages.append(PipelineStage.RESPONDED)
        logger.info("Job %s: completed.", outcome.job_id)
        return outcome

    @staticmethod
    def _fail(outcome: PipelineOutcome, failure: StepFailure) -> PipelineOutcome:
        outcome.failure = failure
        outcome.stages.append(PipelineStage.FAILED)
        if failure.kind is FailureKind.VALIDATION:
            logger.warning("Upload rejected: %s", failure.message)
        else:
            logger.error(
                "Job %s failed at stage '%s' (%s): %s",
                outcome.job_id,
                failure.stage.value,
                failure.kind.value,
                failure.message,
            )
        return outcome


def _ai_failure_kind(error: AIServiceError) -> FailureKind:
    if isinstance(error, AIServiceTimeoutError):
        return FailureKind.TIMEOUT
    return FailureKind.EXTERNAL_SERVICE
