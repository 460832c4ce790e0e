"""Typed step results and the failure taxonomy.

Pipeline steps never let exceptions escape.  Each step returns either
:class:`Ok` carrying its value or :class:`Err` carrying a
:class:`StepFailure`, and the HTTP gateway maps failures to responses in one
place.

Lower layers (AI client, image fetch, PDF renderer) raise the exceptions
defined here; the pipeline converts them into :class:`Err` values.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class PipelineStage(str, Enum):
    """States a single upload passes through, in order."""

    RECEIVED = "received"
    VALIDATED = "validated"
    DESCRIBED = "described"
    GENERATED = "generated"
    FETCHED = "fetched"
    RENDERED = "rendered"
    RESPONDED = "responded"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Failure categories, each mapped to one kind of HTTP response."""

    VALIDATION = "validation"
    TIMEOUT = "timeout"
    EXTERNAL_SERVICE = "external_service"
    IO = "io"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class StepFailure:
    """Why a pipeline step failed.

    Attributes:
        stage: The stage that was being attempted when the failure occurred.
        kind: Failure category.
        message: Human-readable message, safe to return to the client.
    """

    stage: PipelineStage
    kind: FailureKind
    message: str


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful step result."""

    value: T


@dataclass(frozen=True)
class Err:
    """Failed step result."""

    failure: StepFailure


StepResult = Union[Ok[T], Err]


# ---------------------------------------------------------------------------
# Exceptions raised by the lower layers.
# ---------------------------------------------------------------------------


class ColoringPageError(Exception):
    """Base class for all errors raised by the coloring page components."""


class AIServiceError(ColoringPageError):
    """The AI service failed or returned an unusable response."""


class AIServiceTimeoutError(AIServiceError):
    """An AI call exceeded its hard time ceiling."""


class ImageFetchError(ColoringPageError):
    """The generated image could not be downloaded."""


class RenderError(ColoringPageError):
    """The coloring page PDF could not be produced."""
