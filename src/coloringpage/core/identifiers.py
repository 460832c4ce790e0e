"""Job identifiers.

Every upload is named by a fresh UUID4 in its canonical string form.  The
identifier is the filename stem shared by the upload, the processed image
and the PDF, so it is the only index into the File Store.  Identifiers that
arrive from outside (the download route) must go through
:func:`parse_job_id` before they are used to build a path.
"""

from __future__ import annotations

import uuid
from typing import NewType

JobId = NewType("JobId", str)


class InvalidJobIdError(ValueError):
    """Raised when a string is not a canonical job identifier."""


def new_job_id() -> JobId:
    """Return a fresh, never-reused job identifier."""
    return JobId(str(uuid.uuid4()))


def parse_job_id(raw: str) -> JobId:
    """Validate an externally supplied identifier.

    Only the canonical lowercase hyphenated form produced by
    :func:`new_job_id` is accepted, which rules out path separators, dots
    and any other characters that could escape the File Store directories.

    Args:
        raw: Untrusted identifier text (e.g. a URL path segment).

    Returns:
        The identifier as a :data:`JobId`.

    Raises:
        InvalidJobIdError: If *raw* is not a canonical UUID string.
    """
    try:
        parsed = uuid.UUID(raw)
    except (TypeError, ValueError, AttributeError) as e:
        raise InvalidJobIdError(f"Invalid job id: {raw!r}") from e

    if str(parsed) != raw:
        raise InvalidJobIdError(f"Invalid job id: {raw!r}")

    return JobId(raw)
