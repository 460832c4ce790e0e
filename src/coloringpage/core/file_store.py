"""Flat-file storage for uploads, processed images and PDFs.

The File Store is two directories and a naming rule.  There is no database:
the job identifier is embedded in every filename and is the only index.

Layout::

    uploads/<id>-<original filename>
    processed/<id>-processed.png
    processed/<id>-coloring-page.pdf

Artifacts are written once and never modified.  Nothing is deleted during
normal operation; :meth:`FileStore.sweep_expired` exists for deployments
that opt in to expiring old jobs.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path

from coloringpage.core.identifiers import JobId

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")

PROCESSED_IMAGE_SUFFIX = "-processed.png"
PDF_SUFFIX = "-coloring-page.pdf"


def sanitize_filename(name: str | None) -> str:
    """Reduce a client-supplied filename to a safe basename.

    Directory components are dropped (both ``/`` and ``\\`` separators),
    runs of unsafe characters become ``_``, and leading dots are removed so
    the result can never be a hidden file or a relative path.

    Args:
        name: Original filename from the multipart upload, possibly ``None``.

    Returns:
        A non-empty filename made of letters, digits, ``.``, ``_`` and ``-``.
    """
    basename = (name or "").replace("\\", "/").split("/")[-1]
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", basename).lstrip(".")
    return cleaned or "image"


class FileStore:
    """Deterministic, identifier-keyed paths over the two storage directories.

    Attributes:
        uploads_dir: Directory holding original uploads.
        processed_dir: Directory holding processed images and PDFs.
    """

    def __init__(self, uploads_dir: Path, processed_dir: Path) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.processed_dir = Path(processed_dir)

        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.processed_dir.mkdir(parents=True, exist_ok=True)

    # -- Path derivation ----------------------------------------------------

    def upload_name(self, job_id: JobId, filename: str | None) -> str:
        """Return the stored filename for an original upload."""
        return f"{job_id}-{sanitize_filename(filename)}"

    def upload_path(self, job_id: JobId, filename: str | None) -> Path:
        return self.uploads_dir / self.upload_name(job_id, filename)

    def processed_image_path(self, job_id: JobId) -> Path:
        return self.processed_dir / f"{job_id}{PROCESSED_IMAGE_SUFFIX}"

    def pdf_path(self, job_id: JobId) -> Path:
        return self.processed_dir / f"{job_id}{PDF_SUFFIX}"

    # -- Server-relative URLs -----------------------------------------------

    def upload_url(self, job_id: JobId, filename: str | None) -> str:
        return f"/uploads/{self.upload_name(job_id, filename)}"

    def processed_image_url(self, job_id: JobId) -> str:
        return f"/processed/{job_id}{PROCESSED_IMAGE_SUFFIX}"

    def download_url(self, job_id: JobId) -> str:
        return f"/download/{job_id}"

    # -- Writes -------------------------------------------------------------

    def save_upload(self, job_id: JobId, filename: str | None, data: bytes) -> Path:
        """Write the original upload once.

        Args:
            job_id: Identifier of the job.
            filename: Client-supplied filename (sanitised before use).
            data: Raw image bytes.

        Returns:
            Path of the stored upload.

        Raises:
            FileExistsError: If an upload already exists for this name.
            OSError: On any other filesystem failure.
        """
        path = self.upload_path(job_id, filename)
        self._write_once(path, data)
        logger.info("Stored upload for job %s at %s (%d bytes).", job_id, path, len(data))
        return path

    def save_processed_image(self, job_id: JobId, data: bytes) -> Path:
        """Write the AI-generated outline image once.

        Raises:
            FileExistsError: If a processed image already exists for this job.
            OSError: On any other filesystem failure.
        """
        path = self.processed_image_path(job_id)
        self._write_once(path, data)
        logger.info("Stored processed image for job %s at %s.", job_id, path)
        return path

    @staticmethod
    def _write_once(path: Path, data: bytes) -> None:
        # Mode "xb" fails if the file exists, so artifacts are never overwritten.
        with open(path, "xb") as handle:
            handle.write(data)

    # -- Reads --------------------------------------------------------------

    def find_pdf(self, job_id: JobId) -> Path | None:
        """Return the PDF path for *job_id* if rendering completed, else ``None``."""
        path = self.pdf_path(job_id)
        return path if path.is_file() else None

    # -- Expiry -------------------------------------------------------------

    def sweep_expired(self, max_age_seconds: float, now: float | None = None) -> list[Path]:
        """Delete artifacts whose modification time is older than the cutoff.

        Only regular files directly inside the two storage directories are
        considered.  Files that disappear or cannot be removed mid-sweep are
        logged and skipped so one bad file does not stop the sweep.

        Args:
            max_age_seconds: Files older than this many seconds are removed.
            now: Reference timestamp (defaults to the current time).

        Returns:
            Paths that were removed.
        """
        cutoff = (time.time() if now is None else now) - max_age_seconds
        removed: list[Path] = []

        for directory in (self.uploads_dir, self.processed_dir):
            for path in directory.iterdir():
                if not path.is_file():
                    continue
                try:
                    if path.stat().st_mtime < cutoff:
                        path.unlink()
                        removed.append(path)
                except FileNotFoundError:
                    continue
                except OSError:
                    logger.warning("Could not remove expired artifact %s.", path, exc_info=True)

        if removed:
            logger.info("Removed %d expired artifact(s).", len(removed))
        return removed
