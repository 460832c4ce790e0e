"""Pydantic response models for the Coloring Page Generator API.

FastAPI uses these for serialisation and OpenAPI documentation.  Field
aliases keep the camelCase JSON keys the browser client expects.

Models
------
UploadResponse
    Success payload for ``POST /upload-image``.
ErrorResponse
    Payload of every error response (400, 404, 500).
HealthResponse
    Payload of ``GET /health``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class UploadResponse(BaseModel):
    """Response body for a successfully processed upload.

    Attributes:
        success: Always ``True``.
        original_image: Server-relative URL of the stored upload.
        processed_image: Server-relative URL of the outline image.
        pdf_download: Server-relative URL of the PDF download route.
        message: Human-readable status message.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool = Field(default=True)
    original_image: str = Field(
        ...,
        alias="originalImage",
        description="URL of the original upload, e.g. '/uploads/<id>-photo.jpg'.",
    )
    processed_image: str = Field(
        ...,
        alias="processedImage",
        description="URL of the processed image, e.g. '/processed/<id>-processed.png'.",
    )
    pdf_download: str = Field(
        ...,
        alias="pdfDownload",
        description="URL that downloads the PDF, e.g. '/download/<id>'.",
    )
    message: str = Field(default="Image processed successfully!")


class ErrorResponse(BaseModel):
    """Response body for every error.

    Attributes:
        error: Short error summary.
        details: Optional message with more context.  Never contains a
            traceback.
    """

    error: str = Field(..., description="Short error summary.")
    details: str | None = Field(default=None, description="Optional additional context.")


class HealthResponse(BaseModel):
    """Response body for the liveness probe."""

    status: str = Field(default="OK")
    message: str = Field(default="AI Coloring Page Generator is running!")
