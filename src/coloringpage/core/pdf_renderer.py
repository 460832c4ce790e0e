"""Printable PDF rendering for coloring pages.

The processed image is placed on a single A4 portrait page:

- a uniform margin on the top, left and right edges
- a taller band at the bottom reserved for the caption
- the image scaled to fit the remaining content area with its aspect ratio
  preserved, never enlarged past its native size (one pixel per point),
  horizontally centred and aligned to the top margin
- a short title centred in the top margin, above the image
- a small gray caption centred in the bottom band

Transparent images are flattened onto opaque white first so printers never
see a checkerboard or a black background.

Layout maths lives in :func:`compute_layout` (pure, unit-testable); drawing
lives in :func:`render_coloring_page`.

Page geometry (points, origin bottom-left as in ReportLab)::

    +---------------------------+  841.89
    |     MARGIN (title)        |
    |   +-------------------+   |
    |   |                   |   |
    |   |   content area    |   |
    |   |                   |   |
    |   +-------------------+   |
    |       CAPTION_BAND        |
    +---------------------------+  0
    0                      595.28
"""

from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from PIL import Image
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from coloringpage.core.results import RenderError

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 50.0
CAPTION_BAND = 100.0

CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
CONTENT_HEIGHT = PAGE_HEIGHT - MARGIN - CAPTION_BAND

DOCUMENT_TITLE = "AI Generated Coloring Page"
CAPTION_TEXT = "Generated by AI Coloring Page Generator"
CAPTION_FONT = "Helvetica"
CAPTION_FONT_SIZE = 10
CAPTION_GRAY = 0.5
TITLE_FONT = "Helvetica-Bold"
TITLE_FONT_SIZE = 14


@dataclass(frozen=True)
class PageLayout:
    """Where and how large the image is drawn on the page.

    Attributes:
        x: Left edge of the image in points.
        y: Bottom edge of the image in points (ReportLab coordinates).
        width: Drawn width in points.
        height: Drawn height in points.
        pixel_width: Width the bitmap is resampled to before embedding.
        pixel_height: Height the bitmap is resampled to before embedding.
        scale: Factor applied to the source dimensions (at most 1.0).
    """

    x: float
    y: float
    width: float
    height: float
    pixel_width: int
    pixel_height: int
    scale: float


def compute_layout(width_px: int, height_px: int) -> PageLayout:
    """Fit an image of the given pixel size into the content area.

    Args:
        width_px: Source image width in pixels.
        height_px: Source image height in pixels.

    Returns:
        The resulting :class:`PageLayout`.

    Raises:
        ValueError: If either dimension is not positive.
    """
    if width_px <= 0 or height_px <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width_px}x{height_px}")

    scale = min(CONTENT_WIDTH / width_px, CONTENT_HEIGHT / height_px, 1.0)
    width = width_px * scale
    height = height_px * scale

    return PageLayout(
        x=(PAGE_WIDTH - width) / 2,
        y=PAGE_HEIGHT - MARGIN - height,
        width=width,
        height=height,
        pixel_width=max(1, round(width)),
        pixel_height=max(1, round(height)),
        scale=scale,
    )


def _flatten_on_white(image: Image.Image) -> Image.Image:
    """Composite *image* over an opaque white background and return RGB."""
    rgba = image.convert("RGBA")
    background = Image.new("RGB", rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel("A"))
    return background


def render_coloring_page(data: bytes, pdf_path: Path) -> Path:
    """Render the processed image into a single-page A4 PDF.

    The document is written to a ``.part`` sibling and renamed into place
    only after ReportLab has finished writing it, so *pdf_path* exists only
    for complete documents.  This function is synchronous; the pipeline
    runs it in a worker thread.

    Args:
        data: Encoded image bytes (PNG, JPEG or anything Pillow decodes).
        pdf_path: Final location of the PDF.

    Returns:
        *pdf_path*.

    Raises:
        RenderError: If the image cannot be decoded, the PDF already exists,
            or the file cannot be written.
    """
    pdf_path = Path(pdf_path)
    if pdf_path.exists():
        raise RenderError(f"PDF already exists: {pdf_path.name}")

    try:
        with Image.open(io.BytesIO(data)) as source:
            source.load()
            flattened = _flatten_on_white(source)
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise RenderError(f"Could not decode processed image: {e}") from e

    layout = compute_layout(*flattened.size)
    if (layout.pixel_width, layout.pixel_height) != flattened.size:
        flattened = flattened.resize(
            (layout.pixel_width, layout.pixel_height),
            Image.Resampling.LANCZOS,
        )

    logger.info(
        "Rendering PDF %s: image %dx%d px drawn at %.1fx%.1f pt (scale %.3f).",
        pdf_path.name,
        flattened.width,
        flattened.height,
        layout.width,
        layout.height,
        layout.scale,
    )

    tmp_path = pdf_path.with_name(pdf_path.name + ".part")
    try:
        pdf = canvas.Canvas(str(tmp_path), pagesize=A4)
        pdf.setTitle(DOCUMENT_TITLE)
        pdf.setSubject(CAPTION_TEXT)

        pdf.drawImage(
            ImageReader(flattened),
            layout.x,
            layout.y,
            width=layout.width,
            height=layout.height,
        )

        # Baseline sits mid-margin so the title never overlaps the image.
        pdf.setFont(TITLE_FONT, TITLE_FONT_SIZE)
        pdf.drawCentredString(
            PAGE_WIDTH / 2,
            PAGE_HEIGHT - (MARGIN + TITLE_FONT_SIZE) / 2,
            DOCUMENT_TITLE,
        )

        pdf.setFont(CAPTION_FONT, CAPTION_FONT_SIZE)
        pdf.setFillGray(CAPTION_GRAY)
        pdf.drawCentredString(
            PAGE_WIDTH / 2,
            (CAPTION_BAND - CAPTION_FONT_SIZE) / 2,
            CAPTION_TEXT,
        )

        pdf.showPage()
        pdf.save()
        os.replace(tmp_path, pdf_path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise RenderError(f"Could not write PDF: {e}") from e

    logger.info("PDF generated: %s", pdf_path)
    return pdf_path
