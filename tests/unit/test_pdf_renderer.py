"""Tests for coloringpage.core.pdf_renderer — A4 layout and PDF output.

Tests cover:
- Layout maths: fit, aspect ratio, no upscaling, centring, top alignment.
- Flattening of transparent images onto white.
- The rendered PDF: one A4 page, image inside the content area, caption.
- Failure modes: undecodable input, existing output, unwritable location.

Rendered PDFs are inspected with pdfplumber.
"""

from __future__ import annotations

import pdfplumber
import pytest
from conftest import make_image_bytes
from PIL import Image

from coloringpage.core.pdf_renderer import (
    CAPTION_BAND,
    CAPTION_TEXT,
    CONTENT_HEIGHT,
    CONTENT_WIDTH,
    DOCUMENT_TITLE,
    MARGIN,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    _flatten_on_white,
    compute_layout,
    render_coloring_page,
)
from coloringpage.core.results import RenderError

A4_WIDTH_PT = 595.2756
A4_HEIGHT_PT = 841.8898


@pytest.mark.unit
class TestGeometry:
    def test_page_is_a4_portrait(self):
        assert PAGE_WIDTH == pytest.approx(A4_WIDTH_PT, abs=0.01)
        assert PAGE_HEIGHT == pytest.approx(A4_HEIGHT_PT, abs=0.01)

    def test_caption_band_is_larger_than_margin(self):
        assert CAPTION_BAND > MARGIN
        assert CONTENT_WIDTH == pytest.approx(PAGE_WIDTH - 2 * MARGIN)
        assert CONTENT_HEIGHT == pytest.approx(PAGE_HEIGHT - MARGIN - CAPTION_BAND)


@pytest.mark.unit
class TestComputeLayout:
    def test_large_square_is_scaled_to_content_width(self):
        layout = compute_layout(1024, 1024)
        assert layout.width == pytest.approx(CONTENT_WIDTH)
        assert layout.height == pytest.approx(CONTENT_WIDTH)
        assert layout.scale < 1.0

    def test_small_image_is_not_upscaled(self):
        layout = compute_layout(200, 100)
        assert layout.scale == 1.0
        assert (layout.width, layout.height) == (200, 100)
        assert (layout.pixel_width, layout.pixel_height) == (200, 100)

    def test_tall_image_is_bounded_by_height(self):
        layout = compute_layout(1000, 3000)
        assert layout.height == pytest.approx(CONTENT_HEIGHT)
        assert layout.width <= CONTENT_WIDTH

    @pytest.mark.parametrize("size", [(500, 500), (1792, 1024), (1024, 1792), (300, 2000), (4000, 10)])
    def test_fits_and_preserves_aspect_ratio(self, size):
        width_px, height_px = size
        layout = compute_layout(width_px, height_px)

        assert layout.width <= CONTENT_WIDTH + 1e-6
        assert layout.height <= CONTENT_HEIGHT + 1e-6
        assert layout.width / layout.height == pytest.approx(width_px / height_px)

    def test_horizontally_centred_and_top_aligned(self):
        layout = compute_layout(200, 100)
        assert layout.x == pytest.approx((PAGE_WIDTH - 200) / 2)
        assert layout.y + layout.height == pytest.approx(PAGE_HEIGHT - MARGIN)

    @pytest.mark.parametrize("size", [(0, 10), (10, 0), (-5, 5)])
    def test_rejects_non_positive_dimensions(self, size):
        with pytest.raises(ValueError):
            compute_layout(*size)


@pytest.mark.unit
class TestFlattenOnWhite:
    def test_transparent_pixels_become_white(self):
        transparent = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
        flattened = _flatten_on_white(transparent)
        assert flattened.mode == "RGB"
        assert flattened.getpixel((0, 0)) == (255, 255, 255)

    def test_opaque_pixels_are_kept(self):
        opaque = Image.new("RGBA", (4, 4), (0, 0, 0, 255))
        assert _flatten_on_white(opaque).getpixel((1, 1)) == (0, 0, 0)


@pytest.mark.unit
class TestRenderColoringPage:
    def test_renders_single_a4_page(self, temp_dir):
        pdf_path = temp_dir / "job-coloring-page.pdf"

        result = render_coloring_page(make_image_bytes((1024, 1024), "PNG"), pdf_path)

        assert result == pdf_path
        assert pdf_path.stat().st_size > 0
        with pdfplumber.open(pdf_path) as pdf:
            assert len(pdf.pages) == 1
            page = pdf.pages[0]
            assert float(page.width) == pytest.approx(A4_WIDTH_PT, abs=0.01)
            assert float(page.height) == pytest.approx(A4_HEIGHT_PT, abs=0.01)

    def test_image_inside_content_area_with_ratio(self, temp_dir):
        pdf_path = temp_dir / "wide.pdf"
        render_coloring_page(make_image_bytes((1600, 900), "JPEG"), pdf_path)

        with pdfplumber.open(pdf_path) as pdf:
            page = pdf.pages[0]
            assert len(page.images) == 1
            image = page.images[0]
            width = float(image["x1"] - image["x0"])
            height = float(image["bottom"] - image["top"])

            assert width <= CONTENT_WIDTH + 0.5
            assert height <= CONTENT_HEIGHT + 0.5
            assert width / height == pytest.approx(1600 / 900, rel=1e-3)
            assert float(image["top"]) == pytest.approx(MARGIN, abs=0.5)
            assert float(image["x0"] + image["x1"]) / 2 == pytest.approx(PAGE_WIDTH / 2, abs=0.5)

    def test_small_image_keeps_native_size(self, temp_dir):
        pdf_path = temp_dir / "small.pdf"
        render_coloring_page(make_image_bytes((120, 80), "PNG"), pdf_path)

        with pdfplumber.open(pdf_path) as pdf:
            image = pdf.pages[0].images[0]
            assert float(image["x1"] - image["x0"]) == pytest.approx(120, abs=0.5)
            assert float(image["bottom"] - image["top"]) == pytest.approx(80, abs=0.5)

    def test_caption_in_bottom_band(self, temp_dir):
        pdf_path = temp_dir / "caption.pdf"
        render_coloring_page(make_image_bytes((512, 512), "PNG"), pdf_path)

        with pdfplumber.open(pdf_path) as pdf:
            page = pdf.pages[0]
            assert CAPTION_TEXT in (page.extract_text() or "")
            caption_words = [w for w in page.extract_words() if w["text"] == "by"]
            assert caption_words
            assert float(caption_words[0]["top"]) > PAGE_HEIGHT - CAPTION_BAND

    def test_title_in_top_margin_above_image(self, temp_dir):
        pdf_path = temp_dir / "title.pdf"
        render_coloring_page(make_image_bytes((1024, 1024), "PNG"), pdf_path)

        with pdfplumber.open(pdf_path) as pdf:
            page = pdf.pages[0]
            assert DOCUMENT_TITLE in (page.extract_text() or "")
            title_words = [w for w in page.extract_words() if w["text"] == "Coloring"]
            image = page.images[0]

            assert float(title_words[0]["top"]) > 0
            assert float(title_words[0]["bottom"]) < MARGIN
            assert float(image["top"]) == pytest.approx(MARGIN, abs=0.5)

    def test_transparent_png_is_accepted(self, temp_dir):
        pdf_path = temp_dir / "transparent.pdf"
        data = make_image_bytes((300, 300), "PNG", mode="RGBA", color=(0, 0, 0, 0))
        render_coloring_page(data, pdf_path)
        assert pdf_path.exists()

    def test_undecodable_input_fails_without_output(self, temp_dir):
        pdf_path = temp_dir / "broken.pdf"

        with pytest.raises(RenderError, match="decode"):
            render_coloring_page(b"definitely not an image", pdf_path)

        assert not pdf_path.exists()
        assert list(temp_dir.iterdir()) == []

    def test_existing_pdf_is_not_overwritten(self, temp_dir):
        pdf_path = temp_dir / "existing.pdf"
        pdf_path.write_bytes(b"original")

        with pytest.raises(RenderError, match="already exists"):
            render_coloring_page(make_image_bytes((64, 64), "PNG"), pdf_path)

        assert pdf_path.read_bytes() == b"original"

    def test_unwritable_location_fails_cleanly(self, temp_dir):
        pdf_path = temp_dir / "missing-dir" / "out.pdf"

        with pytest.raises(RenderError, match="Could not write"):
            render_coloring_page(make_image_bytes((64, 64), "PNG"), pdf_path)

        assert not pdf_path.exists()
