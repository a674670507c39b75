"""Tests for document surfaces and the PDF baker."""

import fitz
import pytest

from inkmark.core.annotations.models import (
    ArrowAnnotation,
    CircleAnnotation,
    HighlightAnnotation,
    NoteAnnotation,
    PenAnnotation,
    RectangleAnnotation,
    StampAnnotation,
    StampType,
    StrikethroughAnnotation,
    TextAnnotation,
    UnderlineAnnotation,
)
from inkmark.core.document import AnnotationBaker, FixedSurface, PdfDocumentSurface
from inkmark.core.document.baker import hex_to_rgb
from inkmark.core.errors import MarkupError


@pytest.fixture
def pdf_bytes():
    doc = fitz.open()
    doc.new_page(width=612, height=792)
    doc.new_page(width=842, height=595)
    data = doc.tobytes()
    doc.close()
    return data


def annots_on(data, page_number):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return [annot.type[1] for annot in doc[page_number - 1].annots()]
    finally:
        doc.close()


def text_on(data, page_number):
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return doc[page_number - 1].get_text()
    finally:
        doc.close()


# Surfaces

def test_fixed_surface():
    surface = FixedSurface([(100, 200), (300, 400)])
    assert surface.page_count == 2
    assert surface.page_size(2) == (300, 400)
    assert surface.page_size(0) is None
    assert surface.page_size(3) is None


def test_pdf_surface_page_sizes(pdf_bytes):
    surface = PdfDocumentSurface()
    surface.load_bytes(pdf_bytes)

    assert surface.page_count == 2
    assert surface.page_size(1) == (612, 792)
    assert surface.page_size(2) == (842, 595)
    assert surface.page_size(3) is None
    surface.close()
    assert surface.page_count == 0


def test_pdf_surface_render_page(pdf_bytes):
    surface = PdfDocumentSurface()
    surface.load_bytes(pdf_bytes)

    pix = surface.render_page(1, zoom=0.5)
    assert (pix.width, pix.height) == (306, 396)
    assert pix.alpha == 0
    assert surface.render_page(7) is None
    surface.close()


def test_pdf_surface_load_failure(tmp_path):
    surface = PdfDocumentSurface()
    with pytest.raises(MarkupError):
        surface.load_pdf(str(tmp_path / "missing.pdf"))


def test_pdf_surface_load_from_file(tmp_path, pdf_bytes):
    path = tmp_path / "plan.pdf"
    path.write_bytes(pdf_bytes)

    surface = PdfDocumentSurface()
    surface.load_pdf(str(path))
    assert surface.file_path == str(path)
    assert surface.page_count == 2
    surface.close()


# Baker

def test_hex_to_rgb():
    assert hex_to_rgb("#FF0000") == (1.0, 0.0, 0.0)
    assert hex_to_rgb("#000000") == (0.0, 0.0, 0.0)


def test_bake_writes_pdf_annotations(pdf_bytes):
    annotations = [
        HighlightAnnotation(x=50, y=50, width=100, height=20),
        UnderlineAnnotation(x=50, y=100, width=100),
        StrikethroughAnnotation(x=50, y=150, width=100),
        PenAnnotation(points=[(10, 10), (40, 60), (80, 20)]),
        RectangleAnnotation(x=200, y=200, width=80, height=40, fill_color="#00FF00",
                            fill_opacity=0.5),
        CircleAnnotation(center_x=300, center_y=300, radius=25),
        NoteAnnotation(x=400, y=400, text="Check this dimension", title="Review"),
    ]

    baked = AnnotationBaker(pdf_bytes).bake(annotations)

    assert annots_on(baked, 1) == [
        "Highlight", "Underline", "StrikeOut", "Ink", "Square", "Circle", "Text",
    ]
    assert annots_on(baked, 2) == []


def test_bake_draws_text_and_stamps_into_page_content(pdf_bytes):
    annotations = [
        TextAnnotation(x=72, y=72, text="Verify clearance\nat grid B", font_size=12),
        StampAnnotation(x=300, y=300, stamp_type=StampType.APPROVED, width=120, height=50),
        ArrowAnnotation(start_x=10, start_y=10, end_x=100, end_y=100),
    ]

    baked = AnnotationBaker(pdf_bytes).bake(annotations)

    text = text_on(baked, 1)
    assert "Verify clearance" in text
    assert "at grid B" in text
    assert "APPROVED" in text
    assert annots_on(baked, 1) == []


def test_bake_uses_annotation_pages(pdf_bytes):
    baked = AnnotationBaker(pdf_bytes).bake([
        RectangleAnnotation(x=10, y=10, width=20, height=20, page=2),
    ])
    assert annots_on(baked, 1) == []
    assert annots_on(baked, 2) == ["Square"]


def test_bake_skips_missing_pages(pdf_bytes):
    baked = AnnotationBaker(pdf_bytes).bake([
        RectangleAnnotation(x=10, y=10, width=20, height=20, page=5),
        RectangleAnnotation(x=10, y=10, width=20, height=20, page=1),
    ])
    assert annots_on(baked, 1) == ["Square"]


def test_bake_leaves_source_untouched(tmp_path, pdf_bytes):
    path = tmp_path / "plan.pdf"
    path.write_bytes(pdf_bytes)

    AnnotationBaker(str(path)).bake([RectangleAnnotation(x=1, y=1, width=5, height=5)])

    assert annots_on(path.read_bytes(), 1) == []


def test_export_writes_file(tmp_path, pdf_bytes):
    output = tmp_path / "annotated.pdf"
    AnnotationBaker(pdf_bytes).export([CircleAnnotation(center_x=50, center_y=50, radius=10)],
                                      str(output))
    assert annots_on(output.read_bytes(), 1) == ["Circle"]


def test_bake_unreadable_source():
    with pytest.raises(MarkupError):
        AnnotationBaker(b"not a pdf").bake([])


@pytest.mark.asyncio
async def test_baker_is_awaitable(pdf_bytes):
    baked = await AnnotationBaker(pdf_bytes)([RectangleAnnotation(x=1, y=1, width=5, height=5)])
    assert baked.startswith(b"%PDF")
