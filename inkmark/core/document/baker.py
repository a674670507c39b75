"""
Burns annotations into a copy of the source PDF with PyMuPDF.
"""
import asyncio
import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple, Union

import fitz  # PyMuPDF

from ..annotations.models import (
    Annotation,
    ArrowAnnotation,
    CircleAnnotation,
    HighlightAnnotation,
    NoteAnnotation,
    PenAnnotation,
    RectangleAnnotation,
    StampAnnotation,
    StrikethroughAnnotation,
    TextAnnotation,
    UnderlineAnnotation,
)
from ..errors import MarkupError
from ..render.renderer import STAMP_STYLES, Renderer

logger = logging.getLogger(__name__)

Color = Tuple[float, float, float]


def hex_to_rgb(value: str) -> Color:
    """Convert ``#RRGGBB`` to the 0-1 float triple PyMuPDF expects."""
    value = value.lstrip('#')
    if len(value) != 6:
        raise ValueError(f"Invalid color: #{value}")
    return tuple(int(value[i:i + 2], 16) / 255.0 for i in (0, 2, 4))


class PdfPageWriter(Renderer):
    """Renderer that writes each annotation onto a fitz page."""

    def __init__(self, page: fitz.Page):
        self.page = page

    def draw_highlight(self, annotation: HighlightAnnotation) -> None:
        x0, y0, x1, y1 = annotation.bounds()
        rect = fitz.Rect(x0, y0, x1, y1)
        if rect.is_empty:
            return
        highlight = self.page.add_highlight_annot(rect)
        highlight.set_colors(stroke=hex_to_rgb(annotation.color))
        highlight.set_opacity(annotation.opacity)
        highlight.update()

    def draw_underline(self, annotation: UnderlineAnnotation) -> None:
        # Text-markup annots draw the line at the bottom edge of the rect
        height = max(annotation.thickness * 4, 8.0)
        rect = fitz.Rect(annotation.x, annotation.y - height,
                         annotation.x + annotation.width, annotation.y)
        if rect.is_empty:
            return
        underline = self.page.add_underline_annot(rect)
        underline.set_colors(stroke=hex_to_rgb(annotation.color))
        underline.update()

    def draw_strikethrough(self, annotation: StrikethroughAnnotation) -> None:
        half = max(annotation.thickness * 2, 4.0)
        rect = fitz.Rect(annotation.x, annotation.y - half,
                         annotation.x + annotation.width, annotation.y + half)
        if rect.is_empty:
            return
        strike = self.page.add_strikeout_annot(rect)
        strike.set_colors(stroke=hex_to_rgb(annotation.color))
        strike.update()

    def draw_pen(self, annotation: PenAnnotation) -> None:
        # Each inner list is a separate stroke
        ink_list = [[(float(x), float(y)) for x, y in annotation.points]]
        ink = self.page.add_ink_annot(ink_list)
        ink.set_colors(stroke=hex_to_rgb(annotation.color))
        ink.set_border(width=annotation.stroke_width)
        ink.update()

    def draw_rectangle(self, annotation: RectangleAnnotation) -> None:
        x0, y0, x1, y1 = annotation.bounds()
        square = self.page.add_rect_annot(fitz.Rect(x0, y0, x1, y1))
        self._style_shape(square, annotation.color, annotation.stroke_width,
                          annotation.fill_color, annotation.fill_opacity)

    def draw_circle(self, annotation: CircleAnnotation) -> None:
        x0, y0, x1, y1 = annotation.bounds()
        circle = self.page.add_circle_annot(fitz.Rect(x0, y0, x1, y1))
        self._style_shape(circle, annotation.color, annotation.stroke_width,
                          annotation.fill_color, annotation.fill_opacity)

    def draw_arrow(self, annotation: ArrowAnnotation) -> None:
        length = annotation.length
        if length == 0:
            return
        color = hex_to_rgb(annotation.color)
        start = fitz.Point(annotation.start_x, annotation.start_y)
        end = fitz.Point(annotation.end_x, annotation.end_y)
        size = annotation.arrow_head_size
        dx = (annotation.end_x - annotation.start_x) / length
        dy = (annotation.end_y - annotation.start_y) / length
        angle = math.atan2(dy, dx)

        # Shorten the main line so it stops before the arrowhead
        line_end = fitz.Point(end.x - dx * size * 0.5, end.y - dy * size * 0.5)
        head_1 = fitz.Point(end.x - size * math.cos(angle - math.pi / 6),
                            end.y - size * math.sin(angle - math.pi / 6))
        head_2 = fitz.Point(end.x - size * math.cos(angle + math.pi / 6),
                            end.y - size * math.sin(angle + math.pi / 6))

        shape = self.page.new_shape()
        shape.draw_line(start, line_end)
        shape.draw_line(head_1, end)
        shape.draw_line(head_2, end)
        shape.finish(color=color, width=annotation.stroke_width)
        shape.commit()

    def draw_text(self, annotation: TextAnnotation) -> None:
        # insert_text positions by baseline; (x, y) is the top-left corner
        baseline = annotation.y + annotation.font_size
        for line in annotation.text.splitlines():
            self.page.insert_text(
                fitz.Point(annotation.x, baseline), line,
                fontsize=annotation.font_size,
                color=hex_to_rgb(annotation.color),
            )
            baseline += annotation.font_size * 1.2

    def draw_stamp(self, annotation: StampAnnotation) -> None:
        label, color_hex = STAMP_STYLES[annotation.stamp_type]
        color = hex_to_rgb(color_hex)
        x0, y0, x1, y1 = annotation.bounds()
        rect = fitz.Rect(x0, y0, x1, y1)
        self.page.draw_rect(rect, color=color, width=3)
        font_size = min(14.0, annotation.width / max(len(label), 1) * 1.6)
        text_rect = fitz.Rect(x0, y0 + (annotation.height - font_size) / 2 - 2, x1, y1)
        self.page.insert_textbox(text_rect, label, fontsize=font_size, color=color,
                                 align=fitz.TEXT_ALIGN_CENTER)

    def draw_note(self, annotation: NoteAnnotation) -> None:
        note = self.page.add_text_annot(fitz.Point(annotation.x, annotation.y),
                                        annotation.text, icon="Note")
        note.set_colors(stroke=hex_to_rgb(annotation.color))
        if annotation.title:
            note.set_info(title=annotation.title)
        note.update()

    @staticmethod
    def _style_shape(annot: fitz.Annot, color: str, width: float,
                     fill_color: Optional[str], fill_opacity: Optional[float]) -> None:
        if fill_color:
            annot.set_colors(stroke=hex_to_rgb(color), fill=hex_to_rgb(fill_color))
            if fill_opacity is not None:
                annot.set_opacity(fill_opacity)
        else:
            annot.set_colors(stroke=hex_to_rgb(color))
        annot.set_border(width=width)
        annot.update()


class AnnotationBaker:
    """
    Produces the baked document artifact handed to persistence endpoints.

    Instances are awaitable callables so a session can use them directly as
    its bake step.
    """

    def __init__(self, source: Union[str, bytes]):
        """
        Args:
            source: Path of the source PDF, or its bytes
        """
        self.source = source

    def _open(self) -> fitz.Document:
        try:
            if isinstance(self.source, bytes):
                return fitz.open(stream=self.source, filetype="pdf")
            return fitz.open(self.source)
        except (RuntimeError, ValueError, OSError) as e:
            raise MarkupError(f"Failed to open source document: {e}") from e

    def bake(self, annotations: Iterable[Annotation]) -> bytes:
        """
        Write annotations into a fresh copy of the source document.

        Annotations on pages the document does not have are skipped; so is
        any single annotation PyMuPDF refuses.

        Returns:
            The annotated PDF as bytes
        """
        doc = self._open()
        try:
            self._write(doc, annotations)
            return doc.tobytes(garbage=4, deflate=True)
        finally:
            doc.close()

    def export(self, annotations: Iterable[Annotation], output_path: str) -> None:
        """Save the annotated copy to a file."""
        doc = self._open()
        try:
            self._write(doc, annotations)
            doc.save(output_path, garbage=4, deflate=True)
        finally:
            doc.close()
        logger.info("Exported annotated PDF to %s", output_path)

    async def __call__(self, annotations: List[Annotation]) -> bytes:
        return await asyncio.to_thread(self.bake, annotations)

    @staticmethod
    def _write(doc: fitz.Document, annotations: Iterable[Annotation]) -> int:
        # Group annotations by page for efficiency
        by_page: Dict[int, List[Annotation]] = {}
        for annotation in annotations:
            by_page.setdefault(annotation.page, []).append(annotation)

        written = 0
        for page_number, page_annotations in sorted(by_page.items()):
            if page_number > len(doc):
                logger.warning("Skipping %d annotations on missing page %d",
                               len(page_annotations), page_number)
                continue
            writer = PdfPageWriter(doc[page_number - 1])
            for annotation in page_annotations:
                try:
                    annotation.accept(writer)
                    written += 1
                except (RuntimeError, ValueError) as e:
                    logger.warning("Failed to bake annotation %s on page %d: %s",
                                   annotation.id, page_number, e)
        return written
