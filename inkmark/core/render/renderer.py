"""
Backend-independent rendering and hit-testing of the visible annotation set.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from ..annotations.layers import LayerIndex
from ..annotations.models import (
    Annotation,
    ArrowAnnotation,
    Bounds,
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
from ..annotations.store import AnnotationStore
from .hit_test import topmost_hit

logger = logging.getLogger(__name__)

# Label and color of each stamp glyph
STAMP_STYLES: Dict[StampType, Tuple[str, str]] = {
    StampType.APPROVED: ("APPROVED", "#4CAF50"),
    StampType.REVISE: ("REVISE", "#FFC107"),
    StampType.REJECTED: ("REJECTED", "#F44336"),
    StampType.REVIEWED: ("REVIEWED", "#2196F3"),
    StampType.DRAFT: ("DRAFT", "#9E9E9E"),
}


class Renderer(ABC):
    """
    Drawing backend. One method per annotation variant.

    Coordinates passed to the draw methods are unscaled document coordinates;
    backends apply the zoom given to ``begin_frame`` as a transform.
    """

    def begin_frame(self, page: int, zoom: float) -> None:
        pass

    def end_frame(self) -> None:
        pass

    @abstractmethod
    def draw_highlight(self, annotation: HighlightAnnotation) -> None: ...

    @abstractmethod
    def draw_underline(self, annotation: UnderlineAnnotation) -> None: ...

    @abstractmethod
    def draw_strikethrough(self, annotation: StrikethroughAnnotation) -> None: ...

    @abstractmethod
    def draw_pen(self, annotation: PenAnnotation) -> None: ...

    @abstractmethod
    def draw_rectangle(self, annotation: RectangleAnnotation) -> None: ...

    @abstractmethod
    def draw_circle(self, annotation: CircleAnnotation) -> None: ...

    @abstractmethod
    def draw_arrow(self, annotation: ArrowAnnotation) -> None: ...

    @abstractmethod
    def draw_text(self, annotation: TextAnnotation) -> None: ...

    @abstractmethod
    def draw_stamp(self, annotation: StampAnnotation) -> None: ...

    @abstractmethod
    def draw_note(self, annotation: NoteAnnotation) -> None: ...

    def draw_preview(self, annotation: Annotation) -> None:
        """Draw the in-progress gesture. Defaults to the regular routine."""
        annotation.accept(self)

    def draw_selection(self, bounds: Bounds) -> None:
        """Outline the selected annotation."""


class RenderEngine:
    """Projects the visible subset of the store onto a renderer."""

    def __init__(self, store: AnnotationStore, layers: LayerIndex,
                 hit_threshold_px: float = 6.0, note_hit_radius: float = 12.0):
        self.store = store
        self.layers = layers
        self.hit_threshold_px = hit_threshold_px
        self.note_hit_radius = note_hit_radius

    def visible_annotations(self, page: int) -> List[Annotation]:
        """Annotations on the page whose layer is visible, in creation order."""
        return self.layers.visible_subset(self.store.for_page(page))

    def render(self, renderer: Renderer, page: int, zoom: float = 1.0,
               preview: Optional[Annotation] = None,
               selected_id: Optional[str] = None) -> int:
        """
        Draw one page.

        Earlier annotations are drawn first so later ones end up on top.

        Args:
            renderer: Drawing backend
            page: 1-based page number
            zoom: Zoom factor applied by the backend
            preview: Uncommitted gesture preview, drawn last
            selected_id: Id of the selected annotation to outline

        Returns:
            Number of committed annotations drawn
        """
        visible = self.visible_annotations(page)
        renderer.begin_frame(page, zoom)
        try:
            for annotation in visible:
                annotation.accept(renderer)

            selected = next((a for a in visible if a.id == selected_id), None)
            if selected is not None:
                renderer.draw_selection(selected.bounds())

            if preview is not None and preview.page == page:
                renderer.draw_preview(preview)
        finally:
            renderer.end_frame()
        return len(visible)

    def hit_test(self, page: int, x: float, y: float, zoom: float = 1.0) -> Optional[Annotation]:
        """
        Find the topmost visible annotation under a document-space point.

        Args:
            page: 1-based page number
            x, y: Point in document coordinates
            zoom: Current zoom factor; the pixel threshold shrinks as it grows

        Returns:
            The hit annotation, or None
        """
        zoom = zoom if zoom > 0 else 1.0
        return topmost_hit(
            self.visible_annotations(page), x, y,
            tolerance=self.hit_threshold_px / zoom,
            point_radius=self.note_hit_radius / zoom,
        )

    @staticmethod
    def to_document(x: float, y: float, zoom: float) -> Tuple[float, float]:
        """Convert screen coordinates to document coordinates."""
        return x / zoom, y / zoom

    @staticmethod
    def to_screen(x: float, y: float, zoom: float) -> Tuple[float, float]:
        """Convert document coordinates to screen coordinates."""
        return x * zoom, y * zoom
