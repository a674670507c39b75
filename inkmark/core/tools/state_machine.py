"""
Tool state machine: turns pointer gestures into committed annotations.
"""
import logging
import math
from typing import Callable, Dict, Optional, Tuple

from ..annotations.layers import LayerIndex
from ..annotations.models import (
    Annotation,
    ArrowAnnotation,
    CircleAnnotation,
    HighlightAnnotation,
    NoteAnnotation,
    PenAnnotation,
    Point,
    RectangleAnnotation,
    StampAnnotation,
    StampType,
    StrikethroughAnnotation,
    TextAnnotation,
    UnderlineAnnotation,
    UserPermissions,
    normalize_box,
    utc_now,
)
from ..annotations.store import AnnotationStore
from ..annotations.undo_redo import HistoryManager
from ..render.renderer import RenderEngine
from .models import DRAWING_TOOLS, TOOLS_BY_MODE, ToolMode, ToolSettings, ToolState

logger = logging.getLogger(__name__)

PageSizeLookup = Callable[[int], Optional[Tuple[float, float]]]


class ToolStateMachine:
    """
    Owns the active tool and the gesture in progress.

    Every store mutation goes through ``_commit``: a history snapshot of the
    current list is pushed first, then the store is mutated, then the
    ``on_committed`` hook runs (the session uses it to trigger autosave).
    """

    def __init__(self, store: AnnotationStore, history: HistoryManager,
                 layers: LayerIndex, engine: RenderEngine,
                 permissions: Optional[UserPermissions] = None,
                 user: str = "",
                 settings: Optional[ToolSettings] = None,
                 page_size: Optional[PageSizeLookup] = None,
                 on_committed: Optional[Callable[[], None]] = None):
        self.store = store
        self.history = history
        self.layers = layers
        self.engine = engine
        self.permissions = permissions or UserPermissions()
        self.user = user
        self.settings = settings or ToolSettings()
        self.page_size = page_size
        self.on_committed = on_committed

        self.page = 1
        self.zoom = 1.0
        self.selected_id: Optional[str] = None
        self.pending_anchor: Optional[Tuple[int, Point]] = None

        self._active_tool = ToolMode.SELECT
        self._state = ToolState.SELECT
        self._start: Optional[Point] = None
        self._current: Optional[Point] = None
        self._points: list = []
        self._drag_id: Optional[str] = None

    @property
    def active_tool(self) -> ToolMode:
        return self._active_tool

    @property
    def state(self) -> ToolState:
        return self._state

    @property
    def selected(self) -> Optional[Annotation]:
        if self.selected_id is None:
            return None
        return self.store.get(self.selected_id)

    # Tool selection

    def select_tool(self, tool: ToolMode) -> bool:
        """
        Make a tool active.

        Returns:
            False if the tool needs edit rights the user does not have
        """
        spec = TOOLS_BY_MODE[tool]
        if spec.requires_edit and not self.permissions.may_edit:
            logger.info("Rejected tool %s: user cannot edit", tool.value)
            return False

        if self._state != ToolState.SELECT:
            self.cancel()
        self._active_tool = tool
        self.pending_anchor = None
        if tool != ToolMode.SELECT and tool != ToolMode.MOVE:
            self.selected_id = None
        return True

    # Pointer gestures

    def pointer_down(self, x: float, y: float) -> bool:
        """
        Start a gesture at a document-space point.

        Returns:
            True if the event was consumed
        """
        point = self._clamp(x, y)
        tool = self._active_tool

        if tool == ToolMode.SELECT:
            hit = self.engine.hit_test(self.page, point[0], point[1], self.zoom)
            self.selected_id = hit.id if hit else None
            return True

        if tool == ToolMode.MOVE:
            hit = self.engine.hit_test(self.page, point[0], point[1], self.zoom)
            self.selected_id = hit.id if hit else None
            if hit is None or not self._can_edit_annotation(hit):
                return hit is not None
            self._state = ToolState.MOVE
            self._drag_id = hit.id
            self._start = self._current = point
            return True

        if tool == ToolMode.ERASER:
            hit = self.engine.hit_test(self.page, point[0], point[1], self.zoom)
            if hit is not None:
                self.delete_annotation(hit.id)
            return True

        if tool in DRAWING_TOOLS:
            if not self._can_draw():
                return False
            self._state = ToolState.DRAWING
            self._start = self._current = point
            self._points = [point] if tool == ToolMode.PEN else []
            return True

        return False

    def pointer_move(self, x: float, y: float) -> bool:
        """
        Track the pointer while a gesture is in progress.

        Never mutates the store.

        Returns:
            True if a redraw of the preview is needed
        """
        if self._state == ToolState.SELECT:
            return False

        point = self._clamp(x, y)
        self._current = point
        if self._state == ToolState.DRAWING and self._active_tool == ToolMode.PEN:
            self._points.append(point)
        return True

    def pointer_up(self, x: float, y: float) -> Optional[Annotation]:
        """
        Finish the gesture.

        Returns:
            The created or moved annotation, or None if nothing was committed
        """
        if self._state == ToolState.SELECT:
            return None

        end = self._clamp(x, y)
        state, start = self._state, self._start
        result: Optional[Annotation] = None

        try:
            if state == ToolState.MOVE:
                result = self._finish_move(start, end)
            elif self._active_tool in (ToolMode.TEXT, ToolMode.NOTE):
                self.pending_anchor = (self.page, start)
            else:
                annotation = self._build_annotation(start, end)
                if annotation is not None:
                    self._commit(lambda: self.store.add(annotation))
                    result = annotation
        finally:
            self._reset_gesture()

        return result

    def cancel(self) -> None:
        """Abandon the gesture in progress without committing anything."""
        self._reset_gesture()
        self.pending_anchor = None

    def preview(self) -> Optional[Annotation]:
        """
        Ephemeral annotation for the gesture in progress.

        Built from the start point and the latest pointer position; it is
        never added to the store.
        """
        if self._state != ToolState.DRAWING or self._start is None:
            return None
        tool = self._active_tool
        if tool == ToolMode.PEN:
            if len(self._points) < 2:
                return None
            return PenAnnotation(page=self.page, points=list(self._points),
                                 color=self.settings.pen_color,
                                 stroke_width=self.settings.pen_stroke_width)
        if tool in (ToolMode.TEXT, ToolMode.NOTE):
            return None
        return self._build_annotation(self._start, self._current or self._start,
                                      validate=False)

    # Explicit placement

    def place_stamp(self, x: float, y: float,
                    stamp_type: Optional[StampType] = None) -> Optional[StampAnnotation]:
        if not self._can_draw():
            return None
        point = self._clamp(x, y)
        annotation = self._new(
            StampAnnotation,
            x=point[0],
            y=point[1],
            stamp_type=stamp_type or self.settings.stamp_type,
            width=self.settings.stamp_width,
            height=self.settings.stamp_height,
        )
        self._commit(lambda: self.store.add(annotation))
        return annotation

    def place_text(self, text: str, x: Optional[float] = None,
                   y: Optional[float] = None) -> Optional[TextAnnotation]:
        """
        Commit a text annotation at (x, y), or at the anchor recorded by the
        last text-tool click.
        """
        anchor = self._take_anchor(x, y)
        if anchor is None or not text.strip() or not self._can_draw():
            return None
        page, (ax, ay) = anchor
        annotation = self._new(
            TextAnnotation,
            page=page,
            x=ax,
            y=ay,
            text=text,
            font_size=self.settings.text_font_size,
            color=self.settings.text_color,
        )
        self._commit(lambda: self.store.add(annotation))
        return annotation

    def place_note(self, text: str, x: Optional[float] = None,
                   y: Optional[float] = None) -> Optional[NoteAnnotation]:
        anchor = self._take_anchor(x, y)
        if anchor is None or not text.strip() or not self._can_draw():
            return None
        page, (ax, ay) = anchor
        annotation = self._new(NoteAnnotation, page=page, x=ax, y=ay, text=text,
                               color=self.settings.note_color)
        self._commit(lambda: self.store.add(annotation))
        return annotation

    # Edits of existing annotations

    def delete_annotation(self, annotation_id: str) -> bool:
        annotation = self.store.get(annotation_id)
        if annotation is None:
            return False
        if not (self.permissions.can_delete and not self.permissions.is_view_only):
            logger.info("Rejected delete of %s: user cannot delete", annotation_id)
            return False
        if self.layers.is_locked(annotation):
            logger.info("Rejected delete of %s: layer is locked", annotation_id)
            return False

        self._commit(lambda: self.store.remove(annotation_id))
        if self.selected_id == annotation_id:
            self.selected_id = None
        return True

    def delete_selected(self) -> bool:
        if self.selected_id is None:
            return False
        return self.delete_annotation(self.selected_id)

    def update_metadata(self, annotation_id: str, title: Optional[str] = None,
                        description: Optional[str] = None) -> Optional[Annotation]:
        """Edit title/description in place, stamping updatedAt/updatedBy."""
        annotation = self.store.get(annotation_id)
        if annotation is None or not self._can_edit_annotation(annotation):
            return None

        patch: Dict[str, object] = {"updated_at": utc_now(), "updated_by": self.user}
        if title is not None:
            patch["title"] = title
        if description is not None:
            patch["description"] = description

        self._commit(lambda: self.store.update(annotation_id, patch))
        return self.store.get(annotation_id)

    # Internals

    def _finish_move(self, start: Point, end: Point) -> Optional[Annotation]:
        annotation = self.store.get(self._drag_id) if self._drag_id else None
        if annotation is None:
            return None
        dx, dy = end[0] - start[0], end[1] - start[1]
        if dx == 0 and dy == 0:
            return None
        patch = annotation.translation_patch(dx, dy)
        patch.update({"updated_at": utc_now(), "updated_by": self.user})
        self._commit(lambda: self.store.update(annotation.id, patch))
        return annotation

    def _build_annotation(self, start: Point, end: Point,
                          validate: bool = True) -> Optional[Annotation]:
        """
        Compute final geometry for the active tool.

        Returns:
            The new annotation, or None for degenerate gestures
        """
        tool = self._active_tool
        s = self.settings

        if tool in (ToolMode.HIGHLIGHT, ToolMode.RECTANGLE):
            x, y, width, height = normalize_box(start, end)
            if validate and (width == 0 or height == 0):
                return None
            if tool == ToolMode.HIGHLIGHT:
                return self._new(HighlightAnnotation, x=x, y=y, width=width, height=height,
                                 color=s.highlight_color, opacity=s.highlight_opacity)
            return self._new(RectangleAnnotation, x=x, y=y, width=width, height=height,
                             color=s.shape_color, stroke_width=s.shape_stroke_width)

        if tool in (ToolMode.UNDERLINE, ToolMode.STRIKETHROUGH):
            x, y, width, _ = normalize_box(start, end)
            if validate and width == 0:
                return None
            if tool == ToolMode.UNDERLINE:
                return self._new(UnderlineAnnotation, x=x, y=y, width=width,
                                 color=s.underline_color, thickness=s.line_thickness)
            return self._new(StrikethroughAnnotation, x=x, y=y, width=width,
                             color=s.strikethrough_color, thickness=s.line_thickness)

        if tool == ToolMode.CIRCLE:
            radius = math.hypot(end[0] - start[0], end[1] - start[1])
            if validate and radius == 0:
                return None
            return self._new(CircleAnnotation, center_x=start[0], center_y=start[1],
                             radius=radius, color=s.shape_color,
                             stroke_width=s.shape_stroke_width)

        if tool == ToolMode.ARROW:
            if validate and start == end:
                return None
            return self._new(ArrowAnnotation, start_x=start[0], start_y=start[1],
                             end_x=end[0], end_y=end[1], color=s.shape_color,
                             stroke_width=s.shape_stroke_width,
                             arrow_head_size=s.arrow_head_size)

        if tool == ToolMode.PEN:
            if len(self._points) < 2:
                return None
            return self._new(PenAnnotation, points=list(self._points),
                             color=s.pen_color, stroke_width=s.pen_stroke_width)

        if tool == ToolMode.STAMP:
            return self._new(StampAnnotation, x=start[0], y=start[1],
                             stamp_type=s.stamp_type, width=s.stamp_width,
                             height=s.stamp_height)

        return None

    def _new(self, cls, **kwargs) -> Annotation:
        kwargs.setdefault("page", self.page)
        return cls(
            layer_id=self.layers.selected_layer_id,
            revision_number=self.layers.current_revision_number,
            created_by=self.user,
            **kwargs,
        )

    def _commit(self, mutate: Callable[[], object]) -> None:
        self.history.push(self.store.annotations)
        mutate()
        if self.on_committed is not None:
            self.on_committed()

    def _can_draw(self) -> bool:
        if not self.permissions.may_edit:
            logger.info("Rejected drawing: user cannot edit")
            return False
        layer = self.layers.selected_layer
        if layer is not None and layer.locked:
            logger.info("Rejected drawing: layer %s is locked", layer.id)
            return False
        return True

    def _can_edit_annotation(self, annotation: Annotation) -> bool:
        if not self.permissions.may_edit:
            logger.info("Rejected edit of %s: user cannot edit", annotation.id)
            return False
        if self.layers.is_locked(annotation):
            logger.info("Rejected edit of %s: layer is locked", annotation.id)
            return False
        return True

    def _take_anchor(self, x: Optional[float],
                     y: Optional[float]) -> Optional[Tuple[int, Point]]:
        if x is not None and y is not None:
            self.pending_anchor = None
            return self.page, self._clamp(x, y)
        anchor, self.pending_anchor = self.pending_anchor, None
        return anchor

    def _clamp(self, x: float, y: float) -> Point:
        size = self.page_size(self.page) if self.page_size else None
        if size is None:
            return float(x), float(y)
        width, height = size
        return min(max(float(x), 0.0), width), min(max(float(y), 0.0), height)

    def _reset_gesture(self) -> None:
        self._state = ToolState.SELECT
        self._start = None
        self._current = None
        self._points = []
        self._drag_id = None
