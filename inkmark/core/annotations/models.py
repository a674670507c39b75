"""
Annotation, layer and permission models.

Every model serializes to the camelCase wire format used by the persistence
endpoints (``layerId``, ``centerX``, ``stampType`` ...).
"""
import math
import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Type

from ..errors import InvalidAnnotationError

Point = Tuple[float, float]
Bounds = Tuple[float, float, float, float]  # x0, y0, x1, y1


class AnnotationType(Enum):
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    STRIKETHROUGH = "strikethrough"
    PEN = "pen"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARROW = "arrow"
    TEXT = "text"
    STAMP = "stamp"
    NOTE = "note"


class StampType(Enum):
    APPROVED = "approved"
    REVISE = "revise"
    REJECTED = "rejected"
    REVIEWED = "reviewed"
    DRAFT = "draft"


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


def new_annotation_id() -> str:
    return f"ann-{uuid.uuid4().hex[:12]}"


def new_layer_id() -> str:
    return f"layer-{uuid.uuid4().hex[:12]}"


def normalize_box(start: Point, end: Point) -> Tuple[float, float, float, float]:
    """
    Convert two drag corners into a canonical rectangle.

    Args:
        start: Pointer-down position
        end: Pointer-up position

    Returns:
        Tuple of (x, y, width, height) with non-negative width and height
    """
    x = min(start[0], end[0])
    y = min(start[1], end[1])
    return x, y, abs(end[0] - start[0]), abs(end[1] - start[1])


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass
class Annotation:
    """Fields shared by every annotation variant."""

    annotation_type: ClassVar[AnnotationType]

    id: str = field(default_factory=new_annotation_id)
    page: int = 1
    layer_id: Optional[str] = None
    revision_number: Optional[int] = None
    created_at: str = field(default_factory=utc_now)
    created_by: str = ""
    updated_at: Optional[str] = None
    updated_by: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None

    def accept(self, visitor):
        raise NotImplementedError

    def bounds(self) -> Bounds:
        raise NotImplementedError

    def translation_patch(self, dx: float, dy: float) -> Dict[str, Any]:
        """Return the attribute patch that moves this annotation by (dx, dy)."""
        return {"x": self.x + dx, "y": self.y + dy}

    def validate(self) -> None:
        """Raise InvalidAnnotationError if the record violates an invariant."""
        if not self.id:
            raise InvalidAnnotationError("Annotation id must not be empty")
        if not isinstance(self.page, int) or self.page < 1:
            raise InvalidAnnotationError(
                f"Annotation {self.id} has invalid page {self.page!r}"
            )
        self._validate_geometry()

    def _validate_geometry(self) -> None:
        for name in ("width", "height", "radius"):
            value = getattr(self, name, None)
            if value is not None and value < 0:
                raise InvalidAnnotationError(
                    f"Annotation {self.id} has negative {name}"
                )

    def to_dict(self) -> Dict[str, Any]:
        """Convert annotation to dictionary for JSON serialization."""
        data: Dict[str, Any] = {"type": self.annotation_type.value}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "points":
                value = [{"x": x, "y": y} for x, y in value]
            elif isinstance(value, Enum):
                value = value.value
            data[_to_camel(f.name)] = value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Annotation":
        """Create an annotation of the right variant from a dictionary."""
        type_value = data.get("type")
        try:
            cls = ANNOTATION_CLASSES[AnnotationType(type_value)]
        except ValueError:
            raise InvalidAnnotationError(f"Unknown annotation type: {type_value!r}")

        for required in ("id", "page"):
            if required not in data:
                raise InvalidAnnotationError(
                    f"Annotation record is missing '{required}'"
                )

        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            key = _to_camel(f.name)
            if key not in data or data[key] is None:
                continue
            value = data[key]
            if f.name == "points":
                value = [_coerce_point(p) for p in value]
            elif f.name == "stamp_type":
                value = StampType(value)
            kwargs[f.name] = value

        annotation = cls(**kwargs)
        annotation.validate()
        return annotation


def _coerce_point(raw: Any) -> Point:
    if isinstance(raw, dict):
        return float(raw["x"]), float(raw["y"])
    return float(raw[0]), float(raw[1])


@dataclass
class HighlightAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.HIGHLIGHT

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    color: str = "#FFEB3B"
    opacity: float = 0.3

    def accept(self, visitor):
        return visitor.draw_highlight(self)

    def bounds(self) -> Bounds:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass
class UnderlineAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.UNDERLINE

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    color: str = "#2196F3"
    thickness: float = 2.0

    def accept(self, visitor):
        return visitor.draw_underline(self)

    def bounds(self) -> Bounds:
        half = self.thickness / 2.0
        return self.x, self.y - half, self.x + self.width, self.y + half


@dataclass
class StrikethroughAnnotation(UnderlineAnnotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.STRIKETHROUGH

    color: str = "#F44336"

    def accept(self, visitor):
        return visitor.draw_strikethrough(self)


@dataclass
class PenAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.PEN

    points: List[Point] = field(default_factory=list)
    color: str = "#000000"
    stroke_width: float = 2.0

    def accept(self, visitor):
        return visitor.draw_pen(self)

    def bounds(self) -> Bounds:
        xs = [p[0] for p in self.points]
        ys = [p[1] for p in self.points]
        return min(xs), min(ys), max(xs), max(ys)

    def translation_patch(self, dx: float, dy: float) -> Dict[str, Any]:
        return {"points": [(x + dx, y + dy) for x, y in self.points]}

    def _validate_geometry(self) -> None:
        if len(self.points) < 2:
            raise InvalidAnnotationError(
                f"Pen annotation {self.id} needs at least 2 points"
            )


@dataclass
class RectangleAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.RECTANGLE

    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    color: str = "#F44336"
    stroke_width: float = 2.0
    fill_color: Optional[str] = None
    fill_opacity: Optional[float] = None

    def accept(self, visitor):
        return visitor.draw_rectangle(self)

    def bounds(self) -> Bounds:
        return self.x, self.y, self.x + self.width, self.y + self.height


@dataclass
class CircleAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.CIRCLE

    center_x: float = 0.0
    center_y: float = 0.0
    radius: float = 0.0
    color: str = "#F44336"
    stroke_width: float = 2.0
    fill_color: Optional[str] = None
    fill_opacity: Optional[float] = None

    def accept(self, visitor):
        return visitor.draw_circle(self)

    def bounds(self) -> Bounds:
        return (self.center_x - self.radius, self.center_y - self.radius,
                self.center_x + self.radius, self.center_y + self.radius)

    def translation_patch(self, dx: float, dy: float) -> Dict[str, Any]:
        return {"center_x": self.center_x + dx, "center_y": self.center_y + dy}


@dataclass
class ArrowAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.ARROW

    start_x: float = 0.0
    start_y: float = 0.0
    end_x: float = 0.0
    end_y: float = 0.0
    color: str = "#F44336"
    stroke_width: float = 2.0
    arrow_head_size: float = 10.0

    def accept(self, visitor):
        return visitor.draw_arrow(self)

    def bounds(self) -> Bounds:
        return (min(self.start_x, self.end_x), min(self.start_y, self.end_y),
                max(self.start_x, self.end_x), max(self.start_y, self.end_y))

    def translation_patch(self, dx: float, dy: float) -> Dict[str, Any]:
        return {
            "start_x": self.start_x + dx,
            "start_y": self.start_y + dy,
            "end_x": self.end_x + dx,
            "end_y": self.end_y + dy,
        }

    @property
    def length(self) -> float:
        return math.hypot(self.end_x - self.start_x, self.end_y - self.start_y)


@dataclass
class TextAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.TEXT

    x: float = 0.0
    y: float = 0.0
    text: str = ""
    font_size: float = 14.0
    color: str = "#000000"
    font_family: Optional[str] = None
    background_color: Optional[str] = None

    def accept(self, visitor):
        return visitor.draw_text(self)

    def bounds(self) -> Bounds:
        # Approximate extent; (x, y) is the top-left corner of the first line
        lines = self.text.splitlines() or [""]
        width = max(len(line) for line in lines) * self.font_size * 0.6
        height = len(lines) * self.font_size * 1.2
        return self.x, self.y, self.x + width, self.y + height


@dataclass
class StampAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.STAMP

    x: float = 0.0
    y: float = 0.0
    stamp_type: StampType = StampType.APPROVED
    width: float = 100.0
    height: float = 100.0
    rotation: float = 0.0

    def accept(self, visitor):
        return visitor.draw_stamp(self)

    def bounds(self) -> Bounds:
        return self.x, self.y, self.x + self.width, self.y + self.height

    @property
    def center(self) -> Point:
        return self.x + self.width / 2.0, self.y + self.height / 2.0


@dataclass
class NoteAnnotation(Annotation):
    annotation_type: ClassVar[AnnotationType] = AnnotationType.NOTE

    x: float = 0.0
    y: float = 0.0
    text: str = ""
    color: str = "#FFEB3B"
    width: float = 24.0
    height: float = 24.0

    def accept(self, visitor):
        return visitor.draw_note(self)

    def bounds(self) -> Bounds:
        half_w, half_h = self.width / 2.0, self.height / 2.0
        return self.x - half_w, self.y - half_h, self.x + half_w, self.y + half_h


ANNOTATION_CLASSES: Dict[AnnotationType, Type[Annotation]] = {
    cls.annotation_type: cls
    for cls in (
        HighlightAnnotation,
        UnderlineAnnotation,
        StrikethroughAnnotation,
        PenAnnotation,
        RectangleAnnotation,
        CircleAnnotation,
        ArrowAnnotation,
        TextAnnotation,
        StampAnnotation,
        NoteAnnotation,
    )
}


@dataclass
class Layer:
    """A named, independently visible and lockable group of annotations."""

    name: str
    id: str = field(default_factory=new_layer_id)
    visible: bool = True
    locked: bool = False
    revision_number: Optional[int] = None
    color: Optional[str] = None
    created_at: str = field(default_factory=utc_now)
    created_by: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = {_to_camel(f.name): getattr(self, f.name) for f in fields(self)}
        return {key: value for key, value in data.items() if value is not None}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Layer":
        kwargs = {
            f.name: data[_to_camel(f.name)]
            for f in fields(Layer)
            if data.get(_to_camel(f.name)) is not None
        }
        if "name" not in kwargs:
            raise InvalidAnnotationError("Layer record is missing 'name'")
        return Layer(**kwargs)


@dataclass
class UserPermissions:
    """What the current viewer is allowed to do."""

    can_edit: bool = True
    can_delete: bool = True
    can_create_layers: bool = True
    can_manage_revisions: bool = True
    can_download: bool = True
    is_view_only: bool = False

    @property
    def may_edit(self) -> bool:
        return self.can_edit and not self.is_view_only

    @classmethod
    def view_only(cls) -> "UserPermissions":
        return cls(
            can_edit=False,
            can_delete=False,
            can_create_layers=False,
            can_manage_revisions=False,
            is_view_only=True,
        )

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "UserPermissions":
        return UserPermissions(**{
            f.name: bool(data[_to_camel(f.name)])
            for f in fields(UserPermissions)
            if _to_camel(f.name) in data
        })
