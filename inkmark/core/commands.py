"""
Commands accepted by ``MarkupSession.dispatch``.

Every UI interaction is expressed as one of these, so a session can be
logged and replayed from its command log.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .annotations.models import StampType
from .tools.models import KeyInput, ToolMode


class Command:
    """Base class for dispatchable commands."""

    @property
    def command_name(self) -> str:
        return type(self).__name__


# Tools and gestures

@dataclass(frozen=True)
class SelectTool(Command):
    tool: ToolMode


@dataclass(frozen=True)
class UpdateToolSettings(Command):
    changes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PointerDown(Command):
    x: float
    y: float


@dataclass(frozen=True)
class PointerMove(Command):
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp(Command):
    x: float
    y: float


@dataclass(frozen=True)
class CancelGesture(Command):
    pass


@dataclass(frozen=True)
class KeyPress(Command):
    key: KeyInput


# Placement and edits

@dataclass(frozen=True)
class PlaceText(Command):
    text: str
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(frozen=True)
class PlaceNote(Command):
    text: str
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass(frozen=True)
class PlaceStamp(Command):
    x: float
    y: float
    stamp_type: Optional[StampType] = None


@dataclass(frozen=True)
class DeleteAnnotation(Command):
    annotation_id: str


@dataclass(frozen=True)
class DeleteSelected(Command):
    pass


@dataclass(frozen=True)
class UpdateMetadata(Command):
    annotation_id: str
    title: Optional[str] = None
    description: Optional[str] = None


# Layers and revisions

@dataclass(frozen=True)
class CreateLayer(Command):
    name: str
    revision_number: Optional[int] = None
    color: Optional[str] = None


@dataclass(frozen=True)
class SelectLayer(Command):
    layer_id: Optional[str]


@dataclass(frozen=True)
class ToggleLayerVisibility(Command):
    layer_id: str


@dataclass(frozen=True)
class ToggleLayerLock(Command):
    layer_id: str


@dataclass(frozen=True)
class SelectRevision(Command):
    revision_number: int


# History, versions and saving

@dataclass(frozen=True)
class Undo(Command):
    pass


@dataclass(frozen=True)
class Redo(Command):
    pass


@dataclass(frozen=True)
class Save(Command):
    pass


@dataclass(frozen=True)
class CreateVersion(Command):
    description: Optional[str] = None


@dataclass(frozen=True)
class RestoreVersion(Command):
    version_number: int


# Viewport

@dataclass(frozen=True)
class GoToPage(Command):
    page: int


@dataclass(frozen=True)
class SetZoom(Command):
    percent: int


@dataclass(frozen=True)
class ZoomIn(Command):
    pass


@dataclass(frozen=True)
class ZoomOut(Command):
    pass


@dataclass(frozen=True)
class ResetZoom(Command):
    pass
