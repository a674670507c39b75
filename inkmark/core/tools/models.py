from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..annotations.models import StampType


class ToolMode(Enum):
    SELECT = "select"
    MOVE = "move"
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    STRIKETHROUGH = "strikethrough"
    PEN = "pen"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARROW = "arrow"
    TEXT = "text"
    STAMP = "stamp"
    ERASER = "eraser"
    NOTE = "note"


class ToolState(Enum):
    """Gesture state of the tool state machine."""
    SELECT = "select"    # idle, no gesture in progress
    MOVE = "move"        # dragging an existing annotation
    DRAWING = "drawing"  # drawing with the active tool


@dataclass(frozen=True)
class ToolSpec:
    """Toolbar entry for one tool."""
    mode: ToolMode
    title: str
    shortcut: Optional[str] = None
    requires_edit: bool = True


TOOL_SPECS: List[ToolSpec] = [
    ToolSpec(ToolMode.SELECT, "Select", "V", requires_edit=False),
    ToolSpec(ToolMode.MOVE, "Move", "M", requires_edit=False),
    ToolSpec(ToolMode.HIGHLIGHT, "Highlight", "H"),
    ToolSpec(ToolMode.UNDERLINE, "Underline", "U"),
    ToolSpec(ToolMode.STRIKETHROUGH, "Strikethrough", "S"),
    ToolSpec(ToolMode.PEN, "Pen", "P"),
    ToolSpec(ToolMode.RECTANGLE, "Rectangle", "R"),
    ToolSpec(ToolMode.CIRCLE, "Circle", "C"),
    ToolSpec(ToolMode.ARROW, "Arrow", "A"),
    ToolSpec(ToolMode.TEXT, "Text", "T"),
    ToolSpec(ToolMode.STAMP, "Stamp", "D"),
    ToolSpec(ToolMode.ERASER, "Eraser", "E"),
    ToolSpec(ToolMode.NOTE, "Note"),
]

TOOLS_BY_MODE: Dict[ToolMode, ToolSpec] = {spec.mode: spec for spec in TOOL_SPECS}

TOOLS_BY_SHORTCUT: Dict[str, ToolSpec] = {
    spec.shortcut.lower(): spec for spec in TOOL_SPECS if spec.shortcut
}

# Tools whose gesture is a two-point drag
BOX_TOOLS = {
    ToolMode.HIGHLIGHT,
    ToolMode.UNDERLINE,
    ToolMode.STRIKETHROUGH,
    ToolMode.RECTANGLE,
    ToolMode.CIRCLE,
    ToolMode.ARROW,
}

# Tools that create annotations from a pointer gesture
DRAWING_TOOLS = BOX_TOOLS | {ToolMode.PEN, ToolMode.STAMP, ToolMode.TEXT, ToolMode.NOTE}


@dataclass
class ToolSettings:
    """Styling applied to newly created annotations."""
    pen_color: str = "#000000"
    pen_stroke_width: float = 2.0
    shape_color: str = "#F44336"
    shape_stroke_width: float = 2.0
    highlight_color: str = "#FFEB3B"
    highlight_opacity: float = 0.3
    underline_color: str = "#2196F3"
    strikethrough_color: str = "#F44336"
    line_thickness: float = 2.0
    arrow_head_size: float = 10.0
    stamp_type: StampType = StampType.APPROVED
    stamp_width: float = 100.0
    stamp_height: float = 100.0
    text_color: str = "#000000"
    text_font_size: float = 14.0
    note_color: str = "#FFEB3B"


@dataclass(frozen=True)
class KeyInput:
    """A key press as seen by the shortcut table."""
    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    in_text_field: bool = False

    @property
    def command_modifier(self) -> bool:
        """Ctrl on Windows/Linux, Cmd on macOS."""
        return self.ctrl or self.meta
