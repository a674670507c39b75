"""
Controller bridging the markup session and the Qt widgets.
"""
import logging
from typing import Any, Optional

from PyQt5.QtCore import QObject, Qt, pyqtSignal
from PyQt5.QtGui import QKeyEvent
from PyQt5.QtWidgets import QInputDialog, QMessageBox, QWidget

from inkmark.core.autosave import SaveStatus
from inkmark.core.commands import Command, KeyPress, PlaceNote, PlaceText, PointerUp
from inkmark.core.errors import MarkupError, PermissionDeniedError
from inkmark.core.session import MarkupSession
from inkmark.core.tools.models import KeyInput, ToolMode

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    SaveStatus.SAVED: "Saved",
    SaveStatus.SAVING: "Saving...",
    SaveStatus.UNSAVED: "Unsaved changes",
}

# Qt keys that have a name in the shortcut table
_NAMED_KEYS = {
    Qt.Key_Escape: "escape",
    Qt.Key_Delete: "delete",
    Qt.Key_Backspace: "backspace",
}


def key_input_from_event(event: QKeyEvent, in_text_field: bool = False) -> Optional[KeyInput]:
    """Translate a QKeyEvent into the toolkit-free KeyInput."""
    key = _NAMED_KEYS.get(event.key())
    if key is None:
        text = event.text()
        if Qt.Key_A <= event.key() <= Qt.Key_Z:
            key = chr(event.key()).lower()
        elif text:
            key = text.lower()
        else:
            return None

    modifiers = event.modifiers()
    return KeyInput(
        key=key,
        ctrl=bool(modifiers & Qt.ControlModifier),
        meta=bool(modifiers & Qt.MetaModifier),
        shift=bool(modifiers & Qt.ShiftModifier),
        in_text_field=in_text_field,
    )


class MarkupController(QObject):
    """Handles markup commands from the UI and re-emits session changes as signals."""

    # Signals
    annotations_changed = pyqtSignal()
    layers_changed = pyqtSignal()
    tool_changed = pyqtSignal(object)  # ToolMode
    status_changed = pyqtSignal(str)  # SaveStatus value
    save_failed = pyqtSignal(str)
    view_changed = pyqtSignal()  # page or zoom

    def __init__(self, session: MarkupSession, parent: QWidget = None):
        super().__init__()
        self.session = session
        self.parent_widget = parent

        session.store.subscribe(self.annotations_changed.emit)
        session.layers.subscribe(self.layers_changed.emit)
        session.autosave.on_status_change(lambda status: self.status_changed.emit(status.value))
        session.autosave.on_failure(lambda error: self.save_failed.emit(str(error)))
        session.subscribe(self._on_dispatched)

    @property
    def active_tool(self) -> ToolMode:
        return self.session.tools.active_tool

    def status_label(self) -> str:
        return STATUS_LABELS[self.session.status]

    def dispatch(self, command: Command) -> Any:
        """
        Dispatch a command, reporting permission errors to the user.

        Returns:
            The session's result, or None if the command was refused
        """
        try:
            result = self.session.dispatch(command)
        except PermissionDeniedError as e:
            QMessageBox.warning(self.parent_widget, "Not Allowed", str(e))
            return None

        if isinstance(command, PointerUp) and self.session.tools.pending_anchor is not None:
            self._prompt_for_anchor_text()
        return result

    def handle_key_event(self, event: QKeyEvent, in_text_field: bool = False) -> bool:
        """
        Route a key press through the shortcut table.

        Returns:
            True if the key was bound to a command
        """
        key = key_input_from_event(event, in_text_field)
        if key is None:
            return False
        return self.dispatch(KeyPress(key)) is not None

    def show_save_error(self, message: str):
        QMessageBox.critical(
            self.parent_widget,
            "Save Failed",
            f"Annotations could not be saved:\n{message}\n\n"
            "Your changes are kept and will be saved with the next edit.",
        )

    def close(self) -> None:
        self.session.close()

    def _prompt_for_anchor_text(self):
        tool = self.active_tool
        if tool == ToolMode.NOTE:
            text, ok = QInputDialog.getMultiLineText(self.parent_widget, "Add Note", "Note:")
            command = PlaceNote(text)
        else:
            text, ok = QInputDialog.getText(self.parent_widget, "Add Text", "Text:")
            command = PlaceText(text)

        if not ok or not text.strip():
            self.session.tools.pending_anchor = None
            return
        try:
            self.session.dispatch(command)
        except MarkupError as e:
            logger.error("Failed to place %s: %s", tool.value, e)

    def _on_dispatched(self, command: Command, result: Any):
        name = command.command_name
        if name == "SelectTool":
            self.tool_changed.emit(self.active_tool)
        elif name in ("GoToPage", "SetZoom", "ZoomIn", "ZoomOut", "ResetZoom"):
            self.view_changed.emit()
        elif name in ("PointerDown", "PointerMove", "CancelGesture", "SelectRevision"):
            # Preview and selection live outside the store
            self.annotations_changed.emit()
