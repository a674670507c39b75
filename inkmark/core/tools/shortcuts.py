"""
Keyboard shortcut table.
"""
from typing import Optional

from ..annotations.models import UserPermissions
from ..commands import CancelGesture, Command, DeleteSelected, Redo, Save, SelectTool, Undo
from .models import TOOLS_BY_SHORTCUT, KeyInput

DELETE_KEYS = {"delete", "backspace"}


def resolve_key(event: KeyInput, permissions: UserPermissions) -> Optional[Command]:
    """
    Map a key press to a command.

    Args:
        event: The key press
        permissions: Current user's permissions

    Returns:
        The command to dispatch, or None if the key is not bound or suppressed
    """
    # Text-entry fields keep every key, including the modifier shortcuts
    if event.in_text_field:
        return None

    key = event.key.lower()

    if event.command_modifier:
        if permissions.is_view_only:
            return None
        if key == "z":
            if not permissions.may_edit:
                return None
            return Redo() if event.shift else Undo()
        if key == "s":
            return Save()
        return None

    if key == "escape":
        return CancelGesture()

    if key in DELETE_KEYS:
        return DeleteSelected() if permissions.may_edit else None

    spec = TOOLS_BY_SHORTCUT.get(key)
    if spec is None:
        return None
    if spec.requires_edit and not permissions.may_edit:
        return None
    return SelectTool(spec.mode)
