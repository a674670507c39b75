"""
Drawing tools and the gesture state machine.
"""
from .models import TOOL_SPECS, KeyInput, ToolMode, ToolSettings, ToolSpec, ToolState
from .state_machine import ToolStateMachine

__all__ = [
    'TOOL_SPECS',
    'KeyInput',
    'ToolMode',
    'ToolSettings',
    'ToolSpec',
    'ToolState',
    'ToolStateMachine',
]
