"""
Controllers connecting the markup session to the Qt widgets.
"""
from .markup_controller import MarkupController, key_input_from_event

__all__ = ["MarkupController", "key_input_from_event"]
