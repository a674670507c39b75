"""
Custom widgets for page display and interaction.
"""

from .markup_page import MarkupPageLabel
from .version_history import VersionHistoryDialog

__all__ = [
    "MarkupPageLabel",
    "VersionHistoryDialog",
]
