"""
Core markup engine. Independent of any UI toolkit.
"""

from .annotations import Annotation, AnnotationStore, AnnotationType, Layer, UserPermissions
from .autosave import AutosaveController, SaveStatus
from .errors import InvalidAnnotationError, MarkupError, PermissionDeniedError, PersistenceError
from .session import MarkupSession

__all__ = [
    "Annotation",
    "AnnotationStore",
    "AnnotationType",
    "AutosaveController",
    "InvalidAnnotationError",
    "Layer",
    "MarkupError",
    "MarkupSession",
    "PermissionDeniedError",
    "PersistenceError",
    "SaveStatus",
    "UserPermissions",
]
