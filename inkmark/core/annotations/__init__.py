"""
Annotation model, store, layers and history.
"""

from .layers import LayerIndex
from .models import (
    ANNOTATION_CLASSES,
    Annotation,
    AnnotationType,
    ArrowAnnotation,
    CircleAnnotation,
    HighlightAnnotation,
    Layer,
    NoteAnnotation,
    PenAnnotation,
    RectangleAnnotation,
    StampAnnotation,
    StampType,
    StrikethroughAnnotation,
    TextAnnotation,
    UnderlineAnnotation,
    UserPermissions,
)
from .store import AnnotationStore
from .undo_redo import HistoryManager
from .versions import VersionHistoryManager, VersionSnapshot

__all__ = [
    "ANNOTATION_CLASSES",
    "Annotation",
    "AnnotationStore",
    "AnnotationType",
    "ArrowAnnotation",
    "CircleAnnotation",
    "HighlightAnnotation",
    "HistoryManager",
    "Layer",
    "LayerIndex",
    "NoteAnnotation",
    "PenAnnotation",
    "RectangleAnnotation",
    "StampAnnotation",
    "StampType",
    "StrikethroughAnnotation",
    "TextAnnotation",
    "UnderlineAnnotation",
    "UserPermissions",
    "VersionHistoryManager",
    "VersionSnapshot",
]
