"""
Persistence endpoints for annotation snapshots.
"""
from .base import AnnotationEndpoint
from .http import HttpAnnotationEndpoint
from .local import LocalFileEndpoint
from .models import PersistedSnapshot, SaveResult

__all__ = [
    'AnnotationEndpoint',
    'HttpAnnotationEndpoint',
    'LocalFileEndpoint',
    'PersistedSnapshot',
    'SaveResult',
]
