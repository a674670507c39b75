"""
Canonical in-memory collection of annotations.
"""
import copy
import logging
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from ..errors import InvalidAnnotationError
from .models import Annotation

logger = logging.getLogger(__name__)

StoreListener = Callable[[], None]

_IMMUTABLE_FIELDS = {"id", "annotation_type"}


class AnnotationStore:
    """
    Holds the live annotation list in creation order.

    The store never snapshots itself. Callers push a history entry before
    calling any mutating method so the mutation stays undoable.
    """

    def __init__(self, annotations: Optional[Iterable[Annotation]] = None):
        self._annotations: List[Annotation] = []
        self._listeners: List[StoreListener] = []
        if annotations:
            self.replace_all(annotations)

    def __len__(self) -> int:
        return len(self._annotations)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(self._annotations)

    def __contains__(self, annotation_id: str) -> bool:
        return self.get(annotation_id) is not None

    @property
    def annotations(self) -> List[Annotation]:
        """Live list in creation order. Treat as read-only."""
        return self._annotations

    def subscribe(self, listener: StoreListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: StoreListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def snapshot(self) -> List[Annotation]:
        """Return a deep copy of the current annotation list."""
        return [copy.deepcopy(ann) for ann in self._annotations]

    def get(self, annotation_id: str) -> Optional[Annotation]:
        for ann in self._annotations:
            if ann.id == annotation_id:
                return ann
        return None

    def for_page(self, page: int) -> List[Annotation]:
        """
        Get all annotations for a specific page.

        Args:
            page: 1-based page number

        Returns:
            List of annotations on the page, in creation order
        """
        return [ann for ann in self._annotations if ann.page == page]

    def add(self, annotation: Annotation) -> None:
        """
        Append a new annotation.

        Raises:
            InvalidAnnotationError: If the record is invalid or its id is taken
        """
        annotation.validate()
        if annotation.id in self:
            raise InvalidAnnotationError(f"Duplicate annotation id: {annotation.id}")

        self._annotations.append(annotation)
        logger.debug("Added %s annotation %s on page %d",
                     annotation.annotation_type.value, annotation.id, annotation.page)
        self._notify()

    def update(self, annotation_id: str, patch: Dict[str, Any]) -> Optional[Annotation]:
        """
        Apply an attribute patch to an annotation in place.

        Args:
            annotation_id: Id of the annotation to update
            patch: Mapping of attribute name to new value

        Returns:
            The updated annotation, or None if the id is unknown
        """
        annotation = self.get(annotation_id)
        if annotation is None:
            return None

        forbidden = _IMMUTABLE_FIELDS.intersection(patch)
        if forbidden:
            raise InvalidAnnotationError(
                f"Cannot patch {', '.join(sorted(forbidden))} of {annotation_id}"
            )
        unknown = [key for key in patch if not hasattr(annotation, key)]
        if unknown:
            raise InvalidAnnotationError(
                f"Unknown fields for {annotation.annotation_type.value}: {', '.join(unknown)}"
            )

        patched = copy.copy(annotation)
        for key, value in patch.items():
            setattr(patched, key, value)
        patched.validate()

        for key, value in patch.items():
            setattr(annotation, key, value)
        self._notify()
        return annotation

    def remove(self, annotation_id: str) -> bool:
        """
        Remove an annotation.

        Returns:
            True if the annotation was found and removed
        """
        annotation = self.get(annotation_id)
        if annotation is None:
            return False
        self._annotations.remove(annotation)
        self._notify()
        return True

    def replace_all(self, annotations: Iterable[Annotation]) -> None:
        """Substitute the entire list. Used by undo, redo and restore."""
        new_list = list(annotations)
        seen = set()
        for ann in new_list:
            ann.validate()
            if ann.id in seen:
                raise InvalidAnnotationError(f"Duplicate annotation id: {ann.id}")
            seen.add(ann.id)

        self._annotations = new_list
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
