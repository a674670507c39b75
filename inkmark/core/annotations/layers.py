"""
Layer and revision index.
"""
import logging
from typing import Callable, Iterable, List, Optional

from .models import Annotation, Layer

logger = logging.getLogger(__name__)


class LayerIndex:
    """Organizes annotations by layer and revision tag."""

    def __init__(self, layers: Optional[Iterable[Layer]] = None,
                 current_revision_number: Optional[int] = 1,
                 available_revisions: Optional[Iterable[int]] = None):
        self.layers: List[Layer] = list(layers or [])
        self.selected_layer_id: Optional[str] = self.layers[0].id if self.layers else None

        revisions = list(available_revisions or [])
        if current_revision_number is not None and current_revision_number not in revisions:
            revisions.append(current_revision_number)
        self.available_revisions: List[int] = sorted(revisions)
        self.current_revision_number: Optional[int] = current_revision_number

        self._listeners: List[Callable[[], None]] = []

    def subscribe(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def get(self, layer_id: Optional[str]) -> Optional[Layer]:
        if layer_id is None:
            return None
        for layer in self.layers:
            if layer.id == layer_id:
                return layer
        return None

    @property
    def selected_layer(self) -> Optional[Layer]:
        return self.get(self.selected_layer_id)

    def create_layer(self, name: str, revision_number: Optional[int] = None,
                     color: Optional[str] = None, created_by: str = "") -> Layer:
        """
        Append a new layer and make it the selected layer.

        Args:
            name: Display name of the layer
            revision_number: Optional revision the layer belongs to
            color: Optional display color
            created_by: Author of the layer

        Returns:
            The created layer
        """
        layer = Layer(
            name=name,
            revision_number=revision_number,
            color=color,
            created_by=created_by,
        )
        self.layers.append(layer)
        self.selected_layer_id = layer.id
        logger.info("Created layer %s (%s)", layer.id, name)
        self._notify()
        return layer

    def select_layer(self, layer_id: Optional[str]) -> bool:
        """Select the layer new annotations go into. None selects no layer."""
        if layer_id is not None and self.get(layer_id) is None:
            logger.warning("Cannot select unknown layer %s", layer_id)
            return False
        self.selected_layer_id = layer_id
        self._notify()
        return True

    def toggle_visibility(self, layer_id: str) -> Optional[Layer]:
        layer = self.get(layer_id)
        if layer is None:
            logger.warning("Cannot toggle visibility of unknown layer %s", layer_id)
            return None
        layer.visible = not layer.visible
        self._notify()
        return layer

    def toggle_lock(self, layer_id: str) -> Optional[Layer]:
        layer = self.get(layer_id)
        if layer is None:
            logger.warning("Cannot toggle lock of unknown layer %s", layer_id)
            return None
        layer.locked = not layer.locked
        self._notify()
        return layer

    def select_revision(self, revision_number: int) -> bool:
        """
        Set the revision tag applied to newly created annotations.

        Returns:
            False if the revision is not one of the available revisions
        """
        if revision_number not in self.available_revisions:
            logger.warning("Revision %s is not available", revision_number)
            return False
        self.current_revision_number = revision_number
        self._notify()
        return True

    def is_visible(self, annotation: Annotation) -> bool:
        """Visible iff unlayered, or its layer exists and is visible."""
        if annotation.layer_id is None:
            return True
        layer = self.get(annotation.layer_id)
        # Dangling references behave like "no layer"
        return layer is None or layer.visible

    def is_locked(self, annotation: Annotation) -> bool:
        layer = self.get(annotation.layer_id)
        return layer is not None and layer.locked

    def visible_subset(self, annotations: Iterable[Annotation]) -> List[Annotation]:
        return [ann for ann in annotations if self.is_visible(ann)]

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()
