from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..annotations.models import Annotation, Layer, utc_now


@dataclass
class SaveResult:
    """Outcome of a persistence call. The call is all-or-nothing."""
    success: bool
    message: str = ""
    location: Optional[str] = None  # File path or URL of the stored artifact


@dataclass
class PersistedSnapshot:
    """The document-level record sent to a persistence endpoint."""
    annotations: List[Annotation]
    layers: List[Layer] = field(default_factory=list)
    revision_number: Optional[int] = None
    timestamp: str = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'annotations': [ann.to_dict() for ann in self.annotations],
            'layers': [layer.to_dict() for layer in self.layers],
            'revisionNumber': self.revision_number,
            'timestamp': self.timestamp,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "PersistedSnapshot":
        return PersistedSnapshot(
            annotations=[Annotation.from_dict(a) for a in data.get('annotations', [])],
            layers=[Layer.from_dict(layer) for layer in data.get('layers', [])],
            revision_number=data.get('revisionNumber'),
            timestamp=data.get('timestamp') or utc_now(),
        )
