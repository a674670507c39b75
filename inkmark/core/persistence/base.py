from abc import ABC, abstractmethod
from typing import Optional

from .models import PersistedSnapshot, SaveResult


class AnnotationEndpoint(ABC):
    """Where annotation snapshots are persisted."""

    @abstractmethod
    async def save(self, snapshot: PersistedSnapshot,
                   baked_artifact: Optional[bytes] = None) -> SaveResult:
        """
        Persist a snapshot and, optionally, the baked document.

        Raises:
            PersistenceError: On IO or transport failure
        """

    async def close(self) -> None:
        """Release any held resources."""
