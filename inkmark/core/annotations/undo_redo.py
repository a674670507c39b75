"""
Undo/Redo history for annotations.
"""
import copy
from typing import List, Optional, Sequence, Tuple

from .models import Annotation

HistoryEntry = Tuple[Annotation, ...]


class HistoryManager:
    """Linear undo/redo history of full annotation-list snapshots."""

    def __init__(self, max_size: int = 50):
        """
        Initialize the history.

        Args:
            max_size: Maximum number of entries to keep
        """
        if max_size < 2:
            raise ValueError("History capacity must be at least 2")
        self.max_size = max_size
        self._entries: List[HistoryEntry] = []
        self._index: int = -1

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def index(self) -> int:
        """Cursor position, -1 while the history is empty."""
        return self._index

    def push(self, annotations: Sequence[Annotation]) -> None:
        """
        Record a snapshot. Call this before the mutation it protects.

        Entries after the cursor are discarded. A snapshot equal to the
        entry under the cursor is not recorded twice.

        Args:
            annotations: Annotation list to save
        """
        entry = self._freeze(annotations)
        del self._entries[self._index + 1:]

        if self._entries and self._entries[-1] == entry:
            self._index = len(self._entries) - 1
            return

        self._entries.append(entry)
        self._index = len(self._entries) - 1
        self._enforce_capacity()

    def can_undo(self, current: Optional[Sequence[Annotation]] = None) -> bool:
        """Check if undo is available."""
        return self._index > 0 or self._has_unrecorded_tip(current)

    def can_redo(self) -> bool:
        """Check if redo is available."""
        return 0 <= self._index < len(self._entries) - 1

    def undo(self, current: Optional[Sequence[Annotation]] = None) -> Optional[List[Annotation]]:
        """
        Step back one entry.

        Args:
            current: The live annotation list. When the cursor sits on the
                newest entry and the live list differs from it, the live list
                is recorded first so redo can return to it.

        Returns:
            Copy of the previous state, or None if undo is not available
        """
        if self._has_unrecorded_tip(current):
            self._entries.append(self._freeze(current))
            self._index = len(self._entries) - 1
            self._enforce_capacity()

        if self._index <= 0:
            return None

        self._index -= 1
        return self._thaw(self._entries[self._index])

    def redo(self) -> Optional[List[Annotation]]:
        """
        Step forward one entry.

        Returns:
            Copy of the next state, or None if redo is not available
        """
        if not self.can_redo():
            return None

        self._index += 1
        return self._thaw(self._entries[self._index])

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()
        self._index = -1

    def _has_unrecorded_tip(self, current: Optional[Sequence[Annotation]]) -> bool:
        if current is None or not self._entries:
            return False
        at_tip = self._index == len(self._entries) - 1
        return at_tip and self._entries[self._index] != tuple(current)

    def _enforce_capacity(self) -> None:
        overflow = len(self._entries) - self.max_size
        if overflow > 0:
            del self._entries[:overflow]
            self._index = max(0, self._index - overflow)

    @staticmethod
    def _freeze(annotations: Sequence[Annotation]) -> HistoryEntry:
        return tuple(copy.deepcopy(ann) for ann in annotations)

    @staticmethod
    def _thaw(entry: HistoryEntry) -> List[Annotation]:
        return [copy.deepcopy(ann) for ann in entry]
