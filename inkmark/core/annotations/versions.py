"""
Version history: user-labelled, restorable annotation snapshots.
"""
import copy
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .models import Annotation, utc_now

logger = logging.getLogger(__name__)


@dataclass
class VersionSnapshot:
    """A coarse, labelled copy of the annotation list."""

    id: str
    version_number: int
    annotations: List[Annotation]
    created_by: str
    created_at: str = field(default_factory=utc_now)
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'versionNumber': self.version_number,
            'annotations': [ann.to_dict() for ann in self.annotations],
            'createdAt': self.created_at,
            'createdBy': self.created_by,
        }
        if self.description is not None:
            data['description'] = self.description
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "VersionSnapshot":
        return VersionSnapshot(
            id=data['id'],
            version_number=int(data['versionNumber']),
            annotations=[Annotation.from_dict(a) for a in data.get('annotations', [])],
            created_by=data.get('createdBy', ''),
            created_at=data.get('createdAt') or utc_now(),
            description=data.get('description'),
        )


class VersionHistoryManager:
    """Keeps a bounded log of version snapshots."""

    def __init__(self, max_versions: int = 50):
        self.max_versions = max_versions
        self._versions: List[VersionSnapshot] = []
        self._last_version_number = 0

    @property
    def count(self) -> int:
        return len(self._versions)

    @property
    def last_version_number(self) -> int:
        return self._last_version_number

    def create_version(self, annotations: Sequence[Annotation], created_by: str,
                       description: Optional[str] = None) -> VersionSnapshot:
        """
        Record a new version.

        Version numbers keep increasing even after old versions are evicted.

        Args:
            annotations: Annotation list to copy into the version
            created_by: Author of the version
            description: Optional label

        Returns:
            The created version
        """
        self._last_version_number += 1
        number = self._last_version_number
        version = VersionSnapshot(
            id=f"v{int(time.time() * 1000)}-{number}",
            version_number=number,
            annotations=copy.deepcopy(list(annotations)),
            created_by=created_by,
            description=description,
        )
        self._versions.append(version)

        if len(self._versions) > self.max_versions:
            evicted = self._versions.pop(0)
            logger.debug("Evicted version %d", evicted.version_number)

        logger.info("Created version %d with %d annotations", number, len(version.annotations),
                    extra={"version_number": number})
        return version

    def get_version(self, version_number: int) -> Optional[VersionSnapshot]:
        for version in self._versions:
            if version.version_number == version_number:
                return version
        return None

    def get_all_versions(self) -> List[VersionSnapshot]:
        """Most recent first."""
        return list(reversed(self._versions))

    def latest(self) -> Optional[VersionSnapshot]:
        return self._versions[-1] if self._versions else None

    def restore_version(self, version_number: int) -> Optional[List[Annotation]]:
        """
        Copy out a version's annotations.

        Does not touch the store or the undo history; the caller records the
        current state first and then applies the result.

        Returns:
            Deep copy of the version's annotations, or None if unknown
        """
        version = self.get_version(version_number)
        if version is None:
            logger.info("Version %d does not exist", version_number)
            return None
        return copy.deepcopy(version.annotations)

    def load(self, versions: Sequence[VersionSnapshot]) -> None:
        """Replace the log with previously persisted versions."""
        ordered = sorted(versions, key=lambda v: v.version_number)
        self._versions = list(ordered[-self.max_versions:])
        if ordered:
            self._last_version_number = max(self._last_version_number,
                                            ordered[-1].version_number)

    def clear(self) -> None:
        """Drop all versions. Numbers already handed out are not reused."""
        self._versions.clear()
