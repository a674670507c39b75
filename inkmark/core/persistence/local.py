"""
Persists annotation snapshots to JSON files on disk.
"""
import asyncio
import hashlib
import json
import logging
import os
import shutil
import tempfile
from typing import List, Optional, Sequence

from ..annotations.versions import VersionSnapshot
from ..errors import InvalidAnnotationError, PersistenceError
from .base import AnnotationEndpoint
from .models import PersistedSnapshot, SaveResult

logger = logging.getLogger(__name__)


class LocalFileEndpoint(AnnotationEndpoint):
    """Stores one JSON file (and optionally one baked PDF) per document."""

    def __init__(self, document_path: str, data_dir: Optional[str] = None):
        """
        Args:
            document_path: Path of the annotated document
            data_dir: Directory for annotation files; defaults to the
                platform app-data directory
        """
        self.document_path = document_path
        self._data_dir = data_dir

    def get_data_dir(self) -> str:
        """
        Get or create the directory used for storing annotations.

        Returns:
            Path to the annotations directory
        """
        if self._data_dir:
            os.makedirs(self._data_dir, exist_ok=True)
            return self._data_dir

        if os.name == 'nt':  # Windows
            base_dir = os.environ.get('APPDATA', os.path.expanduser('~'))
        else:  # macOS, Linux
            base_dir = os.path.expanduser('~/.local/share')

        app_dir = os.path.join(base_dir, 'Inkmark', 'annotations')
        os.makedirs(app_dir, exist_ok=True)
        self._data_dir = app_dir
        return app_dir

    @property
    def document_key(self) -> str:
        # Hash of the document path so storage is unique per document
        return hashlib.md5(self.document_path.encode()).hexdigest()

    @property
    def json_path(self) -> str:
        return os.path.join(self.get_data_dir(), f"{self.document_key}.json")

    @property
    def baked_path(self) -> str:
        return os.path.join(self.get_data_dir(), f"{self.document_key}.pdf")

    @property
    def versions_path(self) -> str:
        return os.path.join(self.get_data_dir(), f"{self.document_key}.versions.json")

    async def save(self, snapshot: PersistedSnapshot,
                   baked_artifact: Optional[bytes] = None) -> SaveResult:
        try:
            await asyncio.to_thread(self._write, snapshot, baked_artifact)
        except OSError as e:
            raise PersistenceError(f"Failed to save annotations: {e}") from e

        logger.info("Saved %d annotations to %s", len(snapshot.annotations), self.json_path,
                    extra={"document": self.document_path})
        return SaveResult(success=True, message="Annotations saved", location=self.json_path)

    def load(self) -> Optional[PersistedSnapshot]:
        """
        Load the stored snapshot for this document.

        Returns:
            The snapshot, or None if nothing is stored

        Raises:
            PersistenceError: If the file exists but cannot be read
        """
        path = self.json_path
        if not os.path.exists(path):
            return None

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to load annotations: {e}") from e

        stored_path = data.get('documentPath')
        if stored_path and stored_path != self.document_path:
            logger.warning("Annotation file is for a different document: %s", stored_path)

        try:
            return PersistedSnapshot.from_dict(data)
        except (InvalidAnnotationError, KeyError, TypeError) as e:
            raise PersistenceError(f"Corrupt annotation file {path}: {e}") from e

    def save_versions(self, versions: Sequence[VersionSnapshot]) -> None:
        """
        Store the version history next to the annotations.

        Raises:
            PersistenceError: If the file cannot be written
        """
        data = {
            'documentPath': self.document_path,
            'versions': [version.to_dict() for version in versions],
        }
        try:
            self._atomic_write(self.versions_path, json.dumps(data, indent=2).encode('utf-8'))
        except OSError as e:
            raise PersistenceError(f"Failed to save version history: {e}") from e
        logger.info("Saved %d versions to %s", len(versions), self.versions_path)

    def load_versions(self) -> List[VersionSnapshot]:
        """
        Load the stored version history.

        Returns:
            The stored versions, or an empty list if nothing is stored

        Raises:
            PersistenceError: If the file exists but cannot be read
        """
        path = self.versions_path
        if not os.path.exists(path):
            return []

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            return [VersionSnapshot.from_dict(v) for v in data.get('versions', [])]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise PersistenceError(f"Failed to load version history: {e}") from e

    def has_saved_annotations(self) -> bool:
        return os.path.exists(self.json_path)

    def delete(self) -> bool:
        """
        Delete stored files for this document.

        Returns:
            True if deletion was successful or nothing was stored
        """
        try:
            for path in (self.json_path, self.baked_path, self.versions_path):
                if os.path.exists(path):
                    os.remove(path)
        except OSError as e:
            logger.error("Failed to delete annotation files: %s", e)
            return False
        return True

    def _write(self, snapshot: PersistedSnapshot, baked_artifact: Optional[bytes]) -> None:
        data = snapshot.to_dict()
        data['documentPath'] = self.document_path
        self._atomic_write(self.json_path, json.dumps(data, indent=2).encode('utf-8'))
        if baked_artifact is not None:
            self._atomic_write(self.baked_path, baked_artifact)

    @staticmethod
    def _atomic_write(path: str, payload: bytes) -> None:
        # Temp file in the same directory, then move over the target
        temp_fd, temp_path = tempfile.mkstemp(dir=os.path.dirname(path))
        try:
            with os.fdopen(temp_fd, 'wb') as f:
                f.write(payload)
            shutil.move(temp_path, path)
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)
