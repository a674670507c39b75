"""
Persists annotation snapshots to the drawings API over HTTP.
"""
import asyncio
import json
import logging
from typing import Optional

import aiohttp

from ..errors import PersistenceError
from .base import AnnotationEndpoint
from .models import PersistedSnapshot, SaveResult

logger = logging.getLogger(__name__)


class HttpAnnotationEndpoint(AnnotationEndpoint):
    """POSTs snapshots as multipart form data to /api/drawings/{id}/annotations."""

    def __init__(self, base_url: str, drawing_id: str,
                 revision_status: str = "REVISION",
                 headers: Optional[dict] = None,
                 timeout: int = 60,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip('/')
        self.drawing_id = drawing_id
        self.revision_status = revision_status
        self.headers = headers or {}
        self.timeout = timeout
        self.session = session
        self._owns_session = session is None

    @property
    def url(self) -> str:
        return f"{self.base_url}/api/drawings/{self.drawing_id}/annotations"

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Create a persistent ClientSession if one doesn't exist."""
        if not self.session or self.session.closed:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self.session

    def _build_form(self, snapshot: PersistedSnapshot,
                    baked_artifact: Optional[bytes]) -> aiohttp.FormData:
        data = aiohttp.FormData()
        payload = snapshot.to_dict()
        data.add_field('annotations', json.dumps(payload['annotations']))
        data.add_field('layers', json.dumps(payload['layers']))
        data.add_field('timestamp', snapshot.timestamp)
        data.add_field('revisionNumber', str(snapshot.revision_number or 1))
        data.add_field('revisionStatus', self.revision_status)
        if baked_artifact is not None:
            data.add_field(
                'pdfBlob',
                baked_artifact,
                filename=f"drawing-{self.drawing_id}.pdf",
                content_type='application/pdf',
            )
        return data

    async def save(self, snapshot: PersistedSnapshot,
                   baked_artifact: Optional[bytes] = None) -> SaveResult:
        session = await self._ensure_session()
        form = self._build_form(snapshot, baked_artifact)

        try:
            async with session.post(self.url, data=form, headers=self.headers) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = {}
                if not isinstance(body, dict):
                    body = {}
                message = body.get('message', '')

                if response.status not in (200, 201):
                    logger.error("Save rejected by %s: %s %s", self.url, response.status, message)
                    return SaveResult(success=False,
                                      message=message or f"HTTP {response.status}")

                return SaveResult(
                    success=bool(body.get('success', True)),
                    message=message,
                    location=body.get('pdfUrl'),
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PersistenceError(f"Request to {self.url} failed: {e}") from e

    async def close(self) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
