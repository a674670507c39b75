"""Tests for the local file and HTTP annotation endpoints."""

import json
import os

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from inkmark.core.annotations.models import Layer, PenAnnotation, RectangleAnnotation
from inkmark.core.annotations.versions import VersionHistoryManager
from inkmark.core.errors import PersistenceError
from inkmark.core.persistence import (
    HttpAnnotationEndpoint,
    LocalFileEndpoint,
    PersistedSnapshot,
)


def make_snapshot():
    return PersistedSnapshot(
        annotations=[
            RectangleAnnotation(x=1, y=2, width=30, height=40, layer_id="layer-a"),
            PenAnnotation(points=[(0, 0), (5, 5)], page=2),
        ],
        layers=[Layer(name="Markup", id="layer-a")],
        revision_number=3,
    )


# Local files

@pytest.mark.asyncio
async def test_local_save_and_load(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    snapshot = make_snapshot()

    result = await endpoint.save(snapshot)

    assert result.success
    assert result.location == endpoint.json_path
    loaded = endpoint.load()
    assert [a.to_dict() for a in loaded.annotations] == [a.to_dict() for a in snapshot.annotations]
    assert loaded.layers[0].name == "Markup"
    assert loaded.revision_number == 3


@pytest.mark.asyncio
async def test_local_save_writes_baked_document(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    await endpoint.save(make_snapshot(), b"%PDF-1.7")

    with open(endpoint.baked_path, 'rb') as f:
        assert f.read() == b"%PDF-1.7"
    with open(endpoint.json_path, encoding='utf-8') as f:
        assert json.load(f)['documentPath'] == "/docs/plan.pdf"


def test_local_load_without_file(tmp_path):
    endpoint = LocalFileEndpoint("/docs/missing.pdf", str(tmp_path))
    assert endpoint.load() is None
    assert not endpoint.has_saved_annotations()


def test_local_load_corrupt_file(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    with open(endpoint.json_path, 'w', encoding='utf-8') as f:
        f.write("{not json")

    with pytest.raises(PersistenceError):
        endpoint.load()


def test_local_load_rejects_invalid_annotation(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    with open(endpoint.json_path, 'w', encoding='utf-8') as f:
        json.dump({"annotations": [{"type": "rectangle", "width": -5, "height": 3}]}, f)

    with pytest.raises(PersistenceError):
        endpoint.load()


@pytest.mark.asyncio
async def test_local_delete(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    await endpoint.save(make_snapshot(), b"%PDF")

    assert endpoint.delete()
    assert not os.path.exists(endpoint.json_path)
    assert not os.path.exists(endpoint.baked_path)
    assert endpoint.delete()


def test_local_versions_survive_reload(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    history = VersionHistoryManager()
    history.create_version(make_snapshot().annotations, "alice", "Issued for review")
    history.create_version([], "bob")

    endpoint.save_versions(history.get_all_versions())
    restored = VersionHistoryManager()
    restored.load(endpoint.load_versions())

    assert [v.version_number for v in restored.get_all_versions()] == [2, 1]
    first = restored.get_version(1)
    assert first.description == "Issued for review"
    assert first.created_by == "alice"
    assert len(first.annotations) == 2
    assert restored.create_version([], "carol").version_number == 3


def test_local_load_versions_without_file(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    assert endpoint.load_versions() == []


def test_local_load_versions_corrupt_file(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    with open(endpoint.versions_path, 'w', encoding='utf-8') as f:
        json.dump({"versions": [{"annotations": []}]}, f)

    with pytest.raises(PersistenceError):
        endpoint.load_versions()


def test_local_delete_removes_versions(tmp_path):
    endpoint = LocalFileEndpoint("/docs/plan.pdf", str(tmp_path))
    endpoint.save_versions([])

    assert endpoint.delete()
    assert not os.path.exists(endpoint.versions_path)


def test_documents_get_separate_files(tmp_path):
    first = LocalFileEndpoint("/docs/a.pdf", str(tmp_path))
    second = LocalFileEndpoint("/docs/b.pdf", str(tmp_path))
    assert first.json_path != second.json_path


# HTTP

def drawings_app(received, status=200, body=None):
    async def handle(request):
        form = await request.post()
        received.append({
            'drawing_id': request.match_info['drawing_id'],
            'annotations': json.loads(form['annotations']),
            'layers': json.loads(form['layers']),
            'revisionNumber': form['revisionNumber'],
            'revisionStatus': form['revisionStatus'],
            'timestamp': form['timestamp'],
            'pdf': form['pdfBlob'].file.read() if 'pdfBlob' in form else None,
        })
        return web.json_response(body if body is not None else {"success": True}, status=status)

    app = web.Application()
    app.router.add_post('/api/drawings/{drawing_id}/annotations', handle)
    return app


@pytest.mark.asyncio
async def test_http_save_posts_multipart_form():
    received = []
    app = drawings_app(received, body={"success": True, "pdfUrl": "https://files/d-42.pdf"})

    async with TestServer(app) as server:
        endpoint = HttpAnnotationEndpoint(str(server.make_url('/')), "d-42")
        try:
            result = await endpoint.save(make_snapshot(), b"%PDF-baked")
        finally:
            await endpoint.close()

    assert result.success
    assert result.location == "https://files/d-42.pdf"
    request = received[0]
    assert request['drawing_id'] == "d-42"
    assert [a['type'] for a in request['annotations']] == ["rectangle", "pen"]
    assert request['layers'][0]['id'] == "layer-a"
    assert request['revisionNumber'] == "3"
    assert request['revisionStatus'] == "REVISION"
    assert request['pdf'] == b"%PDF-baked"


@pytest.mark.asyncio
async def test_http_save_without_baked_document():
    received = []
    async with TestServer(drawings_app(received)) as server:
        endpoint = HttpAnnotationEndpoint(str(server.make_url('/')), "d-1")
        try:
            result = await endpoint.save(make_snapshot())
        finally:
            await endpoint.close()

    assert result.success
    assert received[0]['pdf'] is None


@pytest.mark.asyncio
async def test_http_error_status_is_a_failed_result():
    received = []
    app = drawings_app(received, status=500, body={"success": False, "message": "disk full"})

    async with TestServer(app) as server:
        endpoint = HttpAnnotationEndpoint(str(server.make_url('/')), "d-1")
        try:
            result = await endpoint.save(make_snapshot())
        finally:
            await endpoint.close()

    assert not result.success
    assert result.message == "disk full"


@pytest.mark.asyncio
async def test_http_body_can_reject_the_save():
    app = drawings_app([], body={"success": False, "message": "revision closed"})

    async with TestServer(app) as server:
        endpoint = HttpAnnotationEndpoint(str(server.make_url('/')), "d-1")
        try:
            result = await endpoint.save(make_snapshot())
        finally:
            await endpoint.close()

    assert not result.success
    assert result.message == "revision closed"


@pytest.mark.asyncio
async def test_http_connection_failure_raises():
    endpoint = HttpAnnotationEndpoint("http://127.0.0.1:1", "d-1", timeout=5)
    try:
        with pytest.raises(PersistenceError):
            await endpoint.save(make_snapshot())
    finally:
        await endpoint.close()


@pytest.mark.asyncio
async def test_http_close_leaves_borrowed_session_open():
    import aiohttp

    async with aiohttp.ClientSession() as shared:
        endpoint = HttpAnnotationEndpoint("http://example.invalid", "d-1", session=shared)
        await endpoint.close()
        assert not shared.closed
