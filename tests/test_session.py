"""Tests for the markup session and its command dispatcher."""

import asyncio
from dataclasses import dataclass

import pytest

from inkmark.core.annotations.models import Layer, RectangleAnnotation, UserPermissions
from inkmark.core.autosave import SaveStatus
from inkmark.core.commands import (
    Command,
    CreateLayer,
    CreateVersion,
    DeleteAnnotation,
    GoToPage,
    KeyPress,
    PointerDown,
    PointerMove,
    PointerUp,
    Redo,
    ResetZoom,
    RestoreVersion,
    Save,
    SelectRevision,
    SelectTool,
    SetZoom,
    ToggleLayerLock,
    ToggleLayerVisibility,
    Undo,
    UpdateToolSettings,
    ZoomIn,
    ZoomOut,
)
from inkmark.core.errors import PermissionDeniedError, PersistenceError
from inkmark.core.persistence.base import AnnotationEndpoint
from inkmark.core.persistence.models import SaveResult
from inkmark.core.session import MarkupSession
from inkmark.core.tools.models import KeyInput, ToolMode


class RecordingEndpoint(AnnotationEndpoint):
    def __init__(self, result=None, error=None):
        self.saved = []
        self.result = result or SaveResult(success=True)
        self.error = error
        self.closed = False

    async def save(self, snapshot, baked_artifact=None):
        self.saved.append((snapshot, baked_artifact))
        if self.error is not None:
            raise self.error
        return self.result

    async def close(self):
        self.closed = True


def draw_rectangle(session, start=(10, 10), end=(100, 50)):
    session.dispatch(SelectTool(ToolMode.RECTANGLE))
    session.dispatch(PointerDown(*start))
    session.dispatch(PointerMove(*end))
    return session.dispatch(PointerUp(*end))


@pytest.fixture
def session(settings):
    return MarkupSession(
        initial_layers=[Layer(name="Markup", id="layer-a")],
        available_revisions=[1, 2],
        user="alice",
        page_count=3,
        settings=settings,
    )


def test_dispatch_logs_and_notifies(session):
    seen = []
    session.subscribe(lambda command, result: seen.append((command.command_name, result)))

    session.dispatch(SelectTool(ToolMode.PEN))

    assert session.command_log == [SelectTool(ToolMode.PEN)]
    assert seen == [("SelectTool", True)]


def test_unsupported_command_raises(session):
    @dataclass(frozen=True)
    class Teleport(Command):
        pass

    with pytest.raises(TypeError):
        session.dispatch(Teleport())


def test_draw_undo_redo(session):
    ann = draw_rectangle(session)
    assert (ann.x, ann.y, ann.width, ann.height) == (10, 10, 90, 40)
    assert session.can_undo()

    assert session.dispatch(Undo()) is True
    assert len(session.store) == 0
    assert session.can_redo()

    assert session.dispatch(Redo()) is True
    assert [a.id for a in session.store] == [ann.id]
    assert session.dispatch(Redo()) is False


def test_undo_clears_stale_selection(session):
    ann = draw_rectangle(session)
    session.dispatch(SelectTool(ToolMode.SELECT))
    session.dispatch(PointerDown(20, 20))
    assert session.tools.selected_id == ann.id

    session.dispatch(Undo())
    assert session.tools.selected_id is None


def test_key_press_goes_through_shortcut_table(session):
    session.dispatch(KeyPress(KeyInput("c")))
    assert session.tools.active_tool == ToolMode.CIRCLE

    draw_rectangle(session)
    session.dispatch(KeyPress(KeyInput("z", ctrl=True)))
    assert len(session.store) == 0

    assert session.dispatch(KeyPress(KeyInput("q"))) is None


def test_new_annotations_use_selected_layer_and_revision(session):
    session.dispatch(SelectRevision(2))
    ann = draw_rectangle(session)
    assert ann.layer_id == "layer-a"
    assert ann.revision_number == 2
    assert ann.created_by == "alice"


def test_revision_selection_does_not_filter_rendering(session):
    draw_rectangle(session)
    session.dispatch(SelectRevision(2))
    assert len(session.engine.visible_annotations(1)) == 1


def test_hidden_layer_keeps_store_length(session):
    draw_rectangle(session)
    session.dispatch(ToggleLayerVisibility("layer-a"))
    assert session.engine.visible_annotations(1) == []
    assert len(session.store) == 1


def test_view_only_session(settings):
    session = MarkupSession(permissions=UserPermissions.view_only(), settings=settings)

    assert session.dispatch(SelectTool(ToolMode.PEN)) is False
    assert session.tools.active_tool == ToolMode.SELECT
    with pytest.raises(PermissionDeniedError):
        session.dispatch(CreateLayer("Mine"))
    with pytest.raises(PermissionDeniedError):
        session.dispatch(SelectRevision(1))
    with pytest.raises(PermissionDeniedError):
        session.dispatch(ToggleLayerLock("layer-a"))
    with pytest.raises(PermissionDeniedError):
        session.dispatch(RestoreVersion(1))
    with pytest.raises(PermissionDeniedError):
        session.dispatch(Undo())
    with pytest.raises(PermissionDeniedError):
        session.dispatch(Redo())
    with pytest.raises(PermissionDeniedError):
        session.dispatch(Save())


def test_history_commands_need_edit_rights(settings):
    session = MarkupSession(permissions=UserPermissions(can_edit=False), settings=settings)
    with pytest.raises(PermissionDeniedError):
        session.dispatch(Undo())
    with pytest.raises(PermissionDeniedError):
        session.dispatch(Redo())
    # Saving is still allowed outside view-only mode
    assert session.dispatch(Save()) is None


def test_create_layer_command_keeps_its_name_field():
    command = CreateLayer("Electrical", revision_number=2)
    assert command.name == "Electrical"
    assert command.command_name == "CreateLayer"


def test_create_layer_records_author(session):
    layer = session.dispatch(CreateLayer("Electrical", revision_number=2))
    assert layer.created_by == "alice"
    assert session.layers.selected_layer_id == layer.id


def test_locked_layer_blocks_drawing(session):
    session.dispatch(ToggleLayerLock("layer-a"))
    assert draw_rectangle(session) is None
    assert len(session.store) == 0


def test_version_restore_round_trip(session):
    ann = draw_rectangle(session)
    version = session.dispatch(CreateVersion("Before cleanup"))
    session.dispatch(DeleteAnnotation(ann.id))
    assert len(session.store) == 0

    assert session.dispatch(RestoreVersion(version.version_number)) is True
    assert session.store.annotations == version.annotations

    # Restore is undoable like any other mutation
    session.dispatch(Undo())
    assert len(session.store) == 0


def test_restore_unknown_version_is_a_no_op(session):
    draw_rectangle(session)
    assert session.dispatch(RestoreVersion(42)) is False
    assert len(session.store) == 1


def test_zoom_is_clamped_and_stepped(session):
    assert session.dispatch(SetZoom(130)) == 125
    assert session.tools.zoom == 1.25
    assert session.dispatch(SetZoom(1000)) == 400
    assert session.dispatch(ZoomIn()) == 400
    assert session.dispatch(SetZoom(25)) == 25
    assert session.dispatch(ZoomOut()) == 25
    assert session.dispatch(ResetZoom()) == 100


def test_page_navigation_is_clamped(session):
    assert session.dispatch(GoToPage(10)) == 3
    assert session.page == 3
    assert session.dispatch(GoToPage(0)) == 1


def test_update_tool_settings(session):
    session.dispatch(UpdateToolSettings({"shape_color": "#00FF00"}))
    assert draw_rectangle(session).color == "#00FF00"
    with pytest.raises(TypeError):
        session.dispatch(UpdateToolSettings({"sparkle": True}))


def test_save_without_endpoint_does_nothing(session):
    assert session.dispatch(Save()) is None


def test_persisted_snapshot_shape(session):
    draw_rectangle(session)
    data = session.persisted_snapshot().to_dict()
    assert set(data) == {"annotations", "layers", "revisionNumber", "timestamp"}
    assert data["annotations"][0]["type"] == "rectangle"
    assert data["layers"][0]["id"] == "layer-a"


def test_replay_reproduces_geometry(session, settings):
    draw_rectangle(session)
    draw_rectangle(session, (5, 5), (20, 30))
    session.dispatch(Undo())

    replica = MarkupSession(initial_layers=[Layer(name="Markup", id="layer-a")],
                            settings=settings)
    replica.replay(session.command_log)

    assert [a.bounds() for a in replica.store] == [a.bounds() for a in session.store]


@pytest.mark.asyncio
async def test_edits_autosave_and_create_versions(settings):
    endpoint = RecordingEndpoint()
    session = MarkupSession(endpoint=endpoint, user="alice", settings=settings)

    draw_rectangle(session)
    draw_rectangle(session, (0, 0), (5, 5))
    assert session.status == SaveStatus.UNSAVED

    await asyncio.sleep(0.1)

    assert len(endpoint.saved) == 1
    snapshot, baked = endpoint.saved[0]
    assert len(snapshot.annotations) == 2
    assert baked is None
    assert session.status == SaveStatus.SAVED
    assert session.versions.latest().description.startswith("Saved at")
    session.close()


@pytest.mark.asyncio
async def test_baker_output_is_sent_with_the_snapshot(settings):
    endpoint = RecordingEndpoint()
    baked_for = []

    async def baker(annotations):
        baked_for.append(len(annotations))
        return b"%PDF-baked"

    session = MarkupSession(endpoint=endpoint, baker=baker, settings=settings)
    draw_rectangle(session)

    assert await session.save_now() is True
    assert endpoint.saved[0][1] == b"%PDF-baked"
    assert baked_for == [1]
    session.close()


@pytest.mark.asyncio
async def test_failed_save_keeps_annotations(settings):
    endpoint = RecordingEndpoint(error=PersistenceError("offline"))
    session = MarkupSession(endpoint=endpoint, settings=settings)
    ann = draw_rectangle(session)

    assert await session.save_now() is False
    assert session.status == SaveStatus.UNSAVED
    assert session.versions.count == 0
    assert session.store.get(ann.id) is not None
    session.close()


@pytest.mark.asyncio
async def test_version_on_save_can_be_disabled(settings):
    settings.version_on_save = False
    session = MarkupSession(endpoint=RecordingEndpoint(), settings=settings)
    draw_rectangle(session)
    await session.save_now()
    assert session.versions.count == 0
    session.close()


@pytest.mark.asyncio
async def test_save_command_schedules_immediate_save(settings):
    endpoint = RecordingEndpoint()
    session = MarkupSession(endpoint=endpoint, settings=settings)
    draw_rectangle(session)

    task = session.dispatch(Save())
    assert await task is True
    assert len(endpoint.saved) == 1
    session.close()


@pytest.mark.asyncio
async def test_aclose_closes_endpoint(settings):
    endpoint = RecordingEndpoint()
    session = MarkupSession(endpoint=endpoint, settings=settings)
    await session.aclose()
    assert endpoint.closed


def test_replay_of_key_presses_matches_live_session(session, settings):
    draw_rectangle(session)
    draw_rectangle(session, (5, 5), (20, 30))
    session.dispatch(KeyPress(KeyInput("z", ctrl=True)))
    assert len(session.store) == 1

    assert not any(isinstance(c, KeyPress) for c in session.command_log)
    assert Undo() in session.command_log

    replica = MarkupSession(initial_layers=[Layer(name="Markup", id="layer-a")],
                            settings=settings)
    replica.replay(session.command_log)

    assert [a.bounds() for a in replica.store] == [a.bounds() for a in session.store]
