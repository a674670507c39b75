"""Tests for the tool state machine."""

from inkmark.core.annotations.models import (
    ArrowAnnotation,
    CircleAnnotation,
    RectangleAnnotation,
    StampAnnotation,
    StampType,
    UserPermissions,
)
from inkmark.core.tools.models import ToolMode, ToolState


def drag(machine, start, end, via=None):
    machine.pointer_down(*start)
    for point in via or []:
        machine.pointer_move(*point)
    return machine.pointer_up(*end)


def test_rectangle_geometry_is_normalized(machine):
    machine.select_tool(ToolMode.RECTANGLE)
    forward = drag(machine, (10, 10), (100, 50))
    backward = drag(machine, (100, 50), (10, 10))

    for ann in (forward, backward):
        assert (ann.x, ann.y, ann.width, ann.height) == (10, 10, 90, 40)
    assert len(machine.store) == 2
    assert machine.state == ToolState.SELECT


def test_bounding_box_tools_never_mutate_during_move(machine):
    machine.select_tool(ToolMode.HIGHLIGHT)
    machine.pointer_down(10, 10)
    assert machine.pointer_move(40, 40) is True
    assert len(machine.store) == 0

    preview = machine.preview()
    assert preview.width == 30
    assert preview.id not in machine.store

    machine.pointer_up(40, 40)
    assert len(machine.store) == 1
    assert machine.preview() is None


def test_underline_uses_top_edge_of_drag(machine):
    machine.select_tool(ToolMode.UNDERLINE)
    ann = drag(machine, (50, 30), (10, 20))
    assert (ann.x, ann.y, ann.width) == (10, 20, 40)


def test_circle_radius_is_euclidean_distance(machine):
    machine.select_tool(ToolMode.CIRCLE)
    ann = drag(machine, (0, 0), (3, 4))
    assert isinstance(ann, CircleAnnotation)
    assert (ann.center_x, ann.center_y, ann.radius) == (0, 0, 5)


def test_arrow_keeps_start_and_end(machine):
    machine.select_tool(ToolMode.ARROW)
    ann = drag(machine, (80, 10), (20, 60))
    assert isinstance(ann, ArrowAnnotation)
    assert (ann.start_x, ann.start_y, ann.end_x, ann.end_y) == (80, 10, 20, 60)


def test_zero_size_gestures_are_discarded(machine):
    machine.select_tool(ToolMode.RECTANGLE)
    assert drag(machine, (10, 10), (10, 10)) is None
    machine.select_tool(ToolMode.ARROW)
    assert drag(machine, (10, 10), (10, 10)) is None
    assert len(machine.store) == 0


def test_single_point_pen_creates_nothing(machine):
    machine.select_tool(ToolMode.PEN)
    assert drag(machine, (5, 5), (5, 5)) is None
    assert len(machine.store) == 0


def test_pen_accumulates_points(machine):
    machine.select_tool(ToolMode.PEN)
    ann = drag(machine, (0, 0), (2, 2), via=[(1, 1), (2, 2)])
    assert ann.points == [(0, 0), (1, 1), (2, 2)]


def test_new_annotations_are_tagged(machine):
    machine.layers.create_layer("Electrical")
    machine.page = 3
    machine.select_tool(ToolMode.RECTANGLE)
    ann = drag(machine, (0, 0), (10, 10))
    assert ann.layer_id == machine.layers.selected_layer_id
    assert ann.revision_number == 1
    assert ann.created_by == "alice"
    assert ann.page == 3


def test_commit_pushes_history_first(machine):
    machine.select_tool(ToolMode.RECTANGLE)
    drag(machine, (0, 0), (10, 10))
    assert machine.history.can_undo(machine.store.annotations)
    assert machine.history.undo(machine.store.annotations) == []


def test_on_committed_runs_once_per_commit(machine):
    calls = []
    machine.on_committed = lambda: calls.append(1)
    machine.select_tool(ToolMode.RECTANGLE)
    drag(machine, (0, 0), (10, 10))
    drag(machine, (5, 5), (5, 5))
    assert len(calls) == 1


def test_view_only_cannot_pick_drawing_tools(machine):
    machine.permissions = UserPermissions.view_only()
    assert machine.select_tool(ToolMode.PEN) is False
    assert machine.active_tool == ToolMode.SELECT
    assert machine.select_tool(ToolMode.MOVE) is True


def test_drawing_into_locked_layer_is_rejected(machine):
    machine.select_tool(ToolMode.RECTANGLE)
    machine.layers.toggle_lock("layer-a")
    assert machine.pointer_down(0, 0) is False
    assert machine.pointer_up(10, 10) is None
    assert len(machine.store) == 0


def test_select_hit_tests_and_clears(machine):
    machine.store.add(RectangleAnnotation(id="r", x=10, y=10, width=50, height=50))
    machine.pointer_down(20, 20)
    machine.pointer_up(20, 20)
    assert machine.selected_id == "r"
    assert machine.selected.id == "r"

    machine.pointer_down(200, 200)
    assert machine.selected_id is None


def test_move_translates_annotation(machine):
    machine.store.add(RectangleAnnotation(id="r", x=10, y=10, width=50, height=50))
    machine.select_tool(ToolMode.MOVE)
    moved = drag(machine, (20, 20), (25, 30))
    assert (moved.x, moved.y) == (15, 20)
    assert moved.updated_by == "alice"
    assert machine.history.undo(machine.store.annotations)[0].x == 10


def test_move_is_blocked_on_locked_layer(machine):
    machine.store.add(RectangleAnnotation(id="r", layer_id="layer-b", x=10, y=10,
                                          width=50, height=50))
    machine.layers.toggle_lock("layer-b")
    machine.select_tool(ToolMode.MOVE)
    assert drag(machine, (20, 20), (40, 40)) is None
    assert machine.store.get("r").x == 10


def test_eraser_deletes_topmost(machine):
    machine.store.add(RectangleAnnotation(id="low", x=0, y=0, width=50, height=50))
    machine.store.add(RectangleAnnotation(id="top", x=0, y=0, width=50, height=50))
    machine.select_tool(ToolMode.ERASER)
    machine.pointer_down(10, 10)
    assert [a.id for a in machine.store] == ["low"]


def test_eraser_respects_lock_and_permission(machine):
    machine.store.add(RectangleAnnotation(id="r", layer_id="layer-b", width=50, height=50))
    machine.layers.toggle_lock("layer-b")
    machine.select_tool(ToolMode.ERASER)
    machine.pointer_down(10, 10)
    assert "r" in machine.store

    machine.layers.toggle_lock("layer-b")
    machine.permissions = UserPermissions(can_delete=False)
    machine.pointer_down(10, 10)
    assert "r" in machine.store


def test_stamp_click_places_selected_stamp(machine):
    machine.settings.stamp_type = StampType.REVISE
    machine.select_tool(ToolMode.STAMP)
    ann = drag(machine, (30, 40), (30, 40))
    assert isinstance(ann, StampAnnotation)
    assert (ann.x, ann.y, ann.stamp_type) == (30, 40, StampType.REVISE)


def test_place_stamp_directly(machine):
    ann = machine.place_stamp(5, 6, StampType.DRAFT)
    assert ann.stamp_type == StampType.DRAFT
    assert ann.id in machine.store


def test_text_click_then_place(machine):
    machine.select_tool(ToolMode.TEXT)
    assert drag(machine, (12, 34), (12, 34)) is None
    assert machine.pending_anchor == (1, (12, 34))

    ann = machine.place_text("Check dimension")
    assert (ann.x, ann.y, ann.text) == (12, 34, "Check dimension")
    assert machine.pending_anchor is None


def test_blank_text_and_missing_anchor_are_discarded(machine):
    assert machine.place_text("Hello") is None
    machine.select_tool(ToolMode.TEXT)
    drag(machine, (1, 1), (1, 1))
    assert machine.place_text("   ") is None
    assert len(machine.store) == 0


def test_place_note_at_explicit_point(machine):
    ann = machine.place_note("See detail 4", 50, 60)
    assert (ann.x, ann.y) == (50, 60)


def test_cancel_abandons_gesture(machine):
    machine.select_tool(ToolMode.RECTANGLE)
    machine.pointer_down(0, 0)
    machine.pointer_move(20, 20)
    machine.cancel()
    assert machine.state == ToolState.SELECT
    assert machine.pointer_up(20, 20) is None
    assert len(machine.store) == 0


def test_pointer_is_clamped_to_page(machine):
    machine.page_size = lambda page: (100, 100)
    machine.select_tool(ToolMode.RECTANGLE)
    ann = drag(machine, (-20, 10), (150, 150))
    assert (ann.x, ann.y, ann.width, ann.height) == (0, 10, 100, 90)


def test_update_metadata_stamps_author(machine):
    machine.store.add(RectangleAnnotation(id="r", width=1, height=1))
    ann = machine.update_metadata("r", title="Door", description="Swing reversed")
    assert (ann.title, ann.description, ann.updated_by) == ("Door", "Swing reversed", "alice")
    assert ann.updated_at is not None


def test_delete_selected(machine):
    machine.store.add(RectangleAnnotation(id="r", width=20, height=20))
    machine.pointer_down(5, 5)
    assert machine.delete_selected() is True
    assert machine.selected_id is None
    assert machine.delete_selected() is False
