"""Tests for the RoadmapCanvas interaction surface."""

import pytest

from roadmap_canvas.controller import RoadmapCanvas
from roadmap_canvas.interaction import InteractionState, PointerTarget
from roadmap_canvas.models import Position
from roadmap_canvas.normalize import DuplicateNodeError
from conftest import make_blocks


@pytest.fixture
def canvas(diamond_blocks):
    canvas = RoadmapCanvas()
    canvas.on_resize(1280, 800)
    canvas.on_layout_recompute(diamond_blocks)
    return canvas


def _snapshot(positions):
    return {k: (v.x, v.y) for k, v in positions.items()}


def test_first_layout_auto_centers_first_block(canvas):
    sx, sy = canvas.viewport.virtual_to_screen(canvas.positions[1].x, canvas.positions[1].y)
    assert sx == pytest.approx(1280 * 0.65)
    assert sy == pytest.approx(800 * 0.5)
    assert canvas.levels() == {1: 0, 2: 1, 3: 1, 4: 2}


def test_toggle_twice_restores_flag_and_positions(canvas):
    before = _snapshot(canvas.positions)
    flag = canvas.blocks[1].completed

    assert canvas.on_node_toggle_complete(2) is True
    assert canvas.blocks[1].completed is (not flag)
    canvas.on_node_toggle_complete(2)

    assert canvas.blocks[1].completed is flag
    assert _snapshot(canvas.positions) == before


def test_toggle_propagates_to_owner(diamond_blocks):
    updates = []
    canvas = RoadmapCanvas(diamond_blocks, on_blocks_changed=updates.append)
    canvas.on_node_toggle_complete(3)
    assert len(updates) == 1
    assert updates[0] is diamond_blocks
    assert diamond_blocks[2].completed is True
    assert canvas.progress().completed == 1
    assert canvas.progress().percentage == pytest.approx(25.0)


def test_toggle_unknown_block_is_ignored(canvas):
    assert canvas.on_node_toggle_complete(99) is False


def test_drag_through_pointer_events(canvas):
    canvas.on_zoom(1.0)  # zoom 2.0
    start = canvas.positions[3].model_copy()
    pan_before = (canvas.viewport.state.pan_x, canvas.viewport.state.pan_y)

    assert canvas.pointer_down(500, 500, PointerTarget.BLOCK, 3) is InteractionState.DRAGGING
    canvas.pointer_move(520, 460)
    assert canvas.pointer_up() is InteractionState.IDLE

    assert canvas.positions[3].x == pytest.approx(start.x + 10)
    assert canvas.positions[3].y == pytest.approx(start.y - 20)
    assert (canvas.viewport.state.pan_x, canvas.viewport.state.pan_y) == pan_before


def test_background_drag_pans(canvas):
    pan_before = (canvas.viewport.state.pan_x, canvas.viewport.state.pan_y)
    canvas.pointer_down(0, 0)
    canvas.pointer_move(15, -5)
    canvas.pointer_up()
    assert canvas.viewport.state.pan_x == pytest.approx(pan_before[0] + 15)
    assert canvas.viewport.state.pan_y == pytest.approx(pan_before[1] - 5)


def test_on_node_drag_sets_position(canvas):
    assert canvas.on_node_drag(4, Position(x=10, y=20)) is True
    assert canvas.positions[4] == Position(x=10, y=20)
    assert canvas.on_node_drag(404, Position(x=1, y=1)) is False
    assert 404 not in canvas.positions


def test_append_keeps_positions_and_viewport(canvas):
    canvas.on_node_drag(2, Position(x=1, y=1))
    canvas.on_pan(30, 30)
    before = _snapshot(canvas.positions)
    pan = (canvas.viewport.state.pan_x, canvas.viewport.state.pan_y)

    canvas.append_blocks(make_blocks([(5, []), (6, [5])]))

    for block_id, xy in before.items():
        assert _snapshot(canvas.positions)[block_id] == xy
    assert 5 in canvas.positions and 6 in canvas.positions
    assert (canvas.viewport.state.pan_x, canvas.viewport.state.pan_y) == pan


def test_reset_view_does_not_recenter(canvas):
    canvas.on_zoom(0.5)
    canvas.on_reset_view()
    canvas.on_layout_recompute(canvas.blocks)
    assert canvas.viewport.state.zoom == 1.0
    assert canvas.viewport.state.is_pan_identity()


def test_zoom_out_of_range_is_clamped(canvas):
    assert canvas.on_zoom(-50) == pytest.approx(0.1)
    assert canvas.on_zoom(50) == pytest.approx(3.0)


def test_reset_clears_graph_and_rearms_centering(canvas, chain_blocks):
    canvas.pointer_down(10, 10, PointerTarget.BLOCK, 1)
    canvas.reset()
    assert canvas.is_empty
    assert canvas.positions == {}
    assert canvas.interaction.state is InteractionState.IDLE
    assert canvas.viewport.state.is_pan_identity()

    canvas.on_layout_recompute(chain_blocks)
    assert not canvas.viewport.state.is_pan_identity()


def test_duplicate_ids_surface_to_caller():
    canvas = RoadmapCanvas()
    with pytest.raises(DuplicateNodeError):
        canvas.on_layout_recompute(make_blocks([(1, []), (1, [])]))
    assert canvas.positions == {}


def test_empty_graph_is_a_state_not_an_error():
    canvas = RoadmapCanvas([])
    frame = canvas.frame()
    assert canvas.is_empty
    assert frame.is_empty
    assert frame.progress.total == 0


def test_pointer_drags_are_reported_to_owner(diamond_blocks):
    seen = []
    canvas = RoadmapCanvas(on_node_dragged=lambda i, p: seen.append((i, p.x, p.y)))
    canvas.on_layout_recompute(diamond_blocks)
    start = canvas.positions[2].model_copy()

    canvas.pointer_down(0, 0, PointerTarget.BLOCK, 2)
    canvas.pointer_move(30, 40)
    canvas.pointer_up()

    assert seen == [(2, start.x + 30, start.y + 40)]


def test_removed_block_cannot_be_dragged(canvas, diamond_blocks):
    canvas.on_layout_recompute(diamond_blocks[:2])
    assert 4 in canvas.positions

    assert canvas.pointer_down(0, 0, PointerTarget.BLOCK, 4) is InteractionState.IDLE
    assert canvas.pointer_down(0, 0, PointerTarget.BLOCK, 1) is InteractionState.DRAGGING
