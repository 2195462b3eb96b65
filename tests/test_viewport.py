"""Tests for the viewport transform."""

import pytest

from roadmap_canvas.models import Position, ViewportState
from roadmap_canvas.viewport import MAX_ZOOM, MIN_ZOOM, ViewportOptions, ViewportTransform


@pytest.fixture
def viewport():
    return ViewportTransform(ViewportState(width=1000, height=600))


def test_zoom_is_clamped(viewport):
    assert viewport.zoom_by(10) == MAX_ZOOM
    assert viewport.zoom_by(-10) == MIN_ZOOM


def test_zoom_leaves_pan_unchanged(viewport):
    viewport.pan_by(40, -25)
    viewport.zoom_by(0.5)
    assert (viewport.state.pan_x, viewport.state.pan_y) == (40, -25)


def test_pan_is_unclamped(viewport):
    viewport.pan_by(-100000, 250000)
    assert viewport.state.pan_x == -100000
    assert viewport.state.pan_y == 250000


@pytest.mark.parametrize("zoom,pan", [
    (1.0, (0, 0)),
    (0.1, (-1508.5, 200)),
    (2.75, (333.3, -77.7)),
    (3.0, (12, 99999)),
])
def test_screen_virtual_round_trip(viewport, zoom, pan):
    viewport.set_zoom(zoom)
    viewport.pan_by(*pan)
    for point in [(0, 0), (2340, 200), (-17.25, 4096.5)]:
        sx, sy = viewport.virtual_to_screen(*point)
        assert viewport.screen_to_virtual(sx, sy) == pytest.approx(point)


def test_screen_to_virtual_formula(viewport):
    viewport.set_zoom(2.0)
    viewport.pan_by(100, 50)
    assert viewport.screen_to_virtual(300, 250) == pytest.approx((100, 100))


def test_zoom_buttons_step_by_tenth(viewport):
    assert viewport.zoom_in() == pytest.approx(1.1)
    assert viewport.zoom_out() == pytest.approx(1.0)


def test_wheel_requires_modifier(viewport):
    assert viewport.wheel(120, modifier=False) is False
    assert viewport.state.zoom == 1.0

    assert viewport.wheel(-120, modifier=True) is True
    assert viewport.state.zoom == pytest.approx(1.05)
    viewport.wheel(120, modifier=True)
    assert viewport.state.zoom == pytest.approx(1.0)


def test_auto_center_places_anchor_at_fraction(viewport):
    anchor = Position(x=2340, y=200)
    assert viewport.auto_center(anchor) is True
    sx, sy = viewport.virtual_to_screen(anchor.x, anchor.y)
    assert sx == pytest.approx(650)
    assert sy == pytest.approx(300)


def test_auto_center_applies_once(viewport):
    viewport.auto_center(Position(x=100, y=100))
    viewport.reset()
    assert viewport.auto_center(Position(x=100, y=100)) is False
    assert viewport.state.is_pan_identity()


def test_auto_center_skipped_when_already_panned(viewport):
    viewport.pan_by(5, 0)
    assert viewport.auto_center(Position(x=100, y=100)) is False
    assert viewport.state.pan_x == 5


def test_reset_for_new_graph_rearms_auto_center(viewport):
    viewport.auto_center(Position(x=100, y=100))
    viewport.zoom_by(1)
    viewport.reset_for_new_graph()
    assert viewport.state.zoom == 1.0
    assert viewport.state.is_pan_identity()
    assert viewport.auto_center(Position(x=100, y=100)) is True


def test_drag_threshold():
    viewport = ViewportTransform(options=ViewportOptions(drag_min_zoom=0.5))
    viewport.set_zoom(0.5)
    assert viewport.allows_drag()
    viewport.set_zoom(0.4)
    assert not viewport.allows_drag()
