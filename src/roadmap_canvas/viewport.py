"""Viewport transform for Roadmap-Canvas.

Maps between virtual-canvas space and screen space::

    screen = virtual * zoom + pan
    virtual = (screen - pan) / zoom

Zoom is a free scale about the canvas origin: changing it never touches
pan, so the visual center of a zoom is the origin, not the cursor.
Pan is unclamped; the virtual canvas is larger than any useful pan range.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .models import Position, ViewportState

logger = logging.getLogger(__name__)


MIN_ZOOM = 0.1
MAX_ZOOM = 3.0
ZOOM_STEP = 0.1
WHEEL_ZOOM_STEP = 0.05

# Node drags are suppressed below this zoom.
DRAG_MIN_ZOOM = 0.5

# Where the anchor block lands on first layout, as viewport fractions.
ANCHOR_FRACTION_X = 0.65
ANCHOR_FRACTION_Y = 0.5


@dataclass
class ViewportOptions:
    """Tunables for zoom limits, steps, and auto-centering."""
    min_zoom: float = MIN_ZOOM
    max_zoom: float = MAX_ZOOM
    zoom_step: float = ZOOM_STEP
    wheel_zoom_step: float = WHEEL_ZOOM_STEP
    drag_min_zoom: float = DRAG_MIN_ZOOM
    anchor_fraction_x: float = ANCHOR_FRACTION_X
    anchor_fraction_y: float = ANCHOR_FRACTION_Y


class ViewportTransform:
    """Owns a ``ViewportState`` and applies pan/zoom input to it.

    The state object is shared by reference; callers may read it at any
    time but should mutate it only through this class.
    """

    def __init__(
        self,
        state: Optional[ViewportState] = None,
        options: Optional[ViewportOptions] = None,
    ):
        self.state = state if state is not None else ViewportState()
        self.options = options or ViewportOptions()
        self._auto_centered = False

    # --- zoom ---

    def clamp_zoom(self, zoom: float) -> float:
        return max(self.options.min_zoom, min(self.options.max_zoom, zoom))

    def zoom_by(self, delta: float) -> float:
        """Add ``delta`` to zoom, clamped.  Pan is left unchanged."""
        self.state.zoom = self.clamp_zoom(self.state.zoom + delta)
        return self.state.zoom

    def set_zoom(self, zoom: float) -> float:
        self.state.zoom = self.clamp_zoom(zoom)
        return self.state.zoom

    def zoom_in(self) -> float:
        return self.zoom_by(self.options.zoom_step)

    def zoom_out(self) -> float:
        return self.zoom_by(-self.options.zoom_step)

    def wheel(self, delta_y: float, modifier: bool) -> bool:
        """Modifier+wheel zoom.  Scrolling down zooms out.

        Returns False when the event is left to native scrolling.
        """
        if not modifier or delta_y == 0:
            return False
        step = self.options.wheel_zoom_step
        self.zoom_by(-step if delta_y > 0 else step)
        return True

    # --- pan ---

    def pan_by(self, dx: float, dy: float) -> None:
        self.state.pan_x += dx
        self.state.pan_y += dy

    def reset(self) -> None:
        """Identity zoom and pan.  Does not re-arm auto-centering."""
        self.state.zoom = 1.0
        self.state.pan_x = 0.0
        self.state.pan_y = 0.0

    def reset_for_new_graph(self) -> None:
        """Identity transform and re-arm the one-time auto-centering."""
        self.reset()
        self._auto_centered = False

    def resize(self, width: float, height: float) -> None:
        self.state.width = width
        self.state.height = height

    # --- coordinate mapping ---

    def screen_to_virtual(self, sx: float, sy: float) -> tuple[float, float]:
        z = self.state.zoom
        return ((sx - self.state.pan_x) / z, (sy - self.state.pan_y) / z)

    def virtual_to_screen(self, vx: float, vy: float) -> tuple[float, float]:
        z = self.state.zoom
        return (vx * z + self.state.pan_x, vy * z + self.state.pan_y)

    def screen_delta_to_virtual(self, dx: float, dy: float) -> tuple[float, float]:
        """Scale a pointer delta so drags track the pointer 1:1 on screen."""
        z = self.state.zoom
        return (dx / z, dy / z)

    def allows_drag(self) -> bool:
        return self.state.zoom >= self.options.drag_min_zoom

    # --- auto-centering ---

    @property
    def auto_centered(self) -> bool:
        return self._auto_centered

    def auto_center(self, anchor: Optional[Position]) -> bool:
        """Place ``anchor`` at the configured viewport fraction, once.

        Applies only while pan is still at identity and only the first
        time it succeeds for the current graph.
        """
        if self._auto_centered or anchor is None:
            return False
        if not self.state.is_pan_identity():
            return False

        target_x = self.state.width * self.options.anchor_fraction_x
        target_y = self.state.height * self.options.anchor_fraction_y
        self.state.pan_x = target_x - anchor.x * self.state.zoom
        self.state.pan_y = target_y - anchor.y * self.state.zoom
        self._auto_centered = True

        logger.debug(
            f"Auto-centered anchor ({anchor.x:.0f}, {anchor.y:.0f}) "
            f"-> pan ({self.state.pan_x:.1f}, {self.state.pan_y:.1f})"
        )
        return True
