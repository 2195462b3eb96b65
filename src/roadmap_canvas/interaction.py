"""Pointer interaction state machine for Roadmap-Canvas.

One machine covers both kinds of pointer gesture on the canvas:

    IDLE --down on block-------> DRAGGING --up anywhere--> IDLE
    IDLE --down on background--> PANNING  --up anywhere--> IDLE

Events are queued and processed strictly in arrival order.  A move that
arrives while IDLE is a no-op.  Pointer-up is treated as a global event:
it ends whatever session is active, wherever it happens, so the machine
cannot get stuck in DRAGGING.

While DRAGGING, each move adds ``(delta / zoom)`` to the block's stored
virtual position and re-anchors at the new pointer position.  While
PANNING, each move adds the raw screen delta to the viewport pan.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from .models import Position, PositionMap
from .viewport import ViewportTransform

logger = logging.getLogger(__name__)


class InteractionState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    PANNING = "panning"


class PointerTarget(str, Enum):
    """What a pointer-down landed on."""
    BLOCK = "block"
    CONTROL = "control"        # an embedded control such as the completion toggle
    BACKGROUND = "background"


@dataclass(frozen=True)
class PointerDown:
    x: float
    y: float
    target: PointerTarget = PointerTarget.BACKGROUND
    block_id: Optional[int] = None


@dataclass(frozen=True)
class PointerMove:
    x: float
    y: float


@dataclass(frozen=True)
class PointerUp:
    x: float = 0.0
    y: float = 0.0


PointerEvent = Union[PointerDown, PointerMove, PointerUp]


@dataclass
class DragSession:
    """Lives from a pointer-down on a block to the next pointer-up."""
    block_id: int
    anchor_x: float
    anchor_y: float
    moved: bool = False


@dataclass
class PanSession:
    anchor_x: float
    anchor_y: float


DragCallback = Callable[[int, Position], None]


class InteractionController:
    """Explicit FSM driving block drags and background pans.

    ``positions`` and ``viewport`` are shared with the rest of the canvas
    and mutated in place.  ``on_drag`` is invoked with the block id and
    its new virtual position after every applied move.

    ``block_ids``, when set, restricts drags to the ids of the blocks
    currently displayed; positions of removed blocks stay in the map
    but cannot be picked up.
    """

    def __init__(
        self,
        positions: PositionMap,
        viewport: ViewportTransform,
        on_drag: Optional[DragCallback] = None,
        block_ids: Optional[set[int]] = None,
    ):
        self.positions = positions
        self.viewport = viewport
        self.on_drag = on_drag
        self.block_ids = block_ids
        self.state = InteractionState.IDLE
        self.drag: Optional[DragSession] = None
        self.pan: Optional[PanSession] = None
        self._queue: deque[PointerEvent] = deque()

    # --- queue ---

    def post(self, event: PointerEvent) -> None:
        self._queue.append(event)

    def process_pending(self) -> int:
        """Handle every queued event in order.  Returns how many were handled."""
        handled = 0
        while self._queue:
            self.handle(self._queue.popleft())
            handled += 1
        return handled

    def dispatch(self, event: PointerEvent) -> None:
        """Queue ``event`` and drain the queue."""
        self.post(event)
        self.process_pending()

    @property
    def pending(self) -> int:
        return len(self._queue)

    # --- transitions ---

    def handle(self, event: PointerEvent) -> None:
        if isinstance(event, PointerDown):
            self._on_down(event)
        elif isinstance(event, PointerMove):
            self._on_move(event)
        elif isinstance(event, PointerUp):
            self._on_up(event)

    def _on_down(self, event: PointerDown) -> None:
        if self.state is not InteractionState.IDLE:
            # A second button while a session is active; the session continues.
            return

        if event.target is PointerTarget.CONTROL:
            return

        if event.target is PointerTarget.BLOCK:
            if not self.viewport.allows_drag():
                logger.debug(
                    f"Drag suppressed at zoom {self.viewport.state.zoom:.2f}"
                )
                return
            if not self._is_draggable(event.block_id):
                logger.debug(f"Pointer-down on unknown block {event.block_id}; ignored")
                return
            self.drag = DragSession(event.block_id, event.x, event.y)
            self.state = InteractionState.DRAGGING
            return

        self.pan = PanSession(event.x, event.y)
        self.state = InteractionState.PANNING

    def _is_draggable(self, block_id: Optional[int]) -> bool:
        if block_id is None or block_id not in self.positions:
            return False
        return self.block_ids is None or block_id in self.block_ids

    def _on_move(self, event: PointerMove) -> None:
        if self.state is InteractionState.DRAGGING and self.drag is not None:
            self._drag_to(self.drag, event.x, event.y)
        elif self.state is InteractionState.PANNING and self.pan is not None:
            self.viewport.pan_by(event.x - self.pan.anchor_x, event.y - self.pan.anchor_y)
            self.pan.anchor_x = event.x
            self.pan.anchor_y = event.y

    def _drag_to(self, session: DragSession, x: float, y: float) -> None:
        position = self.positions.get(session.block_id)
        if position is None:
            # Block vanished mid-drag (graph reset); nothing to move.
            return
        dx, dy = self.viewport.screen_delta_to_virtual(
            x - session.anchor_x, y - session.anchor_y
        )
        position.x += dx
        position.y += dy
        session.anchor_x = x
        session.anchor_y = y
        session.moved = True
        if self.on_drag is not None:
            self.on_drag(session.block_id, position)

    def _on_up(self, event: PointerUp) -> None:
        if self.drag is not None and self.drag.moved:
            final = self.positions.get(self.drag.block_id)
            if final is not None:
                logger.debug(
                    f"Block {self.drag.block_id} dropped at ({final.x:.1f}, {final.y:.1f})"
                )
        self.cancel()

    def cancel(self) -> None:
        """Destroy any session and return to IDLE."""
        self.drag = None
        self.pan = None
        self.state = InteractionState.IDLE
