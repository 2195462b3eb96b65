"""Roadmap canvas controller: the interaction surface for a host UI.

``RoadmapCanvas`` owns the shared state of one open canvas and threads it
through the layout, viewport and interaction components:

    blocks     - the caller's ordered block list (read-mostly)
    positions  - PositionMap, written by layout and by drags
    viewport   - ViewportTransform around a ViewportState

All handlers are synchronous and meant to be called from a single event
thread.  Apart from ``on_layout_recompute`` (which surfaces
``DuplicateNodeError``), none of them raise on bad input.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .interaction import (
    DragCallback,
    InteractionController,
    InteractionState,
    PointerDown,
    PointerEvent,
    PointerMove,
    PointerTarget,
    PointerUp,
)
from .models import Position, PositionMap, Progress, RoadmapBlock, compute_progress
from .normalize import AdjacencyIndex
from .organize import LayoutOptions, LayoutResult, organize_roadmap
from .renderer import RenderFrame, compute_frame
from .viewport import ViewportOptions, ViewportTransform

logger = logging.getLogger(__name__)


BlocksCallback = Callable[[list[RoadmapBlock]], None]


class RoadmapCanvas:
    """One displayed roadmap: blocks, positions, viewport, pointer FSM.

    ``on_node_dragged`` receives the block id and its new virtual position
    after every pointer-driven move.
    """

    def __init__(
        self,
        blocks: Optional[list[RoadmapBlock]] = None,
        layout_options: Optional[LayoutOptions] = None,
        viewport_options: Optional[ViewportOptions] = None,
        on_blocks_changed: Optional[BlocksCallback] = None,
        on_node_dragged: Optional[DragCallback] = None,
        title: str = "",
    ):
        self.layout_options = layout_options or LayoutOptions()
        self.viewport = ViewportTransform(options=viewport_options)
        self.positions: PositionMap = {}
        self.blocks: list[RoadmapBlock] = []
        self.index: AdjacencyIndex = AdjacencyIndex()
        self.title = title
        self.on_blocks_changed = on_blocks_changed
        self.interaction = InteractionController(
            self.positions, self.viewport, on_drag=on_node_dragged, block_ids=set()
        )
        self.last_layout: Optional[LayoutResult] = None
        if blocks:
            self.on_layout_recompute(blocks)

    # --- layout ---

    def on_layout_recompute(self, blocks: list[RoadmapBlock]) -> LayoutResult:
        """Lay out ``blocks``; existing positions are kept.

        On the first pass that produces positions, the first block in
        input order is auto-centered in the viewport.
        """
        result = organize_roadmap(blocks, self.positions, self.layout_options)
        self.blocks = blocks
        self.index = result.index
        self.interaction.block_ids = {block.id for block in blocks}
        self.last_layout = result

        if blocks:
            self.viewport.auto_center(self.positions.get(blocks[0].id))
        return result

    def append_blocks(self, new_blocks: list[RoadmapBlock]) -> LayoutResult:
        """Append blocks that arrived after the initial layout."""
        return self.on_layout_recompute(self.blocks + list(new_blocks))

    def reset(self) -> None:
        """Drop the graph and return the viewport to identity."""
        self.interaction.cancel()
        self.blocks = []
        self.positions.clear()
        self.interaction.block_ids = set()
        self.index = AdjacencyIndex()
        self.last_layout = None
        self.viewport.reset_for_new_graph()
        logger.info("Canvas reset")

    @property
    def is_empty(self) -> bool:
        return not self.blocks

    def levels(self) -> dict[int, int]:
        if self.last_layout is None:
            return {}
        return dict(self.last_layout.assignment.levels)

    # --- blocks ---

    def _find_block(self, block_id: int) -> Optional[RoadmapBlock]:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def on_node_toggle_complete(self, block_id: int) -> bool:
        """Flip a block's ``completed`` flag and notify the owner.

        Returns False if the id is unknown.
        """
        block = self._find_block(block_id)
        if block is None:
            logger.debug(f"Toggle on unknown block {block_id}; ignored")
            return False
        block.completed = not block.completed
        if self.on_blocks_changed is not None:
            self.on_blocks_changed(self.blocks)
        return True

    def on_node_drag(self, block_id: int, position: Position) -> bool:
        """Set a block's virtual position directly (last writer wins)."""
        current = self.positions.get(block_id)
        if current is None:
            logger.debug(f"Drag on unknown block {block_id}; ignored")
            return False
        current.x = position.x
        current.y = position.y
        return True

    def progress(self) -> Progress:
        return compute_progress(self.blocks)

    # --- viewport ---

    def on_pan(self, dx: float, dy: float) -> None:
        self.viewport.pan_by(dx, dy)

    def on_zoom(self, delta: float) -> float:
        return self.viewport.zoom_by(delta)

    def on_wheel(self, delta_y: float, modifier: bool = False) -> bool:
        return self.viewport.wheel(delta_y, modifier)

    def zoom_in(self) -> float:
        return self.viewport.zoom_in()

    def zoom_out(self) -> float:
        return self.viewport.zoom_out()

    def on_reset_view(self) -> None:
        self.viewport.reset()

    def on_resize(self, width: float, height: float) -> None:
        self.viewport.resize(width, height)

    # --- pointer events ---

    def pointer_down(
        self,
        x: float,
        y: float,
        target: PointerTarget = PointerTarget.BACKGROUND,
        block_id: Optional[int] = None,
    ) -> InteractionState:
        return self.dispatch(PointerDown(x, y, target, block_id))

    def pointer_move(self, x: float, y: float) -> InteractionState:
        return self.dispatch(PointerMove(x, y))

    def pointer_up(self, x: float = 0.0, y: float = 0.0) -> InteractionState:
        return self.dispatch(PointerUp(x, y))

    def dispatch(self, event: PointerEvent) -> InteractionState:
        self.interaction.dispatch(event)
        return self.interaction.state

    # --- rendering ---

    def frame(self) -> RenderFrame:
        """Screen-space snapshot for the current state.  Not cached."""
        return compute_frame(
            self.blocks,
            self.positions,
            self.viewport.state,
            index=self.index,
            options=self.layout_options,
            title=self.title,
        )
