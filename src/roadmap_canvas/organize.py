"""
Layered organize algorithm for Roadmap-Canvas.

Topological layering with per-level centering, producing the "tree
descending levels" silhouette of a learning roadmap:

    level 0          [ 1 ]
    level 1      [ 2 ]   [ 3 ]
    level 2          [ 4 ]

Two passes:

  1. Layering - Kahn's algorithm assigns each block an integer level.
     Blocks left over after the queue drains (cycles, or components with
     no indegree-0 entry) are each placed one level below the deepest
     level assigned so far, in input order.  They do not propagate to
     their successors.
  2. Positioning - every level is laid out as a single row centered on
     the same vertical axis of the virtual canvas.

Positions are merged incrementally: a block that already has a recorded
position keeps it, so appending blocks never moves what the user has
already seen or dragged.

Spacing constants (virtual-canvas units):
  - Block: 320 wide, 200 tall
  - Gaps: 100 horizontal, 150 vertical
  - Virtual canvas: 5000 x 8000, rows centered at x = 2500, first row at y = 200
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

from .models import Position, PositionMap, RoadmapBlock
from .normalize import AdjacencyIndex, normalize_blocks

logger = logging.getLogger(__name__)


# --- Spacing constants ---

BLOCK_WIDTH = 320
BLOCK_HEIGHT = 200

HORIZONTAL_SPACING = 100
VERTICAL_SPACING = 150

VIRTUAL_CANVAS_WIDTH = 5000
VIRTUAL_CANVAS_HEIGHT = 8000

TOP_MARGIN = 200


@dataclass
class LayoutOptions:
    """Geometry used by the position assigner."""
    block_width: float = BLOCK_WIDTH
    block_height: float = BLOCK_HEIGHT
    horizontal_spacing: float = HORIZONTAL_SPACING
    vertical_spacing: float = VERTICAL_SPACING
    canvas_width: float = VIRTUAL_CANVAS_WIDTH
    canvas_height: float = VIRTUAL_CANVAS_HEIGHT
    top_margin: float = TOP_MARGIN

    @property
    def center_x(self) -> float:
        return self.canvas_width / 2


@dataclass
class LevelAssignment:
    """Result of the layering pass.

    ``groups[L]`` holds the ids on level ``L`` in enqueue order.
    """
    levels: dict[int, int] = field(default_factory=dict)
    groups: list[list[int]] = field(default_factory=list)

    @property
    def depth(self) -> int:
        return len(self.groups)


@dataclass
class LayoutResult:
    """Outcome of one organize pass."""
    index: AdjacencyIndex
    assignment: LevelAssignment
    computed: PositionMap
    placed: list[int] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Layering
# ---------------------------------------------------------------------------

def assign_levels(index: AdjacencyIndex) -> LevelAssignment:
    """
    Kahn-style topological layering.

    Steps:
    1. Copy indegrees (the index is not mutated)
    2. Seed a FIFO queue with every indegree-0 block at level 0
    3. Drain the queue; a successor whose indegree reaches 0 takes
       (current level + 1)
    4. Fallback: each block still without a level goes to
       (max level so far + 1) as a leaf, in input order
    """
    result = LevelAssignment()
    if index.is_empty:
        return result

    levels = result.levels
    groups = result.groups
    indegree = dict(index.indegree)

    def _place(block_id: int, level: int) -> None:
        levels[block_id] = level
        while len(groups) <= level:
            groups.append([])
        groups[level].append(block_id)

    # --- Step 2: seed ---
    queue: deque[int] = deque()
    for block_id in index.order:
        if indegree[block_id] == 0:
            levels[block_id] = 0
            queue.append(block_id)

    # --- Step 3: propagate ---
    while queue:
        current = queue.popleft()
        current_level = levels[current]
        _place(current, current_level)
        for target in index.successors_of(current):
            indegree[target] -= 1
            if indegree[target] == 0:
                levels[target] = current_level + 1
                queue.append(target)

    # --- Step 4: cycles and unreachable components ---
    leftovers = [block_id for block_id in index.order if block_id not in levels]
    if leftovers:
        logger.debug(f"Cycle fallback for {len(leftovers)} block(s): {leftovers}")
    for block_id in leftovers:
        max_level = max(levels.values(), default=-1)
        _place(block_id, max_level + 1)

    return result


# ---------------------------------------------------------------------------
# Positioning
# ---------------------------------------------------------------------------

def compute_row_positions(
    groups: list[list[int]],
    options: Optional[LayoutOptions] = None,
) -> PositionMap:
    """Center each level's row on the canvas axis.

    For a row of ``n`` blocks on level ``L``::

        row_width = n*W + (n-1)*Gh
        x_k = center_x - row_width/2 + k*(W + Gh)
        y   = top_margin + L*(H + Gv)
    """
    opts = options or LayoutOptions()
    positions: PositionMap = {}

    step_x = opts.block_width + opts.horizontal_spacing
    step_y = opts.block_height + opts.vertical_spacing

    for level_index, row in enumerate(groups):
        if not row:
            continue
        n = len(row)
        row_width = n * opts.block_width + (n - 1) * opts.horizontal_spacing
        row_left = opts.center_x - row_width / 2
        y = opts.top_margin + level_index * step_y
        for k, block_id in enumerate(row):
            positions[block_id] = Position(x=row_left + k * step_x, y=y)

    return positions


def merge_positions(existing: PositionMap, computed: PositionMap) -> list[int]:
    """Copy computed positions for blocks that have none yet.

    ``existing`` is updated in place.  Returns the ids that were placed.
    """
    placed = []
    for block_id, position in computed.items():
        if block_id in existing:
            continue
        existing[block_id] = position.model_copy()
        placed.append(block_id)
    return placed


def organize_roadmap(
    blocks: list[RoadmapBlock],
    positions: PositionMap,
    options: Optional[LayoutOptions] = None,
) -> LayoutResult:
    """Normalize, layer, position, and merge into ``positions``.

    Raises ``DuplicateNodeError`` before touching ``positions``.
    """
    index = normalize_blocks(blocks)
    assignment = assign_levels(index)
    computed = compute_row_positions(assignment.groups, options)
    placed = merge_positions(positions, computed)

    logger.info(
        f"Organized {len(index.order)} block(s) into {assignment.depth} level(s); "
        f"{len(placed)} newly placed"
    )
    return LayoutResult(
        index=index,
        assignment=assignment,
        computed=computed,
        placed=placed,
    )
