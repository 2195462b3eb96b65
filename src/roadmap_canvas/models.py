"""
Data models for Roadmap-Canvas: the learning roadmap ontology.

A roadmap is a flat, ordered list of learning **blocks** connected by
forward dependency edges:

    Roadmap
    └── Block    - a single stage of the learning path (the atomic unit)
        └── successors - ids of the blocks that come after it

Blocks arrive from an upstream generator as an ordered array.  The order
matters: the layering engine is deterministic only with respect to the
input order, so every container here is a ``list`` and never a set.

Alongside the blocks, the canvas keeps two pieces of shared state that
are mutated in place by the interaction layer:

    PositionMap    - block id -> Position in virtual-canvas space
    ViewportState  - zoom factor, pan offset, and viewport size
"""

from __future__ import annotations
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Block (the atomic unit)
# ---------------------------------------------------------------------------

class RoadmapBlock(BaseModel):
    """A block: one stage of a learning roadmap.

    Identity
    --------
    ``id`` is assigned by the caller, must be unique across the roadmap,
    and starts at 1.  Uniqueness is enforced by the normalizer, not here,
    so a model can be built from partially bad data and reported on.

    Connections
    -----------
    ``successors`` lists the ids of the blocks that come *after* this one.
    Forward references (to blocks later in the array) are expected.  Ids
    that do not resolve are dropped during normalization.

    Wire names
    ----------
    The upstream generator emits ``blockID``, ``isCompletedByUser`` and
    ``connectivity``.  Those names are accepted as aliases, and the
    Pythonic field names work too.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(alias="blockID", ge=1)
    title: str = ""
    time: str = ""
    description: str = ""
    completed: bool = Field(default=False, alias="isCompletedByUser")
    successors: list[int] = Field(default_factory=list, alias="connectivity")

    def get_label(self) -> str:
        """Return the title, falling back to ``Block <id>``."""
        return self.title if self.title else f"Block {self.id}"


# ---------------------------------------------------------------------------
# Roadmap (root)
# ---------------------------------------------------------------------------

class Progress(BaseModel):
    """Completion summary for the progress indicator."""
    completed: int = 0
    total: int = 0
    percentage: float = 0.0


class Roadmap(BaseModel):
    """The root roadmap model: the query and its ordered blocks."""
    query: str = ""
    title: Optional[str] = None
    blocks: list[RoadmapBlock] = Field(default_factory=list)

    def get_title(self) -> str:
        if self.title:
            return self.title
        return self.query if self.query else "Untitled Roadmap"

    def get_block(self, block_id: int) -> Optional[RoadmapBlock]:
        """Look up a block by id (first match in input order)."""
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    def all_connections(self) -> list[tuple[int, int]]:
        """Return every declared (source_id, target_id) edge in declaration order."""
        return [
            (block.id, target)
            for block in self.blocks
            for target in block.successors
        ]

    def progress(self) -> Progress:
        return compute_progress(self.blocks)


def compute_progress(blocks: list[RoadmapBlock]) -> Progress:
    """Count completed blocks.  An empty list reports 0%."""
    total = len(blocks)
    done = sum(1 for b in blocks if b.completed)
    pct = (done / total) * 100 if total else 0.0
    return Progress(completed=done, total=total, percentage=pct)


# ---------------------------------------------------------------------------
# Canvas state
# ---------------------------------------------------------------------------

class Position(BaseModel):
    """A block's top-left corner in virtual-canvas space."""
    x: float = 0.0
    y: float = 0.0


# Shared by reference between the layout pass and the drag controller.
# Last writer wins; there is no merge.
PositionMap = dict[int, Position]


class ViewportState(BaseModel):
    """Zoom and pan of the visible window onto the virtual canvas.

    ``pan_x``/``pan_y`` are screen pixels; ``width``/``height`` are the
    size of the host viewport, used for auto-centering and compositing.
    """
    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    width: float = 1280.0
    height: float = 800.0

    @property
    def zoom_percent(self) -> int:
        return round(self.zoom * 100)

    def is_pan_identity(self) -> bool:
        return self.pan_x == 0 and self.pan_y == 0
