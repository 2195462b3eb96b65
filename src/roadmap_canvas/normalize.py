"""Graph normalizer for Roadmap-Canvas.

Validates the raw block list and derives the adjacency index the layering
engine runs on.  The caller's blocks are never modified: successor ids
that do not resolve are dropped from the *index*, not from the block.

Policy:
  - Duplicate ids are fatal (``DuplicateNodeError``), no layout is attempted.
  - Dangling successor ids are dropped and reported as
    ``DanglingReferenceWarning`` entries (logged, never raised).
  - An empty block list is valid and yields an empty index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .models import RoadmapBlock

logger = logging.getLogger(__name__)


class DuplicateNodeError(ValueError):
    """Raised when two blocks share an id."""

    def __init__(self, duplicate_ids: list[int]):
        self.duplicate_ids = duplicate_ids
        joined = ", ".join(str(i) for i in duplicate_ids)
        super().__init__(f"Duplicate block id(s): {joined}")


class DanglingReferenceWarning(UserWarning):
    """A successor id that matches no block.  Non-fatal."""

    def __init__(self, source_id: int, missing_id: int):
        self.source_id = source_id
        self.missing_id = missing_id
        super().__init__(
            f"Block {source_id} references unknown successor {missing_id}; dropped"
        )


@dataclass
class AdjacencyIndex:
    """Derived, ephemeral view of the block graph.

    Rebuilt whenever the block set changes.  ``order`` preserves the
    input order of block ids, which the layering engine depends on.
    """
    order: list[int] = field(default_factory=list)
    successors: dict[int, list[int]] = field(default_factory=dict)
    indegree: dict[int, int] = field(default_factory=dict)
    warnings: list[DanglingReferenceWarning] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.order

    def successors_of(self, block_id: int) -> list[int]:
        return self.successors.get(block_id, [])

    def indegree_of(self, block_id: int) -> int:
        return self.indegree.get(block_id, 0)

    def edges(self) -> list[tuple[int, int]]:
        """Resolved edges in declaration order."""
        return [(src, dst) for src in self.order for dst in self.successors[src]]


def find_duplicate_ids(blocks: list[RoadmapBlock]) -> list[int]:
    """Return duplicated ids in order of their second appearance."""
    seen: set[int] = set()
    duplicates: list[int] = []
    for block in blocks:
        if block.id in seen and block.id not in duplicates:
            duplicates.append(block.id)
        seen.add(block.id)
    return duplicates


def normalize_blocks(blocks: list[RoadmapBlock]) -> AdjacencyIndex:
    """Validate ``blocks`` and build the adjacency index.

    Raises:
        DuplicateNodeError: if any id appears more than once.
    """
    duplicates = find_duplicate_ids(blocks)
    if duplicates:
        raise DuplicateNodeError(duplicates)

    index = AdjacencyIndex()
    if not blocks:
        logger.debug("Empty block list; nothing to normalize")
        return index

    known = {block.id for block in blocks}
    for block in blocks:
        index.order.append(block.id)
        index.indegree.setdefault(block.id, 0)

    for block in blocks:
        kept: list[int] = []
        for target in block.successors:
            if target not in known:
                warning = DanglingReferenceWarning(block.id, target)
                index.warnings.append(warning)
                logger.warning(str(warning))
                continue
            kept.append(target)
            index.indegree[target] += 1
        index.successors[block.id] = kept

    return index
