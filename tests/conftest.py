"""Shared fixtures for roadmap-canvas tests."""

import pytest

from roadmap_canvas.models import RoadmapBlock


def make_blocks(graph: list[tuple[int, list[int]]]) -> list[RoadmapBlock]:
    """Build blocks from (id, successors) pairs."""
    return [
        RoadmapBlock(id=block_id, title=f"Step {block_id}", successors=succ)
        for block_id, succ in graph
    ]


@pytest.fixture
def diamond_blocks():
    """1 -> {2, 3} -> 4"""
    return make_blocks([(1, [2, 3]), (2, [4]), (3, [4]), (4, [])])


@pytest.fixture
def chain_blocks():
    return make_blocks([(1, [2]), (2, [3]), (3, [])])
