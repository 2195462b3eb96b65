"""Tests for the graph normalizer."""

import logging

import pytest

from roadmap_canvas.normalize import (
    DanglingReferenceWarning,
    DuplicateNodeError,
    find_duplicate_ids,
    normalize_blocks,
)
from conftest import make_blocks


def test_empty_input_gives_empty_index():
    index = normalize_blocks([])
    assert index.is_empty
    assert index.edges() == []
    assert index.warnings == []


def test_indegree_and_successors(diamond_blocks):
    index = normalize_blocks(diamond_blocks)
    assert index.order == [1, 2, 3, 4]
    assert index.indegree == {1: 0, 2: 1, 3: 1, 4: 2}
    assert index.successors_of(1) == [2, 3]
    assert index.edges() == [(1, 2), (1, 3), (2, 4), (3, 4)]


def test_duplicate_id_is_fatal():
    blocks = make_blocks([(1, [2]), (2, []), (1, [])])
    with pytest.raises(DuplicateNodeError) as exc_info:
        normalize_blocks(blocks)
    assert exc_info.value.duplicate_ids == [1]
    assert "1" in str(exc_info.value)


def test_find_duplicate_ids_reports_each_once():
    blocks = make_blocks([(3, []), (3, []), (3, []), (4, []), (4, [])])
    assert find_duplicate_ids(blocks) == [3, 4]


def test_dangling_successor_dropped_and_logged(caplog):
    blocks = make_blocks([(1, [2, 99]), (2, [])])
    with caplog.at_level(logging.WARNING, logger="roadmap_canvas.normalize"):
        index = normalize_blocks(blocks)

    assert index.successors_of(1) == [2]
    assert index.indegree_of(2) == 1
    assert len(index.warnings) == 1
    warning = index.warnings[0]
    assert isinstance(warning, DanglingReferenceWarning)
    assert (warning.source_id, warning.missing_id) == (1, 99)
    assert "99" in caplog.text


def test_caller_blocks_not_modified():
    blocks = make_blocks([(1, [5])])
    normalize_blocks(blocks)
    assert blocks[0].successors == [5]


def test_self_reference_counts_toward_indegree():
    index = normalize_blocks(make_blocks([(1, [1])]))
    assert index.indegree_of(1) == 1
