"""Payload parser for Roadmap-Canvas.

Accepts the upstream generator's output in any of these shapes:
1. A bare array of block records (JSON or YAML)
2. A mapping with ``blocks`` (or ``nodes``) plus optional ``query``/``title``
3. Either of the above wrapped in a Markdown code fence

Block records may use the generator's wire names (``blockID``,
``isCompletedByUser``, ``connectivity``) or the model field names.
"""

from __future__ import annotations
import json
import re
from pathlib import Path
from typing import Optional

import yaml

from .models import PositionMap, Roadmap, RoadmapBlock


_FENCE_RE = re.compile(r"```[a-zA-Z]*")


def strip_code_fence(text: str) -> str:
    """Remove Markdown code fences such as ```json ... ```."""
    return _FENCE_RE.sub("", text).strip()


def parse_yaml(payload: str) -> Roadmap:
    """Parse a JSON or YAML payload into a Roadmap model."""
    text = strip_code_fence(payload)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"Malformed roadmap payload: {e}") from e
    if data is None:
        raise ValueError("Empty roadmap payload")
    return parse_data(data)


def parse_file(path: str) -> Roadmap:
    """Parse a JSON or YAML file into a Roadmap model."""
    content = Path(path).read_text()
    return parse_yaml(content)


def parse_data(data) -> Roadmap:
    """Build a Roadmap from already-decoded data."""
    if isinstance(data, list):
        return Roadmap(blocks=_parse_blocks(data))

    if isinstance(data, dict):
        records = data.get("blocks", data.get("nodes"))
        if records is None:
            raise ValueError("Roadmap payload has no 'blocks' or 'nodes' list")
        if not isinstance(records, list):
            raise ValueError("Roadmap 'blocks' must be a list")
        return Roadmap(
            query=data.get("query", ""),
            title=data.get("title"),
            blocks=_parse_blocks(records),
        )

    raise ValueError(f"Roadmap payload must be a list or mapping, got {type(data).__name__}")


def _parse_blocks(records: list) -> list[RoadmapBlock]:
    blocks = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise ValueError(f"Block record {i} is not a mapping")
        blocks.append(RoadmapBlock.model_validate(record))
    return blocks


def roadmap_to_yaml(roadmap: Roadmap, positions: Optional[PositionMap] = None) -> str:
    """Serialize a Roadmap (and optionally its positions) back to YAML."""
    data: dict = {}
    if roadmap.title:
        data["title"] = roadmap.title
    if roadmap.query:
        data["query"] = roadmap.query

    blocks = []
    for block in roadmap.blocks:
        block_data = {
            "id": block.id,
            "title": block.title,
            "time": block.time,
            "description": block.description,
            "completed": block.completed,
        }
        if block.successors:
            block_data["successors"] = list(block.successors)
        if positions and block.id in positions:
            pos = positions[block.id]
            block_data["x"] = pos.x
            block_data["y"] = pos.y
        blocks.append(block_data)
    data["blocks"] = blocks

    return yaml.dump(data, default_flow_style=False, sort_keys=False)
