"""Tests for the payload parser."""

import json

import pytest
from pydantic import ValidationError

from roadmap_canvas.models import Position, RoadmapBlock
from roadmap_canvas.parser import parse_file, parse_yaml, roadmap_to_yaml, strip_code_fence


GENERATOR_OUTPUT = """```json
[
  {"isCompletedByUser": false, "blockID": 1, "title": "HTML & CSS",
   "time": "1st Aug to 7th Aug", "description": "Markup and styling", "connectivity": [2, 3]},
  {"isCompletedByUser": true, "blockID": 2, "title": "JavaScript",
   "time": "8th Aug to 21st Aug", "description": "Language basics", "connectivity": [4]},
  {"isCompletedByUser": false, "blockID": 3, "title": "Git",
   "time": "8th Aug to 10th Aug", "description": "Version control", "connectivity": [4]},
  {"isCompletedByUser": false, "blockID": 4, "title": "React",
   "time": "22nd Aug to 5th Sep", "description": "Components", "connectivity": []}
]
```"""


def test_strip_code_fence():
    assert strip_code_fence("```json\n[1]\n```") == "[1]"
    assert strip_code_fence("[1]") == "[1]"


def test_parse_generator_output_with_wire_names():
    roadmap = parse_yaml(GENERATOR_OUTPUT)
    assert [b.id for b in roadmap.blocks] == [1, 2, 3, 4]
    assert roadmap.blocks[0].successors == [2, 3]
    assert roadmap.blocks[1].completed is True
    assert roadmap.all_connections() == [(1, 2), (1, 3), (2, 4), (3, 4)]
    assert roadmap.progress().completed == 1


def test_parse_mapping_with_field_names():
    roadmap = parse_yaml("""
query: Learn Rust
blocks:
  - id: 1
    title: Ownership
    successors: [2]
  - id: 2
    title: Traits
""")
    assert roadmap.get_title() == "Learn Rust"
    assert roadmap.get_block(2).title == "Traits"
    assert roadmap.get_block(3) is None


def test_nodes_key_is_accepted():
    roadmap = parse_yaml("nodes:\n  - {id: 7}\n")
    assert roadmap.blocks[0].id == 7
    assert roadmap.blocks[0].get_label() == "Block 7"


@pytest.mark.parametrize("payload", ["", "```json\n```", "title: nothing", "42", "[1, 2]"])
def test_malformed_payloads_raise_value_error(payload):
    with pytest.raises(ValueError):
        parse_yaml(payload)


def test_tab_indented_json_is_accepted():
    payload = json.dumps(
        [{"blockID": 1, "title": "Basics", "connectivity": [2]},
         {"blockID": 2, "title": "Next", "connectivity": []}],
        indent="\t",
    )
    roadmap = parse_yaml(f"```json\n{payload}\n```")
    assert [b.id for b in roadmap.blocks] == [1, 2]
    assert roadmap.blocks[0].successors == [2]


def test_unparseable_text_raises_value_error():
    with pytest.raises(ValueError):
        parse_yaml("[1, 2\n\t- broken: {")


def test_ids_below_one_are_rejected():
    with pytest.raises(ValidationError):
        parse_yaml('[{"blockID": 0}]')


def test_block_accepts_both_names():
    a = RoadmapBlock(blockID=3, connectivity=[4], isCompletedByUser=True)
    b = RoadmapBlock(id=3, successors=[4], completed=True)
    assert a == b


def test_roadmap_to_yaml_includes_positions(tmp_path):
    roadmap = parse_yaml(GENERATOR_OUTPUT)
    text = roadmap_to_yaml(roadmap, {1: Position(x=2340, y=200)})
    path = tmp_path / "roadmap.yaml"
    path.write_text(text)

    reloaded = parse_file(str(path))
    assert [b.id for b in reloaded.blocks] == [1, 2, 3, 4]
    assert reloaded.blocks[1].completed is True
    assert "x: 2340" in text
