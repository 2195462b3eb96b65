"""Roadmap-Canvas server: MCP tools for laying out and rendering learning roadmaps."""

from __future__ import annotations

import json
import logging
import os
import uuid
from pathlib import Path

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .controller import RoadmapCanvas
from .normalize import DuplicateNodeError
from .parser import parse_yaml
from .renderer import RoadmapRenderer

logger = logging.getLogger(__name__)


# --- Constants ---
OUTPUT_DIR = Path(os.environ.get("ROADMAP_OUTPUT_DIR", Path.home() / ".roadmap-canvas"))

server = Server("roadmap-canvas")


def _ensure_output_dir():
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)


_PAYLOAD_DESCRIPTION = (
    "JSON or YAML roadmap. Either a bare array of blocks or a mapping with "
    "'blocks' (and optional 'query'/'title'). Example:\n"
    "[{\"blockID\": 1, \"title\": \"Basics\", \"time\": \"1 week\", "
    "\"description\": \"...\", \"isCompletedByUser\": false, \"connectivity\": [2, 3]}, ...]\n"
    "Markdown code fences around the payload are ignored."
)


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="layout_roadmap",
            description=(
                "Compute the layered layout of a learning roadmap. Returns each "
                "block's level and virtual-canvas position, plus any dropped "
                "dangling references."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "payload": {"type": "string", "description": _PAYLOAD_DESCRIPTION},
                },
                "required": ["payload"],
            },
        ),
        Tool(
            name="render_roadmap",
            description=(
                "Lay out a learning roadmap and render the initial viewport to PNG "
                "(first block auto-centered). Returns the path to the rendered file."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "payload": {"type": "string", "description": _PAYLOAD_DESCRIPTION},
                    "width": {
                        "type": "number",
                        "description": "Viewport width in pixels (default 1280)",
                        "default": 1280,
                    },
                    "height": {
                        "type": "number",
                        "description": "Viewport height in pixels (default 800)",
                        "default": 800,
                    },
                    "zoom": {
                        "type": "number",
                        "description": "Initial zoom, clamped to [0.1, 3.0] (default 1.0)",
                        "default": 1.0,
                    },
                    "scale": {
                        "type": "number",
                        "description": "Render scale factor (default 1.0)",
                        "default": 1.0,
                    },
                    "filename": {
                        "type": "string",
                        "description": "Output filename (without extension). Default: auto-generated UUID.",
                    },
                },
                "required": ["payload"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    if name == "layout_roadmap":
        return await _layout_roadmap(arguments)
    elif name == "render_roadmap":
        return await _render_roadmap(arguments)
    else:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]


def _build_canvas(payload: str, width: float = 1280, height: float = 800, zoom: float = 1.0):
    """Parse and lay out a payload.  Raises on malformed input."""
    roadmap = parse_yaml(payload)
    canvas = RoadmapCanvas(title=roadmap.get_title())
    canvas.on_resize(width, height)
    canvas.viewport.set_zoom(zoom)
    canvas.on_layout_recompute(roadmap.blocks)
    return roadmap, canvas


async def _layout_roadmap(args: dict) -> list[TextContent]:
    """Lay out a payload and report levels and positions."""
    try:
        roadmap, canvas = _build_canvas(args["payload"])
    except DuplicateNodeError as e:
        return [TextContent(type="text", text=f"Invalid roadmap: {e}")]
    except Exception as e:
        logger.error(f"Failed to parse roadmap payload: {e}")
        return [TextContent(type="text", text=f"Failed to parse roadmap payload: {e}")]

    return [TextContent(
        type="text",
        text=json.dumps({
            "status": "success",
            "title": roadmap.get_title(),
            "empty": canvas.is_empty,
            "levels": {str(k): v for k, v in canvas.levels().items()},
            "positions": {
                str(block.id): canvas.positions[block.id].model_dump()
                for block in canvas.blocks
            },
            "warnings": [str(w) for w in canvas.index.warnings],
            "progress": canvas.progress().model_dump(),
        }),
    )]


async def _render_roadmap(args: dict) -> list[TextContent]:
    """Render the initial viewport of a payload to PNG."""
    _ensure_output_dir()

    filename = args.get("filename", str(uuid.uuid4())[:8])
    try:
        roadmap, canvas = _build_canvas(
            args["payload"],
            width=args.get("width", 1280),
            height=args.get("height", 800),
            zoom=args.get("zoom", 1.0),
        )
    except DuplicateNodeError as e:
        return [TextContent(type="text", text=f"Invalid roadmap: {e}")]
    except Exception as e:
        logger.error(f"Failed to parse roadmap payload: {e}")
        return [TextContent(type="text", text=f"Failed to parse roadmap payload: {e}")]

    renderer = RoadmapRenderer(scale=args.get("scale", 1.0))
    output_path = str(OUTPUT_DIR / f"{filename}.png")
    frame = canvas.frame()

    try:
        renderer.render(frame, output_path=output_path)
    except Exception as e:
        logger.error(f"Rendering failed: {e}")
        return [TextContent(type="text", text=f"Rendering failed: {e}")]

    return [TextContent(
        type="text",
        text=json.dumps({
            "status": "success",
            "path": output_path,
            "title": roadmap.get_title(),
            "blocks": len(frame.nodes),
            "visible_blocks": len(frame.visible_nodes()),
            "connections": len(frame.edges),
            "zoom": frame.zoom_percent,
            "warnings": [str(w) for w in canvas.index.warnings],
        }),
    )]


def main():
    """Entry point for the MCP server."""
    import asyncio
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
