"""Roadmap renderer: screen-space frames and a Pillow compositor.

``compute_frame`` is the coordinate contract with any host renderer: it
turns blocks, positions and the viewport into screen-space node boxes and
edge segments.  It is recomputed on every render pass and never cached
across a pan or zoom change.

``RoadmapRenderer`` composites a frame into a PNG of the viewport.
"""

from __future__ import annotations

import math
import textwrap
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .models import PositionMap, Progress, RoadmapBlock, ViewportState, compute_progress
from .normalize import AdjacencyIndex
from .organize import LayoutOptions
from .viewport import DRAG_MIN_ZOOM


EMPTY_TITLE = "No roadmap yet"
EMPTY_MESSAGE = "Enter your learning goal above to generate a roadmap"


# ---------------------------------------------------------------------------
# Frame (coordinate contract)
# ---------------------------------------------------------------------------

@dataclass
class NodeView:
    """A block as it appears on screen."""
    block_id: int
    screen_x: float
    screen_y: float
    scale: float
    width: float
    height: float
    completed: bool
    title: str
    time: str
    description: str
    successors: list[int]
    visible: bool = True

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        return (self.screen_x, self.screen_y,
                self.screen_x + self.width, self.screen_y + self.height)


@dataclass
class EdgeView:
    """Bottom-center of the source to top-center of the target, in screen space."""
    source_id: int
    target_id: int
    start: tuple[float, float]
    end: tuple[float, float]


@dataclass
class RenderFrame:
    zoom: float
    pan: tuple[float, float]
    width: float
    height: float
    nodes: list[NodeView] = field(default_factory=list)
    edges: list[EdgeView] = field(default_factory=list)
    progress: Progress = field(default_factory=Progress)
    title: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def zoom_percent(self) -> int:
        return round(self.zoom * 100)

    def visible_nodes(self) -> list[NodeView]:
        return [n for n in self.nodes if n.visible]


def _to_screen(state: ViewportState, vx: float, vy: float) -> tuple[float, float]:
    return (vx * state.zoom + state.pan_x, vy * state.zoom + state.pan_y)


def compute_frame(
    blocks: list[RoadmapBlock],
    positions: PositionMap,
    viewport: ViewportState,
    index: Optional[AdjacencyIndex] = None,
    options: Optional[LayoutOptions] = None,
    title: str = "",
) -> RenderFrame:
    """Project blocks and edges into screen space.

    Blocks without a recorded position are skipped, as are edges whose
    endpoints are not both positioned.  When ``index`` is given its
    resolved edges are used; otherwise the blocks' raw successor lists.
    """
    opts = options or LayoutOptions()
    zoom = viewport.zoom
    w = opts.block_width * zoom
    h = opts.block_height * zoom

    frame = RenderFrame(
        zoom=zoom,
        pan=(viewport.pan_x, viewport.pan_y),
        width=viewport.width,
        height=viewport.height,
        progress=compute_progress(blocks),
        title=title,
    )

    for block in blocks:
        pos = positions.get(block.id)
        if pos is None:
            continue
        sx, sy = _to_screen(viewport, pos.x, pos.y)
        visible = (
            sx + w >= 0 and sy + h >= 0
            and sx <= viewport.width and sy <= viewport.height
        )
        frame.nodes.append(NodeView(
            block_id=block.id,
            screen_x=sx,
            screen_y=sy,
            scale=zoom,
            width=w,
            height=h,
            completed=block.completed,
            title=block.get_label(),
            time=block.time,
            description=block.description,
            successors=(
                list(index.successors_of(block.id)) if index is not None
                else list(block.successors)
            ),
            visible=visible,
        ))

    if index is not None:
        edges = index.edges()
    else:
        edges = [(b.id, t) for b in blocks for t in b.successors]

    half_w = opts.block_width / 2
    for source_id, target_id in edges:
        src = positions.get(source_id)
        dst = positions.get(target_id)
        if src is None or dst is None:
            continue
        frame.edges.append(EdgeView(
            source_id=source_id,
            target_id=target_id,
            start=_to_screen(viewport, src.x + half_w, src.y + opts.block_height),
            end=_to_screen(viewport, dst.x + half_w, dst.y),
        ))

    return frame


# ---------------------------------------------------------------------------
# Compositor
# ---------------------------------------------------------------------------

BACKGROUND = "#f3f4f6"
GRID_COLOR = "#e5e7eb"
GRID_SPACING = 20
EDGE_COLOR = "#6366f1"
BADGE_COLOR = "#2563eb"
TEXT_COLOR = "#1f2937"
MUTED_TEXT = "#4b5563"
PANEL_FILL = "#ffffff"
PROGRESS_TRACK = "#e5e7eb"
PROGRESS_FILL = "#22c55e"

COMPLETED_STYLE = {"border": "#4ade80", "fill": "#f0fdf4", "check": "#16a34a"}
PENDING_STYLE = {"border": "#60a5fa", "fill": "#eff6ff", "check": "#4b5563"}


def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font, falling back to default if none available."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


def _load_bold_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a bold font, falling back to regular."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return _load_font(size)


def _hex_to_rgba(hex_color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    hex_color = hex_color.lstrip("#")
    r, g, b = (int(hex_color[i:i+2], 16) for i in (0, 2, 4))
    return (r, g, b, alpha)


def text_tier(zoom: float) -> float:
    """Font multiplier: text shrinks one step below 1.0 and again below 0.7."""
    if zoom < 0.7:
        return 0.75
    if zoom < 1:
        return 0.875
    return 1.0


def _draw_arrow(
    draw: ImageDraw.ImageDraw,
    start: tuple[float, float],
    end: tuple[float, float],
    color: str,
    arrow_size: float,
):
    """Draw only the arrowhead at ``end``, pointing away from ``start``."""
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return
    udx = dx / length
    udy = dy / length

    ax = end[0] - arrow_size * udx + (arrow_size / 2) * udy
    ay = end[1] - arrow_size * udy - (arrow_size / 2) * udx
    bx = end[0] - arrow_size * udx - (arrow_size / 2) * udy
    by = end[1] - arrow_size * udy + (arrow_size / 2) * udx
    draw.polygon([end, (ax, ay), (bx, by)], fill=color)


def _draw_dashed_line(
    draw: ImageDraw.ImageDraw,
    start: tuple[float, float],
    end: tuple[float, float],
    color: str,
    width: int,
    dash: float,
):
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return
    ux, uy = dx / length, dy / length
    travelled = 0.0
    while travelled < length:
        seg_end = min(travelled + dash, length)
        draw.line(
            [(start[0] + ux * travelled, start[1] + uy * travelled),
             (start[0] + ux * seg_end, start[1] + uy * seg_end)],
            fill=color,
            width=width,
        )
        travelled += dash * 2


def _wrap_text(text: str, font: ImageFont.FreeTypeFont, max_width: int) -> list[str]:
    """Word-wrap text to fit within max_width pixels."""
    words = text.split()
    lines = []
    current = ""

    for word in words:
        test = f"{current} {word}".strip() if current else word
        bbox = font.getbbox(test)
        if bbox[2] - bbox[0] <= max_width:
            current = test
            continue
        if current:
            lines.append(current)
        if font.getbbox(word)[2] - font.getbbox(word)[0] > max_width:
            lines.extend(textwrap.wrap(word, width=max(1, max_width // 8)))
            current = ""
        else:
            current = word

    if current:
        lines.append(current)
    return lines


class RoadmapRenderer:
    """Composites a ``RenderFrame`` into a PNG the size of the viewport."""

    # Block interior, in virtual units (scaled by zoom when drawn)
    BLOCK_PADDING = 16
    TITLE_SIZE = 18
    BODY_SIZE = 14
    SMALL_SIZE = 12
    LINE_GAP = 6
    BADGE_RADIUS = 12
    TOGGLE_RADIUS = 11

    def __init__(self, scale: float = 1.0):
        self.scale = scale
        self._fonts: dict[tuple[int, bool], ImageFont.FreeTypeFont | ImageFont.ImageFont] = {}

    def _font(self, size: float, bold: bool = False):
        px = max(6, int(size * self.scale))
        key = (px, bold)
        if key not in self._fonts:
            self._fonts[key] = _load_bold_font(px) if bold else _load_font(px)
        return self._fonts[key]

    def render(self, frame: RenderFrame, output_path: Optional[str] = None) -> bytes:
        """Render the frame to PNG bytes.  Optionally save to file."""
        s = self.scale
        img_w = max(1, int(frame.width * s))
        img_h = max(1, int(frame.height * s))
        img = Image.new("RGBA", (img_w, img_h), _hex_to_rgba(BACKGROUND))
        draw = ImageDraw.Draw(img)

        self._draw_grid(draw, frame, img_w, img_h)

        if frame.is_empty:
            self._draw_empty_state(draw, img_w, img_h)
        else:
            # Edges first so blocks sit on top of them
            for edge in frame.edges:
                self._draw_edge(draw, edge, frame.zoom)
            for node in frame.visible_nodes():
                self._draw_block(draw, node)

        self._draw_progress(draw, frame, img_w)
        self._draw_zoom_label(draw, frame)

        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _draw_grid(self, draw: ImageDraw.ImageDraw, frame: RenderFrame, img_w: int, img_h: int):
        s = self.scale
        spacing = GRID_SPACING * frame.zoom * s
        if spacing < 4:
            return
        off_x = (frame.pan[0] * s) % spacing
        off_y = (frame.pan[1] * s) % spacing
        x = off_x
        while x < img_w:
            draw.line([(x, 0), (x, img_h)], fill=GRID_COLOR, width=1)
            x += spacing
        y = off_y
        while y < img_h:
            draw.line([(0, y), (img_w, y)], fill=GRID_COLOR, width=1)
            y += spacing

    def _draw_empty_state(self, draw: ImageDraw.ImageDraw, img_w: int, img_h: int):
        title_font = self._font(24, bold=True)
        body_font = self._font(16)
        for text, font, dy in ((EMPTY_TITLE, title_font, -20), (EMPTY_MESSAGE, body_font, 20)):
            bbox = font.getbbox(text)
            tw = bbox[2] - bbox[0]
            draw.text(((img_w - tw) / 2, img_h / 2 + dy * self.scale), text, fill=MUTED_TEXT, font=font)

    def _draw_edge(self, draw: ImageDraw.ImageDraw, edge: EdgeView, zoom: float):
        s = self.scale
        start = (edge.start[0] * s, edge.start[1] * s)
        end = (edge.end[0] * s, edge.end[1] * s)
        width = max(1, int(2 * zoom * s))
        _draw_dashed_line(draw, start, end, EDGE_COLOR, width, dash=max(2.0, 5 * zoom * s))
        _draw_arrow(draw, start, end, EDGE_COLOR, arrow_size=max(4.0, 10 * zoom * s))

    def _draw_block(self, draw: ImageDraw.ImageDraw, node: NodeView):
        """Draw one block: card, title, toggle, time, description, id badge."""
        s = self.scale
        z = node.scale
        tier = text_tier(z)
        style = COMPLETED_STYLE if node.completed else PENDING_STYLE

        x1, y1, x2, y2 = (v * s for v in node.bounds)
        draw.rounded_rectangle(
            [x1, y1, x2, y2],
            radius=max(2, int(8 * z * s)),
            fill=style["fill"],
            outline=style["border"],
            width=max(1, int(2 * z * s)),
        )

        pad = self.BLOCK_PADDING * z * s
        title_font = self._font(self.TITLE_SIZE * tier * z, bold=True)
        body_font = self._font(self.BODY_SIZE * tier * z)
        small_font = self._font(self.SMALL_SIZE * tier * z)
        toggle_r = self.TOGGLE_RADIUS * z * s
        text_w = int((x2 - x1) - 2 * pad - 2 * toggle_r)

        # Completion toggle, top-right
        cx = x2 - pad - toggle_r
        cy = y1 + pad + toggle_r
        draw.ellipse(
            [cx - toggle_r, cy - toggle_r, cx + toggle_r, cy + toggle_r],
            outline=style["check"],
            fill=style["check"] if node.completed else None,
            width=max(1, int(2 * z * s)),
        )

        cursor_y = y1 + pad
        for line in _wrap_text(node.title, title_font, max(1, text_w))[:2]:
            draw.text((x1 + pad, cursor_y), line, fill=TEXT_COLOR, font=title_font)
            cursor_y += self._line_height(title_font)
        cursor_y += self.LINE_GAP * z * s

        if node.time:
            draw.text((x1 + pad, cursor_y), node.time, fill=MUTED_TEXT, font=small_font)
            cursor_y += self._line_height(small_font) + self.LINE_GAP * z * s

        if node.description:
            body_w = max(1, int((x2 - x1) - 2 * pad))
            line_h = self._line_height(body_font)
            bottom_room = self._line_height(small_font) + pad
            for line in _wrap_text(node.description, body_font, body_w):
                if cursor_y + line_h > y2 - bottom_room:
                    break
                draw.text((x1 + pad, cursor_y), line, fill=MUTED_TEXT, font=body_font)
                cursor_y += line_h

        if node.successors:
            label = "Connects to: " + ", ".join(str(i) for i in node.successors)
            draw.text(
                (x1 + pad, y2 - pad - self._line_height(small_font)),
                label, fill=MUTED_TEXT, font=small_font,
            )

        # Id badge overlapping the top-left corner
        r = self.BADGE_RADIUS * z * s
        bx, by = x1 + r * 0.4, y1 + r * 0.4
        draw.ellipse([bx - r, by - r, bx + r, by + r], fill=BADGE_COLOR)
        badge_font = self._font(self.SMALL_SIZE * z, bold=True)
        text = str(node.block_id)
        bbox = badge_font.getbbox(text)
        draw.text(
            (bx - (bbox[2] - bbox[0]) / 2, by - (bbox[3] - bbox[1]) / 2 - bbox[1]),
            text, fill="#ffffff", font=badge_font,
        )

        if z >= DRAG_MIN_ZOOM:
            self._draw_grip(draw, x2 - pad * 0.5, y1 + pad + 2 * toggle_r + 6 * z * s, z)

    def _draw_grip(self, draw: ImageDraw.ImageDraw, x: float, y: float, zoom: float):
        dot = 2 * zoom * self.scale
        for i in range(3):
            cy = y + i * dot * 3
            draw.ellipse([x - dot, cy - dot, x + dot, cy + dot], fill="#d1d5db")

    def _draw_progress(self, draw: ImageDraw.ImageDraw, frame: RenderFrame, img_w: int):
        s = self.scale
        font = self._font(13, bold=True)
        label = f"Progress: {frame.progress.completed}/{frame.progress.total} blocks"
        bbox = font.getbbox(label)
        panel_w = max(bbox[2] - bbox[0], 128 * s) + 32 * s
        x1 = img_w - panel_w - 16 * s
        y1 = 16 * s
        draw.rounded_rectangle([x1, y1, x1 + panel_w, y1 + 64 * s], radius=int(8 * s), fill=PANEL_FILL)
        draw.text((x1 + 16 * s, y1 + 12 * s), label, fill=TEXT_COLOR, font=font)

        track_x = x1 + 16 * s
        track_y = y1 + 40 * s
        track_w = 128 * s
        draw.rounded_rectangle([track_x, track_y, track_x + track_w, track_y + 8 * s], radius=int(4 * s), fill=PROGRESS_TRACK)
        filled = track_w * frame.progress.percentage / 100
        if filled > 0:
            draw.rounded_rectangle([track_x, track_y, track_x + filled, track_y + 8 * s], radius=int(4 * s), fill=PROGRESS_FILL)

    def _draw_zoom_label(self, draw: ImageDraw.ImageDraw, frame: RenderFrame):
        s = self.scale
        font = self._font(12)
        draw.rounded_rectangle([16 * s, 16 * s, 76 * s, 44 * s], radius=int(8 * s), fill=PANEL_FILL)
        draw.text((26 * s, 22 * s), f"{frame.zoom_percent}%", fill=MUTED_TEXT, font=font)

    @staticmethod
    def _line_height(font) -> float:
        bbox = font.getbbox("Ag")
        return (bbox[3] - bbox[1]) * 1.35
