"""Delta-frame descriptors extracted from animated GIF data.

Pillow reads the GIF bitstream. Each frame is reduced to the region it
touched, a local colour table for that region, and a row-major matrix of
indices into the table, so the compositor can rebuild full canvases itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
import logging
from typing import Optional, Sequence, Tuple

from PIL import Image

from ft_player.errors import CompositionError
from ft_player.raster import RGB

logger = logging.getLogger(__name__)

# Pillow raises any of these for unreadable, truncated or oversized images.
DECODE_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    SyntaxError,
    Image.DecompressionBombError,
)


@dataclass(frozen=True)
class FrameDescriptor:
    """One decoded frame: a changed region and the pixels to paint into it."""

    region_x: int
    region_y: int
    region_width: int
    region_height: int
    color_table: Sequence[RGB]
    pixel_indices: Sequence[int]
    transparent_index: Optional[int] = None
    delay_ms: int = 0

    def __post_init__(self) -> None:
        expected = self.region_width * self.region_height
        if len(self.pixel_indices) != expected:
            raise ValueError(
                f"region {self.region_width}x{self.region_height} needs "
                f"{expected} indices, got {len(self.pixel_indices)}"
            )


@dataclass(frozen=True)
class DecodedAnimation:
    screen_size: Tuple[int, int]
    frames: Tuple[FrameDescriptor, ...]


def _frame_region(image: Image.Image) -> Tuple[int, int, int, int]:
    extent = getattr(image, "dispose_extent", None)
    width, height = image.size
    if not extent:
        return 0, 0, width, height
    x0, y0, x1, y1 = extent
    x0, y0 = max(0, x0), max(0, y0)
    x1, y1 = min(width, x1), min(height, y1)
    if x1 <= x0 or y1 <= y0:
        return 0, 0, width, height
    return x0, y0, x1, y1


def _describe_frame(image: Image.Image) -> FrameDescriptor:
    x0, y0, x1, y1 = _frame_region(image)
    region = image.convert("RGBA").crop((x0, y0, x1, y1))
    raw = region.tobytes()

    color_table: list[RGB] = []
    lookup: dict[RGB, int] = {}
    indices: list[int] = []
    transparent_index: Optional[int] = None
    for offset in range(0, len(raw), 4):
        if raw[offset + 3] == 0:
            if transparent_index is None:
                transparent_index = len(color_table)
                color_table.append((0, 0, 0))
            indices.append(transparent_index)
            continue
        color = (raw[offset], raw[offset + 1], raw[offset + 2])
        index = lookup.get(color)
        if index is None:
            index = len(color_table)
            lookup[color] = index
            color_table.append(color)
        indices.append(index)

    return FrameDescriptor(
        region_x=x0,
        region_y=y0,
        region_width=x1 - x0,
        region_height=y1 - y0,
        color_table=tuple(color_table),
        pixel_indices=tuple(indices),
        transparent_index=transparent_index,
        delay_ms=int(image.info.get("duration", 0) or 0),
    )


def decode_animation(data: bytes) -> DecodedAnimation:
    """Decode GIF bytes into an ordered tuple of frame descriptors."""
    try:
        with Image.open(BytesIO(data)) as image:
            screen_size = image.size
            frame_count = getattr(image, "n_frames", 1)
            frames = []
            for index in range(frame_count):
                image.seek(index)
                frames.append(_describe_frame(image))
    except DECODE_ERRORS as exc:
        raise CompositionError(f"Failed to decode animation: {exc}") from exc
    logger.debug(
        "Decoded %d frame(s) on a %dx%d screen",
        len(frames),
        screen_size[0],
        screen_size[1],
    )
    return DecodedAnimation(screen_size=screen_size, frames=tuple(frames))
