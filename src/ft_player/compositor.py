"""Rebuild full frames from delta descriptors and render them for the display.

Only the "accumulate" disposal model is supported: each frame is painted on
top of whatever the previous frame left behind. GIFs that rely on
restore-to-background or restore-to-previous disposal will show trails.
"""

from __future__ import annotations

from io import BytesIO
import logging
from typing import Iterable, List, Optional, Tuple

from PIL import Image

from ft_player.decoder import DECODE_ERRORS, FrameDescriptor, decode_animation
from ft_player.errors import CompositionError, EmptyAnimation, InvalidDimensions
from ft_player.raster import RGB, ImageOptions
from ft_player.resample import render_image
from ft_player.scheduler import AnimationFrame
from ft_player.source import SourceBytes

logger = logging.getLogger(__name__)

DEFAULT_LAYER = 5
STATIC_DELAY_MS = 1000


class Canvas:
    """Mutable full-size RGB accumulator for compositing."""

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"canvas must be at least 1x1, got {width}x{height}")
        self.width = width
        self.height = height
        self.pixels = bytearray(width * height * 3)

    def get_pixel(self, x: int, y: int) -> RGB:
        offset = (x + y * self.width) * 3
        r, g, b = self.pixels[offset : offset + 3]
        return r, g, b

    def set_pixel(self, x: int, y: int, color: RGB) -> None:
        offset = (x + y * self.width) * 3
        self.pixels[offset : offset + 3] = bytes(color)

    def to_image(self) -> Image.Image:
        return Image.frombytes("RGB", (self.width, self.height), bytes(self.pixels))


def apply_descriptor(canvas: Canvas, descriptor: FrameDescriptor) -> Canvas:
    """Paint ``descriptor`` onto ``canvas`` in place and return it.

    Pixels whose index equals the transparent index keep the canvas value.
    Pixels that fall outside the canvas are skipped.
    """
    table = descriptor.color_table
    transparent = descriptor.transparent_index
    width = descriptor.region_width
    skipped = 0
    for position, color_index in enumerate(descriptor.pixel_indices):
        if color_index == transparent:
            continue
        x = descriptor.region_x + position % width
        y = descriptor.region_y + position // width
        if not (0 <= x < canvas.width and 0 <= y < canvas.height):
            skipped += 1
            continue
        canvas.set_pixel(x, y, table[color_index])
    if skipped:
        logger.debug("Skipped %d pixel(s) outside the canvas", skipped)
    return canvas


def composite_frames(
    descriptors: Iterable[FrameDescriptor],
    width: int,
    height: int,
    *,
    layer: int = DEFAULT_LAYER,
    screen_size: Optional[Tuple[int, int]] = None,
) -> List[AnimationFrame]:
    """Fold descriptors over one canvas, rendering each step at the target size."""
    sequence = list(descriptors)
    if not sequence:
        raise EmptyAnimation("no frames to process")

    if width <= 0 or height <= 0:
        raise InvalidDimensions(
            f"target canvas must be at least 1x1, got {width}x{height}"
        )
    options = ImageOptions(width=width, height=height, layer=layer)
    if screen_size is None:
        screen_size = (sequence[0].region_width, sequence[0].region_height)

    frames: List[AnimationFrame] = []
    canvas: Optional[Canvas] = None
    for number, descriptor in enumerate(sequence):
        try:
            if canvas is None:
                canvas = Canvas(*screen_size)
            canvas = apply_descriptor(canvas, descriptor)
            image = render_image(canvas.to_image(), options)
        except (IndexError, ValueError, TypeError, OSError) as exc:
            raise CompositionError(f"frame {number}: {exc}") from exc
        frames.append(AnimationFrame(image=image, delay_ms=descriptor.delay_ms))
    return frames


def render_animation(
    data: bytes, width: int, height: int, *, layer: int = DEFAULT_LAYER
) -> List[AnimationFrame]:
    decoded = decode_animation(data)
    return composite_frames(
        decoded.frames,
        width,
        height,
        layer=layer,
        screen_size=decoded.screen_size,
    )


def render_source(
    source: SourceBytes, width: int, height: int, *, layer: int = DEFAULT_LAYER
) -> List[AnimationFrame]:
    """Render loaded bytes through the animated or the still-image path."""
    if source.is_animated:
        return render_animation(source.data, width, height, layer=layer)
    return render_static(source.data, width, height, layer=layer)


def render_static(
    data: bytes, width: int, height: int, *, layer: int = DEFAULT_LAYER
) -> List[AnimationFrame]:
    """Render a still image as a one-frame animation."""
    options = ImageOptions(width=width, height=height, layer=layer)
    try:
        with Image.open(BytesIO(data)) as image:
            raster = render_image(image, options)
    except DECODE_ERRORS as exc:
        raise CompositionError(f"Failed to decode image: {exc}") from exc
    return [AnimationFrame(image=raster, delay_ms=STATIC_DELAY_MS)]
