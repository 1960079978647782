"""PPM raster buffers in the Flaschen Taschen wire format.

A buffer is a binary PPM (``P6``) image whose header carries an extra
comment line with the placement offset and layer understood by the display::

    P6
    <width> <height>
    #FT: <offset_x> <offset_y> <layer>
    255
    <width * height * 3 bytes of row-major RGB>

The same bytes are sent as a single UDP datagram or written to a ``.ppm``
file for offline inspection.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from pathlib import Path
import re
from typing import Tuple, Union

from ft_player.errors import InvalidDimensions, StorageError

logger = logging.getLogger(__name__)

FORMAT_TAG = "P6"
MARKER = "FT"
MAX_CHANNEL_VALUE = 255

RGB = Tuple[int, int, int]

_HEADER_RE = re.compile(
    rb"^P6\n(\d+) (\d+)\n#FT: (-?\d+) (-?\d+) (-?\d+)\n255\n"
)


@dataclass(frozen=True)
class ImageOptions:
    """Canvas geometry and placement carried in the buffer header."""

    width: int = 32
    height: int = 32
    layer: int = 15
    offset_x: int = 0
    offset_y: int = 0

    def merged(self, **overrides: int | None) -> "ImageOptions":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


def build_header(options: ImageOptions) -> bytes:
    return (
        f"{FORMAT_TAG}\n{options.width} {options.height}\n"
        f"#{MARKER}: {options.offset_x} {options.offset_y} {options.layer}\n"
        f"{MAX_CHANNEL_VALUE}\n"
    ).encode("ascii")


class RasterBuffer:
    """Fixed-size PPM buffer with pixel plotting helpers."""

    def __init__(self, options: ImageOptions | None = None) -> None:
        options = options or ImageOptions()
        if options.width <= 0 or options.height <= 0:
            raise InvalidDimensions(
                f"canvas must be at least 1x1, got {options.width}x{options.height}"
            )
        self._options = options
        self._header = build_header(options)
        self._data = bytearray(
            len(self._header) + options.width * options.height * 3
        )
        self._data[: len(self._header)] = self._header

    @classmethod
    def create(
        cls,
        width: int,
        height: int,
        layer: int = 15,
        offset_x: int = 0,
        offset_y: int = 0,
    ) -> "RasterBuffer":
        return cls(
            ImageOptions(
                width=width,
                height=height,
                layer=layer,
                offset_x=offset_x,
                offset_y=offset_y,
            )
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterBuffer":
        """Rebuild a buffer from wire-format bytes."""
        match = _HEADER_RE.match(data)
        if match is None:
            raise ValueError("not a Flaschen Taschen PPM buffer")
        width, height, offset_x, offset_y, layer = (int(g) for g in match.groups())
        raster = cls.create(width, height, layer, offset_x, offset_y)
        if len(data) != len(raster._data):
            raise InvalidDimensions(
                f"expected {len(raster._data)} bytes for {width}x{height}, "
                f"got {len(data)}"
            )
        raster._data[:] = data
        return raster

    @property
    def options(self) -> ImageOptions:
        return self._options

    @property
    def width(self) -> int:
        return self._options.width

    @property
    def height(self) -> int:
        return self._options.height

    @property
    def layer(self) -> int:
        return self._options.layer

    @property
    def header(self) -> bytes:
        return self._header

    @property
    def header_length(self) -> int:
        return len(self._header)

    @property
    def buffer(self) -> bytes:
        """Snapshot of the full wire-format payload."""
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _offset(self, x: int, y: int) -> int:
        return len(self._header) + (x + y * self.width) * 3

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def plot(self, x: int, y: int, r: int, g: int, b: int) -> None:
        """Set the pixel at (x, y); out-of-range coordinates are ignored."""
        if not self.in_bounds(x, y):
            logger.warning(
                "Ignoring plot outside %dx%d canvas at (%d, %d)",
                self.width,
                self.height,
                x,
                y,
            )
            return
        offset = self._offset(x, y)
        self._data[offset : offset + 3] = bytes((r, g, b))

    def get_pixel(self, x: int, y: int) -> RGB:
        if not self.in_bounds(x, y):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height}")
        offset = self._offset(x, y)
        r, g, b = self._data[offset : offset + 3]
        return r, g, b

    def fill(self, r: int, g: int, b: int) -> None:
        pixel = bytes((r, g, b))
        self._data[len(self._header) :] = pixel * (self.width * self.height)

    def clear(self) -> None:
        """Set every pixel to black, leaving the header untouched."""
        self.fill(0, 0, 0)

    def write(self, path: Union[str, Path]) -> Path:
        """Write the wire-format bytes to ``path``."""
        target = Path(path)
        try:
            target.write_bytes(bytes(self._data))
        except OSError as exc:
            raise StorageError(f"Failed to write raster to {target}: {exc}") from exc
        logger.debug("Wrote %d bytes to %s", len(self._data), target)
        return target
