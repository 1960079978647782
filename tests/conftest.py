"""Shared fakes and fixtures for the ft-player tests."""

from __future__ import annotations

from io import BytesIO
from typing import Callable, Optional, Sequence

from PIL import Image
import pytest


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.stopped = False
        self.fired = False

    def stop(self) -> None:
        self.stopped = True

    def fire(self) -> None:
        self.fired = True
        self.callback()


class FakeClock:
    """Stands in for the timer host; timers only fire when told to."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def set_timer(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.stopped and not t.fired]

    def fire_next(self) -> FakeTimer:
        pending = self.pending
        assert len(pending) == 1, f"expected one pending timer, got {len(pending)}"
        pending[0].fire()
        return pending[0]


class FakeTransport:
    def __init__(self, fail: bool = False) -> None:
        self.payloads: list[bytes] = []
        self.fail = fail
        self.closed = False

    def send(self, payload: bytes) -> bool:
        if self.fail:
            return False
        self.payloads.append(payload)
        return True

    def close(self) -> None:
        self.closed = True


def solid(size: tuple[int, int], color: tuple[int, int, int]) -> Image.Image:
    return Image.new("RGB", size, color)


def gif_bytes(frames: Sequence[Image.Image], durations: Sequence[int]) -> bytes:
    buffer = BytesIO()
    frames[0].save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=list(frames[1:]),
        duration=list(durations),
        loop=0,
    )
    return buffer.getvalue()


def png_bytes(image: Image.Image, fmt: Optional[str] = "PNG") -> bytes:
    buffer = BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def two_frame_gif() -> bytes:
    first = solid((4, 4), (255, 0, 0))
    second = first.copy()
    second.putpixel((1, 2), (0, 0, 255))
    return gif_bytes([first, second], [100, 200])


# Logical screen of 65535x65535 with a single 1x1 frame.
OVERSIZED_GIF = (
    b"GIF89a\xff\xff\xff\xff\x00\x00\x00"
    b"\x2c\x00\x00\x00\x00\x01\x00\x01\x00\x00"
    b"\x02\x02\x44\x01\x00"
    b"\x3b"
)


def palette_frame(indices: Sequence[int], size: tuple[int, int]) -> Image.Image:
    """Build a P-mode frame; index 0 is green, 1 red, 2 blue."""
    frame = Image.new("P", size)
    frame.putpalette([0, 255, 0, 255, 0, 0, 0, 0, 255] + [0] * (253 * 3))
    frame.putdata(list(indices))
    return frame


@pytest.fixture
def transparent_gif() -> bytes:
    """Two 2x2 frames with index 0 transparent and frames kept in place."""
    first = palette_frame([0, 1, 1, 1], (2, 2))
    second = palette_frame([0, 0, 0, 2], (2, 2))
    buffer = BytesIO()
    first.save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=[second],
        duration=[100, 100],
        transparency=0,
        disposal=1,
        loop=0,
    )
    return buffer.getvalue()
