"""Timed, cancellable playback of rendered frames."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import threading
from typing import Callable, Iterable, Optional, Protocol, Tuple

from ft_player.raster import RasterBuffer

logger = logging.getLogger(__name__)

MIN_DELAY_SECONDS = 0.01


@dataclass(frozen=True)
class AnimationFrame:
    """A display-ready buffer and how long it stays on screen."""

    image: RasterBuffer
    delay_ms: int


class TimerHandle(Protocol):
    def stop(self) -> None: ...


SetTimer = Callable[[float, Callable[[], None]], TimerHandle]


class ThreadTimer:
    """One-shot daemon timer with the ``stop()`` interface the scheduler expects."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self._timer = threading.Timer(delay, callback)
        self._timer.daemon = True
        self._timer.name = "ft-player-timer"
        self._timer.start()

    def stop(self) -> None:
        self._timer.cancel()


class PlayerState(Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"


class PlaybackScheduler:
    """Loops a frame sequence through ``send`` at each frame's own delay.

    A session starts by transmitting frame 0 and arming one timer for
    frame 0's delay; every tick transmits the next frame and re-arms for
    that frame's delay, wrapping at the end. Only one timer handle is held
    at a time. Each session has a generation number, and a tick from an
    older generation returns without transmitting, so nothing from a
    superseded or stopped session reaches ``send`` once ``start()`` or
    ``stop()`` has returned.
    """

    def __init__(
        self,
        send: Callable[[RasterBuffer], object],
        *,
        set_timer: Optional[SetTimer] = None,
    ) -> None:
        self._send = send
        self._set_timer: SetTimer = set_timer or ThreadTimer
        self._lock = threading.RLock()
        self._frames: Tuple[AnimationFrame, ...] = ()
        self._index = 0
        self._timer: Optional[TimerHandle] = None
        self._generation = 0

    @property
    def state(self) -> PlayerState:
        with self._lock:
            if self._timer is None:
                return PlayerState.IDLE
            return PlayerState.SCHEDULED

    @property
    def is_running(self) -> bool:
        return self.state is PlayerState.SCHEDULED

    @property
    def current_index(self) -> int:
        """Index of the frame the next tick will transmit."""
        with self._lock:
            return self._index

    @property
    def frames(self) -> Tuple[AnimationFrame, ...]:
        with self._lock:
            return self._frames

    def start(self, frames: Iterable[AnimationFrame]) -> None:
        """Replace the active session with ``frames`` and begin looping."""
        sequence = tuple(frames)
        with self._lock:
            self._cancel_locked()
            self._frames = sequence
            self._index = 0
            if not sequence:
                logger.debug("Empty frame sequence; scheduler left idle")
                return
            logger.debug(
                "Starting playback session %d with %d frame(s)",
                self._generation,
                len(sequence),
            )
            self._advance_locked(self._generation)

    def stop(self) -> None:
        """Cancel the pending timer; safe to call when already idle."""
        with self._lock:
            self._cancel_locked()
            self._frames = ()
            self._index = 0

    def _cancel_locked(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.stop()
            self._timer = None

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            self._advance_locked(generation)

    def _advance_locked(self, generation: int) -> None:
        if not self._frames:
            return
        frame = self._frames[self._index]
        try:
            self._send(frame.image)
        except Exception:
            logger.exception("Failed to transmit frame %d", self._index)
        if generation != self._generation:
            # send() stopped or replaced this session
            return
        self._index = (self._index + 1) % len(self._frames)
        self._schedule_locked(generation, frame.delay_ms)

    def _schedule_locked(self, generation: int, delay_ms: int) -> None:
        delay = max(MIN_DELAY_SECONDS, delay_ms / 1000.0)
        self._timer = self._set_timer(delay, lambda: self._tick(generation))
