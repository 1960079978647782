"""Load an image location and loop it on a display."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional

import requests

from ft_player.compositor import DEFAULT_LAYER, render_source
from ft_player.errors import FlaschenTaschenError, InvalidDimensions
from ft_player.scheduler import (
    AnimationFrame,
    PlaybackScheduler,
    PlayerState,
    SetTimer,
)
from ft_player.source import DEFAULT_TIMEOUT, load_source

if TYPE_CHECKING:
    from ft_player.client import FlaschenTaschenClient

logger = logging.getLogger(__name__)


class FlaschenTaschenPlayer:
    """Plays still or animated images on the client's display.

    ``play()`` decodes and composites the whole animation before anything
    is scheduled. If that fails the error is logged, ``play()`` returns
    False, and whatever was already playing keeps playing.
    """

    def __init__(
        self,
        client: "FlaschenTaschenClient",
        width: int = 32,
        height: int = 32,
        *,
        layer: int = DEFAULT_LAYER,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        set_timer: Optional[SetTimer] = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise InvalidDimensions(
                f"player canvas must be at least 1x1, got {width}x{height}"
            )
        self.client = client
        self.width = width
        self.height = height
        self.layer = layer
        self.timeout = timeout
        self._session = session
        self._scheduler = PlaybackScheduler(client.render, set_timer=set_timer)

    @property
    def state(self) -> PlayerState:
        return self._scheduler.state

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    @property
    def scheduler(self) -> PlaybackScheduler:
        return self._scheduler

    def load(self, location: str) -> List[AnimationFrame]:
        """Fetch and render ``location`` without touching playback."""
        source = load_source(location, timeout=self.timeout, session=self._session)
        return render_source(source, self.width, self.height, layer=self.layer)

    def play(self, location: str) -> bool:
        """Replace current playback with ``location``; return True on success."""
        try:
            frames = self.load(location)
        except FlaschenTaschenError as exc:
            logger.error("Cannot play %s: %s", location, exc)
            return False
        logger.info("Playing %s (%d frame(s))", location, len(frames))
        self._scheduler.start(frames)
        return True

    def stop(self) -> None:
        self._scheduler.stop()
