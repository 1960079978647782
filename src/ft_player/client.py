"""Flaschen Taschen client: build raster buffers and send them to a display.

Protocol reference:
https://github.com/hzeller/flaschen-taschen/blob/master/doc/protocols.md
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Protocol

from ft_player.raster import ImageOptions, RasterBuffer
from ft_player.source import DEFAULT_TIMEOUT
from ft_player.transport import DEFAULT_PORT, UdpTransport

if TYPE_CHECKING:
    from ft_player.player import FlaschenTaschenPlayer
    from ft_player.scheduler import SetTimer

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def send(self, payload: bytes) -> bool: ...

    def close(self) -> None: ...


class FlaschenTaschenClient:
    """Client bound to one display at ``host:port``."""

    default_options = ImageOptions(width=32, height=32, layer=15)

    def __init__(
        self,
        host: str,
        port: Optional[int] = None,
        *,
        transport: Optional[Transport] = None,
    ) -> None:
        self.host = host
        self.port = port or DEFAULT_PORT
        self._transport: Transport = transport or UdpTransport(host, self.port)

    def create(
        self,
        *,
        width: Optional[int] = None,
        height: Optional[int] = None,
        layer: Optional[int] = None,
        offset_x: Optional[int] = None,
        offset_y: Optional[int] = None,
    ) -> RasterBuffer:
        """Return a blank buffer using the client defaults for unset options."""
        options = self.default_options.merged(
            width=width,
            height=height,
            layer=layer,
            offset_x=offset_x,
            offset_y=offset_y,
        )
        return RasterBuffer(options)

    def render(self, raster: RasterBuffer) -> bool:
        """Transmit ``raster`` now. Returns False if the send failed."""
        return self._transport.send(raster.buffer)

    def create_player(
        self,
        width: int = 32,
        height: int = 32,
        *,
        layer: int = 5,
        timeout: float = DEFAULT_TIMEOUT,
        set_timer: Optional["SetTimer"] = None,
    ) -> "FlaschenTaschenPlayer":
        """Return a player that loops images on this client's display."""
        from ft_player.player import FlaschenTaschenPlayer

        return FlaschenTaschenPlayer(
            self, width, height, layer=layer, timeout=timeout, set_timer=set_timer
        )

    def close(self) -> None:
        self._transport.close()
