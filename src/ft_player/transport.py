"""Fire-and-forget UDP transport for raster buffers."""

from __future__ import annotations

import logging
import socket
import threading
import time
from types import TracebackType
from typing import Optional, Tuple, Type

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1337
RESOLVE_RETRY_SECONDS = 30.0


class UdpTransport:
    """Sends each payload as one UDP datagram; errors are logged, never raised.

    The host name is resolved once, on the first send, and the address is
    reused afterwards. A failed lookup is retried at most every
    ``RESOLVE_RETRY_SECONDS``; sends in between return False at once.
    """

    def __init__(self, host: str, port: int = DEFAULT_PORT) -> None:
        self.host = host
        self.port = port
        self._socket: Optional[socket.socket] = None
        self._address: Optional[Tuple[str, int]] = None
        self._retry_at = 0.0
        self._lock = threading.Lock()

    def _get_socket(self) -> socket.socket:
        if self._socket is None:
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            sock.setblocking(False)
            self._socket = sock
        return self._socket

    def _resolve(self) -> Optional[Tuple[str, int]]:
        if self._address is not None:
            return self._address
        now = time.monotonic()
        if now < self._retry_at:
            return None
        try:
            ip = socket.gethostbyname(self.host)
        except OSError as exc:
            self._retry_at = now + RESOLVE_RETRY_SECONDS
            logger.warning("Cannot resolve display host %s: %s", self.host, exc)
            return None
        logger.debug("Resolved %s to %s", self.host, ip)
        self._address = (ip, self.port)
        return self._address

    def send(self, payload: bytes) -> bool:
        """Send ``payload``; return False if the datagram could not be sent."""
        with self._lock:
            address = self._resolve()
            if address is None:
                return False
            try:
                sent = self._get_socket().sendto(payload, address)
            except OSError as exc:
                logger.warning(
                    "UDP send to %s:%s failed: %s", self.host, self.port, exc
                )
                return False
        logger.debug("UDP message sent to %s:%s (%d bytes)", self.host, self.port, sent)
        return True

    def close(self) -> None:
        with self._lock:
            if self._socket is not None:
                self._socket.close()
                self._socket = None

    def __enter__(self) -> "UdpTransport":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()
