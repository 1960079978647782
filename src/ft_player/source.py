"""Load image bytes from a URL or a local path and classify them."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import requests

from ft_player.errors import SourceUnavailable

logger = logging.getLogger(__name__)

ANIMATED_CONTENT_TYPE = "image/gif"
DEFAULT_TIMEOUT = 10.0


class SourceKind(Enum):
    STATIC = "static"
    ANIMATED = "animated"


@dataclass(frozen=True)
class SourceBytes:
    kind: SourceKind
    data: bytes
    location: str
    content_type: Optional[str] = None

    @property
    def is_animated(self) -> bool:
        return self.kind is SourceKind.ANIMATED


def is_url(location: str) -> bool:
    """Return True when ``location`` looks like an http(s) URL."""
    try:
        parsed = urlparse(location)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def _classify_content_type(content_type: Optional[str]) -> SourceKind:
    if not content_type:
        return SourceKind.STATIC
    media_type = content_type.split(";", 1)[0].strip().lower()
    if media_type == ANIMATED_CONTENT_TYPE:
        return SourceKind.ANIMATED
    return SourceKind.STATIC


def _classify_path(path: Path) -> SourceKind:
    if "gif" in path.suffix.lower():
        return SourceKind.ANIMATED
    return SourceKind.STATIC


def fetch_url(
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> SourceBytes:
    getter = session.get if session is not None else requests.get
    try:
        response = getter(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise SourceUnavailable(f"Failed to fetch {url}: {exc}") from exc
    content_type = response.headers.get("content-type")
    logger.debug(
        "Fetched %s (%s, %d bytes)", url, content_type, len(response.content)
    )
    return SourceBytes(
        kind=_classify_content_type(content_type),
        data=response.content,
        location=url,
        content_type=content_type,
    )


def read_file(location: str) -> SourceBytes:
    path = Path(location).expanduser()
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise SourceUnavailable(f"Failed to read {path}: {exc}") from exc
    return SourceBytes(kind=_classify_path(path), data=data, location=location)


def load_source(
    location: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> SourceBytes:
    """Retrieve ``location`` once; failures raise SourceUnavailable."""
    if is_url(location):
        return fetch_url(location, timeout=timeout, session=session)
    return read_file(location)
