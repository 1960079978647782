"""Configuration persistence for ft-player."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from ft_player.errors import StorageError
from ft_player.transport import DEFAULT_PORT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerConfig:
    """Immutable user configuration loaded from disk."""

    host: Optional[str] = None
    port: int = DEFAULT_PORT
    width: int = 32
    height: int = 32
    layer: int = 5
    timeout: float = 10.0


def get_config_dir(app_name: str = "ft-player") -> Path:
    """Return the per-user config directory for the current platform."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            root = Path(base)
        else:
            root = Path.home() / "AppData" / "Roaming"
        return _ensure_dir(root / app_name)
    elif os.name == "posix":
        if _is_macos():
            return _ensure_dir(
                Path.home() / "Library" / "Application Support" / app_name
            )
        base = os.environ.get("XDG_CONFIG_HOME")
        root = Path(base) if base else Path.home() / ".config"
        return _ensure_dir(root / app_name)
    else:
        return _ensure_dir(Path.home() / ".config" / app_name)


def load_config() -> PlayerConfig:
    """Load configuration from disk, falling back to defaults on error."""
    path = get_config_path()
    if not path.exists():
        return PlayerConfig()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        logger.exception("Failed to load config from %s", path)
        return PlayerConfig()
    if not isinstance(raw, dict):
        return PlayerConfig()
    return _config_from_mapping(raw)


def update_config(cfg: PlayerConfig, **changes: Any) -> PlayerConfig:
    """Return ``cfg`` with ``changes`` applied, sanitised like a loaded file."""
    unknown = set(changes) - set(asdict(cfg))
    if unknown:
        raise TypeError(f"unknown config field(s): {', '.join(sorted(unknown))}")
    return _config_from_mapping({**asdict(cfg), **changes})


def save_config(cfg: PlayerConfig) -> Path:
    """Persist configuration to disk atomically and return the file path."""
    path = get_config_path()
    temp_path = path.with_suffix(".tmp")
    try:
        temp_path.write_text(json.dumps(asdict(cfg), indent=2), encoding="utf-8")
        os.replace(temp_path, path)
    except OSError as exc:
        raise StorageError(f"Failed to save config to {path}: {exc}") from exc
    logger.info("Saved config to %s", path)
    return path


def get_config_path() -> Path:
    """Return the full config file path."""
    return get_config_dir() / "config.json"


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def _is_macos() -> bool:
    return os.uname().sysname == "Darwin" if hasattr(os, "uname") else False  # pyright: ignore[reportAttributeAccessIssue]


def _get_int(
    raw: dict[str, Any],
    key: str,
    default: int,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    """Fetch an integer value with optional clamping."""
    value = raw.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool):
        value = default
    if min_value is not None:
        value = max(min_value, value)
    if max_value is not None:
        value = min(max_value, value)
    return value


def _get_float(raw: dict[str, Any], key: str, default: float) -> float:
    value = raw.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if value <= 0:
        return default
    return float(value)


def _config_from_mapping(raw: dict[str, Any]) -> PlayerConfig:
    """Normalize raw JSON data into a PlayerConfig."""
    host = raw.get("host")
    if not isinstance(host, str) or not host.strip():
        host = None
    return PlayerConfig(
        host=host.strip() if host else None,
        port=_get_int(raw, "port", DEFAULT_PORT, min_value=1, max_value=65535),
        width=_get_int(raw, "width", 32, min_value=1),
        height=_get_int(raw, "height", 32, min_value=1),
        layer=_get_int(raw, "layer", 5, min_value=0),
        timeout=_get_float(raw, "timeout", 10.0),
    )
