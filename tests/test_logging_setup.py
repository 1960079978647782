"""Tests for logging setup."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ft_player import logging_setup


def test_default_log_dir_uses_local_appdata(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("LOCALAPPDATA", str(tmp_path))
    assert logging_setup._default_log_dir() == tmp_path / "ft-player" / "logs"


def test_default_log_dir_uses_xdg_state(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("LOCALAPPDATA", raising=False)
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path))
    assert logging_setup._default_log_dir() == tmp_path / "ft-player" / "logs"


def test_default_log_dir_falls_back_to_home(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.delenv("LOCALAPPDATA", raising=False)
    monkeypatch.delenv("XDG_STATE_HOME", raising=False)
    monkeypatch.setattr(logging_setup.Path, "home", lambda: tmp_path)
    assert logging_setup._default_log_dir() == tmp_path / ".ft_player" / "logs"


def test_init_logging_creates_handlers(monkeypatch, tmp_path: Path) -> None:
    log_dir = tmp_path / "logs"
    monkeypatch.setattr(logging_setup, "_default_log_dir", lambda: log_dir)
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    root.handlers.clear()
    try:
        log_path = logging_setup.init_logging()
        assert log_path == log_dir / "ft-player.log"
        assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
        logging_setup.init_logging()
        assert sum(isinstance(h, RotatingFileHandler) for h in root.handlers) == 1
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)


def test_init_logging_invalid_level_defaults(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("FT_PLAYER_LOG_LEVEL", "notalevel")
    monkeypatch.setattr(logging_setup, "_default_log_dir", lambda: tmp_path / "logs")
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    original_level = root.level
    root.handlers.clear()
    try:
        logging_setup.init_logging()
        assert root.level == logging.INFO
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = original_handlers
        root.setLevel(original_level)


def test_set_console_level_adjusts_stream_only(tmp_path: Path) -> None:
    root = logging.getLogger()
    original_handlers = list(root.handlers)
    root.handlers.clear()
    try:
        stream_handler = logging.StreamHandler()
        file_handler = logging.FileHandler(tmp_path / "app.log")
        root.addHandler(stream_handler)
        root.addHandler(file_handler)
        logging_setup.set_console_level(logging.ERROR)
        assert stream_handler.level == logging.ERROR
        assert file_handler.level == logging.NOTSET
        file_handler.close()
    finally:
        root.handlers = original_handlers
