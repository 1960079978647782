"""Command-line interface for ft-player."""

from __future__ import annotations

import argparse
from io import BytesIO
import logging
from pathlib import Path
import sys
import threading
import time
from types import TracebackType
from typing import Callable, Dict, Iterable, Optional, Tuple

from PIL import Image
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ft_player.client import FlaschenTaschenClient
from ft_player.compositor import render_source
from ft_player.config import PlayerConfig, load_config, save_config, update_config
from ft_player.decoder import DECODE_ERRORS, decode_animation
from ft_player.errors import FlaschenTaschenError, StorageError
from ft_player.logging_setup import init_logging, set_console_level
from ft_player.raster import RasterBuffer
from ft_player.source import load_source

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ft-player",
        description="Play still and animated images on a Flaschen Taschen display",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output to stderr"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    play = commands.add_parser("play", help="Loop an image on a display")
    play.add_argument("location", help="URL or path of the image")
    play.add_argument("--host", default=None, help="Display host name or address")
    play.add_argument("--port", type=int, default=None, help="Display UDP port")
    _add_canvas_arguments(play)
    play.add_argument(
        "--duration",
        type=float,
        default=None,
        help="Stop after this many seconds (default: run until Ctrl-C)",
    )

    dump = commands.add_parser("dump", help="Write rendered frames as PPM files")
    dump.add_argument("location", help="URL or path of the image")
    dump.add_argument("output", help="Output .ppm path")
    _add_canvas_arguments(dump)
    dump.add_argument(
        "--all-frames",
        action="store_true",
        help="Write every frame as <output>-NNN.ppm instead of only the first",
    )

    inspect = commands.add_parser("inspect", help="Describe decoded frames")
    inspect.add_argument("location", help="URL or path of the image or .ppm dump")

    config = commands.add_parser("config", help="Show or change saved defaults")
    config.add_argument("--host", default=None, help="Display host name or address")
    config.add_argument("--port", type=int, default=None, help="Display UDP port")
    _add_canvas_arguments(config)
    config.add_argument(
        "--timeout", type=float, default=None, help="HTTP fetch timeout in seconds"
    )

    return parser


def _add_canvas_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--width", type=int, default=None, help="Canvas width")
    parser.add_argument("--height", type=int, default=None, help="Canvas height")
    parser.add_argument("--layer", type=int, default=None, help="Display layer")


def _canvas(args: argparse.Namespace, cfg: PlayerConfig) -> Tuple[int, int, int]:
    width = args.width if args.width is not None else cfg.width
    height = args.height if args.height is not None else cfg.height
    layer = args.layer if args.layer is not None else cfg.layer
    return width, height, layer


def _wait(duration: Optional[float]) -> None:
    if duration is not None:
        time.sleep(duration)
        return
    while True:
        time.sleep(1.0)


def _cmd_play(args: argparse.Namespace, cfg: PlayerConfig) -> int:
    host = args.host or cfg.host
    if not host:
        print(
            "No display host given; use --host or set it in the config.",
            file=sys.stderr,
        )
        return 1
    width, height, layer = _canvas(args, cfg)
    client = FlaschenTaschenClient(host, args.port or cfg.port)
    try:
        player = client.create_player(
            width, height, layer=layer, timeout=cfg.timeout
        )
        if not player.play(args.location):
            print(f"Could not play {args.location}", file=sys.stderr)
            return 1
        try:
            _wait(args.duration)
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            player.stop()
    except FlaschenTaschenError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    finally:
        client.close()
    return 0


def _frame_path(output: Path, index: int) -> Path:
    return output.with_name(f"{output.stem}-{index:03d}{output.suffix or '.ppm'}")


def _cmd_dump(args: argparse.Namespace, cfg: PlayerConfig) -> int:
    width, height, layer = _canvas(args, cfg)
    try:
        source = load_source(args.location, timeout=cfg.timeout)
        frames = render_source(source, width, height, layer=layer)
    except FlaschenTaschenError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    output = Path(args.output)
    targets = (
        [(_frame_path(output, i), frame) for i, frame in enumerate(frames)]
        if args.all_frames
        else [(output, frames[0])]
    )
    failed = 0
    for path, frame in targets:
        try:
            frame.image.write(path)
        except StorageError as exc:
            logger.error("%s", exc)
            failed += 1
    print(f"Wrote {len(targets) - failed} of {len(targets)} frame(s)")
    return 1 if failed else 0


def _read_raster(data: bytes) -> Optional[RasterBuffer]:
    """Return the buffer if ``data`` is a raster dump written by ``dump``."""
    if not data.startswith(b"P6\n"):
        return None
    try:
        return RasterBuffer.from_bytes(data)
    except ValueError as exc:
        logger.debug("Not a raster dump, decoding as an image: %s", exc)
        return None


def _cmd_inspect(args: argparse.Namespace, cfg: PlayerConfig) -> int:
    console = Console()
    try:
        source = load_source(args.location, timeout=cfg.timeout)
    except FlaschenTaschenError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    if not source.is_animated:
        raster = _read_raster(source.data)
        if raster is not None:
            options = raster.options
            console.print(
                Text(
                    f"Raster buffer: {raster.width}x{raster.height} "
                    f"layer {raster.layer} "
                    f"offset {options.offset_x},{options.offset_y}",
                    style="bold",
                )
            )
            return 0
        try:
            with Image.open(BytesIO(source.data)) as image:
                summary = f"{image.format} {image.width}x{image.height} {image.mode}"
        except DECODE_ERRORS as exc:
            print(f"Failed to decode image: {exc}", file=sys.stderr)
            return 1
        console.print(Text(f"Still image: {summary}", style="bold"))
        return 0
    try:
        decoded = decode_animation(source.data)
    except FlaschenTaschenError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    screen_width, screen_height = decoded.screen_size
    console.print(
        Text(
            f"{len(decoded.frames)} frames on a {screen_width}x{screen_height} screen",
            style="bold",
        )
    )
    table = Table(title=args.location)
    for column in ("#", "Region", "Colours", "Transparent", "Delay (ms)"):
        table.add_column(column, justify="right")
    for index, frame in enumerate(decoded.frames):
        table.add_row(
            str(index),
            f"{frame.region_width}x{frame.region_height}"
            f"+{frame.region_x}+{frame.region_y}",
            str(len(frame.color_table)),
            "-" if frame.transparent_index is None else str(frame.transparent_index),
            str(frame.delay_ms),
        )
    console.print(table)
    return 0


_CONFIG_FIELDS = ("host", "port", "width", "height", "layer", "timeout")


def _cmd_config(args: argparse.Namespace, cfg: PlayerConfig) -> int:
    changes: Dict[str, object] = {}
    for field in _CONFIG_FIELDS:
        value = getattr(args, field)
        if value is not None:
            changes[field] = value
    if changes:
        cfg = update_config(cfg, **changes)
        try:
            path = save_config(cfg)
        except StorageError as exc:
            print(str(exc), file=sys.stderr)
            return 1
        print(f"Saved {path}")
    table = Table(title="ft-player config")
    table.add_column("Setting")
    table.add_column("Value", justify="right")
    for field in _CONFIG_FIELDS:
        value = getattr(cfg, field)
        table.add_row(field, "-" if value is None else str(value))
    Console().print(table)
    return 0


_COMMANDS: Dict[str, Callable[[argparse.Namespace, PlayerConfig], int]] = {
    "play": _cmd_play,
    "dump": _cmd_dump,
    "inspect": _cmd_inspect,
    "config": _cmd_config,
}


def _install_exception_hooks() -> None:
    def excepthook(exc_type, exc, tb) -> None:
        logger.critical("Uncaught exception", exc_info=(exc_type, exc, tb))

    sys.excepthook = excepthook

    def thread_hook(args: threading.ExceptHookArgs) -> None:
        exc_value = args.exc_value or RuntimeError("unknown")
        exc_info: Tuple[
            type[BaseException], BaseException, Optional[TracebackType]
        ] = (
            args.exc_type,
            exc_value,
            args.exc_traceback,
        )
        thread_name = args.thread.name if args.thread else "thread"
        logger.error("Thread exception in %s", thread_name, exc_info=exc_info)

    threading.excepthook = thread_hook


def main(argv: Optional[Iterable[str]] = None) -> int:
    """Entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    init_logging()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        set_console_level(logging.DEBUG)
    _install_exception_hooks()

    cfg = load_config()
    exit_code = _COMMANDS[args.command](args, cfg)
    logger.debug("Exit code=%s", exit_code)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
