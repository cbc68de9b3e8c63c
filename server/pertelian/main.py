from __future__ import annotations

import argparse
import logging
import sys

from .config import AppConfig, load_and_validate_config, validate_config
from .controller import DisplayController
from .errors import InvalidArgument, TransportFailure
from .protocol import LINE_COUNT, LINE_WIDTH, encode_line
from .sink import open_sink


def parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Write text to a Pertelian 4x20 serial LCD")
    p.add_argument("lines", nargs="*", metavar="TEXT", help="Text for lines 0-3 ('' skips a line)")
    p.add_argument("--config", default=None, help="Path to YAML config")
    p.add_argument("--port", default=None, help="Serial port (overrides config)")
    p.add_argument("--baud", type=int, default=None, help="Baud rate (overrides config)")
    p.add_argument(
        "--device",
        default=None,
        help="Device file to write to; selects the file transport",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the bytes as hex to stdout instead of sending them",
    )
    p.add_argument("--clear", action="store_true", help="Clear the display before writing")
    p.add_argument(
        "--backlight",
        choices=["on", "off"],
        default=None,
        help="Switch the backlight (default from config)",
    )
    p.add_argument("--cursor", action="store_true", help="Show the cursor")
    p.add_argument("--blink", action="store_true", help="Blink the cursor")
    p.add_argument("--display-off", action="store_true", help="Blank the display")
    p.add_argument(
        "--verbose",
        action="store_true",
        help="Enable INFO-level logging (default is ERROR)",
    )
    return p.parse_args(argv)


def _build_config(args: argparse.Namespace) -> AppConfig:
    cfg = load_and_validate_config(args.config) if args.config else AppConfig()
    if args.port is not None:
        cfg.serial.port = args.port
        cfg.transport = "serial"
    if args.baud is not None:
        cfg.serial.baud = args.baud
    if args.device is not None:
        cfg.device = args.device
        cfg.transport = "file"
    if args.dry_run:
        cfg.transport = "dump"
    validate_config(cfg)
    return cfg


def run(lcd: DisplayController, args: argparse.Namespace, backlight: bool) -> None:
    lcd.enable_backlight(backlight)
    if args.display_off or args.cursor or args.blink:
        lcd.set_display_cursor(not args.display_off, args.cursor, args.blink)
    if args.clear:
        lcd.clear_display()
    for index, text in enumerate(args.lines):
        if text:
            lcd.write_line(index, text)


def main(argv: list[str]) -> int:
    args = parse_args(argv)
    lvl = logging.INFO if args.verbose else logging.ERROR
    logging.basicConfig(level=lvl, format="%(levelname)s:%(name)s:%(message)s", stream=sys.stderr)
    log = logging.getLogger(__name__)

    if len(args.lines) > LINE_COUNT:
        log.error("at most %d lines can be written, got %d", LINE_COUNT, len(args.lines))
        return 2
    # Reject bad text before the display is touched at all
    try:
        for index, text in enumerate(args.lines):
            if text:
                encode_line(index, text)
                if len(text) > LINE_WIDTH:
                    log.warning("line %d is longer than %d chars and will spill over", index, LINE_WIDTH)
    except InvalidArgument as e:
        log.error("Invalid input: %s", e)
        return 2
    try:
        cfg = _build_config(args)
    except Exception as e:
        log.error("Failed to load config: %s", e)
        return 2

    backlight = cfg.backlight if args.backlight is None else args.backlight == "on"

    try:
        sink = open_sink(cfg)
        with DisplayController(sink, settle_delay=cfg.settle_delay) as lcd:
            run(lcd, args, backlight)
            log.info("display updated via %s transport", cfg.transport)
    except TransportFailure as e:
        log.error("Display transport failed: %s", e)
        return 3
    except KeyboardInterrupt:
        return 0
    return 0


def cli() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(cli())
