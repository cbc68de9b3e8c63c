from __future__ import annotations

import contextlib
import enum
import logging
import math
import time
from typing import Iterator, Optional

from .errors import DisplayClosed, TransportFailure
from .protocol import (
    INIT_SEQUENCE,
    Command,
    backlight_code,
    clear_code,
    display_flags_code,
    encode_line,
)
from .sink import ByteSink

log = logging.getLogger(__name__)

# Settling time the display needs after every flushed command (seconds)
DEFAULT_SETTLE_DELAY = 0.002


class ControllerState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    FAILED = "failed"
    DISPOSED = "disposed"


class DisplayController:
    """Drives a 4x20 Pertelian display through a byte sink.

    The controller owns ``sink`` from construction on: it initializes the
    display immediately and closes the sink on ``dispose()``, or before
    re-raising if initialization fails.

    Not thread safe; use one instance from one thread at a time.
    """

    def __init__(self, sink: ByteSink, settle_delay: float = DEFAULT_SETTLE_DELAY) -> None:
        self._sink: Optional[ByteSink] = sink
        self._settle_delay = settle_delay
        self._state = ControllerState.UNINITIALIZED
        try:
            if not math.isfinite(settle_delay) or settle_delay < 0:
                raise ValueError(f"settle_delay must be a finite number >= 0, got {settle_delay!r}")
            self._initialize()
        except BaseException:
            self.dispose()
            raise
        self._state = ControllerState.INITIALIZED

    @property
    def state(self) -> ControllerState:
        return self._state

    def __enter__(self) -> "DisplayController":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def _initialize(self) -> None:
        log.info("initializing display")
        for code in INIT_SEQUENCE:
            self._write_code(code)

    def _require_ready(self) -> None:
        if self._state is ControllerState.DISPOSED:
            raise DisplayClosed("display controller has been disposed")
        if self._state is ControllerState.FAILED:
            raise DisplayClosed("display controller is unusable after a transport failure")

    @contextlib.contextmanager
    def _transport(self) -> Iterator[ByteSink]:
        if self._sink is None:
            raise DisplayClosed("display controller has been disposed")
        try:
            yield self._sink
        except TransportFailure as e:
            log.error("transport failure: %s", e)
            self._state = ControllerState.FAILED
            raise

    def _flush(self, sink: ByteSink) -> None:
        sink.flush()
        if self._settle_delay:
            time.sleep(self._settle_delay)

    def _write_code(self, code: int) -> None:
        with self._transport() as sink:
            for value in Command(code).encode():
                sink.send_byte(value)
            self._flush(sink)

    def write_line(self, index: int, text: str) -> None:
        """Write ``text`` starting at the first column of line ``index`` (0-3).

        Nothing is sent unless both arguments are valid.
        """
        payload = encode_line(index, text)
        self._require_ready()
        log.debug("write line=%d text=%r", index, text)
        with self._transport() as sink:
            # Address byte goes out bare and is flushed together with the first character
            sink.send_byte(payload[0])
            for value in payload[1:]:
                sink.send_byte(value)
                self._flush(sink)

    def enable_backlight(self, enable: bool) -> None:
        self._require_ready()
        log.debug("backlight %s", "on" if enable else "off")
        self._write_code(backlight_code(enable))

    def clear_display(self) -> None:
        self._require_ready()
        log.debug("clear display")
        self._write_code(clear_code())

    def set_display_cursor(self, display_on: bool, cursor_on: bool, blink_on: bool) -> None:
        self._require_ready()
        log.debug("display=%s cursor=%s blink=%s", display_on, cursor_on, blink_on)
        self._write_code(display_flags_code(display_on, cursor_on, blink_on))

    def dispose(self) -> None:
        if self._state is ControllerState.DISPOSED:
            return
        sink, self._sink = self._sink, None
        self._state = ControllerState.DISPOSED
        if sink is not None:
            sink.close()
            log.info("display controller disposed")

    close = dispose
