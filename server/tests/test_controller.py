from __future__ import annotations

import logging

import pytest

import pertelian.controller as controller_mod
from pertelian.controller import ControllerState, DisplayController
from pertelian.errors import DisplayClosed, InvalidArgument, OutOfRange, TransportFailure

INIT_EVENTS = [
    0xFE, 0x38, "flush",
    0xFE, 0x06, "flush",
    0xFE, 0x10, "flush",
    0xFE, 0x0C, "flush",
    0xFE, 0x01, "flush",
]


class RecordingSink:
    def __init__(self, fail_after: int | None = None) -> None:
        self.events: list[object] = []
        self.closed = 0
        self._fail_after = fail_after

    def send_byte(self, value: int) -> None:
        if self._fail_after is not None and len(self.bytes()) >= self._fail_after:
            raise TransportFailure("device unplugged")
        self.events.append(value)

    def flush(self) -> None:
        self.events.append("flush")

    def close(self) -> None:
        self.closed += 1

    def bytes(self) -> list[int]:
        return [e for e in self.events if isinstance(e, int)]


def _controller(sink: RecordingSink) -> DisplayController:
    lcd = DisplayController(sink, settle_delay=0)
    sink.events.clear()
    return lcd


def test_construction_sends_init_sequence() -> None:
    sink = RecordingSink()
    lcd = DisplayController(sink, settle_delay=0)
    assert sink.events == INIT_EVENTS
    assert lcd.state is ControllerState.INITIALIZED


def test_write_line_sends_bare_address_then_flushed_data() -> None:
    sink = RecordingSink()
    lcd = _controller(sink)
    lcd.write_line(1, "AB")
    assert sink.events == [0xC0, 0x41, "flush", 0x42, "flush"]


@pytest.mark.parametrize("index", [-1, 4])
def test_write_line_out_of_range_sends_nothing(index: int) -> None:
    sink = RecordingSink()
    lcd = _controller(sink)
    with pytest.raises(OutOfRange):
        lcd.write_line(index, "hi")
    assert sink.events == []
    assert lcd.state is ControllerState.INITIALIZED


@pytest.mark.parametrize("text", ["", None, "café"])
def test_write_line_invalid_text_sends_nothing(text) -> None:
    sink = RecordingSink()
    lcd = _controller(sink)
    with pytest.raises(InvalidArgument):
        lcd.write_line(0, text)
    assert sink.events == []


def test_wrapped_commands() -> None:
    sink = RecordingSink()
    lcd = _controller(sink)
    lcd.enable_backlight(True)
    lcd.enable_backlight(False)
    lcd.clear_display()
    lcd.set_display_cursor(True, True, True)
    assert sink.events == [
        0xFE, 0x03, "flush",
        0xFE, 0x02, "flush",
        0xFE, 0x01, "flush",
        0xFE, 0x1E, "flush",
    ]


def test_dispose_twice_closes_sink_once() -> None:
    sink = RecordingSink()
    lcd = _controller(sink)
    lcd.dispose()
    lcd.dispose()
    assert sink.closed == 1
    assert lcd.state is ControllerState.DISPOSED


def test_operations_after_dispose_raise() -> None:
    sink = RecordingSink()
    lcd = _controller(sink)
    lcd.close()
    with pytest.raises(DisplayClosed):
        lcd.clear_display()
    with pytest.raises(DisplayClosed):
        lcd.write_line(0, "x")
    assert sink.events == []


def test_context_manager_disposes() -> None:
    sink = RecordingSink()
    with DisplayController(sink, settle_delay=0) as lcd:
        lcd.write_line(0, "x")
    assert sink.closed == 1
    assert lcd.state is ControllerState.DISPOSED


def test_init_failure_closes_sink_and_propagates() -> None:
    sink = RecordingSink(fail_after=3)
    with pytest.raises(TransportFailure):
        DisplayController(sink, settle_delay=0)
    assert sink.closed == 1


def test_transport_failure_is_terminal(caplog) -> None:
    sink = RecordingSink()
    lcd = _controller(sink)
    sink._fail_after = len(sink.bytes())
    caplog.set_level(logging.ERROR)
    with pytest.raises(TransportFailure):
        lcd.enable_backlight(True)
    assert lcd.state is ControllerState.FAILED
    assert "device unplugged" in caplog.text
    with pytest.raises(DisplayClosed):
        lcd.clear_display()
    lcd.dispose()
    assert sink.closed == 1


def test_negative_settle_delay_rejected() -> None:
    sink = RecordingSink()
    with pytest.raises(ValueError):
        DisplayController(sink, settle_delay=-1)
    assert sink.events == []
    assert sink.closed == 1


def test_settle_delay_after_every_flush(monkeypatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr(controller_mod.time, "sleep", sleeps.append)
    sink = RecordingSink()
    lcd = DisplayController(sink, settle_delay=0.005)
    lcd.write_line(2, "Hi")
    # five init commands plus one per character
    assert sleeps == [0.005] * 7


@pytest.mark.parametrize("delay", [float("nan"), float("inf")])
def test_non_finite_settle_delay_rejected(delay: float) -> None:
    sink = RecordingSink()
    with pytest.raises(ValueError, match="finite"):
        DisplayController(sink, settle_delay=delay)
    assert sink.events == []
    assert sink.closed == 1
