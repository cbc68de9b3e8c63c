from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import InvalidArgument, OutOfRange

COMMAND_MARKER = 0xFE  # precedes every control code

# DDRAM start address of each row, with the "set address" bit (0x80) included
LINE_ADDRESSES = (0x80, 0x80 + 0x40, 0x80 + 0x14, 0x80 + 0x40 + 0x14)
LINE_COUNT = len(LINE_ADDRESSES)
LINE_WIDTH = 20

CLEAR = 0x01
BACKLIGHT_OFF = 0x02
BACKLIGHT_ON = 0x03

# Order matters: the interface width must be set before anything else.
INIT_SEQUENCE = (
    0x38,  # 8 bit interface
    0x06,  # cursor moves right, no automatic display shift
    0x10,  # move cursor (not display) on data write
    0x0C,  # cursor off
    CLEAR,
)


@dataclass(frozen=True)
class Command:
    code: int

    def encode(self) -> bytes:
        return wrap_as_command(self.code)


def line_address_byte(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < LINE_COUNT:
        raise OutOfRange(index, LINE_COUNT)
    return LINE_ADDRESSES[index]


def wrap_as_command(code: int) -> bytes:
    return bytes((COMMAND_MARKER, code))


def backlight_code(enable: bool) -> int:
    return BACKLIGHT_ON if enable else BACKLIGHT_OFF


def clear_code() -> int:
    return CLEAR


def display_flags_code(display_on: bool, cursor_on: bool, blink_on: bool) -> int:
    """Pack the display control flags into one code.

    Bit layout (7..0): ``0 0 0 1 D C B 0``. Bit 4 is always set.
    """
    code = 1 << 4
    code |= int(bool(display_on)) << 3
    code |= int(bool(cursor_on)) << 2
    code |= int(bool(blink_on)) << 1
    return code


def ascii_bytes(text: Optional[str]) -> bytes:
    """Return one byte per character of ``text``.

    Characters outside ASCII are rejected rather than replaced.
    """
    if not text:
        raise InvalidArgument("text cannot be None or empty")
    if not isinstance(text, str):
        raise InvalidArgument(f"text must be a str, got {type(text).__name__}")
    try:
        return text.encode("ascii")
    except UnicodeEncodeError as e:
        raise InvalidArgument(
            f"non-ASCII character {text[e.start]!r} at position {e.start}"
        ) from e


def encode_line(index: int, text: Optional[str]) -> bytes:
    # The address byte goes out bare, without the command marker
    address = line_address_byte(index)
    return bytes((address,)) + ascii_bytes(text)
