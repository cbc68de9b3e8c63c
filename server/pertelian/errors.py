from __future__ import annotations


class PertelianError(Exception):
    """Base class for everything the display driver raises."""


class OutOfRange(PertelianError, ValueError):
    def __init__(self, index: object, count: int) -> None:
        super().__init__(f"line index must be between 0 and {count - 1}, got {index!r}")
        self.index = index


class InvalidArgument(PertelianError, ValueError):
    pass


class TransportFailure(PertelianError, OSError):
    """Send, flush or open failed on the underlying byte channel."""


class DisplayClosed(PertelianError, RuntimeError):
    pass
