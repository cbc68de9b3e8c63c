from __future__ import annotations

import logging
import sys
from typing import IO, TYPE_CHECKING, Optional, Protocol

import serial

from .errors import TransportFailure

if TYPE_CHECKING:
    from .config import AppConfig

log = logging.getLogger(__name__)


class ByteSink(Protocol):
    def send_byte(self, value: int) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


class SerialSink:
    """Byte sink over a pyserial port."""

    def __init__(self, port: str, baud: int = 9600, timeout: float = 1.0) -> None:
        self.port = port
        try:
            self._ser: Optional[serial.Serial] = serial.Serial(
                port, baud, write_timeout=timeout
            )
        except (serial.SerialException, OSError) as e:
            log.error("failed to open serial port %s: %s", port, e)
            raise TransportFailure(f"cannot open {port}: {e}") from e
        log.info("opened serial port %s baud=%d", port, baud)

    def _port(self) -> serial.Serial:
        if self._ser is None:
            raise TransportFailure(f"serial port {self.port} is closed")
        return self._ser

    def send_byte(self, value: int) -> None:
        try:
            self._port().write(bytes((value,)))
        except (serial.SerialException, OSError) as e:
            raise TransportFailure(f"write to {self.port} failed: {e}") from e

    def flush(self) -> None:
        try:
            self._port().flush()
        except (serial.SerialException, OSError) as e:
            raise TransportFailure(f"flush of {self.port} failed: {e}") from e

    def close(self) -> None:
        if self._ser is None:
            return
        ser, self._ser = self._ser, None
        try:
            ser.close()
        finally:
            log.info("closed serial port %s", self.port)


class FileSink:
    """Byte sink writing to a device file the OS has already configured."""

    def __init__(self, path: str) -> None:
        self.path = path
        try:
            self._fh: Optional[IO[bytes]] = open(path, "wb")
        except OSError as e:
            log.error("failed to open device file %s: %s", path, e)
            raise TransportFailure(f"cannot open {path}: {e}") from e
        log.info("opened device file %s", path)

    def _file(self) -> IO[bytes]:
        if self._fh is None:
            raise TransportFailure(f"device file {self.path} is closed")
        return self._fh

    def send_byte(self, value: int) -> None:
        try:
            self._file().write(bytes((value,)))
        except OSError as e:
            raise TransportFailure(f"write to {self.path} failed: {e}") from e

    def flush(self) -> None:
        try:
            self._file().flush()
        except OSError as e:
            raise TransportFailure(f"flush of {self.path} failed: {e}") from e

    def close(self) -> None:
        if self._fh is None:
            return
        fh, self._fh = self._fh, None
        try:
            fh.close()
        finally:
            log.info("closed device file %s", self.path)


class DumpSink:
    """Dry-run sink: prints each flushed group of bytes as one hex line."""

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        self._stream = stream
        self._pending = bytearray()
        self.closed = False

    def send_byte(self, value: int) -> None:
        self._pending.append(value)

    def flush(self) -> None:
        if not self._pending:
            return
        # Resolve stdout lazily so redirection after construction still works
        out = self._stream if self._stream is not None else sys.stdout
        line = self._pending.hex(" ")
        self._pending.clear()
        try:
            print(line, file=out)
        except OSError as e:
            raise TransportFailure(f"dump output failed: {e}") from e

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.flush()


def open_sink(cfg: "AppConfig", stream: Optional[IO[str]] = None) -> ByteSink:
    if cfg.transport == "serial":
        return SerialSink(cfg.serial.port, cfg.serial.baud)
    if cfg.transport == "file":
        return FileSink(cfg.device)
    if cfg.transport == "dump":
        return DumpSink(stream)
    raise ValueError(f"unknown transport '{cfg.transport}'")
