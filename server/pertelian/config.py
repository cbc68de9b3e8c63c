from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .controller import DEFAULT_SETTLE_DELAY


@dataclass
class SerialConfig:
    port: str = "/dev/ttyUSB0"
    baud: int = 9600


@dataclass
class AppConfig:
    transport: str = "serial"
    serial: SerialConfig = field(default_factory=SerialConfig)
    device: str = "/dev/ttyUSB0"
    settle_delay: float = DEFAULT_SETTLE_DELAY
    backlight: bool = True


_ALLOWED_TRANSPORTS = {"serial", "file", "dump"}


def _as_int(val: Any, default: int) -> int:
    try:
        return int(val)
    except Exception:
        return default


def _as_float(val: Any, default: float) -> float:
    try:
        return float(val)
    except Exception:
        return default


def _as_bool(val: Any, default: bool) -> bool:
    if isinstance(val, bool):
        return val
    if isinstance(val, int):
        return val != 0
    if isinstance(val, str):
        low = val.strip().lower()
        if low in ("on", "true", "yes", "1"):
            return True
        if low in ("off", "false", "no", "0"):
            return False
    return default


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text())
    return data or {}


def load_config(path: str | Path) -> AppConfig:
    p = Path(path)
    data = _load_yaml(p)

    serial_raw = data.get("serial") or {}
    if not isinstance(serial_raw, dict):
        serial_raw = {}
    serial = SerialConfig(
        port=str(serial_raw.get("port", SerialConfig.port)),
        baud=_as_int(serial_raw.get("baud", SerialConfig.baud), SerialConfig.baud),
    )

    transport = str(data.get("transport", AppConfig.transport)).strip().lower()
    device = str(data.get("device", AppConfig.device))
    settle_delay = _as_float(data.get("settle_delay", DEFAULT_SETTLE_DELAY), DEFAULT_SETTLE_DELAY)
    # YAML already turns on/off into booleans; strings are accepted too
    backlight = _as_bool(data.get("backlight", True), True)

    return AppConfig(
        transport=transport,
        serial=serial,
        device=device,
        settle_delay=settle_delay,
        backlight=backlight,
    )


def validate_config(cfg: AppConfig) -> None:
    if cfg.transport not in _ALLOWED_TRANSPORTS:
        raise ValueError(
            f"unknown transport '{cfg.transport}' (expected one of {sorted(_ALLOWED_TRANSPORTS)})"
        )
    if not math.isfinite(cfg.settle_delay) or cfg.settle_delay < 0:
        raise ValueError("settle_delay must be a finite number >= 0")
    if cfg.transport == "serial":
        if not cfg.serial.port:
            raise ValueError("serial.port must be a non-empty string")
        if cfg.serial.baud <= 0:
            raise ValueError("serial.baud must be > 0")
    if cfg.transport == "file" and not cfg.device:
        raise ValueError("device must be a non-empty path for the file transport")


def load_and_validate_config(path: str | Path) -> AppConfig:
    cfg = load_config(path)
    validate_config(cfg)
    return cfg
