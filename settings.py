from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_ADDRESS_ENV = "BME280_I2C_ADDRESS"
_TEMPERATURE_OS_ENV = "BME280_TEMPERATURE_OVERSAMPLING"
_PRESSURE_OS_ENV = "BME280_PRESSURE_OVERSAMPLING"
_HUMIDITY_OS_ENV = "BME280_HUMIDITY_OVERSAMPLING"
_FILTER_ENV = "BME280_FILTER"
_MODE_ENV = "BME280_SENSOR_MODE"
_STANDBY_ENV = "BME280_STANDBY_MS"
_POLL_ATTEMPTS_ENV = "BME280_POLL_ATTEMPTS"
_POLL_INTERVAL_ENV = "BME280_POLL_INTERVAL"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000


@dataclass(frozen=True)
class Settings:
    i2c_address: int
    temperature_oversampling: str
    pressure_oversampling: str
    humidity_oversampling: str
    filter: str
    sensor_mode: str
    standby_ms: str
    poll_attempts: int
    poll_interval: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate.lower() or default


def _read_address(default: int) -> int:
    value = os.getenv(_ADDRESS_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate, 0)
    except ValueError:
        return default
    return parsed if 0x03 <= parsed <= 0x77 else default


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        i2c_address=_read_address(0x77),
        temperature_oversampling=_read_str_env(_TEMPERATURE_OS_ENV, "8"),
        pressure_oversampling=_read_str_env(_PRESSURE_OS_ENV, "8"),
        humidity_oversampling=_read_str_env(_HUMIDITY_OS_ENV, "8"),
        filter=_read_str_env(_FILTER_ENV, "4"),
        sensor_mode=_read_str_env(_MODE_ENV, "forced"),
        standby_ms=_read_str_env(_STANDBY_ENV, "0.5"),
        poll_attempts=_read_positive_int(_POLL_ATTEMPTS_ENV, 10),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 0.005),
        log_level=_read_log_level("INFO"),
    )
