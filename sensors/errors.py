"""Error taxonomy for bus, sensor and measurement failures."""

from __future__ import annotations


class SensorError(Exception):
    """Base class for every failure raised by the sensor stack."""


class BusUnavailable(SensorError):
    """The I2C device could not be opened."""


class SensorInitFailed(SensorError):
    """The sensor did not answer its identification or reset sequence."""


class SensorConfigFailed(SensorError):
    """The sampling configuration could not be written."""


class MeasurementFailed(SensorError):
    """A trigger or read step failed while taking a reading."""


class MeasurementTimeout(SensorError):
    """The sensor never reported a finished measurement within the poll budget."""


def describe(exc: BaseException) -> str:
    """Render ``exc`` and the chain of causes behind it as one line."""

    parts: list[str] = []
    current: BaseException | None = exc
    while current is not None:
        parts.append(str(current) or type(current).__name__)
        current = current.__cause__
    return ": ".join(parts)
