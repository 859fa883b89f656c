"""Sampling settings written to the sensor's control registers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict

from settings import Settings


class _RegisterEnum(Enum):
    """Enum whose value is the register field code, parsed from a human label."""

    @classmethod
    def _labels(cls) -> Dict[str, "_RegisterEnum"]:
        raise NotImplementedError

    @classmethod
    def parse(cls, value: str):
        candidate = value.strip().lower()
        labels = cls._labels()
        if candidate in labels:
            return labels[candidate]
        if candidate in cls.__members__:
            return cls[candidate]
        choices = ", ".join(sorted(labels))
        raise ValueError(f"Unsupported {cls.__name__} value {value!r}; expected one of {choices}.")


class Oversampling(_RegisterEnum):
    skip = 0b000
    x1 = 0b001
    x2 = 0b010
    x4 = 0b011
    x8 = 0b100
    x16 = 0b101

    @property
    def factor(self) -> int:
        return 0 if self is Oversampling.skip else 1 << (self.value - 1)

    @classmethod
    def _labels(cls) -> Dict[str, "Oversampling"]:
        labels: Dict[str, Oversampling] = {"0": cls.skip, "off": cls.skip}
        for member in cls:
            if member is not cls.skip:
                labels[str(member.factor)] = member
        return labels


class Filter(_RegisterEnum):
    off = 0b000
    x2 = 0b001
    x4 = 0b010
    x8 = 0b011
    x16 = 0b100

    @property
    def coefficient(self) -> int:
        return 0 if self is Filter.off else 1 << self.value

    @classmethod
    def _labels(cls) -> Dict[str, "Filter"]:
        labels: Dict[str, Filter] = {"0": cls.off}
        for member in cls:
            if member is not cls.off:
                labels[str(member.coefficient)] = member
        return labels


class SensorMode(_RegisterEnum):
    sleep = 0b00
    forced = 0b01
    normal = 0b11

    @classmethod
    def _labels(cls) -> Dict[str, "SensorMode"]:
        return {member.name: member for member in cls}


class StandbyTime(_RegisterEnum):
    """Inactive duration between measurements in normal mode."""

    ms_0_5 = 0b000
    ms_62_5 = 0b001
    ms_125 = 0b010
    ms_250 = 0b011
    ms_500 = 0b100
    ms_1000 = 0b101
    ms_10 = 0b110
    ms_20 = 0b111

    @property
    def milliseconds(self) -> float:
        return float(self.name[3:].replace("_", "."))

    @classmethod
    def _labels(cls) -> Dict[str, "StandbyTime"]:
        labels: Dict[str, StandbyTime] = {}
        for member in cls:
            labels[f"{member.milliseconds:g}"] = member
        return labels


@dataclass(frozen=True)
class SamplingConfiguration:
    """Immutable sampling settings applied once when the sensor is configured."""

    temperature_oversampling: Oversampling = Oversampling.x8
    pressure_oversampling: Oversampling = Oversampling.x8
    humidity_oversampling: Oversampling = Oversampling.x8
    filter: Filter = Filter.x4
    mode: SensorMode = SensorMode.forced
    standby: StandbyTime = StandbyTime.ms_0_5

    @classmethod
    def from_settings(cls, settings: Settings) -> "SamplingConfiguration":
        """Raises ``ValueError`` when a setting is not supported by the sensor."""

        return cls(
            temperature_oversampling=Oversampling.parse(settings.temperature_oversampling),
            pressure_oversampling=Oversampling.parse(settings.pressure_oversampling),
            humidity_oversampling=Oversampling.parse(settings.humidity_oversampling),
            filter=Filter.parse(settings.filter),
            mode=SensorMode.parse(settings.sensor_mode),
            standby=StandbyTime.parse(settings.standby_ms),
        )

    def max_measurement_ms(self) -> float:
        """Worst-case duration of one measurement cycle in milliseconds."""

        duration = 1.25
        if self.temperature_oversampling is not Oversampling.skip:
            duration += 2.3 * self.temperature_oversampling.factor
        if self.pressure_oversampling is not Oversampling.skip:
            duration += 2.3 * self.pressure_oversampling.factor + 0.575
        if self.humidity_oversampling is not Oversampling.skip:
            duration += 2.3 * self.humidity_oversampling.factor + 0.575
        return duration
