from __future__ import annotations

import struct
import threading
import time
from typing import Dict, List, Tuple

import pytest

from models.records import Reading
from sensors.bme280 import (
    REG_CALIBRATION_HIGH,
    REG_CALIBRATION_LOW,
    REG_CHIP_ID,
    REG_CTRL_MEAS,
    REG_DATA,
    REG_STATUS,
    STATUS_MEASURING,
)

# Trimming values from the Bosch datasheet compensation example, plus
# typical humidity parameters.
CALIBRATION_LOW = struct.pack(
    "<HhhH8hBB",
    27504, 26435, -1000,
    36477, -10685, 3024, 2855, 140, -7, 15500, -14600, 6000,
    0, 75,
)
# H2=362, H3=0, H4=313, H5=50, H6=30
CALIBRATION_HIGH = struct.pack("<hBbBbb", 362, 0, 19, 0x29, 3, 30)

DATASHEET_ADC_T = 519888
DATASHEET_ADC_P = 415148


class FakeI2CBus:
    """In-memory BME280 register map."""

    def __init__(self, chip_id: int = 0x60, measuring_polls: int = 0) -> None:
        self.registers = bytearray(256)
        self.registers[REG_CHIP_ID] = chip_id
        self.registers[REG_CALIBRATION_LOW:REG_CALIBRATION_LOW + len(CALIBRATION_LOW)] = CALIBRATION_LOW
        self.registers[REG_CALIBRATION_HIGH:REG_CALIBRATION_HIGH + len(CALIBRATION_HIGH)] = CALIBRATION_HIGH
        self.measuring_polls = measuring_polls
        self._pending_polls = 0
        self.writes: List[Tuple[int, bytes]] = []
        self.fail_reads = False
        self.fail_writes = False
        self.closed = False
        self.set_raw(adc_t=0x80000, adc_p=0x80000, adc_h=0x8000)

    def set_raw(self, adc_t: int, adc_p: int, adc_h: int) -> None:
        self.registers[REG_DATA:REG_DATA + 8] = bytes(
            [
                adc_p >> 12, (adc_p >> 4) & 0xFF, (adc_p & 0x0F) << 4,
                adc_t >> 12, (adc_t >> 4) & 0xFF, (adc_t & 0x0F) << 4,
                adc_h >> 8, adc_h & 0xFF,
            ]
        )

    def read(self, register: int, length: int) -> bytes:
        if self.fail_reads:
            raise OSError(5, "bus read failed")
        if register == REG_STATUS:
            if self._pending_polls > 0:
                self._pending_polls -= 1
                return bytes([STATUS_MEASURING])
            return bytes([0])
        return bytes(self.registers[register:register + length])

    def write(self, register: int, data: bytes) -> None:
        if self.fail_writes:
            raise OSError(5, "bus write failed")
        self.writes.append((register, bytes(data)))
        self.registers[register:register + len(data)] = data
        if register == REG_CTRL_MEAS and data[0] & 0b11 == 0b01:
            self._pending_polls = self.measuring_polls

    def writes_to(self, register: int) -> List[int]:
        return [data[0] for reg, data in self.writes if reg == register]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_bus() -> FakeI2CBus:
    bus = FakeI2CBus()
    bus.set_raw(adc_t=DATASHEET_ADC_T, adc_p=DATASHEET_ADC_P, adc_h=30000)
    return bus


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def bus_factory(fake_bus: FakeI2CBus):
    opened: Dict[str, object] = {}

    def factory(device_path: str, address: int) -> FakeI2CBus:
        opened["device_path"] = device_path
        opened["address"] = address
        return fake_bus

    factory.opened = opened  # type: ignore[attr-defined]
    return factory


class ReentrancyDetectingSession:
    """Session stand-in that fails loudly when two readings overlap."""

    def __init__(self, hold_seconds: float = 0.005) -> None:
        self.hold_seconds = hold_seconds
        self._active = 0
        self._state_lock = threading.Lock()
        self.calls = 0
        self.closed = False

    def take_reading(self) -> Reading:
        with self._state_lock:
            self._active += 1
            overlapping = self._active > 1
        try:
            if overlapping:
                raise AssertionError("take_reading entered concurrently")
            time.sleep(self.hold_seconds)
            self.calls += 1
            return Reading(temperature=21.0, pressure=100000.0, humidity=40.0)
        finally:
            with self._state_lock:
                self._active -= 1

    def close(self) -> None:
        self.closed = True
