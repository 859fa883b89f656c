"""Register level driver for the Bosch BME280 combined humidity and pressure sensor.

The driver only knows the register map and the compensation formulas from the
datasheet. It does not wait for measurements or serialize callers; both are
the responsibility of the session that owns it.
"""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple

from models.sampling import SamplingConfiguration, SensorMode

CHIP_ID = 0x60
RESET_COMMAND = 0xB6

REG_CALIBRATION_LOW = 0x88
REG_CHIP_ID = 0xD0
REG_RESET = 0xE0
REG_CALIBRATION_HIGH = 0xE1
REG_CTRL_HUM = 0xF2
REG_STATUS = 0xF3
REG_CTRL_MEAS = 0xF4
REG_CONFIG = 0xF5
REG_DATA = 0xF7

STATUS_MEASURING = 0x08
STATUS_IM_UPDATE = 0x01

SKIPPED_20_BIT = 0x80000
SKIPPED_16_BIT = 0x8000

_CALIBRATION_LOW_FORMAT = "<HhhH8hBB"
_CALIBRATION_HIGH_FORMAT = "<hBbBbb"
_CALIBRATION_LOW_SIZE = struct.calcsize(_CALIBRATION_LOW_FORMAT)
_CALIBRATION_HIGH_SIZE = struct.calcsize(_CALIBRATION_HIGH_FORMAT)
_DATA_SIZE = 8

Sample = Tuple[Optional[float], Optional[float], Optional[float]]


class RegisterBus(Protocol):
    def read(self, register: int, length: int) -> bytes:
        ...

    def write(self, register: int, data: bytes) -> None:
        ...


@dataclass(frozen=True)
class Calibration:
    """Trimming parameters burned into the sensor's NVM."""

    t1: int
    t2: int
    t3: int
    p1: int
    p2: int
    p3: int
    p4: int
    p5: int
    p6: int
    p7: int
    p8: int
    p9: int
    h1: int
    h2: int
    h3: int
    h4: int
    h5: int
    h6: int

    @classmethod
    def from_registers(cls, low: bytes, high: bytes) -> "Calibration":
        if len(low) != _CALIBRATION_LOW_SIZE or len(high) != _CALIBRATION_HIGH_SIZE:
            raise ValueError(
                f"Calibration block has unexpected size ({len(low)}, {len(high)} bytes)."
            )
        t1, t2, t3, p1, p2, p3, p4, p5, p6, p7, p8, p9, _reserved, h1 = struct.unpack(
            _CALIBRATION_LOW_FORMAT, low
        )
        h2, h3, e4, e5, e6, h6 = struct.unpack(_CALIBRATION_HIGH_FORMAT, high)
        # H4 and H5 are signed 12-bit values sharing the nibbles of 0xE5.
        h4 = (e4 * 16) | (e5 & 0x0F)
        h5 = (e6 * 16) | (e5 >> 4)
        return cls(
            t1=t1, t2=t2, t3=t3,
            p1=p1, p2=p2, p3=p3, p4=p4, p5=p5, p6=p6, p7=p7, p8=p8, p9=p9,
            h1=h1, h2=h2, h3=h3, h4=h4, h5=h5, h6=h6,
        )

    def temperature(self, adc_t: int) -> Tuple[float, float]:
        """Return ``(degrees_celsius, t_fine)``; ``t_fine`` feeds the other channels."""

        var1 = (adc_t / 16384.0 - self.t1 / 1024.0) * self.t2
        var2 = (adc_t / 131072.0 - self.t1 / 8192.0) ** 2 * self.t3
        t_fine = var1 + var2
        return t_fine / 5120.0, t_fine

    def pressure(self, adc_p: int, t_fine: float) -> Optional[float]:
        """Pressure in Pa, or ``None`` when the calibration would divide by zero."""

        var1 = t_fine / 2.0 - 64000.0
        var2 = var1 * var1 * self.p6 / 32768.0
        var2 = var2 + var1 * self.p5 * 2.0
        var2 = var2 / 4.0 + self.p4 * 65536.0
        var1 = (self.p3 * var1 * var1 / 524288.0 + self.p2 * var1) / 524288.0
        var1 = (1.0 + var1 / 32768.0) * self.p1
        if var1 == 0:
            return None
        pressure = 1048576.0 - adc_p
        pressure = (pressure - var2 / 4096.0) * 6250.0 / var1
        var1 = self.p9 * pressure * pressure / 2147483648.0
        var2 = pressure * self.p8 / 32768.0
        return pressure + (var1 + var2 + self.p7) / 16.0

    def humidity(self, adc_h: int, t_fine: float) -> float:
        """Relative humidity in percent, clamped to 0..100."""

        var = t_fine - 76800.0
        var = (adc_h - (self.h4 * 64.0 + self.h5 / 16384.0 * var)) * (
            self.h2 / 65536.0 * (1.0 + self.h6 / 67108864.0 * var * (1.0 + self.h3 / 67108864.0 * var))
        )
        var = var * (1.0 - self.h1 * var / 524288.0)
        return min(max(var, 0.0), 100.0)


class BME280:
    """BME280 on a register bus.

    ``init`` must succeed before the sensor can be configured or sampled.
    """

    def __init__(
        self,
        bus: RegisterBus,
        sleep: Callable[[float], None] = time.sleep,
        reset_attempts: int = 10,
    ) -> None:
        self._bus = bus
        self._sleep = sleep
        self._reset_attempts = reset_attempts
        self.calibration: Optional[Calibration] = None
        self.configuration: Optional[SamplingConfiguration] = None

    def init(self) -> int:
        """Identify, soft reset and load calibration. Returns the chip id."""

        chip_id = self._read_byte(REG_CHIP_ID)
        if chip_id != CHIP_ID:
            raise ValueError(f"Unexpected chip id 0x{chip_id:02x}, expected 0x{CHIP_ID:02x}.")

        self._bus.write(REG_RESET, bytes([RESET_COMMAND]))
        for _ in range(self._reset_attempts):
            self._sleep(0.002)
            if not self._read_byte(REG_STATUS) & STATUS_IM_UPDATE:
                break
        else:
            raise TimeoutError("Sensor kept copying NVM data after reset.")

        self.calibration = Calibration.from_registers(
            self._bus.read(REG_CALIBRATION_LOW, _CALIBRATION_LOW_SIZE),
            self._bus.read(REG_CALIBRATION_HIGH, _CALIBRATION_HIGH_SIZE),
        )
        return chip_id

    def set_sampling_configuration(self, configuration: SamplingConfiguration) -> None:
        # ctrl_hum only takes effect after the following ctrl_meas write, and
        # config is ignored unless the sensor is asleep, so the order matters.
        self._bus.write(REG_CTRL_MEAS, bytes([self._ctrl_meas(configuration, SensorMode.sleep)]))
        self._bus.write(REG_CTRL_HUM, bytes([configuration.humidity_oversampling.value]))
        self._bus.write(
            REG_CONFIG,
            bytes([(configuration.standby.value << 5) | (configuration.filter.value << 2)]),
        )
        if configuration.mode is SensorMode.normal:
            mode = SensorMode.normal
        else:
            mode = SensorMode.sleep
        self._bus.write(REG_CTRL_MEAS, bytes([self._ctrl_meas(configuration, mode)]))
        self.configuration = configuration

    def trigger_forced_measurement(self) -> None:
        configuration = self._require_configuration()
        self._bus.write(
            REG_CTRL_MEAS, bytes([self._ctrl_meas(configuration, SensorMode.forced)])
        )

    def is_measuring(self) -> bool:
        return bool(self._read_byte(REG_STATUS) & STATUS_MEASURING)

    def read_sample(self) -> Sample:
        """Burst read the data registers and compensate them.

        Returns ``(temperature, pressure, humidity)``; a skipped channel is
        ``None``. Pressure and humidity need the temperature channel.
        """

        calibration = self._require_calibration()
        data = self._bus.read(REG_DATA, _DATA_SIZE)
        if len(data) != _DATA_SIZE:
            raise ValueError(f"Expected {_DATA_SIZE} data bytes, got {len(data)}.")

        adc_p = (data[0] << 12) | (data[1] << 4) | (data[2] >> 4)
        adc_t = (data[3] << 12) | (data[4] << 4) | (data[5] >> 4)
        adc_h = (data[6] << 8) | data[7]

        if adc_t == SKIPPED_20_BIT:
            return None, None, None

        temperature, t_fine = calibration.temperature(adc_t)
        pressure = None if adc_p == SKIPPED_20_BIT else calibration.pressure(adc_p, t_fine)
        humidity = None if adc_h == SKIPPED_16_BIT else calibration.humidity(adc_h, t_fine)
        return temperature, pressure, humidity

    def _read_byte(self, register: int) -> int:
        data = self._bus.read(register, 1)
        if len(data) != 1:
            raise ValueError(f"Empty response reading register 0x{register:02x}.")
        return data[0]

    def _require_calibration(self) -> Calibration:
        if self.calibration is None:
            raise RuntimeError("Sensor has not been initialized.")
        return self.calibration

    def _require_configuration(self) -> SamplingConfiguration:
        if self.configuration is None:
            raise RuntimeError("Sensor has not been configured.")
        return self.configuration

    @staticmethod
    def _ctrl_meas(configuration: SamplingConfiguration, mode: SensorMode) -> int:
        return (
            (configuration.temperature_oversampling.value << 5)
            | (configuration.pressure_oversampling.value << 2)
            | mode.value
        )
