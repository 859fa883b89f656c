"""Ownership of the sensor handle and its measurement protocol."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from models.records import Reading
from models.sampling import SamplingConfiguration, SensorMode
from sensors.bme280 import BME280
from sensors.bus import I2CBus
from sensors.errors import (
    BusUnavailable,
    MeasurementFailed,
    MeasurementTimeout,
    SensorConfigFailed,
    SensorInitFailed,
)

logger = logging.getLogger(__name__)

BusFactory = Callable[[str, int], I2CBus]


class SensorSession:
    """Exclusive owner of the bus connection and the sensor driver.

    ``take_reading`` is not reentrant: the forced measurement protocol keeps
    its state on the sensor itself, so callers must serialize access.
    """

    def __init__(
        self,
        device_path: str,
        address: int,
        poll_attempts: int = 10,
        poll_interval: float = 0.005,
        bus_factory: BusFactory = I2CBus.open,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.device_path = device_path
        self.address = address
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self._bus_factory = bus_factory
        self._sleep = sleep
        self._bus: Optional[I2CBus] = None
        self._driver: Optional[BME280] = None
        self.configuration: Optional[SamplingConfiguration] = None

    def initialize(self) -> None:
        try:
            self._bus = self._bus_factory(self.device_path, self.address)
        except OSError as exc:
            raise BusUnavailable(f"failed to open i2c bus {self.device_path}") from exc

        logger.info("Initializing bme280 sensor", extra={"device_path": self.device_path})
        self._driver = BME280(self._bus, sleep=self._sleep)
        try:
            chip_id = self._driver.init()
        except (OSError, ValueError, TimeoutError) as exc:
            raise SensorInitFailed(
                f"bme280 at 0x{self.address:02x} did not answer its reset sequence"
            ) from exc
        logger.debug("Sensor identified", extra={"chip_id": f"0x{chip_id:02x}"})

    def configure(self, configuration: SamplingConfiguration) -> None:
        if self._driver is None:
            raise SensorConfigFailed("sensor must be initialized before it is configured")
        if self.configuration is not None:
            raise SensorConfigFailed("sampling configuration has already been applied")
        if configuration.mode is SensorMode.sleep:
            raise SensorConfigFailed("sleep mode never produces measurements")

        logger.info("Configuring bme280 sensor", extra={"mode": configuration.mode.name})
        try:
            self._driver.set_sampling_configuration(configuration)
        except OSError as exc:
            raise SensorConfigFailed("failed to write sampling configuration") from exc
        self.configuration = configuration

    def take_reading(self) -> Reading:
        if self._driver is None or self.configuration is None:
            raise MeasurementFailed("sensor session is not ready")

        if self.configuration.mode is SensorMode.forced:
            self._run_forced_measurement(self._driver, self.configuration)

        try:
            temperature, pressure, humidity = self._driver.read_sample()
        except (OSError, ValueError) as exc:
            raise MeasurementFailed("failed to read sample") from exc
        return Reading(temperature=temperature, pressure=pressure, humidity=humidity)

    def close(self) -> None:
        if self._bus is None:
            return
        self._bus.close()
        self._bus = None
        self._driver = None

    def _run_forced_measurement(self, driver: BME280, configuration: SamplingConfiguration) -> None:
        try:
            driver.trigger_forced_measurement()
        except OSError as exc:
            raise MeasurementFailed("failed to trigger forced measurement") from exc

        self._sleep(configuration.max_measurement_ms() / 1000.0)
        for attempt in range(1, self.poll_attempts + 1):
            try:
                measuring = driver.is_measuring()
            except (OSError, ValueError) as exc:
                raise MeasurementFailed("failed to poll measurement status") from exc
            if not measuring:
                return
            logger.debug("Measurement still running", extra={"attempts": attempt})
            self._sleep(self.poll_interval)

        raise MeasurementTimeout(
            f"measurement not ready after {self.poll_attempts} status polls"
        )


def open_session(
    device_path: str,
    address: int,
    configuration: SamplingConfiguration,
    poll_attempts: int = 10,
    poll_interval: float = 0.005,
    bus_factory: BusFactory = I2CBus.open,
) -> SensorSession:
    """Open, initialize and configure a session, releasing the bus if any step fails."""

    session = SensorSession(
        device_path=device_path,
        address=address,
        poll_attempts=poll_attempts,
        poll_interval=poll_interval,
        bus_factory=bus_factory,
    )
    try:
        session.initialize()
        session.configure(configuration)
    except Exception:
        session.close()
        raise
    return session
