from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from conftest import ReentrancyDetectingSession
from sensors.errors import MeasurementFailed
from services.guard import SharedSensorGuard


def test_concurrent_readings_never_overlap() -> None:
    session = ReentrancyDetectingSession()
    guard = SharedSensorGuard(session)  # type: ignore[arg-type]

    with ThreadPoolExecutor(max_workers=8) as pool:
        futures = [pool.submit(guard.take_reading) for _ in range(32)]
        readings = [future.result(timeout=10) for future in futures]

    assert len(readings) == 32
    assert session.calls == 32


def test_lock_is_released_after_failure() -> None:
    guard = SharedSensorGuard(ReentrancyDetectingSession())  # type: ignore[arg-type]

    def failing(_session):
        raise MeasurementFailed("failed to read sample")

    with pytest.raises(MeasurementFailed):
        guard.with_exclusive_access(failing)

    assert guard._lock.locked() is False
    assert guard.take_reading().temperature == 21.0


def test_close_goes_through_the_guard() -> None:
    session = ReentrancyDetectingSession()
    guard = SharedSensorGuard(session)  # type: ignore[arg-type]

    guard.close()

    assert session.closed is True
