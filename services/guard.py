"""Mutual exclusion around the shared sensor session."""

from __future__ import annotations

from threading import Lock
from typing import Callable, TypeVar

from models.records import Reading
from services.session import SensorSession

T = TypeVar("T")


class SharedSensorGuard:
    """Serializes every use of one ``SensorSession`` across request threads."""

    def __init__(self, session: SensorSession) -> None:
        self._session = session
        self._lock = Lock()

    def with_exclusive_access(self, fn: Callable[[SensorSession], T]) -> T:
        with self._lock:
            return fn(self._session)

    def take_reading(self) -> Reading:
        return self.with_exclusive_access(lambda session: session.take_reading())

    def close(self) -> None:
        self.with_exclusive_access(lambda session: session.close())
