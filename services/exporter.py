"""Scrape orchestration: one guarded reading, then a fresh render."""

from __future__ import annotations

import logging
import time

from services.guard import SharedSensorGuard
from services.snapshot import MetricsSnapshot

logger = logging.getLogger(__name__)


class ExporterService:
    """Coordinates the sensor guard and the metrics snapshot for each scrape."""

    def __init__(self, guard: SharedSensorGuard, snapshot: MetricsSnapshot) -> None:
        self.guard = guard
        self.snapshot = snapshot

    def scrape(self) -> str:
        """Sample the sensor and return the rendered metrics.

        Measurement errors propagate unchanged and leave the snapshot as it was.
        """

        start_time = time.perf_counter()
        reading = self.guard.take_reading()
        self.snapshot.apply(reading)
        body = self.snapshot.render()
        logger.debug(
            "Scrape completed",
            extra={"elapsed_ms": int((time.perf_counter() - start_time) * 1000)},
        )
        return body

    def shutdown(self) -> None:
        """Release the sensor session during application shutdown."""
        self.guard.close()
