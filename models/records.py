"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True, slots=True)
class Reading:
    """One compensated sample; a channel is ``None`` when it was not measured."""

    temperature: Optional[float] = None
    pressure: Optional[float] = None
    humidity: Optional[float] = None

    def channels(self) -> dict[str, Optional[float]]:
        return {
            "temperature": self.temperature,
            "pressure": self.pressure,
            "humidity": self.humidity,
        }
