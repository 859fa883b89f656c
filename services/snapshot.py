"""Last known gauge values and their Prometheus text rendering."""

from __future__ import annotations

from threading import Lock
from typing import Dict, Iterator, Optional

from prometheus_client import CollectorRegistry, generate_latest
from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from models.records import Reading

GAUGES: Dict[str, str] = {
    "temperature": "Temperature in °C",
    "pressure": "Air pressure in Pa",
    "humidity": "Relative humidity in %",
}


class MetricsSnapshot(Collector):
    """Holds one value per gauge and exposes them through its own registry.

    A gauge stays unset until its channel is first reported, and keeps its
    last value when a later reading omits the channel.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self._values: Dict[str, Optional[float]] = {name: None for name in GAUGES}
        self._lock = Lock()
        self.registry = registry if registry is not None else CollectorRegistry(auto_describe=False)
        self.registry.register(self)

    def set_gauge(self, name: str, value: float) -> None:
        if name not in GAUGES:
            raise KeyError(f"Unknown gauge {name!r}.")
        with self._lock:
            self._values[name] = float(value)

    def apply(self, reading: Reading) -> None:
        for name, value in reading.channels().items():
            if value is not None:
                self.set_gauge(name, value)

    def values(self) -> Dict[str, Optional[float]]:
        with self._lock:
            return dict(self._values)

    def render(self) -> str:
        return generate_latest(self.registry).decode("utf-8")

    def collect(self) -> Iterator[GaugeMetricFamily]:
        values = self.values()
        for name, documentation in GAUGES.items():
            family = GaugeMetricFamily(name, documentation)
            value = values[name]
            if value is not None:
                family.add_metric([], value)
            yield family
