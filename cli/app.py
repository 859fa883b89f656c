from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from app.main import create_app
from cli import __version__
from logging_config import configure_logging
from models.sampling import SamplingConfiguration
from sensors.errors import SensorError, describe
from services.exporter import ExporterService
from services.guard import SharedSensorGuard
from services.session import open_session
from services.snapshot import MetricsSnapshot
from settings import DEFAULT_HOST, DEFAULT_PORT, get_settings

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Serve BME280 temperature, pressure and humidity readings as Prometheus metrics.",
    context_settings={"help_option_names": ["-h", "--help"]},
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bme280-exporter {__version__}")
        raise typer.Exit()


@app.command()
def main(
    i2c_device_path: Path = typer.Argument(..., help="I2C bus device file, e.g. /dev/i2c-1."),
    host: str = typer.Option(DEFAULT_HOST, "--host", help="Address the HTTP listener binds to."),
    port: int = typer.Option(
        DEFAULT_PORT, "--port", min=1, max=65535, help="Port the HTTP listener binds to."
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Open the sensor, apply the sampling configuration and serve /metrics."""
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        configuration = SamplingConfiguration.from_settings(settings)
    except ValueError as exc:
        logger.error("Invalid sampling configuration", extra={"reason": str(exc)})
        raise typer.Exit(code=1) from exc

    try:
        session = open_session(
            str(i2c_device_path),
            settings.i2c_address,
            configuration,
            poll_attempts=settings.poll_attempts,
            poll_interval=settings.poll_interval,
        )
    except SensorError as exc:
        logger.error(
            "Sensor startup failed",
            extra={"device_path": str(i2c_device_path), "reason": describe(exc)},
        )
        raise typer.Exit(code=1) from exc

    exporter = ExporterService(guard=SharedSensorGuard(session), snapshot=MetricsSnapshot())
    logger.info("Starting metrics listener", extra={"host": host, "port": port})
    uvicorn.run(create_app(exporter), host=host, port=port, log_config=None)
