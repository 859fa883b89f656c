from __future__ import annotations
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from logging_config import configure_logging
from services.exporter import ExporterService


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    try:
        yield
    finally:
        app.state.exporter.shutdown()


def create_app(exporter: ExporterService) -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="BME280 Exporter",
        description="Prometheus exporter sampling a BME280 sensor on every scrape.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.exporter = exporter
    app.include_router(router)
    return app
