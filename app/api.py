"""HTTP route definitions for the exporter."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST

from sensors.errors import MeasurementFailed, MeasurementTimeout, describe
from services.exporter import ExporterService

logger = logging.getLogger(__name__)

ERROR_MARKER = "measurement failed"

router = APIRouter()


def get_exporter(request: Request) -> ExporterService:
    return request.app.state.exporter


@router.get(
    "/metrics",
    response_class=PlainTextResponse,
    summary="Sample the sensor and return Prometheus metrics.",
    responses={500: {"description": "The sensor could not be read."}},
)
def metrics(exporter: ExporterService = Depends(get_exporter)) -> Response:
    try:
        body = exporter.scrape()
    except (MeasurementFailed, MeasurementTimeout) as exc:
        reason = describe(exc)
        logger.warning("Scrape failed", extra={"reason": reason})
        return PlainTextResponse(
            f"{ERROR_MARKER}: {reason}",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return Response(content=body, media_type=CONTENT_TYPE_LATEST)
