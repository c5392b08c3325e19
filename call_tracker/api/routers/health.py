"""Health endpoint router composition for liveness checks."""

import time

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from call_tracker.domain import domain_format_timestamp, domain_utc_now

_PROCESS_STARTED_MONOTONIC = time.monotonic()


def api_create_health_router() -> APIRouter:
    """Create health-check router.

    Returns:
        APIRouter: Router exposing `/health` endpoint.
    """

    router = APIRouter(tags=["health"])

    @router.get("/health")
    def api_health_status() -> JSONResponse:
        """Return liveness, process uptime in seconds and the current timestamp.

        Returns:
            JSONResponse: Health payload.
        """

        payload = {
            "ok": True,
            "uptime": round(time.monotonic() - _PROCESS_STARTED_MONOTONIC, 3),
            "timestamp": domain_format_timestamp(domain_utc_now()),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    return router
