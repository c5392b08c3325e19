"""Run API router composition for the trigger and counter endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from call_tracker.db import RunStateStoreError, RunStateStorePort
from call_tracker.domain import RunState, domain_format_timestamp
from call_tracker.jobs import JobStartError
from call_tracker.tracking import RunAlreadyActiveError, RunTriggerService


def api_create_runs_router(
    state_store: RunStateStorePort,
    trigger_service: RunTriggerService,
) -> APIRouter:
    """Create router with run trigger and counter polling endpoints.

    Args:
        state_store: Run state store read by the counter endpoint.
        trigger_service: Service starting new runs.

    Returns:
        APIRouter: Router exposing `/start-calls` and `/counter`.

    Raises:
        ValueError: Raised when dependencies are invalid.
    """

    if state_store is None:
        raise ValueError("state_store must not be None")
    if trigger_service is None:
        raise ValueError("trigger_service must not be None")

    router = APIRouter(tags=["runs"])

    @router.post("/start-calls")
    def api_run_trigger() -> JSONResponse:
        """Reset the counter and start the fetch job without waiting for it.

        Returns:
            JSONResponse: Trigger payload; clients poll `/counter` for progress.
        """

        try:
            trigger_result = trigger_service.run_trigger()
        except RunAlreadyActiveError:
            payload = {
                "started": False,
                "message": "run already active",
            }
            return JSONResponse(content=payload, status_code=status.HTTP_409_CONFLICT)
        except (JobStartError, RunStateStoreError) as error:
            payload = {
                "started": False,
                "message": str(error),
            }
            return JSONResponse(content=payload, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        payload = {
            "started": trigger_result.started,
            "message": "Fetch + webhook process started",
            "pid": trigger_result.pid,
            "startedAt": domain_format_timestamp(trigger_result.started_at),
        }
        return JSONResponse(content=payload, status_code=status.HTTP_200_OK)

    @router.get("/counter")
    def api_run_counter() -> JSONResponse:
        """Return the current run progress snapshot.

        Returns:
            JSONResponse: Counter payload with `total, success, lastRun, lastUpdate`.
        """

        return JSONResponse(
            content=api_serialize_counter(state_store.db_run_state_read()),
            status_code=status.HTTP_200_OK,
        )

    return router


def api_serialize_counter(state: RunState) -> dict[str, object]:
    """Serialize run state to the counter response payload.

    Args:
        state: Run state snapshot.

    Returns:
        dict[str, object]: Payload with the fixed compatibility field names.
    """

    return {
        "total": state.total,
        "success": state.completed,
        "lastRun": domain_format_timestamp(state.started_at),
        "lastUpdate": domain_format_timestamp(state.last_updated_at),
    }
