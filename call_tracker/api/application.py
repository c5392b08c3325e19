"""FastAPI application factory for the run tracking service."""

from fastapi import FastAPI

from call_tracker.config import AppSettings
from call_tracker.db import RunStateStorePort
from call_tracker.tracking import CallbackReceiver, RunTriggerService

from .routers import api_create_callback_router, api_create_health_router, api_create_runs_router


def create_api_application(
    settings: AppSettings,
    state_store: RunStateStorePort,
    trigger_service: RunTriggerService,
    callback_receiver: CallbackReceiver,
) -> FastAPI:
    """Create the FastAPI application instance for the service.

    Args:
        settings: Validated application settings used for runtime metadata.
        state_store: Run state store read by the counter endpoint.
        trigger_service: Service starting new runs.
        callback_receiver: Service counting n8n callbacks.

    Returns:
        FastAPI: Application with all `/api` routers mounted.
    """

    application = FastAPI(title="Call Run Tracker")

    @application.get("/", tags=["foundation"])
    def foundation_index() -> dict[str, str]:
        """Return a minimal service identification response.

        Returns:
            dict[str, str]: Service name, readiness and environment label.
        """

        return {
            "service": "call-run-tracker",
            "status": "ready",
            "environment": settings.environment_name,
        }

    application.include_router(api_create_health_router(), prefix="/api")
    application.include_router(
        api_create_runs_router(state_store=state_store, trigger_service=trigger_service),
        prefix="/api",
    )
    application.include_router(api_create_callback_router(callback_receiver=callback_receiver), prefix="/api")

    return application
