"""Application bootstrap wiring for startup validation and dependency assembly."""

import shlex

from fastapi import FastAPI

from call_tracker.api import create_api_application
from call_tracker.config import AppSettings, config_configure_logging, config_load_settings
from call_tracker.db import JsonFileRunStateStore, RunStateStorePort, SQLAlchemyRunStateStore, db_create_engine
from call_tracker.jobs import DEFAULT_FETCH_JOB_COMMAND, SubprocessFetchJobRunner
from call_tracker.tracking import CallbackReceiver, RunTriggerService


def bootstrap_create_state_store(settings: AppSettings) -> RunStateStorePort:
    """Build the configured run state store.

    Args:
        settings: Validated runtime settings.

    Returns:
        RunStateStorePort: File or database backed store.
    """

    if settings.state_backend == "database":
        return SQLAlchemyRunStateStore(engine=db_create_engine(database_url=settings.database_url))
    return JsonFileRunStateStore(counter_path=settings.settings_counter_path())


def bootstrap_create_trigger_service(settings: AppSettings, state_store: RunStateStorePort) -> RunTriggerService:
    """Build the run trigger service with its subprocess job runner.

    Args:
        settings: Validated runtime settings.
        state_store: Run state store shared with the other services.

    Returns:
        RunTriggerService: Fully wired trigger service.
    """

    command = shlex.split(settings.fetch_job_command) if settings.fetch_job_command else DEFAULT_FETCH_JOB_COMMAND
    job_runner = SubprocessFetchJobRunner(
        state_store=state_store,
        records_path=settings.settings_records_path(),
        command=command,
    )
    return RunTriggerService(
        state_store=state_store,
        job_runner=job_runner,
        overlap_guard_enabled=settings.run_overlap_guard_enabled,
    )


def bootstrap_create_application(settings: AppSettings | None = None) -> FastAPI:
    """Assemble the runtime application after validating startup configuration.

    Args:
        settings: Optional pre-loaded settings; loaded from the environment when omitted.

    Returns:
        FastAPI: Fully initialized FastAPI application instance.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
    """

    resolved_settings = settings or config_load_settings()
    config_configure_logging(resolved_settings.log_level)
    state_store = bootstrap_create_state_store(resolved_settings)
    return create_api_application(
        settings=resolved_settings,
        state_store=state_store,
        trigger_service=bootstrap_create_trigger_service(resolved_settings, state_store),
        callback_receiver=CallbackReceiver(state_store=state_store),
    )
