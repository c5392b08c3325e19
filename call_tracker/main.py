"""Main module entrypoint for local runtime execution.

This module validates startup configuration and launches the FastAPI service,
the fetch job, or one blocking run from the command line.
"""

import argparse
import json

import uvicorn

from call_tracker.api.routers import api_serialize_counter
from call_tracker.bootstrap import (
    bootstrap_create_application,
    bootstrap_create_state_store,
    bootstrap_create_trigger_service,
)
from call_tracker.config import config_configure_logging, config_load_settings
from call_tracker.jobs import job_fetch_notify_main


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with the job exit code for `fetch-job` and `start-run`.
    """

    argument_parser = argparse.ArgumentParser(description="Call run tracker runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "fetch-job", "start-run"),
        help="Runtime command: `api` starts server, `fetch-job` runs the fetch-and-notify job in-process, "
        "`start-run` triggers one run and waits for its fetch job",
        type=str,
    )
    parsed_arguments = argument_parser.parse_args()

    if parsed_arguments.command == "fetch-job":
        raise SystemExit(job_fetch_notify_main())

    settings = config_load_settings()

    if parsed_arguments.command == "start-run":
        config_configure_logging(settings.log_level)
        state_store = bootstrap_create_state_store(settings)
        trigger_service = bootstrap_create_trigger_service(settings, state_store)
        trigger_result = trigger_service.run_trigger()
        trigger_result.handle.handle_wait()
        print(json.dumps(api_serialize_counter(state_store.db_run_state_read())))
        if trigger_result.handle.exit_code != 0:
            raise SystemExit(1)
        return

    application = bootstrap_create_application(settings)
    uvicorn.run(
        application,
        host=settings.application_host,
        port=settings.application_port,
    )


if __name__ == "__main__":
    main()
