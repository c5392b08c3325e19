"""Job layer package for fetch job execution boundaries."""

from .fetch_notify import (
    JOB_EXIT_CONFIG_ERROR,
    JOB_EXIT_FETCH_ERROR,
    JOB_EXIT_SUCCESS,
    job_clean_record,
    job_fetch_notify_main,
    job_fetch_notify_run,
)
from .fetch_runner import DEFAULT_FETCH_JOB_COMMAND, SubprocessFetchJobRunner, job_read_record_count
from .interfaces import JobRunnerPort, JobStartError, RunHandle

__all__ = [
    "DEFAULT_FETCH_JOB_COMMAND",
    "JOB_EXIT_CONFIG_ERROR",
    "JOB_EXIT_FETCH_ERROR",
    "JOB_EXIT_SUCCESS",
    "JobRunnerPort",
    "JobStartError",
    "RunHandle",
    "SubprocessFetchJobRunner",
    "job_clean_record",
    "job_fetch_notify_main",
    "job_fetch_notify_run",
    "job_read_record_count",
]
