"""Process entrypoint for the fetch-and-notify job: `python -m call_tracker.jobs`."""

from call_tracker.jobs.fetch_notify import job_fetch_notify_main

if __name__ == "__main__":
    raise SystemExit(job_fetch_notify_main())
