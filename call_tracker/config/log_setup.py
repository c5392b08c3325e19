"""Process-wide logging configuration shared by the API and the fetch job."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def config_configure_logging(log_level: str = "INFO") -> None:
    """Configure root logging once for the current process.

    Args:
        log_level: Standard logging level name; unknown names fall back to INFO.
    """

    logging.basicConfig(
        level=getattr(logging, log_level.strip().upper(), logging.INFO),
        format=LOG_FORMAT,
    )
