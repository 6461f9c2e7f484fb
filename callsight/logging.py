"""
Logging configuration.
Aligns uvicorn and application logger levels; pipeline failures are logged with
logger.exception in the services (callsight/services/reconciliation.py).
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
) -> None:
    logging.basicConfig(
        level=level,
        format=format_string or LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
    logging.getLogger("callsight").setLevel(level)
    # httpx logs every request line at INFO; the poller would flood stdout
    logging.getLogger("httpx").setLevel(logging.WARNING)
