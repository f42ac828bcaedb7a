"""Loguru logging configuration for the API and the import worker.

Human-readable records go to stderr; records bound with ``json_output=True``
(job lifecycle events) are additionally emitted as serialized JSON so log
shippers can index them by ``job_id`` and ``tenant_id``.
"""

import sys
from pathlib import Path

from loguru import logger

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}"


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru sinks.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 7 days).
    """
    level = log_level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT, serialize=False)
    logger.add(
        sys.stderr,
        level=level,
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "canvass-api.log",
            level=level,
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
        )


def job_logger(job_id: object, tenant_id: object):  # noqa: ANN201
    """Return a logger bound to one import job for structured output."""
    return logger.bind(job_id=str(job_id), tenant_id=str(tenant_id), json_output=True)
