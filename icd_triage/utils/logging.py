"""
Logging for the triage services.

Every module logs through a loguru logger bound with its module name, so
records from the cache, the authority gateway and the ranking pipeline can be
told apart in one stream. Applications call setup_logging once at startup
(create_triage_service does this from TriageSettings).
"""

import sys
from pathlib import Path

from loguru import logger


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    json_logs: bool = False,
) -> None:
    """
    Replace loguru's default sink with the triage sinks.

    Args:
        level: Minimum level; authority outages log at WARNING, cache
            hits and misses at DEBUG
        log_file: Optional rotated file sink, written alongside stderr
        json_logs: Serialize records as JSON for log shippers
    """
    logger.remove()
    logger.configure(extra={"name": "icd_triage"})

    if json_logs:
        logger.add(
            sys.stderr,
            format="{message}",
            level=level,
            serialize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan> - <level>{message}</level>",
            level=level,
            colorize=True,
        )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]} - {message}",
            level=level,
            serialize=json_logs,
        )

    logger.bind(name=__name__).info(
        f"Triage logging configured: level={level}, json_logs={json_logs}, file={log_file}"
    )


def get_logger(name: str = __name__):  # type: ignore[no-untyped-def]
    """
    Logger bound with a module name, shown as ``{extra[name]}`` in every sink.

    Example:
        >>> from icd_triage.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.debug("Cache miss for I10, validating with authority")
    """
    return logger.bind(name=name)
