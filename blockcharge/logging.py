"""Logging setup shared by the API server and the scheduled sweep jobs.

Records go to stdout and to a log file. The level and the default file come
from ``Settings`` (``LOG_LEVEL`` / ``LOG_FILE`` in the environment or ``.env``).
"""

import logging
import sys
from pathlib import Path

from blockcharge.config import settings

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level(level_name: str | None = None) -> int:
    """Resolve a level name to a logging constant.

    Args:
        level_name: Level to resolve; defaults to ``settings.log_level``

    Returns:
        Logging level constant (INFO for unknown names)
    """
    name = (level_name or settings.log_level or "INFO").upper()
    return LOG_LEVEL_MAP.get(name, logging.INFO)


def setup_server_logging(log_file: str | None = None, level: str | None = None) -> None:
    """
    Configure the root logger for the API server or a sweep run.

    Args:
        log_file: Log file path (default: ``settings.log_file``)
        level: Level name overriding ``settings.log_level``

    Behavior:
        - Every logger writes to stdout and the log file
        - Existing root handlers are replaced, so repeated calls do not duplicate output
        - SQL statement logging stays at WARNING unless ``database_echo`` is set
    """
    log_path = Path(log_file or settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    log_level = get_log_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(log_level)

    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_path)):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured: level=%s file=%s", logging.getLevelName(log_level), log_path
    )
