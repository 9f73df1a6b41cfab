"""
Logging setup for the Buddy AI turn engine

Runs once, when the shared orchestrator is first built. Level, file output
and log directory come from settings; DEBUG=true forces the DEBUG level.
Only handlers installed here are replaced on a reconfigure, so handlers
owned by a host application are left alone.
"""
import logging
import logging.handlers
import re
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from buddy_ai.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Client libraries that log every request at INFO
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "google_genai",
    "qdrant_client",
    "sentence_transformers",
    "pymongo",
)

TURN_LOG_MAX_BYTES = 10 * 1024 * 1024
ERROR_LOG_MAX_BYTES = 5 * 1024 * 1024

_HANDLER_TAG = "_buddy_ai_handler"
_configured = False


def log_file_prefix(app_name: str) -> str:
    """'Buddy AI' -> 'buddy-ai'"""
    return re.sub(r"[^a-z0-9]+", "-", app_name.lower()).strip("-") or "buddy-ai"


def resolve_level(level: Optional[str], debug: bool = False) -> int:
    if debug:
        return logging.DEBUG
    return getattr(logging, (level or "INFO").upper(), logging.INFO)


def _tagged(handler: logging.Handler, formatter: logging.Formatter, level: int) -> logging.Handler:
    handler.setFormatter(formatter)
    handler.setLevel(level)
    setattr(handler, _HANDLER_TAG, True)
    return handler


def _file_handlers(log_dir: Path, prefix: str, formatter: logging.Formatter) -> List[logging.Handler]:
    log_dir.mkdir(parents=True, exist_ok=True)
    today = datetime.now().strftime("%Y-%m-%d")
    turns = logging.handlers.RotatingFileHandler(
        log_dir / f"{prefix}_{today}.log",
        maxBytes=TURN_LOG_MAX_BYTES,
        backupCount=5,
        encoding="utf-8",
    )
    errors = logging.handlers.RotatingFileHandler(
        log_dir / f"{prefix}_errors.log",
        maxBytes=ERROR_LOG_MAX_BYTES,
        backupCount=3,
        encoding="utf-8",
    )
    return [
        _tagged(turns, formatter, logging.DEBUG),
        _tagged(errors, formatter, logging.ERROR),
    ]


def setup_logging(
    app_name: Optional[str] = None,
    level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_to_console: bool = True,
    log_dir: Optional[Path] = None,
    debug: Optional[bool] = None,
    force: bool = False,
) -> logging.Logger:
    """
    Configure the root logger for the turn engine.

    Arguments left as None are read from settings. Repeated calls are
    no-ops unless force=True.
    """
    global _configured

    app_name = app_name or settings.APP_NAME
    prefix = log_file_prefix(app_name)
    logger = logging.getLogger(prefix)
    if _configured and not force:
        return logger

    level = level or settings.LOG_LEVEL
    debug = settings.DEBUG if debug is None else debug
    log_to_file = settings.LOG_TO_FILE if log_to_file is None else log_to_file

    root_logger = logging.getLogger()
    root_logger.setLevel(resolve_level(level, debug))
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root_logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    handlers: List[logging.Handler] = []
    if log_to_console:
        handlers.append(_tagged(logging.StreamHandler(sys.stdout), formatter, logging.DEBUG))
    if log_to_file:
        log_dir = Path(log_dir or settings.LOG_DIR or Path.cwd() / "logs")
        handlers.extend(_file_handlers(log_dir, prefix, formatter))
    for handler in handlers:
        root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
    logger.info(f"[LOGGING] {app_name} logging at {logging.getLevelName(root_logger.level)}"
                f"{' with file output in ' + str(log_dir) if log_to_file else ''}")
    return logger
