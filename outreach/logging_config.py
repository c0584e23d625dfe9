"""
Logging setup for the Outreach Tracker.

Every module logs through logging.getLogger(__name__); all of them sit under
the 'outreach' logger, which owns the single file handler.

  File     : logs/outreach.log (OUTREACH_LOG_DIR moves the directory)
  Rotation : 5 MB, 3 backups
  Level    : LOG_LEVEL, INFO when unset or unknown

CLI commands are wrapped in @log_call. Arguments are logged in short form:
long values (AI prompts, activity notes) are cut, and email addresses keep
only their first letter and domain.

    2026-10-18 09:12:44 | DEBUG    | outreach | CALL contacts_add | args=(vendor_name='Acme Ski', email='b***@acme.com')
    2026-10-18 09:12:44 | INFO     | outreach.engine.crm | Created contact 3f2c...: Acme Ski
    2026-10-18 09:12:44 | INFO     | outreach | OK   contacts_add | 12ms
    2026-10-18 09:13:02 | ERROR    | outreach | FAIL import_csv | CSVImportError: CSV must contain a header row and at least one data row | 2ms
"""

import functools
import logging
import logging.handlers
import os
import re
import time
from pathlib import Path

LOGGER_NAME = "outreach"

_LOG_DIR = Path(os.environ.get("OUTREACH_LOG_DIR", str(Path(__file__).parent.parent / "logs")))
_LOG_FILE = _LOG_DIR / "outreach.log"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3

_MAX_ARG_CHARS = 80
_EMAIL_RE = re.compile(r"\b([A-Za-z0-9])[A-Za-z0-9._%+-]*@([A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")


def _level_from_env() -> int:
    level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> logging.Logger:
    """Attach the rotating file handler once; later calls return the same logger."""
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    _LOG_DIR.mkdir(parents=True, exist_ok=True)
    logger.setLevel(_level_from_env())

    handler = logging.handlers.RotatingFileHandler(
        _LOG_FILE,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))
    logger.addHandler(handler)
    return logger


def brief(value) -> str:
    """repr() of a logged argument with emails masked, cut to _MAX_ARG_CHARS."""
    text = _EMAIL_RE.sub(r"\1***@\2", repr(value))
    if len(text) > _MAX_ARG_CHARS:
        text = text[:_MAX_ARG_CHARS - 3] + "..."
    return text


def log_call(func):
    """
    Trace a command: CALL at DEBUG with its arguments, OK at INFO with the
    elapsed milliseconds, or FAIL at ERROR with the exception (re-raised).
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(LOGGER_NAME)
        name = func.__name__
        start = time.perf_counter()

        parts = [brief(a) for a in args] + [f"{k}={brief(v)}" for k, v in kwargs.items()]
        logger.debug(f"CALL {name} | args=({', '.join(parts) or '-'})")

        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            ms = int((time.perf_counter() - start) * 1000)
            logger.error(f"FAIL {name} | {type(exc).__name__}: {exc} | {ms}ms")
            raise
        ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"OK   {name} | {ms}ms")
        return result

    return wrapper
