from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from tempfile import gettempdir
from typing import Any

from pythonjsonlogger import jsonlogger

from .settings import settings

LOGGER_NAME = "hazard_nav"
LOG_FILE_NAME = "navigation.log.jsonl"

_LOGGER: logging.Logger | None = None


class NavigationJsonFormatter(jsonlogger.JsonFormatter):
    """JSON lines stamped with the network profile and seed that produced them."""

    def add_fields(self, log_record: dict[str, Any], record: logging.LogRecord, message_dict: dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("ts", round(record.created, 3))
        log_record.setdefault("level", record.levelname)
        log_record.setdefault("network_profile", settings.network_profile)
        log_record.setdefault("network_seed", settings.network_seed)


def _parse_level(name: str) -> int:
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else logging.INFO


def _writable_log_dir(out_dir: str) -> Path | None:
    for log_dir in (Path(out_dir) / "logs", Path(gettempdir()) / "hazard-nav" / "logs"):
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            probe = log_dir / ".writetest"
            probe.touch(exist_ok=True)
            probe.unlink(missing_ok=True)
            return log_dir
        except OSError:
            continue
    return None


def configure_logging(*, level: str | None = None, out_dir: str | None = None) -> logging.Logger:
    """(Re)attach the stream and JSONL file handlers; safe to call more than once."""
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(_parse_level(level or settings.log_level))
    logger.propagate = False
    formatter = NavigationJsonFormatter()

    stream = logging.StreamHandler()
    stream.setFormatter(formatter)
    logger.addHandler(stream)

    # File logging is best-effort; read-only checkouts still get stream output.
    log_dir = _writable_log_dir(out_dir or settings.out_dir)
    if log_dir is not None:
        try:
            file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME, encoding="utf-8")
        except OSError:
            file_handler = None
        if file_handler is not None:
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    global _LOGGER
    _LOGGER = logger
    return logger


def get_logger() -> logging.Logger:
    if _LOGGER is None:
        return configure_logging()
    return _LOGGER


def log_event(event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    get_logger().log(level, event, extra={"event": event, **fields})


@contextmanager
def timed_event(event: str, *, level: int = logging.INFO, **fields: Any) -> Iterator[dict[str, Any]]:
    """
    Log ``event`` with ``elapsed_ms`` once the block finishes.

    The yielded dict collects fields only known inside the block. Nothing is
    logged when the block raises.
    """
    started = time.perf_counter()
    late_fields: dict[str, Any] = {}
    yield late_fields
    log_event(
        event,
        level=level,
        **fields,
        **late_fields,
        elapsed_ms=round((time.perf_counter() - started) * 1000.0, 2),
    )
