"""Logging configuration for fabric-provisioner.

Output goes either to the console or to a rotating log file, never both; the
CLI output-target flag decides which. A separate performance logger records
how long each remote call and each applied section took.

Environment Variables:
    FABRIC_PROVISIONER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    FABRIC_PROVISIONER_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    FABRIC_PROVISIONER_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from fabric_provisioner.utils.logging_config import setup_logging, timed

    setup_logging()                      # console
    setup_logging(Path("run.log"))       # persistent log

    @timed("upsert")
    def upsert(self, obj):
        ...

    with timed_section_sync("apply", section="Pools"):
        ...
"""
import functools
import logging
import os
import time
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

main_logger = logging.getLogger("fabric_provisioner")
# Timings go to their own logger so they can be filtered out of run output
perf_logger = logging.getLogger("fabric_provisioner.perf")

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(name)-40s | %(levelname)-7s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_level() -> int:
    """Log level named by FABRIC_PROVISIONER_LOG_LEVEL (INFO when unset or unknown)."""
    name = os.environ.get("FABRIC_PROVISIONER_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _output_handler(log_file: Optional[Path]) -> logging.Handler:
    if log_file is None:
        return logging.StreamHandler()

    log_file.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        log_file,
        maxBytes=_env_int("FABRIC_PROVISIONER_LOG_MAX_SIZE", 10) * 1024 * 1024,
        backupCount=_env_int("FABRIC_PROVISIONER_LOG_BACKUPS", 5),
        encoding="utf-8",
    )


def setup_logging(log_file: Optional[Path] = None, level: Optional[int] = None) -> None:
    """Route run output to the console or to a rotating file.

    Calling it again replaces the previous target.

    Args:
        log_file: Route all output to this rotating file instead of the console
        level: Override for FABRIC_PROVISIONER_LOG_LEVEL
    """
    log_level = level if level is not None else get_log_level()

    handler = _output_handler(log_file)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    main_logger.handlers.clear()
    main_logger.setLevel(logging.DEBUG)
    main_logger.addHandler(handler)
    main_logger.propagate = False

    main_logger.debug(
        f"Logging initialized: level={logging.getLevelName(log_level)}, "
        f"target={log_file or 'console'}"
    )


def _perf_line(operation: str, client_id: Optional[str], started: float, outcome: str,
               extra: Optional[dict] = None) -> str:
    elapsed = (time.perf_counter() - started) * 1000
    line = f"{operation:20s} | {client_id or 'N/A':15s} | {elapsed:8.2f}ms | {outcome}"
    if extra:
        line += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    return line


def timed(operation: str, client_id: Optional[str] = None):
    """Decorator logging how long a remote call took.

    Args:
        operation: Name of the call (e.g. "login", "upsert")
        client_id: Endpoint identifier; taken from ``self.client_id`` when omitted
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            cid = client_id or getattr(args[0] if args else None, "client_id", None)
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                perf_logger.debug(_perf_line(operation, cid, started, f"FAIL: {e}"))
                raise
            perf_logger.debug(_perf_line(operation, cid, started, "OK"))
            return result

        return wrapper

    return decorator


@contextmanager
def timed_section_sync(operation: str, client_id: Optional[str] = None, **extra):
    """Context manager logging how long a block (one applied section) took."""
    started = time.perf_counter()
    try:
        yield
    except Exception as e:
        perf_logger.warning(_perf_line(operation, client_id, started, f"FAIL: {e}", extra))
        raise
    perf_logger.info(_perf_line(operation, client_id, started, "OK", extra))
