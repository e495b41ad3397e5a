"""
Logging helpers for webdriver-bridge-mcp

stdout belongs to the MCP stdio transport, so the process logs to a file and
nowhere else. Capability payloads routinely carry cloud-grid credentials
(e.g. "sauce:options": {"accessKey": ...}), so anything logged as a mapping
goes through redact() first.
"""

import functools
import json
import logging
import tempfile
import time
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any, TypeVar

T = TypeVar("T")

REDACTED = "***REDACTED***"

# Matched case-insensitively as substrings of mapping keys
_SENSITIVE_KEYS = ("token", "password", "secret", "key", "authorization")

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_file_logging(
    log_file: str | Path = "logs/webdriver-bridge-mcp.log",
    level: int = logging.INFO,
    format_string: str | None = None,
) -> logging.Logger:
    """
    Route all logging to a single file.

    The root logger's existing handlers are replaced. When the directory for
    log_file cannot be created or the file cannot be opened, a file with the
    same name in the system temp directory is used instead.

    Args:
        log_file: Log file path
        level: Root logger level
        format_string: logging format (default: DEFAULT_FORMAT)

    Returns:
        The root logger
    """
    log_path = Path(log_file)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except (OSError, PermissionError):
        log_path = Path(tempfile.gettempdir()) / log_path.name
        handler = logging.FileHandler(log_path, encoding="utf-8")

    logging.basicConfig(
        level=level,
        format=format_string or DEFAULT_FORMAT,
        handlers=[handler],
        force=True,
    )

    root = logging.getLogger()
    root.info(f"Logging to {log_path} at {logging.getLevelName(level)}")
    return root


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(marker in lowered for marker in _SENSITIVE_KEYS)


def redact(value: Any) -> Any:
    """
    Copy of value with the values of sensitive keys replaced, at any depth.

    Args:
        value: JSON-like data (mappings, lists, scalars)

    Returns:
        The redacted copy
    """
    if isinstance(value, Mapping):
        return {k: REDACTED if _is_sensitive(k) else redact(v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


def log_dict(
    logger: logging.Logger, message: str, data: Mapping[str, Any], level: int = logging.INFO
) -> None:
    """
    Log a mapping one entry per line, redacted.

    Nested values are rendered as JSON so vendor option blocks stay on one line.
    """
    if not logger.isEnabledFor(level):
        return
    logger.log(level, message)
    for key, value in redact(data).items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)
        logger.log(level, f"  {key}: {value}")


def log_tool_result(
    logger: logging.Logger | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that logs an async MCP tool's result as JSON, with its duration.

    Exceptions are logged as TOOL_FAILED and re-raised.

    Args:
        logger: Logger to use (default: the decorated function's module logger)
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        tool_logger = logger or logging.getLogger(func.__module__)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            start_time = time.time()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = time.time() - start_time
                tool_logger.error(f"TOOL_FAILED [{func.__name__}] after {elapsed:.3f}s: {e}")
                raise
            elapsed = time.time() - start_time
            try:
                rendered = json.dumps(result, default=str)
            except (TypeError, ValueError):
                rendered = str(result)
            tool_logger.info(f"TOOL_RESULT [{func.__name__}] ({elapsed:.3f}s) {rendered}")
            return result

        return wrapper

    return decorator
