"""Logging configuration for the FunPay client, built on loguru.

Two layers keep the account credential out of every sink:
- get_logger() loggers mask cookie and golden key keyword context
  (``log.debug("...", cookie=...)``) on every record, configured or not
- configure_logging() installs a core patcher that also scrubs the
  configured golden key value from messages and string context

configure_logging() is called once by the entry point. It adds a
colorized console sink and a rotated JSON-lines file sink under log_dir.
Library code only calls get_logger().
"""

import json
import sys
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from config.settings import GlobalConfig, get_config
from funpay.exceptions import LoggingInitializationError

MASK = "***"

# Keyword context names whose values are credentials.
SENSITIVE_CONTEXT_KEYS = frozenset({"golden_key", "cookie", "cookies", "set_cookie"})

LOG_FILE_NAME = "funpay_{time:YYYY-MM-DD}.json"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[module]}</cyan> | "
    "<level>{message}</level>"
)


def _redact_context(record: dict[str, Any]) -> None:
    """Mask credential-bearing keyword context in place."""
    extra = record["extra"]
    for key in extra:
        if key.lower() in SENSITIVE_CONTEXT_KEYS:
            extra[key] = MASK


def _secret_scrubber(secret: str) -> Callable[[dict[str, Any]], None]:
    """Build a patcher that replaces a secret value wherever it appears as text."""

    def scrub(record: dict[str, Any]) -> None:
        _redact_context(record)
        if not secret:
            return

        record["message"] = record["message"].replace(secret, MASK)
        extra = record["extra"]
        for key, value in extra.items():
            if isinstance(value, str) and secret in value:
                extra[key] = value.replace(secret, MASK)

    return scrub


def _format_json_record(record: dict[str, Any]) -> str:
    """Render a record as one JSON line for the file sink."""
    extra = {k: v for k, v in record["extra"].items() if k not in ("module", "serialized")}

    entry: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": record["level"].name,
        "logger": record["extra"].get("module", record["name"]),
        "message": record["message"],
        "line": record["line"],
    }
    if extra:
        entry["context"] = extra

    exception = record["exception"]
    if exception is not None and exception.type is not None:
        entry["error"] = {"type": exception.type.__name__, "message": str(exception.value)}

    return json.dumps(entry, default=str, ensure_ascii=False)


def _ensure_log_directory(log_dir: Path) -> None:
    """Create log_dir and check that a file can be written there.

    Raises:
        LoggingInitializationError: If the directory is not writable.
    """
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        check_file = log_dir / ".write_check"
        check_file.write_text("ok")
        check_file.unlink()
    except OSError as exc:
        raise LoggingInitializationError(log_dir=str(log_dir), reason=str(exc)) from exc


def configure_logging(config: GlobalConfig | None = None) -> None:
    """Set up console and JSON file sinks with credential scrubbing.

    Args:
        config: Optional GlobalConfig. Uses singleton if not provided.

    Raises:
        LoggingInitializationError: If the log directory cannot be written.
    """
    if config is None:
        config = get_config()

    _ensure_log_directory(config.log_dir)

    logger.remove()
    logger.configure(
        extra={"module": "funpay"},
        patcher=_secret_scrubber(config.golden_key.get_secret_value()),
    )

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level=config.log_level,
        colorize=True,
        backtrace=config.debug,
        diagnose=config.debug,
    )

    logger.add(
        str(config.log_dir / LOG_FILE_NAME),
        format="{extra[serialized]}",
        level=config.log_level,
        rotation=config.log_rotation,
        retention=config.log_retention,
        compression="gz",
        filter=lambda record: record["extra"].update(serialized=_format_json_record(record)) or True,
    )

    logger.info(
        "Logging initialized",
        environment=config.environment,
        log_level=config.log_level,
        log_dir=str(config.log_dir),
        authenticated=bool(config.golden_key.get_secret_value()),
    )


def get_logger(name: str) -> "logger":
    """Return a logger bound to a module name that masks credential context.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("Account updated", user_id=123)
    """
    return logger.bind(module=name).patch(_redact_context)
