"""FunPay client entry point.

This module serves as the bootstrap and orchestration layer.
It contains NO business logic - all functional code resides in /funpay.

Responsibilities:
    1. Load and validate configuration
    2. Initialize logging infrastructure (fail-fast on error)
    3. Refresh the account and its listings
    4. Handle top-level exceptions with distinct exit codes

Usage:
    GOLDEN_KEY=... python main.py
"""

import sys
from typing import NoReturn

from loguru import logger

from config.settings import GlobalConfig, get_config
from funpay.exceptions import (
    FunpayError,
    LoggingInitializationError,
    UnauthorizedError,
)
from funpay.logger import configure_logging


def _run(config: GlobalConfig) -> int:
    """Update the account and list its lots.

    Args:
        config: The validated GlobalConfig instance.

    Returns:
        Exit code (0 for success).
    """
    from funpay.client import Funpay
    from funpay.lots import Lots

    logger.info(
        "Client started",
        app_name=config.app_name,
        environment=config.environment,
        base_url=config.base_url,
        proxy=config.proxy is not None,
    )

    with Funpay.from_config(config) as fp:
        fp.update()

        lots = Lots(fp)
        lots.update()

        for node_id, offer_ids in lots.list().items():
            logger.info("Node lots", node_id=node_id, offers=len(offer_ids))

    logger.info("Client finished successfully")
    return 0


def _handle_fatal_error(exc: Exception) -> NoReturn:
    """Handle fatal errors with structured logging and exit.

    Args:
        exc: The exception that caused the fatal error.
    """
    if isinstance(exc, UnauthorizedError):
        logger.critical(
            "Account unauthorized - check GOLDEN_KEY",
            message=exc.message,
        )
        sys.exit(2)

    if isinstance(exc, FunpayError):
        logger.critical(
            "Fatal application error",
            error_type=type(exc).__name__,
            message=exc.message,
            context=exc.context,
        )
        sys.exit(1)

    logger.exception("Unexpected fatal error", error=str(exc))
    sys.exit(1)


def main() -> int:
    """Application entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    try:
        config = get_config()
    except Exception as exc:
        # Cannot log yet - print to stderr
        print(f"FATAL: Configuration loading failed: {exc}", file=sys.stderr)
        return 1

    try:
        configure_logging(config)
    except LoggingInitializationError as exc:
        print(f"FATAL: {exc}", file=sys.stderr)
        return 1

    if not config.golden_key.get_secret_value():
        logger.critical("GOLDEN_KEY is not set")
        return 1

    try:
        return _run(config)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C)")
        return 130
    except Exception as exc:
        _handle_fatal_error(exc)


if __name__ == "__main__":
    sys.exit(main())
