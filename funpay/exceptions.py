"""Custom exception hierarchy for the FunPay client.

This module defines domain-specific exceptions that give every failure of
the client a distinct type. Each exception includes contextual information
to aid debugging and observability.

Propagation:
    Every error is raised to the immediate caller. Nothing here is retried
    or recovered silently; retry and backoff decisions belong to the caller.
    Partial effects (session cookies, CSRF token) stay visible on the
    Session even when the call raises.
"""

from datetime import UTC, datetime
from typing import Any

import requests


class FunpayError(Exception):
    """Base exception for all FunPay client errors.

    Attributes:
        message: Human-readable error description.
        context: Optional dictionary with additional debugging information.
        timestamp: UTC timestamp when the exception was raised.
        response: HTTP response the error was derived from, if any.
    """

    response: requests.Response | None = None

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(UTC)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format exception message with context for logging."""
        base = f"[{self.timestamp.isoformat()}] {self.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base} | Context: {context_str}"
        return base


class UnauthorizedError(FunpayError):
    """Raised when the account is not authenticated.

    Triggered by an HTTP 403 response, by a page without AppData, or by
    AppData whose user id is 0. The response is attached when one exists.
    """

    def __init__(
        self,
        reason: str,
        url: str | None = None,
        response: requests.Response | None = None,
    ) -> None:
        super().__init__(
            message=f"Account unauthorized: {reason}",
            context={"url": url, "reason": reason},
        )
        self.response = response


class HTTPStatusError(FunpayError):
    """Raised when a response carries a non-2xx status code.

    The response is kept on the exception so callers can still inspect
    its headers and body.
    """

    def __init__(self, message: str, response: requests.Response) -> None:
        super().__init__(
            message=message,
            context={"url": response.url, "status_code": response.status_code},
        )
        self.response = response
        self.status_code = response.status_code


class RateLimitError(HTTPStatusError):
    """Raised when FunPay returns HTTP 429 Too Many Requests."""

    def __init__(self, response: requests.Response) -> None:
        super().__init__(
            message=f"Rate limited by server at '{response.url}'",
            response=response,
        )
        retry_after = response.headers.get("Retry-After")
        self.retry_after = int(retry_after) if retry_after and retry_after.isdigit() else None


class BadStatusError(HTTPStatusError):
    """Raised for any non-2xx status not covered by a more specific error."""

    def __init__(self, response: requests.Response) -> None:
        super().__init__(
            message=f"Bad status code ({response.status_code})",
            response=response,
        )


class ForbiddenError(UnauthorizedError, HTTPStatusError):
    """Raised when FunPay returns HTTP 403 Forbidden.

    Both an UnauthorizedError and an HTTPStatusError, so callers may catch
    either family.
    """

    def __init__(self, response: requests.Response) -> None:
        HTTPStatusError.__init__(
            self,
            message="Account unauthorized: HTTP 403",
            response=response,
        )


class MalformedAppDataError(FunpayError):
    """Raised when the data-app-data attribute exists but cannot be decoded.

    Distinct from UnauthorizedError: this signals an unexpected page shape
    or a parsing bug, not an authentication failure.
    """

    def __init__(self, raw: str, reason: str) -> None:
        super().__init__(
            message=f"Malformed app data: {reason}",
            context={"raw": raw[:200], "reason": reason},
        )


class MalformedDocumentError(FunpayError):
    """Raised when a page cannot be parsed or its structure is unusable.

    Covers undecodable HTML, unparsable navigation links and badge text
    that cannot be read as a number.
    """

    def __init__(self, reason: str, url: str | None = None) -> None:
        super().__init__(
            message=f"Malformed document: {reason}",
            context={"url": url, "reason": reason},
        )


class TransportError(FunpayError):
    """Raised when a request cannot be built or sent.

    Includes connection failures, invalid URLs and proxy errors. No
    cookies are updated when this is raised.
    """

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(
            message=f"Request to '{url}' failed: {reason}",
            context={"url": url, "reason": reason},
        )


class RequestCancelledError(TransportError):
    """Raised when a request is cancelled or its deadline expires."""


class LoggingInitializationError(FunpayError):
    """Raised when the logging system fails to initialize.

    This is a startup-blocking error - the application cannot proceed
    without a functioning logging infrastructure.
    """

    def __init__(self, log_dir: str, reason: str) -> None:
        super().__init__(
            message=f"Failed to initialize logging at '{log_dir}': {reason}",
            context={"log_dir": log_dir, "reason": reason},
        )
