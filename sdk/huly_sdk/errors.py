"""
Error types for the Huly SDK.

This module defines all exception types raised by the SDK:
- HulyError: Base exception
- ConfigError: Server discovery (config.json) failures
- AuthenticationError: Login or workspace selection rejected
- NotAuthenticatedError: Operation attempted without a valid session
- RequestFailedError: Non-200 REST response
- InvalidResponseError / DecodeError: Response body not usable
- NotConnectedError / ConnectionClosedError / TimeoutError: Socket failures
- ServerError: Server-reported rejection of a transaction

Invariants:
    - All errors inherit from HulyError
    - Every error carries a stable ``code`` for programmatic handling
    - Tokens and passwords never appear in messages or details
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class HulyError(Exception):
    """Base exception for all Huly SDK errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "HULY_ERROR"
        self.details = details or {}


class ConfigError(HulyError):
    """Server configuration could not be discovered.

    Raised when:
    - config.json returns a non-200 status
    - config.json is not valid JSON
    - ACCOUNTS_URL is missing
    """

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message, code="CONFIG_ERROR", details={"url": url})
        self.url = url


class AuthenticationError(HulyError):
    """Login or workspace selection was rejected.

    Attributes:
        step: Which RPC failed ("login" or "selectWorkspace")
        server_code: Error code reported by the account service
    """

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        server_code: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="AUTHENTICATION_FAILED",
            details={"step": step, "server_code": server_code},
        )
        self.step = step
        self.server_code = server_code


class NotAuthenticatedError(HulyError):
    """Operation needs a session that is not established."""

    def __init__(self, message: str = "Not authenticated. Call authenticate() first.") -> None:
        super().__init__(message, code="NOT_AUTHENTICATED")


class InvalidURLError(HulyError):
    """A URL could not be constructed or has an unsupported scheme."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message, code="INVALID_URL", details={"url": url})
        self.url = url


class InvalidInputError(HulyError):
    """Caller-supplied value cannot be used.

    Raised when:
    - A payload value has no self-describing encoding
    - A required argument is empty
    """

    def __init__(self, message: str, field_name: Optional[str] = None) -> None:
        super().__init__(message, code="INVALID_INPUT", details={"field": field_name})
        self.field_name = field_name


class NotFoundError(HulyError):
    """Expected resource is absent.

    Attributes:
        resource_type: Kind of resource (teamspace, document, issue, ...)
        resource_id: Identifier or name that was looked up
    """

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class RequestFailedError(HulyError):
    """REST request failed or returned a non-200 status.

    Attributes:
        status: HTTP status (None when the request never completed)
        body: Response body, truncated, for diagnostics
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        body: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="REQUEST_FAILED",
            details={"status": status, "body": body},
        )
        self.status = status
        self.body = body


class InvalidResponseError(HulyError):
    """Response body is not JSON."""

    def __init__(
        self,
        message: str = "Invalid response from server",
        code: str = "INVALID_RESPONSE",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code=code, details=details)


class DecodeError(InvalidResponseError):
    """JSON response does not have the expected shape.

    Attributes:
        path: Dotted/indexed path of the offending field (e.g. ``value[2].name``)
    """

    def __init__(self, message: str, path: str) -> None:
        super().__init__(
            f"{message} at {path}",
            code="DECODE_ERROR",
            details={"path": path},
        )
        self.path = path


class NotConnectedError(HulyError):
    """Transaction socket is not in the ready state."""

    def __init__(self, message: str = "WebSocket not connected") -> None:
        super().__init__(message, code="NOT_CONNECTED")


class ConnectionClosedError(HulyError):
    """Transaction socket closed before a response was observed."""

    def __init__(self, message: str = "WebSocket connection closed") -> None:
        super().__init__(message, code="CONNECTION_CLOSED")


class TimeoutError(HulyError):
    """Handshake or transaction round-trip exceeded its deadline.

    Attributes:
        operation: What timed out ("hello" or "tx")
        timeout: Deadline in seconds
    """

    def __init__(
        self,
        message: str = "Operation timed out",
        operation: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        super().__init__(
            message,
            code="TIMEOUT",
            details={"operation": operation, "timeout": timeout},
        )
        self.operation = operation
        self.timeout = timeout


class ServerError(HulyError):
    """Server rejected a transaction.

    Attributes:
        server_code: Code reported by the platform
        server_message: Message reported by the platform
    """

    def __init__(self, server_code: str, server_message: str) -> None:
        super().__init__(
            f"Server error ({server_code}): {server_message}",
            code="SERVER_ERROR",
            details={"server_code": server_code, "server_message": server_message},
        )
        self.server_code = server_code
        self.server_message = server_message
