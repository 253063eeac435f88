"""
Custom exceptions for nrlogs.

Provides structured errors with an error code and details. The status code
is used by the demo service when turning an exception into a JSON response.
"""

from typing import Any, Dict, Optional


class NrLogsException(Exception):
    """Base exception for nrlogs."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class InvalidLevel(NrLogsException, ValueError):
    """Raised when a severity name is not one of the recognized levels."""

    def __init__(self, level: Any, message: Optional[str] = None) -> None:
        super().__init__(
            message=message or f"Invalid log level {level!r}",
            status_code=400,
            error_code="invalid_level",
            details={"level": str(level)},
        )
        self.level = level


class DeliveryError(NrLogsException):
    """Raised when a batch could not be delivered to the Log API."""

    def __init__(
        self,
        message: str,
        error_code: str = "delivery_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=502,
            error_code=error_code,
            details=details,
        )


class TransportError(DeliveryError):
    """Raised on connection failures and timeouts."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, error_code="transport_error", details=details)


class UnexpectedStatus(DeliveryError):
    """Raised when the Log API answers with anything other than 202."""

    def __init__(self, status: int, body: str = "") -> None:
        super().__init__(
            f"Log API response code not 202: {status}",
            error_code="unexpected_status",
            details={"status": status, "body": body[:256]},
        )
        self.status = status


class InvalidAck(DeliveryError):
    """Raised when the acknowledgment body is malformed or lacks a request id."""

    def __init__(self, message: str = "Invalid response from Log API", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, error_code="invalid_ack", details=details)


class MissingLicenseKey(DeliveryError):
    """Raised when no license key is configured, so nothing can be sent."""

    def __init__(self) -> None:
        super().__init__(
            "No New Relic license key specified. Logs will not be sent.",
            error_code="missing_license_key",
        )
