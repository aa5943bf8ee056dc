"""
Custom exceptions for the service layer.

Delivery exceptions mirror the push transport's two error kinds:
PushGoneError for endpoints that will never accept another message,
PushDeliveryError for everything that might succeed on a later attempt.
"""

from typing import Optional


class ServiceError(Exception):
    """Base exception for service layer errors."""
    pass


class PushNotConfiguredError(ServiceError):
    """Raised when Web Push credentials (VAPID keys) are missing."""

    def __init__(self, message: str = "VAPID keys not set, Web Push disabled"):
        self.message = message
        super().__init__(message)


class PushDeliveryError(ServiceError):
    """Raised when a push delivery fails but the endpoint may still be valid."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class PushGoneError(PushDeliveryError):
    """Raised when the push service returns 404/410 (subscription invalid)."""

    def __init__(self, endpoint: str, status_code: Optional[int] = 410):
        self.endpoint = endpoint
        super().__init__(
            f"Push subscription gone: {endpoint[:60]}",
            status_code=status_code,
        )


class StoreError(ServiceError):
    """Raised when the durable store cannot complete a read or write."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation} failed: {message}")


class InvalidTimeOfDayError(ServiceError, ValueError):
    """Raised when a stored time-of-day cannot be parsed."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid time of day: {value!r}")
