"""
Web Push transport.

Wraps pywebpush behind a small interface the dispatcher depends on:
``deliver(endpoint, payload_json)`` returns on success and raises
PushGoneError (endpoint permanently invalid) or PushDeliveryError
(anything that may succeed later).
"""

from typing import Any, Dict, Optional, Protocol, runtime_checkable

from pywebpush import WebPushException, webpush

from daylock.src.config.settings import AppSettings
from daylock.src.schemas.reminders import PushEndpoint
from daylock.src.services.exceptions import (
    PushDeliveryError,
    PushGoneError,
    PushNotConfiguredError,
)


# Push service responses meaning the subscription will never work again
GONE_STATUS_CODES = frozenset({404, 410})


@runtime_checkable
class PushTransport(Protocol):
    """
    Protocol for delivering one encrypted push message to one endpoint.

    Implementations block until the push service answers and must raise
    PushGoneError or PushDeliveryError on failure.
    """

    def deliver(self, endpoint: PushEndpoint, payload_json: str) -> None:
        ...


class WebPushTransport:
    """
    VAPID-signed Web Push delivery via pywebpush.

    Attributes:
        ttl: Seconds the push service keeps an undelivered message
        timeout: HTTP timeout for a single delivery, in seconds
    """

    def __init__(
        self,
        vapid_private_key: str,
        vapid_claims: Dict[str, str],
        ttl: int = 86400,
        timeout: Optional[float] = 10.0,
    ):
        """
        Initialize the transport.

        Args:
            vapid_private_key: VAPID private key (Base64url or PEM)
            vapid_claims: VAPID claims dict (e.g. {"sub": "mailto:..."})
            ttl: Push message TTL in seconds
            timeout: HTTP request timeout in seconds

        Raises:
            PushNotConfiguredError: If the private key or subject is missing
        """
        if not vapid_private_key or not vapid_claims.get("sub"):
            raise PushNotConfiguredError()

        self._vapid_private_key = vapid_private_key
        self._vapid_claims = dict(vapid_claims)
        self.ttl = ttl
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "WebPushTransport":
        """
        Build a transport from application settings.

        Raises:
            PushNotConfiguredError: If VAPID keys are not configured
        """
        if not settings.vapid_configured:
            raise PushNotConfiguredError()
        return cls(
            vapid_private_key=settings.vapid_private_key,
            vapid_claims=settings.vapid_claims,
            ttl=settings.push_ttl_seconds,
            timeout=settings.push_timeout_seconds,
        )

    def deliver(self, endpoint: PushEndpoint, payload_json: str) -> None:
        """
        Send a push message to a single endpoint.

        Args:
            endpoint: Target push endpoint
            payload_json: JSON-encoded payload

        Raises:
            PushGoneError: If the push service returned 404 or 410
            PushDeliveryError: If delivery failed for any other reason
        """
        try:
            webpush(
                subscription_info=endpoint.subscription_info,
                data=payload_json,
                vapid_private_key=self._vapid_private_key,
                # pywebpush writes "aud" and "exp" into the claims it is given
                vapid_claims=dict(self._vapid_claims),
                ttl=self.ttl,
                timeout=self.timeout,
                headers={"Urgency": "high"},
            )
        except WebPushException as e:
            status_code = _status_code(e)
            if status_code in GONE_STATUS_CODES:
                raise PushGoneError(endpoint.endpoint, status_code=status_code) from e
            raise PushDeliveryError(str(e), status_code=status_code) from e
        except Exception as e:
            raise PushDeliveryError(str(e)) from e


def _status_code(error: WebPushException) -> Optional[int]:
    response: Any = getattr(error, "response", None)
    if response is None:
        return None
    return getattr(response, "status_code", None)
