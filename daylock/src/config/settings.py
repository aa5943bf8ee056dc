"""
Application settings configuration for the Daylock reminder engine.

Centralized settings loaded from environment variables.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


DEFAULT_VAPID_SUBJECT = "mailto:daylock@example.com"


class AppSettings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment Variables:
        VAPID_PUBLIC_KEY: Web Push VAPID public key (Base64url-encoded)
        VAPID_PRIVATE_KEY: Web Push VAPID private key (Base64url-encoded)
        VAPID_SUBJECT: VAPID subject identifier (mailto: or https: URL)
        DAYLOCK_REMINDER_TICK_SECONDS: Seconds between reminder ticks (default: 60)
        DAYLOCK_PUSH_BATCH_SIZE: Users per concurrent batch in bulk sends (default: 10)
        DAYLOCK_PUSH_TIMEOUT_SECONDS: Timeout for a single push delivery (default: 10)
        DAYLOCK_STORE_TIMEOUT_SECONDS: Timeout for a single store call (default: 15)
        DAYLOCK_PUSH_TTL_SECONDS: How long the push service keeps an undelivered message (default: 86400)
    """

    # VAPID settings for Web Push notifications
    vapid_public_key: str = Field(
        default="",
        validation_alias="VAPID_PUBLIC_KEY",
        description="Base64url-encoded VAPID public key for Web Push subscriptions"
    )

    vapid_private_key: str = Field(
        default="",
        validation_alias="VAPID_PRIVATE_KEY",
        description="Base64url-encoded VAPID private key for signing push messages"
    )

    vapid_subject: str = Field(
        default=DEFAULT_VAPID_SUBJECT,
        validation_alias="VAPID_SUBJECT",
        description="VAPID subject (mailto: or https: URL identifying the push sender)"
    )

    # Reminder scheduling
    reminder_tick_seconds: int = Field(
        default=60,
        validation_alias="DAYLOCK_REMINDER_TICK_SECONDS",
        ge=10,
        le=3600,
    )

    # Push fan-out
    push_batch_size: int = Field(
        default=10,
        validation_alias="DAYLOCK_PUSH_BATCH_SIZE",
        ge=1,
        le=500,
    )

    push_timeout_seconds: float = Field(
        default=10.0,
        validation_alias="DAYLOCK_PUSH_TIMEOUT_SECONDS",
        gt=0,
    )

    push_ttl_seconds: int = Field(
        default=86400,
        validation_alias="DAYLOCK_PUSH_TTL_SECONDS",
        ge=0,
    )

    # Durable store
    store_timeout_seconds: float = Field(
        default=15.0,
        validation_alias="DAYLOCK_STORE_TIMEOUT_SECONDS",
        gt=0,
    )

    class Config:
        env_file = ".env"
        extra = "ignore"

    @field_validator("vapid_subject")
    @classmethod
    def validate_vapid_subject(cls, v: str) -> str:
        """Push services reject VAPID claims without a contact URI."""
        if not v:
            return DEFAULT_VAPID_SUBJECT
        if not v.startswith(("mailto:", "https:")):
            raise ValueError("VAPID_SUBJECT must start with 'mailto:' or 'https:'")
        return v

    @property
    def vapid_configured(self) -> bool:
        """Check if VAPID keys are properly configured for Web Push."""
        return bool(self.vapid_public_key and self.vapid_private_key)

    @property
    def vapid_claims(self) -> dict:
        """VAPID claims passed to pywebpush on every send."""
        return {"sub": self.vapid_subject}


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get cached application settings instance.

    Returns:
        AppSettings: Configured application settings from environment
    """
    return AppSettings()
