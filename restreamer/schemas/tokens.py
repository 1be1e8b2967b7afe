"""Cached credential models."""

from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AccountToken(BaseModel):
    """Account-level (user) access token.

    expires_at is None when the token has no known renewal window; such a token
    stays usable until it is explicitly invalidated.
    """

    model_config = ConfigDict(frozen=True)

    value: str
    expires_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utc_now()) >= self.expires_at

    @classmethod
    def with_ttl(cls, value: str, ttl: timedelta, now: datetime | None = None) -> "AccountToken":
        return cls(value=value, expires_at=(now or utc_now()) + ttl)


class ResourceToken(BaseModel):
    """Resource-level (page) access token derived from an account token."""

    model_config = ConfigDict(frozen=True)

    resource_id: str
    value: str
    cached_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at

    @classmethod
    def with_ttl(
        cls, resource_id: str, value: str, ttl: timedelta, now: datetime | None = None
    ) -> "ResourceToken":
        cached_at = now or utc_now()
        return cls(
            resource_id=resource_id,
            value=value,
            cached_at=cached_at,
            expires_at=cached_at + ttl,
        )


class ValidationPolicy(str, Enum):
    """What to report when a liveness check fails for a reason other than an invalid token.

    - LENIENT: report valid and log a warning; a bad token then fails at the point of use.
    - STRICT: report invalid.
    """

    LENIENT = "lenient"
    STRICT = "strict"


__all__ = ["AccountToken", "ResourceToken", "ValidationPolicy", "utc_now"]
