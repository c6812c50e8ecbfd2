"""Credential data model with expiration tracking."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


@dataclass(frozen=True)
class Credential:
    """
    Short-lived bearer credential.

    Replaced, never mutated, on refresh.

    Attributes:
        value: The opaque bearer token
        expires_at: UTC timestamp when the token expires
        issued_at: UTC timestamp when the token was obtained
        expiry_source: "claim" when decoded from the token, "default" when
            the configured default TTL was applied
    """

    value: str
    expires_at: datetime
    issued_at: datetime
    expiry_source: str = "claim"

    def is_expired(self, buffer_seconds: float = 30, now: datetime | None = None) -> bool:
        """
        Check if the credential is expired or inside its refresh buffer.

        Args:
            buffer_seconds: Safety buffer before actual expiry
            now: Reference time (defaults to the current UTC time)

        Returns:
            True if the credential should be refreshed
        """
        now = now or datetime.now(UTC)
        return now >= self.expires_at - timedelta(seconds=buffer_seconds)

    def remaining_lifetime(self, now: datetime | None = None) -> timedelta:
        """Get remaining time before the credential expires."""
        return self.expires_at - (now or datetime.now(UTC))

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.value}"

    def __repr__(self) -> str:
        # Never expose the token itself
        return (
            f"Credential(expires_at={self.expires_at.isoformat()}, "
            f"expiry_source={self.expiry_source!r})"
        )


__all__ = ["Credential"]
