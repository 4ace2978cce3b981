"""Pydantic schemas for the authenticated caller."""

from typing import Any

from pydantic import BaseModel, ConfigDict

from blogengine.auth.permissions import UserRole


class Caller(BaseModel):
    """Identity of whoever issued the current request.

    ``name`` is the identity name used for ownership checks; it is empty for
    anonymous callers.
    """

    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str | None = None
    role: str = UserRole.ANONYMOUS.value
    is_authenticated: bool = False
    ip_address: str | None = None

    @classmethod
    def anonymous(cls, ip_address: str | None = None) -> "Caller":
        """Build a caller for requests without valid credentials."""
        return cls(ip_address=ip_address)

    @classmethod
    def from_token_payload(
        cls, payload: dict[str, Any], ip_address: str | None = None
    ) -> "Caller":
        """Build a caller from decoded access token claims."""
        return cls(
            name=payload["sub"],
            email=payload.get("email"),
            role=payload.get("role", UserRole.ANONYMOUS.value),
            is_authenticated=True,
            ip_address=ip_address,
        )
