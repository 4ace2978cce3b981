"""Authentication and rights checks."""

from .permissions import (
    ROLE_RIGHTS,
    PermissionDeniedError,
    Right,
    SecurityGate,
    UserRole,
    has_right,
)
from .schemas import Caller


__all__ = [
    "ROLE_RIGHTS",
    "Caller",
    "PermissionDeniedError",
    "Right",
    "SecurityGate",
    "UserRole",
    "has_right",
]
