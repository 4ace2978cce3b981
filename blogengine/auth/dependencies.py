"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current caller extraction from the bearer token
"""

from typing import Annotated

import structlog
from fastapi import Depends, Request
from jose import JWTError

from blogengine.auth.schemas import Caller
from blogengine.auth.security import decode_access_token
from blogengine.core.context import set_caller_name
from blogengine.core.middleware import resolve_client_ip


logger = structlog.get_logger(__name__)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_caller(
    request: Request,
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Caller:
    """Resolve the caller of the current request.

    Requests without a token, or with an invalid one, run as anonymous.
    Rights are checked later by the services, so an anonymous caller is
    only refused when the operation actually needs more.

    Must stay async: sync routes read the caller name bound here.
    """
    ip_address = resolve_client_ip(request)

    if not token:
        return Caller.anonymous(ip_address)

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        logger.info("access_token_rejected", error=str(e))
        return Caller.anonymous(ip_address)

    caller = Caller.from_token_payload(payload, ip_address=ip_address)
    set_caller_name(caller.name)
    return caller


# Type aliases for dependency injection
CurrentCaller = Annotated[Caller, Depends(get_current_caller)]
