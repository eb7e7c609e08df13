"""FastAPI dependencies for authentication.

Provides:
- get_current_user: Resolve the acting user from the bearer JWT
- get_services: The service container built at startup

Workspace authorization happens inside the services, which re-read the
actor's membership in the same session as the operation.
"""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

from api.auth.jwt import VALID_ACCESS_TOKEN_TYPES, verify_token
from api.exceptions import AuthenticationError
from api.services import ServiceContainer
from collab.db.engine import get_session_dependency
from collab.db.models import User


# Security scheme for JWT Bearer tokens
security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Container for the authenticated user."""

    def __init__(self, user: User, claims: Optional[dict] = None):
        self.user = user
        self.claims = claims or {}

    @property
    def user_id(self) -> UUID:
        return self.user.id


def get_current_user(
    request: Request,
    session: Annotated[Session, Depends(get_session_dependency)],
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Extract and validate the current user from the JWT bearer token.

    Raises:
        AuthenticationError: Missing, invalid or expired token, or the user
            is unknown or deactivated
    """
    if not credentials:
        raise AuthenticationError("Missing authentication credentials")

    payload = verify_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    # Only access tokens are accepted for API routes
    if payload.get("type", "access") not in VALID_ACCESS_TOKEN_TYPES:
        raise AuthenticationError("Invalid token type for this endpoint")

    try:
        user_id = UUID(payload.get("sub") or "")
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    user = session.get(User, user_id)
    if not user:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    request.state.user = user
    return CurrentUser(user=user, claims=payload)


def get_services(request: Request) -> ServiceContainer:
    """Service container stored on the application at startup."""
    return request.app.state.services


# Type aliases for cleaner route signatures
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
SessionDep = Annotated[Session, Depends(get_session_dependency)]
ServicesDep = Annotated[ServiceContainer, Depends(get_services)]
