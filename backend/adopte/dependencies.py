"""Shared FastAPI dependencies: settings, cache, authentication and role guards."""

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from .auth.models import Role, User
from .auth.tokens import SESSION, decode_token, is_revoked
from .config import Settings
from .database.base import get_db
from .errors import AuthenticationError, AuthorizationError
from .integrations.cache import CacheService

SESSION_COOKIE = "token"


@dataclass(frozen=True)
class Anonymous:
    """No usable session. ``invalid_token`` is set when a cookie was sent but rejected."""

    invalid_token: bool = False


@dataclass(frozen=True)
class Authenticated:
    id: UUID
    email: str
    role: Role
    token_payload: dict


AuthResult = Anonymous | Authenticated


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_cache(request: Request) -> CacheService:
    """Get the cache service from app state."""
    return request.app.state.cache


def get_auth(
    request: Request,
    config: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
) -> AuthResult:
    """Resolve the session cookie into an explicit auth result. Never raises."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return Anonymous()
    try:
        payload = decode_token(config, token, SESSION)
        auth = Authenticated(
            id=UUID(payload["id"]),
            email=payload.get("email", ""),
            role=Role(payload["role"]),
            token_payload=payload,
        )
    except (AuthenticationError, KeyError, ValueError):
        return Anonymous(invalid_token=True)
    if is_revoked(cache, payload):
        return Anonymous(invalid_token=True)
    return auth


def get_current_user(auth: AuthResult = Depends(get_auth), db: Session = Depends(get_db)) -> User:
    """Load the authenticated user or raise 401."""
    if isinstance(auth, Anonymous):
        raise AuthenticationError("Invalid or expired token" if auth.invalid_token else "Authentication required")
    user = db.query(User).filter(User.id == auth.id).first()
    if not user or not user.is_active:
        raise AuthenticationError("Invalid or expired token")
    return user


def get_optional_user(auth: AuthResult = Depends(get_auth), db: Session = Depends(get_db)) -> User | None:
    """Like get_current_user, but anonymous callers get None instead of a 401."""
    if isinstance(auth, Anonymous):
        return None
    user = db.query(User).filter(User.id == auth.id).first()
    if not user or not user.is_active:
        return None
    return user


def require_role(*roles: Role):
    """Dependency factory: the current user must hold one of *roles*."""

    def guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise AuthorizationError("Forbidden: Insufficient permissions")
        return user

    return guard


require_student = require_role(Role.STUDENT)
require_company = require_role(Role.COMPANY)
require_admin = require_role(Role.ADMIN)
