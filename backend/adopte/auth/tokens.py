"""JWT issuing, decoding and revocation.

Every token carries a ``purpose`` claim so a short-lived 2FA or OAuth token can
never be replayed as a session token.
"""

import uuid
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from ..config import Settings
from ..errors import AuthenticationError
from ..integrations.cache import CacheService

SESSION = "session"
TWO_FACTOR_PENDING = "2fa_in_progress"
OAUTH_LINK = "oauth_link"
OAUTH_REGISTRATION = "oauth_registration"

_REVOKED_PREFIX = "revoked_jti:"


def create_token(config: Settings, claims: dict, purpose: str, expires_in: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {
        **claims,
        "purpose": purpose,
        "jti": uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(payload, config.effective_jwt_secret, algorithm=config.jwt_algorithm)


def create_session_token(config: Settings, user) -> str:
    return create_token(
        config,
        {"id": str(user.id), "email": user.email, "role": str(user.role)},
        SESSION,
        timedelta(days=config.jwt_expire_days),
    )


def create_two_factor_token(config: Settings, user) -> str:
    return create_token(
        config,
        {"id": str(user.id)},
        TWO_FACTOR_PENDING,
        timedelta(minutes=config.two_factor_token_minutes),
    )


def decode_token(config: Settings, token: str, purpose: str) -> dict:
    """Decode and check *token*; raises AuthenticationError if unusable for *purpose*."""
    try:
        payload = jwt.decode(token, config.effective_jwt_secret, algorithms=[config.jwt_algorithm])
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc
    if payload.get("purpose") != purpose:
        raise AuthenticationError("Invalid or expired token")
    return payload


def revoke_token(cache: CacheService, payload: dict) -> None:
    """Deny-list the token's ``jti`` until it would have expired anyway."""
    jti = payload.get("jti")
    if not jti:
        return
    ttl = int(payload.get("exp", 0) - datetime.now(UTC).timestamp())
    if ttl > 0:
        cache.set(_REVOKED_PREFIX + jti, "1", ttl)


def is_revoked(cache: CacheService, payload: dict) -> bool:
    jti = payload.get("jti")
    return bool(jti) and cache.get(_REVOKED_PREFIX + jti) is not None
