"""Google OAuth 2.0 client and provider-token encryption.

Provider tokens are stored encrypted with Fernet (AES-128-CBC), the key
derived from SECRET_KEY.
"""

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from cryptography.fernet import Fernet

from ..config import Settings
from ..errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"
SCOPES = "openid email profile"

PURPOSE_LOGIN = "login"
PURPOSE_DELETE = "delete"


@dataclass
class GoogleUser:
    id: str
    email: str
    given_name: str = ""
    family_name: str = ""
    name: str = ""


@dataclass
class GoogleTokens:
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None


# -- Token encryption --------------------------------------------------------


def _derive_fernet_key(secret: str) -> bytes:
    """Derive a Fernet key from the app SECRET_KEY using SHA-256."""
    digest = hashlib.sha256(secret.encode()).digest()
    return base64.urlsafe_b64encode(digest)


def encrypt_value(config: Settings, plaintext: str | None) -> str | None:
    if not plaintext:
        return None
    f = Fernet(_derive_fernet_key(config.secret_key))
    return f.encrypt(plaintext.encode()).decode()


def decrypt_value(config: Settings, ciphertext: str) -> str:
    f = Fernet(_derive_fernet_key(config.secret_key))
    return f.decrypt(ciphertext.encode()).decode()


# -- Google endpoints --------------------------------------------------------


def new_state() -> str:
    return secrets.token_urlsafe(24)


def authorization_url(config: Settings, state: str) -> str:
    if not config.google_client_id:
        raise ValidationError("Google sign-in is not configured.")
    params = {
        "client_id": config.google_client_id,
        "redirect_uri": config.google_redirect_uri,
        "response_type": "code",
        "scope": SCOPES,
        "state": state,
        "access_type": "offline",
        "prompt": "select_account",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code(config: Settings, code: str) -> GoogleTokens:
    """Trade the authorization code for Google tokens."""
    try:
        response = httpx.post(
            TOKEN_URL,
            data={
                "code": code,
                "client_id": config.google_client_id,
                "client_secret": config.google_client_secret,
                "redirect_uri": config.google_redirect_uri,
                "grant_type": "authorization_code",
            },
            timeout=10.0,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Google token exchange failed: %s", exc.__class__.__name__)
        raise AuthenticationError("Google authentication failed.") from exc
    data = response.json()
    return GoogleTokens(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        expires_in=data.get("expires_in"),
    )


def fetch_user(access_token: str) -> GoogleUser:
    try:
        response = httpx.get(
            USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=10.0,
        )
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Google userinfo request failed: %s", exc.__class__.__name__)
        raise AuthenticationError("Google authentication failed.") from exc
    data = response.json()
    if not data.get("email"):
        raise AuthenticationError("Google account has no email address.")
    return GoogleUser(
        id=str(data["id"]),
        email=data["email"].strip().lower(),
        given_name=data.get("given_name", ""),
        family_name=data.get("family_name", ""),
        name=data.get("name", ""),
    )
