"""TOTP two-factor authentication and single-use recovery codes."""

import base64
import io
import logging
import secrets
import string

import bcrypt
import pyotp
import qrcode
import qrcode.image.svg
from sqlalchemy.orm import Session

from ..auth.models import User
from ..auth.service import verify_password
from ..errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)

RECOVERY_CODE_COUNT = 10
RECOVERY_CODE_LENGTH = 8
_RECOVERY_ALPHABET = string.ascii_uppercase + string.digits
_BCRYPT_ROUNDS = 10

# Tolerated clock drift in 30-second steps
SETUP_WINDOW = 1
LOGIN_WINDOW = 2


def _qr_data_url(payload: str) -> str:
    image = qrcode.make(payload, image_factory=qrcode.image.svg.SvgPathImage)
    buffer = io.BytesIO()
    image.save(buffer)
    return "data:image/svg+xml;base64," + base64.b64encode(buffer.getvalue()).decode()


def generate_secret(db: Session, user: User, issuer: str) -> dict:
    """Store a fresh (not yet enabled) TOTP secret and return provisioning data."""
    if user.two_factor_enabled:
        raise ValidationError("2FA is already enabled.")
    secret = pyotp.random_base32()
    user.two_factor_secret = secret
    db.flush()

    otpauth_url = pyotp.TOTP(secret).provisioning_uri(name=user.email, issuer_name=issuer)
    return {"secret": secret, "otpauthUrl": otpauth_url, "qrCodeUrl": _qr_data_url(otpauth_url)}


def generate_recovery_codes() -> list[str]:
    return [
        "".join(secrets.choice(_RECOVERY_ALPHABET) for _ in range(RECOVERY_CODE_LENGTH))
        for _ in range(RECOVERY_CODE_COUNT)
    ]


def _hash_codes(codes: list[str]) -> list[str]:
    return [bcrypt.hashpw(code.encode(), bcrypt.gensalt(_BCRYPT_ROUNDS)).decode() for code in codes]


def verify_totp(secret: str | None, token: str, valid_window: int) -> bool:
    if not secret or not token:
        return False
    return pyotp.TOTP(secret).verify(token.strip(), valid_window=valid_window)


def consume_recovery_code(user: User, code: str) -> bool:
    """Remove the matching hashed recovery code from *user*. Returns True on a match."""
    candidate = code.strip().upper().encode()
    remaining = list(user.recovery_codes or [])
    for index, hashed in enumerate(remaining):
        if bcrypt.checkpw(candidate, hashed.encode()):
            del remaining[index]
            user.recovery_codes = remaining
            return True
    return False


def verify_second_factor(user: User, token: str, valid_window: int = LOGIN_WINDOW) -> bool:
    """Accept either a current TOTP code or an unused recovery code."""
    if verify_totp(user.two_factor_secret, token, valid_window):
        return True
    return consume_recovery_code(user, token)


def enable(db: Session, user: User, token: str) -> list[str]:
    """Confirm the pending secret with a TOTP code and switch 2FA on.

    Returns the plaintext recovery codes; only their hashes are stored.
    """
    if not user.two_factor_secret:
        raise ValidationError("2FA secret not generated. Call /api/2fa/generate first.")
    if not verify_totp(user.two_factor_secret, token, SETUP_WINDOW):
        raise ValidationError("Invalid 2FA token.")
    codes = generate_recovery_codes()
    user.two_factor_enabled = True
    user.recovery_codes = _hash_codes(codes)
    db.flush()
    logger.info("2FA enabled for user %s", user.id)
    return codes


def disable(db: Session, user: User, token: str) -> None:
    if not user.two_factor_enabled:
        raise ValidationError("2FA is not enabled.")
    if not verify_second_factor(user, token, SETUP_WINDOW):
        raise ValidationError("Invalid 2FA token or recovery code.")
    user.two_factor_enabled = False
    user.two_factor_secret = None
    user.recovery_codes = []
    db.flush()
    logger.info("2FA disabled for user %s", user.id)


def regenerate_recovery_codes(db: Session, user: User, password: str) -> list[str]:
    if not user.two_factor_enabled:
        raise ValidationError("2FA is not enabled.")
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid password.")
    codes = generate_recovery_codes()
    user.recovery_codes = _hash_codes(codes)
    db.flush()
    return codes
