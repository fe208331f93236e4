"""Authentication service: users, passwords, OAuth accounts."""

import logging
from datetime import datetime
from uuid import UUID

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import Settings
from ..errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from ..profiles.service import create_company_profile, create_student_profile
from .models import Account, Role, User
from .schemas import OAuthRegistrationRequest, RegisterRequest

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
GOOGLE = "google"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(BCRYPT_ROUNDS)).decode()


def verify_password(plain: str | None, hashed: str | None) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode(), hashed.encode())
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def _to_uuid(value) -> UUID | None:
    """Convert string to UUID, returning None on failure."""
    if not value:
        return None
    try:
        return UUID(str(value))
    except (ValueError, AttributeError):
        return None


def get_user_by_id(db: Session, user_id) -> User | None:
    uid = _to_uuid(user_id)
    if uid is None:
        return None
    return db.query(User).filter(User.id == uid).first()


def _create_profile(db: Session, user: User, first_name, last_name, name, contact_email) -> None:
    if user.role == Role.STUDENT:
        create_student_profile(db, user, (first_name or "").strip(), (last_name or "").strip())
    elif user.role == Role.COMPANY:
        create_company_profile(db, user, (name or "").strip(), str(contact_email))


def register_user(db: Session, data: RegisterRequest) -> User:
    """Create a password user and the profile for its role in one flush."""
    email = normalize_email(str(data.email))
    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    user = User(email=email, password_hash=hash_password(data.password), role=Role(data.role))
    db.add(user)
    try:
        db.flush()
        _create_profile(db, user, data.first_name, data.last_name, data.name, data.contact_email)
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("User with this email already exists") from exc
    logger.info("Registered %s user %s", user.role, user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> User:
    """Check credentials for password login. Raises on every failure mode."""
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        raise AuthenticationError("Invalid credentials")
    if user.password_login_disabled:
        raise AuthorizationError(
            "Password login is disabled for this account. Please sign in with your linked social account."
        )
    if not user.password_hash:
        raise AuthenticationError("This account uses social login. Please sign in with Google.")
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> None:
    if not user.password_hash:
        raise ValidationError("This account has no password. Sign in with your linked provider instead.")
    if not verify_password(current_password, user.password_hash):
        raise ValidationError("Current password is incorrect.")
    user.password_hash = hash_password(new_password)
    user.password_login_disabled = False
    db.flush()


def linked_providers(user: User) -> list[str]:
    return sorted({account.provider for account in user.accounts})


def disable_password(db: Session, user: User) -> None:
    """Turn off password login; only allowed once an OAuth provider is linked."""
    if not user.accounts:
        raise ValidationError("You must link a social account before disabling password login.")
    if user.password_login_disabled:
        raise ValidationError("Password login is already disabled.")
    user.password_login_disabled = True
    db.flush()


def delete_account(db: Session, user: User, password: str | None) -> None:
    if not user.password_hash:
        raise ValidationError("This account must be deleted via the original sign-in provider.")
    if not password:
        raise ValidationError("Password is required to delete your account.")
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid password.")
    db.delete(user)
    db.flush()


def delete_user(db: Session, user: User) -> None:
    db.delete(user)
    db.flush()


def serialize_user(user: User) -> dict:
    """Public view of a user: never includes hashes, secrets or recovery codes."""
    return {
        "id": str(user.id),
        "email": user.email,
        "role": str(user.role),
        "isActive": user.is_active,
        "passwordLoginDisabled": user.password_login_disabled,
        "isTwoFactorEnabled": user.two_factor_enabled,
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


def serialize_me(user: User) -> dict:
    return {
        **serialize_user(user),
        "hasPassword": bool(user.password_hash),
        "linkedProviders": linked_providers(user),
    }


# -- OAuth accounts ----------------------------------------------------------


def upsert_oauth_account(
    db: Session,
    user: User,
    provider: str,
    provider_account_id: str,
    access_token: str | None = None,
    refresh_token: str | None = None,
    expires_at: datetime | None = None,
) -> Account:
    """Link (or refresh the tokens of) a provider identity. Tokens must already be encrypted."""
    account = (
        db.query(Account)
        .filter(Account.provider == provider, Account.provider_account_id == provider_account_id)
        .first()
    )
    if account and account.user_id != user.id:
        raise ConflictError("This provider account is already linked to another user.")
    if account is None:
        account = Account(user=user, provider=provider, provider_account_id=provider_account_id)
        db.add(account)
    account.access_token = access_token
    if refresh_token:
        account.refresh_token = refresh_token
    account.expires_at = expires_at
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("This provider account is already linked to another user.") from exc
    return account


def complete_link(db: Session, claims: dict, choice: str) -> User:
    """Finish linking a Google identity to a password user (after the linking token)."""
    user = get_user_by_id(db, _to_uuid(claims.get("id")))
    if not user:
        raise NotFoundError("User not found.")
    upsert_oauth_account(
        db,
        user,
        claims.get("provider", GOOGLE),
        claims["providerAccountId"],
        claims.get("accessToken"),
        claims.get("refreshToken"),
    )
    if choice == "google_only":
        user.password_hash = None
        user.password_login_disabled = True
    db.flush()
    return user


def complete_oauth_registration(db: Session, claims: dict, data: OAuthRegistrationRequest) -> User:
    """Create the user, its OAuth account and its profile from a registration token."""
    email = normalize_email(claims["email"])
    if get_user_by_email(db, email):
        raise ConflictError("User with this email already exists")

    user = User(email=email, password_hash=None, role=Role(data.role))
    db.add(user)
    try:
        db.flush()
        _create_profile(
            db,
            user,
            data.first_name or claims.get("givenName") or "",
            data.last_name or claims.get("familyName") or "",
            data.name or claims.get("name") or email.split("@")[0],
            data.contact_email or email,
        )
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError("User with this email already exists") from exc
    upsert_oauth_account(
        db,
        user,
        claims.get("provider", GOOGLE),
        claims["providerAccountId"],
        claims.get("accessToken"),
        claims.get("refreshToken"),
    )
    return user


def ensure_admin_user(db: Session, config: Settings) -> None:
    """Create the bootstrap admin from settings if it doesn't exist yet."""
    if not config.admin_email or not config.admin_password:
        return

    if get_user_by_email(db, config.admin_email):
        return

    admin = User(
        email=normalize_email(config.admin_email),
        password_hash=hash_password(config.admin_password),
        role=Role.ADMIN,
    )
    db.add(admin)
    db.flush()
    logger.info("Created bootstrap admin user %s", admin.email)
