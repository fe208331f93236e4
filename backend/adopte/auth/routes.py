"""Authentication routes: password login, sessions, account management, Google OAuth."""

import logging
from datetime import UTC, datetime, timedelta
from urllib.parse import urlencode
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..config import Settings, settings
from ..database.base import get_db
from ..dependencies import (
    SESSION_COOKIE,
    Anonymous,
    AuthResult,
    get_auth,
    get_cache,
    get_current_user,
    get_settings,
)
from ..errors import AuthenticationError
from ..integrations.cache import CacheService
from ..rate_limit import limiter
from ..two_factor.service import verify_second_factor
from . import oauth
from .models import User
from .schemas import (
    ChangePasswordRequest,
    CompleteLinkRequest,
    DeleteAccountRequest,
    LoginRequest,
    OAuthRegistrationRequest,
    RegisterRequest,
    TwoFactorLoginRequest,
)
from .service import (
    GOOGLE,
    authenticate_user,
    change_password,
    complete_link,
    complete_oauth_registration,
    delete_account,
    delete_user,
    disable_password,
    get_user_by_email,
    get_user_by_id,
    register_user,
    serialize_me,
    upsert_oauth_account,
)
from .tokens import (
    OAUTH_LINK,
    OAUTH_REGISTRATION,
    TWO_FACTOR_PENDING,
    create_session_token,
    create_token,
    create_two_factor_token,
    decode_token,
    revoke_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

TWO_FACTOR_COOKIE = "2fa_token"


# -- Cookie helpers ------------------------------------------------------------


def set_session_cookie(response: Response, config: Settings, user: User) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        create_session_token(config, user),
        max_age=config.jwt_expire_days * 86400,
        httponly=True,
        samesite="lax",
        secure=config.cookie_secure,
        path="/",
    )


def _set_two_factor_cookie(response: Response, config: Settings, user: User) -> None:
    response.set_cookie(
        TWO_FACTOR_COOKIE,
        create_two_factor_token(config, user),
        max_age=config.two_factor_token_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=config.cookie_secure,
        path="/",
    )


def _clear_cookie(response: Response, name: str, config: Settings) -> None:
    response.delete_cookie(name, path="/", httponly=True, samesite="lax", secure=config.cookie_secure)


def _bearer_token(request: Request) -> str:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        raise AuthenticationError("Unauthorized")
    return header[len("Bearer "):].strip()


def _web_redirect(config: Settings, path: str, **params) -> RedirectResponse:
    url = f"{config.web_app_url.rstrip('/')}{path}"
    if params:
        url += "?" + urlencode(params)
    return RedirectResponse(url=url, status_code=302)


# -- Password auth -------------------------------------------------------------


@router.post("/register", status_code=201)
@limiter.limit(settings.rate_limit_auth)
def register(request: Request, body: RegisterRequest, db: Session = Depends(get_db)):
    user = register_user(db, body)
    audit(db, request, "register", f"role={user.role}", user_id=user.id)
    db.commit()
    return {"id": str(user.id), "email": user.email, "role": str(user.role)}


@router.post("/login")
@limiter.limit(settings.rate_limit_auth)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    try:
        user = authenticate_user(db, str(body.email), body.password)
    except AuthenticationError:
        audit(db, request, "login_failed")
        db.commit()
        raise

    if user.two_factor_enabled:
        _set_two_factor_cookie(response, config, user)
        return {"message": "Two-factor authentication required", "twoFactorRequired": True}

    set_session_cookie(response, config, user)
    audit(db, request, "login", user_id=user.id)
    db.commit()
    return {"message": "Logged in successfully"}


@router.post("/login/verify-2fa")
@limiter.limit(settings.rate_limit_auth)
def login_verify_two_factor(
    request: Request,
    response: Response,
    body: TwoFactorLoginRequest,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    pending = request.cookies.get(TWO_FACTOR_COOKIE)
    if not pending:
        raise AuthenticationError("Two-factor session expired. Please log in again.")
    claims = decode_token(config, pending, TWO_FACTOR_PENDING)
    user = get_user_by_id(db, _claims_user_id(claims))
    if not user or not user.is_active or not user.two_factor_enabled:
        raise AuthenticationError("Invalid or expired token")

    if not verify_second_factor(user, body.token):
        audit(db, request, "login_2fa_failed", user_id=user.id)
        db.commit()
        raise AuthenticationError("Invalid 2FA token or recovery code.")

    set_session_cookie(response, config, user)
    _clear_cookie(response, TWO_FACTOR_COOKIE, config)
    audit(db, request, "login", "2fa", user_id=user.id)
    db.commit()
    return {"message": "Logged in successfully"}


def _claims_user_id(claims: dict):
    try:
        return UUID(str(claims.get("id")))
    except ValueError as exc:
        raise AuthenticationError("Invalid or expired token") from exc


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return serialize_me(user)


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    auth: AuthResult = Depends(get_auth),
    cache: CacheService = Depends(get_cache),
    config: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    if not isinstance(auth, Anonymous):
        revoke_token(cache, auth.token_payload)
        audit(db, request, "logout", user_id=auth.id)
        db.commit()
    _clear_cookie(response, SESSION_COOKIE, config)
    return {"message": "Logged out successfully"}


@router.patch("/change-password")
def change_password_route(
    request: Request,
    body: ChangePasswordRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    change_password(db, user, body.current_password, body.new_password)
    audit(db, request, "password_changed", user_id=user.id)
    db.commit()
    return {"message": "Password changed successfully."}


@router.post("/disable-password")
def disable_password_route(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    disable_password(db, user)
    audit(db, request, "password_disabled", user_id=user.id)
    db.commit()
    return {"message": "Password login disabled."}


@router.delete("/account")
def delete_account_route(
    request: Request,
    response: Response,
    body: DeleteAccountRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    auth: AuthResult = Depends(get_auth),
    cache: CacheService = Depends(get_cache),
    config: Settings = Depends(get_settings),
):
    user_id = user.id
    delete_account(db, user, body.password if body else None)
    audit(db, request, "account_deleted", f"user={user_id}")
    db.commit()
    if not isinstance(auth, Anonymous):
        revoke_token(cache, auth.token_payload)
    _clear_cookie(response, SESSION_COOKIE, config)
    return {"message": "Account deleted successfully."}


# -- OAuth completion (bearer tokens issued by the Google callback) -----------


@router.post("/complete-link")
def complete_link_route(
    request: Request,
    response: Response,
    body: CompleteLinkRequest,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    claims = decode_token(config, _bearer_token(request), OAUTH_LINK)
    user = complete_link(db, claims, body.choice)
    audit(db, request, "oauth_linked", f"provider={claims.get('provider', GOOGLE)} choice={body.choice}", user_id=user.id)
    db.commit()
    set_session_cookie(response, config, user)
    return {"message": "Account linked successfully."}


@router.post("/complete-oauth-registration")
def complete_oauth_registration_route(
    request: Request,
    response: Response,
    body: OAuthRegistrationRequest,
    db: Session = Depends(get_db),
    config: Settings = Depends(get_settings),
):
    claims = decode_token(config, _bearer_token(request), OAUTH_REGISTRATION)
    user = complete_oauth_registration(db, claims, body)
    audit(db, request, "register", f"role={user.role} provider={claims.get('provider', GOOGLE)}", user_id=user.id)
    db.commit()
    set_session_cookie(response, config, user)
    return {"user": serialize_me(user)}


# -- Google OAuth redirects ------------------------------------------------------


def _start_google(request: Request, config: Settings, purpose: str) -> RedirectResponse:
    state = oauth.new_state()
    request.session["oauth_state"] = state
    request.session["oauth_purpose"] = purpose
    return RedirectResponse(url=oauth.authorization_url(config, state), status_code=302)


@router.get("/google")
def google_login(request: Request, config: Settings = Depends(get_settings)):
    return _start_google(request, config, oauth.PURPOSE_LOGIN)


@router.get("/google/delete")
def google_delete(
    request: Request,
    config: Settings = Depends(get_settings),
    user: User = Depends(get_current_user),
):
    return _start_google(request, config, oauth.PURPOSE_DELETE)


@router.get("/google/callback")
def google_callback(
    request: Request,
    code: str = "",
    state: str = "",
    error: str = "",
    db: Session = Depends(get_db),
    auth: AuthResult = Depends(get_auth),
    cache: CacheService = Depends(get_cache),
    config: Settings = Depends(get_settings),
):
    expected_state = request.session.pop("oauth_state", None)
    purpose = request.session.pop("oauth_purpose", oauth.PURPOSE_LOGIN)
    if error or not code or not expected_state or state != expected_state:
        logger.warning("Google callback rejected: error=%s state_ok=%s", error, state == expected_state)
        return _web_redirect(config, "/login", error="oauth_failed")

    try:
        tokens = oauth.exchange_code(config, code)
        google_user = oauth.fetch_user(tokens.access_token)
    except AuthenticationError:
        return _web_redirect(config, "/login", error="oauth_failed")

    current = None
    if not isinstance(auth, Anonymous):
        current = get_user_by_id(db, auth.id)

    if purpose == oauth.PURPOSE_DELETE:
        return _google_delete(request, db, cache, config, auth, current, google_user)

    access_token = oauth.encrypt_value(config, tokens.access_token)
    refresh_token = oauth.encrypt_value(config, tokens.refresh_token)
    expires_at = (
        datetime.now(UTC) + timedelta(seconds=tokens.expires_in) if tokens.expires_in else None
    )
    provider_claims = {
        "provider": GOOGLE,
        "providerAccountId": google_user.id,
        "accessToken": access_token,
        "refreshToken": refresh_token,
    }

    # Linking from an authenticated session
    if current is not None:
        if current.email != google_user.email:
            return _web_redirect(config, "/profile", error="email_mismatch")
        if current.password_hash:
            link_token = create_token(
                config,
                {"id": str(current.id), **provider_claims},
                OAUTH_LINK,
                timedelta(minutes=config.oauth_token_minutes),
            )
            return _web_redirect(config, "/link-account", token=link_token)
        upsert_oauth_account(db, current, GOOGLE, google_user.id, access_token, refresh_token, expires_at)
        audit(db, request, "oauth_linked", f"provider={GOOGLE}", user_id=current.id)
        db.commit()
        return _web_redirect(config, "/profile", linked=GOOGLE)

    existing = get_user_by_email(db, google_user.email)
    if existing is not None:
        if not existing.is_active:
            return _web_redirect(config, "/login", error="account_disabled")
        if existing.two_factor_enabled:
            response = _web_redirect(config, "/verify-2fa")
            _set_two_factor_cookie(response, config, existing)
            return response
        upsert_oauth_account(db, existing, GOOGLE, google_user.id, access_token, refresh_token, expires_at)
        audit(db, request, "login", f"provider={GOOGLE}", user_id=existing.id)
        db.commit()
        response = _web_redirect(config, "/profile")
        set_session_cookie(response, config, existing)
        return response

    registration_token = create_token(
        config,
        {
            "email": google_user.email,
            "givenName": google_user.given_name,
            "familyName": google_user.family_name,
            "name": google_user.name,
            **provider_claims,
        },
        OAUTH_REGISTRATION,
        timedelta(minutes=config.oauth_token_minutes),
    )
    return _web_redirect(config, "/complete-registration", token=registration_token)


def _google_delete(request, db, cache, config, auth, current, google_user) -> RedirectResponse:
    if current is None:
        return _web_redirect(config, "/login", error="delete_requires_login")
    if current.email != google_user.email:
        return _web_redirect(config, "/profile", error="email_mismatch")
    user_id = current.id
    delete_user(db, current)
    audit(db, request, "account_deleted", f"user={user_id} provider={GOOGLE}")
    db.commit()
    revoke_token(cache, auth.token_payload)
    response = _web_redirect(config, "/", accountDeleted="true")
    _clear_cookie(response, SESSION_COOKIE, config)
    return response
