"""Two-factor authentication management routes."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.models import User
from ..config import Settings
from ..database.base import get_db
from ..dependencies import get_current_user, get_settings
from . import service

router = APIRouter(prefix="/api/2fa", tags=["two-factor"])


class VerifyRequest(BaseModel):
    token: str = Field(..., min_length=6, max_length=6)


class DisableRequest(BaseModel):
    token: str = Field(..., min_length=6, max_length=8)


class RecoveryCodesRequest(BaseModel):
    password: str = Field(..., min_length=1)


@router.post("/generate")
def generate(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    config: Settings = Depends(get_settings),
):
    data = service.generate_secret(db, user, config.totp_issuer)
    db.commit()
    return data


@router.post("/verify")
def verify(
    request: Request,
    body: VerifyRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    codes = service.enable(db, user, body.token)
    audit(db, request, "2fa_enabled", user_id=user.id)
    db.commit()
    return {"message": "2FA enabled successfully.", "recoveryCodes": codes}


@router.post("/disable")
def disable(
    request: Request,
    body: DisableRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    service.disable(db, user, body.token)
    audit(db, request, "2fa_disabled", user_id=user.id)
    db.commit()
    return {"message": "2FA disabled successfully."}


@router.post("/recovery-codes")
def regenerate_recovery_codes(
    request: Request,
    body: RecoveryCodesRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    codes = service.regenerate_recovery_codes(db, user, body.password)
    audit(db, request, "2fa_recovery_codes_regenerated", user_id=user.id)
    db.commit()
    return {"recoveryCodes": codes}
