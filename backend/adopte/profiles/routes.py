"""Own-profile routes."""

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.models import User
from ..database.base import get_db
from ..dependencies import get_current_user
from .service import get_profile_payload, upsert_profile

router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("")
def get_profile(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return get_profile_payload(db, user)


@router.post("")
def save_profile(
    request: Request,
    body: dict = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    upsert_profile(db, user, body)
    audit(db, request, "profile_update", user_id=user.id)
    db.commit()
    return get_profile_payload(db, user)
