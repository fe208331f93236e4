"""Admin routes. Every endpoint requires the ADMIN role."""

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.models import Role, User
from ..auth.service import serialize_user
from ..database.base import get_db
from ..dependencies import require_admin
from .service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    get_analytics,
    list_admin_offers,
    list_users,
    remove_offer,
    remove_user,
    set_offer_status,
    toggle_user_status,
    update_user_role,
)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class RoleUpdateRequest(BaseModel):
    role: Role


class OfferStatusRequest(BaseModel):
    is_active: bool = Field(..., alias="isActive")

    model_config = {"populate_by_name": True}


@router.get("/analytics")
def analytics(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return get_analytics(db)


@router.get("/users")
def users(
    role: Role | None = None,
    search: str | None = None,
    is_active: bool | None = Query(None, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return list_users(db, role=role, search=search, is_active=is_active, page=page, limit=limit)


@router.patch("/users/{user_id}/role")
def user_role(
    user_id: str,
    request: Request,
    body: RoleUpdateRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = update_user_role(db, admin, user_id, body.role)
    audit(db, request, "admin_role_change", f"user={user.id} role={body.role}", user_id=admin.id)
    db.commit()
    return serialize_user(user)


@router.patch("/users/{user_id}/status")
def user_status(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    user = toggle_user_status(db, admin, user_id)
    audit(db, request, "admin_user_status", f"user={user.id} active={user.is_active}", user_id=admin.id)
    db.commit()
    return serialize_user(user)


@router.delete("/users/{user_id}", status_code=204)
def delete_user_route(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    remove_user(db, admin, user_id)
    audit(db, request, "admin_user_delete", f"user={user_id}", user_id=admin.id)
    db.commit()
    return Response(status_code=204)


@router.get("/offers")
def offers(
    search: str | None = None,
    is_active: bool | None = Query(None, alias="isActive"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    return list_admin_offers(db, search=search, is_active=is_active, page=page, limit=limit)


@router.patch("/offers/{offer_id}/status")
def offer_status(
    offer_id: str,
    request: Request,
    body: OfferStatusRequest,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    offer = set_offer_status(db, offer_id, body.is_active)
    audit(db, request, "admin_offer_status", f"offer={offer.id} active={offer.is_active}", user_id=admin.id)
    db.commit()
    return {"id": str(offer.id), "isActive": offer.is_active}


@router.delete("/offers/{offer_id}", status_code=204)
def delete_offer_route(
    offer_id: str,
    request: Request,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    remove_offer(db, offer_id)
    audit(db, request, "admin_offer_delete", f"offer={offer_id}", user_id=admin.id)
    db.commit()
    return Response(status_code=204)
