"""Application routes: students apply, companies review."""

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.models import User
from ..database.base import get_db
from ..dependencies import get_current_user, require_company, require_student
from .models import ApplicationStatus
from .service import (
    create_application,
    get_application,
    list_my_applications,
    serialize_application,
    update_status,
    withdraw_application,
)

router = APIRouter(prefix="/api/applications", tags=["applications"])


class ApplicationCreateRequest(BaseModel):
    offer_id: str = Field(..., alias="offerId", min_length=1)

    model_config = {"populate_by_name": True}


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


@router.post("", status_code=201)
def apply(
    request: Request,
    body: ApplicationCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    application = create_application(db, user, body.offer_id)
    audit(db, request, "application_created", f"offer={application.offer_id}", user_id=user.id)
    db.commit()
    return serialize_application(application)


@router.get("/my-applications")
def my_applications(db: Session = Depends(get_db), user: User = Depends(require_student)):
    return {"applications": [serialize_application(a) for a in list_my_applications(db, user)]}


@router.get("/{application_id}")
def application_detail(
    application_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return serialize_application(get_application(db, user, application_id))


@router.patch("/{application_id}/status")
def update_application_status(
    application_id: str,
    request: Request,
    body: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_company),
):
    application = update_status(db, user, application_id, body.status)
    audit(
        db,
        request,
        "application_status",
        f"application={application.id} status={application.status}",
        user_id=user.id,
    )
    db.commit()
    return serialize_application(application)


@router.delete("/{application_id}", status_code=204)
def withdraw(
    application_id: str,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    withdraw_application(db, user, application_id)
    audit(db, request, "application_withdrawn", f"application={application_id}", user_id=user.id)
    db.commit()
    return Response(status_code=204)
