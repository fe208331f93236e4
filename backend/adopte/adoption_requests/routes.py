"""Adoption request routes."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..audit.service import audit
from ..auth.models import User
from ..database.base import get_db
from ..dependencies import require_company, require_student
from .models import AdoptionRequestStatus
from .service import (
    create_adoption_request,
    list_received_requests,
    list_sent_requests,
    serialize_received_request,
    serialize_request,
    serialize_sent_request,
    update_status,
)

router = APIRouter(prefix="/api/adoption-requests", tags=["adoption-requests"])


class AdoptionRequestCreate(BaseModel):
    student_id: str = Field(..., alias="studentId", min_length=1)
    message: str = Field(..., min_length=10, max_length=5000)
    offer_id: str | None = Field(None, alias="offerId")

    model_config = {"populate_by_name": True}


class AdoptionRequestStatusUpdate(BaseModel):
    status: AdoptionRequestStatus


@router.post("", status_code=201)
def create_request(
    request: Request,
    body: AdoptionRequestCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_company),
):
    adoption_request = create_adoption_request(db, user, body.student_id, body.message, body.offer_id)
    audit(db, request, "adoption_request_sent", f"request={adoption_request.id}", user_id=user.id)
    db.commit()
    return serialize_request(adoption_request)


@router.get("/sent-requests")
def sent_requests(db: Session = Depends(get_db), user: User = Depends(require_company)):
    return {"requests": [serialize_sent_request(r) for r in list_sent_requests(db, user)]}


@router.get("/my-requests")
def my_requests(db: Session = Depends(get_db), user: User = Depends(require_student)):
    return {"requests": [serialize_received_request(r) for r in list_received_requests(db, user)]}


@router.patch("/{request_id}/status")
def update_request_status(
    request_id: str,
    request: Request,
    body: AdoptionRequestStatusUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    adoption_request = update_status(db, user, request_id, body.status)
    audit(
        db,
        request,
        "adoption_request_status",
        f"request={adoption_request.id} status={adoption_request.status}",
        user_id=user.id,
    )
    db.commit()
    return serialize_request(adoption_request)
