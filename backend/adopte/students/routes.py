"""Student directory routes."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from ..auth.models import User
from ..database.base import get_db
from ..dependencies import get_optional_user, require_student
from .service import get_student_stats, list_available_students, update_visibility

router = APIRouter(prefix="/api/students", tags=["students"])


class VisibilityRequest(BaseModel):
    is_open_to_opportunities: bool = Field(..., alias="isOpenToOpportunities")

    model_config = {"populate_by_name": True}


@router.get("")
def list_students(
    search: str | None = None,
    skills: str | None = None,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return list_available_students(db, search=search, skills=skills, viewer=viewer)


@router.get("/stats")
def student_stats(db: Session = Depends(get_db), user: User = Depends(require_student)):
    return get_student_stats(db, user)


@router.patch("/visibility")
def student_visibility(
    body: VisibilityRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_student),
):
    profile = update_visibility(db, user, body.is_open_to_opportunities)
    db.commit()
    return {"isOpenToOpportunities": profile.is_open_to_opportunities}
