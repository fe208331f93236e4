"""Public skills listing."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database.base import get_db
from .service import list_offer_skills

router = APIRouter(prefix="/api/skills", tags=["skills"])


@router.get("")
def list_skills(db: Session = Depends(get_db)):
    return [{"id": str(s.id), "name": s.name} for s in list_offer_skills(db)]
