"""Company directory routes."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth.models import User
from ..database.base import get_db
from ..dependencies import require_company
from .service import get_company_stats, list_companies_with_offers

router = APIRouter(prefix="/api/companies", tags=["companies"])


@router.get("")
def list_companies(search: str | None = None, db: Session = Depends(get_db)):
    return list_companies_with_offers(db, search=search)


@router.get("/stats")
def company_stats(db: Session = Depends(get_db), user: User = Depends(require_company)):
    return get_company_stats(db, user)
