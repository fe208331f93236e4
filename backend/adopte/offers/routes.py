"""Offer routes: public listing, company CRUD."""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..auth.models import User
from ..database.base import get_db
from ..dependencies import get_optional_user, require_company
from .schemas import OfferCreateRequest, OfferUpdateRequest
from .service import (
    OfferFilters,
    create_offer,
    delete_offer,
    get_offer_payload,
    list_my_offers,
    list_offer_applications,
    list_offer_types,
    list_offers,
    serialize_offer,
    update_offer,
)

router = APIRouter(prefix="/api/offers", tags=["offers"])


@router.get("")
def list_offers_route(
    search: str | None = None,
    location: str | None = None,
    skills: str | None = None,
    company_name: str | None = Query(None, alias="companyName"),
    type: str | None = None,
    sort: str | None = Query(None, pattern="^(relevance|recent)$"),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    filters = OfferFilters(
        search=search,
        location=location,
        skills=skills,
        company_name=company_name,
        type=type,
        sort=sort,
    )
    return list_offers(db, filters, viewer)


@router.get("/types")
def offer_types(db: Session = Depends(get_db)):
    return list_offer_types(db)


@router.get("/my-offers")
def my_offers(db: Session = Depends(get_db), user: User = Depends(require_company)):
    return list_my_offers(db, user)


@router.get("/{offer_id}")
def get_offer_route(
    offer_id: str,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    return get_offer_payload(db, offer_id, viewer)


@router.get("/{offer_id}/applications")
def offer_applications(offer_id: str, db: Session = Depends(get_db), user: User = Depends(require_company)):
    return {"applications": list_offer_applications(db, user, offer_id)}


@router.post("", status_code=201)
def create_offer_route(
    body: OfferCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_company),
):
    offer = create_offer(db, user, body)
    db.commit()
    return serialize_offer(offer)


@router.put("/{offer_id}")
def update_offer_route(
    offer_id: str,
    body: OfferUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_company),
):
    offer = update_offer(db, user, offer_id, body)
    db.commit()
    return serialize_offer(offer)


@router.delete("/{offer_id}", status_code=204)
def delete_offer_route(offer_id: str, db: Session = Depends(get_db), user: User = Depends(require_company)):
    delete_offer(db, user, offer_id)
    db.commit()
    return Response(status_code=204)
