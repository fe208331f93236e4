"""Company directory and dashboard stats."""

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..adoption_requests.models import AdoptionRequest
from ..applications.models import Application
from ..auth.models import User
from ..errors import NotFoundError
from ..offers.models import Offer
from ..profiles.models import CompanyProfile
from ..profiles.service import get_company_profile


def list_companies_with_offers(db: Session, search: str | None = None) -> list[dict]:
    """Companies that have published at least one offer, by name."""
    query = (
        db.query(CompanyProfile, func.count(Offer.id))
        .join(Offer, Offer.company_id == CompanyProfile.id)
        .group_by(CompanyProfile.id)
    )
    if search:
        query = query.filter(CompanyProfile.name.ilike(f"%{search}%"))
    return [
        {
            "id": str(company.id),
            "name": company.name,
            "logoUrl": company.logo_url,
            "sector": company.sector,
            "size": company.size,
            "offerCount": offer_count,
        }
        for company, offer_count in query.order_by(CompanyProfile.name.asc()).all()
    ]


def get_company_stats(db: Session, user: User) -> dict:
    company = get_company_profile(db, user.id)
    if company is None:
        raise NotFoundError("Company profile not found")

    by_status = dict(
        db.query(Application.status, func.count(Application.id))
        .join(Offer, Application.offer_id == Offer.id)
        .filter(Offer.company_id == company.id)
        .group_by(Application.status)
        .all()
    )
    return {
        "totalOffers": db.query(func.count(Offer.id)).filter(Offer.company_id == company.id).scalar(),
        "totalApplications": sum(by_status.values()),
        "applicationsByStatus": {str(status): count for status, count in by_status.items()},
        "adoptionRequestsSent": (
            db.query(func.count(AdoptionRequest.id)).filter(AdoptionRequest.company_id == company.id).scalar()
        ),
    }
