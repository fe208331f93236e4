"""Tests for the admin service."""

import pytest

from adopte.admin.service import (
    get_analytics,
    list_admin_offers,
    list_users,
    remove_offer,
    remove_user,
    set_offer_status,
    toggle_user_status,
    update_user_role,
)
from adopte.auth.models import Role, User
from adopte.errors import NotFoundError, ValidationError
from adopte.offers.models import Offer

from conftest import _make_user


@pytest.fixture
def admin(db_session):
    return _make_user(db_session, Role.ADMIN, "root@example.com")


class TestAnalytics:
    def test_counts(self, db_session, admin, interview_application, adoption_request, make_offer, company):
        make_offer(company, title="Paused", is_active=False)
        stats = get_analytics(db_session)
        assert stats["totalUsers"] == 3
        assert stats["usersByRole"] == {"STUDENT": 1, "COMPANY": 1, "ADMIN": 1}
        assert stats["activeOffers"] == 1
        assert stats["inactiveOffers"] == 1
        assert stats["applicationsByStatus"] == {"INTERVIEW": 1}
        assert stats["adoptionRequestsByStatus"] == {"PENDING": 1}
        assert stats["totalConversations"] == 2
        assert stats["totalMessages"] == 1
        assert stats["totalBlogPosts"] == 0


class TestUsers:
    def test_filters(self, db_session, admin, student, company):
        assert list_users(db_session)["pagination"]["total"] == 3
        students = list_users(db_session, role=Role.STUDENT)["users"]
        assert [u["email"] for u in students] == ["student@example.com"]
        assert [u["email"] for u in list_users(db_session, search="company")["users"]] == ["company@example.com"]

    def test_serialized_users_hide_secrets(self, db_session, admin):
        [user] = list_users(db_session)["users"]
        assert "passwordHash" not in user
        assert "twoFactorSecret" not in user

    def test_change_role(self, db_session, admin, student):
        assert update_user_role(db_session, admin, str(student.id), Role.COMPANY).role == Role.COMPANY

    def test_cannot_demote_self(self, db_session, admin):
        with pytest.raises(ValidationError):
            update_user_role(db_session, admin, str(admin.id), Role.STUDENT)

    def test_toggle_status(self, db_session, admin, student):
        assert toggle_user_status(db_session, admin, str(student.id)).is_active is False
        assert toggle_user_status(db_session, admin, str(student.id)).is_active is True
        with pytest.raises(ValidationError):
            toggle_user_status(db_session, admin, str(admin.id))

    def test_remove_user_cascades(self, db_session, admin, student, application):
        remove_user(db_session, admin, str(student.id))
        db_session.commit()
        assert db_session.query(User).filter(User.email == "student@example.com").first() is None
        with pytest.raises(NotFoundError):
            remove_user(db_session, admin, str(student.id))

    def test_cannot_remove_self(self, db_session, admin):
        with pytest.raises(ValidationError):
            remove_user(db_session, admin, str(admin.id))


class TestOffers:
    def test_listing_includes_inactive(self, db_session, company, application, make_offer):
        make_offer(company, title="Paused", is_active=False)
        result = list_admin_offers(db_session)
        counts = {o["title"]: o["applicationCount"] for o in result["offers"]}
        assert counts == {"Backend intern": 1, "Paused": 0}
        inactive = list_admin_offers(db_session, is_active=False)["offers"]
        assert [o["title"] for o in inactive] == ["Paused"]

    def test_search_by_company(self, db_session, offer):
        assert list_admin_offers(db_session, search="acme")["pagination"]["total"] == 1

    def test_deactivate_and_remove(self, db_session, offer):
        assert set_offer_status(db_session, str(offer.id), False).is_active is False
        remove_offer(db_session, str(offer.id))
        assert db_session.query(Offer).count() == 0
        with pytest.raises(NotFoundError):
            set_offer_status(db_session, str(offer.id), True)
