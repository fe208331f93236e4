"""Tests for the student and company directories and dashboard stats."""

import pytest

from adopte.applications.models import ApplicationStatus
from adopte.companies.service import get_company_stats, list_companies_with_offers
from adopte.errors import NotFoundError
from adopte.students.service import get_student_stats, list_available_students, update_visibility


class TestStudentDirectory:
    def test_only_open_students(self, db_session, student, make_student):
        make_student(first_name="Bob", is_open_to_opportunities=False)
        names = [s["firstName"] for s in list_available_students(db_session)]
        assert names == ["Alice"]

    def test_email_only_for_companies(self, db_session, student, company, make_student):
        [anonymous] = list_available_students(db_session)
        [for_student] = list_available_students(db_session, viewer=make_student(is_open_to_opportunities=False))
        [for_company] = list_available_students(db_session, viewer=company)
        assert "email" not in anonymous
        assert "email" not in for_student
        assert for_company["email"] == "student@example.com"

    def test_entry_id_is_the_user_id(self, db_session, student):
        [entry] = list_available_students(db_session)
        assert entry["id"] == str(student.id)

    def test_private_cv_hidden(self, db_session, make_student):
        make_student(first_name="Private", cv_url="https://cv.example/p.pdf")
        make_student(first_name="Public", cv_url="https://cv.example/q.pdf", is_cv_public=True)
        urls = {s["firstName"]: s["cvUrl"] for s in list_available_students(db_session)}
        assert urls == {"Private": None, "Public": "https://cv.example/q.pdf"}

    def test_search(self, db_session, make_student):
        make_student(first_name="Chloe", school="INSA Lyon")
        make_student(first_name="David", degree="Master Data")
        assert [s["firstName"] for s in list_available_students(db_session, search="insa")] == ["Chloe"]
        assert [s["firstName"] for s in list_available_students(db_session, search="data")] == ["David"]

    def test_all_skills_required(self, db_session, make_student):
        make_student(first_name="Both", skills=["React", "Python"])
        make_student(first_name="One", skills=["React"])
        found = [s["firstName"] for s in list_available_students(db_session, skills="react,python")]
        assert found == ["Both"]

    def test_visibility_toggle(self, db_session, student):
        update_visibility(db_session, student, False)
        assert list_available_students(db_session) == []


class TestStats:
    def test_student_stats(self, db_session, student, interview_application, adoption_request):
        stats = get_student_stats(db_session, student)
        assert stats == {
            "totalApplications": 1,
            "applicationsByStatus": {"INTERVIEW": 1},
            "adoptionRequestsReceived": 1,
        }

    def test_company_stats(self, db_session, company, application, adoption_request):
        stats = get_company_stats(db_session, company)
        assert stats["totalOffers"] == 1
        assert stats["totalApplications"] == 1
        assert stats["applicationsByStatus"] == {str(ApplicationStatus.NEW): 1}
        assert stats["adoptionRequestsSent"] == 1

    def test_stats_require_profile(self, db_session, company, student):
        with pytest.raises(NotFoundError):
            get_student_stats(db_session, company)
        with pytest.raises(NotFoundError):
            get_company_stats(db_session, student)


class TestCompanyDirectory:
    def test_only_companies_with_offers(self, db_session, company, offer, make_company, make_offer):
        make_company(name="Empty")
        globex = make_company(name="Globex")
        make_offer(globex)
        make_offer(globex, title="Second")
        listing = list_companies_with_offers(db_session)
        assert [(c["name"], c["offerCount"]) for c in listing] == [("Acme", 1), ("Globex", 2)]

    def test_search(self, db_session, offer):
        assert list_companies_with_offers(db_session, search="acm")[0]["name"] == "Acme"
        assert list_companies_with_offers(db_session, search="zzz") == []
