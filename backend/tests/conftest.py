"""Shared test fixtures."""

import uuid

import pytest
from fastapi.testclient import TestClient

from adopte.adoption_requests.models import AdoptionRequest, AdoptionRequestStatus
from adopte.applications.models import Application, ApplicationStatus
from adopte.auth.models import Role, User
from adopte.auth.service import hash_password
from adopte.config import Settings
from adopte.database.base import create_db_engine, create_session_factory
from adopte.database.models import Base
from adopte.integrations.cache import LocalCacheService
from adopte.messaging.service import ensure_application_conversation, open_adoption_conversation
from adopte.offers.models import Offer
from adopte.profiles.models import CompanyProfile, StudentProfile
from adopte.skills.service import get_or_create_skills

PASSWORD = "secret-password"


@pytest.fixture
def db_session():
    """In-memory SQLite database with every table created.

    SQLite has no native UUID/enum types, but the models fall back to
    portable representations, which is enough for service logic.
    """
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def cache():
    return LocalCacheService()


def _make_user(db, role: Role, email: str | None = None, password: str | None = PASSWORD) -> User:
    user = User(
        id=uuid.uuid4(),
        email=email or f"{role.lower()}-{uuid.uuid4().hex[:8]}@example.com",
        password_hash=hash_password(password) if password else None,
        role=role,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def make_student(db_session):
    """Factory: a student user with a profile and optional skills."""

    def _make(email: str | None = None, skills: list[str] | None = None, **profile_fields) -> User:
        user = _make_user(db_session, Role.STUDENT, email)
        profile = StudentProfile(
            user_id=user.id,
            first_name=profile_fields.pop("first_name", "Alice"),
            last_name=profile_fields.pop("last_name", "Martin"),
            is_open_to_opportunities=profile_fields.pop("is_open_to_opportunities", True),
            is_cv_public=profile_fields.pop("is_cv_public", False),
            **profile_fields,
        )
        profile.skills = get_or_create_skills(db_session, skills or [])
        db_session.add(profile)
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_company(db_session):
    """Factory: a company user with a profile."""

    def _make(email: str | None = None, name: str = "Acme") -> User:
        user = _make_user(db_session, Role.COMPANY, email)
        db_session.add(CompanyProfile(user_id=user.id, name=name, contact_email=f"jobs@{name.lower()}.example"))
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_offer(db_session):
    """Factory: an offer owned by a company user."""

    def _make(company_user: User, title: str = "Backend intern", skills: list[str] | None = None, **fields) -> Offer:
        offer = Offer(
            company=company_user.company_profile,
            title=title,
            description=fields.pop("description", "Build and run our Python services."),
            location=fields.pop("location", "Paris"),
            **fields,
        )
        offer.skills = get_or_create_skills(db_session, skills or [])
        db_session.add(offer)
        db_session.commit()
        return offer

    return _make


@pytest.fixture
def student(make_student):
    return make_student(email="student@example.com", skills=["React"])


@pytest.fixture
def company(make_company):
    return make_company(email="company@example.com")


@pytest.fixture
def offer(make_offer, company):
    return make_offer(company, skills=["React", "Node.js"])


@pytest.fixture
def adoption_request(db_session, company, student):
    """A pending request with its conversation and seed message."""
    request = AdoptionRequest(
        company=company.company_profile,
        student=student,
        message="We would love to meet you.",
        status=AdoptionRequestStatus.PENDING,
    )
    db_session.add(request)
    db_session.flush()
    open_adoption_conversation(db_session, request, company.company_profile, request.message)
    db_session.commit()
    return request


@pytest.fixture
def application(db_session, student, offer):
    application = Application(student=student, offer=offer, status=ApplicationStatus.NEW)
    db_session.add(application)
    db_session.commit()
    return application


@pytest.fixture
def interview_application(db_session, application):
    """An application in INTERVIEW with its conversation opened."""
    application.status = ApplicationStatus.INTERVIEW
    ensure_application_conversation(db_session, application)
    db_session.commit()
    return application


# -- HTTP ----------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        database_url="sqlite://",
        redis_url="",
        run_migrations=False,
        rate_limit_enabled=False,
        secret_key="test-secret",
        jwt_secret="test-jwt-secret",
        admin_email="admin@example.com",
        admin_password="admin-password",
        log_dir=str(tmp_path / "logs"),
        google_client_id="",
        google_client_secret="",
    )


@pytest.fixture
def app(test_settings):
    from adopte.main import create_app

    application = create_app(test_settings)
    Base.metadata.create_all(bind=application.state.engine)
    return application


@pytest.fixture
def client_factory(app):
    """Factory for independent clients (separate cookie jars) on the same app."""
    clients = []

    def _make() -> TestClient:
        client = TestClient(app, raise_server_exceptions=False)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(client_factory):
    return client_factory()


def register(client: TestClient, role: str, email: str, **fields) -> dict:
    body = {"email": email, "password": PASSWORD, "role": role}
    if role == "STUDENT":
        body.update(firstName=fields.pop("firstName", "Alice"), lastName=fields.pop("lastName", "Martin"))
    else:
        body.update(name=fields.pop("name", "Acme"), contactEmail=fields.pop("contactEmail", "jobs@acme.example"))
    body.update(fields)
    response = client.post("/api/auth/register", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def login(client: TestClient, email: str, password: str = PASSWORD) -> None:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text


@pytest.fixture
def student_client(client_factory):
    """A logged-in student with skills {React}."""
    c = client_factory()
    c.user = register(c, "STUDENT", "alice@student.example")
    login(c, "alice@student.example")
    response = c.post("/api/profile", json={"firstName": "Alice", "lastName": "Martin", "skills": ["react"]})
    assert response.status_code == 200, response.text
    return c


@pytest.fixture
def company_client(client_factory):
    c = client_factory()
    c.user = register(c, "COMPANY", "hr@acme.example")
    login(c, "hr@acme.example")
    return c


@pytest.fixture
def admin_client(client_factory):
    c = client_factory()
    login(c, "admin@example.com", "admin-password")
    return c
