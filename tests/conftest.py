"""Pytest configuration and fixtures."""
from typing import Any, Dict, Generator

import pytest
from flask import Flask
from flask.testing import FlaskClient

from journal_press.catalog import InMemoryCatalog
from journal_press.config import Config
from journal_press.library import CatalogService
from journal_press.models import CurrentUser, Issue, Journal
from journal_press.storage import LocalFileStorage
from journal_press.workflow import SubmissionWorkflow
from journal_web import create_app
from journal_web.database import User, db

TEST_SECRET = "test-secret-key"
PASSWORD = "correct-horse-battery"


# ----------------------------------------------------------------------
# Core fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def config() -> Config:
    """Defaults, with console-only logging."""
    return Config(SECRET_KEY=TEST_SECRET, LOG_DIR="")


@pytest.fixture
def store() -> InMemoryCatalog:
    return InMemoryCatalog()


@pytest.fixture
def admin() -> CurrentUser:
    return CurrentUser(id="admin-1", is_admin=True)


@pytest.fixture
def author() -> CurrentUser:
    return CurrentUser(id="author-1")


@pytest.fixture
def other_author() -> CurrentUser:
    return CurrentUser(id="author-2")


@pytest.fixture
def storage(tmp_path) -> LocalFileStorage:
    """File storage rooted in a temporary directory."""
    return LocalFileStorage(str(tmp_path / "files"), TEST_SECRET)


@pytest.fixture
def workflow(store, config) -> SubmissionWorkflow:
    return SubmissionWorkflow(store, config)


@pytest.fixture
def catalog(store, storage, config) -> CatalogService:
    return CatalogService(store, storage, config)


@pytest.fixture
def journal(catalog, admin) -> Journal:
    return catalog.create_journal(
        admin,
        title="Web of Medicine",
        slug="web-of-medicine",
        issn="1234-5678",
        editor_in_chief="Ada Editor",
    )


@pytest.fixture
def issue(catalog, admin, journal) -> Issue:
    return catalog.create_issue(
        admin, journal_id=journal.id, volume=3, issue_number=2, year=2024, is_current=True
    )


@pytest.fixture
def submission_fields(journal) -> Dict[str, Any]:
    """Valid arguments for SubmissionWorkflow.create_submission."""
    return {
        "journal_id": journal.id,
        "title": "Telemedicine in Rural Clinics",
        "abstract": "A study of remote consultations across twelve rural clinics.",
        "keywords": ["telemedicine", "rural health"],
        "authors": [
            {"name": "Jane A. Doe", "email": "jane@example.com", "affiliation": "Uni A"},
            {"name": "Bob Lee", "email": "bob@example.com"},
        ],
        "manuscript_ref": "manuscripts/author-1/paper.pdf",
    }


# ----------------------------------------------------------------------
# Web fixtures
# ----------------------------------------------------------------------

@pytest.fixture
def app(tmp_path) -> Generator[Flask, None, None]:
    """Flask app on in-memory SQLite with CSRF and rate limits off."""
    app_config = Config(
        SECRET_KEY=TEST_SECRET,
        DATABASE_URL="sqlite://",
        STORAGE_DIR=str(tmp_path / "uploads"),
        LOG_DIR="",
        LOG_LEVEL="WARNING",
    )
    app = create_app(app_config, TESTING=True, WTF_CSRF_ENABLED=False, RATELIMIT_ENABLED=False)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


def make_user(app: Flask, email: str, is_admin: bool = False) -> str:
    """Insert a user directly and return its id."""
    with app.app_context():
        user = User(email=email, full_name=email.split("@")[0], is_admin=is_admin)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id


def login(client: FlaskClient, email: str) -> None:
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.get_json()


@pytest.fixture
def create_user(app):
    """Factory: create_user(email, is_admin=False) -> user id."""
    def _create(email: str, is_admin: bool = False) -> str:
        return make_user(app, email, is_admin)
    return _create


@pytest.fixture
def client(app) -> FlaskClient:
    return app.test_client()


@pytest.fixture
def admin_client(app) -> FlaskClient:
    make_user(app, "editor@example.com", is_admin=True)
    client = app.test_client()
    login(client, "editor@example.com")
    return client


@pytest.fixture
def author_client(app) -> FlaskClient:
    make_user(app, "writer@example.com")
    client = app.test_client()
    login(client, "writer@example.com")
    return client


@pytest.fixture
def seeded(admin_client) -> Dict[str, Any]:
    """A journal with one current issue, created through the admin API."""
    journal = admin_client.post("/api/admin/journals", json={
        "title": "Web of Medicine",
        "slug": "web-of-medicine",
        "issn": "1234-5678",
    }).get_json()
    issue = admin_client.post("/api/admin/issues", json={
        "journal_id": journal["id"],
        "volume": 3,
        "issue_number": 2,
        "year": 2024,
        "is_current": True,
    }).get_json()
    return {"journal": journal, "issue": issue}
