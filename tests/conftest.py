import pytest
from werkzeug.security import generate_password_hash

from app.portal import auth as auth_module
from app.portal import create_app
from app.portal.constants import ROLE_COORDINATOR, ROLE_LECTURER, ROLE_REGISTRY
from app.portal.db import db_session, session_scope
from app.portal.models import Base, User
from app.portal.modules.centers.models import Center, Department
from app.portal.session import UserSession

CSRF_TOKEN = "test-csrf-token"
PASSWORD = "password123"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CACHE_TYPE", "SimpleCache")
    auth_module._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        pw = generate_password_hash(PASSWORD)
        s.add_all(
            [
                User(id="reg", email="registry@example.com", name="Registry Admin", password_hash=pw, role=ROLE_REGISTRY),
                User(id="coord1", email="coord1@example.com", name="Coordinator One", password_hash=pw, role=ROLE_COORDINATOR),
                User(id="coord2", email="coord2@example.com", name="Coordinator Two", password_hash=pw, role=ROLE_COORDINATOR),
                User(id="coord3", email="coord3@example.com", name="Free Coordinator", password_hash=pw, role=ROLE_COORDINATOR),
            ]
        )
        s.flush()
        s.add_all(
            [
                Center(id="c1", name="Accra Center", coordinator_id="coord1"),
                Center(id="c2", name="Kumasi Center", coordinator_id="coord2"),
            ]
        )
        s.flush()
        s.add(Department(id="d1", name="Mathematics", center_id="c1"))
        s.flush()
        s.add_all(
            [
                User(
                    id="lect1",
                    email="lect1@example.com",
                    name="Lecturer One",
                    password_hash=pw,
                    role=ROLE_LECTURER,
                    lecturer_center_id="c1",
                    department_id="d1",
                ),
                User(
                    id="lect2",
                    email="lect2@example.com",
                    name="Lecturer Two",
                    password_hash=pw,
                    role=ROLE_LECTURER,
                    lecturer_center_id="c2",
                ),
                User(id="lect3", email="lect3@example.com", name="Unassigned Lecturer", password_hash=pw, role=ROLE_LECTURER),
            ]
        )

    return app


@pytest.fixture()
def client(app):
    c = app.test_client()
    with c.session_transaction() as sess:
        sess["csrf_token"] = CSRF_TOKEN
    return c


@pytest.fixture()
def s(app):
    """DB session inside an app context, for calling services directly."""
    with app.app_context():
        yield db_session()


SESSIONS = {
    "reg": UserSession("reg", ROLE_REGISTRY, "Registry Admin"),
    "coord1": UserSession("coord1", ROLE_COORDINATOR, "Coordinator One"),
    "coord2": UserSession("coord2", ROLE_COORDINATOR, "Coordinator Two"),
    "coord3": UserSession("coord3", ROLE_COORDINATOR, "Free Coordinator"),
    "lect1": UserSession("lect1", ROLE_LECTURER, "Lecturer One"),
    "lect2": UserSession("lect2", ROLE_LECTURER, "Lecturer Two"),
    "lect3": UserSession("lect3", ROLE_LECTURER, "Unassigned Lecturer"),
}


def login_as(client, app, user_id: str) -> UserSession:
    """Install a signed identity cookie without going through /login."""
    user_session = SESSIONS[user_id]
    value = app.extensions["session_codec"].encode(user_session)
    client.set_cookie(app.config["APP_SESSION_COOKIE_NAME"], value)
    return user_session


def form(**data):
    return {"csrf_token": CSRF_TOKEN, **data}


def teaching_payload(**overrides):
    payload = {
        "claim_type": "TEACHING",
        "teaching_date": "2026-03-02",
        "teaching_start_time": "09:00",
        "teaching_end_time": "11:00",
        "teaching_hours": "2",
    }
    payload.update(overrides)
    return payload
