from app.portal.db import db_session
from app.portal.models import AuditEvent, User

from tests.conftest import PASSWORD, form, login_as


def test_health_ok(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json["ok"] is True


def test_login_sets_signed_cookie(client, app):
    r = client.post("/login", data={"email": "coord1@example.com", "password": PASSWORD})
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")
    cookie = client.get_cookie("app_session")
    assert cookie is not None
    user_session = app.extensions["session_codec"].decode(cookie.value)
    assert (user_session.user_id, user_session.role) == ("coord1", "COORDINATOR")

    r = client.get("/dashboard")
    assert r.status_code == 200
    assert b"Accra Center" in r.data


def test_login_failure_is_generic(client, app):
    r = client.post("/login", data={"email": "coord1@example.com", "password": "wrong"}, follow_redirects=True)
    assert b"Invalid email or password." in r.data
    r = client.post("/login", data={"email": "ghost@example.com", "password": "wrong"}, follow_redirects=True)
    assert b"Invalid email or password." in r.data
    assert client.get_cookie("app_session") is None
    with app.app_context():
        assert db_session().query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").count() == 2


def test_login_rate_limit(client):
    for _ in range(5):
        client.post("/login", data={"email": "coord1@example.com", "password": "wrong"})
    r = client.post("/login", data={"email": "coord1@example.com", "password": PASSWORD}, follow_redirects=True)
    assert b"Too many login attempts" in r.data


def test_signup_creates_unassigned_lecturer(client, app):
    r = client.post(
        "/signup", data={"name": "Fresh Face", "email": "fresh@example.com", "password": "password123"}
    )
    assert r.headers["Location"].endswith("/login")
    with app.app_context():
        user = db_session().query(User).filter(User.email == "fresh@example.com").one()
        assert user.role == "LECTURER"
        assert user.lecturer_center_id is None

    r = client.post("/signup", data={"name": "Dup", "email": "fresh@example.com", "password": "password123"})
    assert r.headers["Location"].endswith("/signup")


def test_logout_clears_cookie(client, app):
    login_as(client, app, "reg")
    r = client.post("/logout", data=form())
    assert r.headers["Location"].endswith("/login")
    assert client.get_cookie("app_session") is None


def test_dashboard_per_role(client, app):
    login_as(client, app, "reg")
    r = client.get("/dashboard")
    assert b"Centers: 2" in r.data

    login_as(client, app, "lect3")
    r = client.get("/dashboard")
    assert b"You are not assigned to a Center yet" in r.data

    login_as(client, app, "coord3")
    r = client.get("/dashboard")
    assert b"not assigned to a Center" in r.data
