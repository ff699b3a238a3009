from app.portal.db import session_scope
from app.portal.models import User

from tests.conftest import login_as


def test_me_without_cookie(client):
    r = client.get("/api/user/me")
    assert r.status_code == 401
    assert r.json == {"message": "Unauthorized"}


def test_me_with_invalid_cookie(client):
    client.set_cookie("app_session", "tampered")
    r = client.get("/api/user/me")
    assert r.status_code == 401
    assert r.json == {"message": "Invalid session"}
    assert client.get_cookie("app_session") is None


def test_me_returns_profile(client, app):
    login_as(client, app, "lect1")
    r = client.get("/api/user/me")
    assert r.status_code == 200
    assert r.json == {"id": "lect1", "name": "Lecturer One", "email": "lect1@example.com", "role": "LECTURER"}


def test_me_for_deleted_user(client, app):
    login_as(client, app, "lect3")
    with session_scope(app) as s:
        s.delete(s.get(User, "lect3"))
    r = client.get("/api/user/me")
    assert r.status_code == 401
    assert r.json == {"message": "Unauthorized: User not found"}
    assert client.get_cookie("app_session") is None
