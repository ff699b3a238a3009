import pytest

from app.portal.guard import evaluate, is_guarded_path, is_public_path
from app.portal.session import SessionCodec, UserSession

from tests.conftest import login_as

CODEC = SessionCodec("k")
VALID = CODEC.encode(UserSession("u1", "LECTURER", "Ama"))


def _cleared(resp, name="app_session"):
    return any(h.startswith(f"{name}=;") for h in resp.headers.getlist("Set-Cookie"))


@pytest.mark.parametrize(
    "path,cookie,redirect_to,clear",
    [
        ("/login", VALID, "/dashboard", False),
        ("/signup", VALID, "/dashboard", False),
        ("/login", "garbage", None, True),
        ("/login", None, None, False),
        ("/dashboard", None, "/login", False),
        ("/dashboard", "garbage", "/login", True),
        ("/dashboard", VALID, None, False),
        ("/coordinator/abc/claims", VALID, None, False),
    ],
)
def test_evaluate_decisions(path, cookie, redirect_to, clear):
    decision = evaluate(path, cookie, CODEC)
    assert decision.redirect_to == redirect_to
    assert decision.clear_cookie is clear
    assert decision.allowed is (redirect_to is None)


def test_evaluate_exposes_session():
    assert evaluate("/dashboard", VALID, CODEC).session == UserSession("u1", "LECTURER", "Ama")


def test_path_classification():
    assert is_public_path("/login")
    assert is_public_path("/signup")
    assert not is_public_path("/dashboard")
    assert not is_guarded_path("/")
    assert not is_guarded_path("/api/user/me")
    assert not is_guarded_path("/static/app.css")
    assert not is_guarded_path("/health")
    assert is_guarded_path("/registry/centers")


def test_protected_page_without_cookie_redirects_to_login(client):
    r = client.get("/dashboard")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")


def test_protected_page_with_forged_cookie_clears_it(client):
    client.set_cookie("app_session", "forged.value.here")
    r = client.get("/registry/")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/login")
    assert _cleared(r)


def test_login_page_with_valid_cookie_redirects_to_dashboard(client, app):
    login_as(client, app, "lect1")
    r = client.get("/login")
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/dashboard")


def test_login_page_with_stale_cookie_renders_and_clears(client):
    client.set_cookie("app_session", "stale")
    r = client.get("/login")
    assert r.status_code == 200
    assert _cleared(r)


def test_unguarded_paths_skip_the_guard(client):
    assert client.get("/").status_code == 200
    assert client.get("/health").status_code == 200
    assert client.get("/healthz").status_code == 200
