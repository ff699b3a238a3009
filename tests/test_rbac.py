from app.portal.constants import ROLE_COORDINATOR, ROLE_LECTURER, ROLE_REGISTRY
from app.portal.rbac import (
    REASON_NO_SESSION,
    REASON_NOT_FOUND,
    REASON_OWNERSHIP_MISMATCH,
    REASON_ROLE_MISMATCH,
    Allowed,
    Denied,
    assigned_to_center_param,
    authorize,
    center_param_exists,
    owns_center_param,
)

from tests.conftest import SESSIONS, login_as


def test_authorize_without_session(s):
    assert authorize(s, None, ROLE_REGISTRY) == Denied(REASON_NO_SESSION)


def test_authorize_role_mismatch(s):
    assert authorize(s, SESSIONS["lect1"], ROLE_REGISTRY) == Denied(REASON_ROLE_MISMATCH)


def test_authorize_ownership(s):
    params = {"center_id": "c1"}
    assert authorize(s, SESSIONS["coord1"], ROLE_COORDINATOR, owns_center_param, params) == Allowed(SESSIONS["coord1"])
    assert authorize(s, SESSIONS["coord2"], ROLE_COORDINATOR, owns_center_param, params) == Denied(
        REASON_OWNERSHIP_MISMATCH
    )
    assert isinstance(authorize(s, SESSIONS["lect1"], ROLE_LECTURER, assigned_to_center_param, params), Allowed)
    assert isinstance(authorize(s, SESSIONS["lect2"], ROLE_LECTURER, assigned_to_center_param, params), Denied)


def test_authorize_registry_center_lookup(s):
    result = authorize(
        s, SESSIONS["reg"], ROLE_REGISTRY, center_param_exists, {"center_id": "missing"}, deny_reason=REASON_NOT_FOUND
    )
    assert result == Denied(REASON_NOT_FOUND)


def _redirects_to(r, path):
    return r.status_code == 302 and r.headers["Location"].endswith(path)


def test_coordinator_cannot_open_other_center(client, app):
    login_as(client, app, "coord1")
    assert client.get("/coordinator/c1").status_code == 200
    assert _redirects_to(client.get("/coordinator/c2"), "/dashboard")
    assert _redirects_to(client.get("/coordinator/c2/claims"), "/dashboard")


def test_coordinator_landing_redirects_to_own_center(client, app):
    login_as(client, app, "coord1")
    assert _redirects_to(client.get("/coordinator/"), "/coordinator/c1")


def test_coordinator_without_center_goes_to_dashboard(client, app):
    login_as(client, app, "coord3")
    assert _redirects_to(client.get("/coordinator/"), "/dashboard")


def test_lecturer_cannot_open_other_center(client, app):
    login_as(client, app, "lect1")
    assert client.get("/lecturer/c1").status_code == 200
    assert _redirects_to(client.get("/lecturer/c2"), "/dashboard")


def test_wrong_role_is_sent_to_dashboard(client, app):
    login_as(client, app, "lect1")
    assert _redirects_to(client.get("/registry/"), "/dashboard")
    assert _redirects_to(client.get("/coordinator/c1"), "/dashboard")


def test_registry_unknown_center_looks_like_forbidden(client, app):
    login_as(client, app, "reg")
    assert client.get("/registry/centers/c1").status_code == 200
    assert _redirects_to(client.get("/registry/centers/nope"), "/dashboard")


def test_coordinator_cannot_manage_other_center_departments(client, app):
    login_as(client, app, "coord2")
    assert _redirects_to(client.get("/coordinator/c1/departments"), "/dashboard")
