from app.portal.models import User
from app.portal.modules.centers.models import Center, Department
from app.portal.modules.centers.service import (
    assign_lecturer_to_center,
    assign_lecturer_to_department,
    available_coordinators,
    change_center_coordinator,
    create_center,
    create_department,
    create_lecturer_for_center,
    delete_department,
    unassign_lecturer_from_center,
    unassign_lecturer_from_department,
    update_center,
    update_department,
)

from tests.conftest import SESSIONS, form, login_as

REG = SESSIONS["reg"]
COORD1 = SESSIONS["coord1"]


# ---------- registry ----------
def test_create_center_with_free_coordinator(s):
    result = create_center(s, REG, {"name": "Takoradi Center", "coordinator_id": "coord3"})
    assert result.success, result.message
    center = s.get(Center, result.center_id)
    assert center.coordinator_id == "coord3"


def test_create_center_rejects_busy_coordinator(s):
    result = create_center(s, REG, {"name": "Takoradi Center", "coordinator_id": "coord1"})
    assert result.message == "Selected coordinator is not available."
    result = create_center(s, REG, {"name": "Takoradi Center", "coordinator_id": "lect3"})
    assert result.message == "Selected coordinator is not available."


def test_create_center_duplicate_name(s):
    result = create_center(s, REG, {"name": "Accra Center", "coordinator_id": "coord3"})
    assert result.message == 'A center named "Accra Center" already exists.'


def test_center_actions_are_registry_only(s):
    result = create_center(s, COORD1, {"name": "Takoradi Center", "coordinator_id": "coord3"})
    assert result.message == "Unauthorized: Only the Registry can manage centers."
    assert update_center(s, SESSIONS["lect1"], "c1", {"name": "Renamed"}).success is False


def test_update_center(s):
    assert update_center(s, REG, "c1", {"name": "Accra Main"}).success
    assert update_center(s, REG, "nope", {"name": "Whatever"}).message == "Center not found."
    assert update_center(s, REG, "c2", {"name": "Accra Main"}).message == 'A center named "Accra Main" already exists.'


def test_change_coordinator(s):
    assert [u.id for u in available_coordinators(s)] == ["coord3"]
    assert change_center_coordinator(s, REG, "c1", {"coordinator_id": "coord2"}).message == (
        "Selected coordinator is not available."
    )
    assert change_center_coordinator(s, REG, "c1", {"coordinator_id": "coord1"}).message == (
        "This coordinator already manages the center."
    )
    assert change_center_coordinator(s, REG, "c1", {"coordinator_id": "coord3"}).success
    s.expire_all()
    assert s.get(Center, "c1").coordinator_id == "coord3"
    assert [u.id for u in available_coordinators(s)] == ["coord1"]


def test_assign_and_unassign_lecturer(s):
    assert assign_lecturer_to_center(s, REG, "c1", {"lecturer_id": "lect3"}).success
    assert assign_lecturer_to_center(s, REG, "c1", {"lecturer_id": "lect2"}).message == (
        "Lecturer is assigned to another center. Unassign them first."
    )
    assert assign_lecturer_to_center(s, REG, "c1", {"lecturer_id": "coord3"}).message == "Lecturer not found."

    assert unassign_lecturer_from_center(s, REG, "c1", "lect1").success
    s.expire_all()
    lect1 = s.get(User, "lect1")
    assert lect1.lecturer_center_id is None
    assert lect1.department_id is None
    assert s.get(User, "lect3").lecturer_center_id == "c1"


# ---------- coordinator ----------
def test_department_lifecycle(s):
    result = create_department(s, COORD1, "c1", {"name": "Physics"})
    assert result.success
    dept_id = result.department_id
    assert create_department(s, COORD1, "c1", {"name": "Physics"}).message == (
        'A department named "Physics" already exists in this center.'
    )
    assert update_department(s, COORD1, "c1", dept_id, {"name": "Applied Physics"}).success
    assert update_department(s, COORD1, "c1", "d-missing", {"name": "X-ray"}).message == (
        "Department not found in this center."
    )
    assert delete_department(s, COORD1, "c1", dept_id).success
    assert s.get(Department, dept_id) is None


def test_delete_department_unassigns_lecturers(s):
    assert delete_department(s, COORD1, "c1", "d1").success
    s.expire_all()
    lect1 = s.get(User, "lect1")
    assert lect1.department_id is None
    assert lect1.lecturer_center_id == "c1"


def test_coordinator_limited_to_own_center(s):
    coord2 = SESSIONS["coord2"]
    assert create_department(s, coord2, "c1", {"name": "Chemistry"}).message == (
        "Unauthorized: You do not coordinate this center."
    )
    assert delete_department(s, coord2, "c1", "d1").success is False
    assert s.get(Department, "d1") is not None


def test_department_membership(s):
    assert unassign_lecturer_from_department(s, COORD1, "c1", "lect1").success
    assert unassign_lecturer_from_department(s, COORD1, "c1", "lect1").message == (
        "Lecturer is not currently assigned to any department."
    )
    assert assign_lecturer_to_department(s, COORD1, "c1", "d1", {"lecturer_id": "lect1"}).success
    assert assign_lecturer_to_department(s, COORD1, "c1", "d1", {"lecturer_id": "lect2"}).message == (
        "Lecturer not found or not assigned to this center."
    )


def test_create_lecturer_for_center(s):
    payload = {"name": "New Lecturer", "email": "New@Example.com", "password": "password123", "department_id": "d1"}
    result = create_lecturer_for_center(s, COORD1, "c1", payload)
    assert result.success, result.message
    user = s.get(User, result.user_id)
    assert user.email == "new@example.com"
    assert (user.role, user.lecturer_center_id, user.department_id) == ("LECTURER", "c1", "d1")

    assert create_lecturer_for_center(s, COORD1, "c1", payload).message == (
        "A user with the email new@example.com already exists."
    )
    payload = {"email": "other@example.com", "password": "password123", "department_id": "d-elsewhere"}
    assert create_lecturer_for_center(s, COORD1, "c1", payload).message == (
        "Selected department does not belong to this center."
    )


# ---------- through the views ----------
def test_registry_creates_center_via_form(app, client):
    login_as(client, app, "reg")
    r = client.post("/registry/centers/new", data=form(name="Ho Center", coordinator_id="coord3"))
    assert r.status_code == 302
    r = client.get(r.headers["Location"])
    assert b"Ho Center" in r.data


def test_coordinator_manages_departments_via_form(app, client):
    login_as(client, app, "coord1")
    r = client.post("/coordinator/c1/departments/new", data=form(name="Geography"), follow_redirects=True)
    assert b"Geography" in r.data
    r = client.post("/coordinator/c2/departments/new", data=form(name="Geography"))
    assert r.headers["Location"].endswith("/dashboard")
