from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import generate_password_hash

from app.portal.audit import record_event
from app.portal.cache import invalidate_center_views
from app.portal.constants import ROLE_COORDINATOR, ROLE_LECTURER, ROLE_REGISTRY
from app.portal.models import User
from app.portal.modules.centers.models import Center, Department
from app.portal.rbac import Denied, authorize, owns_center_param
from app.portal.schemas import (
    AssignDepartmentPayload,
    AssignLecturerPayload,
    CenterPayload,
    ChangeCoordinatorPayload,
    CreateLecturerPayload,
    DepartmentPayload,
    UpdateCenterPayload,
    validate_payload,
)
from app.portal.utils import ActionResult

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from app.portal.session import UserSession

logger = logging.getLogger(__name__)


def _registry_only(s: "Session", user_session: "UserSession | None") -> ActionResult | None:
    if isinstance(authorize(s, user_session, ROLE_REGISTRY), Denied):
        return ActionResult.fail("Unauthorized: Only the Registry can manage centers.")
    return None


def _center_coordinator_only(s: "Session", user_session: "UserSession | None", center_id: str) -> ActionResult | None:
    result = authorize(s, user_session, ROLE_COORDINATOR, owns_center_param, {"center_id": center_id})
    if isinstance(result, Denied):
        return ActionResult.fail("Unauthorized: You do not coordinate this center.")
    return None


def available_coordinators(s: "Session", *, keep_id: str | None = None) -> list[User]:
    """Coordinators that do not own a center yet (plus ``keep_id``, the current one)."""
    owned = s.query(Center.coordinator_id).filter(Center.coordinator_id.isnot(None))
    q = s.query(User).filter(User.role == ROLE_COORDINATOR, User.is_active.is_(True))
    if keep_id:
        q = q.filter((~User.id.in_(owned)) | (User.id == keep_id))
    else:
        q = q.filter(~User.id.in_(owned))
    return q.order_by(User.name, User.email).all()


def _free_coordinator(s: "Session", coordinator_id: str) -> User | None:
    user = s.get(User, coordinator_id)
    if not user or user.role != ROLE_COORDINATOR:
        return None
    if s.query(Center.id).filter(Center.coordinator_id == coordinator_id).first():
        return None
    return user


# ---------- Registry: centers ----------
def create_center(s: "Session", user_session: "UserSession | None", payload: dict[str, Any]) -> ActionResult:
    denied = _registry_only(s, user_session)
    if denied:
        return denied
    data, error = validate_payload(CenterPayload, payload)
    if error:
        return ActionResult.fail(error)

    if _free_coordinator(s, data.coordinator_id) is None:
        return ActionResult.fail("Selected coordinator is not available.")

    try:
        now = datetime.utcnow()
        center = Center(name=data.name, coordinator_id=data.coordinator_id, created_at=now, updated_at=now)
        s.add(center)
        s.flush()
        record_event(
            s,
            actor=user_session,
            action="center.create",
            entity_type="Center",
            entity_id=center.id,
            metadata={"name": center.name, "coordinator_id": center.coordinator_id},
        )
        s.commit()
    except IntegrityError:
        s.rollback()
        return ActionResult.fail(f'A center named "{data.name}" already exists.')
    except SQLAlchemyError:
        s.rollback()
        logger.exception("create_center failed name=%s", data.name)
        return ActionResult.fail("An internal error occurred while creating the center.")

    invalidate_center_views(center.id)
    return ActionResult.ok(f'Center "{center.name}" created successfully.', center_id=center.id)


def update_center(
    s: "Session", user_session: "UserSession | None", center_id: str, payload: dict[str, Any]
) -> ActionResult:
    denied = _registry_only(s, user_session)
    if denied:
        return denied
    data, error = validate_payload(UpdateCenterPayload, payload)
    if error:
        return ActionResult.fail(error)

    center = s.get(Center, center_id)
    if not center:
        return ActionResult.fail("Center not found.")

    old_name = center.name
    try:
        center.name = data.name
        center.updated_at = datetime.utcnow()
        record_event(
            s,
            actor=user_session,
            action="center.edit",
            entity_type="Center",
            entity_id=center.id,
            metadata={"changes": {"name": {"old": old_name, "new": data.name}}},
        )
        s.commit()
    except IntegrityError:
        s.rollback()
        return ActionResult.fail(f'A center named "{data.name}" already exists.')
    except SQLAlchemyError:
        s.rollback()
        logger.exception("update_center failed center_id=%s", center_id)
        return ActionResult.fail("An internal error occurred while updating the center.")

    invalidate_center_views(center_id)
    return ActionResult.ok("Center updated successfully.", center_id=center_id)


def change_center_coordinator(
    s: "Session", user_session: "UserSession | None", center_id: str, payload: dict[str, Any]
) -> ActionResult:
    denied = _registry_only(s, user_session)
    if denied:
        return denied
    data, error = validate_payload(ChangeCoordinatorPayload, payload)
    if error:
        return ActionResult.fail(error)

    center = s.get(Center, center_id)
    if not center:
        return ActionResult.fail("Center not found.")
    if center.coordinator_id == data.coordinator_id:
        return ActionResult.ok("This coordinator already manages the center.", center_id=center_id)
    if _free_coordinator(s, data.coordinator_id) is None:
        return ActionResult.fail("Selected coordinator is not available.")

    old = center.coordinator_id
    try:
        center.coordinator_id = data.coordinator_id
        center.updated_at = datetime.utcnow()
        record_event(
            s,
            actor=user_session,
            action="center.change_coordinator",
            entity_type="Center",
            entity_id=center.id,
            metadata={"old": old, "new": data.coordinator_id},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("change_center_coordinator failed center_id=%s", center_id)
        return ActionResult.fail("An internal error occurred while changing the coordinator.")

    invalidate_center_views(center_id)
    return ActionResult.ok("Coordinator changed successfully.", center_id=center_id)


def assign_lecturer_to_center(
    s: "Session", user_session: "UserSession | None", center_id: str, payload: dict[str, Any]
) -> ActionResult:
    denied = _registry_only(s, user_session)
    if denied:
        return denied
    data, error = validate_payload(AssignLecturerPayload, payload)
    if error:
        return ActionResult.fail(error)

    if not s.get(Center, center_id):
        return ActionResult.fail("Center not found.")
    lecturer = s.get(User, data.lecturer_id)
    if not lecturer or lecturer.role != ROLE_LECTURER:
        return ActionResult.fail("Lecturer not found.")
    if lecturer.lecturer_center_id == center_id:
        return ActionResult.ok("Lecturer is already assigned to this center.", user_id=lecturer.id)
    if lecturer.lecturer_center_id:
        return ActionResult.fail("Lecturer is assigned to another center. Unassign them first.")

    try:
        lecturer.lecturer_center_id = center_id
        lecturer.department_id = None
        record_event(
            s,
            actor=user_session,
            action="center.assign_lecturer",
            entity_type="User",
            entity_id=lecturer.id,
            metadata={"center_id": center_id},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("assign_lecturer_to_center failed lecturer_id=%s", data.lecturer_id)
        return ActionResult.fail("An internal error occurred while assigning the lecturer.")

    invalidate_center_views(center_id)
    return ActionResult.ok("Lecturer assigned to center successfully.", user_id=lecturer.id)


def unassign_lecturer_from_center(
    s: "Session", user_session: "UserSession | None", center_id: str, lecturer_id: str
) -> ActionResult:
    denied = _registry_only(s, user_session)
    if denied:
        return denied
    lecturer = (
        s.query(User)
        .filter(User.id == lecturer_id, User.role == ROLE_LECTURER, User.lecturer_center_id == center_id)
        .one_or_none()
    )
    if not lecturer:
        return ActionResult.fail("Lecturer not found or not assigned to this center.")

    try:
        lecturer.lecturer_center_id = None
        lecturer.department_id = None
        record_event(
            s,
            actor=user_session,
            action="center.unassign_lecturer",
            entity_type="User",
            entity_id=lecturer.id,
            metadata={"center_id": center_id},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("unassign_lecturer_from_center failed lecturer_id=%s", lecturer_id)
        return ActionResult.fail("An internal error occurred while unassigning the lecturer.")

    invalidate_center_views(center_id)
    return ActionResult.ok("Lecturer unassigned from center.", user_id=lecturer.id)


# ---------- Coordinator: departments ----------
def create_department(
    s: "Session", user_session: "UserSession | None", center_id: str, payload: dict[str, Any]
) -> ActionResult:
    denied = _center_coordinator_only(s, user_session, center_id)
    if denied:
        return denied
    data, error = validate_payload(DepartmentPayload, payload)
    if error:
        return ActionResult.fail(error)

    try:
        dept = Department(name=data.name, center_id=center_id)
        s.add(dept)
        s.flush()
        record_event(
            s,
            actor=user_session,
            action="department.create",
            entity_type="Department",
            entity_id=dept.id,
            metadata={"center_id": center_id, "name": dept.name},
        )
        s.commit()
    except IntegrityError:
        s.rollback()
        return ActionResult.fail(f'A department named "{data.name}" already exists in this center.')
    except SQLAlchemyError:
        s.rollback()
        logger.exception("create_department failed center_id=%s", center_id)
        return ActionResult.fail("An internal error occurred while creating the department.")

    invalidate_center_views(center_id)
    return ActionResult.ok(f'Department "{dept.name}" created successfully.', department_id=dept.id)


def _department_in(s: "Session", center_id: str, department_id: str) -> Department | None:
    return s.query(Department).filter(Department.id == department_id, Department.center_id == center_id).one_or_none()


def update_department(
    s: "Session", user_session: "UserSession | None", center_id: str, department_id: str, payload: dict[str, Any]
) -> ActionResult:
    denied = _center_coordinator_only(s, user_session, center_id)
    if denied:
        return denied
    data, error = validate_payload(DepartmentPayload, payload)
    if error:
        return ActionResult.fail(error)

    dept = _department_in(s, center_id, department_id)
    if not dept:
        return ActionResult.fail("Department not found in this center.")

    old_name = dept.name
    try:
        dept.name = data.name
        record_event(
            s,
            actor=user_session,
            action="department.edit",
            entity_type="Department",
            entity_id=dept.id,
            metadata={"changes": {"name": {"old": old_name, "new": data.name}}},
        )
        s.commit()
    except IntegrityError:
        s.rollback()
        return ActionResult.fail(f'A department named "{data.name}" already exists in this center.')
    except SQLAlchemyError:
        s.rollback()
        logger.exception("update_department failed department_id=%s", department_id)
        return ActionResult.fail("An internal error occurred while updating the department.")

    return ActionResult.ok("Department name updated successfully.", department_id=dept.id)


def delete_department(
    s: "Session", user_session: "UserSession | None", center_id: str, department_id: str
) -> ActionResult:
    denied = _center_coordinator_only(s, user_session, center_id)
    if denied:
        return denied
    dept = _department_in(s, center_id, department_id)
    if not dept:
        return ActionResult.fail("Department not found in this center.")

    name = dept.name
    try:
        unassigned = (
            s.query(User)
            .filter(User.department_id == department_id)
            .update({User.department_id: None}, synchronize_session="fetch")
        )
        s.delete(dept)
        record_event(
            s,
            actor=user_session,
            action="department.delete",
            entity_type="Department",
            entity_id=department_id,
            metadata={"center_id": center_id, "name": name, "unassigned_lecturers": unassigned},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("delete_department failed department_id=%s", department_id)
        return ActionResult.fail("An internal error occurred while deleting the department.")

    invalidate_center_views(center_id)
    return ActionResult.ok(f'Department "{name}" deleted successfully.')


def assign_lecturer_to_department(
    s: "Session", user_session: "UserSession | None", center_id: str, department_id: str, payload: dict[str, Any]
) -> ActionResult:
    denied = _center_coordinator_only(s, user_session, center_id)
    if denied:
        return denied
    data, error = validate_payload(AssignDepartmentPayload, payload)
    if error:
        return ActionResult.fail(error)

    if not _department_in(s, center_id, department_id):
        return ActionResult.fail("Department not found in this center.")
    lecturer = (
        s.query(User)
        .filter(User.id == data.lecturer_id, User.role == ROLE_LECTURER, User.lecturer_center_id == center_id)
        .one_or_none()
    )
    if not lecturer:
        return ActionResult.fail("Lecturer not found or not assigned to this center.")

    try:
        lecturer.department_id = department_id
        record_event(
            s,
            actor=user_session,
            action="department.assign_lecturer",
            entity_type="User",
            entity_id=lecturer.id,
            metadata={"center_id": center_id, "department_id": department_id},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("assign_lecturer_to_department failed lecturer_id=%s", data.lecturer_id)
        return ActionResult.fail("An internal error occurred while assigning the lecturer.")

    return ActionResult.ok("Lecturer assigned to department successfully.", user_id=lecturer.id)


def unassign_lecturer_from_department(
    s: "Session", user_session: "UserSession | None", center_id: str, lecturer_id: str
) -> ActionResult:
    denied = _center_coordinator_only(s, user_session, center_id)
    if denied:
        return denied
    lecturer = (
        s.query(User)
        .filter(User.id == lecturer_id, User.role == ROLE_LECTURER, User.lecturer_center_id == center_id)
        .one_or_none()
    )
    if not lecturer:
        return ActionResult.fail("Lecturer not found or not assigned to this center.")
    if not lecturer.department_id:
        return ActionResult.ok("Lecturer is not currently assigned to any department.", user_id=lecturer.id)

    old_department = lecturer.department_id
    try:
        lecturer.department_id = None
        record_event(
            s,
            actor=user_session,
            action="department.unassign_lecturer",
            entity_type="User",
            entity_id=lecturer.id,
            metadata={"center_id": center_id, "department_id": old_department},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("unassign_lecturer_from_department failed lecturer_id=%s", lecturer_id)
        return ActionResult.fail("An internal error occurred while unassigning the lecturer.")

    return ActionResult.ok("Lecturer unassigned from department successfully.", user_id=lecturer.id)


def create_lecturer_for_center(
    s: "Session", user_session: "UserSession | None", center_id: str, payload: dict[str, Any]
) -> ActionResult:
    denied = _center_coordinator_only(s, user_session, center_id)
    if denied:
        return denied
    data, error = validate_payload(CreateLecturerPayload, payload)
    if error:
        return ActionResult.fail(error)

    if data.department_id and not _department_in(s, center_id, data.department_id):
        return ActionResult.fail("Selected department does not belong to this center.")
    if s.query(User.id).filter(User.email == data.email).first():
        return ActionResult.fail(f"A user with the email {data.email} already exists.")

    try:
        user = User(
            email=data.email,
            name=data.name,
            password_hash=generate_password_hash(data.password),
            role=ROLE_LECTURER,
            is_active=True,
            lecturer_center_id=center_id,
            department_id=data.department_id,
        )
        s.add(user)
        s.flush()
        record_event(
            s,
            actor=user_session,
            action="user.create_lecturer",
            entity_type="User",
            entity_id=user.id,
            metadata={"email": user.email, "center_id": center_id, "department_id": data.department_id},
        )
        s.commit()
    except IntegrityError:
        s.rollback()
        return ActionResult.fail(f"A user with the email {data.email} already exists.")
    except SQLAlchemyError:
        s.rollback()
        logger.exception("create_lecturer_for_center failed center_id=%s", center_id)
        return ActionResult.fail("An internal error occurred while creating the lecturer.")

    invalidate_center_views(center_id)
    return ActionResult.ok(f"Lecturer {user.email} created successfully.", user_id=user.id)
