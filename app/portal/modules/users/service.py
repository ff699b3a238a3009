from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from app.portal.audit import record_event
from app.portal.cache import invalidate_center_views
from app.portal.constants import ROLE_LECTURER, ROLE_REGISTRY
from app.portal.models import User
from app.portal.rbac import Denied, authorize
from app.portal.schemas import CreateUserPayload, LoginPayload, SignupPayload, validate_payload
from app.portal.session import UserSession
from app.portal.utils import ActionResult

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


def session_for(user: User) -> UserSession:
    return UserSession(user_id=user.id, role=user.role, name=user.name)


def authenticate(s: "Session", payload: dict[str, Any]) -> tuple[User | None, str | None]:
    """
    Returns ``(user, None)`` on success. Unknown email and wrong password share one message.
    """
    data, error = validate_payload(LoginPayload, payload)
    if error:
        return None, "Invalid input provided."
    user = s.query(User).filter(User.email == data.email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, data.password):
        return None, "Invalid email or password."
    return user, None


def signup_user(s: "Session", payload: dict[str, Any]) -> ActionResult:
    """Self-service signup. New accounts are unassigned lecturers."""
    data, error = validate_payload(SignupPayload, payload)
    if error:
        return ActionResult.fail(error)
    if s.query(User.id).filter(User.email == data.email).first():
        return ActionResult.fail("An account with this email already exists.")

    try:
        user = User(
            email=data.email,
            name=data.name,
            password_hash=generate_password_hash(data.password),
            role=ROLE_LECTURER,
            is_active=True,
        )
        s.add(user)
        s.flush()
        record_event(s, actor=None, action="auth.signup", entity_type="User", entity_id=user.id)
        s.commit()
    except IntegrityError:
        s.rollback()
        return ActionResult.fail("An account with this email already exists.")
    except SQLAlchemyError:
        s.rollback()
        logger.exception("signup_user failed email=%s", data.email)
        return ActionResult.fail("An internal error occurred during signup. Please try again.")

    invalidate_center_views()
    return ActionResult.ok(
        "Account created successfully! Please log in. "
        "You will need to be assigned to a center by an administrator.",
        user_id=user.id,
    )


def create_user(s: "Session", user_session: UserSession | None, payload: dict[str, Any]) -> ActionResult:
    if isinstance(authorize(s, user_session, ROLE_REGISTRY), Denied):
        return ActionResult.fail("Unauthorized: Only the Registry can create users.")
    data, error = validate_payload(CreateUserPayload, payload)
    if error:
        return ActionResult.fail(error)
    if s.query(User.id).filter(User.email == data.email).first():
        return ActionResult.fail(f"A user with the email {data.email} already exists.")

    try:
        user = User(
            email=data.email,
            name=data.name,
            password_hash=generate_password_hash(data.password),
            role=data.role,
            is_active=True,
        )
        s.add(user)
        s.flush()
        record_event(
            s,
            actor=user_session,
            action="user.create",
            entity_type="User",
            entity_id=user.id,
            metadata={"email": user.email, "role": user.role},
        )
        s.commit()
    except IntegrityError:
        s.rollback()
        return ActionResult.fail(f"A user with the email {data.email} already exists.")
    except SQLAlchemyError:
        s.rollback()
        logger.exception("create_user failed email=%s", data.email)
        return ActionResult.fail("An internal error occurred while creating the user.")

    invalidate_center_views()
    return ActionResult.ok(f"User {user.email} created successfully.", user_id=user.id)
