"""
Role + ownership authorization.

Every protected page and every mutating action runs the same two-stage check:

1. role match: the session's role equals the role the resource requires
2. ownership match: a point lookup confirms the session's user is bound to the
   requested resource (e.g. ``Center.coordinator_id == user_id``)

Pages collapse every denial except "no session" into a redirect to the
dashboard so forbidden and not-found look the same from outside.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import Any

from flask import g, redirect, request
from sqlalchemy.orm import Session

from app.portal.constants import DASHBOARD_PATH, LOGIN_PATH, ROLE_LECTURER
from app.portal.db import db_session
from app.portal.models import User
from app.portal.modules.centers.models import Center, Department
from app.portal.session import UserSession

logger = logging.getLogger(__name__)

REASON_NO_SESSION = "no-session"
REASON_ROLE_MISMATCH = "role-mismatch"
REASON_OWNERSHIP_MISMATCH = "ownership-mismatch"
REASON_NOT_FOUND = "not-found"

# (db session, user session, view/route params) -> bound?
OwnershipCheck = Callable[[Session, UserSession, dict[str, Any]], bool]


@dataclass(frozen=True)
class Allowed:
    session: UserSession
    allowed = True


@dataclass(frozen=True)
class Denied:
    reason: str
    allowed = False


AuthzResult = Allowed | Denied


# ---------- Ownership queries ----------
def coordinator_owns_center(s: Session, user_id: str, center_id: str) -> bool:
    row = s.query(Center.id).filter(Center.id == center_id, Center.coordinator_id == user_id).first()
    return row is not None


def lecturer_in_center(s: Session, user_id: str, center_id: str) -> bool:
    row = (
        s.query(User.id)
        .filter(User.id == user_id, User.role == ROLE_LECTURER, User.lecturer_center_id == center_id)
        .first()
    )
    return row is not None


def center_exists(s: Session, center_id: str) -> bool:
    return s.query(Center.id).filter(Center.id == center_id).first() is not None


def department_in_center(s: Session, department_id: str, center_id: str) -> bool:
    row = s.query(Department.id).filter(Department.id == department_id, Department.center_id == center_id).first()
    return row is not None


# Adapters reading the ``center_id`` route parameter
def owns_center_param(s: Session, session: UserSession, params: dict[str, Any]) -> bool:
    return coordinator_owns_center(s, session.user_id, params["center_id"])


def assigned_to_center_param(s: Session, session: UserSession, params: dict[str, Any]) -> bool:
    return lecturer_in_center(s, session.user_id, params["center_id"])


def center_param_exists(s: Session, _session: UserSession, params: dict[str, Any]) -> bool:
    return center_exists(s, params["center_id"])


def authorize(
    s: Session,
    session: UserSession | None,
    required_role: str,
    ownership: OwnershipCheck | None = None,
    params: dict[str, Any] | None = None,
    *,
    deny_reason: str = REASON_OWNERSHIP_MISMATCH,
) -> AuthzResult:
    if session is None:
        return Denied(REASON_NO_SESSION)
    if session.role != required_role:
        return Denied(REASON_ROLE_MISMATCH)
    if ownership is not None and not ownership(s, session, params or {}):
        return Denied(deny_reason)
    return Allowed(session)


def require_access(
    required_role: str,
    ownership: OwnershipCheck | None = None,
    *,
    deny_reason: str = REASON_OWNERSHIP_MISMATCH,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    View decorator. Injects the verified session as ``user_session``.
    """

    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            session: UserSession | None = getattr(g, "user_session", None)
            result = authorize(db_session(), session, required_role, ownership, kwargs, deny_reason=deny_reason)
            if isinstance(result, Denied):
                if result.reason == REASON_NO_SESSION:
                    return redirect(LOGIN_PATH)
                logger.info(
                    "Access denied: path=%s role=%s required=%s reason=%s request_id=%s",
                    request.path,
                    session.role if session else None,
                    required_role,
                    result.reason,
                    getattr(g, "request_id", None),
                )
                return redirect(DASHBOARD_PATH)
            return fn(*args, user_session=result.session, **kwargs)

        return wrapped

    return decorator
