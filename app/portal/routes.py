from __future__ import annotations

from typing import Any

from flask import Blueprint, g, redirect, render_template
from sqlalchemy.orm import Session

from app.portal.cache import cache, center_dashboard_key, lecturer_dashboard_key, registry_dashboard_key
from app.portal.constants import (
    CLAIM_PENDING,
    LOGIN_PATH,
    ROLE_COORDINATOR,
    ROLE_LANDING_PATHS,
    ROLE_LECTURER,
    ROLE_REGISTRY,
)
from app.portal.db import db_session
from app.portal.models import User
from app.portal.modules.centers.models import Center, Department
from app.portal.modules.claims.models import Claim
from app.portal.modules.claims.service import status_counts
from app.portal.session import UserSession

bp = Blueprint("routes", __name__)


@bp.get("/")
def index():
    return render_template("public/index.html")


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """Liveness probe. No DB access."""
    return "ok", 200


def _registry_stats(s: Session) -> dict[str, Any]:
    stats = cache.get(registry_dashboard_key())
    if stats is None:
        stats = {
            "center_count": s.query(Center).count(),
            "coordinator_count": s.query(User).filter(User.role == ROLE_COORDINATOR).count(),
            "lecturer_count": s.query(User).filter(User.role == ROLE_LECTURER).count(),
            "pending_claims": s.query(Claim).filter(Claim.status == CLAIM_PENDING).count(),
        }
        cache.set(registry_dashboard_key(), stats)
    return stats


def _coordinator_stats(s: Session, center: Center) -> dict[str, Any]:
    key = center_dashboard_key(center.id)
    stats = cache.get(key)
    if stats is None:
        stats = {
            "pending_claims": s.query(Claim).filter(Claim.center_id == center.id, Claim.status == CLAIM_PENDING).count(),
            "department_count": s.query(Department).filter(Department.center_id == center.id).count(),
            "lecturer_count": s.query(User).filter(User.lecturer_center_id == center.id).count(),
        }
        cache.set(key, stats)
    return stats


def _lecturer_stats(s: Session, lecturer_id: str) -> dict[str, Any]:
    key = lecturer_dashboard_key(lecturer_id)
    stats = cache.get(key)
    if stats is None:
        stats = status_counts(s, Claim.submitted_by_id == lecturer_id)
        cache.set(key, stats)
    return stats


@bp.get("/dashboard")
def dashboard():
    user_session: UserSession | None = g.get("user_session")
    if user_session is None:
        return redirect(LOGIN_PATH)

    s = db_session()
    center = None
    assignment_error = None
    stats: dict[str, Any] = {}

    if user_session.role == ROLE_REGISTRY:
        stats = _registry_stats(s)
    elif user_session.role == ROLE_COORDINATOR:
        center = s.query(Center).filter(Center.coordinator_id == user_session.user_id).one_or_none()
        if center:
            stats = _coordinator_stats(s, center)
        else:
            assignment_error = (
                "You are registered as a Coordinator, but not assigned to a Center. Please contact the Registry."
            )
    elif user_session.role == ROLE_LECTURER:
        user = s.get(User, user_session.user_id)
        center = user.lecturer_center if user else None
        if center:
            stats = _lecturer_stats(s, user_session.user_id)
        else:
            assignment_error = "You are not assigned to a Center yet. Please contact the Registry or your Coordinator."

    return render_template(
        "dashboard.html",
        user_session=user_session,
        center=center,
        stats=stats,
        assignment_error=assignment_error,
        landing_path=ROLE_LANDING_PATHS.get(user_session.role, "/dashboard"),
    )
