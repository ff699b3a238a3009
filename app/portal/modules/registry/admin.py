from __future__ import annotations

from typing import Any

from flask import Blueprint, flash, redirect, render_template, request, url_for
from sqlalchemy.orm import Session

from app.portal.constants import CLAIM_STATUSES, ROLE_COORDINATOR, ROLE_LECTURER, ROLE_REGISTRY, ROLES
from app.portal.db import db_session
from app.portal.models import User
from app.portal.modules.centers.models import Center
from app.portal.modules.centers.service import (
    assign_lecturer_to_center,
    available_coordinators,
    change_center_coordinator,
    create_center,
    unassign_lecturer_from_center,
    update_center,
)
from app.portal.modules.claims.models import Claim
from app.portal.modules.claims.service import CLAIM_TYPE_LABELS, center_claim_rows, filter_claim_rows
from app.portal.modules.users.service import create_user
from app.portal.rbac import REASON_NOT_FOUND, center_param_exists, require_access
from app.portal.session import UserSession
from app.portal.utils import form_payload

bp = Blueprint("registry", __name__)


def _claim_in_center(s: Session, session: UserSession, params: dict[str, Any]) -> bool:
    row = s.query(Claim.id).filter(Claim.id == params["claim_id"], Claim.center_id == params["center_id"]).first()
    return row is not None


@bp.get("/")
@require_access(ROLE_REGISTRY)
def overview(user_session: UserSession):
    s = db_session()
    centers = s.query(Center).order_by(Center.created_at.desc()).limit(5).all()
    unassigned = (
        s.query(User)
        .filter(User.role == ROLE_LECTURER, User.lecturer_center_id.is_(None))
        .order_by(User.created_at.desc())
        .all()
    )
    return render_template("registry/overview.html", recent_centers=centers, unassigned_lecturers=unassigned)


# ---------- Centers ----------
@bp.get("/centers")
@require_access(ROLE_REGISTRY)
def centers_list(user_session: UserSession):
    s = db_session()
    centers = s.query(Center).order_by(Center.name).all()
    return render_template("registry/centers_list.html", centers=centers)


@bp.get("/centers/new")
@require_access(ROLE_REGISTRY)
def center_new(user_session: UserSession):
    s = db_session()
    return render_template("registry/center_new.html", coordinators=available_coordinators(s))


@bp.post("/centers/new")
@require_access(ROLE_REGISTRY)
def center_create(user_session: UserSession):
    s = db_session()
    result = create_center(s, user_session, form_payload(request.form, "name", "coordinator_id"))
    flash(result.message, result.flash_category)
    if not result.success:
        return redirect(url_for("registry.center_new"))
    return redirect(url_for("registry.center_detail", center_id=result.center_id))


@bp.get("/centers/<center_id>")
@require_access(ROLE_REGISTRY, center_param_exists, deny_reason=REASON_NOT_FOUND)
def center_detail(center_id: str, user_session: UserSession):
    s = db_session()
    center = s.get(Center, center_id)
    return render_template(
        "registry/center_detail.html",
        center=center,
        coordinators=available_coordinators(s, keep_id=center.coordinator_id),
    )


@bp.post("/centers/<center_id>/edit")
@require_access(ROLE_REGISTRY, center_param_exists, deny_reason=REASON_NOT_FOUND)
def center_edit(center_id: str, user_session: UserSession):
    s = db_session()
    result = update_center(s, user_session, center_id, form_payload(request.form, "name"))
    flash(result.message, result.flash_category)
    return redirect(url_for("registry.center_detail", center_id=center_id))


@bp.post("/centers/<center_id>/coordinator")
@require_access(ROLE_REGISTRY, center_param_exists, deny_reason=REASON_NOT_FOUND)
def center_change_coordinator(center_id: str, user_session: UserSession):
    s = db_session()
    result = change_center_coordinator(s, user_session, center_id, form_payload(request.form, "coordinator_id"))
    flash(result.message, result.flash_category)
    return redirect(url_for("registry.center_detail", center_id=center_id))


@bp.get("/centers/<center_id>/lecturers")
@require_access(ROLE_REGISTRY, center_param_exists, deny_reason=REASON_NOT_FOUND)
def center_lecturers(center_id: str, user_session: UserSession):
    s = db_session()
    center = s.get(Center, center_id)
    unassigned = (
        s.query(User)
        .filter(User.role == ROLE_LECTURER, User.lecturer_center_id.is_(None))
        .order_by(User.name, User.email)
        .all()
    )
    return render_template(
        "registry/center_lecturers.html",
        center=center,
        lecturers=center.lecturers,
        unassigned_lecturers=unassigned,
    )


@bp.post("/centers/<center_id>/lecturers/assign")
@require_access(ROLE_REGISTRY, center_param_exists, deny_reason=REASON_NOT_FOUND)
def center_lecturer_assign(center_id: str, user_session: UserSession):
    s = db_session()
    result = assign_lecturer_to_center(s, user_session, center_id, form_payload(request.form, "lecturer_id"))
    flash(result.message, result.flash_category)
    return redirect(url_for("registry.center_lecturers", center_id=center_id))


@bp.post("/centers/<center_id>/lecturers/<lecturer_id>/unassign")
@require_access(ROLE_REGISTRY, center_param_exists, deny_reason=REASON_NOT_FOUND)
def center_lecturer_unassign(center_id: str, lecturer_id: str, user_session: UserSession):
    s = db_session()
    result = unassign_lecturer_from_center(s, user_session, center_id, lecturer_id)
    flash(result.message, result.flash_category)
    return redirect(url_for("registry.center_lecturers", center_id=center_id))


@bp.get("/centers/<center_id>/claims")
@require_access(ROLE_REGISTRY, center_param_exists, deny_reason=REASON_NOT_FOUND)
def center_claims(center_id: str, user_session: UserSession):
    s = db_session()
    status_filter = (request.args.get("status") or "").strip().upper()
    search = (request.args.get("q") or "").strip()
    return render_template(
        "claims/list.html",
        center=s.get(Center, center_id),
        claims=filter_claim_rows(center_claim_rows(s, center_id), status=status_filter, search=search),
        statuses=CLAIM_STATUSES,
        status_filter=status_filter,
        search=search,
        detail_endpoint="registry.center_claim_detail",
    )


@bp.get("/centers/<center_id>/claims/<claim_id>")
@require_access(ROLE_REGISTRY, _claim_in_center, deny_reason=REASON_NOT_FOUND)
def center_claim_detail(center_id: str, claim_id: str, user_session: UserSession):
    s = db_session()
    return render_template(
        "claims/detail.html",
        claim=s.get(Claim, claim_id),
        type_labels=CLAIM_TYPE_LABELS,
        can_manage=False,
    )


# ---------- Users ----------
@bp.get("/users")
@require_access(ROLE_REGISTRY)
def users_list(user_session: UserSession):
    s = db_session()
    role_filter = (request.args.get("role") or "").strip().upper()
    q = s.query(User)
    if role_filter in ROLES:
        q = q.filter(User.role == role_filter)
    users = q.order_by(User.role, User.name, User.email).all()
    return render_template("registry/users_list.html", users=users, roles=ROLES, role_filter=role_filter)


@bp.get("/users/new")
@require_access(ROLE_REGISTRY)
def user_new(user_session: UserSession):
    return render_template("registry/user_new.html", roles=ROLES, default_role=ROLE_COORDINATOR)


@bp.post("/users/new")
@require_access(ROLE_REGISTRY)
def user_create(user_session: UserSession):
    s = db_session()
    result = create_user(s, user_session, form_payload(request.form, "name", "email", "password", "role"))
    flash(result.message, result.flash_category)
    if not result.success:
        return redirect(url_for("registry.user_new"))
    return redirect(url_for("registry.users_list"))
