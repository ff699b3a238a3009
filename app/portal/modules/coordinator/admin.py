from __future__ import annotations

from typing import Any

from flask import Blueprint, flash, redirect, render_template, request, url_for
from sqlalchemy.orm import Session

from app.portal.constants import CLAIM_PENDING, CLAIM_STATUSES, DASHBOARD_PATH, ROLE_COORDINATOR, ROLE_LECTURER
from app.portal.db import db_session
from app.portal.models import User
from app.portal.modules.centers.models import Center, Department
from app.portal.modules.centers.service import (
    assign_lecturer_to_department,
    create_department,
    create_lecturer_for_center,
    delete_department,
    unassign_lecturer_from_department,
    update_department,
)
from app.portal.modules.claims.models import Claim
from app.portal.modules.claims.service import (
    CLAIM_TYPE_LABELS,
    approve_claim,
    center_claim_rows,
    filter_claim_rows,
    reject_claim,
)
from app.portal.rbac import department_in_center, owns_center_param, require_access
from app.portal.session import UserSession
from app.portal.utils import form_payload

bp = Blueprint("coordinator", __name__)


def _owns_center_and_claim(s: Session, session: UserSession, params: dict[str, Any]) -> bool:
    if not owns_center_param(s, session, params):
        return False
    row = s.query(Claim.id).filter(Claim.id == params["claim_id"], Claim.center_id == params["center_id"]).first()
    return row is not None


def _owns_center_and_department(s: Session, session: UserSession, params: dict[str, Any]) -> bool:
    return owns_center_param(s, session, params) and department_in_center(
        s, params["department_id"], params["center_id"]
    )


def _back(endpoint: str, **values: str):
    return redirect(url_for(endpoint, **values))


# ---------- Landing ----------
@bp.get("/")
@require_access(ROLE_COORDINATOR)
def index(user_session: UserSession):
    s = db_session()
    center_id = s.query(Center.id).filter(Center.coordinator_id == user_session.user_id).scalar()
    if not center_id:
        flash("You are not assigned to a center yet.", "danger")
        return redirect(DASHBOARD_PATH)
    return _back("coordinator.center_overview", center_id=center_id)


@bp.get("/<center_id>")
@require_access(ROLE_COORDINATOR, owns_center_param)
def center_overview(center_id: str, user_session: UserSession):
    s = db_session()
    center = s.get(Center, center_id)
    rows = center_claim_rows(s, center_id)
    pending = [r for r in rows if r["status"] == CLAIM_PENDING]
    return render_template(
        "coordinator/overview.html",
        center=center,
        pending_claims=pending[:10],
        pending_count=len(pending),
        claim_count=len(rows),
    )


# ---------- Claims ----------
@bp.get("/<center_id>/claims")
@require_access(ROLE_COORDINATOR, owns_center_param)
def claims_list(center_id: str, user_session: UserSession):
    s = db_session()
    status_filter = (request.args.get("status") or "").strip().upper()
    search = (request.args.get("q") or "").strip()
    rows = filter_claim_rows(center_claim_rows(s, center_id), status=status_filter, search=search)
    return render_template(
        "claims/list.html",
        center=s.get(Center, center_id),
        claims=rows,
        statuses=CLAIM_STATUSES,
        status_filter=status_filter,
        search=search,
        detail_endpoint="coordinator.claim_detail",
    )


@bp.get("/<center_id>/claims/<claim_id>")
@require_access(ROLE_COORDINATOR, _owns_center_and_claim)
def claim_detail(center_id: str, claim_id: str, user_session: UserSession):
    s = db_session()
    claim = s.get(Claim, claim_id)
    return render_template(
        "claims/detail.html",
        claim=claim,
        type_labels=CLAIM_TYPE_LABELS,
        can_manage=claim.status == CLAIM_PENDING,
        coordinator_id=user_session.user_id,
    )


def _manage_claim(center_id: str, claim_id: str, user_session: UserSession, action):
    s = db_session()
    payload = {
        "claim_id": claim_id,
        "center_id": center_id,
        "coordinator_id": request.form.get("coordinator_id"),
    }
    result = action(s, user_session, payload)
    flash(result.message, result.flash_category)
    return _back("coordinator.claim_detail", center_id=center_id, claim_id=claim_id)


@bp.post("/<center_id>/claims/<claim_id>/approve")
@require_access(ROLE_COORDINATOR, owns_center_param)
def claim_approve(center_id: str, claim_id: str, user_session: UserSession):
    return _manage_claim(center_id, claim_id, user_session, approve_claim)


@bp.post("/<center_id>/claims/<claim_id>/reject")
@require_access(ROLE_COORDINATOR, owns_center_param)
def claim_reject(center_id: str, claim_id: str, user_session: UserSession):
    return _manage_claim(center_id, claim_id, user_session, reject_claim)


# ---------- Lecturers ----------
@bp.get("/<center_id>/lecturers")
@require_access(ROLE_COORDINATOR, owns_center_param)
def lecturers_list(center_id: str, user_session: UserSession):
    s = db_session()
    center = s.get(Center, center_id)
    lecturers = (
        s.query(User)
        .filter(User.lecturer_center_id == center_id, User.role == ROLE_LECTURER)
        .order_by(User.name, User.email)
        .all()
    )
    return render_template(
        "coordinator/lecturers.html",
        center=center,
        lecturers=lecturers,
        departments=center.departments,
    )


@bp.post("/<center_id>/lecturers/new")
@require_access(ROLE_COORDINATOR, owns_center_param)
def lecturer_create(center_id: str, user_session: UserSession):
    s = db_session()
    payload = form_payload(request.form, "name", "email", "password", "department_id")
    result = create_lecturer_for_center(s, user_session, center_id, payload)
    flash(result.message, result.flash_category)
    return _back("coordinator.lecturers_list", center_id=center_id)


@bp.post("/<center_id>/lecturers/<lecturer_id>/unassign-department")
@require_access(ROLE_COORDINATOR, owns_center_param)
def lecturer_unassign_department(center_id: str, lecturer_id: str, user_session: UserSession):
    s = db_session()
    result = unassign_lecturer_from_department(s, user_session, center_id, lecturer_id)
    flash(result.message, result.flash_category)
    department_id = (request.form.get("department_id") or "").strip()
    if department_id:
        return _back("coordinator.department_detail", center_id=center_id, department_id=department_id)
    return _back("coordinator.lecturers_list", center_id=center_id)


# ---------- Departments ----------
@bp.get("/<center_id>/departments")
@require_access(ROLE_COORDINATOR, owns_center_param)
def departments_list(center_id: str, user_session: UserSession):
    s = db_session()
    center = s.get(Center, center_id)
    return render_template("coordinator/departments.html", center=center, departments=center.departments)


@bp.post("/<center_id>/departments/new")
@require_access(ROLE_COORDINATOR, owns_center_param)
def department_create(center_id: str, user_session: UserSession):
    s = db_session()
    result = create_department(s, user_session, center_id, form_payload(request.form, "name"))
    flash(result.message, result.flash_category)
    return _back("coordinator.departments_list", center_id=center_id)


@bp.get("/<center_id>/departments/<department_id>")
@require_access(ROLE_COORDINATOR, _owns_center_and_department)
def department_detail(center_id: str, department_id: str, user_session: UserSession):
    s = db_session()
    department = s.get(Department, department_id)
    unassigned = (
        s.query(User)
        .filter(
            User.lecturer_center_id == center_id,
            User.role == ROLE_LECTURER,
            (User.department_id.is_(None)) | (User.department_id != department_id),
        )
        .order_by(User.name, User.email)
        .all()
    )
    return render_template(
        "coordinator/department_detail.html",
        center=department.center,
        department=department,
        available_lecturers=unassigned,
    )


@bp.post("/<center_id>/departments/<department_id>/edit")
@require_access(ROLE_COORDINATOR, _owns_center_and_department)
def department_edit(center_id: str, department_id: str, user_session: UserSession):
    s = db_session()
    result = update_department(s, user_session, center_id, department_id, form_payload(request.form, "name"))
    flash(result.message, result.flash_category)
    return _back("coordinator.department_detail", center_id=center_id, department_id=department_id)


@bp.post("/<center_id>/departments/<department_id>/delete")
@require_access(ROLE_COORDINATOR, _owns_center_and_department)
def department_delete(center_id: str, department_id: str, user_session: UserSession):
    s = db_session()
    result = delete_department(s, user_session, center_id, department_id)
    flash(result.message, result.flash_category)
    return _back("coordinator.departments_list", center_id=center_id)


@bp.post("/<center_id>/departments/<department_id>/assign")
@require_access(ROLE_COORDINATOR, _owns_center_and_department)
def department_assign(center_id: str, department_id: str, user_session: UserSession):
    s = db_session()
    result = assign_lecturer_to_department(
        s, user_session, center_id, department_id, form_payload(request.form, "lecturer_id")
    )
    flash(result.message, result.flash_category)
    return _back("coordinator.department_detail", center_id=center_id, department_id=department_id)
