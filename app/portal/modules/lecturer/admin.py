from __future__ import annotations

from typing import Any

from flask import Blueprint, flash, redirect, render_template, request, url_for
from sqlalchemy.orm import Session

from app.portal.constants import (
    CLAIM_STATUSES,
    CLAIM_TYPES,
    DASHBOARD_PATH,
    MAX_SUPERVISED_STUDENTS,
    ROLE_LECTURER,
    SUPERVISION_RANKS,
    THESIS_TYPES,
    TRANSPORT_TYPES,
)
from app.portal.db import db_session
from app.portal.models import User
from app.portal.modules.centers.models import Center
from app.portal.modules.claims.models import Claim
from app.portal.modules.claims.service import (
    CLAIM_TYPE_LABELS,
    create_claim,
    filter_claim_rows,
    lecturer_claim_rows,
)
from app.portal.rbac import assigned_to_center_param, require_access
from app.portal.session import UserSession
from app.portal.utils import form_payload, supervised_students_from_form

bp = Blueprint("lecturer", __name__)

CLAIM_FORM_FIELDS = (
    "claim_type",
    "description",
    "teaching_date",
    "teaching_start_time",
    "teaching_end_time",
    "teaching_hours",
    "transport_type",
    "transport_destination_from",
    "transport_destination_to",
    "transport_reg_number",
    "transport_cubic_capacity",
    "transport_amount",
    "thesis_type",
    "thesis_supervision_rank",
    "thesis_exam_course_code",
    "thesis_exam_date",
)


def _owns_claim_in_center(s: Session, session: UserSession, params: dict[str, Any]) -> bool:
    if not assigned_to_center_param(s, session, params):
        return False
    row = (
        s.query(Claim.id)
        .filter(
            Claim.id == params["claim_id"],
            Claim.center_id == params["center_id"],
            Claim.submitted_by_id == session.user_id,
        )
        .first()
    )
    return row is not None


def _claim_form_context() -> dict[str, Any]:
    return {
        "claim_types": CLAIM_TYPES,
        "type_labels": CLAIM_TYPE_LABELS,
        "transport_types": TRANSPORT_TYPES,
        "thesis_types": THESIS_TYPES,
        "supervision_ranks": SUPERVISION_RANKS,
        "max_students": MAX_SUPERVISED_STUDENTS,
    }


@bp.get("/")
@require_access(ROLE_LECTURER)
def index(user_session: UserSession):
    s = db_session()
    center_id = s.query(User.lecturer_center_id).filter(User.id == user_session.user_id).scalar()
    if not center_id:
        flash("You are not assigned to a center yet.", "danger")
        return redirect(DASHBOARD_PATH)
    return redirect(url_for("lecturer.center_overview", center_id=center_id))


@bp.get("/<center_id>")
@require_access(ROLE_LECTURER, assigned_to_center_param)
def center_overview(center_id: str, user_session: UserSession):
    s = db_session()
    rows = lecturer_claim_rows(s, user_session.user_id, center_id)
    counts = {st: 0 for st in CLAIM_STATUSES}
    for r in rows:
        counts[r["status"]] += 1
    return render_template(
        "lecturer/overview.html",
        center=s.get(Center, center_id),
        lecturer=s.get(User, user_session.user_id),
        recent_claims=rows[:5],
        counts=counts,
    )


@bp.get("/<center_id>/claims")
@require_access(ROLE_LECTURER, assigned_to_center_param)
def claims_list(center_id: str, user_session: UserSession):
    s = db_session()
    status_filter = (request.args.get("status") or "").strip().upper()
    search = (request.args.get("q") or "").strip()
    rows = filter_claim_rows(
        lecturer_claim_rows(s, user_session.user_id, center_id), status=status_filter, search=search
    )
    return render_template(
        "claims/list.html",
        center=s.get(Center, center_id),
        claims=rows,
        statuses=CLAIM_STATUSES,
        status_filter=status_filter,
        search=search,
        detail_endpoint="lecturer.claim_detail",
        create_url=url_for("lecturer.claim_new", center_id=center_id),
    )


@bp.get("/<center_id>/claims/new")
@require_access(ROLE_LECTURER, assigned_to_center_param)
def claim_new(center_id: str, user_session: UserSession):
    s = db_session()
    return render_template("lecturer/claim_new.html", center=s.get(Center, center_id), **_claim_form_context())


@bp.post("/<center_id>/claims/new")
@require_access(ROLE_LECTURER, assigned_to_center_param)
def claim_create(center_id: str, user_session: UserSession):
    s = db_session()
    payload: dict[str, Any] = form_payload(request.form, *CLAIM_FORM_FIELDS)
    if payload.get("claim_type") == "THESIS_PROJECT":
        payload["supervised_students"] = supervised_students_from_form(request.form)
    result = create_claim(s, user_session, payload)
    flash(result.message, result.flash_category)
    if not result.success:
        return redirect(url_for("lecturer.claim_new", center_id=center_id))
    return redirect(url_for("lecturer.claims_list", center_id=result.center_id))


@bp.get("/<center_id>/claims/<claim_id>")
@require_access(ROLE_LECTURER, _owns_claim_in_center)
def claim_detail(center_id: str, claim_id: str, user_session: UserSession):
    s = db_session()
    return render_template(
        "claims/detail.html",
        claim=s.get(Claim, claim_id),
        type_labels=CLAIM_TYPE_LABELS,
        can_manage=False,
    )
