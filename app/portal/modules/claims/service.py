from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError

from app.portal.audit import record_event
from app.portal.cache import (
    cache,
    center_claims_key,
    invalidate_claim_views,
    lecturer_claims_key,
)
from app.portal.constants import (
    CLAIM_APPROVED,
    CLAIM_PENDING,
    CLAIM_REJECTED,
    CLAIM_STATUSES,
    CLAIM_TEACHING,
    CLAIM_THESIS_PROJECT,
    CLAIM_TRANSPORTATION,
    ROLE_COORDINATOR,
    ROLE_LECTURER,
)
from app.portal.models import User
from app.portal.modules.centers.models import Center
from app.portal.modules.claims.models import Claim, SupervisedStudent
from app.portal.rbac import Denied, authorize
from app.portal.schemas import CreateClaimPayload, ManageClaimPayload, validate_payload
from app.portal.utils import ActionResult

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

    from app.portal.session import UserSession

logger = logging.getLogger(__name__)

CLAIM_TYPE_LABELS = {
    CLAIM_TEACHING: "Teaching",
    CLAIM_TRANSPORTATION: "Transportation",
    CLAIM_THESIS_PROJECT: "Thesis / Project",
}


# ---------- Create ----------
def _claim_from_payload(data: Any, *, lecturer_id: str, center_id: str) -> Claim:
    claim = Claim(
        claim_type=data.claim_type,
        status=CLAIM_PENDING,
        submitted_by_id=lecturer_id,
        center_id=center_id,
        description=data.description,
        submitted_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )
    if data.claim_type == CLAIM_TEACHING:
        claim.teaching_date = data.teaching_date
        claim.teaching_start_time = data.teaching_start_time
        claim.teaching_end_time = data.teaching_end_time
        claim.teaching_hours = data.teaching_hours
    elif data.claim_type == CLAIM_TRANSPORTATION:
        claim.transport_type = data.transport_type
        claim.transport_destination_to = data.transport_destination_to
        claim.transport_destination_from = data.transport_destination_from
        claim.transport_reg_number = data.transport_reg_number
        claim.transport_cubic_capacity = data.transport_cubic_capacity
        claim.transport_amount = data.transport_amount
    elif data.claim_type == CLAIM_THESIS_PROJECT:
        claim.thesis_type = data.thesis_type
        claim.thesis_supervision_rank = data.thesis_supervision_rank
        claim.thesis_exam_course_code = data.thesis_exam_course_code
        claim.thesis_exam_date = data.thesis_exam_date
        for student in data.supervised_students:
            claim.supervised_students.append(
                SupervisedStudent(
                    student_name=student.student_name,
                    thesis_title=student.thesis_title,
                    supervisor_id=lecturer_id,
                )
            )
    return claim


def create_claim(s: "Session", user_session: "UserSession | None", payload: dict[str, Any]) -> ActionResult:
    """
    Submit a claim as the signed-in lecturer.

    The center is always the lecturer's stored assignment; any ``center_id`` in
    ``payload`` is ignored.
    """
    if isinstance(authorize(s, user_session, ROLE_LECTURER), Denied):
        return ActionResult.fail("Unauthorized: Only Lecturers can create claims.")

    try:
        center_id = s.query(User.lecturer_center_id).filter(User.id == user_session.user_id).scalar()
    except SQLAlchemyError:
        logger.exception("create_claim: failed to load center assignment user_id=%s", user_session.user_id)
        return ActionResult.fail("Error verifying your center assignment.")
    if not center_id:
        return ActionResult.fail("Cannot create claim: You are not assigned to a center.")

    data, error = validate_payload(CreateClaimPayload, payload)
    if error:
        logger.info("create_claim: validation failed user_id=%s: %s", user_session.user_id, error)
        return ActionResult.fail(error)

    try:
        claim = _claim_from_payload(data, lecturer_id=user_session.user_id, center_id=center_id)
        s.add(claim)
        s.flush()
        record_event(
            s,
            actor=user_session,
            action="claim.create",
            entity_type="Claim",
            entity_id=claim.id,
            metadata={"claim_type": claim.claim_type, "center_id": center_id},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("create_claim: database error user_id=%s", user_session.user_id)
        return ActionResult.fail("An internal error occurred while submitting the claim. Please try again.")

    logger.info("Created %s claim %s for center %s", claim.claim_type, claim.id, center_id)
    invalidate_claim_views(center_id=center_id, lecturer_id=user_session.user_id)
    return ActionResult.ok("Claim submitted successfully.", claim_id=claim.id, center_id=center_id)


# ---------- Approve / reject ----------
def _transition_claim(
    s: "Session",
    user_session: "UserSession | None",
    payload: dict[str, Any],
    new_status: str,
) -> ActionResult:
    verb = "approve" if new_status == CLAIM_APPROVED else "reject"

    if isinstance(authorize(s, user_session, ROLE_COORDINATOR), Denied):
        return ActionResult.fail("Unauthorized.")

    data, error = validate_payload(ManageClaimPayload, payload)
    if error:
        return ActionResult.fail("Invalid data.")

    if data.coordinator_id != user_session.user_id:
        return ActionResult.fail("Session mismatch.")

    try:
        row = (
            s.query(Claim.status, Claim.submitted_by_id, Center.coordinator_id)
            .join(Center, Center.id == Claim.center_id)
            .filter(Claim.id == data.claim_id, Claim.center_id == data.center_id)
            .one_or_none()
        )
        if row is None or row.coordinator_id != user_session.user_id:
            logger.warning(
                "Claim %s denied: claim=%s center=%s coordinator=%s", verb, data.claim_id, data.center_id, user_session.user_id
            )
            return ActionResult.fail("Unauthorized or claim not found.")

        # First writer wins: the status guard in the WHERE clause makes a
        # concurrent approve/reject affect zero rows instead of overwriting.
        now = datetime.utcnow()
        res = s.execute(
            update(Claim)
            .where(
                Claim.id == data.claim_id,
                Claim.center_id == data.center_id,
                Claim.status == CLAIM_PENDING,
            )
            .values(status=new_status, processed_by_id=user_session.user_id, processed_at=now, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        if res.rowcount != 1:
            s.rollback()
            current = s.query(Claim.status).filter(Claim.id == data.claim_id).scalar() or row.status
            return ActionResult.fail(f"Claim is already {current.lower()}. Cannot change status.")

        record_event(
            s,
            actor=user_session,
            action=f"claim.{verb}",
            entity_type="Claim",
            entity_id=data.claim_id,
            metadata={"center_id": data.center_id, "from": CLAIM_PENDING, "to": new_status},
        )
        s.commit()
    except SQLAlchemyError:
        s.rollback()
        logger.exception("Claim %s failed: claim=%s", verb, data.claim_id)
        return ActionResult.fail(f"Internal error trying to {verb} claim.")

    logger.info("Claim %s %sd by %s", data.claim_id, verb, user_session.user_id)
    invalidate_claim_views(center_id=data.center_id, lecturer_id=row.submitted_by_id)
    return ActionResult.ok(f"Claim {verb}d successfully.", claim_id=data.claim_id, center_id=data.center_id)


def approve_claim(s: "Session", user_session: "UserSession | None", payload: dict[str, Any]) -> ActionResult:
    return _transition_claim(s, user_session, payload, CLAIM_APPROVED)


def reject_claim(s: "Session", user_session: "UserSession | None", payload: dict[str, Any]) -> ActionResult:
    return _transition_claim(s, user_session, payload, CLAIM_REJECTED)


# ---------- Reads ----------
def claim_row(claim: Claim) -> dict[str, Any]:
    submitter = claim.submitted_by
    return {
        "id": claim.id,
        "claim_type": claim.claim_type,
        "claim_type_label": CLAIM_TYPE_LABELS.get(claim.claim_type, claim.claim_type),
        "status": claim.status,
        "submitted_at": claim.submitted_at,
        "processed_at": claim.processed_at,
        "submitted_by_id": claim.submitted_by_id,
        "submitted_by_name": submitter.display_name if submitter else None,
        "center_id": claim.center_id,
    }


def lecturer_claim_rows(s: "Session", lecturer_id: str, center_id: str) -> list[dict[str, Any]]:
    """Claims the lecturer submitted to one center, newest first."""
    key = lecturer_claims_key(lecturer_id, center_id)
    rows = cache.get(key)
    if rows is None:
        claims = (
            s.query(Claim)
            .filter(Claim.submitted_by_id == lecturer_id, Claim.center_id == center_id)
            .order_by(Claim.submitted_at.desc())
            .all()
        )
        rows = [claim_row(c) for c in claims]
        cache.set(key, rows)
    return rows


def center_claim_rows(s: "Session", center_id: str) -> list[dict[str, Any]]:
    key = center_claims_key(center_id)
    rows = cache.get(key)
    if rows is None:
        claims = s.query(Claim).filter(Claim.center_id == center_id).order_by(Claim.submitted_at.desc()).all()
        rows = [claim_row(c) for c in claims]
        cache.set(key, rows)
    return rows


def filter_claim_rows(rows: list[dict[str, Any]], *, status: str = "", search: str = "") -> list[dict[str, Any]]:
    status = status.strip().upper()
    search = search.strip().lower()
    out = rows
    if status in CLAIM_STATUSES:
        out = [r for r in out if r["status"] == status]
    if search:
        out = [
            r
            for r in out
            if search in (r["submitted_by_name"] or "").lower()
            or search in r["claim_type_label"].lower()
            or search in r["id"]
        ]
    return out


def status_counts(s: "Session", *filters: Any) -> dict[str, int]:
    counts = {st: 0 for st in CLAIM_STATUSES}
    for st, n in s.query(Claim.status, func.count(Claim.id)).filter(*filters).group_by(Claim.status).all():
        counts[st] = n
    return counts
