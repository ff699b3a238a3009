"""
Validation boundary for every mutation.

Views hand raw form data to :func:`validate_payload`; services only ever see
validated models. Unknown fields (e.g. a client-supplied ``center_id`` on a
claim) are dropped, never trusted.
"""
from __future__ import annotations

import re
from datetime import date
from typing import Annotated, Any, Literal, TypeVar, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    PositiveFloat,
    PositiveInt,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

from app.portal.constants import MAX_SUPERVISED_STUDENTS

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

Id = Annotated[str, Field(min_length=1, max_length=32)]
Name = Annotated[str, Field(min_length=2, max_length=100)]
Password = Annotated[str, Field(min_length=8, max_length=128)]


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _EmailPayload(_Payload):
    email: EmailStr

    @field_validator("email")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()


# ---------- Auth ----------
class LoginPayload(_EmailPayload):
    password: str = Field(min_length=1)


class SignupPayload(_EmailPayload):
    name: Name
    password: Password


# ---------- Registry ----------
class CreateUserPayload(_EmailPayload):
    name: Name | None = None
    password: Password
    role: Literal["REGISTRY", "COORDINATOR", "LECTURER"]


class CenterPayload(_Payload):
    name: Name
    coordinator_id: Id


class UpdateCenterPayload(_Payload):
    name: Name


class ChangeCoordinatorPayload(_Payload):
    coordinator_id: Id


class AssignLecturerPayload(_Payload):
    lecturer_id: Id


# ---------- Coordinator ----------
class DepartmentPayload(_Payload):
    name: Name


class AssignDepartmentPayload(_Payload):
    lecturer_id: Id


class CreateLecturerPayload(_EmailPayload):
    name: Name | None = None
    password: Password
    department_id: Id | None = None


class ManageClaimPayload(_Payload):
    claim_id: Id
    center_id: Id
    coordinator_id: Id


# ---------- Claims ----------
class SupervisedStudentPayload(_Payload):
    student_name: str = Field(min_length=1, max_length=191)
    thesis_title: str = Field(min_length=1, max_length=255)


class _ClaimPayload(_Payload):
    description: str | None = Field(default=None, max_length=1000)


class TeachingClaimPayload(_ClaimPayload):
    claim_type: Literal["TEACHING"]
    teaching_date: date
    teaching_start_time: str
    teaching_end_time: str
    teaching_hours: PositiveFloat | None = None

    @field_validator("teaching_start_time", "teaching_end_time")
    @classmethod
    def _hhmm(cls, v: str, info) -> str:
        if not _HHMM.match(v):
            which = "start" if info.field_name == "teaching_start_time" else "end"
            raise ValueError(f"Invalid {which} time (HH:MM).")
        return v

    @model_validator(mode="after")
    def _end_after_start(self) -> "TeachingClaimPayload":
        if self.teaching_end_time <= self.teaching_start_time:
            raise ValueError("End time must be after start time.")
        return self


class TransportationClaimPayload(_ClaimPayload):
    claim_type: Literal["TRANSPORTATION"]
    transport_type: Literal["PUBLIC", "PRIVATE"]
    transport_destination_to: str = Field(min_length=1, max_length=191)
    transport_destination_from: str = Field(min_length=1, max_length=191)
    transport_reg_number: str | None = Field(default=None, max_length=50)
    transport_cubic_capacity: PositiveInt | None = None
    transport_amount: PositiveFloat | None = None

    @model_validator(mode="after")
    def _private_vehicle_details(self) -> "TransportationClaimPayload":
        if self.transport_type == "PRIVATE":
            if not self.transport_reg_number:
                raise ValueError("Registration number is required for private transport.")
            if self.transport_cubic_capacity is None:
                raise ValueError("Cubic capacity is required for private transport.")
        else:
            self.transport_reg_number = None
            self.transport_cubic_capacity = None
        return self


class ThesisProjectClaimPayload(_ClaimPayload):
    claim_type: Literal["THESIS_PROJECT"]
    thesis_type: Literal["SUPERVISION", "EXAMINATION"]
    thesis_supervision_rank: Literal["PHD", "MPHIL", "MA", "MED", "BED", "BA", "OTHER"] | None = None
    supervised_students: list[SupervisedStudentPayload] = Field(
        default_factory=list, max_length=MAX_SUPERVISED_STUDENTS
    )
    thesis_exam_course_code: str | None = Field(default=None, max_length=50)
    thesis_exam_date: date | None = None

    @model_validator(mode="after")
    def _variant_fields(self) -> "ThesisProjectClaimPayload":
        if self.thesis_type == "SUPERVISION":
            if not self.thesis_supervision_rank:
                raise ValueError("Supervision rank is required.")
            if not self.supervised_students:
                raise ValueError("At least one student is required for supervision.")
            self.thesis_exam_course_code = None
            self.thesis_exam_date = None
        else:
            if not self.thesis_exam_course_code:
                raise ValueError("Course code is required for examination.")
            if self.thesis_exam_date is None:
                raise ValueError("Examination date is required.")
            self.thesis_supervision_rank = None
            self.supervised_students = []
        return self


ClaimPayload = Annotated[
    Union[TeachingClaimPayload, TransportationClaimPayload, ThesisProjectClaimPayload],
    Field(discriminator="claim_type"),
]
CreateClaimPayload: TypeAdapter[ClaimPayload] = TypeAdapter(ClaimPayload)


# ---------- Boundary ----------
M = TypeVar("M")

_UNION_TAG_ERRORS = ("union_tag_invalid", "union_tag_not_found")


def _clean(value: Any, key: str = "") -> Any:
    if isinstance(value, str):
        if "password" in key:
            return value or None
        value = value.strip()
        return value or None
    if isinstance(value, dict):
        cleaned = ((k, _clean(v, k)) for k, v in value.items())
        return {k: v for k, v in cleaned if v is not None}
    if isinstance(value, list):
        return [_clean(v, key) for v in value]
    return value


def first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid data provided."
    err = errors[0]
    if err.get("type") in _UNION_TAG_ERRORS:
        return "Invalid claim type selected."
    msg = str(err.get("msg") or "Invalid data provided.")
    if err.get("type") == "value_error":
        # pydantic prefixes messages raised from validators
        return msg.removeprefix("Value error, ")
    field = next((str(p) for p in reversed(err.get("loc") or ()) if isinstance(p, str)), None)
    if field and field not in ("TEACHING", "TRANSPORTATION", "THESIS_PROJECT"):
        return f"{field.replace('_', ' ').capitalize()}: {msg}"
    return msg


def validate_payload(schema: type[M] | TypeAdapter, data: dict[str, Any]) -> tuple[M | None, str | None]:
    """
    Returns ``(model, None)`` on success or ``(None, first_error_message)``.
    """
    cleaned = _clean(dict(data))
    try:
        if isinstance(schema, TypeAdapter):
            return schema.validate_python(cleaned), None
        return schema.model_validate(cleaned), None  # type: ignore[attr-defined]
    except ValidationError as e:
        return None, first_error_message(e)
