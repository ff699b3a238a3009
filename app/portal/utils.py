from __future__ import annotations

from dataclasses import dataclass

from werkzeug.datastructures import MultiDict


@dataclass(frozen=True)
class ActionResult:
    """
    Outcome of a mutating action. Failures never raise; views flash ``message``.
    """

    success: bool
    message: str
    claim_id: str | None = None
    user_id: str | None = None
    center_id: str | None = None
    department_id: str | None = None

    @classmethod
    def ok(cls, message: str, **ids: str | None) -> "ActionResult":
        return cls(True, message, **ids)

    @classmethod
    def fail(cls, message: str) -> "ActionResult":
        return cls(False, message)

    @property
    def flash_category(self) -> str:
        return "success" if self.success else "danger"


def form_payload(form: MultiDict, *fields: str) -> dict[str, str | None]:
    """Pick single-valued fields from a submitted form."""
    return {f: form.get(f) for f in fields}


def supervised_students_from_form(form: MultiDict) -> list[dict[str, str]]:
    """
    Pair up the repeated ``student_name``/``thesis_title`` inputs, skipping blank rows.
    """
    names = form.getlist("student_name")
    titles = form.getlist("thesis_title")
    rows = []
    for name, title in zip(names, titles):
        if (name or "").strip() or (title or "").strip():
            rows.append({"student_name": name, "thesis_title": title})
    return rows
