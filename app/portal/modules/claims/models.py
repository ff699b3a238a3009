from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.portal.constants import CLAIM_PENDING
from app.portal.models import Base, new_id

if TYPE_CHECKING:
    from app.portal.models import User
    from app.portal.modules.centers.models import Center


class Claim(Base):
    __tablename__ = "claims"
    __table_args__ = (
        Index("idx_claims_center_status", "center_id", "status"),
        Index("idx_claims_submitted_by", "submitted_by_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)

    claim_type: Mapped[str] = mapped_column(String(32), nullable=False)  # TEACHING, TRANSPORTATION, THESIS_PROJECT
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=CLAIM_PENDING)

    # Ownership
    submitted_by_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    center_id: Mapped[str] = mapped_column(ForeignKey("centers.id", ondelete="CASCADE"), nullable=False)

    # Set once, on the PENDING -> APPROVED/REJECTED transition
    processed_by_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    # TEACHING
    teaching_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    teaching_start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)  # HH:MM
    teaching_end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    teaching_hours: Mapped[float | None] = mapped_column(Float, nullable=True)

    # TRANSPORTATION
    transport_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    transport_destination_to: Mapped[str | None] = mapped_column(String(191), nullable=True)
    transport_destination_from: Mapped[str | None] = mapped_column(String(191), nullable=True)
    transport_reg_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    transport_cubic_capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    transport_amount: Mapped[float | None] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)

    # THESIS_PROJECT
    thesis_type: Mapped[str | None] = mapped_column(String(16), nullable=True)
    thesis_supervision_rank: Mapped[str | None] = mapped_column(String(16), nullable=True)
    thesis_exam_course_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    thesis_exam_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    submitted_by: Mapped["User"] = relationship("User", foreign_keys=[submitted_by_id], lazy="joined")
    processed_by: Mapped["User | None"] = relationship("User", foreign_keys=[processed_by_id])
    center: Mapped["Center"] = relationship("Center", back_populates="claims")
    supervised_students: Mapped[list["SupervisedStudent"]] = relationship(
        "SupervisedStudent",
        back_populates="claim",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class SupervisedStudent(Base):
    __tablename__ = "supervised_students"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    claim_id: Mapped[str] = mapped_column(ForeignKey("claims.id", ondelete="CASCADE"), nullable=False)
    supervisor_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    student_name: Mapped[str] = mapped_column(String(191), nullable=False)
    thesis_title: Mapped[str] = mapped_column(String(255), nullable=False)

    claim: Mapped[Claim] = relationship("Claim", back_populates="supervised_students")
