from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.portal.models import Base, new_id

if TYPE_CHECKING:
    from app.portal.models import User
    from app.portal.modules.claims.models import Claim


class Center(Base):
    __tablename__ = "centers"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    # 1:1 with its coordinator; unique so a coordinator owns at most one center
    coordinator_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    coordinator: Mapped["User | None"] = relationship(
        "User",
        back_populates="coordinated_center",
        foreign_keys=[coordinator_id],
    )
    lecturers: Mapped[list["User"]] = relationship(
        "User",
        back_populates="lecturer_center",
        foreign_keys="User.lecturer_center_id",
        order_by="User.name",
    )
    departments: Mapped[list["Department"]] = relationship(
        "Department",
        back_populates="center",
        cascade="all, delete-orphan",
        order_by="Department.name",
    )
    claims: Mapped[list["Claim"]] = relationship("Claim", back_populates="center", cascade="all, delete-orphan")


class Department(Base):
    __tablename__ = "departments"
    __table_args__ = (
        UniqueConstraint("center_id", "name", name="uq_departments_center_name"),
        Index("idx_departments_center", "center_id"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    center_id: Mapped[str] = mapped_column(ForeignKey("centers.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    center: Mapped[Center] = relationship("Center", back_populates="departments")
    lecturers: Mapped[list["User"]] = relationship("User", back_populates="department", order_by="User.name")
