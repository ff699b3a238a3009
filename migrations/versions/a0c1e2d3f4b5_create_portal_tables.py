"""Create users, centers, departments, claims and audit tables.

Revision ID: a0c1e2d3f4b5
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "a0c1e2d3f4b5"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # users <-> centers reference each other; the users FKs are added once both exist.
    op.create_table(
        "users",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("name", sa.String(191), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("lecturer_center_id", sa.String(32), nullable=True),
        sa.Column("department_id", sa.String(32), nullable=True),
        sa.UniqueConstraint("email"),
    )
    op.create_index("idx_users_role", "users", ["role"])
    op.create_index("idx_users_lecturer_center", "users", ["lecturer_center_id"])

    op.create_table(
        "centers",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("coordinator_id", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["coordinator_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("coordinator_id"),
    )

    op.create_table(
        "departments",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("center_id", sa.String(32), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["center_id"], ["centers.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("center_id", "name", name="uq_departments_center_name"),
    )
    op.create_index("idx_departments_center", "departments", ["center_id"])

    with op.batch_alter_table("users") as batch:
        batch.create_foreign_key(
            "fk_users_lecturer_center", "centers", ["lecturer_center_id"], ["id"], ondelete="SET NULL"
        )
        batch.create_foreign_key("fk_users_department", "departments", ["department_id"], ["id"], ondelete="SET NULL")

    op.create_table(
        "claims",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("claim_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("submitted_by_id", sa.String(32), nullable=False),
        sa.Column("center_id", sa.String(32), nullable=False),
        sa.Column("processed_by_id", sa.String(32), nullable=True),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("teaching_date", sa.Date(), nullable=True),
        sa.Column("teaching_start_time", sa.String(5), nullable=True),
        sa.Column("teaching_end_time", sa.String(5), nullable=True),
        sa.Column("teaching_hours", sa.Float(), nullable=True),
        sa.Column("transport_type", sa.String(16), nullable=True),
        sa.Column("transport_destination_to", sa.String(191), nullable=True),
        sa.Column("transport_destination_from", sa.String(191), nullable=True),
        sa.Column("transport_reg_number", sa.String(50), nullable=True),
        sa.Column("transport_cubic_capacity", sa.Integer(), nullable=True),
        sa.Column("transport_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("thesis_type", sa.String(16), nullable=True),
        sa.Column("thesis_supervision_rank", sa.String(16), nullable=True),
        sa.Column("thesis_exam_course_code", sa.String(50), nullable=True),
        sa.Column("thesis_exam_date", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["submitted_by_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["center_id"], ["centers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["processed_by_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_claims_center_status", "claims", ["center_id", "status"])
    op.create_index("idx_claims_submitted_by", "claims", ["submitted_by_id"])

    op.create_table(
        "supervised_students",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("claim_id", sa.String(32), nullable=False),
        sa.Column("supervisor_id", sa.String(32), nullable=False),
        sa.Column("student_name", sa.String(191), nullable=False),
        sa.Column("thesis_title", sa.String(255), nullable=False),
        sa.ForeignKeyConstraint(["claim_id"], ["claims.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["supervisor_id"], ["users.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("request_id", sa.String(64), nullable=True),
        sa.Column("client_ip", sa.String(64), nullable=True),
        sa.Column("actor_user_id", sa.String(32), nullable=True),
        sa.Column("actor_role", sa.String(32), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("entity_type", sa.String(128), nullable=True),
        sa.Column("entity_id", sa.String(128), nullable=True),
        sa.Column("reason", sa.String(512), nullable=True),
        sa.Column("metadata_json", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_audit_events_created_at", "audit_events", ["created_at"])


def downgrade() -> None:
    op.drop_index("idx_audit_events_created_at", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_table("supervised_students")
    op.drop_index("idx_claims_submitted_by", table_name="claims")
    op.drop_index("idx_claims_center_status", table_name="claims")
    op.drop_table("claims")
    with op.batch_alter_table("users") as batch:
        batch.drop_constraint("fk_users_department", type_="foreignkey")
        batch.drop_constraint("fk_users_lecturer_center", type_="foreignkey")
    op.drop_index("idx_departments_center", table_name="departments")
    op.drop_table("departments")
    op.drop_table("centers")
    op.drop_index("idx_users_lecturer_center", table_name="users")
    op.drop_index("idx_users_role", table_name="users")
    op.drop_table("users")
