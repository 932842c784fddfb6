# backend/alembic/versions/001_initial_schema.py
"""Initial schema - sessions, hour ledger, change requests

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates every table in its final form. On PostgreSQL an exclusion
constraint keeps non-cancelled sessions of one teacher from overlapping,
and a partial unique index allows one PENDING change request per session.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _create_extension_prefer_extensions_schema(extension_name: str) -> None:
    """Create extension using extensions schema when available."""

    bind = op.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return

    op.execute(
        f"""
        DO $$
        DECLARE
            extensions_schema_exists BOOLEAN;
            extension_installed BOOLEAN;
        BEGIN
            SELECT EXISTS (
                SELECT 1 FROM pg_namespace WHERE nspname = 'extensions'
            ) INTO extensions_schema_exists;

            SELECT EXISTS (
                SELECT 1 FROM pg_extension WHERE extname = '{extension_name}'
            ) INTO extension_installed;

            IF NOT extension_installed THEN
                IF extensions_schema_exists THEN
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name} WITH SCHEMA extensions';
                ELSE
                    EXECUTE 'CREATE EXTENSION IF NOT EXISTS {extension_name}';
                END IF;
            END IF;
        END
        $$;
        """
    )


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    """Create tutorbook tables."""
    print("Creating tutorbook tables...")

    bind = op.get_bind()
    dialect_name = bind.dialect.name if bind is not None else "postgresql"
    is_postgres = dialect_name == "postgresql"
    json_type = JSONB() if is_postgres else sa.JSON()

    print("Creating users table...")
    op.create_table(
        "users",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column(
            "timezone", sa.String(50), nullable=False, server_default="Australia/Sydney"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint("role IN ('STUDENT', 'TEACHER', 'ADMIN')", name="ck_users_role"),
    )
    op.create_index("ix_users_role", "users", ["role"])

    print("Creating teacher_student_rates table...")
    op.create_table(
        "teacher_student_rates",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("teacher_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("student_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("subject", sa.String(20), nullable=False, server_default="GENERAL"),
        sa.Column("student_hourly_rate_cents", sa.Integer(), nullable=False),
        sa.Column("teacher_hourly_wage_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "teacher_id", "student_id", "subject", name="uq_rates_teacher_student_subject"
        ),
        sa.CheckConstraint(
            "student_hourly_rate_cents > 0", name="ck_rates_student_rate_positive"
        ),
        sa.CheckConstraint(
            "teacher_hourly_wage_cents > 0", name="ck_rates_teacher_wage_positive"
        ),
        sa.CheckConstraint("currency IN ('AUD', 'CNY', 'USD')", name="ck_rates_currency"),
    )
    op.create_index("ix_teacher_student_rates_teacher_id", "teacher_student_rates", ["teacher_id"])
    op.create_index("ix_teacher_student_rates_student_id", "teacher_student_rates", ["student_id"])

    print("Creating tutoring_sessions table...")
    op.create_table(
        "tutoring_sessions",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("teacher_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("student_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        _timestamp("start_at"),
        _timestamp("end_at"),
        sa.Column("class_time_zone", sa.String(64), nullable=False),
        sa.Column("subject", sa.String(20), nullable=False, server_default="GENERAL"),
        sa.Column("consumes_units", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("student_hourly_rate_cents", sa.Integer(), nullable=False),
        sa.Column("teacher_hourly_wage_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="SCHEDULED"),
        sa.Column("created_by_id", sa.String(26), sa.ForeignKey("users.id"), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("cancelled_at", nullable=True),
        _timestamp("completed_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("end_at > start_at", name="ck_sessions_end_after_start"),
        sa.CheckConstraint("consumes_units > 0", name="ck_sessions_consumes_units_positive"),
        sa.CheckConstraint(
            "status IN ('SCHEDULED', 'CANCELLED', 'COMPLETED')", name="ck_sessions_status"
        ),
    )
    op.create_index("ix_tutoring_sessions_student_id", "tutoring_sessions", ["student_id"])
    op.create_index("ix_sessions_teacher_start", "tutoring_sessions", ["teacher_id", "start_at"])
    op.create_index("ix_sessions_status_end", "tutoring_sessions", ["status", "end_at"])

    if is_postgres:
        _create_extension_prefer_extensions_schema("btree_gist")
        op.execute(
            """
            ALTER TABLE tutoring_sessions
              ADD CONSTRAINT ex_tutoring_sessions_teacher_no_overlap
              EXCLUDE USING gist (
                teacher_id WITH =,
                tstzrange(start_at, end_at, '[)') WITH &&
              )
              WHERE (status <> 'CANCELLED')
            """
        )

    print("Creating hour_ledger_entries table...")
    op.create_table(
        "hour_ledger_entries",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("student_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("teacher_id", sa.String(26), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("delta_units", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(20), nullable=False),
        sa.Column(
            "session_id", sa.String(26), sa.ForeignKey("tutoring_sessions.id"), nullable=True
        ),
        sa.Column("created_by_id", sa.String(26), sa.ForeignKey("users.id"), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        # Consumption idempotency: at most one ledger row per session
        sa.UniqueConstraint("session_id", name="uq_ledger_session_id"),
        sa.CheckConstraint(
            "reason IN ('PURCHASE', 'ADJUSTMENT', 'SESSION_CONSUME')", name="ck_ledger_reason"
        ),
    )
    op.create_index(
        "ix_ledger_student_created", "hour_ledger_entries", ["student_id", "created_at"]
    )
    op.create_index(
        "ix_ledger_student_teacher", "hour_ledger_entries", ["student_id", "teacher_id"]
    )

    print("Creating change_requests table...")
    op.create_table(
        "change_requests",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column(
            "session_id", sa.String(26), sa.ForeignKey("tutoring_sessions.id"), nullable=False
        ),
        sa.Column("requester_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        _timestamp("proposed_start_at", nullable=True),
        _timestamp("proposed_end_at", nullable=True),
        sa.Column("proposed_time_zone", sa.String(64), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("decided_by_id", sa.String(26), sa.ForeignKey("users.id"), nullable=True),
        _timestamp("decided_at", nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("type IN ('CANCEL', 'RESCHEDULE')", name="ck_change_requests_type"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')", name="ck_change_requests_status"
        ),
        sa.CheckConstraint(
            "proposed_start_at IS NULL OR proposed_end_at IS NULL "
            "OR proposed_end_at > proposed_start_at",
            name="ck_change_requests_proposed_order",
        ),
    )
    op.create_index("ix_change_requests_requester_id", "change_requests", ["requester_id"])
    op.create_index(
        "ix_change_requests_status_created", "change_requests", ["status", "created_at"]
    )
    op.create_index(
        "uq_change_requests_one_pending_per_session",
        "change_requests",
        ["session_id"],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
        sqlite_where=sa.text("status = 'PENDING'"),
    )

    print("Creating audit_log table...")
    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("actor_id", sa.String(26), nullable=True),
        sa.Column("actor_role", sa.String(20), nullable=True),
        sa.Column("meta", json_type, nullable=True),
        _timestamp("occurred_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_type", "entity_id"])

    print("tutorbook tables created")


def downgrade() -> None:
    """Drop tutorbook tables."""
    print("Dropping tutorbook tables...")

    bind = op.get_bind()
    dialect_name = bind.dialect.name if bind is not None else "postgresql"
    is_postgres = dialect_name == "postgresql"

    op.drop_index("ix_audit_log_entity", table_name="audit_log")
    op.drop_table("audit_log")

    op.drop_index("uq_change_requests_one_pending_per_session", table_name="change_requests")
    op.drop_index("ix_change_requests_status_created", table_name="change_requests")
    op.drop_index("ix_change_requests_requester_id", table_name="change_requests")
    op.drop_table("change_requests")

    op.drop_index("ix_ledger_student_teacher", table_name="hour_ledger_entries")
    op.drop_index("ix_ledger_student_created", table_name="hour_ledger_entries")
    op.drop_table("hour_ledger_entries")

    if is_postgres:
        op.execute(
            "ALTER TABLE tutoring_sessions "
            "DROP CONSTRAINT IF EXISTS ex_tutoring_sessions_teacher_no_overlap"
        )
    op.drop_index("ix_sessions_status_end", table_name="tutoring_sessions")
    op.drop_index("ix_sessions_teacher_start", table_name="tutoring_sessions")
    op.drop_index("ix_tutoring_sessions_student_id", table_name="tutoring_sessions")
    op.drop_table("tutoring_sessions")

    op.drop_index("ix_teacher_student_rates_student_id", table_name="teacher_student_rates")
    op.drop_index("ix_teacher_student_rates_teacher_id", table_name="teacher_student_rates")
    op.drop_table("teacher_student_rates")

    op.drop_index("ix_users_role", table_name="users")
    op.drop_table("users")

    print("tutorbook tables dropped")
