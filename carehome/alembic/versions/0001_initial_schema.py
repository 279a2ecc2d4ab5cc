"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the complete schema for the care home platform in dependency order.

Tables created:
- Identity: profiles, credentials, auth_sessions
- People: residents, staff, family_resident_links
- Clinical: incidents, medications, medication_log, care_plans, care_routines
- Activity: events, announcements, tasks, todos
- Messaging: chat_messages, notifications
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENUMS: dict[str, tuple[str, ...]] = {
    "role_enum": ("ADMIN", "STAFF", "FAMILY", "RESIDENT"),
    "profile_status_enum": ("active", "inactive"),
    "care_level_enum": ("LOW", "MEDIUM", "HIGH"),
    "shift_enum": ("MORNING", "AFTERNOON", "NIGHT"),
    "incident_severity_enum": ("LOW", "MEDIUM", "HIGH", "CRITICAL"),
    "incident_status_enum": ("OPEN", "IN_PROGRESS", "RESOLVED"),
    "priority_enum": ("LOW", "MEDIUM", "HIGH"),
    "notification_type_enum": ("INFO", "WARNING", "ALERT"),
    "task_status_enum": ("TODO", "IN_PROGRESS", "COMPLETED"),
    "dose_status_enum": ("GIVEN", "MISSED", "REFUSED"),
}


def enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )


def _profile_fk(name: str, nullable: bool = True, ondelete: str | None = "CASCADE") -> sa.Column:
    return sa.Column(
        name, sa.Uuid(), sa.ForeignKey("profiles.id", ondelete=ondelete), nullable=nullable
    )


def upgrade() -> None:
    """Create all tables for the care home platform."""

    # =========================================================================
    # ENUM TYPES
    # =========================================================================

    for name, values in ENUMS.items():
        quoted = ", ".join(f"'{v}'" for v in values)
        op.execute(f"CREATE TYPE {name} AS ENUM ({quoted})")

    # =========================================================================
    # IDENTITY
    # =========================================================================

    op.create_table(
        "profiles",
        _id(),
        _created_at(),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", enum("role_enum"), nullable=False),
        sa.Column(
            "status", enum("profile_status_enum"), nullable=False, server_default="active"
        ),
        sa.Column("avatar_url", sa.Text(), nullable=True),
    )
    op.create_index("idx_profiles_role", "profiles", ["role"])
    op.create_index("idx_profiles_status", "profiles", ["status"])

    op.create_table(
        "credentials",
        sa.Column(
            "profile_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _created_at(),
        sa.Column("password_changed_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "auth_sessions",
        _id(),
        _profile_fk("profile_id", nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        _created_at(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("idx_auth_sessions_profile_id", "auth_sessions", ["profile_id"])

    # =========================================================================
    # PEOPLE
    # =========================================================================

    op.create_table(
        "residents",
        _id(),
        _created_at(),
        sa.Column(
            "profile_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("room_number", sa.String(20), nullable=False),
        sa.Column("emergency_contact", sa.Text(), nullable=False),
        sa.Column("medical_conditions", postgresql.JSONB(), nullable=False),
        sa.Column("care_level", enum("care_level_enum"), nullable=False),
    )
    op.create_index("idx_residents_care_level", "residents", ["care_level"])

    op.create_table(
        "staff",
        _id(),
        _created_at(),
        sa.Column(
            "profile_id",
            sa.Uuid(),
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("department", sa.String(100), nullable=False),
        sa.Column("position", sa.String(100), nullable=False),
        sa.Column("shift", enum("shift_enum"), nullable=False),
    )
    op.create_index("idx_staff_department", "staff", ["department"])

    op.create_table(
        "family_resident_links",
        _id(),
        _created_at(),
        _profile_fk("family_profile_id", nullable=False),
        _profile_fk("resident_profile_id", nullable=False),
        sa.Column("relationship_label", sa.String(50), nullable=True),
        sa.UniqueConstraint(
            "family_profile_id", "resident_profile_id", name="uq_family_resident"
        ),
    )
    op.create_index("idx_family_links_family", "family_resident_links", ["family_profile_id"])

    # =========================================================================
    # CLINICAL
    # =========================================================================

    op.create_table(
        "incidents",
        _id(),
        _created_at(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("severity", enum("incident_severity_enum"), nullable=False),
        sa.Column("status", enum("incident_status_enum"), nullable=False),
        _profile_fk("reported_by"),
        _profile_fk("assigned_to", ondelete=None),
        sa.Column("resident_id", sa.Uuid(), sa.ForeignKey("residents.id"), nullable=True),
    )
    op.create_index("idx_incidents_status", "incidents", ["status"])
    op.create_index("idx_incidents_resident_id", "incidents", ["resident_id"])

    op.create_table(
        "medications",
        _id(),
        _created_at(),
        sa.Column(
            "resident_id",
            sa.Uuid(),
            sa.ForeignKey("residents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("dosage", sa.String(100), nullable=False),
        sa.Column("frequency", sa.String(100), nullable=False),
        _profile_fk("prescribed_by"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("idx_medications_resident_id", "medications", ["resident_id"])

    op.create_table(
        "medication_log",
        _id(),
        _created_at(),
        sa.Column(
            "medication_id",
            sa.Uuid(),
            sa.ForeignKey("medications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "resident_id",
            sa.Uuid(),
            sa.ForeignKey("residents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("administered_at", sa.DateTime(timezone=True), nullable=False),
        _profile_fk("administered_by", ondelete="SET NULL"),
        sa.Column("status", enum("dose_status_enum"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("idx_medication_log_medication_id", "medication_log", ["medication_id"])
    op.create_index("idx_medication_log_resident_id", "medication_log", ["resident_id"])
    op.create_index("idx_medication_log_administered_at", "medication_log", ["administered_at"])

    op.create_table(
        "care_plans",
        _id(),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "resident_id",
            sa.Uuid(),
            sa.ForeignKey("residents.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("goals", postgresql.JSONB(), nullable=False),
        _profile_fk("created_by"),
    )
    op.create_index("idx_care_plans_resident_id", "care_plans", ["resident_id"])

    op.create_table(
        "care_routines",
        _id(),
        _created_at(),
        sa.Column(
            "care_plan_id",
            sa.Uuid(),
            sa.ForeignKey("care_plans.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("frequency", sa.String(100), nullable=False),
        sa.Column("time_of_day", sa.String(50), nullable=False),
        sa.Column("assigned_to", postgresql.JSONB(), nullable=False),
    )
    op.create_index("idx_care_routines_care_plan_id", "care_routines", ["care_plan_id"])

    # =========================================================================
    # ACTIVITY
    # =========================================================================

    op.create_table(
        "events",
        _id(),
        _created_at(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        _profile_fk("organizer_id"),
        sa.Column("attendees", postgresql.JSONB(), nullable=False),
    )
    op.create_index("idx_events_start_time", "events", ["start_time"])

    op.create_table(
        "announcements",
        _id(),
        _created_at(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        _profile_fk("author_id"),
        sa.Column("priority", enum("priority_enum"), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "tasks",
        _id(),
        _created_at(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _profile_fk("assigned_to", nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("priority", enum("priority_enum"), nullable=False),
        sa.Column("status", enum("task_status_enum"), nullable=False),
    )
    op.create_index("idx_tasks_assigned_to", "tasks", ["assigned_to"])

    op.create_table(
        "todos",
        _id(),
        _created_at(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _profile_fk("assigned_to", nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False),
    )
    op.create_index("idx_todos_assigned_to", "todos", ["assigned_to"])

    # =========================================================================
    # MESSAGING
    # =========================================================================

    op.create_table(
        "chat_messages",
        _id(),
        _created_at(),
        _profile_fk("sender_id", nullable=False),
        _profile_fk("receiver_id", nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
    )
    op.create_index("idx_chat_messages_pair", "chat_messages", ["sender_id", "receiver_id"])
    op.create_index("idx_chat_messages_created_at", "chat_messages", ["created_at"])

    op.create_table(
        "notifications",
        _id(),
        _created_at(),
        _profile_fk("user_id", nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("type", enum("notification_type_enum"), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False),
    )
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "read"])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    for table in (
        "notifications",
        "chat_messages",
        "todos",
        "tasks",
        "announcements",
        "events",
        "care_routines",
        "care_plans",
        "medication_log",
        "medications",
        "incidents",
        "family_resident_links",
        "staff",
        "residents",
        "auth_sessions",
        "credentials",
        "profiles",
    ):
        op.drop_table(table)

    for name in reversed(ENUMS):
        op.execute(f"DROP TYPE IF EXISTS {name}")
