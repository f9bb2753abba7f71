"""initial_checkin_tables

Revision ID: 3f2a9c1d7b10
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

import sqlalchemy as sa
import sqlalchemy_utils
from alembic import op

# revision identifiers, used by Alembic.
revision = "3f2a9c1d7b10"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("uuid", sqlalchemy_utils.types.uuid.UUIDType(binary=False), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("uuid"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "checkin_events",
        sa.Column("uuid", sqlalchemy_utils.types.uuid.UUIDType(binary=False), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(length=500), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("uuid"),
    )

    op.create_table(
        "attendees",
        sa.Column("uuid", sqlalchemy_utils.types.uuid.UUIDType(binary=False), nullable=False),
        sa.Column("event_id", sqlalchemy_utils.types.uuid.UUIDType(binary=False), nullable=False),
        sa.Column("user_id", sqlalchemy_utils.types.uuid.UUIDType(binary=False), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("adults", sa.Integer(), nullable=False),
        sa.Column("kids", sa.Integer(), nullable=False),
        sa.Column("adult_veg_meals", sa.Integer(), nullable=False),
        sa.Column("adult_non_veg_meals", sa.Integer(), nullable=False),
        sa.Column("kid_meals", sa.Integer(), nullable=False),
        sa.Column(
            "email_status",
            sa.Enum("PENDING", "SENT", "FAILED", "RETRY_SCHEDULED", name="email_status_enum"),
            nullable=False,
        ),
        sa.Column("email_sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("email_retry_count", sa.Integer(), nullable=False),
        sa.Column("last_error_message", sa.Text(), nullable=True),
        sa.Column("is_checked_in", sa.Boolean(), nullable=False),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_by", sa.String(length=255), nullable=True),
        sa.Column("credential_token", sa.String(length=255), nullable=True),
        sa.Column("credential_image", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["event_id"], ["checkin_events.uuid"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.uuid"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("uuid"),
        sa.UniqueConstraint("event_id", "user_id", name="uq_attendee_event_user"),
    )
    op.create_index(op.f("ix_attendees_event_id"), "attendees", ["event_id"], unique=False)
    op.create_index(op.f("ix_attendees_user_id"), "attendees", ["user_id"], unique=False)
    op.create_index(op.f("ix_attendees_email"), "attendees", ["email"], unique=False)
    op.create_index(op.f("ix_attendees_email_status"), "attendees", ["email_status"], unique=False)
    op.create_index(
        op.f("ix_attendees_credential_token"), "attendees", ["credential_token"], unique=True
    )


def downgrade() -> None:
    op.drop_index(op.f("ix_attendees_credential_token"), table_name="attendees")
    op.drop_index(op.f("ix_attendees_email_status"), table_name="attendees")
    op.drop_index(op.f("ix_attendees_email"), table_name="attendees")
    op.drop_index(op.f("ix_attendees_user_id"), table_name="attendees")
    op.drop_index(op.f("ix_attendees_event_id"), table_name="attendees")
    op.drop_table("attendees")
    op.drop_table("checkin_events")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    # Enum types are not dropped with the table on PostgreSQL
    sa.Enum(name="email_status_enum").drop(op.get_bind(), checkfirst=True)
