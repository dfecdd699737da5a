"""initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-18 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")

ENUMS = {
    "user_role": ("admin", "agent"),
    "ticket_status": ("OPEN", "PENDING", "RESOLVED", "CLOSED"),
    "ticket_priority": ("LOW", "MEDIUM", "HIGH", "URGENT"),
    "message_author_type": ("AGENT", "CONTACT", "SYSTEM"),
    "automation_trigger": ("TICKET_CREATED", "TICKET_UPDATED"),
    "activity_type": ("CONNECTION", "FETCH", "SEND", "ERROR", "INFO"),
    "activity_level": ("DEBUG", "INFO", "WARN", "ERROR"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name)


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("role", _enum("user_role"), nullable=False, server_default="agent"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "groups",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
    )

    op.create_table(
        "contacts",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_contacts_email"), "contacts", ["email"], unique=True)

    op.create_table(
        "tickets",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("ticket_number", sa.Integer(), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", _enum("ticket_status"), nullable=False),
        sa.Column("priority", _enum("ticket_priority"), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False, server_default="PORTAL"),
        sa.Column("assignee_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("group_id", sa.String(length=36), sa.ForeignKey("groups.id", ondelete="SET NULL"), nullable=True),
        sa.Column("contact_id", sa.String(length=36), sa.ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("ticket_number", name="uq_tickets_ticket_number"),
    )
    op.create_index(op.f("ix_tickets_ticket_number"), "tickets", ["ticket_number"])
    op.create_index(op.f("ix_tickets_source"), "tickets", ["source"])
    op.create_index(op.f("ix_tickets_assignee_id"), "tickets", ["assignee_id"])
    op.create_index(op.f("ix_tickets_group_id"), "tickets", ["group_id"])
    op.create_index(op.f("ix_tickets_contact_id"), "tickets", ["contact_id"])

    op.create_table(
        "ticket_messages",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("ticket_id", sa.String(length=36), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("internal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("author_type", _enum("message_author_type"), nullable=False),
        sa.Column("author_id", sa.String(length=36), nullable=True),
        sa.Column("author_name", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_ticket_messages_ticket_id"), "ticket_messages", ["ticket_id"])

    op.create_table(
        "tags",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=80), nullable=False, unique=True),
        sa.Column("color", sa.String(length=16), nullable=False, server_default="#6366f1"),
    )

    op.create_table(
        "ticket_tags",
        sa.Column("ticket_id", sa.String(length=36), sa.ForeignKey("tickets.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("tag_id", sa.String(length=36), sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "automations",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("trigger", _enum("automation_trigger"), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("conditions", JSON_TYPE, nullable=False),
        sa.Column("actions", JSON_TYPE, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_automations_trigger_active_priority",
        "automations",
        ["trigger", "is_active", "priority"],
    )

    op.create_table(
        "automation_events",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("ticket_id", sa.String(length=36), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("actor", sa.String(length=64), nullable=False),
        sa.Column("before_snapshot", JSON_TYPE, nullable=True),
        sa.Column("after_snapshot", JSON_TYPE, nullable=True),
        sa.Column("meta", JSON_TYPE, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_automation_events_ticket_id", "automation_events", ["ticket_id"])

    op.create_table(
        "email_channels",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("imap_host", sa.String(length=255), nullable=True),
        sa.Column("imap_port", sa.Integer(), nullable=True),
        sa.Column("imap_user", sa.String(length=255), nullable=True),
        sa.Column("imap_password", sa.String(length=255), nullable=True),
        sa.Column("imap_secure", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "email_activity_logs",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("channel_id", sa.String(length=36), nullable=True),
        sa.Column("channel_name", sa.String(length=255), nullable=True),
        sa.Column("type", _enum("activity_type"), nullable=False),
        sa.Column("level", _enum("activity_level"), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("details", JSON_TYPE, nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_email_activity_logs_created_at"), "email_activity_logs", ["created_at"])
    op.create_index(
        "ix_email_activity_logs_channel_created",
        "email_activity_logs",
        ["channel_id", "created_at"],
    )

    counters = op.create_table(
        "counters",
        sa.Column("name", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("value", sa.Integer(), nullable=False, server_default="0"),
    )
    op.bulk_insert(counters, [{"name": "ticket_number", "value": 0}])


def downgrade() -> None:
    op.drop_table("counters")
    op.drop_index("ix_email_activity_logs_channel_created", table_name="email_activity_logs")
    op.drop_index(op.f("ix_email_activity_logs_created_at"), table_name="email_activity_logs")
    op.drop_table("email_activity_logs")
    op.drop_table("email_channels")
    op.drop_index("ix_automation_events_ticket_id", table_name="automation_events")
    op.drop_table("automation_events")
    op.drop_index("ix_automations_trigger_active_priority", table_name="automations")
    op.drop_table("automations")
    op.drop_table("ticket_tags")
    op.drop_table("tags")
    op.drop_index(op.f("ix_ticket_messages_ticket_id"), table_name="ticket_messages")
    op.drop_table("ticket_messages")
    for column in ("contact_id", "group_id", "assignee_id", "source", "ticket_number"):
        op.drop_index(op.f(f"ix_tickets_{column}"), table_name="tickets")
    op.drop_table("tickets")
    op.drop_index(op.f("ix_contacts_email"), table_name="contacts")
    op.drop_table("contacts")
    op.drop_table("groups")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name in ENUMS:
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
