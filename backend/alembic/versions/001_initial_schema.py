"""Initial schema: users, events, tickets, scan_logs, audit_logs.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Users: admins and sellers share one table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        sa.Column("credential_format", sa.String(10), nullable=False, server_default="hashed"),
        sa.Column("role", sa.String(20), nullable=False, server_default="seller"),
        sa.Column("ticket_limit", sa.Integer(), nullable=False, server_default=sa.text("100")),
        sa.Column("tickets_sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("suspended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("whatsapp", sa.String(64), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("avatar_url", sa.String(1024), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("tickets_sold >= 0", name="check_tickets_sold_non_negative"),
        sa.CheckConstraint("ticket_limit >= 0", name="check_ticket_limit_non_negative"),
        # Last line of defence for concurrent issuance
        sa.CheckConstraint("tickets_sold <= ticket_limit", name="check_tickets_sold_lte_limit"),
        sa.CheckConstraint("role IN ('admin', 'seller')", name="check_user_role"),
        sa.CheckConstraint("credential_format IN ('legacy', 'hashed')", name="check_credential_format"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Events
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.Time(), nullable=False),
        sa.Column("venue", sa.String(255), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_active", "events", ["active"])

    # Tickets carry a snapshot of the event as it was at issuance
    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seller_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event_name", sa.String(255), nullable=False),
        sa.Column("event_date", sa.Date(), nullable=False),
        sa.Column("event_time", sa.Time(), nullable=False),
        sa.Column("event_venue", sa.String(255), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_whatsapp", sa.String(64), nullable=False),
        sa.Column("ticket_code", sa.String(64), nullable=False),
        sa.Column("qr_code_data", sa.Text(), nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="unused"),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('unused', 'used')", name="check_ticket_status"),
        sa.CheckConstraint("status = 'unused' OR scanned_at IS NOT NULL", name="check_used_ticket_scanned_at"),
    )
    op.create_index("ix_tickets_id", "tickets", ["id"])
    op.create_index("ix_tickets_event_id", "tickets", ["event_id"])
    op.create_index("ix_tickets_seller_id", "tickets", ["seller_id"])
    # UNIQUE ticket_code: the storage layer arbitrates code collisions
    op.create_index("ix_tickets_ticket_code", "tickets", ["ticket_code"], unique=True)
    op.create_index("ix_tickets_status", "tickets", ["status"])

    # Scan logs: one row per successful redemption
    op.create_table(
        "scan_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("ticket_code", sa.String(64), nullable=False),
        sa.Column("scanner_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_scan_logs_id", "scan_logs", ["id"])
    op.create_index("ix_scan_logs_ticket_id", "scan_logs", ["ticket_id"])
    op.create_index("ix_scan_logs_scanned_at", "scan_logs", ["scanned_at"])

    # Audit trail of administrative actions
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("target_type", sa.String(32), nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_logs")
    op.drop_table("scan_logs")
    op.drop_table("tickets")
    op.drop_table("events")
    op.drop_table("users")
