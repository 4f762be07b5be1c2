"""Primary entity store, audit_logs and exception_logs.

Revision ID: 001_audit_pipeline
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001_audit_pipeline"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def upgrade() -> None:
    op.create_table(
        "entities",
        sa.Column("collection", sa.Text, nullable=False),
        sa.Column("id", sa.Text, nullable=False),
        sa.Column(
            "document",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.PrimaryKeyConstraint("collection", "id", name="pk_entities"),
    )

    # event_id sin UNIQUE: at-least-once puede duplicar en redelivery.
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger, sa.Identity(), primary_key=True),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("username", sa.Text, nullable=True),
        sa.Column("user_id", sa.Text, nullable=True),
        sa.Column("organization_id", sa.Text, nullable=True),
        sa.Column("url_domain", sa.Text, nullable=True),
        sa.Column("ip_address", sa.Text, nullable=True),
        sa.Column("entity_name", sa.Text, nullable=False),
        sa.Column("entity_id", sa.Text, nullable=True),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("old_value", sa.Text, nullable=True),
        sa.Column("new_value", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.CheckConstraint(
            "action IN ('CREATE', 'UPDATE', 'DELETE')", name="ck_audit_logs_action"
        ),
    )
    op.create_index("ix_audit_logs_username", "audit_logs", ["username"])
    op.create_index(
        "ix_audit_logs_entity", "audit_logs", ["entity_name", "entity_id"]
    )
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_occurred_at", "audit_logs", ["occurred_at"])

    op.create_table(
        "exception_logs",
        sa.Column("id", sa.BigInteger, sa.Identity(), primary_key=True),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("exception_type", sa.Text, nullable=False),
        sa.Column("exception_message", sa.Text, nullable=True),
        sa.Column("stack_trace", sa.Text, nullable=True),
        sa.Column("class_name", sa.Text, nullable=True),
        sa.Column("method_name", sa.Text, nullable=True),
        sa.Column("request_url", sa.Text, nullable=True),
        sa.Column("request_method", sa.Text, nullable=True),
        sa.Column("request_parameters", sa.Text, nullable=True),
        sa.Column("username", sa.Text, nullable=True),
        sa.Column("user_id", sa.Text, nullable=True),
        sa.Column("organization_id", sa.Text, nullable=True),
        sa.Column("url_domain", sa.Text, nullable=True),
        sa.Column("ip_address", sa.Text, nullable=True),
        sa.Column("http_status", sa.Integer, nullable=True),
        sa.Column("description", sa.Text, nullable=False, server_default=""),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    )
    op.create_index(
        "ix_exception_logs_exception_type", "exception_logs", ["exception_type"]
    )
    op.create_index("ix_exception_logs_username", "exception_logs", ["username"])
    op.create_index("ix_exception_logs_class_name", "exception_logs", ["class_name"])
    op.create_index(
        "ix_exception_logs_occurred_at", "exception_logs", ["occurred_at"]
    )


def downgrade() -> None:
    op.drop_table("exception_logs")
    op.drop_table("audit_logs")
    op.drop_table("entities")
