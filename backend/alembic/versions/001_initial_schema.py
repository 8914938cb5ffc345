"""initial schema: machines, production_flows, audit_events

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _json_type():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "machines",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(32), nullable=False, server_default="other"),
        sa.Column("status", sa.String(32), nullable=False, server_default="available"),
        sa.Column("capacity", sa.String(255), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "type IN ('cutting', 'needle-punching', 'testing', 'other')",
            name="chk_machine_type",
        ),
        sa.CheckConstraint(
            "status IN ('available', 'busy', 'maintenance')",
            name="chk_machine_status",
        ),
    )
    op.create_index("ix_machines_type", "machines", ["type"])
    op.create_index("ix_machines_status", "machines", ["status"])
    op.create_index("ix_machines_created_at", "machines", ["created_at"])

    op.create_table(
        "production_flows",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("production_product_id", sa.String(128), nullable=False),
        sa.Column("steps", _json_type(), nullable=False),
        sa.Column("current_step_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(32), nullable=False, server_default="not_started"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed')",
            name="chk_flow_status",
        ),
        sa.CheckConstraint("current_step_index >= 0", name="chk_flow_step_index"),
    )
    op.create_index(
        "ix_production_flows_production_product_id",
        "production_flows",
        ["production_product_id"],
        unique=True,
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(64), nullable=False),
        sa.Column("user_name", sa.String(255), nullable=True),
        sa.Column("details", _json_type(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "action IN ('flow_created', 'step_updated', 'step_added', 'flow_advanced', "
            "'machine_created', 'machine_updated', 'machine_deleted')",
            name="chk_audit_action",
        ),
    )
    op.create_index("ix_audit_events_action", "audit_events", ["action"])
    op.create_index("idx_audit_entity", "audit_events", ["entity_type", "entity_id"])


def downgrade() -> None:
    op.drop_index("idx_audit_entity", table_name="audit_events")
    op.drop_index("ix_audit_events_action", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_production_flows_production_product_id", table_name="production_flows")
    op.drop_table("production_flows")
    op.drop_index("ix_machines_created_at", table_name="machines")
    op.drop_index("ix_machines_status", table_name="machines")
    op.drop_index("ix_machines_type", table_name="machines")
    op.drop_table("machines")
