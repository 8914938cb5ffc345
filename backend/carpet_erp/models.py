"""SQLAlchemy models for the machine catalog and production flows."""
from sqlalchemy import (
    JSON, CheckConstraint, Column, DateTime, Index, Integer, String, Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
import uuid

from .database import Base


# JSONB on Postgres, plain JSON elsewhere (SQLite in dev/tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


MACHINE_TYPES = ("cutting", "needle-punching", "testing", "other")
MACHINE_STATUSES = ("available", "busy", "maintenance")
FLOW_STATUSES = ("not_started", "in_progress", "completed")


class Machine(Base):
    """Physical machine that production steps can be assigned to."""
    __tablename__ = "machines"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False, default="other", index=True)
    status = Column(String(32), nullable=False, default="available", index=True)
    capacity = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(type.in_(MACHINE_TYPES), name="chk_machine_type"),
        CheckConstraint(status.in_(MACHINE_STATUSES), name="chk_machine_status"),
    )


class ProductionFlowRecord(Base):
    """Production flow for one production unit; steps are embedded as a JSON array."""
    __tablename__ = "production_flows"

    id = Column(String(64), primary_key=True)
    production_product_id = Column(String(128), nullable=False, unique=True, index=True)
    steps = Column(JSONType, nullable=False, default=list)
    current_step_index = Column(Integer, nullable=False, default=0)
    status = Column(String(32), nullable=False, default="not_started")
    # Optimistic concurrency token, bumped on every save.
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(status.in_(FLOW_STATUSES), name="chk_flow_status"),
        CheckConstraint("current_step_index >= 0", name="chk_flow_step_index"),
    )


class AuditEvent(Base):
    """Audit trail for flow and machine changes."""
    __tablename__ = "audit_events"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    action = Column(String(50), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False)
    user_name = Column(String(255), nullable=True)
    details = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            action.in_([
                "flow_created",
                "step_updated",
                "step_added",
                "flow_advanced",
                "machine_created",
                "machine_updated",
                "machine_deleted",
            ]),
            name="chk_audit_action",
        ),
        Index("idx_audit_entity", "entity_type", "entity_id"),
    )
