"""Machine catalog queries."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import store_unavailable
from ..models import Machine
from ..services.flow_rules import now_utc
from ..services.machine_catalog import DEFAULT_MACHINES

logger = logging.getLogger(__name__)


def _ordered(db: Session) -> list[Machine]:
    return db.query(Machine).order_by(Machine.created_at, Machine.id).all()


def list_machines(db: Session, *, seed_defaults: bool = True) -> list[Machine]:
    """All machines ordered by creation time; seeds the default set into an empty table."""
    try:
        machines = _ordered(db)
        if machines or not seed_defaults:
            return machines

        ts = now_utc()
        for data in DEFAULT_MACHINES:
            db.add(Machine(created_at=ts, updated_at=ts, **data))
        db.commit()
        logger.info("machines.seeded count=%s", len(DEFAULT_MACHINES))
        return _ordered(db)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to list machines")
        raise store_unavailable("list_machines") from exc


def get_machine(db: Session, machine_id: str) -> Optional[Machine]:
    try:
        return db.query(Machine).filter(Machine.id == machine_id).first()
    except SQLAlchemyError as exc:
        logger.exception("Failed to fetch machine %s", machine_id)
        raise store_unavailable("get_machine") from exc
