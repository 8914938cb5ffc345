"""Machine catalog use-cases."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import machine_not_found, store_unavailable
from ..models import Machine
from ..repositories import machine_repo
from ..repositories.audit_repo import add_audit_event
from ..schemas import MachineCreate, MachineUpdate
from ..services.flow_rules import generate_id, now_utc
from ..services.machine_catalog import filter_machines

logger = logging.getLogger(__name__)


def _get_machine_or_404(db: Session, machine_id: str) -> Machine:
    machine = machine_repo.get_machine(db, machine_id)
    if machine is None:
        raise machine_not_found(machine_id=machine_id)
    return machine


def _commit(db: Session, operation: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to persist machine change (%s)", operation)
        raise store_unavailable(operation) from exc


def list_machines_use_case(
    *,
    db: Session,
    machine_type: Optional[str] = None,
    available_only: bool = False,
    seed_defaults: bool = True,
) -> list[Machine]:
    machines = machine_repo.list_machines(db, seed_defaults=seed_defaults)
    return filter_machines(machines, machine_type=machine_type, available_only=available_only)


def create_machine_use_case(
    *,
    db: Session,
    payload: MachineCreate,
    user_name: Optional[str] = None,
) -> Machine:
    ts = now_utc()
    machine = Machine(
        id=generate_id("MACH", at=ts),
        created_at=ts,
        updated_at=ts,
        **payload.model_dump(),
    )
    db.add(machine)
    add_audit_event(
        db,
        action="machine_created",
        entity_type="machine",
        entity_id=machine.id,
        user_name=user_name,
        details={"name": machine.name, "type": machine.type},
    )
    _commit(db, "create_machine")
    db.refresh(machine)
    logger.info("machine.created machine=%s type=%s", machine.id, machine.type)
    return machine


def update_machine_use_case(
    *,
    db: Session,
    machine_id: str,
    payload: MachineUpdate,
    user_name: Optional[str] = None,
) -> Machine:
    machine = _get_machine_or_404(db, machine_id)

    changes = payload.model_dump(exclude_unset=True)
    old_values = {field: getattr(machine, field) for field in changes}
    for field, value in changes.items():
        setattr(machine, field, value)
    machine.updated_at = now_utc()

    add_audit_event(
        db,
        action="machine_updated",
        entity_type="machine",
        entity_id=machine.id,
        user_name=user_name,
        details={"old": old_values, "new": changes},
    )
    _commit(db, "update_machine")
    db.refresh(machine)
    return machine


def delete_machine_use_case(
    *,
    db: Session,
    machine_id: str,
    user_name: Optional[str] = None,
) -> None:
    """Delete a machine. Steps keep their copied machine label."""
    machine = _get_machine_or_404(db, machine_id)
    db.delete(machine)
    add_audit_event(
        db,
        action="machine_deleted",
        entity_type="machine",
        entity_id=machine_id,
        user_name=user_name,
        details={"name": machine.name},
    )
    _commit(db, "delete_machine")
    logger.info("machine.deleted machine=%s", machine_id)
