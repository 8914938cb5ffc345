"""Production flow use-cases: repository access, step mutation and sequencing."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..domain_errors import DomainError, flow_not_found, machine_not_found, step_not_found
from ..repositories.flow_store import FlowStore
from ..schemas import (
    AssignMachine,
    CompleteStep,
    FlowProgressResponse,
    ProductionFlow,
    ProductionStep,
    ProductionStepCreate,
    SendToQualityCheck,
    StartStep,
    StepCommand,
)
from ..services.flow_rules import (
    MANUAL_PROCESS_LABEL,
    UNKNOWN_MACHINE_LABEL,
    advance_flow,
    completed_step_count,
    create_default_flow,
    current_step,
    find_step,
    insert_machine_step,
    now_utc,
    progress_percentage,
)
from ..services.step_transitions import (
    apply_status_timestamps,
    ensure_machine_assignable,
    ensure_quality_step,
    validate_step_transition,
)

logger = logging.getLogger(__name__)


@dataclass
class FlowUseCaseHooks:
    """Collaborators injected by the HTTP layer."""

    now_utc: Callable[[], datetime] = now_utc
    record_audit: Callable[..., None] | None = None


DEFAULT_HOOKS = FlowUseCaseHooks()


def _audit(
    hooks: FlowUseCaseHooks,
    *,
    action: str,
    flow: ProductionFlow,
    user_name: Optional[str],
    details: dict[str, Any],
) -> None:
    if hooks.record_audit is None:
        return
    hooks.record_audit(
        action=action,
        entity_type="production_flow",
        entity_id=flow.id,
        user_name=user_name,
        details={"production_product_id": flow.production_product_id, **details},
    )


def _get_flow_or_404(store: FlowStore, flow_id: str) -> ProductionFlow:
    flow = store.get_flow(flow_id)
    if flow is None:
        raise flow_not_found(flow_id=flow_id)
    return flow


def _find_machine(store: FlowStore, machine_id: str):
    return next((m for m in store.list_machines() if m.id == machine_id), None)


# ---------------------------------------------------------------------------
# Flow repository
# ---------------------------------------------------------------------------

def create_default_flow_use_case(
    *,
    store: FlowStore,
    production_product_id: str,
    hooks: FlowUseCaseHooks = DEFAULT_HOOKS,
) -> ProductionFlow:
    """Build (without saving) the canonical four-step flow for a production unit."""
    return create_default_flow(
        production_product_id,
        store.list_machines(),
        at=hooks.now_utc(),
    )


def get_flow_use_case(*, store: FlowStore, production_product_id: str) -> Optional[ProductionFlow]:
    """Existing flow for the unit, or None. Never creates one."""
    return store.get_flow_by_unit(production_product_id)


def get_flow_by_id_use_case(*, store: FlowStore, flow_id: str) -> ProductionFlow:
    return _get_flow_or_404(store, flow_id)


def save_flow_use_case(
    *,
    store: FlowStore,
    flow: ProductionFlow,
    expected_version: Optional[int] = None,
) -> ProductionFlow:
    return store.save_flow(flow, expected_version=expected_version)


def get_or_create_flow_use_case(
    *,
    store: FlowStore,
    production_product_id: str,
    user_name: Optional[str] = None,
    hooks: FlowUseCaseHooks = DEFAULT_HOOKS,
) -> ProductionFlow:
    """Load the unit's flow, creating and saving the default one on first access."""
    existing = store.get_flow_by_unit(production_product_id)
    if existing is not None:
        return existing

    flow = create_default_flow_use_case(
        store=store,
        production_product_id=production_product_id,
        hooks=hooks,
    )
    _audit(
        hooks,
        action="flow_created",
        flow=flow,
        user_name=user_name,
        details={"steps": len(flow.steps)},
    )
    try:
        saved = store.save_flow(flow, expected_version=0)
    except DomainError as error:
        if error.code != "FLOW_ALREADY_EXISTS":
            raise
        # Another session created it first.
        concurrent = store.get_flow_by_unit(production_product_id)
        if concurrent is None:
            raise
        return concurrent

    logger.info("flow.created flow=%s unit=%s", saved.id, production_product_id)
    return saved


# ---------------------------------------------------------------------------
# Step mutator
# ---------------------------------------------------------------------------

def _transition(step: ProductionStep, next_status: str, *, at: datetime) -> bool:
    try:
        validate_step_transition(current_status=step.status, next_status=next_status)
    except ValueError as error:
        raise DomainError(
            code="STEP_INVALID_TRANSITION",
            http_status=400,
            message=str(error),
            details={"step_id": step.id, "status": step.status, "requested": next_status},
        ) from error

    if next_status == step.status:
        return False

    stamps = apply_status_timestamps(
        next_status=next_status,
        start_time=step.start_time,
        end_time=step.end_time,
        at=at,
    )
    step.status = next_status
    step.start_time = stamps["start_time"]
    step.end_time = stamps["end_time"]
    return True


def _record_inspection(step: ProductionStep, *, inspector_name: Optional[str], quality_notes: Optional[str]) -> None:
    if inspector_name is not None:
        step.inspector_name = inspector_name
    if quality_notes is not None:
        step.quality_notes = quality_notes


def _assign_machine(store: FlowStore, step: ProductionStep, machine_id: str) -> bool:
    try:
        ensure_machine_assignable(step)
    except ValueError as error:
        raise DomainError(
            code="STEP_MACHINE_LOCKED",
            http_status=400,
            message=str(error),
            details={"step_id": step.id},
        ) from error

    machine = _find_machine(store, machine_id)
    if machine is None:
        raise machine_not_found(machine_id=machine_id)

    if step.machine_id == machine.id and step.machine_name == machine.name:
        return False
    step.machine_id = machine.id
    step.machine_name = machine.name
    return True


def apply_step_command(
    *,
    store: FlowStore,
    step: ProductionStep,
    command: StepCommand,
    at: datetime,
) -> bool:
    """Validate and apply one command to a step in place. Returns True when the step changed."""
    if isinstance(command, StartStep):
        return _transition(step, "in_progress", at=at)

    if isinstance(command, CompleteStep):
        changed = _transition(step, "completed", at=at)
        if changed:
            _record_inspection(
                step,
                inspector_name=command.inspector_name,
                quality_notes=command.quality_notes,
            )
        return changed

    if isinstance(command, SendToQualityCheck):
        try:
            ensure_quality_step(step)
        except ValueError as error:
            raise DomainError(
                code="STEP_NOT_QUALITY_STEP",
                http_status=400,
                message=str(error),
                details={"step_id": step.id},
            ) from error
        changed = _transition(step, "quality_check", at=at)
        _record_inspection(
            step,
            inspector_name=command.inspector_name,
            quality_notes=command.quality_notes,
        )
        return changed or command.inspector_name is not None or command.quality_notes is not None

    # AssignMachine, the last member of the union.
    return _assign_machine(store, step, command.machine_id)


def update_step_use_case(
    *,
    store: FlowStore,
    flow_id: str,
    step_id: str,
    command: StepCommand,
    expected_version: Optional[int] = None,
    user_name: Optional[str] = None,
    hooks: FlowUseCaseHooks = DEFAULT_HOOKS,
) -> ProductionFlow:
    """Apply a step command and persist the whole flow. Last writer wins without expected_version."""
    flow = _get_flow_or_404(store, flow_id)
    step = find_step(flow, step_id)
    if step is None:
        raise step_not_found(flow_id=flow_id, step_id=step_id)

    changed = apply_step_command(store=store, step=step, command=command, at=hooks.now_utc())
    # Idempotent: nothing to write.
    if not changed:
        return flow

    _audit(
        hooks,
        action="step_updated",
        flow=flow,
        user_name=user_name,
        details={"step_id": step.id, "command": command.kind, "status": step.status},
    )
    saved = store.save_flow(flow, expected_version=expected_version)
    logger.info("flow.step_updated flow=%s step=%s command=%s status=%s", flow.id, step.id, command.kind, step.status)
    return saved


def add_step_use_case(
    *,
    store: FlowStore,
    flow_id: str,
    data: ProductionStepCreate,
    expected_version: Optional[int] = None,
    user_name: Optional[str] = None,
    hooks: FlowUseCaseHooks = DEFAULT_HOOKS,
) -> ProductionFlow:
    """Insert a machine-operation step before the wastage step and renumber."""
    flow = _get_flow_or_404(store, flow_id)

    if data.machine_id:
        machine = _find_machine(store, data.machine_id)
        machine_name = machine.name if machine is not None else UNKNOWN_MACHINE_LABEL
    else:
        machine_name = MANUAL_PROCESS_LABEL

    step = insert_machine_step(flow, data, machine_name=machine_name, at=hooks.now_utc())

    _audit(
        hooks,
        action="step_added",
        flow=flow,
        user_name=user_name,
        details={"step_id": step.id, "step_number": step.step_number, "name": step.name},
    )
    saved = store.save_flow(flow, expected_version=expected_version)
    logger.info("flow.step_added flow=%s step=%s position=%s", flow.id, step.id, step.step_number)
    return saved


# ---------------------------------------------------------------------------
# Step sequencer
# ---------------------------------------------------------------------------

def advance_flow_use_case(
    *,
    store: FlowStore,
    flow_id: str,
    expected_version: Optional[int] = None,
    user_name: Optional[str] = None,
    hooks: FlowUseCaseHooks = DEFAULT_HOOKS,
) -> ProductionFlow:
    """Advance the pointer (no-op at the last step) and recompute the flow status."""
    flow = _get_flow_or_404(store, flow_id)
    old_status = flow.status
    moved = advance_flow(flow, at=hooks.now_utc())

    _audit(
        hooks,
        action="flow_advanced",
        flow=flow,
        user_name=user_name,
        details={
            "moved": moved,
            "current_step_index": flow.current_step_index,
            "oldStatus": old_status,
            "newStatus": flow.status,
        },
    )
    saved = store.save_flow(flow, expected_version=expected_version)
    logger.info(
        "flow.advanced flow=%s index=%s status=%s moved=%s",
        flow.id,
        flow.current_step_index,
        flow.status,
        moved,
    )
    return saved


def complete_current_step_use_case(
    *,
    store: FlowStore,
    flow_id: str,
    inspector_name: Optional[str] = None,
    quality_notes: Optional[str] = None,
    machine_id: Optional[str] = None,
    expected_version: Optional[int] = None,
    user_name: Optional[str] = None,
    hooks: FlowUseCaseHooks = DEFAULT_HOOKS,
) -> ProductionFlow:
    """Complete the current step and advance, written in a single save."""
    flow = _get_flow_or_404(store, flow_id)
    step = current_step(flow)
    if step is None:
        raise DomainError(
            code="STEP_NOT_FOUND",
            http_status=404,
            message="Production flow has no current step",
            details={"flow_id": flow_id, "current_step_index": flow.current_step_index},
        )

    at = hooks.now_utc()
    if machine_id:
        apply_step_command(store=store, step=step, command=AssignMachine(machine_id=machine_id), at=at)
    apply_step_command(
        store=store,
        step=step,
        command=CompleteStep(inspector_name=inspector_name, quality_notes=quality_notes),
        at=at,
    )
    completed_step_id = step.id
    moved = advance_flow(flow, at=at)

    _audit(
        hooks,
        action="step_updated",
        flow=flow,
        user_name=user_name or inspector_name,
        details={
            "step_id": completed_step_id,
            "command": "complete",
            "status": "completed",
            "moved": moved,
            "current_step_index": flow.current_step_index,
            "newStatus": flow.status,
        },
    )
    saved = store.save_flow(flow, expected_version=expected_version)
    logger.info(
        "flow.step_completed flow=%s step=%s index=%s status=%s",
        flow.id,
        completed_step_id,
        flow.current_step_index,
        flow.status,
    )
    return saved


def flow_progress_use_case(*, store: FlowStore, flow_id: str) -> FlowProgressResponse:
    flow = _get_flow_or_404(store, flow_id)
    return FlowProgressResponse(
        flow_id=flow.id,
        status=flow.status,
        current_step_index=flow.current_step_index,
        total_steps=len(flow.steps),
        completed_steps=completed_step_count(flow),
        progress_percentage=progress_percentage(flow),
    )
