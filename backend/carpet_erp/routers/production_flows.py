"""Production flow endpoints."""
from typing import Optional

from fastapi import APIRouter, Body, Depends

from ..dependencies import get_flow_hooks, get_flow_store, get_user_name
from ..domain_errors import flow_not_found
from ..repositories.flow_store import FlowStore
from ..schemas import (
    AddStepRequest,
    AdvanceRequest,
    CompleteCurrentStepRequest,
    FlowProgressResponse,
    ProductionFlow,
    StepCommandRequest,
)
from ..use_cases.production_flow import (
    FlowUseCaseHooks,
    add_step_use_case,
    advance_flow_use_case,
    complete_current_step_use_case,
    flow_progress_use_case,
    get_flow_by_id_use_case,
    get_flow_use_case,
    get_or_create_flow_use_case,
    update_step_use_case,
)

router = APIRouter(prefix="/production-flows", tags=["production-flows"])


@router.get("/by-unit/{production_product_id}", response_model=ProductionFlow)
def get_flow_for_unit(
    production_product_id: str,
    store: FlowStore = Depends(get_flow_store),
):
    """Get the flow tracking a production unit (404 when none was created yet)."""
    flow = get_flow_use_case(store=store, production_product_id=production_product_id)
    if flow is None:
        raise flow_not_found(unit_id=production_product_id)
    return flow


@router.post("/by-unit/{production_product_id}", response_model=ProductionFlow)
def open_flow_for_unit(
    production_product_id: str,
    user_name: Optional[str] = Depends(get_user_name),
    store: FlowStore = Depends(get_flow_store),
    hooks: FlowUseCaseHooks = Depends(get_flow_hooks),
):
    """Get the unit's flow, creating the default four-step flow on first access."""
    return get_or_create_flow_use_case(
        store=store,
        production_product_id=production_product_id,
        user_name=user_name,
        hooks=hooks,
    )


@router.get("/{flow_id}", response_model=ProductionFlow)
def get_flow(
    flow_id: str,
    store: FlowStore = Depends(get_flow_store),
):
    return get_flow_by_id_use_case(store=store, flow_id=flow_id)


@router.get("/{flow_id}/progress", response_model=FlowProgressResponse)
def get_flow_progress(
    flow_id: str,
    store: FlowStore = Depends(get_flow_store),
):
    return flow_progress_use_case(store=store, flow_id=flow_id)


@router.post("/{flow_id}/steps", response_model=ProductionFlow)
def add_step(
    flow_id: str,
    payload: AddStepRequest,
    user_name: Optional[str] = Depends(get_user_name),
    store: FlowStore = Depends(get_flow_store),
    hooks: FlowUseCaseHooks = Depends(get_flow_hooks),
):
    """Insert a machine-operation step right before the wastage step."""
    return add_step_use_case(
        store=store,
        flow_id=flow_id,
        data=payload,
        expected_version=payload.expected_version,
        user_name=user_name,
        hooks=hooks,
    )


@router.post("/{flow_id}/steps/{step_id}/commands", response_model=ProductionFlow)
def apply_step_command(
    flow_id: str,
    step_id: str,
    payload: StepCommandRequest,
    user_name: Optional[str] = Depends(get_user_name),
    store: FlowStore = Depends(get_flow_store),
    hooks: FlowUseCaseHooks = Depends(get_flow_hooks),
):
    return update_step_use_case(
        store=store,
        flow_id=flow_id,
        step_id=step_id,
        command=payload.command,
        expected_version=payload.expected_version,
        user_name=user_name,
        hooks=hooks,
    )


@router.post("/{flow_id}/advance", response_model=ProductionFlow)
def advance_flow(
    flow_id: str,
    payload: Optional[AdvanceRequest] = Body(default=None),
    user_name: Optional[str] = Depends(get_user_name),
    store: FlowStore = Depends(get_flow_store),
    hooks: FlowUseCaseHooks = Depends(get_flow_hooks),
):
    return advance_flow_use_case(
        store=store,
        flow_id=flow_id,
        expected_version=payload.expected_version if payload else None,
        user_name=user_name,
        hooks=hooks,
    )


@router.post("/{flow_id}/complete-current", response_model=ProductionFlow)
def complete_current_step(
    flow_id: str,
    payload: CompleteCurrentStepRequest,
    user_name: Optional[str] = Depends(get_user_name),
    store: FlowStore = Depends(get_flow_store),
    hooks: FlowUseCaseHooks = Depends(get_flow_hooks),
):
    """Complete the current step and move on, in one write."""
    return complete_current_step_use_case(
        store=store,
        flow_id=flow_id,
        inspector_name=payload.inspector_name,
        quality_notes=payload.quality_notes,
        machine_id=payload.machine_id,
        expected_version=payload.expected_version,
        user_name=user_name,
        hooks=hooks,
    )
