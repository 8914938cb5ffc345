"""In-memory collaborators and builders shared by the test modules."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from carpet_erp.domain_errors import DomainError
from carpet_erp.repositories.flow_store import version_conflict
from carpet_erp.schemas import MachineResponse, ProductionFlow, ProductionStep
from carpet_erp.services.machine_catalog import DEFAULT_MACHINES


FIXED_NOW = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class InMemoryFlowStore:
    """FlowStore fake keeping flows as JSON payloads, so every save is a full rewrite."""

    def __init__(self, machines: Optional[list[MachineResponse]] = None, *, seed_default_machines: bool = True):
        self.machines: list[MachineResponse] = list(machines or [])
        self.flows: dict[str, dict] = {}
        self.save_calls = 0
        self._seed_default_machines = seed_default_machines

    def list_machines(self) -> list[MachineResponse]:
        if not self.machines and self._seed_default_machines:
            self.machines = [MachineResponse(**data) for data in DEFAULT_MACHINES]
        return [machine.model_copy() for machine in self.machines]

    def get_flow_by_unit(self, production_product_id: str) -> Optional[ProductionFlow]:
        for payload in self.flows.values():
            if payload["production_product_id"] == production_product_id:
                return ProductionFlow.model_validate(payload)
        return None

    def get_flow(self, flow_id: str) -> Optional[ProductionFlow]:
        payload = self.flows.get(flow_id)
        return ProductionFlow.model_validate(payload) if payload else None

    def save_flow(self, flow: ProductionFlow, *, expected_version: Optional[int] = None) -> ProductionFlow:
        self.save_calls += 1
        stored = self.flows.get(flow.id)
        actual_version = stored["version"] if stored else None

        if expected_version is not None and (actual_version or 0) != expected_version:
            raise version_conflict(
                flow_id=flow.id,
                expected_version=expected_version,
                actual_version=actual_version,
            )
        if stored is None and self.get_flow_by_unit(flow.production_product_id) is not None:
            raise DomainError(
                code="FLOW_ALREADY_EXISTS",
                http_status=409,
                message="A production flow already exists for this production unit",
            )

        payload = flow.model_dump(mode="json")
        payload["version"] = (actual_version or 0) + 1
        payload["updated_at"] = (FIXED_NOW + timedelta(seconds=self.save_calls)).isoformat()
        self.flows[flow.id] = payload
        return ProductionFlow.model_validate(payload)


class AuditRecorder:
    def __init__(self) -> None:
        self.events: list[dict] = []

    def __call__(self, **kwargs) -> None:
        self.events.append(kwargs)

    @property
    def actions(self) -> list[str]:
        return [event["action"] for event in self.events]


def make_step(step_id: str, number: int, *, status: str = "pending", step_type: str = "machine_operation", **extra) -> ProductionStep:
    return ProductionStep(
        id=step_id,
        step_number=number,
        name=f"Step {step_id}",
        status=status,
        step_type=step_type,
        created_at=FIXED_NOW,
        **extra,
    )


def make_flow(steps: list[ProductionStep], *, flow_id: str = "FLOW_test", unit_id: str = "PRO-260302-001", **extra) -> ProductionFlow:
    return ProductionFlow(
        id=flow_id,
        production_product_id=unit_id,
        steps=steps,
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
        **extra,
    )
