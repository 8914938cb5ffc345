"""Production flow layout and sequencing helpers (no I/O)."""

from __future__ import annotations

import math
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from ..schemas import ProductionFlow, ProductionStep, ProductionStepCreate


MANUAL_PROCESS_LABEL = "Manual Process"
SELECT_MACHINE_LABEL = "Select Machine"
TESTING_STATION_LABEL = "Testing Station"
UNKNOWN_MACHINE_LABEL = "Unknown Machine"

FIXED_STEP_TYPES: tuple[str, ...] = (
    "material_selection",
    "wastage_tracking",
    "testing_individual",
)

DEFAULT_STEP_LAYOUT: tuple[dict[str, Any], ...] = (
    {
        "name": "Raw Material Selection",
        "description": "Select and prepare raw materials for production",
        "machine_name": MANUAL_PROCESS_LABEL,
        "is_quality_step": False,
        "is_fixed_step": True,
        "step_type": "material_selection",
    },
    {
        "name": "Initial Processing",
        "description": "First stage of carpet processing - select machine",
        "machine_name": SELECT_MACHINE_LABEL,
        "is_quality_step": False,
        "is_fixed_step": False,
        "step_type": "machine_operation",
    },
    {
        "name": "Raw Material Wastage",
        "description": "Track and record raw material wastage during production",
        "machine_name": MANUAL_PROCESS_LABEL,
        "is_quality_step": False,
        "is_fixed_step": True,
        "step_type": "wastage_tracking",
    },
    {
        "name": "Testing & Individual Product Details",
        "description": "Final quality testing and individual product details entry",
        "machine_name": TESTING_STATION_LABEL,
        "is_quality_step": True,
        "is_fixed_step": True,
        "step_type": "testing_individual",
    },
)

_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_id(prefix: str, *, at: datetime | None = None) -> str:
    """Return `<PREFIX>_<base36 epoch ms>_<5 random base36 chars>`."""
    ts = at or now_utc()
    millis = int(ts.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(5))
    return f"{prefix}_{_to_base36(millis)}_{suffix}"


def create_default_flow(
    production_product_id: str,
    machines: Iterable[Any],
    *,
    at: datetime | None = None,
) -> ProductionFlow:
    """Build an unsaved flow with the four canonical steps.

    The testing step is pre-assigned to the first machine typed ``testing``;
    without one it keeps the placeholder label and no machine id.
    """
    ts = at or now_utc()
    testing_machine = next((m for m in machines if m.type == "testing"), None)

    steps: list[ProductionStep] = []
    for number, template in enumerate(DEFAULT_STEP_LAYOUT, start=1):
        step = ProductionStep(
            id=generate_id("STEP", at=ts),
            step_number=number,
            created_at=ts,
            **template,
        )
        if step.step_type == "testing_individual" and testing_machine is not None:
            step.machine_id = testing_machine.id
            step.machine_name = testing_machine.name
        steps.append(step)

    return ProductionFlow(
        id=generate_id("FLOW", at=ts),
        production_product_id=production_product_id,
        steps=steps,
        current_step_index=0,
        status="not_started",
        created_at=ts,
        updated_at=ts,
    )


def find_step(flow: ProductionFlow, step_id: str) -> Optional[ProductionStep]:
    return next((step for step in flow.steps if step.id == step_id), None)


def current_step(flow: ProductionFlow) -> Optional[ProductionStep]:
    if 0 <= flow.current_step_index < len(flow.steps):
        return flow.steps[flow.current_step_index]
    return None


def is_last_step(flow: ProductionFlow) -> bool:
    return flow.current_step_index == len(flow.steps) - 1


def renumber_steps(steps: list[ProductionStep]) -> None:
    for index, step in enumerate(steps):
        step.step_number = index + 1


def machine_step_insert_index(steps: list[ProductionStep]) -> int:
    """Machine-operation steps go right before the wastage step, or at the end without one."""
    for index, step in enumerate(steps):
        if step.step_type == "wastage_tracking":
            return index
    return len(steps)


def insert_machine_step(
    flow: ProductionFlow,
    data: ProductionStepCreate,
    *,
    machine_name: str,
    at: datetime | None = None,
) -> ProductionStep:
    """Insert a user-defined machine-operation step and renumber the flow.

    When the insert lands at or behind the pointer, the new step becomes the
    current one so the sequencer still visits it.
    """
    ts = at or now_utc()
    insert_index = machine_step_insert_index(flow.steps)

    step = ProductionStep(
        id=generate_id("STEP", at=ts),
        step_number=insert_index + 1,
        name=data.name,
        description=data.description,
        machine_id=data.machine_id,
        machine_name=machine_name,
        status="pending",
        is_quality_step=data.is_quality_step,
        is_fixed_step=False,
        step_type="machine_operation",
        created_at=ts,
    )
    flow.steps.insert(insert_index, step)
    renumber_steps(flow.steps)

    if insert_index <= flow.current_step_index:
        flow.current_step_index = insert_index
        if flow.status == "completed":
            flow.status = "in_progress"

    return step


def advance_flow(flow: ProductionFlow, *, at: datetime | None = None) -> bool:
    """Move the pointer to the next step and recompute the flow status.

    Returns True when the pointer moved. Reaching the last step leaves the flow
    in progress; advancing again from there keeps the pointer put and marks the
    flow completed. Only a pending step is started on arrival; a step already
    worked on ahead of the pointer keeps its status and timestamps.
    """
    moved = False
    if flow.current_step_index < len(flow.steps) - 1:
        flow.current_step_index += 1
        step = flow.steps[flow.current_step_index]
        if step.status == "pending":
            step.status = "in_progress"
            if step.start_time is None:
                step.start_time = at or now_utc()
        moved = True

    flow.status = "completed" if not moved and is_last_step(flow) else "in_progress"
    return moved


def completed_step_count(flow: ProductionFlow) -> int:
    return sum(1 for step in flow.steps if step.status == "completed")


def progress_percentage(flow: ProductionFlow) -> int:
    """Share of completed steps, rounded half-up to a whole percent.

    Capped at 99 while any step is still open.
    """
    total = len(flow.steps)
    if not total:
        return 0
    completed = completed_step_count(flow)
    percentage = int(math.floor(100 * completed / total + 0.5))
    if completed < total:
        return min(percentage, 99)
    return percentage
