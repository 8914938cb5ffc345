"""Step status invariant helpers."""

from __future__ import annotations

from datetime import datetime

from ..schemas import ProductionStep
from .flow_rules import now_utc


STEP_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed", "quality_check")

# No way back to pending: a rejected quality check has no defined target yet.
_ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"in_progress", "completed"},
    "in_progress": {"completed", "quality_check"},
    "quality_check": {"completed"},
    "completed": set(),
}


def validate_step_transition(*, current_status: str, next_status: str) -> str:
    if next_status not in _ALLOWED_TRANSITIONS:
        raise ValueError(f"Unknown step status: {next_status}")
    if next_status == current_status:
        return next_status

    allowed = _ALLOWED_TRANSITIONS.get(current_status, set())
    if next_status not in allowed:
        raise ValueError(f"Invalid step status transition: {current_status} -> {next_status}")
    return next_status


def ensure_quality_step(step: ProductionStep) -> None:
    if not step.is_quality_step:
        raise ValueError(f"Step {step.name!r} is not a quality step")


def ensure_machine_assignable(step: ProductionStep) -> None:
    if step.status == "completed":
        raise ValueError("Cannot change machine of a completed step")


def apply_status_timestamps(
    *,
    next_status: str,
    start_time: datetime | None,
    end_time: datetime | None,
    at: datetime | None = None,
) -> dict[str, datetime | None]:
    ts = at or now_utc()

    updated_start_time = start_time
    updated_end_time = end_time

    if updated_start_time is None and next_status in {"in_progress", "quality_check", "completed"}:
        updated_start_time = ts
    if next_status == "completed" and updated_end_time is None:
        updated_end_time = ts

    return {
        "start_time": updated_start_time,
        "end_time": updated_end_time,
    }
