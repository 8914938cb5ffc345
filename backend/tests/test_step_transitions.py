from __future__ import annotations

from datetime import timedelta

import pytest

from carpet_erp.services.step_transitions import (
    apply_status_timestamps,
    ensure_machine_assignable,
    ensure_quality_step,
    validate_step_transition,
)

from fakes import FIXED_NOW, make_step


@pytest.mark.parametrize(
    ("current_status", "next_status"),
    [
        ("pending", "in_progress"),
        ("pending", "completed"),
        ("in_progress", "completed"),
        ("in_progress", "quality_check"),
        ("quality_check", "completed"),
        ("completed", "completed"),
        ("in_progress", "in_progress"),
    ],
)
def test_allowed_step_transitions(current_status: str, next_status: str) -> None:
    assert validate_step_transition(current_status=current_status, next_status=next_status) == next_status


@pytest.mark.parametrize(
    ("current_status", "next_status"),
    [
        ("completed", "in_progress"),
        ("completed", "pending"),
        ("in_progress", "pending"),
        ("quality_check", "pending"),
        ("quality_check", "in_progress"),
        ("pending", "quality_check"),
    ],
)
def test_rejected_step_transitions(current_status: str, next_status: str) -> None:
    with pytest.raises(ValueError, match="Invalid step status transition"):
        validate_step_transition(current_status=current_status, next_status=next_status)


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown step status"):
        validate_step_transition(current_status="pending", next_status="cancelled")


def test_quality_check_requires_quality_step() -> None:
    ensure_quality_step(make_step("T", 4, is_quality_step=True))

    with pytest.raises(ValueError, match="not a quality step"):
        ensure_quality_step(make_step("A", 1))


def test_completed_step_machine_is_locked() -> None:
    ensure_machine_assignable(make_step("A", 1, status="in_progress"))

    with pytest.raises(ValueError, match="completed step"):
        ensure_machine_assignable(make_step("A", 1, status="completed"))


def test_completion_stamps_start_and_end_when_missing() -> None:
    stamps = apply_status_timestamps(next_status="completed", start_time=None, end_time=None, at=FIXED_NOW)

    assert stamps == {"start_time": FIXED_NOW, "end_time": FIXED_NOW}


def test_existing_start_time_is_preserved() -> None:
    started = FIXED_NOW - timedelta(hours=2)

    stamps = apply_status_timestamps(next_status="completed", start_time=started, end_time=None, at=FIXED_NOW)

    assert stamps["start_time"] == started
    assert stamps["end_time"] == FIXED_NOW


def test_quality_check_stamps_start_only() -> None:
    stamps = apply_status_timestamps(next_status="quality_check", start_time=None, end_time=None, at=FIXED_NOW)

    assert stamps == {"start_time": FIXED_NOW, "end_time": None}
