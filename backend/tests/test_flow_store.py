from __future__ import annotations

import pytest

from carpet_erp.domain_errors import DomainError
from carpet_erp.models import AuditEvent, Machine
from carpet_erp.repositories.audit_repo import session_audit_recorder
from carpet_erp.repositories.flow_store import SqlFlowStore
from carpet_erp.schemas import StartStep
from carpet_erp.use_cases.production_flow import (
    FlowUseCaseHooks,
    get_or_create_flow_use_case,
    update_step_use_case,
)

from fakes import FIXED_NOW, make_flow, make_step


def test_list_machines_seeds_defaults_once(db_session) -> None:
    store = SqlFlowStore(db_session)

    first = store.list_machines()
    second = store.list_machines()

    assert [m.id for m in first] == ["machine-1", "machine-2", "machine-3", "machine-4"]
    assert [m.id for m in second] == [m.id for m in first]
    assert db_session.query(Machine).count() == 4
    assert first[3].type == "testing"


def test_list_machines_without_seeding_stays_empty(db_session) -> None:
    store = SqlFlowStore(db_session, seed_default_machines=False)

    assert store.list_machines() == []
    assert db_session.query(Machine).count() == 0


def test_save_flow_inserts_then_updates_with_version_bump(db_session) -> None:
    store = SqlFlowStore(db_session)
    flow = make_flow([make_step("A", 1), make_step("B", 2)])

    inserted = store.save_flow(flow)
    assert inserted.version == 1
    assert inserted.updated_at is not None

    inserted.steps[0].status = "in_progress"
    inserted.steps[0].start_time = FIXED_NOW
    updated = store.save_flow(inserted, expected_version=1)

    assert updated.version == 2
    loaded = store.get_flow_by_unit(flow.production_product_id)
    assert loaded is not None
    assert loaded.id == flow.id
    assert loaded.steps[0].status == "in_progress"
    assert loaded.steps[0].start_time == FIXED_NOW
    assert [s.step_number for s in loaded.steps] == [1, 2]


def test_getters_return_none_for_unknown_ids(db_session) -> None:
    store = SqlFlowStore(db_session)

    assert store.get_flow("FLOW_missing") is None
    assert store.get_flow_by_unit("PRO-missing") is None


def test_stale_expected_version_is_rejected(db_session) -> None:
    store = SqlFlowStore(db_session)
    saved = store.save_flow(make_flow([make_step("A", 1)]))
    store.save_flow(saved)

    with pytest.raises(DomainError) as exc_info:
        store.save_flow(saved, expected_version=1)

    assert exc_info.value.code == "FLOW_VERSION_CONFLICT"
    assert exc_info.value.details["actual_version"] == 2
    assert store.get_flow(saved.id).version == 2


@pytest.mark.parametrize("expected_version", [0, 3])
def test_expected_version_mismatch_on_insert_or_existing(db_session, expected_version: int) -> None:
    store = SqlFlowStore(db_session)
    store.save_flow(make_flow([make_step("A", 1)]))

    with pytest.raises(DomainError) as exc_info:
        store.save_flow(make_flow([make_step("A", 1)]), expected_version=expected_version)

    assert exc_info.value.code == "FLOW_VERSION_CONFLICT"


def test_expected_version_on_missing_flow_is_rejected(db_session) -> None:
    store = SqlFlowStore(db_session)

    with pytest.raises(DomainError) as exc_info:
        store.save_flow(make_flow([make_step("A", 1)]), expected_version=2)

    assert exc_info.value.code == "FLOW_VERSION_CONFLICT"
    assert store.get_flow("FLOW_test") is None


def test_second_flow_for_same_unit_is_rejected(db_session) -> None:
    store = SqlFlowStore(db_session)
    store.save_flow(make_flow([make_step("A", 1)], flow_id="FLOW_one"))

    with pytest.raises(DomainError) as exc_info:
        store.save_flow(make_flow([make_step("A", 1)], flow_id="FLOW_two"))

    assert exc_info.value.code == "FLOW_ALREADY_EXISTS"
    assert exc_info.value.http_status == 409
    assert store.get_flow_by_unit("PRO-260302-001").id == "FLOW_one"


def test_audit_event_commits_with_flow_change(db_session) -> None:
    store = SqlFlowStore(db_session)
    hooks = FlowUseCaseHooks(now_utc=lambda: FIXED_NOW, record_audit=session_audit_recorder(db_session))

    flow = get_or_create_flow_use_case(store=store, production_product_id="PRO-1", user_name="Asha", hooks=hooks)

    assert flow.steps[-1].machine_name == "Testing Station"
    assert flow.steps[-1].machine_id == "machine-4"
    events = db_session.query(AuditEvent).all()
    assert [e.action for e in events] == ["flow_created"]
    assert events[0].entity_id == flow.id
    assert events[0].user_name == "Asha"


def test_conflicting_write_discards_staged_audit_event(db_session) -> None:
    store = SqlFlowStore(db_session)
    hooks = FlowUseCaseHooks(now_utc=lambda: FIXED_NOW, record_audit=session_audit_recorder(db_session))
    flow = get_or_create_flow_use_case(store=store, production_product_id="PRO-1", hooks=hooks)
    store.save_flow(flow)

    with pytest.raises(DomainError) as exc_info:
        update_step_use_case(
            store=store,
            flow_id=flow.id,
            step_id=flow.steps[0].id,
            command=StartStep(),
            expected_version=flow.version,
            hooks=hooks,
        )

    assert exc_info.value.code == "FLOW_VERSION_CONFLICT"
    assert [e.action for e in db_session.query(AuditEvent).all()] == ["flow_created"]
    assert store.get_flow(flow.id).steps[0].status == "pending"
