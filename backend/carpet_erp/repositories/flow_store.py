"""Data-access contract for production flows and its SQLAlchemy implementation."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import DomainError, store_unavailable
from ..models import ProductionFlowRecord
from ..schemas import MachineResponse, ProductionFlow, ProductionStep
from ..services.flow_rules import now_utc
from . import machine_repo

logger = logging.getLogger(__name__)


class FlowStore(Protocol):
    """Four operations over `machines` and `production_flows`, keyed by opaque string ids."""

    def list_machines(self) -> list[MachineResponse]:
        ...

    def get_flow_by_unit(self, production_product_id: str) -> Optional[ProductionFlow]:
        ...

    def get_flow(self, flow_id: str) -> Optional[ProductionFlow]:
        ...

    def save_flow(self, flow: ProductionFlow, *, expected_version: Optional[int] = None) -> ProductionFlow:
        ...


def version_conflict(*, flow_id: str, expected_version: Optional[int], actual_version: Optional[int]) -> DomainError:
    return DomainError(
        code="FLOW_VERSION_CONFLICT",
        http_status=409,
        message="Production flow was modified by another session",
        details={
            "flow_id": flow_id,
            "expected_version": expected_version,
            "actual_version": actual_version,
        },
    )


def record_to_flow(record: ProductionFlowRecord) -> ProductionFlow:
    return ProductionFlow(
        id=record.id,
        production_product_id=record.production_product_id,
        steps=[ProductionStep.model_validate(step) for step in (record.steps or [])],
        current_step_index=record.current_step_index,
        status=record.status,
        version=record.version,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


class SqlFlowStore:
    """FlowStore backed by a SQLAlchemy session. Every save rewrites the full step array."""

    def __init__(self, db: Session, *, seed_default_machines: bool = True) -> None:
        self._db = db
        self._seed_default_machines = seed_default_machines

    @property
    def session(self) -> Session:
        return self._db

    def list_machines(self) -> list[MachineResponse]:
        machines = machine_repo.list_machines(self._db, seed_defaults=self._seed_default_machines)
        return [MachineResponse.model_validate(machine) for machine in machines]

    def get_flow_by_unit(self, production_product_id: str) -> Optional[ProductionFlow]:
        try:
            record = (
                self._db.query(ProductionFlowRecord)
                .filter(ProductionFlowRecord.production_product_id == production_product_id)
                .first()
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch flow for production unit %s", production_product_id)
            raise store_unavailable("get_flow_by_unit") from exc
        return record_to_flow(record) if record else None

    def get_flow(self, flow_id: str) -> Optional[ProductionFlow]:
        try:
            record = (
                self._db.query(ProductionFlowRecord)
                .filter(ProductionFlowRecord.id == flow_id)
                .first()
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to fetch flow %s", flow_id)
            raise store_unavailable("get_flow") from exc
        return record_to_flow(record) if record else None

    def _current_version(self, flow_id: str) -> Optional[int]:
        row = (
            self._db.query(ProductionFlowRecord.version)
            .filter(ProductionFlowRecord.id == flow_id)
            .first()
        )
        return row[0] if row else None

    def save_flow(self, flow: ProductionFlow, *, expected_version: Optional[int] = None) -> ProductionFlow:
        """Upsert the whole flow keyed by id, stamping updated_at and bumping the version.

        With `expected_version` the write only lands if the stored version still matches;
        a new flow matches an expected version of 0.
        """
        ts = now_utc()
        steps_payload = [step.model_dump(mode="json") for step in flow.steps]

        try:
            query = self._db.query(ProductionFlowRecord).filter(ProductionFlowRecord.id == flow.id)
            if expected_version is not None:
                query = query.filter(ProductionFlowRecord.version == expected_version)
            updated = query.update(
                {
                    "production_product_id": flow.production_product_id,
                    "steps": steps_payload,
                    "current_step_index": flow.current_step_index,
                    "status": flow.status,
                    "version": ProductionFlowRecord.version + 1,
                    "updated_at": ts,
                },
                synchronize_session=False,
            )

            if not updated:
                actual_version = self._current_version(flow.id)
                if actual_version is not None or expected_version not in (None, 0):
                    self._db.rollback()
                    raise version_conflict(
                        flow_id=flow.id,
                        expected_version=expected_version,
                        actual_version=actual_version,
                    )
                self._db.add(
                    ProductionFlowRecord(
                        id=flow.id,
                        production_product_id=flow.production_product_id,
                        steps=steps_payload,
                        current_step_index=flow.current_step_index,
                        status=flow.status,
                        version=1,
                        created_at=flow.created_at or ts,
                        updated_at=ts,
                    )
                )

            self._db.commit()
        except IntegrityError as exc:
            self._db.rollback()
            logger.warning("Flow %s rejected by constraint: %s", flow.id, exc.orig)
            raise DomainError(
                code="FLOW_ALREADY_EXISTS",
                http_status=409,
                message="A production flow already exists for this production unit",
                details={"production_product_id": flow.production_product_id},
            ) from exc
        except SQLAlchemyError as exc:
            self._db.rollback()
            logger.exception("Failed to save flow %s", flow.id)
            raise store_unavailable("save_flow") from exc

        saved = self.get_flow(flow.id)
        if saved is None:  # pragma: no cover - row vanished between commit and read
            raise store_unavailable("save_flow")
        return saved
