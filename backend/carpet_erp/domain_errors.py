"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def flow_not_found(*, flow_id: str | None = None, unit_id: str | None = None) -> DomainError:
    details: dict[str, Any] = {}
    if flow_id is not None:
        details["flow_id"] = flow_id
    if unit_id is not None:
        details["production_product_id"] = unit_id
    return DomainError(
        code="FLOW_NOT_FOUND",
        http_status=404,
        message="Production flow not found",
        details=details or None,
    )


def step_not_found(*, flow_id: str, step_id: str) -> DomainError:
    return DomainError(
        code="STEP_NOT_FOUND",
        http_status=404,
        message="Production step not found",
        details={"flow_id": flow_id, "step_id": step_id},
    )


def machine_not_found(*, machine_id: str) -> DomainError:
    return DomainError(
        code="MACHINE_NOT_FOUND",
        http_status=404,
        message="Machine not found",
        details={"machine_id": machine_id},
    )


def store_unavailable(operation: str) -> DomainError:
    return DomainError(
        code="STORE_UNAVAILABLE",
        http_status=503,
        message="Production data store is unavailable",
        details={"operation": operation},
    )
