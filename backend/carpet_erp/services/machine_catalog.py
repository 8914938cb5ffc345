"""Default machine set and catalog filters."""

from __future__ import annotations

from typing import Any, Iterable


DEFAULT_MACHINES: tuple[dict[str, str], ...] = (
    {
        "id": "machine-1",
        "name": "BR3C-Cutter",
        "type": "cutting",
        "status": "available",
        "capacity": "Cutting 3.5 mm sheets",
        "description": "High precision cutting machine for carpet manufacturing",
    },
    {
        "id": "machine-2",
        "name": "CUTTING MACHINE",
        "type": "cutting",
        "status": "available",
        "capacity": "General cutting operations",
        "description": "Multi-purpose cutting machine",
    },
    {
        "id": "machine-3",
        "name": "NEEDLE PUNCHING",
        "type": "needle-punching",
        "status": "available",
        "capacity": "Needle punching operations",
        "description": "Specialized needle punching machine for carpet fiber processing",
    },
    {
        "id": "machine-4",
        "name": "Testing Station",
        "type": "testing",
        "status": "available",
        "capacity": "Quality testing and inspection",
        "description": "Final quality testing and product inspection station",
    },
)


def filter_machines(
    machines: Iterable[Any],
    *,
    machine_type: str | None = None,
    available_only: bool = False,
) -> list[Any]:
    result = list(machines)
    if machine_type is not None:
        result = [m for m in result if m.type == machine_type]
    if available_only:
        result = [m for m in result if m.status == "available"]
    return result
