"""Machine endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..dependencies import get_user_name
from ..schemas import MachineCreate, MachineResponse, MachineType, MachineUpdate
from ..use_cases.machines import (
    create_machine_use_case,
    delete_machine_use_case,
    list_machines_use_case,
    update_machine_use_case,
)

router = APIRouter(prefix="/machines", tags=["machines"])


@router.get("", response_model=list[MachineResponse])
def list_machines(
    type: Optional[MachineType] = Query(default=None),
    available: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    """List machines ordered by creation time, seeding the default set on first access."""
    return list_machines_use_case(
        db=db,
        machine_type=type,
        available_only=available,
        seed_defaults=settings.SEED_DEFAULT_MACHINES,
    )


@router.post("", response_model=MachineResponse, status_code=status.HTTP_201_CREATED)
def create_machine(
    payload: MachineCreate,
    user_name: Optional[str] = Depends(get_user_name),
    db: Session = Depends(get_db),
):
    return create_machine_use_case(db=db, payload=payload, user_name=user_name)


@router.patch("/{machine_id}", response_model=MachineResponse)
def update_machine(
    machine_id: str,
    payload: MachineUpdate,
    user_name: Optional[str] = Depends(get_user_name),
    db: Session = Depends(get_db),
):
    return update_machine_use_case(db=db, machine_id=machine_id, payload=payload, user_name=user_name)


@router.delete("/{machine_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_machine(
    machine_id: str,
    user_name: Optional[str] = Depends(get_user_name),
    db: Session = Depends(get_db),
):
    delete_machine_use_case(db=db, machine_id=machine_id, user_name=user_name)
