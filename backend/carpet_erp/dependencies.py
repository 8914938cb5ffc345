"""FastAPI dependencies wiring the flow store and use-case hooks."""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .repositories.audit_repo import session_audit_recorder
from .repositories.flow_store import FlowStore, SqlFlowStore
from .use_cases.production_flow import FlowUseCaseHooks


def get_flow_store(db: Session = Depends(get_db)) -> FlowStore:
    return SqlFlowStore(db, seed_default_machines=settings.SEED_DEFAULT_MACHINES)


def get_flow_hooks(db: Session = Depends(get_db)) -> FlowUseCaseHooks:
    return FlowUseCaseHooks(record_audit=session_audit_recorder(db))


def get_user_name(x_user_name: Optional[str] = Header(default=None)) -> Optional[str]:
    """Acting user's display name; authentication lives outside this service."""
    if x_user_name is None:
        return None
    return x_user_name.strip() or None
