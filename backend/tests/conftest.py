from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carpet_erp import models  # noqa: F401  (registers tables on Base.metadata)
from carpet_erp.database import Base
from carpet_erp.use_cases.production_flow import FlowUseCaseHooks

from fakes import FIXED_NOW, AuditRecorder, InMemoryFlowStore


@pytest.fixture
def store() -> InMemoryFlowStore:
    return InMemoryFlowStore()


@pytest.fixture
def audit() -> AuditRecorder:
    return AuditRecorder()


@pytest.fixture
def hooks(audit: AuditRecorder) -> FlowUseCaseHooks:
    return FlowUseCaseHooks(now_utc=lambda: FIXED_NOW, record_audit=audit)


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
