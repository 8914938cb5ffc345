"""Pydantic schemas for flows, steps, machines and API payloads."""
from typing import Annotated, Literal, Optional, Union
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


MachineType = Literal["cutting", "needle-punching", "testing", "other"]
MachineStatus = Literal["available", "busy", "maintenance"]
StepStatus = Literal["pending", "in_progress", "completed", "quality_check"]
StepType = Literal["material_selection", "machine_operation", "wastage_tracking", "testing_individual"]
FlowStatus = Literal["not_started", "in_progress", "completed"]


# Machine schemas
class MachineBase(BaseModel):
    name: str = Field(min_length=1)
    type: MachineType = "other"
    status: MachineStatus = "available"
    capacity: str = ""
    description: Optional[str] = None


class MachineCreate(MachineBase):
    pass


class MachineUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[MachineType] = None
    status: Optional[MachineStatus] = None
    capacity: Optional[str] = None
    description: Optional[str] = None

    # Omit a field to keep it; only description may be cleared with null.
    @field_validator("name", "type", "status", "capacity", mode="before")
    @classmethod
    def _not_null(cls, v):
        if v is None:
            raise ValueError("field cannot be null")
        return v


class MachineResponse(MachineBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Production flow schemas
class ProductionStep(BaseModel):
    """One unit of work inside a flow. Owned by the flow, never stored on its own."""

    id: str
    step_number: int = Field(ge=1)
    name: str
    description: str = ""
    machine_id: Optional[str] = None
    machine_name: str = "Manual Process"
    status: StepStatus = "pending"
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    inspector_name: Optional[str] = None
    quality_notes: Optional[str] = None
    is_quality_step: bool = False
    is_fixed_step: bool = False
    step_type: StepType = "machine_operation"
    created_at: datetime


class ProductionFlow(BaseModel):
    """Aggregate root: ordered steps plus the progress pointer for one production unit."""

    id: str
    production_product_id: str
    steps: list[ProductionStep] = Field(default_factory=list)
    current_step_index: int = Field(default=0, ge=0)
    status: FlowStatus = "not_started"
    # 0 until the first save; the store bumps it on every write.
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductionStepCreate(BaseModel):
    """User-inserted machine-operation step."""

    name: str = Field(min_length=1)
    description: str = ""
    machine_id: Optional[str] = None
    is_quality_step: bool = False


class FlowProgressResponse(BaseModel):
    flow_id: str
    status: FlowStatus
    current_step_index: int
    total_steps: int
    completed_steps: int
    progress_percentage: int


# Step commands
class StartStep(BaseModel):
    kind: Literal["start"] = "start"


class CompleteStep(BaseModel):
    kind: Literal["complete"] = "complete"
    inspector_name: Optional[str] = None
    quality_notes: Optional[str] = None


class AssignMachine(BaseModel):
    kind: Literal["assign_machine"] = "assign_machine"
    machine_id: str = Field(min_length=1)


class SendToQualityCheck(BaseModel):
    kind: Literal["quality_check"] = "quality_check"
    inspector_name: Optional[str] = None
    quality_notes: Optional[str] = None


StepCommand = Annotated[
    Union[StartStep, CompleteStep, AssignMachine, SendToQualityCheck],
    Field(discriminator="kind"),
]


# Request bodies
class StepCommandRequest(BaseModel):
    command: StepCommand
    expected_version: Optional[int] = None


class AddStepRequest(ProductionStepCreate):
    expected_version: Optional[int] = None


class AdvanceRequest(BaseModel):
    expected_version: Optional[int] = None


class CompleteCurrentStepRequest(BaseModel):
    inspector_name: Optional[str] = None
    quality_notes: Optional[str] = None
    machine_id: Optional[str] = None
    expected_version: Optional[int] = None
