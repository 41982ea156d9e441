import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from fixtrack.core.fsm import Priority, Role, Source, Status


class StatusLogResponse(BaseModel):
    id: uuid.UUID
    issue_id: uuid.UUID
    sequence: int = Field(..., description="Position of this change in the issue's history, starting at 1.")
    old_status: Optional[Status] = Field(None, description="The status before the change.")
    new_status: Status = Field(..., description="The status after the change.")
    changed_by: Optional[uuid.UUID] = Field(None, description="The user who triggered the change; empty for system changes.")
    reason: Optional[str] = Field(None, description="Verification notes or rejection reason.")
    changed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AssigneeResponse(BaseModel):
    id: uuid.UUID
    issue_id: uuid.UUID
    user_id: uuid.UUID
    role: Role
    assigned_at: datetime

    model_config = ConfigDict(from_attributes=True)


class IssueResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    channel_id: Optional[uuid.UUID] = None
    reporter_id: uuid.UUID
    title: str
    description: str
    image_url: Optional[str] = None
    priority: Priority
    status: Status
    source: Source
    thread_id: Optional[str] = None
    message_id: Optional[str] = None
    public_hash: Optional[str] = None
    resolution_cause: Optional[str] = None
    resolution_action: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    closed_at: Optional[datetime] = None
    version: int

    model_config = ConfigDict(from_attributes=True)


class TransitionResponse(BaseModel):
    issue: IssueResponse
    log_entry: StatusLogResponse


class NextStatusesResponse(BaseModel):
    issue_id: uuid.UUID
    status: Status
    display_name: str
    color: str = Field(..., description="Hex colour used when rendering the status.")
    workflow_stage: int = Field(..., description="1-7 along the primary open to closed path, 0 off the path.")
    next_statuses: List[Status]


class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    reporter_id: uuid.UUID = Field(..., description="The user reporting the issue.")
    project_id: Optional[uuid.UUID] = Field(None, description="Required unless the issue comes from a registered channel.")
    channel_id: Optional[uuid.UUID] = Field(None, description="Registered channel the issue was reported in.")
    image_url: Optional[str] = Field(None, max_length=500)


class PriorityUpdate(BaseModel):
    priority: str = Field(..., description="One of low, medium, high.")


class ThreadUpdate(BaseModel):
    thread_id: Optional[str] = Field(None, max_length=100)
    message_id: Optional[str] = Field(None, max_length=100)


class TransitionRequest(BaseModel):
    new_status: str = Field(..., description="The target workflow status.")
    actor: Optional[uuid.UUID] = Field(None, description="The user triggering the transition.")
    reason: Optional[str] = Field(None, description="Free-text note stored on the log entry.")


class ActorRequest(BaseModel):
    actor: Optional[uuid.UUID] = None


class AssignRequest(BaseModel):
    user_id: uuid.UUID = Field(..., description="The user receiving the assignment.")
    actor: Optional[uuid.UUID] = None


class ResolveRequest(BaseModel):
    resolution_cause: str = Field(..., max_length=255, description="What caused the problem.")
    resolution_action: str = Field(..., max_length=255, description="What was done to fix it.")
    actor: Optional[uuid.UUID] = None


class VerifyRequest(BaseModel):
    notes: Optional[str] = None
    actor: Optional[uuid.UUID] = None


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    actor: Optional[uuid.UUID] = None


class AssigneeCreate(BaseModel):
    user_id: uuid.UUID
    role: str = Field(..., description="One of dev, qa, reviewer, other.")


class UnassignAllResponse(BaseModel):
    issue_id: uuid.UUID
    removed: int
