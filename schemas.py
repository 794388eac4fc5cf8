# schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.requests.model import MaintenanceRequest, Priority, RequestLog, RequestType
from app.requests.state_machine import RequestStatus, allowed_targets, is_terminal


# -------- AUTH --------
class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: UUID
    role: str


# -------- REQUESTS --------
class CreateRequestBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=10)
    type: RequestType
    priority: Priority = Priority.MEDIUM
    equipment_id: UUID
    scheduled_date: Optional[date] = None


class UpdateRequestBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10)
    priority: Optional[Priority] = None
    scheduled_date: Optional[date] = None


class TransitionBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: RequestStatus
    # positivity is a business rule (MISSING_DURATION), not a schema rule
    duration_minutes: Optional[int] = None
    repair_notes: Optional[str] = None


class AssignBody(BaseModel):
    model_config = ConfigDict(extra="forbid")

    # explicit null unassigns
    technician_id: Optional[UUID]


class RequestOut(BaseModel):
    id: UUID
    title: str
    description: str
    type: RequestType
    status: RequestStatus
    priority: Priority
    category: Optional[str] = None
    equipment_id: UUID
    team_id: Optional[UUID] = None
    technician_id: Optional[UUID] = None
    created_by_id: UUID
    scheduled_date: Optional[date] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    repair_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_terminal: bool
    allowed_transitions: List[RequestStatus]

    @classmethod
    def from_model(cls, request: MaintenanceRequest) -> "RequestOut":
        return cls(
            id=request.id,
            title=request.title,
            description=request.description,
            type=request.type,
            status=request.status,
            priority=request.priority,
            category=request.category,
            equipment_id=request.equipment_id,
            team_id=request.team_id,
            technician_id=request.technician_id,
            created_by_id=request.created_by_id,
            scheduled_date=request.scheduled_date,
            started_at=request.started_at,
            completed_at=request.completed_at,
            duration_minutes=request.duration_minutes,
            repair_notes=request.repair_notes,
            created_at=request.created_at,
            updated_at=request.updated_at,
            is_terminal=is_terminal(request.status),
            allowed_transitions=sorted(allowed_targets(request.status), key=lambda s: s.value),
        )


class RequestLogOut(BaseModel):
    id: UUID
    request_id: UUID
    actor_user_id: UUID
    action: str
    details: Dict[str, Any]
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, log: RequestLog) -> "RequestLogOut":
        return cls(
            id=log.id,
            request_id=log.request_id,
            actor_user_id=log.actor_user_id,
            action=log.action,
            details=log.details,
            created_at=log.created_at,
        )


class RequestLogListResponse(BaseModel):
    request_id: UUID
    logs: List[RequestLogOut]
