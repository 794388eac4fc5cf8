# app/requests/model.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from app.requests.state_machine import RequestStatus


class RequestType(str, Enum):
    CORRECTIVE = "CORRECTIVE"
    PREVENTIVE = "PREVENTIVE"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class EquipmentStatus(str, Enum):
    ACTIVE = "ACTIVE"
    SCRAPPED = "SCRAPPED"


@dataclass(frozen=True)
class MaintenanceRequest:
    id: UUID
    title: str
    description: str
    type: RequestType
    status: RequestStatus
    priority: Priority
    equipment_id: UUID
    created_by_id: UUID
    category: Optional[str] = None
    team_id: Optional[UUID] = None
    technician_id: Optional[UUID] = None
    scheduled_date: Optional[date] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    repair_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Equipment:
    id: UUID
    name: str
    status: EquipmentStatus
    serial_number: Optional[str] = None
    category: Optional[str] = None
    default_team_id: Optional[UUID] = None


@dataclass(frozen=True)
class TeamMember:
    team_id: UUID
    user_id: UUID
    role: str
    is_leader: bool = False


@dataclass(frozen=True)
class RequestLog:
    id: UUID
    request_id: UUID
    actor_user_id: UUID
    action: str
    details: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
