# app/requests/side_effects.py
"""
Write-set planning for accepted request mutations.

Nothing here touches the database. Each planner takes the request as read at
validation time and returns the complete set of column writes, the equipment
cascade flag and the audit entry, so the service can commit them together.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from app.requests.model import MaintenanceRequest
from app.requests.state_machine import COMPLETION_STATUSES, RequestStatus
from services.audit_log import LogAction
from services.roles import Actor, Role


@dataclass(frozen=True)
class WriteSet:
    expected_status: RequestStatus
    changes: dict[str, Any] = field(default_factory=dict)
    scrap_equipment: bool = False
    log_action: Optional[LogAction] = None
    log_details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return not self.changes and not self.scrap_equipment


def self_assign_on_start(
    request: MaintenanceRequest,
    target: RequestStatus,
    actor: Actor,
) -> Optional[UUID]:
    """
    A technician who starts work on an unassigned request takes it.

    Returns the technician id to write, or None when no assignment happens.
    """
    if actor.role != Role.TECHNICIAN:
        return None
    if target != RequestStatus.IN_PROGRESS:
        return None
    if request.technician_id is not None:
        return None
    return actor.user_id


def plan_transition(
    request: MaintenanceRequest,
    target: RequestStatus,
    actor: Actor,
    *,
    now: datetime,
    duration_minutes: Optional[int] = None,
    repair_notes: Optional[str] = None,
) -> WriteSet:
    current = RequestStatus(request.status)
    target = RequestStatus(target)
    if current == target:
        return WriteSet(expected_status=current)

    changes: dict[str, Any] = {"status": target}

    if target == RequestStatus.IN_PROGRESS and request.started_at is None:
        changes["started_at"] = now

    auto_assigned = self_assign_on_start(request, target, actor)
    if auto_assigned is not None:
        changes["technician_id"] = auto_assigned

    if target in COMPLETION_STATUSES:
        changes["completed_at"] = now
        if duration_minutes is not None:
            changes["duration_minutes"] = duration_minutes
        if repair_notes:
            changes["repair_notes"] = repair_notes

    scrap_equipment = target == RequestStatus.SCRAP

    details: dict[str, Any] = {
        "from": current.value,
        "to": target.value,
        "durationMinutes": duration_minutes,
        "equipmentScrapped": scrap_equipment,
    }
    if repair_notes:
        details["repairNotes"] = repair_notes
    if auto_assigned is not None:
        details["autoAssignedTechnicianId"] = str(auto_assigned)

    return WriteSet(
        expected_status=current,
        changes=changes,
        scrap_equipment=scrap_equipment,
        log_action=LogAction.STATUS_CHANGED,
        log_details=details,
    )


def plan_assignment(
    request: MaintenanceRequest,
    technician_id: Optional[UUID],
    actor: Actor,
) -> WriteSet:
    current = RequestStatus(request.status)
    if technician_id == request.technician_id:
        return WriteSet(expected_status=current)

    action = LogAction.ASSIGNED if technician_id is not None else LogAction.UNASSIGNED
    return WriteSet(
        expected_status=current,
        changes={"technician_id": technician_id},
        log_action=action,
        log_details={
            "technicianId": str(technician_id) if technician_id else None,
            "previousTechnicianId": str(request.technician_id) if request.technician_id else None,
            "assignedBy": str(actor.user_id),
        },
    )


EDITABLE_FIELDS = ("title", "description", "priority", "scheduled_date")


def _jsonable(value: Any) -> Any:
    if value is None:
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


def plan_update(request: MaintenanceRequest, updates: dict[str, Any]) -> WriteSet:
    current = RequestStatus(request.status)
    changes: dict[str, Any] = {}
    diff: dict[str, Any] = {}

    for name in EDITABLE_FIELDS:
        if name not in updates:
            continue
        new_value = updates[name]
        old_value = getattr(request, name)
        if new_value == old_value:
            continue
        changes[name] = new_value
        diff[name] = {"from": _jsonable(old_value), "to": _jsonable(new_value)}

    if not changes:
        return WriteSet(expected_status=current)

    return WriteSet(
        expected_status=current,
        changes=changes,
        log_action=LogAction.UPDATED,
        log_details={"changes": diff},
    )
