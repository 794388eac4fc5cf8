# app/requests/service.py
"""
Request operations.

Every function takes an open connection from ``db.get_conn()`` and performs
all of its reads and writes on it; the caller's context manager commits on
success and rolls back on any exception, so a rejected or failed operation
never leaves a partial write behind.

Order of checks: load -> validate -> authorize -> plan -> compare-and-swap
commit (+ cascade + audit row). A terminal request is rejected as such
whoever asks; a same-status no-op still requires permission to act.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Iterator, Optional
from uuid import UUID

from app.requests import repository
from app.requests.errors import (
    Conflict,
    InvalidState,
    NotFound,
    RequestEngineError,
    ValidationError,
)
from app.requests.model import (
    EquipmentStatus,
    MaintenanceRequest,
    Priority,
    RequestLog,
    RequestType,
    TeamMember,
)
from app.requests.side_effects import (
    EDITABLE_FIELDS,
    WriteSet,
    plan_assignment,
    plan_transition,
    plan_update,
)
from app.requests.state_machine import RequestStatus, is_terminal
from app.requests.validation import validate_assignee, validate_transition
from services import audit_log
from services.audit_log import LogAction
from services.observability import get_request_id
from services.roles import Action, Actor, AuthContext, authorize

logger = logging.getLogger("gearguard.requests")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _operation(name: str, request_id: Any, actor: Actor) -> Iterator[None]:
    try:
        yield
    except RequestEngineError as exc:
        logger.warning(
            "request_op_rejected op=%s request=%s actor=%s role=%s code=%s request_id=%s",
            name,
            request_id,
            actor.user_id,
            actor.role.value,
            exc.code,
            get_request_id(),
        )
        raise


def _coerce(enum_cls, value, field: str):
    try:
        return enum_cls(value.upper() if isinstance(value, str) else value)
    except ValueError:
        allowed = [m.value for m in enum_cls]
        raise ValidationError(
            f"Invalid {field}: {value!r}",
            data={"field": field, "allowed": allowed},
        ) from None


def _load_request(conn, request_id: UUID | str) -> MaintenanceRequest:
    request = repository.get_request(conn, request_id)
    if request is None:
        raise NotFound("Request not found", data={"request_id": str(request_id)})
    return request


def _auth_context(request: MaintenanceRequest, members: list[TeamMember], **extra) -> AuthContext:
    return AuthContext(
        team_member_ids=frozenset(m.user_id for m in members),
        technician_id=request.technician_id,
        created_by_id=request.created_by_id,
        **extra,
    )


def _commit(
    conn,
    request: MaintenanceRequest,
    plan: WriteSet,
    actor: Actor,
    *,
    guard_technician: bool = True,
) -> MaintenanceRequest:
    guard: dict[str, Any] = {}
    if guard_technician:
        guard["expected_technician_id"] = request.technician_id

    updated = repository.update_request(
        conn,
        request.id,
        expected_status=plan.expected_status,
        changes=plan.changes,
        **guard,
    )
    if updated is None:
        raise Conflict(
            "Request was modified by another operation. Reload and try again.",
            data={"request_id": str(request.id), "expected_status": plan.expected_status.value},
        )

    if plan.scrap_equipment:
        if not repository.mark_equipment_scrapped(conn, request.equipment_id):
            raise NotFound("Equipment not found", data={"equipment_id": str(request.equipment_id)})

    audit_log.write_request_log(
        conn,
        request_id=request.id,
        actor_user_id=actor.user_id,
        action=plan.log_action,
        details=plan.log_details,
    )

    logger.info(
        "request_op_committed request=%s actor=%s action=%s request_id=%s",
        request.id,
        actor.user_id,
        plan.log_action.value if plan.log_action else None,
        get_request_id(),
    )
    return updated


# ==========================================================
# Operations
# ==========================================================

def create_request(
    conn,
    actor: Actor,
    *,
    title: str,
    description: str,
    type: RequestType | str,
    equipment_id: UUID,
    priority: Priority | str = Priority.MEDIUM,
    scheduled_date: Optional[date] = None,
) -> MaintenanceRequest:
    with _operation("create", None, actor):
        authorize(actor, Action.CREATE)

        request_type = _coerce(RequestType, type, "type")
        request_priority = _coerce(Priority, priority, "priority")
        if not (title or "").strip():
            raise ValidationError("Title is required", data={"field": "title"})
        if not (description or "").strip():
            raise ValidationError("Description is required", data={"field": "description"})

        equipment = repository.get_equipment(conn, equipment_id)
        if equipment is None:
            raise NotFound("Equipment not found", data={"equipment_id": str(equipment_id)})

        if equipment.status == EquipmentStatus.SCRAPPED:
            raise ValidationError(
                "Cannot create requests for scrapped equipment",
                data={"equipment_id": str(equipment_id)},
            )

        created = repository.insert_request(
            conn,
            title=title.strip(),
            description=description.strip(),
            type=request_type,
            priority=request_priority,
            category=equipment.category,
            equipment_id=equipment.id,
            team_id=equipment.default_team_id,
            created_by_id=actor.user_id,
            scheduled_date=scheduled_date,
        )

        audit_log.write_request_log(
            conn,
            request_id=created.id,
            actor_user_id=actor.user_id,
            action=LogAction.CREATED,
            details={"title": created.title, "type": created.type.value},
        )

    logger.info(
        "request_created request=%s equipment=%s actor=%s request_id=%s",
        created.id,
        equipment.id,
        actor.user_id,
        get_request_id(),
    )
    return created


def get_request(conn, request_id: UUID | str, actor: Actor) -> MaintenanceRequest:
    with _operation("read", request_id, actor):
        request = _load_request(conn, request_id)
        authorize(actor, Action.READ, AuthContext(created_by_id=request.created_by_id))
        return request


def list_request_logs(conn, request_id: UUID | str, actor: Actor) -> list[RequestLog]:
    with _operation("logs", request_id, actor):
        request = _load_request(conn, request_id)
        authorize(actor, Action.READ, AuthContext(created_by_id=request.created_by_id))
        return audit_log.list_request_logs(conn, request_id=request.id)


def transition_request(
    conn,
    request_id: UUID | str,
    target_status: RequestStatus | str,
    actor: Actor,
    *,
    duration_minutes: Optional[int] = None,
    repair_notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MaintenanceRequest:
    with _operation("transition", request_id, actor):
        target = _coerce(RequestStatus, target_status, "status")
        request = _load_request(conn, request_id)
        members = repository.get_team_members(conn, request.team_id)

        needs_write = validate_transition(request.status, target, duration_minutes=duration_minutes)
        authorize(actor, Action.TRANSITION, _auth_context(request, members))
        if not needs_write:
            return request

        plan = plan_transition(
            request,
            target,
            actor,
            now=now or _utcnow(),
            duration_minutes=duration_minutes,
            repair_notes=repair_notes,
        )
        return _commit(conn, request, plan, actor)


def assign_technician(
    conn,
    request_id: UUID | str,
    technician_id: Optional[UUID],
    actor: Actor,
) -> MaintenanceRequest:
    with _operation("assign", request_id, actor):
        request = _load_request(conn, request_id)
        members = repository.get_team_members(conn, request.team_id)

        if is_terminal(request.status):
            raise ValidationError(
                "Cannot modify assignment for completed requests",
                data={"status": request.status.value},
            )

        authorize(
            actor,
            Action.ASSIGN,
            _auth_context(request, members, proposed_technician_id=technician_id),
        )

        validate_assignee(request.team_id, members, technician_id)

        plan = plan_assignment(request, technician_id, actor)
        if plan.is_noop:
            return request
        return _commit(conn, request, plan, actor)


def update_request(
    conn,
    request_id: UUID | str,
    actor: Actor,
    changes: dict[str, Any],
) -> MaintenanceRequest:
    with _operation("update", request_id, actor):
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(
                f"Fields cannot be edited here: {', '.join(sorted(unknown))}",
                data={"fields": sorted(unknown)},
            )

        updates = dict(changes)
        for field in ("title", "description"):
            if field in updates:
                value = (updates[field] or "").strip()
                if not value:
                    raise ValidationError(f"{field.capitalize()} cannot be empty", data={"field": field})
                updates[field] = value
        if "priority" in updates:
            updates["priority"] = _coerce(Priority, updates["priority"], "priority")

        request = _load_request(conn, request_id)
        members = repository.get_team_members(conn, request.team_id)
        authorize(actor, Action.UPDATE, _auth_context(request, members))

        plan = plan_update(request, updates)
        if plan.is_noop:
            return request
        return _commit(conn, request, plan, actor, guard_technician=False)


def delete_request(conn, request_id: UUID | str, actor: Actor) -> None:
    with _operation("delete", request_id, actor):
        request = _load_request(conn, request_id)
        authorize(actor, Action.DELETE, AuthContext(created_by_id=request.created_by_id))

        if request.status != RequestStatus.NEW:
            raise InvalidState(
                "Can only delete requests in NEW status",
                data={"status": request.status.value},
            )

        audit_log.delete_request_logs(conn, request_id=request.id)
        if not repository.delete_request(conn, request.id, expected_status=RequestStatus.NEW):
            raise InvalidState(
                "Can only delete requests in NEW status",
                data={"request_id": str(request.id)},
            )

    logger.info(
        "request_deleted request=%s actor=%s request_id=%s",
        request.id,
        actor.user_id,
        get_request_id(),
    )
