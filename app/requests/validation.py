# app/requests/validation.py
from __future__ import annotations

from typing import Iterable, Optional
from uuid import UUID

from app.requests.errors import InvalidTransition, MissingDuration, TerminalState, ValidationError
from app.requests.model import TeamMember
from app.requests.state_machine import RequestStatus, allowed_targets

# Roles whose holders may be assigned as the technician of a request.
TECHNICIAN_ROLES = frozenset({"TECHNICIAN"})


def validate_transition(
    old: RequestStatus | str,
    new: RequestStatus | str,
    *,
    duration_minutes: Optional[int] = None,
) -> bool:
    """
    Check a proposed status move against the table and payload rules.

    Returns True when the move needs a write, False for a same-status no-op.
    """
    old, new = RequestStatus(old), RequestStatus(new)
    if old == new:
        return False

    targets = allowed_targets(old)
    if new not in targets:
        if not targets:
            raise TerminalState(
                f"Cannot change status from {old.value}. This is a terminal state.",
                data={"from": old.value, "to": new.value},
            )
        legal = sorted(t.value for t in targets)
        raise InvalidTransition(
            f"Invalid transition from {old.value} to {new.value}. Valid transitions: {', '.join(legal)}",
            data={"from": old.value, "to": new.value, "allowed": legal},
        )

    if new == RequestStatus.REPAIRED and (duration_minutes is None or duration_minutes <= 0):
        raise MissingDuration(
            "Cannot mark as REPAIRED without logging repair duration.",
            data={"duration_minutes": duration_minutes},
        )

    if duration_minutes is not None and duration_minutes <= 0:
        raise ValidationError(
            "Duration must be a positive number of minutes",
            data={"field": "duration_minutes", "duration_minutes": duration_minutes},
        )

    return True


def validate_assignee(
    team_id: Optional[UUID],
    members: Iterable[TeamMember],
    technician_id: Optional[UUID],
) -> None:
    if technician_id is None:
        return

    if team_id is None:
        raise ValidationError(
            "Request has no maintenance team; a technician cannot be assigned",
            data={"technician_id": str(technician_id)},
        )

    member = next((m for m in members if m.user_id == technician_id), None)
    if member is None:
        raise ValidationError(
            "Technician must be a member of the assigned maintenance team",
            data={"technician_id": str(technician_id), "team_id": str(team_id)},
        )

    if (member.role or "").strip().upper() not in TECHNICIAN_ROLES:
        raise ValidationError(
            "Can only assign to users with TECHNICIAN role",
            data={"technician_id": str(technician_id), "role": member.role},
        )
