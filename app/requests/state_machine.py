# app/requests/state_machine.py
from __future__ import annotations

from enum import Enum


class RequestStatus(str, Enum):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    REPAIRED = "REPAIRED"
    SCRAP = "SCRAP"


ALLOWED: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.NEW: frozenset({RequestStatus.IN_PROGRESS}),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.REPAIRED, RequestStatus.SCRAP}),
    RequestStatus.REPAIRED: frozenset(),
    RequestStatus.SCRAP: frozenset(),
}

INITIAL_STATUS = RequestStatus.NEW
COMPLETION_STATUSES = frozenset({RequestStatus.REPAIRED, RequestStatus.SCRAP})

_missing = set(RequestStatus) - set(ALLOWED)
if _missing:
    raise RuntimeError(f"Transition table missing statuses: {sorted(s.value for s in _missing)}")


def allowed_targets(status: RequestStatus | str) -> frozenset[RequestStatus]:
    return ALLOWED[RequestStatus(status)]


def is_terminal(status: RequestStatus | str) -> bool:
    return not allowed_targets(status)


def is_allowed(old: RequestStatus | str, new: RequestStatus | str) -> bool:
    """
    Same-status moves are always allowed; they are no-ops, not edges of the table.
    """
    old, new = RequestStatus(old), RequestStatus(new)
    if old == new:
        return True
    return new in ALLOWED[old]
