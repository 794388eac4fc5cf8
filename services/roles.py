# services/roles.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
from uuid import UUID

from app.requests.errors import Forbidden


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    TECHNICIAN = "TECHNICIAN"
    REQUESTER = "REQUESTER"


class Capability(str, Enum):
    READ_ANY = "requests:read"
    READ_OWN = "requests:read:own"
    CREATE = "requests:create"
    EDIT_ANY = "requests:edit"
    EDIT_TEAM = "requests:edit:team"
    EDIT_OWN = "requests:edit:own"
    MANAGE = "requests:manage"  # transition / assign anything
    WORK_TEAM = "requests:work:team"  # transition / self-assign within own team
    DELETE = "requests:delete"


class Action(str, Enum):
    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    TRANSITION = "TRANSITION"
    ASSIGN = "ASSIGN"
    DELETE = "DELETE"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset({
        Capability.READ_ANY,
        Capability.CREATE,
        Capability.EDIT_ANY,
        Capability.MANAGE,
        Capability.DELETE,
    }),
    Role.MANAGER: frozenset({
        Capability.READ_ANY,
        Capability.CREATE,
        Capability.EDIT_ANY,
        Capability.MANAGE,
    }),
    Role.TECHNICIAN: frozenset({
        Capability.READ_ANY,
        Capability.CREATE,
        Capability.EDIT_TEAM,
        Capability.WORK_TEAM,
    }),
    Role.REQUESTER: frozenset({
        Capability.READ_OWN,
        Capability.CREATE,
        Capability.EDIT_OWN,
    }),
}

_UNSET = object()


@dataclass(frozen=True)
class Actor:
    user_id: UUID
    role: Role


@dataclass(frozen=True)
class AuthContext:
    """
    What the gate needs to know about the record being acted on.

    ``proposed_technician_id`` is only meaningful for ASSIGN; it is left unset
    for every other action so that ``None`` can mean "unassign".
    """
    team_member_ids: frozenset[UUID] = field(default_factory=frozenset)
    technician_id: Optional[UUID] = None
    created_by_id: Optional[UUID] = None
    proposed_technician_id: object = _UNSET


def parse_role(value: str | None) -> Role | None:
    role = (value or "").strip().upper()
    try:
        return Role(role)
    except ValueError:
        return None


def has_capability(role: Role | str, capability: Capability) -> bool:
    parsed = parse_role(role) if not isinstance(role, Role) else role
    if parsed is None:
        return False
    return capability in ROLE_CAPABILITIES.get(parsed, frozenset())


def _deny(actor: Actor, action: Action, message: str) -> None:
    raise Forbidden(message, data={"role": actor.role.value, "action": action.value})


def _check_team_work(actor: Actor, action: Action, ctx: AuthContext) -> None:
    if actor.user_id not in ctx.team_member_ids:
        _deny(actor, action, "You can only work on requests assigned to your team")

    if ctx.technician_id is not None and ctx.technician_id != actor.user_id:
        _deny(actor, action, "You can only update requests assigned to you")

    if action == Action.ASSIGN:
        proposed = ctx.proposed_technician_id
        if proposed is not _UNSET and proposed is not None and proposed != actor.user_id:
            _deny(actor, action, "Technicians can only assign themselves")


def authorize(actor: Actor, action: Action, ctx: AuthContext | None = None) -> None:
    """
    Single gate for every request operation. Raises Forbidden or returns None.
    """
    ctx = ctx or AuthContext()
    caps = ROLE_CAPABILITIES.get(actor.role, frozenset())

    if action == Action.CREATE:
        if Capability.CREATE not in caps:
            _deny(actor, action, "Forbidden: Insufficient permissions")
        return

    if action == Action.READ:
        if Capability.READ_ANY in caps:
            return
        if Capability.READ_OWN in caps and ctx.created_by_id == actor.user_id:
            return
        _deny(actor, action, "You can only view requests you created")

    if action == Action.UPDATE:
        if Capability.EDIT_ANY in caps:
            return
        if Capability.EDIT_TEAM in caps and actor.user_id in ctx.team_member_ids:
            return
        if Capability.EDIT_OWN in caps and ctx.created_by_id == actor.user_id:
            return
        _deny(actor, action, "You cannot edit this request")

    if action in (Action.TRANSITION, Action.ASSIGN):
        if Capability.MANAGE in caps:
            return
        if Capability.WORK_TEAM in caps:
            _check_team_work(actor, action, ctx)
            return
        _deny(actor, action, "Forbidden: Insufficient permissions")

    if action == Action.DELETE:
        if Capability.DELETE not in caps:
            _deny(actor, action, "Forbidden: Insufficient permissions")
        return


def can(actor: Actor, action: Action, ctx: AuthContext | None = None) -> bool:
    try:
        authorize(actor, action, ctx)
    except Forbidden:
        return False
    return True


def get_user_role(conn, user_id: UUID | str) -> Role | None:
    if not user_id:
        return None

    with conn.cursor() as cur:
        cur.execute(
            """
            SELECT role
            FROM app.users
            WHERE id = %s::uuid
            """,
            (str(user_id),),
        )
        row = cur.fetchone()

    if not row:
        return None

    return parse_role(row[0])
