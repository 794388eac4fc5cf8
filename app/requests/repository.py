# app/requests/repository.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from psycopg2.extras import RealDictCursor

from app.requests.model import (
    Equipment,
    EquipmentStatus,
    MaintenanceRequest,
    Priority,
    RequestType,
    TeamMember,
)
from app.requests.state_machine import RequestStatus

REQUEST_COLUMNS = (
    "id, title, description, type, status, priority, category, equipment_id, team_id, "
    "technician_id, created_by_id, scheduled_date, started_at, completed_at, "
    "duration_minutes, repair_notes, created_at, updated_at"
)

# Columns a write set may touch; anything else is a programming error.
UPDATABLE_COLUMNS = frozenset({
    "status",
    "started_at",
    "completed_at",
    "duration_minutes",
    "repair_notes",
    "technician_id",
    "title",
    "description",
    "priority",
    "scheduled_date",
})

_ANY = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _adapt(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _row_to_request(row: dict[str, Any]) -> MaintenanceRequest:
    return MaintenanceRequest(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        type=RequestType(row["type"]),
        status=RequestStatus(row["status"]),
        priority=Priority(row["priority"]),
        category=row.get("category"),
        equipment_id=row["equipment_id"],
        team_id=row.get("team_id"),
        technician_id=row.get("technician_id"),
        created_by_id=row["created_by_id"],
        scheduled_date=row.get("scheduled_date"),
        started_at=row.get("started_at"),
        completed_at=row.get("completed_at"),
        duration_minutes=row.get("duration_minutes"),
        repair_notes=row.get("repair_notes"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


# ==========================================================
# Reads
# ==========================================================

def get_request(conn, request_id: UUID | str) -> Optional[MaintenanceRequest]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"SELECT {REQUEST_COLUMNS} FROM app.maintenance_requests WHERE id = %s::uuid",
            (str(request_id),),
        )
        row = cur.fetchone()
    return _row_to_request(row) if row else None


def get_equipment(conn, equipment_id: UUID | str) -> Optional[Equipment]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT id, name, serial_number, category, status, default_team_id
            FROM app.equipment
            WHERE id = %s::uuid
            """,
            (str(equipment_id),),
        )
        row = cur.fetchone()

    if not row:
        return None

    return Equipment(
        id=row["id"],
        name=row["name"],
        serial_number=row.get("serial_number"),
        category=row.get("category"),
        status=EquipmentStatus(row["status"]),
        default_team_id=row.get("default_team_id"),
    )


def get_team_members(conn, team_id: UUID | str | None) -> list[TeamMember]:
    if team_id is None:
        return []

    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT tm.team_id, tm.user_id, u.role, tm.is_leader
            FROM app.team_members tm
            JOIN app.users u ON u.id = tm.user_id
            WHERE tm.team_id = %s::uuid
            """,
            (str(team_id),),
        )
        rows = cur.fetchall()

    return [
        TeamMember(
            team_id=row["team_id"],
            user_id=row["user_id"],
            role=(row.get("role") or "").upper(),
            is_leader=bool(row.get("is_leader")),
        )
        for row in rows
    ]


# ==========================================================
# Writes
# ==========================================================

def insert_request(
    conn,
    *,
    title: str,
    description: str,
    type: RequestType,
    priority: Priority,
    equipment_id: UUID,
    created_by_id: UUID,
    category: Optional[str] = None,
    team_id: Optional[UUID] = None,
    scheduled_date=None,
) -> MaintenanceRequest:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"""
            INSERT INTO app.maintenance_requests (
              title, description, type, status, priority, category,
              equipment_id, team_id, created_by_id, scheduled_date
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s::uuid, %s::uuid, %s::uuid, %s)
            RETURNING {REQUEST_COLUMNS}
            """,
            (
                title,
                description,
                RequestType(type).value,
                RequestStatus.NEW.value,
                Priority(priority).value,
                category,
                str(equipment_id),
                str(team_id) if team_id else None,
                str(created_by_id),
                scheduled_date,
            ),
        )
        row = cur.fetchone()
    return _row_to_request(row)


def update_request(
    conn,
    request_id: UUID | str,
    *,
    expected_status: RequestStatus,
    changes: dict[str, Any],
    expected_technician_id: Any = _ANY,
) -> Optional[MaintenanceRequest]:
    """
    Compare-and-swap update. The row is only written when its status (and,
    if given, its technician) still match what the caller validated against.

    Returns the updated request, or None when the guard did not match.
    """
    unknown = set(changes) - UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"Not updatable: {sorted(unknown)}")

    assignments = [f"{col} = %s" for col in changes]
    params: list[Any] = [_adapt(v) for v in changes.values()]
    assignments.append("updated_at = %s")
    params.append(_utcnow())

    where = ["id = %s::uuid", "status = %s"]
    params.extend([str(request_id), RequestStatus(expected_status).value])

    if expected_technician_id is not _ANY:
        where.append("technician_id IS NOT DISTINCT FROM %s::uuid")
        params.append(str(expected_technician_id) if expected_technician_id else None)

    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            f"""
            UPDATE app.maintenance_requests
            SET {", ".join(assignments)}
            WHERE {" AND ".join(where)}
            RETURNING {REQUEST_COLUMNS}
            """,
            tuple(params),
        )
        row = cur.fetchone()
    return _row_to_request(row) if row else None


def mark_equipment_scrapped(conn, equipment_id: UUID | str) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            """
            UPDATE app.equipment
            SET status = %s, updated_at = now()
            WHERE id = %s::uuid
            """,
            (EquipmentStatus.SCRAPPED.value, str(equipment_id)),
        )
        return cur.rowcount == 1


def delete_request(
    conn,
    request_id: UUID | str,
    *,
    expected_status: RequestStatus = RequestStatus.NEW,
) -> bool:
    with conn.cursor() as cur:
        cur.execute(
            """
            DELETE FROM app.maintenance_requests
            WHERE id = %s::uuid AND status = %s
            """,
            (str(request_id), RequestStatus(expected_status).value),
        )
        return cur.rowcount == 1
