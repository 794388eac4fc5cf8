from __future__ import annotations

from enum import Enum
from typing import Any
from uuid import UUID

from psycopg2.extras import Json, RealDictCursor

from app.requests.model import RequestLog


class LogAction(str, Enum):
    CREATED = "CREATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ASSIGNED = "ASSIGNED"
    UNASSIGNED = "UNASSIGNED"
    UPDATED = "UPDATED"


def write_request_log(
    conn,
    *,
    request_id: UUID | str,
    actor_user_id: UUID | str,
    action: LogAction | str,
    details: dict[str, Any] | None = None,
) -> None:
    """
    Append one history row. Rows are never updated; they go away only when
    the owning request is deleted.
    """
    with conn.cursor() as cur:
        cur.execute(
            """
            INSERT INTO app.request_logs (request_id, actor_user_id, action, details)
            VALUES (%s::uuid, %s::uuid, %s, %s::jsonb);
            """,
            (
                str(request_id),
                str(actor_user_id),
                LogAction(action).value,
                Json(details or {}),
            ),
        )


def list_request_logs(conn, *, request_id: UUID | str) -> list[RequestLog]:
    with conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute(
            """
            SELECT id, request_id, actor_user_id, action, details, created_at
            FROM app.request_logs
            WHERE request_id = %s::uuid
            ORDER BY created_at DESC, id DESC
            """,
            (str(request_id),),
        )
        rows = cur.fetchall()

    return [
        RequestLog(
            id=row["id"],
            request_id=row["request_id"],
            actor_user_id=row["actor_user_id"],
            action=row["action"],
            details=row.get("details") or {},
            created_at=row.get("created_at"),
        )
        for row in rows
    ]


def delete_request_logs(conn, *, request_id: UUID | str) -> int:
    with conn.cursor() as cur:
        cur.execute(
            "DELETE FROM app.request_logs WHERE request_id = %s::uuid",
            (str(request_id),),
        )
        return cur.rowcount
