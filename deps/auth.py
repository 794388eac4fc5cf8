# deps/auth.py
from __future__ import annotations

from uuid import UUID

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from db import get_conn
from security import decode_token
from services.roles import Actor, Role, get_user_role

bearer = HTTPBearer(auto_error=False)


class CurrentUser:
    def __init__(self, user_id: UUID, role: Role):
        self.user_id = user_id
        self.role = role

    @property
    def actor(self) -> Actor:
        return Actor(user_id=self.user_id, role=self.role)


def _user_id_from_credentials(creds: HTTPAuthorizationCredentials | None) -> UUID:
    if not creds:
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")

    # must be "Bearer"
    if (creds.scheme or "").lower() != "bearer":
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")

    payload = decode_token(creds.credentials)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")

    try:
        return UUID(sub)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")


def get_current_user(
    creds: HTTPAuthorizationCredentials = Depends(bearer),
) -> CurrentUser:
    user_id = _user_id_from_credentials(creds)

    # role is read from the users table on every call, never from the token
    with get_conn() as conn:
        role = get_user_role(conn, user_id)

    if role is None:
        raise HTTPException(status_code=401, detail="UNAUTHORIZED")

    return CurrentUser(user_id=user_id, role=role)
