# routes/auth.py
from fastapi import APIRouter, HTTPException

from db import get_conn
from schemas import LoginRequest, LoginResponse
from security import verify_password, create_access_token
from services.roles import parse_role

router = APIRouter(prefix="/v1/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
def login(body: LoginRequest):
    with get_conn() as conn:
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, password_hash, role
                FROM app.users
                WHERE lower(email) = lower(%s)
                LIMIT 1;
                """,
                (body.email.strip(),),
            )
            row = cur.fetchone()

    if not row:
        raise HTTPException(status_code=401, detail="INVALID_CREDENTIALS")

    user_id, password_hash_db, role_db = row

    if not password_hash_db or not verify_password(body.password, password_hash_db):
        raise HTTPException(status_code=401, detail="INVALID_CREDENTIALS")

    role = parse_role(role_db)
    if role is None:
        raise HTTPException(status_code=403, detail="ROLE_NOT_RECOGNIZED")

    token = create_access_token(sub=str(user_id))
    return LoginResponse(access_token=token, user_id=user_id, role=role.value)
