from __future__ import annotations

import os

from fastapi import APIRouter

from db import get_conn

router = APIRouter(tags=["health"])

# head of alembic/versions; readiness fails until the database is migrated to it
MIGRATION_REVISION = "0002_request_logs"
SERVICE_NAME = "gearguard-api"


def _ping_db() -> str | None:
    """Returns None when the database answers, else the error type name."""
    try:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
    except Exception as exc:
        # only the type; messages can carry the DSN
        return type(exc).__name__
    return None


def _applied_revision() -> str | None:
    try:
        with get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT to_regclass('public.alembic_version');")
                if not cur.fetchone()[0]:
                    return None
                cur.execute("SELECT version_num FROM alembic_version LIMIT 1;")
                row = cur.fetchone()
    except Exception:
        return None
    return row[0] if row else None


def _build_info() -> dict:
    return {
        "service": SERVICE_NAME,
        "env": (os.getenv("ENV") or "").strip(),
        "version": os.getenv("APP_VERSION", "1.0.0"),
        "git_sha": (os.getenv("GIT_SHA") or "").strip() or None,
    }


@router.get("/health")
def health():
    return {"ok": True, **_build_info()}


@router.get("/healthz")
def healthz():
    db_error = _ping_db()
    return {
        "ok": True,
        **_build_info(),
        "db_ok": db_error is None,
        "db_error": db_error,
    }


@router.get("/readyz")
def readyz():
    db_error = _ping_db()
    revision = _applied_revision() if db_error is None else None
    migrations_ok = revision == MIGRATION_REVISION
    return {
        "ready": db_error is None and migrations_ok,
        **_build_info(),
        "db_ok": db_error is None,
        "db_error": db_error,
        "migrations_ok": migrations_ok,
        "migration_revision": revision,
        "expected_revision": MIGRATION_REVISION,
    }
