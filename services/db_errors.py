# services/db_errors.py
from __future__ import annotations

import logging

from app.requests.errors import DuplicateError, NotFound, RequestEngineError, ValidationError

logger = logging.getLogger("gearguard.db")

# SQLSTATE -> (domain error, default message)
DB_ERROR_MAP: dict[str, tuple[type[RequestEngineError], str]] = {
    "23505": (DuplicateError, "A record with this value already exists"),
    "23503": (NotFound, "Referenced record not found"),
    "23514": (ValidationError, "Value violates a check constraint"),
    "22P02": (ValidationError, "Invalid input syntax"),
}


def _constraint_field(exc: Exception) -> str | None:
    """
    "equipment_serial_number_key" -> "serial_number" (best effort).
    """
    diag = getattr(exc, "diag", None)
    name = getattr(diag, "constraint_name", None) if diag is not None else None
    if not isinstance(name, str) or not name:
        return None

    table = getattr(diag, "table_name", None) or ""
    field = name
    if table and field.startswith(table + "_"):
        field = field[len(table) + 1:]
    for suffix in ("_key", "_fkey", "_check"):
        if field.endswith(suffix):
            field = field[: -len(suffix)]
            break
    return field or None


def translate_db_error(exc: Exception) -> RequestEngineError | None:
    code = getattr(exc, "pgcode", None)
    if not code or code not in DB_ERROR_MAP:
        return None

    error_cls, message = DB_ERROR_MAP[code]
    field = _constraint_field(exc)
    if field and error_cls is DuplicateError:
        message = f"A record with this {field} already exists"

    return error_cls(message, data={"field": field} if field else None)


def raise_for_db_error(exc: Exception) -> None:
    """
    Convert known database errors into domain errors; otherwise re-raise the
    original so the global handler answers 500.
    """
    translated = translate_db_error(exc)
    if translated is not None:
        raise translated from exc

    logger.error("unexpected database error type=%s", type(exc).__name__)
    raise exc
