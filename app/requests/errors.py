# app/requests/errors.py
"""
Business-rule failures raised by the request engine.

Every error carries a machine-readable ``code``, a human ``message`` and the
HTTP status the API answers with. None of them are retried internally.
"""
from __future__ import annotations

from typing import Any, Optional


class RequestEngineError(Exception):
    code = "REQUEST_ERROR"
    http_status = 400

    def __init__(self, message: str, data: Optional[dict[str, Any]] = None):
        self.message = message
        self.data = data or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.code, "message": self.message, "data": self.data}


class ValidationError(RequestEngineError):
    code = "VALIDATION_ERROR"
    http_status = 400


class InvalidTransition(RequestEngineError):
    code = "INVALID_TRANSITION"
    http_status = 400


class TerminalState(RequestEngineError):
    code = "TERMINAL_STATE"
    http_status = 400


class MissingDuration(RequestEngineError):
    code = "MISSING_DURATION"
    http_status = 400


class InvalidState(RequestEngineError):
    code = "INVALID_STATE"
    http_status = 400


class Forbidden(RequestEngineError):
    code = "FORBIDDEN"
    http_status = 403


class NotFound(RequestEngineError):
    code = "NOT_FOUND"
    http_status = 404


class Conflict(RequestEngineError):
    code = "CONFLICT"
    http_status = 409


class DuplicateError(RequestEngineError):
    code = "DUPLICATE"
    http_status = 409
