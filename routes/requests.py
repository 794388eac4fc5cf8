# routes/requests.py
from __future__ import annotations

import logging
from typing import Any, Callable
from uuid import UUID

import psycopg2
from fastapi import APIRouter, Depends, Response, status

from app.requests import service
from app.requests.errors import RequestEngineError
from db import get_conn
from deps.auth import CurrentUser, get_current_user
from schemas import (
    AssignBody,
    CreateRequestBody,
    RequestLogListResponse,
    RequestLogOut,
    RequestOut,
    TransitionBody,
    UpdateRequestBody,
)
from services.db_errors import raise_for_db_error

logger = logging.getLogger("gearguard.requests.http")
router = APIRouter(prefix="/v1/requests", tags=["requests"])


def _run(op: Callable[..., Any], *args, **kwargs) -> Any:
    """
    Run one service operation inside one transaction.
    """
    try:
        with get_conn() as conn:
            return op(conn, *args, **kwargs)
    except RequestEngineError:
        raise
    except psycopg2.Error as e:
        raise_for_db_error(e)
        raise


@router.post("", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def create_request(
    body: CreateRequestBody,
    user: CurrentUser = Depends(get_current_user),
):
    created = _run(
        service.create_request,
        user.actor,
        title=body.title,
        description=body.description,
        type=body.type,
        priority=body.priority,
        equipment_id=body.equipment_id,
        scheduled_date=body.scheduled_date,
    )
    return RequestOut.from_model(created)


@router.get("/{request_id}", response_model=RequestOut)
def get_request(
    request_id: UUID,
    user: CurrentUser = Depends(get_current_user),
):
    request = _run(service.get_request, request_id, user.actor)
    return RequestOut.from_model(request)


@router.patch("/{request_id}", response_model=RequestOut)
def update_request(
    request_id: UUID,
    body: UpdateRequestBody,
    user: CurrentUser = Depends(get_current_user),
):
    updated = _run(
        service.update_request,
        request_id,
        user.actor,
        body.model_dump(exclude_unset=True),
    )
    return RequestOut.from_model(updated)


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    request_id: UUID,
    user: CurrentUser = Depends(get_current_user),
):
    _run(service.delete_request, request_id, user.actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{request_id}/transition", response_model=RequestOut)
def transition_request(
    request_id: UUID,
    body: TransitionBody,
    user: CurrentUser = Depends(get_current_user),
):
    updated = _run(
        service.transition_request,
        request_id,
        body.status,
        user.actor,
        duration_minutes=body.duration_minutes,
        repair_notes=body.repair_notes,
    )
    return RequestOut.from_model(updated)


@router.post("/{request_id}/assign", response_model=RequestOut)
def assign_technician(
    request_id: UUID,
    body: AssignBody,
    user: CurrentUser = Depends(get_current_user),
):
    updated = _run(service.assign_technician, request_id, body.technician_id, user.actor)
    return RequestOut.from_model(updated)


@router.get("/{request_id}/logs", response_model=RequestLogListResponse)
def list_request_logs(
    request_id: UUID,
    user: CurrentUser = Depends(get_current_user),
):
    logs = _run(service.list_request_logs, request_id, user.actor)
    return RequestLogListResponse(
        request_id=request_id,
        logs=[RequestLogOut.from_model(log) for log in logs],
    )
