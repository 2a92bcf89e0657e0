from __future__ import annotations

from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from planning.core.errors import PlanningError
from planning.core.router_guard import raise_http_error, require_admin_user, require_auth_user
from planning.db import get_db
from planning.models import AvailabilityKind, AvailabilityRecurrence, CalendarDate
from planning.route_logging import EndpointNameRoute
from planning.services.availability_service import (
    add_availability,
    list_availability,
    list_tenant_availability,
    remove_availability,
    serialize_window,
    update_availability,
)
from planning.services.tenant_scope_service import CallerContext


router = APIRouter(prefix='/api/availability', tags=['Availability'], route_class=EndpointNameRoute)


class AvailabilityPayload(BaseModel):
    date: CalendarDate
    start_time: time
    end_time: time
    kind: AvailabilityKind = AvailabilityKind.AVAILABLE
    recurrence: AvailabilityRecurrence = AvailabilityRecurrence.NONE
    note: str = Field(default='', max_length=500)
    trainer_id: int | None = None


class AvailabilityPatchPayload(BaseModel):
    date: CalendarDate | None = None
    start_time: time | None = None
    end_time: time | None = None
    kind: AvailabilityKind | None = None
    recurrence: AvailabilityRecurrence | None = None
    note: str | None = Field(default=None, max_length=500)


def _resolve_trainer_id(caller: CallerContext, trainer_id: int | None) -> int:
    if trainer_id:
        return int(trainer_id)
    if caller.trainer_id:
        return int(caller.trainer_id)
    raise HTTPException(status_code=400, detail='trainer_id is required')


@router.get('')
def api_list_availability(
    request: Request,
    start: date = Query(...),
    end: date = Query(...),
    trainer_id: int | None = Query(default=None),
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    effective_trainer_id = _resolve_trainer_id(caller, trainer_id)
    try:
        rows = list_availability(db, effective_trainer_id, start, end)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': [serialize_window(row) for row in rows]}


@router.get('/overview')
def api_availability_overview(
    request: Request,
    start: date = Query(...),
    end: date = Query(...),
    trainer_id: int | None = Query(default=None),
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    try:
        rows = list_tenant_availability(db, start, end, trainer_id=trainer_id)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': [serialize_window(row) for row in rows]}


@router.post('')
def api_add_availability(
    payload: AvailabilityPayload,
    request: Request,
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    effective_trainer_id = _resolve_trainer_id(caller, payload.trainer_id)
    try:
        row = add_availability(
            db,
            trainer_id=effective_trainer_id,
            window_date=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            kind=payload.kind,
            recurrence=payload.recurrence,
            note=payload.note,
        )
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': serialize_window(row)}


@router.patch('/{window_id}')
def api_update_availability(
    window_id: int,
    payload: AvailabilityPatchPayload,
    request: Request,
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    patch = payload.model_dump(exclude_unset=True)
    try:
        row = update_availability(db, window_id, patch)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': serialize_window(row)}


@router.delete('/{window_id}')
def api_remove_availability(
    window_id: int,
    request: Request,
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    try:
        remove_availability(db, window_id)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': {'ok': True, 'id': window_id}}
