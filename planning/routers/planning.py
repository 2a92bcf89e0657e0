from __future__ import annotations

from datetime import date, time

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from planning.core.errors import PlanningError
from planning.core.router_guard import raise_http_error, require_admin_user, require_auth_user
from planning.db import get_db
from planning.models import CalendarDate, DeliveryMode
from planning.route_logging import EndpointNameRoute
from planning.services.availability_service import find_overlapping_availability, serialize_window
from planning.services.conflict_service import check_conflicts
from planning.services.directory_service import get_planning_filter_options, get_session_label
from planning.services.planning_view_service import get_planning_view, list_trainer_planning
from planning.services.slot_batch_service import create_slots_batch
from planning.services.slot_preset_service import SlotMode
from planning.services.tenant_scope_service import CallerContext
from planning.services.time_slot_service import (
    archive_time_slot,
    create_time_slot,
    delete_time_slot,
    get_time_slot,
    list_session_slots,
    remove_session_slots,
    serialize_slot,
    update_time_slot,
)
from planning.utils.calendar_window import month_dates, week_window


router = APIRouter(prefix='/api/planning', tags=['Planning'], route_class=EndpointNameRoute)


class TimeSlotPayload(BaseModel):
    date: CalendarDate
    start_time: time
    end_time: time
    delivery_mode: DeliveryMode = DeliveryMode.ON_SITE
    trainer_id: int | None = None
    room_id: int | None = None


class TimeSlotPatchPayload(BaseModel):
    date: CalendarDate | None = None
    start_time: time | None = None
    end_time: time | None = None
    delivery_mode: DeliveryMode | None = None
    trainer_id: int | None = None
    room_id: int | None = None


class SlotBatchPayload(BaseModel):
    mode: SlotMode
    date: CalendarDate
    delivery_mode: DeliveryMode = DeliveryMode.ON_SITE
    trainer_id: int | None = None
    room_id: int | None = None
    start_time: time | None = None
    end_time: time | None = None


class ConflictCheckPayload(BaseModel):
    date: CalendarDate
    start_time: time
    end_time: time
    trainer_id: int | None = None
    room_id: int | None = None
    exclude_slot_id: int | None = Field(default=None, ge=1)


@router.get('/sessions/{session_id}/slots')
def api_list_session_slots(
    session_id: int,
    request: Request,
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    rows = list_session_slots(db, session_id)
    return {
        'data': [serialize_slot(row) for row in rows],
        'session': {'id': session_id, 'label': get_session_label(db, session_id, tenant_id=caller.tenant_id)},
    }


@router.post('/sessions/{session_id}/slots')
def api_create_slot(
    session_id: int,
    payload: TimeSlotPayload,
    request: Request,
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    try:
        row = create_time_slot(
            db,
            session_id=session_id,
            slot_date=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            delivery_mode=payload.delivery_mode,
            trainer_id=payload.trainer_id,
            room_id=payload.room_id,
        )
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': serialize_slot(row)}


@router.post('/sessions/{session_id}/slots/batch')
def api_create_slots_batch(
    session_id: int,
    payload: SlotBatchPayload,
    request: Request,
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    try:
        result = create_slots_batch(
            db,
            session_id=session_id,
            mode=payload.mode,
            slot_date=payload.date,
            delivery_mode=payload.delivery_mode,
            trainer_id=payload.trainer_id,
            room_id=payload.room_id,
            custom_start=payload.start_time,
            custom_end=payload.end_time,
        )
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': result.to_dict()}


@router.delete('/sessions/{session_id}/slots')
def api_remove_session_slots(
    session_id: int,
    request: Request,
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    try:
        removed = remove_session_slots(db, session_id)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': {'ok': True, 'session_id': session_id, 'removed': removed}}


@router.get('/slots')
def api_list_slots(
    request: Request,
    start: date = Query(...),
    end: date = Query(...),
    trainer_id: int | None = Query(default=None),
    room_id: int | None = Query(default=None),
    session_id: int | None = Query(default=None),
    delivery_mode: DeliveryMode | None = Query(default=None),
    session_status: str | None = Query(default=None),
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    try:
        return get_planning_view(
            db,
            start_date=start,
            end_date=end,
            trainer_id=trainer_id,
            room_id=room_id,
            session_id=session_id,
            delivery_mode=delivery_mode.value if delivery_mode else None,
            session_status=session_status,
        )
    except PlanningError as exc:
        raise_http_error(exc)


@router.get('/slots/week')
def api_week_slots(
    request: Request,
    date_value: date = Query(..., alias='date'),
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    week_start, week_end = week_window(date_value)
    try:
        view = get_planning_view(db, start_date=week_start.date(), end_date=week_end.date())
    except PlanningError as exc:
        raise_http_error(exc)
    view['window'] = {'start': week_start.isoformat(), 'end': week_end.isoformat()}
    return view


@router.get('/slots/month')
def api_month_slots(
    request: Request,
    date_value: date = Query(..., alias='date'),
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    # padded to whole weeks for the calendar grid
    first_day, last_day = month_dates(date_value)
    try:
        return get_planning_view(db, start_date=first_day, end_date=last_day)
    except PlanningError as exc:
        raise_http_error(exc)


@router.get('/slots/{slot_id}')
def api_get_slot(
    slot_id: int,
    request: Request,
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    try:
        row = get_time_slot(db, slot_id)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': serialize_slot(row)}


@router.patch('/slots/{slot_id}')
def api_update_slot(
    slot_id: int,
    payload: TimeSlotPatchPayload,
    request: Request,
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    patch = payload.model_dump(exclude_unset=True)
    if 'delivery_mode' in patch and patch['delivery_mode'] is not None:
        patch['delivery_mode'] = patch['delivery_mode'].value
    try:
        row = update_time_slot(db, slot_id, patch)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': serialize_slot(row)}


@router.delete('/slots/{slot_id}')
def api_delete_slot(
    slot_id: int,
    request: Request,
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    try:
        delete_time_slot(db, slot_id)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': {'ok': True, 'id': slot_id}}


@router.post('/slots/{slot_id}/archive')
def api_archive_slot(
    slot_id: int,
    request: Request,
    caller: CallerContext = Depends(require_admin_user),
    db: Session = Depends(get_db),
):
    try:
        row = archive_time_slot(db, slot_id)
    except PlanningError as exc:
        raise_http_error(exc)
    return {'data': {'ok': True, 'id': row.id, 'archived_at': row.archived_at.isoformat()}}


@router.post('/conflicts')
def api_check_conflicts(
    payload: ConflictCheckPayload,
    request: Request,
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    try:
        conflicts = check_conflicts(
            db,
            slot_date=payload.date,
            start_time=payload.start_time,
            end_time=payload.end_time,
            trainer_id=payload.trainer_id,
            room_id=payload.room_id,
            exclude_slot_id=payload.exclude_slot_id,
        )
        availability = []
        if payload.trainer_id and (caller.is_admin or caller.owns_trainer(payload.trainer_id)):
            availability = find_overlapping_availability(
                db,
                trainer_id=payload.trainer_id,
                slot_date=payload.date,
                start_time=payload.start_time,
                end_time=payload.end_time,
            )
    except PlanningError as exc:
        raise_http_error(exc)
    return {
        'data': {
            'conflicts': [item.to_dict() for item in conflicts],
            'availability': [serialize_window(row) for row in availability],
        }
    }


@router.get('/filter-options')
def api_filter_options(
    request: Request,
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    return {'data': get_planning_filter_options(db)}


@router.get('/trainers/{trainer_id}/slots')
def api_trainer_slots(
    trainer_id: int,
    request: Request,
    start: date = Query(...),
    end: date = Query(...),
    caller: CallerContext = Depends(require_auth_user),
    db: Session = Depends(get_db),
):
    try:
        return list_trainer_planning(db, trainer_id, start, end)
    except PlanningError as exc:
        raise_http_error(exc)
