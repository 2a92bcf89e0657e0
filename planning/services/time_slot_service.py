from __future__ import annotations

import logging
from datetime import date, time
from typing import Any

from sqlalchemy.orm import Session, selectinload

from planning.core.errors import AuthorizationError, NotFoundError, ValidationError
from planning.core.time_provider import TimeProvider, default_time_provider
from planning.models import DeliveryMode, TimeSlot, TrainingSession
from planning.services.directory_service import ensure_room_in_tenant, ensure_trainer_in_tenant, get_session_for_tenant
from planning.services.slot_preset_service import validate_range
from planning.services.tenant_scope_service import require_admin, require_caller


logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset({'date', 'start_time', 'end_time', 'delivery_mode', 'trainer_id', 'room_id'})


def parse_delivery_mode(value: DeliveryMode | str | None) -> str:
    if value is None or value == '':
        return DeliveryMode.ON_SITE.value
    try:
        return DeliveryMode(value).value
    except ValueError as exc:
        raise ValidationError(f'Unknown delivery_mode: {value}') from exc


def coerce_date(value: date | str | None) -> date:
    if value is None or value == '':
        raise ValidationError('date is required')
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError('date must be YYYY-MM-DD') from exc


def _clean_resource_id(value: int | str | None) -> int | None:
    if value is None or value == '':
        return None
    try:
        clean = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError('resource ids must be integers') from exc
    if clean <= 0:
        raise ValidationError('resource ids must be positive')
    return clean


def _scoped_slot_query(db: Session, tenant_id: int):
    return (
        db.query(TimeSlot)
        .options(
            selectinload(TimeSlot.session),
            selectinload(TimeSlot.trainer),
            selectinload(TimeSlot.room),
        )
        .filter(TimeSlot.tenant_id == tenant_id, TimeSlot.archived_at.is_(None))
    )


def _ordered(query):
    return query.order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc(), TimeSlot.id.asc())


def _load_slot_or_raise(db: Session, slot_id: int, *, tenant_id: int) -> TimeSlot:
    row = _scoped_slot_query(db, tenant_id).filter(TimeSlot.id == int(slot_id or 0)).first()
    if not row:
        raise NotFoundError('Time slot not found')
    return row


def serialize_slot(row: TimeSlot) -> dict[str, Any]:
    session = row.session
    trainer = row.trainer
    room = row.room
    return {
        'id': row.id,
        'tenant_id': row.tenant_id,
        'session_id': row.session_id,
        'date': row.date.isoformat(),
        'start_time': row.start_time.strftime('%H:%M'),
        'end_time': row.end_time.strftime('%H:%M'),
        'duration_minutes': row.duration_minutes,
        'delivery_mode': row.delivery_mode,
        'trainer_id': row.trainer_id,
        'room_id': row.room_id,
        'session': (
            {
                'id': session.id,
                'name': session.name,
                'display_number': session.display_number,
                'status': session.status,
            }
            if session
            else None
        ),
        'trainer': {'id': trainer.id, 'display_name': trainer.display_name} if trainer else None,
        'room': {'id': room.id, 'display_name': room.display_name} if room else None,
        'created_at': row.created_at.isoformat() if row.created_at else None,
    }


def get_time_slot(db: Session, slot_id: int) -> TimeSlot:
    caller = require_caller(operation='get_time_slot')
    row = _load_slot_or_raise(db, slot_id, tenant_id=caller.tenant_id)
    if not caller.is_admin and not caller.owns_trainer(row.trainer_id):
        raise NotFoundError('Time slot not found')
    return row


def create_time_slot(
    db: Session,
    *,
    session_id: int,
    slot_date: date | None,
    start_time: time | str | None,
    end_time: time | str | None,
    delivery_mode: DeliveryMode | str | None = DeliveryMode.ON_SITE,
    trainer_id: int | None = None,
    room_id: int | None = None,
    commit: bool = True,
) -> TimeSlot:
    caller = require_admin(operation='create_time_slot')
    if not session_id:
        raise ValidationError('session_id is required')
    slot_date = coerce_date(slot_date)
    time_range = validate_range(start_time, end_time)
    mode = parse_delivery_mode(delivery_mode)
    clean_trainer_id = _clean_resource_id(trainer_id)
    clean_room_id = _clean_resource_id(room_id)

    session = get_session_for_tenant(db, session_id, tenant_id=caller.tenant_id)
    ensure_trainer_in_tenant(db, clean_trainer_id, tenant_id=caller.tenant_id)
    ensure_room_in_tenant(db, clean_room_id, tenant_id=caller.tenant_id)

    row = TimeSlot(
        tenant_id=caller.tenant_id,
        session_id=session.id,
        date=slot_date,
        start_time=time_range.start,
        end_time=time_range.end,
        delivery_mode=mode,
        trainer_id=clean_trainer_id,
        room_id=clean_room_id,
    )
    db.add(row)
    if commit:
        db.commit()
        db.refresh(row)
    else:
        db.flush()
    logger.info(
        'slot_created tenant_id=%s slot_id=%s session_id=%s date=%s start=%s end=%s trainer_id=%s room_id=%s',
        caller.tenant_id,
        row.id,
        row.session_id,
        row.date.isoformat(),
        row.start_time.strftime('%H:%M'),
        row.end_time.strftime('%H:%M'),
        row.trainer_id,
        row.room_id,
    )
    return row


def update_time_slot(db: Session, slot_id: int, patch: dict[str, Any]) -> TimeSlot:
    caller = require_admin(operation='update_time_slot')
    row = _load_slot_or_raise(db, slot_id, tenant_id=caller.tenant_id)

    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise ValidationError(f'Unsupported fields: {", ".join(sorted(unknown))}')

    if 'delivery_mode' in patch and patch['delivery_mode'] is None:
        raise ValidationError('delivery_mode cannot be null')

    new_date = coerce_date(patch['date']) if 'date' in patch else row.date
    time_range = validate_range(patch.get('start_time', row.start_time), patch.get('end_time', row.end_time))
    mode = parse_delivery_mode(patch.get('delivery_mode', row.delivery_mode))
    new_trainer_id = _clean_resource_id(patch['trainer_id']) if 'trainer_id' in patch else row.trainer_id
    new_room_id = _clean_resource_id(patch['room_id']) if 'room_id' in patch else row.room_id
    ensure_trainer_in_tenant(db, new_trainer_id, tenant_id=caller.tenant_id)
    ensure_room_in_tenant(db, new_room_id, tenant_id=caller.tenant_id)

    row.date = new_date
    row.start_time = time_range.start
    row.end_time = time_range.end
    row.delivery_mode = mode
    row.trainer_id = new_trainer_id
    row.room_id = new_room_id
    db.commit()
    db.refresh(row)
    logger.info(
        'slot_updated tenant_id=%s slot_id=%s fields=%s',
        caller.tenant_id,
        row.id,
        ','.join(sorted(patch)),
    )
    return row


def list_session_slots(db: Session, session_id: int) -> list[TimeSlot]:
    caller = require_caller(operation='list_session_slots')
    query = _scoped_slot_query(db, caller.tenant_id).filter(TimeSlot.session_id == int(session_id or 0))
    if not caller.is_admin:
        query = query.filter(TimeSlot.trainer_id == int(caller.trainer_id or 0))
    return _ordered(query).all()


def list_tenant_slots(
    db: Session,
    start_date: date,
    end_date: date,
    *,
    trainer_id: int | None = None,
    room_id: int | None = None,
    session_id: int | None = None,
    delivery_mode: str | None = None,
    session_status: str | None = None,
) -> list[TimeSlot]:
    caller = require_admin(operation='list_tenant_slots')
    if end_date < start_date:
        raise ValidationError('end date must not be before start date')
    query = _scoped_slot_query(db, caller.tenant_id).filter(
        TimeSlot.date >= start_date,
        TimeSlot.date <= end_date,
    )
    if trainer_id:
        query = query.filter(TimeSlot.trainer_id == int(trainer_id))
    if room_id:
        query = query.filter(TimeSlot.room_id == int(room_id))
    if session_id:
        query = query.filter(TimeSlot.session_id == int(session_id))
    if delivery_mode:
        query = query.filter(TimeSlot.delivery_mode == parse_delivery_mode(delivery_mode))
    if session_status:
        query = query.join(TrainingSession, TrainingSession.id == TimeSlot.session_id).filter(
            TrainingSession.status == session_status
        )
    return _ordered(query).all()


def list_trainer_slots(db: Session, trainer_id: int, start_date: date, end_date: date) -> list[TimeSlot]:
    caller = require_caller(operation='list_trainer_slots')
    if not caller.is_admin and int(caller.trainer_id or 0) != int(trainer_id or 0):
        raise AuthorizationError('Trainers may only read their own planning')
    if end_date < start_date:
        raise ValidationError('end date must not be before start date')
    query = _scoped_slot_query(db, caller.tenant_id).filter(
        TimeSlot.trainer_id == int(trainer_id),
        TimeSlot.date >= start_date,
        TimeSlot.date <= end_date,
    )
    return _ordered(query).all()


def delete_time_slot(db: Session, slot_id: int) -> None:
    caller = require_admin(operation='delete_time_slot')
    row = _load_slot_or_raise(db, slot_id, tenant_id=caller.tenant_id)
    db.delete(row)
    db.commit()
    logger.info('slot_deleted tenant_id=%s slot_id=%s', caller.tenant_id, slot_id)


def archive_time_slot(
    db: Session,
    slot_id: int,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> TimeSlot:
    caller = require_admin(operation='archive_time_slot')
    row = _load_slot_or_raise(db, slot_id, tenant_id=caller.tenant_id)
    row.archived_at = time_provider.utcnow()
    db.commit()
    db.refresh(row)
    logger.info('slot_archived tenant_id=%s slot_id=%s', caller.tenant_id, slot_id)
    return row


def remove_session_slots(db: Session, session_id: int) -> int:
    caller = require_admin(operation='remove_session_slots')
    session = get_session_for_tenant(db, session_id, tenant_id=caller.tenant_id)
    removed = (
        db.query(TimeSlot)
        .filter(TimeSlot.tenant_id == caller.tenant_id, TimeSlot.session_id == session.id)
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info('session_slots_removed tenant_id=%s session_id=%s count=%s', caller.tenant_id, session.id, removed)
    return int(removed or 0)
