from __future__ import annotations

import logging
from datetime import date, time
from typing import Any

from sqlalchemy.orm import Session

from planning.core.errors import NotFoundError, ValidationError
from planning.models import AvailabilityKind, AvailabilityRecurrence, AvailabilityWindow
from planning.services.directory_service import ensure_trainer_in_tenant
from planning.services.slot_preset_service import validate_range
from planning.services.tenant_scope_service import (
    require_admin,
    require_admin_or_trainer_self,
    require_caller,
    require_trainer_self,
)
from planning.services.time_slot_service import coerce_date


logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = frozenset({'date', 'start_time', 'end_time', 'kind', 'recurrence', 'note'})


def _parse_kind(value: AvailabilityKind | str | None) -> str:
    if value is None or value == '':
        return AvailabilityKind.AVAILABLE.value
    try:
        return AvailabilityKind(value).value
    except ValueError as exc:
        raise ValidationError(f'Unknown availability kind: {value}') from exc


def _parse_recurrence(value: AvailabilityRecurrence | str | None) -> str:
    if value is None or value == '':
        return AvailabilityRecurrence.NONE.value
    try:
        return AvailabilityRecurrence(value).value
    except ValueError as exc:
        raise ValidationError(f'Unknown recurrence: {value}') from exc


def _clean_note(value: str | None) -> str | None:
    clean = (value or '').strip()
    return clean or None


def _check_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ValidationError('end date must not be before start date')


def serialize_window(row: AvailabilityWindow) -> dict[str, Any]:
    trainer = row.trainer
    return {
        'id': row.id,
        'tenant_id': row.tenant_id,
        'trainer_id': row.trainer_id,
        'date': row.date.isoformat(),
        'start_time': row.start_time.strftime('%H:%M'),
        'end_time': row.end_time.strftime('%H:%M'),
        'kind': row.kind,
        'recurrence': row.recurrence,
        'note': row.note,
        'trainer': {'id': trainer.id, 'display_name': trainer.display_name} if trainer else None,
    }


def add_availability(
    db: Session,
    *,
    trainer_id: int,
    window_date: date | str,
    start_time: time | str,
    end_time: time | str,
    kind: AvailabilityKind | str = AvailabilityKind.AVAILABLE,
    recurrence: AvailabilityRecurrence | str = AvailabilityRecurrence.NONE,
    note: str | None = None,
) -> AvailabilityWindow:
    caller = require_trainer_self(trainer_id, operation='add_availability')
    clean_date = coerce_date(window_date)
    time_range = validate_range(start_time, end_time)
    ensure_trainer_in_tenant(db, trainer_id, tenant_id=caller.tenant_id)

    row = AvailabilityWindow(
        tenant_id=caller.tenant_id,
        trainer_id=int(trainer_id),
        date=clean_date,
        start_time=time_range.start,
        end_time=time_range.end,
        kind=_parse_kind(kind),
        recurrence=_parse_recurrence(recurrence),
        note=_clean_note(note),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(
        'availability_added tenant_id=%s trainer_id=%s window_id=%s date=%s kind=%s',
        caller.tenant_id,
        row.trainer_id,
        row.id,
        row.date.isoformat(),
        row.kind,
    )
    return row


def _load_window_or_raise(db: Session, window_id: int, *, tenant_id: int) -> AvailabilityWindow:
    row = (
        db.query(AvailabilityWindow)
        .filter(AvailabilityWindow.id == int(window_id or 0), AvailabilityWindow.tenant_id == tenant_id)
        .first()
    )
    if not row:
        raise NotFoundError('Availability window not found')
    return row


def update_availability(db: Session, window_id: int, patch: dict[str, Any]) -> AvailabilityWindow:
    caller = require_caller(operation='update_availability')
    row = _load_window_or_raise(db, window_id, tenant_id=caller.tenant_id)
    require_trainer_self(row.trainer_id, operation='update_availability')

    unknown = set(patch) - PATCHABLE_FIELDS
    if unknown:
        raise ValidationError(f'Unsupported fields: {", ".join(sorted(unknown))}')

    new_date = coerce_date(patch['date']) if 'date' in patch else row.date
    time_range = validate_range(patch.get('start_time', row.start_time), patch.get('end_time', row.end_time))
    new_kind = _parse_kind(patch['kind']) if 'kind' in patch else row.kind
    new_recurrence = _parse_recurrence(patch['recurrence']) if 'recurrence' in patch else row.recurrence

    row.date = new_date
    row.start_time = time_range.start
    row.end_time = time_range.end
    row.kind = new_kind
    row.recurrence = new_recurrence
    if 'note' in patch:
        row.note = _clean_note(patch['note'])
    db.commit()
    db.refresh(row)
    logger.info('availability_updated tenant_id=%s window_id=%s', caller.tenant_id, row.id)
    return row


def remove_availability(db: Session, window_id: int) -> None:
    caller = require_caller(operation='remove_availability')
    row = _load_window_or_raise(db, window_id, tenant_id=caller.tenant_id)
    require_trainer_self(row.trainer_id, operation='remove_availability')
    db.delete(row)
    db.commit()
    logger.info('availability_removed tenant_id=%s trainer_id=%s window_id=%s', caller.tenant_id, row.trainer_id, window_id)


def list_availability(db: Session, trainer_id: int, start_date: date, end_date: date) -> list[AvailabilityWindow]:
    caller = require_admin_or_trainer_self(trainer_id, operation='list_availability')
    _check_range(start_date, end_date)
    return (
        db.query(AvailabilityWindow)
        .filter(
            AvailabilityWindow.tenant_id == caller.tenant_id,
            AvailabilityWindow.trainer_id == int(trainer_id),
            AvailabilityWindow.date >= start_date,
            AvailabilityWindow.date <= end_date,
        )
        .order_by(AvailabilityWindow.date.asc(), AvailabilityWindow.start_time.asc(), AvailabilityWindow.id.asc())
        .all()
    )


def list_tenant_availability(
    db: Session,
    start_date: date,
    end_date: date,
    *,
    trainer_id: int | None = None,
) -> list[AvailabilityWindow]:
    caller = require_admin(operation='list_tenant_availability')
    _check_range(start_date, end_date)
    query = db.query(AvailabilityWindow).filter(
        AvailabilityWindow.tenant_id == caller.tenant_id,
        AvailabilityWindow.date >= start_date,
        AvailabilityWindow.date <= end_date,
    )
    if trainer_id:
        query = query.filter(AvailabilityWindow.trainer_id == int(trainer_id))
    return query.order_by(
        AvailabilityWindow.date.asc(),
        AvailabilityWindow.start_time.asc(),
        AvailabilityWindow.id.asc(),
    ).all()


def find_overlapping_availability(
    db: Session,
    *,
    trainer_id: int,
    slot_date: date | str,
    start_time: time | str,
    end_time: time | str,
) -> list[AvailabilityWindow]:
    """Windows a trainer declared over a proposed slot. Informative only."""
    caller = require_admin_or_trainer_self(trainer_id, operation='find_overlapping_availability')
    clean_date = coerce_date(slot_date)
    proposed = validate_range(start_time, end_time)
    return (
        db.query(AvailabilityWindow)
        .filter(
            AvailabilityWindow.tenant_id == caller.tenant_id,
            AvailabilityWindow.trainer_id == int(trainer_id),
            AvailabilityWindow.date == clean_date,
            AvailabilityWindow.start_time < proposed.end,
            AvailabilityWindow.end_time > proposed.start,
        )
        .order_by(AvailabilityWindow.start_time.asc(), AvailabilityWindow.id.asc())
        .all()
    )
