"""Advisory resource conflict detection for proposed time slots.

A conflict is an existing slot of the caller's tenant, on the same day, whose
time range overlaps the proposed one and which uses the same trainer or room.
Ranges are half-open: a slot ending at 12:00 does not collide with one
starting at 12:00.

Nothing in the slot store calls into this module. Callers surface the result
as a warning and may still commit the slot.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date, time
from typing import Any

from sqlalchemy.orm import Session

from planning.models import TimeSlot, TrainingSession
from planning.services.directory_service import get_room_label, get_trainer_label
from planning.services.slot_preset_service import validate_range
from planning.services.tenant_scope_service import require_staff
from planning.services.time_slot_service import coerce_date


logger = logging.getLogger(__name__)

RESOURCE_TRAINER = 'trainer'
RESOURCE_ROOM = 'room'


@dataclass(frozen=True)
class Conflict:
    kind: str
    resource_id: int
    resource_name: str
    slot_id: int
    date: date
    start_time: time
    end_time: time
    session_id: int
    session_name: str

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload['date'] = self.date.isoformat()
        payload['start_time'] = self.start_time.strftime('%H:%M')
        payload['end_time'] = self.end_time.strftime('%H:%M')
        return payload


def _overlapping_slots(
    db: Session,
    *,
    tenant_id: int,
    resource_column,
    resource_id: int,
    slot_date: date,
    start_time: time,
    end_time: time,
    exclude_slot_id: int | None,
) -> list[tuple[TimeSlot, str]]:
    query = (
        db.query(TimeSlot, TrainingSession.name)
        .join(TrainingSession, TrainingSession.id == TimeSlot.session_id)
        .filter(
            TimeSlot.tenant_id == tenant_id,
            TimeSlot.archived_at.is_(None),
            TimeSlot.date == slot_date,
            resource_column == resource_id,
            TimeSlot.start_time < end_time,
            TimeSlot.end_time > start_time,
        )
    )
    if exclude_slot_id:
        query = query.filter(TimeSlot.id != int(exclude_slot_id))
    return query.order_by(TimeSlot.start_time.asc(), TimeSlot.id.asc()).all()


def check_conflicts(
    db: Session,
    *,
    slot_date: date | str,
    start_time: time | str,
    end_time: time | str,
    trainer_id: int | None = None,
    room_id: int | None = None,
    exclude_slot_id: int | None = None,
) -> list[Conflict]:
    caller = require_staff(operation='check_conflicts')
    clean_date = coerce_date(slot_date)
    proposed = validate_range(start_time, end_time)

    checks: list[tuple[str, Any, int]] = []
    if trainer_id:
        checks.append((RESOURCE_TRAINER, TimeSlot.trainer_id, int(trainer_id)))
    if room_id:
        checks.append((RESOURCE_ROOM, TimeSlot.room_id, int(room_id)))

    conflicts: list[Conflict] = []
    for kind, column, resource_id in checks:
        rows = _overlapping_slots(
            db,
            tenant_id=caller.tenant_id,
            resource_column=column,
            resource_id=resource_id,
            slot_date=clean_date,
            start_time=proposed.start,
            end_time=proposed.end,
            exclude_slot_id=exclude_slot_id,
        )
        if not rows:
            continue
        if kind == RESOURCE_TRAINER:
            resource_name = get_trainer_label(db, resource_id, tenant_id=caller.tenant_id)
        else:
            resource_name = get_room_label(db, resource_id, tenant_id=caller.tenant_id)
        for slot, session_name in rows:
            conflicts.append(
                Conflict(
                    kind=kind,
                    resource_id=resource_id,
                    resource_name=resource_name,
                    slot_id=slot.id,
                    date=slot.date,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    session_id=slot.session_id,
                    session_name=session_name,
                )
            )

    if conflicts:
        logger.info(
            'slot_conflicts_found tenant_id=%s date=%s start=%s end=%s count=%s',
            caller.tenant_id,
            clean_date.isoformat(),
            proposed.start.strftime('%H:%M'),
            proposed.end.strftime('%H:%M'),
            len(conflicts),
        )
    return conflicts
