from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from planning.config import settings
from planning.core.errors import PlanningError, ValidationError
from planning.models import DeliveryMode, TimeSlot
from planning.services import time_slot_service
from planning.services.directory_service import ensure_room_in_tenant, ensure_trainer_in_tenant, get_session_for_tenant
from planning.services.slot_preset_service import SlotMode, SlotPresets, TimeRange, expand_slot_mode, presets_from_settings
from planning.services.tenant_scope_service import require_admin


logger = logging.getLogger(__name__)

BATCH_BEST_EFFORT = 'best_effort'
BATCH_ATOMIC = 'atomic'


@dataclass
class BatchCommitResult:
    succeeded: list[TimeSlot] = field(default_factory=list)
    failed: list[TimeRange] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            'succeeded': [time_slot_service.serialize_slot(row) for row in self.succeeded],
        }
        if self.error is not None:
            payload['error'] = self.error
            payload['failed'] = [item.as_dict() for item in self.failed]
        return payload


def _resolve_commit_mode(value: str | None) -> str:
    clean = (value or settings.batch_commit_mode or BATCH_BEST_EFFORT).strip().lower()
    if clean not in (BATCH_BEST_EFFORT, BATCH_ATOMIC):
        raise ValidationError(f'Unknown batch commit mode: {value}')
    return clean


def create_slots_batch(
    db: Session,
    *,
    session_id: int,
    mode: SlotMode | str,
    slot_date: date | str,
    delivery_mode: DeliveryMode | str | None = DeliveryMode.ON_SITE,
    trainer_id: int | None = None,
    room_id: int | None = None,
    custom_start: time | str | None = None,
    custom_end: time | str | None = None,
    presets: SlotPresets | None = None,
    commit_mode: str | None = None,
) -> BatchCommitResult:
    """Create one slot per range of a scheduling mode.

    Ranges are inserted one after the other. In ``best_effort`` mode each
    insert commits on its own, so a failure keeps the slots already written
    and reports the remaining ranges in ``failed``. In ``atomic`` mode the
    inserts share a transaction and a failure rolls all of them back.
    Input, tenant and role problems raise before anything is written.
    """
    caller = require_admin(operation='create_slots_batch')
    clean_commit_mode = _resolve_commit_mode(commit_mode)
    ranges = expand_slot_mode(
        mode,
        presets or presets_from_settings(),
        custom_start=custom_start,
        custom_end=custom_end,
    )
    clean_date = time_slot_service.coerce_date(slot_date)
    time_slot_service.parse_delivery_mode(delivery_mode)
    get_session_for_tenant(db, session_id, tenant_id=caller.tenant_id)
    ensure_trainer_in_tenant(db, trainer_id or None, tenant_id=caller.tenant_id)
    ensure_room_in_tenant(db, room_id or None, tenant_id=caller.tenant_id)

    atomic = clean_commit_mode == BATCH_ATOMIC
    result = BatchCommitResult()
    for index, time_range in enumerate(ranges):
        try:
            row = time_slot_service.create_time_slot(
                db,
                session_id=session_id,
                slot_date=clean_date,
                start_time=time_range.start,
                end_time=time_range.end,
                delivery_mode=delivery_mode,
                trainer_id=trainer_id,
                room_id=room_id,
                commit=not atomic,
            )
        except (PlanningError, SQLAlchemyError) as exc:
            db.rollback()
            result.error = str(exc) or exc.__class__.__name__
            if atomic:
                result.succeeded = []
                result.failed = list(ranges)
            else:
                result.failed = list(ranges[index:])
            logger.warning(
                'slot_batch_partial_failure tenant_id=%s session_id=%s date=%s commit_mode=%s succeeded=%s failed=%s error=%s',
                caller.tenant_id,
                session_id,
                clean_date.isoformat(),
                clean_commit_mode,
                len(result.succeeded),
                len(result.failed),
                result.error,
            )
            return result
        result.succeeded.append(row)

    if atomic:
        db.commit()
        for row in result.succeeded:
            db.refresh(row)
    logger.info(
        'slot_batch_created tenant_id=%s session_id=%s date=%s mode=%s count=%s',
        caller.tenant_id,
        session_id,
        clean_date.isoformat(),
        SlotMode(mode).value,
        len(result.succeeded),
    )
    return result
