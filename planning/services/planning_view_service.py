from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from planning.models import TimeSlot
from planning.services.time_slot_service import list_tenant_slots, list_trainer_slots, serialize_slot


def _planning_stats(rows: list[TimeSlot]) -> dict[str, Any]:
    total_minutes = sum(row.duration_minutes for row in rows)
    return {
        'total_slots': len(rows),
        'total_hours': round(total_minutes / 60.0, 1),
        'total_sessions': len({row.session_id for row in rows}),
        'total_trainers': len({row.trainer_id for row in rows if row.trainer_id}),
    }


def get_planning_view(
    db: Session,
    *,
    start_date: date,
    end_date: date,
    trainer_id: int | None = None,
    room_id: int | None = None,
    session_id: int | None = None,
    delivery_mode: str | None = None,
    session_status: str | None = None,
) -> dict[str, Any]:
    rows = list_tenant_slots(
        db,
        start_date,
        end_date,
        trainer_id=trainer_id,
        room_id=room_id,
        session_id=session_id,
        delivery_mode=delivery_mode,
        session_status=session_status,
    )
    return {
        'start': start_date.isoformat(),
        'end': end_date.isoformat(),
        'data': [serialize_slot(row) for row in rows],
        'stats': _planning_stats(rows),
    }


def list_trainer_planning(db: Session, trainer_id: int, start_date: date, end_date: date) -> dict[str, Any]:
    rows = list_trainer_slots(db, trainer_id, start_date, end_date)
    return {
        'trainer_id': int(trainer_id),
        'start': start_date.isoformat(),
        'end': end_date.isoformat(),
        'data': [serialize_slot(row) for row in rows],
        'stats': _planning_stats(rows),
    }
