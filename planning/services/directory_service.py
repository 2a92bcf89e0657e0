from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from planning.core.errors import NotFoundError, ValidationError
from planning.models import Room, SessionStatus, Trainer, TrainingSession
from planning.services.tenant_scope_service import require_caller


PLANNABLE_SESSION_STATUSES = (
    SessionStatus.DRAFT.value,
    SessionStatus.VALIDATED.value,
    SessionStatus.TO_INVOICE.value,
)
FILTER_SESSION_LIMIT = 50


def get_session_for_tenant(db: Session, session_id: int, *, tenant_id: int) -> TrainingSession:
    row = (
        db.query(TrainingSession)
        .filter(
            TrainingSession.id == int(session_id or 0),
            TrainingSession.tenant_id == tenant_id,
            TrainingSession.archived_at.is_(None),
        )
        .first()
    )
    if not row:
        raise NotFoundError('Session not found')
    return row


def ensure_trainer_in_tenant(db: Session, trainer_id: int | None, *, tenant_id: int) -> Trainer | None:
    if trainer_id is None:
        return None
    row = db.query(Trainer).filter(Trainer.id == int(trainer_id), Trainer.tenant_id == tenant_id).first()
    if not row:
        raise ValidationError('trainer_id is not a trainer of this organisation')
    return row


def ensure_room_in_tenant(db: Session, room_id: int | None, *, tenant_id: int) -> Room | None:
    if room_id is None:
        return None
    row = db.query(Room).filter(Room.id == int(room_id), Room.tenant_id == tenant_id).first()
    if not row:
        raise ValidationError('room_id is not a room of this organisation')
    return row


def get_session_label(db: Session, session_id: int, *, tenant_id: int) -> str:
    row = (
        db.query(TrainingSession)
        .filter(TrainingSession.id == session_id, TrainingSession.tenant_id == tenant_id)
        .first()
    )
    if not row:
        return 'Session'
    return f'{row.display_number} - {row.name}' if row.display_number else row.name


def get_trainer_label(db: Session, trainer_id: int, *, tenant_id: int) -> str:
    row = db.query(Trainer).filter(Trainer.id == trainer_id, Trainer.tenant_id == tenant_id).first()
    return row.display_name if row and row.display_name else 'Trainer'


def get_room_label(db: Session, room_id: int, *, tenant_id: int) -> str:
    row = db.query(Room).filter(Room.id == room_id, Room.tenant_id == tenant_id).first()
    return row.display_name if row and row.display_name else 'Room'


def get_planning_filter_options(db: Session) -> dict[str, list[dict[str, Any]]]:
    caller = require_caller(operation='planning_filter_options')
    trainers = (
        db.query(Trainer)
        .filter(Trainer.tenant_id == caller.tenant_id, Trainer.archived_at.is_(None))
        .order_by(Trainer.last_name.asc(), Trainer.first_name.asc())
        .all()
    )
    rooms = (
        db.query(Room)
        .filter(Room.tenant_id == caller.tenant_id, Room.active.is_(True))
        .order_by(Room.name.asc())
        .all()
    )
    sessions = (
        db.query(TrainingSession)
        .filter(
            TrainingSession.tenant_id == caller.tenant_id,
            TrainingSession.archived_at.is_(None),
            TrainingSession.status.in_(PLANNABLE_SESSION_STATUSES),
        )
        .order_by(TrainingSession.starts_on.desc().nulls_last(), TrainingSession.id.desc())
        .limit(FILTER_SESSION_LIMIT)
        .all()
    )
    return {
        'trainers': [{'id': row.id, 'display_name': row.display_name} for row in trainers],
        'rooms': [{'id': row.id, 'display_name': row.display_name, 'capacity': row.capacity} for row in rooms],
        'sessions': [
            {
                'id': row.id,
                'name': row.name,
                'display_number': row.display_number,
                'status': row.status,
            }
            for row in sessions
        ],
    }
