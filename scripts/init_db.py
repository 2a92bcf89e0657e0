from datetime import time, timedelta
from pathlib import Path
import logging
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from planning.core.time_provider import default_time_provider
from planning.db import Base, SessionLocal, engine
from planning.models import Role, Room, SessionStatus, TimeSlot, Trainer, TrainingSession
from planning.services.auth_service import issue_session_token
from planning.services.tenant_scope_service import get_or_create_default_tenant


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('init_db')


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        tenant = get_or_create_default_tenant(db)
        if db.query(Trainer).filter(Trainer.tenant_id == tenant.id).first():
            logger.info('init_db_skipped tenant_id=%s', tenant.id)
            return

        trainers = [
            Trainer(tenant_id=tenant.id, first_name='Alice', last_name='Martin'),
            Trainer(tenant_id=tenant.id, first_name='Bruno', last_name='Petit'),
        ]
        rooms = [
            Room(tenant_id=tenant.id, name='Salle Lumiere', capacity=12),
            Room(tenant_id=tenant.id, name='Salle Verte', capacity=8),
        ]
        monday = default_time_provider.today() - timedelta(days=default_time_provider.today().weekday())
        session = TrainingSession(
            tenant_id=tenant.id,
            name='Management essentials',
            display_number='S-0001',
            status=SessionStatus.VALIDATED.value,
            starts_on=monday,
        )
        db.add_all([*trainers, *rooms, session])
        db.commit()

        db.add_all(
            [
                TimeSlot(
                    tenant_id=tenant.id,
                    session_id=session.id,
                    date=monday + timedelta(days=offset),
                    start_time=time(9, 0),
                    end_time=time(12, 30),
                    trainer_id=trainers[0].id,
                    room_id=rooms[0].id,
                )
                for offset in range(3)
            ]
        )
        db.commit()

        admin_token = issue_session_token(user_id=1, role=Role.ADMIN.value, tenant_id=tenant.id)
        trainer_token = issue_session_token(
            user_id=2,
            role=Role.TRAINER.value,
            tenant_id=tenant.id,
            trainer_id=trainers[0].id,
        )
        logger.info('init_db_seeded tenant_id=%s week_start=%s', tenant.id, monday.isoformat())
        print(f'admin token:   {admin_token}')
        print(f'trainer token: {trainer_token}')
    finally:
        db.close()


if __name__ == '__main__':
    main()
