import tempfile
import unittest
from datetime import date, time
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from planning.core.errors import AuthorizationError, ValidationError
from planning.db import Base
from planning.models import AvailabilityWindow, Room, Tenant, TimeSlot, Trainer, TrainingSession
from planning.services.conflict_service import RESOURCE_ROOM, RESOURCE_TRAINER, check_conflicts
from planning.services.tenant_scope_service import CallerContext, caller_context


ADMIN_T1 = CallerContext(tenant_id=1, user_id=1, role='admin')
ADMIN_T2 = CallerContext(tenant_id=2, user_id=2, role='admin')
TRAINER_T1 = CallerContext(tenant_id=1, user_id=10, role='trainer', trainer_id=11)
LEARNER_T1 = CallerContext(tenant_id=1, user_id=50, role='learner')
DAY = date(2025, 3, 10)


class ConflictServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_conflict_service.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in (AvailabilityWindow, TimeSlot, TrainingSession, Trainer, Room, Tenant):
                db.query(table).delete()
            db.commit()
            db.add_all([Tenant(id=1, name='Alpha', slug='alpha'), Tenant(id=2, name='Beta', slug='beta')])
            db.commit()
            db.add_all(
                [
                    Trainer(id=11, tenant_id=1, first_name='Alice', last_name='Martin'),
                    Trainer(id=12, tenant_id=1, first_name='', last_name=''),
                    Trainer(id=21, tenant_id=2, first_name='Chloe', last_name='Roux'),
                    Room(id=31, tenant_id=1, name='Salle A'),
                    Room(id=41, tenant_id=2, name='Salle B'),
                    TrainingSession(id=101, tenant_id=1, name='S1', status='validated'),
                    TrainingSession(id=102, tenant_id=1, name='S2', status='validated'),
                    TrainingSession(id=201, tenant_id=2, name='Foreign', status='validated'),
                ]
            )
            db.commit()
            db.add_all(
                [
                    TimeSlot(
                        id=1,
                        tenant_id=1,
                        session_id=101,
                        date=DAY,
                        start_time=time(9, 0),
                        end_time=time(12, 0),
                        trainer_id=11,
                        room_id=31,
                    ),
                    TimeSlot(
                        id=2,
                        tenant_id=1,
                        session_id=102,
                        date=DAY,
                        start_time=time(14, 0),
                        end_time=time(17, 0),
                        trainer_id=12,
                        room_id=31,
                    ),
                    TimeSlot(
                        id=3,
                        tenant_id=2,
                        session_id=201,
                        date=DAY,
                        start_time=time(9, 0),
                        end_time=time(17, 0),
                        trainer_id=21,
                        room_id=41,
                    ),
                ]
            )
            db.commit()
        finally:
            db.close()

    def _check(self, caller=ADMIN_T1, **kwargs):
        db = self._session_factory()
        try:
            with caller_context(caller):
                return check_conflicts(db, slot_date=DAY, **kwargs)
        finally:
            db.close()

    def test_partial_overlap_reports_trainer_conflict(self):
        conflicts = self._check(start_time='11:00', end_time='13:00', trainer_id=11)
        self.assertEqual(len(conflicts), 1)
        conflict = conflicts[0]
        self.assertEqual(conflict.kind, RESOURCE_TRAINER)
        self.assertEqual(conflict.resource_name, 'Alice Martin')
        self.assertEqual(conflict.slot_id, 1)
        self.assertEqual(conflict.session_name, 'S1')
        payload = conflict.to_dict()
        self.assertEqual(payload['start_time'], '09:00')
        self.assertEqual(payload['end_time'], '12:00')
        self.assertEqual(payload['date'], '2025-03-10')

    def test_touching_ranges_do_not_conflict(self):
        self.assertEqual(self._check(start_time='12:00', end_time='13:00', trainer_id=11), [])
        self.assertEqual(self._check(start_time='08:00', end_time='09:00', trainer_id=11, room_id=31), [])

    def test_trainer_conflicts_come_before_room_conflicts(self):
        conflicts = self._check(start_time='08:00', end_time='18:00', trainer_id=12, room_id=31)
        self.assertEqual(
            [(item.kind, item.slot_id) for item in conflicts],
            [(RESOURCE_TRAINER, 2), (RESOURCE_ROOM, 1), (RESOURCE_ROOM, 2)],
        )
        self.assertEqual(conflicts[0].resource_name, 'Trainer')
        self.assertEqual(conflicts[1].resource_name, 'Salle A')

    def test_excluded_slot_is_ignored(self):
        conflicts = self._check(start_time='09:30', end_time='11:00', trainer_id=11, room_id=31, exclude_slot_id=1)
        self.assertEqual(conflicts, [])

    def test_archived_slots_and_other_days_are_ignored(self):
        db = self._session_factory()
        try:
            row = db.query(TimeSlot).filter(TimeSlot.id == 1).one()
            row.archived_at = row.created_at
            db.commit()
        finally:
            db.close()
        self.assertEqual(self._check(start_time='10:00', end_time='11:00', trainer_id=11), [])

        db = self._session_factory()
        try:
            with caller_context(ADMIN_T1):
                other_day = check_conflicts(
                    db,
                    slot_date=date(2025, 3, 11),
                    start_time='14:00',
                    end_time='15:00',
                    room_id=31,
                )
        finally:
            db.close()
        self.assertEqual(other_day, [])

    def test_slots_of_other_tenants_are_never_reported(self):
        self.assertEqual(self._check(start_time='09:00', end_time='17:00', trainer_id=21, room_id=41), [])
        conflicts = self._check(caller=ADMIN_T2, start_time='10:00', end_time='11:00', room_id=31)
        self.assertEqual(conflicts, [])

    def test_no_resources_means_no_conflicts(self):
        self.assertEqual(self._check(start_time='09:00', end_time='17:00'), [])

    def test_invalid_range_and_missing_context_raise(self):
        with self.assertRaises(ValidationError):
            self._check(start_time='13:00', end_time='11:00', trainer_id=11)
        with self.assertRaises(AuthorizationError):
            self._check(caller=None, start_time='09:00', end_time='10:00', trainer_id=11)

    def test_trainers_may_check_but_learners_may_not(self):
        conflicts = self._check(caller=TRAINER_T1, start_time='11:00', end_time='13:00', trainer_id=11)
        self.assertEqual([item.kind for item in conflicts], [RESOURCE_TRAINER])
        with self.assertRaises(AuthorizationError):
            self._check(caller=LEARNER_T1, start_time='11:00', end_time='13:00', trainer_id=11)


if __name__ == '__main__':
    unittest.main()
