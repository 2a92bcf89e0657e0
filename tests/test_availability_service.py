import tempfile
import unittest
from datetime import date, time
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from planning.core.errors import AuthorizationError, NotFoundError, ValidationError
from planning.db import Base
from planning.models import AvailabilityWindow, Room, Tenant, TimeSlot, Trainer, TrainingSession
from planning.services.availability_service import (
    add_availability,
    find_overlapping_availability,
    list_availability,
    list_tenant_availability,
    remove_availability,
    serialize_window,
    update_availability,
)
from planning.services.tenant_scope_service import CallerContext, caller_context
from planning.services.time_slot_service import create_time_slot


ADMIN_T1 = CallerContext(tenant_id=1, user_id=1, role='admin')
TRAINER_11 = CallerContext(tenant_id=1, user_id=10, role='trainer', trainer_id=11)
TRAINER_12 = CallerContext(tenant_id=1, user_id=20, role='trainer', trainer_id=12)
TRAINER_21 = CallerContext(tenant_id=2, user_id=30, role='trainer', trainer_id=21)
MARCH = (date(2025, 3, 1), date(2025, 3, 31))


class AvailabilityServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_availability_service.db'
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
                    Trainer(id=12, tenant_id=1, first_name='Bruno', last_name='Petit'),
                    Trainer(id=21, tenant_id=2, first_name='Chloe', last_name='Roux'),
                    TrainingSession(id=101, tenant_id=1, name='S1', status='validated'),
                ]
            )
            db.commit()
        finally:
            db.close()

    def _add(self, caller=TRAINER_11, **overrides):
        values = {
            'trainer_id': 11,
            'window_date': date(2025, 3, 10),
            'start_time': time(9, 0),
            'end_time': time(12, 0),
            'kind': 'unavailable',
        }
        values.update(overrides)
        db = self._session_factory()
        try:
            with caller_context(caller):
                row = add_availability(db, **values)
            return row.id
        finally:
            db.close()

    def _window_count(self) -> int:
        db = self._session_factory()
        try:
            return db.query(AvailabilityWindow).count()
        finally:
            db.close()

    def test_trainer_adds_own_window(self):
        db = self._session_factory()
        try:
            with caller_context(TRAINER_11):
                row = add_availability(
                    db,
                    trainer_id=11,
                    window_date='2025-03-10',
                    start_time='13:30',
                    end_time='17:00',
                    recurrence='weekly',
                    note='  School pickup  ',
                )
                payload = serialize_window(row)
        finally:
            db.close()
        self.assertEqual(payload['kind'], 'available')
        self.assertEqual(payload['recurrence'], 'weekly')
        self.assertEqual(payload['note'], 'School pickup')
        self.assertEqual(payload['trainer']['display_name'], 'Alice Martin')

    def test_add_is_owner_only(self):
        with self.assertRaises(AuthorizationError):
            self._add(caller=TRAINER_12)
        with self.assertRaises(AuthorizationError):
            self._add(caller=ADMIN_T1)
        with self.assertRaises(AuthorizationError):
            self._add(caller=None)
        self.assertEqual(self._window_count(), 0)

    def test_add_validates_range_and_enums(self):
        with self.assertRaises(ValidationError):
            self._add(start_time=time(12, 0), end_time=time(9, 0))
        with self.assertRaises(ValidationError):
            self._add(kind='maybe')
        with self.assertRaises(ValidationError):
            self._add(recurrence='yearly')
        self.assertEqual(self._window_count(), 0)

    def test_trainer_of_other_tenant_cannot_write_here(self):
        with self.assertRaises(ValidationError):
            self._add(caller=CallerContext(tenant_id=1, user_id=30, role='trainer', trainer_id=21), trainer_id=21)
        self.assertEqual(self._window_count(), 0)

    def test_update_and_remove_check_existence_then_owner(self):
        window_id = self._add()
        db = self._session_factory()
        try:
            with caller_context(TRAINER_12):
                with self.assertRaises(AuthorizationError):
                    update_availability(db, window_id, {'note': 'hijack'})
                with self.assertRaises(AuthorizationError):
                    remove_availability(db, window_id)
                with self.assertRaises(NotFoundError):
                    remove_availability(db, 9999)
            with caller_context(TRAINER_21):
                with self.assertRaises(NotFoundError):
                    remove_availability(db, window_id)
            with caller_context(TRAINER_11):
                row = update_availability(db, window_id, {'end_time': '10:30', 'kind': 'tentative'})
                self.assertEqual(row.end_time, time(10, 30))
                self.assertEqual(row.kind, 'tentative')
                with self.assertRaises(ValidationError):
                    update_availability(db, window_id, {'start_time': '11:00'})
                remove_availability(db, window_id)
        finally:
            db.close()
        self.assertEqual(self._window_count(), 0)

    def test_admin_reads_but_other_trainer_cannot(self):
        self._add()
        self._add(caller=TRAINER_12, trainer_id=12, window_date=date(2025, 3, 12))
        self._add(window_date=date(2025, 4, 2))
        db = self._session_factory()
        try:
            with caller_context(ADMIN_T1):
                admin_view = list_availability(db, 11, *MARCH)
                overview = list_tenant_availability(db, *MARCH)
                filtered = list_tenant_availability(db, *MARCH, trainer_id=12)
            with caller_context(TRAINER_11):
                own = list_availability(db, 11, *MARCH)
                with self.assertRaises(AuthorizationError):
                    list_availability(db, 12, *MARCH)
                with self.assertRaises(AuthorizationError):
                    list_tenant_availability(db, *MARCH)
        finally:
            db.close()
        self.assertEqual(len(admin_view), 1)
        self.assertEqual([row.trainer_id for row in overview], [11, 12])
        self.assertEqual([row.trainer_id for row in filtered], [12])
        self.assertEqual(len(own), 1)

    def test_unavailable_window_does_not_block_slot_creation(self):
        self._add(kind='unavailable')
        db = self._session_factory()
        try:
            with caller_context(ADMIN_T1):
                row = create_time_slot(
                    db,
                    session_id=101,
                    slot_date=date(2025, 3, 10),
                    start_time=time(10, 0),
                    end_time=time(11, 0),
                    trainer_id=11,
                )
                overlapping = find_overlapping_availability(
                    db,
                    trainer_id=11,
                    slot_date=date(2025, 3, 10),
                    start_time=time(10, 0),
                    end_time=time(11, 0),
                )
                touching = find_overlapping_availability(
                    db,
                    trainer_id=11,
                    slot_date=date(2025, 3, 10),
                    start_time=time(12, 0),
                    end_time=time(13, 0),
                )
        finally:
            db.close()
        self.assertIsNotNone(row.id)
        self.assertEqual([item.kind for item in overlapping], ['unavailable'])
        self.assertEqual(touching, [])

    def test_overlap_lookup_is_limited_to_admin_or_owner(self):
        self._add(note='medical appointment')
        lookup = {
            'trainer_id': 11,
            'slot_date': date(2025, 3, 10),
            'start_time': time(10, 0),
            'end_time': time(11, 0),
        }
        db = self._session_factory()
        try:
            with caller_context(TRAINER_11):
                own = find_overlapping_availability(db, **lookup)
            with caller_context(TRAINER_12):
                with self.assertRaises(AuthorizationError):
                    find_overlapping_availability(db, **lookup)
            with caller_context(CallerContext(tenant_id=1, user_id=50, role='learner')):
                with self.assertRaises(AuthorizationError):
                    find_overlapping_availability(db, **lookup)
        finally:
            db.close()
        self.assertEqual([row.note for row in own], ['medical appointment'])


if __name__ == '__main__':
    unittest.main()
