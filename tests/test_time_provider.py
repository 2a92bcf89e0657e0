import unittest
from datetime import date, datetime

from freezegun import freeze_time

from planning.core.time_provider import TimeProvider
from planning.utils.calendar_window import week_dates


class TimeProviderTests(unittest.TestCase):
    @freeze_time('2025-03-16 23:30:00')
    def test_today_follows_application_timezone(self):
        provider = TimeProvider()
        # 23:30 UTC on Sunday is 00:30 on Monday in Paris.
        self.assertEqual(provider.today(), date(2025, 3, 17))
        self.assertEqual(provider.utcnow(), datetime(2025, 3, 16, 23, 30))
        self.assertIsNone(provider.utcnow().tzinfo)

    @freeze_time('2025-03-16 23:30:00')
    def test_current_week_uses_local_day(self):
        provider = TimeProvider()
        self.assertEqual(week_dates(provider.now()), (date(2025, 3, 17), date(2025, 3, 23)))


if __name__ == '__main__':
    unittest.main()
