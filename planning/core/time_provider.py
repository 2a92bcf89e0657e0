from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from planning.config import settings


APP_TIMEZONE = settings.app_timezone or "Europe/Paris"
APP_ZONEINFO = ZoneInfo(APP_TIMEZONE)


class TimeProvider:
    def now(self) -> datetime:
        return datetime.now(APP_ZONEINFO)

    def today(self) -> date:
        return self.now().date()

    def utcnow(self) -> datetime:
        return datetime.now(ZoneInfo("UTC")).replace(tzinfo=None)


default_time_provider = TimeProvider()
