from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from enum import Enum

from planning.config import Settings, settings as default_settings
from planning.core.errors import ValidationError


class SlotMode(str, Enum):
    MORNING = 'morning'
    AFTERNOON = 'afternoon'
    FULL_DAY = 'full_day'
    CUSTOM = 'custom'


@dataclass(frozen=True)
class TimeRange:
    start: time
    end: time

    def as_dict(self) -> dict[str, str]:
        return {'start_time': self.start.strftime('%H:%M'), 'end_time': self.end.strftime('%H:%M')}


@dataclass(frozen=True)
class SlotPresets:
    morning: TimeRange
    afternoon: TimeRange


def parse_hhmm(value: str | time, *, field: str = 'time') -> time:
    if isinstance(value, time):
        if value.second or value.microsecond or value.tzinfo is not None:
            raise ValidationError(f'{field} must be a whole minute without offset')
        return value
    raw = (value or '').strip()
    parts = raw.split(':')
    if len(parts) == 3 and parts[2] == '00':
        parts = parts[:2]
    try:
        hh, mm = parts
        hour = int(hh)
        minute = int(mm)
    except ValueError as exc:
        raise ValidationError(f'{field} must be HH:MM') from exc
    if hour < 0 or hour > 23 or minute < 0 or minute > 59:
        raise ValidationError(f'{field} must be HH:MM')
    return time(hour=hour, minute=minute)


def validate_range(start: time | str | None, end: time | str | None) -> TimeRange:
    if start is None or end is None:
        raise ValidationError('start_time and end_time are required')
    start_value = parse_hhmm(start, field='start_time')
    end_value = parse_hhmm(end, field='end_time')
    if end_value <= start_value:
        raise ValidationError('end_time must be after start_time')
    return TimeRange(start=start_value, end=end_value)


def presets_from_settings(config: Settings | None = None) -> SlotPresets:
    config = config or default_settings
    return SlotPresets(
        morning=validate_range(config.morning_start, config.morning_end),
        afternoon=validate_range(config.afternoon_start, config.afternoon_end),
    )


def parse_slot_mode(mode: SlotMode | str) -> SlotMode:
    try:
        return SlotMode(mode)
    except ValueError as exc:
        raise ValidationError(f'Unknown slot mode: {mode}') from exc


def expand_slot_mode(
    mode: SlotMode | str,
    presets: SlotPresets,
    *,
    custom_start: time | str | None = None,
    custom_end: time | str | None = None,
) -> list[TimeRange]:
    clean_mode = parse_slot_mode(mode)
    if clean_mode == SlotMode.MORNING:
        return [presets.morning]
    if clean_mode == SlotMode.AFTERNOON:
        return [presets.afternoon]
    if clean_mode == SlotMode.FULL_DAY:
        return [presets.morning, presets.afternoon]
    return [validate_range(custom_start, custom_end)]
