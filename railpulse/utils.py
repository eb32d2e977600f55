from typing import Optional
from datetime import datetime, date, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
import math

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

def parse_clock_time(value: str) -> time:
    """
    Parse an ``HH:MM`` clock string into a ``datetime.time``.
    Raises ValueError for anything else.
    """
    if not isinstance(value, str):
        raise ValueError(f"Clock time must be a string, got {value!r}")

    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Clock time must be HH:MM, got {value!r}")

    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Clock time out of range: {value!r}")
    return time(hours, minutes)

def format_clock_time(moment: datetime) -> str:
    return f"{moment.hour:02d}:{moment.minute:02d}"

def ensure_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to already be in UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)

def anchor_to_date(day: date, clock: str) -> datetime:
    """Combine a calendar date with an HH:MM clock string as a UTC instant"""
    return datetime.combine(day, parse_clock_time(clock), tzinfo=timezone.utc)

def weekday_name(moment: datetime) -> str:
    # datetime.weekday() is Monday=0; DAY_NAMES starts on Sunday
    return DAY_NAMES[(ensure_utc(moment).weekday() + 1) % 7]

def day_code(moment: datetime) -> str:
    """
    Single-letter running-day code for the weekday of ``moment``.
    Tue/Thu share "T" and Sat/Sun share "S", matching how schedule
    fixtures encode their running days.
    """
    return weekday_name(moment)[0].upper()

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def round_to_places(value: float, places: int) -> float:
    """
    Round a non-negative float to ``places`` decimals, halves up, judged on
    the float's exact binary value (0.125 -> 0.13, 1.005 -> 1.0).
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))

def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60

def shift_minutes(moment: datetime, minutes: float) -> datetime:
    return moment + timedelta(minutes=minutes)

def parse_instant(value: Optional[str], clock: Optional[str], on_day: date) -> datetime:
    """
    Resolve the snapshot instant requested over HTTP: an ISO timestamp wins,
    then an HH:MM clock on ``on_day``, then the current time.
    """
    if value:
        return ensure_utc(datetime.fromisoformat(value))
    if clock:
        return anchor_to_date(on_day, clock)
    return datetime.now(timezone.utc)
