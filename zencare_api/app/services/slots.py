"""
Availability slot generation.

A counsellor's ``schedule`` maps lower-case weekday names to
``{"available": bool, "slots": ["HH:MM", ...]}``.  The functions here
turn that static weekly grid into concrete free start times for a day
or a Sunday-based week, taking the local clock and existing bookings
into account.  They are pure so the booking path and the availability
endpoints share the same rules.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from zencare_api.app.core.config import settings
from zencare_api.app.schemas.counsellor import WEEKDAYS

Booking = Tuple[datetime, int]


def local_now() -> datetime:
    """Naive local time: UTC shifted by ``settings.timezone_offset_hours``."""
    now = datetime.now(timezone.utc) + timedelta(hours=settings.timezone_offset_hours)
    return now.replace(tzinfo=None)


def weekday_name(day: date) -> str:
    # date.weekday() is Monday=0; WEEKDAYS starts on Sunday
    return WEEKDAYS[(day.weekday() + 1) % 7]


def start_of_week(day: date) -> date:
    return day - timedelta(days=(day.weekday() + 1) % 7)


def parse_slot(slot: str) -> time:
    hours, minutes = slot.split(":")
    return time(int(hours), int(minutes))


def overlaps(start_a: datetime, minutes_a: int, start_b: datetime, minutes_b: int) -> bool:
    return start_a < start_b + timedelta(minutes=minutes_b) and start_b < start_a + timedelta(minutes=minutes_a)


def day_slots(
    schedule: Dict[str, Any],
    day: date,
    now: datetime,
    booked: Iterable[Booking] = (),
    duration: Optional[int] = None,
) -> Dict[str, Any]:
    """Free slots for one calendar date.

    Past dates and unavailable weekdays yield no slots.  For today only
    slots whose hour is strictly greater than the current hour are
    kept.  A slot is dropped when a session of ``duration`` minutes
    starting there would overlap any of ``booked``.
    """
    duration = duration or settings.session_duration_minutes
    name = weekday_name(day)
    is_today = day == now.date()
    is_past = day < now.date()
    result = {"day_name": name.capitalize(), "slots": [], "is_today": is_today, "is_past": is_past}
    entry = (schedule or {}).get(name) or {}
    if is_past or not entry.get("available"):
        return result
    booked = list(booked)
    free: List[str] = []
    for slot in sorted(set(entry.get("slots") or [])):
        slot_time = parse_slot(slot)
        if is_today and slot_time.hour <= now.hour:
            continue
        start = datetime.combine(day, slot_time)
        if any(overlaps(start, duration, other, other_minutes) for other, other_minutes in booked):
            continue
        free.append(slot)
    result["slots"] = free
    return result


def week_slots(
    schedule: Dict[str, Any],
    week_of: date,
    now: datetime,
    booked: Iterable[Booking] = (),
    duration: Optional[int] = None,
) -> Dict[str, Dict[str, Any]]:
    """Free slots for the seven days of the Sunday-based week containing ``week_of``."""
    booked = list(booked)
    first = start_of_week(week_of)
    week = {}
    for offset in range(7):
        day = first + timedelta(days=offset)
        week[day.isoformat()] = day_slots(schedule, day, now, booked, duration)
    return week
