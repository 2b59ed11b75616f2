from datetime import date, datetime

import pytest
from pydantic import ValidationError

from zencare_api.app.schemas.counsellor import ScheduleUpdate
from zencare_api.app.services import slots

# 2024-01-07 is a Sunday
SUNDAY = date(2024, 1, 7)
WEDNESDAY = date(2024, 1, 10)
THURSDAY = date(2024, 1, 11)

SCHEDULE = {
    "sunday": {"available": False, "slots": ["10:00"]},
    "wednesday": {"available": True, "slots": ["09:00", "10:00", "11:00", "15:00"]},
    "thursday": {"available": True, "slots": ["10:00", "11:00", "12:00"]},
}


def test_weekday_name_and_week_start():
    assert slots.weekday_name(SUNDAY) == "sunday"
    assert slots.weekday_name(WEDNESDAY) == "wednesday"
    assert slots.start_of_week(WEDNESDAY) == SUNDAY
    assert slots.start_of_week(SUNDAY) == SUNDAY
    assert slots.start_of_week(date(2024, 1, 13)) == SUNDAY


def test_future_day_returns_all_scheduled_slots():
    result = slots.day_slots(SCHEDULE, WEDNESDAY, now=datetime(2024, 1, 8, 12, 0))
    assert result == {
        "day_name": "Wednesday",
        "slots": ["09:00", "10:00", "11:00", "15:00"],
        "is_today": False,
        "is_past": False,
    }


def test_today_keeps_only_later_hours():
    result = slots.day_slots(SCHEDULE, WEDNESDAY, now=datetime(2024, 1, 10, 10, 30))
    assert result["is_today"] is True
    assert result["slots"] == ["11:00", "15:00"]


def test_past_and_unavailable_days_have_no_slots():
    past = slots.day_slots(SCHEDULE, WEDNESDAY, now=datetime(2024, 1, 12, 9, 0))
    assert past["is_past"] is True
    assert past["slots"] == []

    off = slots.day_slots(SCHEDULE, SUNDAY, now=datetime(2024, 1, 1, 9, 0))
    assert off["slots"] == []

    unscheduled = slots.day_slots(SCHEDULE, date(2024, 1, 12), now=datetime(2024, 1, 1, 9, 0))
    assert unscheduled["day_name"] == "Friday"
    assert unscheduled["slots"] == []


def test_overlapping_bookings_remove_slots():
    booked = [(datetime(2024, 1, 11, 10, 30), 50)]
    result = slots.day_slots(SCHEDULE, THURSDAY, now=datetime(2024, 1, 8, 9, 0), booked=booked, duration=50)
    assert result["slots"] == ["12:00"]


def test_back_to_back_booking_does_not_block_next_slot():
    booked = [(datetime(2024, 1, 11, 10, 0), 60)]
    result = slots.day_slots(SCHEDULE, THURSDAY, now=datetime(2024, 1, 8, 9, 0), booked=booked, duration=60)
    assert result["slots"] == ["11:00", "12:00"]


def test_overlaps_is_symmetric_half_open():
    start = datetime(2024, 1, 11, 10, 0)
    assert slots.overlaps(start, 50, datetime(2024, 1, 11, 10, 49), 10)
    assert not slots.overlaps(start, 50, datetime(2024, 1, 11, 10, 50), 10)
    assert slots.overlaps(datetime(2024, 1, 11, 9, 30), 45, start, 50)


def test_week_runs_sunday_to_saturday():
    week = slots.week_slots(SCHEDULE, THURSDAY, now=datetime(2024, 1, 10, 10, 30))
    assert list(week) == [f"2024-01-{day:02d}" for day in range(7, 14)]
    assert week["2024-01-07"]["day_name"] == "Sunday"
    assert week["2024-01-09"]["is_past"] is True
    assert week["2024-01-10"]["slots"] == ["11:00", "15:00"]
    assert week["2024-01-11"]["slots"] == ["10:00", "11:00", "12:00"]


def test_schedule_update_normalises_days_and_slots():
    update = ScheduleUpdate(schedule={"Monday ": {"available": True, "slots": ["15:00", "09:00", "15:00"]}})
    assert update.schedule["monday"].slots == ["09:00", "15:00"]


@pytest.mark.parametrize(
    "schedule",
    [
        {"funday": {"available": True, "slots": []}},
        {"monday": {"available": True, "slots": ["9:00"]}},
        {"monday": {"available": True, "slots": ["24:00"]}},
    ],
)
def test_schedule_update_rejects_bad_input(schedule):
    with pytest.raises(ValidationError):
        ScheduleUpdate(schedule=schedule)
