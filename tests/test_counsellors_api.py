from datetime import timedelta

import pytest

from zencare_api.app.core.db import get_cursor
from zencare_api.app.services.college_service import CollegeService

from .conftest import API, FULL_WEEK


@pytest.fixture
def other_college(db_path) -> int:
    with get_cursor() as cursor:
        return CollegeService.create_college(cursor, "Other College", code="OC02")


def test_unapproved_counsellor_is_hidden(client, admin, college, make_user, student):
    pending = make_user("pending@zencare.test", role="counsellor", college_id=college)
    client.put(f"{API}/counsellors/{pending.id}/schedule", json={"schedule": FULL_WEEK}, headers=pending.headers)

    assert client.get(f"{API}/counsellors/{pending.id}").status_code == 404
    assert client.get(f"{API}/counsellors/{pending.id}/slots").status_code == 404
    assert client.get(f"{API}/counsellors/", headers=student.headers).json() == []


def test_approval_makes_counsellor_visible_and_notifies(client, counsellor, student, college):
    listing = client.get(f"{API}/counsellors/", headers=student.headers).json()
    assert [c["id"] for c in listing] == [counsellor.id]
    assert listing[0]["approved"] is True
    assert listing[0]["college_id"] == college

    detail = client.get(f"{API}/counsellors/{counsellor.id}").json()
    assert detail["schedule"]["monday"] == {"available": True, "slots": ["10:00", "11:00", "15:00"]}
    assert detail["session_duration"] == 50

    notifications = client.get(f"{API}/notifications/", headers=counsellor.headers).json()
    assert notifications[0]["type"] == "counsellor_approved"


def test_unapproving_hides_counsellor_again(client, admin, counsellor, student):
    response = client.put(
        f"{API}/counsellors/{counsellor.id}/approval",
        json={"approved": False, "reason": "Licence expired"},
        headers=admin.headers,
    )
    assert response.status_code == 200
    assert response.json()["approved"] is False
    assert client.get(f"{API}/counsellors/{counsellor.id}").status_code == 404
    assert client.get(f"{API}/counsellors/", headers=student.headers).json() == []

    notifications = client.get(f"{API}/notifications/", headers=counsellor.headers).json()
    assert notifications[0]["type"] == "counsellor_unapproved"
    assert "Licence expired" in notifications[0]["message"]


def test_inactive_profile_is_hidden(client, counsellor, student):
    client.put(f"{API}/counsellors/{counsellor.id}/profile", json={"is_active": False}, headers=counsellor.headers)
    assert client.get(f"{API}/counsellors/{counsellor.id}").status_code == 404


def test_only_staff_can_approve(client, counsellor, student):
    response = client.put(
        f"{API}/counsellors/{counsellor.id}/approval", json={"approved": False}, headers=student.headers
    )
    assert response.status_code == 403


def test_profile_and_schedule_are_owner_or_admin_only(client, admin, counsellor, student):
    response = client.put(
        f"{API}/counsellors/{counsellor.id}/profile", json={"bio": "Not mine"}, headers=student.headers
    )
    assert response.status_code == 403
    response = client.put(
        f"{API}/counsellors/{counsellor.id}/schedule", json={"schedule": {}}, headers=student.headers
    )
    assert response.status_code == 403

    response = client.put(
        f"{API}/counsellors/{counsellor.id}/profile",
        json={"bio": "Edited by admin", "session_duration": 45},
        headers=admin.headers,
    )
    assert response.status_code == 200
    assert response.json()["bio"] == "Edited by admin"
    assert response.json()["session_duration"] == 45


def test_search_filters_and_sorting(client, admin, counsellor, student, college, make_user):
    client.put(
        f"{API}/counsellors/{counsellor.id}/profile",
        json={"specializations": ["Anxiety", "Exam Stress"], "languages": ["English", "Telugu"], "experience": "3 years"},
        headers=counsellor.headers,
    )
    second = make_user("arjun@zencare.test", role="counsellor", college_id=college)
    client.put(
        f"{API}/counsellors/{second.id}/profile",
        json={
            "specializations": ["Depression"],
            "languages": ["Hindi"],
            "experience": "10 years",
            "session_modes": ["in_person"],
            "instant_booking": True,
        },
        headers=second.headers,
    )
    client.put(f"{API}/counsellors/{second.id}/approval", json={"approved": True}, headers=admin.headers)

    def ids(**params):
        response = client.get(f"{API}/counsellors/", params=params, headers=student.headers)
        assert response.status_code == 200
        return [c["id"] for c in response.json()]

    assert ids(specialization="anxiety") == [counsellor.id]
    assert ids(language="hindi") == [second.id]
    assert ids(session_mode="in_person") == [second.id]
    assert ids(instant_booking=True) == [second.id]
    assert ids(sort_by="experience", order="desc") == [second.id, counsellor.id]
    assert ids(sort_by="name", order="asc") == [second.id, counsellor.id]


def test_students_only_see_their_own_college(client, admin, counsellor, college, other_college, make_user):
    outsider = make_user("outsider@zencare.test", college_id=other_college)
    assert client.get(f"{API}/counsellors/", headers=outsider.headers).json() == []
    # the college filter cannot be used to look elsewhere
    listing = client.get(
        f"{API}/counsellors/", params={"college_id": college}, headers=outsider.headers
    )
    assert listing.json() == []
    assert client.get(f"{API}/counsellors/assigned", headers=outsider.headers).json() is None

    everyone = client.get(f"{API}/counsellors/", headers=admin.headers).json()
    assert [c["id"] for c in everyone] == [counsellor.id]


def test_assigned_and_random_counsellor(client, counsellor, student):
    assigned = client.get(f"{API}/counsellors/assigned", headers=student.headers)
    assert assigned.status_code == 200
    assert assigned.json()["id"] == counsellor.id
    # stable for the same student
    assert client.get(f"{API}/counsellors/assigned", headers=student.headers).json()["id"] == counsellor.id

    assert client.get(f"{API}/counsellors/random", headers=student.headers).json()["id"] == counsellor.id
    assert client.get(f"{API}/counsellors/assigned", headers=counsellor.headers).status_code == 403


def test_week_slots(client, counsellor, booking_date):
    response = client.get(f"{API}/counsellors/{counsellor.id}/slots", params={"week_of": booking_date.isoformat()})
    assert response.status_code == 200
    week = response.json()
    assert len(week) == 7
    first_day = min(week)
    assert week[first_day]["day_name"] == "Sunday"
    entry = week[booking_date.isoformat()]
    assert entry["slots"] == ["10:00", "11:00", "15:00"]
    assert entry["is_past"] is False
    assert entry["is_today"] is False


def test_day_slots_for_past_and_unavailable_days(client, counsellor, booking_date):
    yesterday = booking_date - timedelta(days=8)
    past = client.get(f"{API}/counsellors/{counsellor.id}/slots/{yesterday.isoformat()}").json()
    assert past["is_past"] is True
    assert past["slots"] == []

    schedule = dict(FULL_WEEK)
    weekday = client.get(f"{API}/counsellors/{counsellor.id}/slots/{booking_date.isoformat()}").json()["day_name"]
    schedule[weekday.lower()] = {"available": False, "slots": ["10:00"]}
    client.put(f"{API}/counsellors/{counsellor.id}/schedule", json={"schedule": schedule}, headers=counsellor.headers)
    day = client.get(f"{API}/counsellors/{counsellor.id}/slots/{booking_date.isoformat()}").json()
    assert day["slots"] == []


def test_invalid_schedule_is_rejected(client, counsellor):
    response = client.put(
        f"{API}/counsellors/{counsellor.id}/schedule",
        json={"schedule": {"monday": {"available": True, "slots": ["7pm"]}}},
        headers=counsellor.headers,
    )
    assert response.status_code == 422
