from zencare_api.app.core.db import get_cursor

from .conftest import API


def book(client, student, counsellor, day, time="10:00"):
    return client.post(
        f"{API}/appointments/",
        json={"counsellor_id": counsellor.id, "date": day.isoformat(), "time": time},
        headers=student.headers,
    )


def maintenance(client, admin, operation):
    response = client.post(f"{API}/admin/maintenance/{operation}", headers=admin.headers)
    assert response.status_code == 200, response.text
    return response.json()["updated"]


def test_student_dashboard(client, counsellor, student, booking_date):
    book(client, student, counsellor, booking_date)
    client.post(f"{API}/assessments/", json={"type": "gad7", "answers": [2] * 7}, headers=student.headers)

    dashboard = client.get(f"{API}/statistics/me", headers=student.headers).json()
    assert dashboard["role"] == "student"
    assert dashboard["total_bookings"] == 1
    assert dashboard["upcoming_bookings"] == 1
    assert dashboard["completed_sessions"] == 0
    assert dashboard["assessments_taken"] == 1
    assert dashboard["latest_gad7_severity"] == "moderate"
    assert dashboard["latest_phq9_severity"] is None
    assert dashboard["assigned_counsellor_id"] == counsellor.id


def test_counsellor_dashboard(client, admin, counsellor, student, booking_date, make_user):
    book(client, student, counsellor, booking_date)

    dashboard = client.get(f"{API}/statistics/me", headers=counsellor.headers).json()
    assert dashboard["role"] == "counsellor"
    assert dashboard["total_appointments"] == 1
    assert dashboard["pending_appointments"] == 1
    assert dashboard["distinct_students"] == 1

    url = f"{API}/statistics/counsellors/{counsellor.id}"
    assert client.get(url, headers=admin.headers).json()["total_appointments"] == 1
    colleague = make_user("colleague@zencare.test", role="counsellor")
    assert client.get(url, headers=colleague.headers).status_code == 403
    assert client.get(url, headers=student.headers).status_code == 403


def test_admin_overview(client, admin, counsellor, student, booking_date):
    book(client, student, counsellor, booking_date)

    overview = client.get(f"{API}/statistics/overview", headers=admin.headers).json()
    assert overview["users_by_role"] == {"admin": 1, "college_head": 0, "counsellor": 1, "student": 1}
    assert overview["users_total"] == 3
    assert overview["pending_counsellor_approvals"] == 0
    assert overview["appointments_7d"] == 1
    assert overview["active_crisis_alerts"] == 0

    mine = client.get(f"{API}/statistics/me", headers=admin.headers).json()
    assert mine["role"] == "admin"
    assert client.get(f"{API}/statistics/overview", headers=student.headers).status_code == 403


def test_college_dashboards(client, admin, college, counsellor, student, college_head, booking_date):
    book(client, student, counsellor, booking_date)

    dashboard = client.get(f"{API}/statistics/colleges/{college}", headers=admin.headers).json()
    assert dashboard["students"] == 1
    assert dashboard["counsellors"] == 1
    assert dashboard["appointments_by_status"]["pending"] == 1
    assert dashboard["average_counsellor_rating"] is None

    own = client.get(f"{API}/statistics/me", headers=college_head.headers).json()
    assert own["role"] == "college_head"
    assert own["students"] == 0
    assert client.get(f"{API}/statistics/colleges/{college}", headers=college_head.headers).status_code == 403


def test_expire_stale_appointments(client, admin, counsellor, student, booking_date):
    upcoming = book(client, student, counsellor, booking_date).json()
    with get_cursor() as cursor:
        cursor.execute(
            """
            INSERT INTO appointments (student_id, counsellor_id, scheduled_at, duration, session_type, session_mode)
            VALUES (?, ?, '2020-01-06T10:00:00', 50, 'individual', 'video')
            """,
            (student.id, counsellor.id),
        )
        stale_id = cursor.lastrowid

    assert maintenance(client, admin, "expire-appointments") == 1
    assert maintenance(client, admin, "expire-appointments") == 0

    stale = client.get(f"{API}/appointments/{stale_id}", headers=admin.headers).json()
    assert stale["status"] == "cancelled"
    assert stale["cancellation_reason"] == "expired"
    assert client.get(f"{API}/appointments/{upcoming['id']}", headers=admin.headers).json()["status"] == "pending"

    logs = client.get(f"{API}/audit/logs", params={"object_type": "maintenance"}, headers=admin.headers).json()
    assert [log["action"] for log in logs] == ["expire_stale_appointments"] * 2
    assert logs[1]["details"] == {"rows": 1}
    assert logs[0]["user_id"] == admin.id


def test_recompute_ratings(client, admin, counsellor):
    with get_cursor() as cursor:
        cursor.execute(
            "UPDATE counsellor_profiles SET rating = 3.3, total_reviews = 7 WHERE user_id = ?", (counsellor.id,)
        )
    assert maintenance(client, admin, "recompute-ratings") == 1
    profile = client.get(f"{API}/counsellors/{counsellor.id}").json()
    assert (profile["rating"], profile["total_reviews"]) == (0.0, 0)
    assert maintenance(client, admin, "recompute-ratings") == 0


def test_sync_approval_flags(client, admin, counsellor):
    with get_cursor() as cursor:
        cursor.execute("UPDATE counsellor_profiles SET approved = 0 WHERE user_id = ?", (counsellor.id,))
    assert client.get(f"{API}/counsellors/{counsellor.id}").status_code == 404

    assert maintenance(client, admin, "sync-approval-flags") == 1
    assert client.get(f"{API}/counsellors/{counsellor.id}").status_code == 200
    assert maintenance(client, admin, "sync-approval-flags") == 0


def test_sync_counsellor_profiles(client, admin, counsellor, student):
    with get_cursor() as cursor:
        cursor.execute("DELETE FROM counsellor_profiles WHERE user_id = ?", (counsellor.id,))
    assert maintenance(client, admin, "sync-counsellor-profiles") == 1
    assert maintenance(client, admin, "sync-counsellor-profiles") == 0
    assert client.get(f"{API}/counsellors/{counsellor.id}").json()["schedule"] == {}

    response = client.post(f"{API}/admin/maintenance/sync-counsellor-profiles", headers=student.headers)
    assert response.status_code == 403


def test_audit_log_filters(client, admin, counsellor, student):
    approvals = client.get(
        f"{API}/audit/logs", params={"object_type": "counsellor", "user_id": admin.id}, headers=admin.headers
    ).json()
    assert [(log["action"], log["object_id"]) for log in approvals] == [("approve", counsellor.id)]

    registrations = client.get(f"{API}/audit/logs", params={"action": "register"}, headers=admin.headers).json()
    assert {log["object_id"] for log in registrations} == {admin.id, counsellor.id, student.id}
    assert all(log["user_id"] is None for log in registrations)
    assert client.get(f"{API}/audit/logs", headers=student.headers).status_code == 403
