import pytest

from zencare_api.app.services.report_service import report_priority

from .conftest import API


@pytest.mark.parametrize(
    "report_type, reason, priority",
    [
        ("safety_concern", "Worried about my roommate", "high"),
        ("crisis_detection", "Automatic detection", "high"),
        ("harassment", "He talked about self HARM in chat", "high"),
        ("spam", "Keeps sending advertising links", "low"),
        ("other", "Something else entirely", "low"),
        ("harassment", "Sends me messages every night", "medium"),
        ("inappropriate_behavior", "Was rude during the session", "medium"),
    ],
)
def test_report_priority(report_type, reason, priority):
    assert report_priority(report_type, reason) == priority


@pytest.fixture
def reporter(admin, make_user):
    return make_user("reporter@zencare.test")


@pytest.fixture
def reported(admin, make_user):
    return make_user("reported@zencare.test")


def file_report(client, reporter, reported, report_type="harassment", reason="Sends me messages every night"):
    response = client.post(
        f"{API}/reports/",
        json={"reported_user_id": reported.id, "type": report_type, "reason": reason},
        headers=reporter.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_cannot_report_yourself(client, reporter):
    response = client.post(
        f"{API}/reports/",
        json={"reported_user_id": reporter.id, "type": "spam", "reason": "Reporting my own account"},
        headers=reporter.headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot report yourself"


def test_unknown_reported_user(client, reporter):
    response = client.post(
        f"{API}/reports/",
        json={"reported_user_id": 999, "type": "spam", "reason": "This user does not exist"},
        headers=reporter.headers,
    )
    assert response.status_code == 404


def test_high_priority_report_notifies_admins(client, admin, reporter, reported):
    report = file_report(client, reporter, reported, "safety_concern", "I am worried about their safety")
    assert report["priority"] == "high"
    assert report["status"] == "open"

    notifications = client.get(f"{API}/notifications/", headers=admin.headers).json()
    assert [n["type"] for n in notifications] == ["high_priority_report"]
    assert notifications[0]["data"]["report_id"] == report["id"]
    # role-addressed notifications are not shown to other roles
    assert client.get(f"{API}/notifications/", headers=reporter.headers).json() == []


def test_reported_user_sees_redacted_reports(client, admin, reporter, reported):
    file_report(client, reporter, reported)

    own_view = client.get(f"{API}/reports/about/{reported.id}", headers=reported.headers).json()
    assert own_view[0]["reason"] == "[redacted]"
    assert own_view[0]["reporter_id"] is None

    admin_view = client.get(f"{API}/reports/about/{reported.id}", headers=admin.headers).json()
    assert admin_view[0]["reason"] == "Sends me messages every night"
    assert admin_view[0]["reporter_id"] == reporter.id

    response = client.get(f"{API}/reports/about/{reported.id}", headers=reporter.headers)
    assert response.status_code == 403


def test_reporter_can_update_then_withdraw(client, reporter, reported):
    report = file_report(client, reporter, reported)

    updated = client.put(
        f"{API}/reports/{report['id']}/own",
        json={"action": "update", "reason": "They threatened to harm me yesterday"},
        headers=reporter.headers,
    )
    assert updated.status_code == 200
    assert updated.json()["priority"] == "high"

    response = client.put(
        f"{API}/reports/{report['id']}/own",
        json={"action": "update", "reason": "short"},
        headers=reporter.headers,
    )
    assert response.status_code == 400

    response = client.put(
        f"{API}/reports/{report['id']}/own",
        json={"action": "withdraw", "reason": "Sorted it out"},
        headers=reported.headers,
    )
    assert response.status_code == 403

    withdrawn = client.put(
        f"{API}/reports/{report['id']}/own",
        json={"action": "withdraw", "reason": "Sorted it out"},
        headers=reporter.headers,
    )
    assert withdrawn.json()["status"] == "withdrawn"
    assert withdrawn.json()["withdraw_reason"] == "Sorted it out"

    response = client.put(
        f"{API}/reports/{report['id']}/own",
        json={"action": "withdraw", "reason": "Again"},
        headers=reporter.headers,
    )
    assert response.status_code == 400


def test_admin_moderation_and_stats(client, admin, reporter, reported):
    first = file_report(client, reporter, reported)
    file_report(client, reporter, reported, "spam", "Keeps sending advertising links")

    listing = client.get(f"{API}/reports/", params={"priority": "low"}, headers=admin.headers).json()
    assert listing["pagination"]["total"] == 1
    assert listing["reports"][0]["type"] == "spam"

    assert client.get(f"{API}/reports/", headers=reporter.headers).status_code == 403

    resolved = client.put(
        f"{API}/reports/{first['id']}/status",
        json={"status": "resolved", "admin_notes": "Warned the user"},
        headers=admin.headers,
    )
    assert resolved.status_code == 200
    assert resolved.json()["handled_by"] == admin.id

    notifications = client.get(f"{API}/notifications/", headers=reporter.headers).json()
    assert notifications[0]["type"] == "report_status"

    stats = client.get(f"{API}/reports/stats", headers=reporter.headers).json()
    assert stats["created"] == {"open": 1, "resolved": 1, "total": 2}
    assert stats["about_me"] == {"total": 0}
    assert client.get(f"{API}/reports/stats", headers=reported.headers).json()["about_me"]["total"] == 2


def test_report_types_are_public_to_signed_in_users(client, reporter):
    body = client.get(f"{API}/reports/types", headers=reporter.headers).json()
    assert "crisis_detection" in [item["value"] for item in body["types"]]
    assert body["guidelines"]
