import threading

import pytest

from zencare_api.ai_counselor_client import AICounselorClient
from zencare_api.app.services import ai_chat_service

from .conftest import API
from .test_ai_counselor_client import FakeResponse, FakeSession

CRISIS_MESSAGE = "I feel hopeless and I want to end my life"
SEVERE_PHQ9 = [3, 3, 3, 3, 3, 2, 0, 0, 0]


def chat(client, account, message, **extra):
    payload = {"message": message}
    payload.update(extra)
    return client.post(f"{API}/ai-counselor/chat", json=payload, headers=account.headers)


def test_fallback_reply_and_history(client, student):
    first = chat(client, student, "Hello, I just wanted to talk")
    assert first.status_code == 200
    body = first.json()
    assert body["category"] == "general_support"
    assert body["confidence"] == 0.65
    assert body["is_crisis"] is False

    second = chat(client, student, "I'm so stressed about exams", session_id=body["session_id"]).json()
    assert second["session_id"] == body["session_id"]
    assert second["category"] == "stress_support"

    history = client.get(
        f"{API}/ai-counselor/history", params={"session_id": body["session_id"]}, headers=student.headers
    ).json()
    assert [m["sender"] for m in history] == ["user", "ai", "user", "ai"]
    assert history[0]["content"] == "Hello, I just wanted to talk"

    sessions = client.get(f"{API}/ai-counselor/sessions", headers=student.headers).json()
    assert len(sessions) == 1
    assert sessions[0]["message_count"] == 4
    assert sessions[0]["crisis_flag"] is False


def test_assessment_scores_shape_fallback(client, student):
    client.post(f"{API}/assessments/", json={"type": "phq9", "answers": SEVERE_PHQ9}, headers=student.headers)
    reply = chat(client, student, "I can't sleep").json()
    assert reply["category"] == "depression_support"
    assert reply["confidence"] == 0.85


def test_sessions_are_private(client, student, make_user, admin):
    session_id = chat(client, student, "Hello").json()["session_id"]
    other = make_user("other@zencare.test")

    response = chat(client, other, "Hello", session_id=session_id)
    assert response.status_code == 403
    assert chat(client, other, "Hello", session_id=9999).status_code == 404
    assert client.get(
        f"{API}/ai-counselor/history", params={"session_id": session_id}, headers=other.headers
    ).json() == []


def test_crisis_message_raises_alert_and_report(client, admin, student):
    response = chat(client, student, CRISIS_MESSAGE)
    assert response.status_code == 200
    body = response.json()
    assert body["is_crisis"] is True
    assert body["category"] == "crisis_support"
    assert body["recommendations"]
    assert body["confidence"] == pytest.approx(2 / 3)

    alerts = client.get(f"{API}/ai-counselor/crisis-alerts", headers=admin.headers).json()
    assert len(alerts) == 1
    alert = alerts[0]
    assert alert["user_id"] == student.id
    assert alert["source"] == "ai_chat"
    assert alert["session_id"] == body["session_id"]
    assert set(alert["matched_keywords"]) == {"hopeless", "end my life"}

    reports = client.get(f"{API}/reports/about/{student.id}", headers=admin.headers).json()
    assert len(reports) == 1
    assert reports[0]["type"] == "crisis_detection"
    assert reports[0]["priority"] == "high"
    assert reports[0]["reporter_id"] == admin.id
    assert reports[0]["session_id"] == str(body["session_id"])

    notifications = client.get(f"{API}/notifications/", headers=admin.headers).json()
    assert notifications[0]["type"] == "high_priority_report"

    sessions = client.get(f"{API}/ai-counselor/sessions", headers=student.headers).json()
    assert sessions[0]["crisis_flag"] is True

    history = client.get(f"{API}/ai-counselor/history", headers=student.headers).json()
    assert history[-1]["is_crisis"] is True


def test_resolving_alerts(client, admin, student):
    chat(client, student, CRISIS_MESSAGE)
    alert_id = client.get(f"{API}/ai-counselor/crisis-alerts", headers=admin.headers).json()[0]["id"]

    resolved = client.put(f"{API}/ai-counselor/crisis-alerts/{alert_id}/resolve", headers=admin.headers)
    assert resolved.status_code == 200
    assert resolved.json()["status"] == "resolved"
    assert resolved.json()["resolved_by"] == admin.id

    assert client.put(f"{API}/ai-counselor/crisis-alerts/{alert_id}/resolve", headers=admin.headers).status_code == 400
    assert client.get(f"{API}/ai-counselor/crisis-alerts", headers=admin.headers).json() == []
    everything = client.get(f"{API}/ai-counselor/crisis-alerts", params={"status": "all"}, headers=admin.headers)
    assert len(everything.json()) == 1
    assert client.get(f"{API}/ai-counselor/crisis-alerts", headers=student.headers).status_code == 403


def test_rating_replies(client, student, make_user):
    chat(client, student, "Hello")
    user_message, ai_message = client.get(f"{API}/ai-counselor/history", headers=student.headers).json()

    response = client.put(
        f"{API}/ai-counselor/messages/{ai_message['id']}/rating", json={"helpful": True}, headers=student.headers
    )
    assert response.json() == {"status": "ok"}
    history = client.get(f"{API}/ai-counselor/history", headers=student.headers).json()
    assert history[1]["helpful"] is True

    response = client.put(
        f"{API}/ai-counselor/messages/{user_message['id']}/rating", json={"helpful": True}, headers=student.headers
    )
    assert response.status_code == 400
    other = make_user("other@zencare.test")
    response = client.put(
        f"{API}/ai-counselor/messages/{ai_message['id']}/rating", json={"helpful": False}, headers=other.headers
    )
    assert response.status_code == 403


def test_crisis_check_is_stateless(client, admin):
    response = client.post(f"{API}/ai-counselor/crisis-check", json={"message": "I want to die", "language": "en"})
    assert response.status_code == 200
    assert response.json()["is_crisis"] is True
    assert response.json()["matched_keywords"] == ["want to die"]
    assert client.get(f"{API}/ai-counselor/crisis-alerts", headers=admin.headers).json() == []

    stats = client.get(f"{API}/ai-counselor/detector", headers=admin.headers).json()
    assert stats["method"] == "keyword"


@pytest.fixture
def fake_ai(monkeypatch):
    session = FakeSession(
        FakeResponse(payload={"success": True, "response": "Let's take a breath together.", "confidence": 0.9,
                              "category": "anxiety_support", "isCrisis": False})
    )
    monkeypatch.setattr(
        ai_chat_service,
        "get_client",
        lambda: AICounselorClient(base_url="https://ai.test", session=session),
    )
    return session


def test_external_ai_service_is_used_when_configured(client, student, fake_ai):
    client.post(f"{API}/assessments/", json={"type": "gad7", "answers": [1] * 7}, headers=student.headers)
    body = chat(client, student, "My heart races before exams", language="en").json()
    assert body["response"] == "Let's take a breath together."
    assert body["category"] == "anxiety_support"
    assert body["confidence"] == 0.9

    sent = fake_ai.calls[0]["json"]
    assert sent["message"] == "My heart races before exams"
    assert sent["sessionId"] == str(body["session_id"])
    assert sent["context"]["assessmentResults"] == {"gad7": {"score": 7}}
    assert sent["context"]["chatHistory"] == []

    chat(client, student, "It happens every morning", session_id=body["session_id"])
    history = fake_ai.calls[1]["json"]["context"]["chatHistory"]
    assert history == [
        {"sender": "user", "content": "My heart races before exams"},
        {"sender": "ai", "content": "Let's take a breath together."},
    ]


def test_chat_history_sent_to_external_service_is_capped(client, student, fake_ai):
    session_id = chat(client, student, "first").json()["session_id"]
    for text in ("second", "third", "fourth"):
        chat(client, student, text, session_id=session_id)
    history = fake_ai.calls[-1]["json"]["context"]["chatHistory"]
    assert len(history) == ai_chat_service.HISTORY_LENGTH
    assert history[0] == {"sender": "ai", "content": "Let's take a breath together."}
    assert history[-1] == {"sender": "ai", "content": "Let's take a breath together."}
    assert {"sender": "user", "content": "third"} in history
    assert {"sender": "user", "content": "first"} not in history


def test_external_call_runs_off_the_event_loop_thread(client, student, monkeypatch):
    threads = {}

    class RecordingSession(FakeSession):
        def request(self, **kwargs):
            threads["request"] = threading.get_ident()
            return super().request(**kwargs)

    session = RecordingSession(FakeResponse(payload={"response": "I am here with you."}))

    def get_client():
        threads["loop"] = threading.get_ident()
        return AICounselorClient(base_url="https://ai.test", session=session)

    monkeypatch.setattr(ai_chat_service, "get_client", get_client)
    assert chat(client, student, "Exams are coming up").json()["response"] == "I am here with you."
    assert threads["request"] != threads["loop"]


def test_external_failure_falls_back(client, student, fake_ai):
    fake_ai.response = FakeResponse(status_code=500, payload={"detail": "boom"})
    body = chat(client, student, "I feel so lonely here").json()
    assert body["category"] == "loneliness_support"


def test_crisis_messages_never_reach_external_service(client, student, fake_ai):
    assert chat(client, student, CRISIS_MESSAGE).json()["is_crisis"] is True
    assert fake_ai.calls == []


def test_college_heads_see_their_own_students_alerts(client, admin, student, college_head, make_user):
    college_id = client.get(f"{API}/users/me", headers=college_head.headers).json()["college_id"]
    own_student = make_user("ananya@zencare.test", college_id=college_id)
    chat(client, student, CRISIS_MESSAGE)
    chat(client, own_student, CRISIS_MESSAGE)

    visible = client.get(f"{API}/ai-counselor/crisis-alerts", headers=college_head.headers).json()
    assert [a["user_id"] for a in visible] == [own_student.id]
    assert len(client.get(f"{API}/ai-counselor/crisis-alerts", headers=admin.headers).json()) == 2

    other_alert = next(
        a["id"] for a in client.get(f"{API}/ai-counselor/crisis-alerts", headers=admin.headers).json()
        if a["user_id"] == student.id
    )
    response = client.put(f"{API}/ai-counselor/crisis-alerts/{other_alert}/resolve", headers=college_head.headers)
    assert response.status_code == 403
    response = client.put(f"{API}/ai-counselor/crisis-alerts/{visible[0]['id']}/resolve", headers=college_head.headers)
    assert response.json()["status"] == "resolved"
