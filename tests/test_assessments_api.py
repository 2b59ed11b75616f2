from .conftest import API


def submit(client, account, assessment_type, answers):
    return client.post(
        f"{API}/assessments/", json={"type": assessment_type, "answers": answers}, headers=account.headers
    )


def test_questionnaire_is_public(client):
    body = client.get(f"{API}/assessments/questionnaires/phq9").json()
    assert body["title"] == "PHQ-9 Depression Screening"
    assert len(body["questions"]) == 9
    assert client.get(f"{API}/assessments/questionnaires/bdi").status_code == 404


def test_submit_returns_interpretation(client, student):
    response = submit(client, student, "gad7", [2, 2, 2, 2, 1, 1, 0])
    assert response.status_code == 201
    body = response.json()
    assert body["score"] == 10
    assert body["severity"] == "moderate"
    assert body["crisis_flag"] is False
    assert body["recommendations"]
    assert body["emergency_resources"] is None


def test_self_harm_answer_raises_crisis_alert(client, admin, student):
    body = submit(client, student, "phq9", [0, 0, 0, 0, 0, 0, 0, 0, 2]).json()
    assert body["crisis_flag"] is True
    assert body["severity"] == "minimal"
    assert body["emergency_resources"]["suicide_lifeline"] == "988"

    alerts = client.get(f"{API}/ai-counselor/crisis-alerts", headers=admin.headers).json()
    assert [(a["user_id"], a["source"]) for a in alerts] == [(student.id, "phq9_assessment")]
    reports = client.get(f"{API}/reports/", params={"type": "crisis_detection"}, headers=admin.headers).json()
    assert reports["pagination"]["total"] == 1


def test_invalid_submissions(client, counsellor, student):
    assert submit(client, student, "phq9", [0] * 8).status_code == 400
    assert submit(client, student, "gad7", [0, 0, 0, 0, 0, 0, 5]).status_code == 400
    assert submit(client, student, "bdi", [0]).status_code == 422
    assert submit(client, counsellor, "gad7", [0] * 7).status_code == 403


def test_history_and_latest(client, student):
    submit(client, student, "phq9", [1] * 8 + [0])
    submit(client, student, "phq9", [0] * 9)
    submit(client, student, "gad7", [3] * 7)

    mine = client.get(f"{API}/assessments/mine", headers=student.headers).json()
    assert [a["type"] for a in mine] == ["gad7", "phq9", "phq9"]
    only_phq9 = client.get(f"{API}/assessments/mine", params={"type": "phq9"}, headers=student.headers).json()
    assert [a["score"] for a in only_phq9] == [0, 8]

    latest = client.get(f"{API}/assessments/latest", headers=student.headers).json()
    assert latest["phq9"]["score"] == 0
    assert latest["gad7"]["severity"] == "severe"


def test_access_to_student_results(client, admin, counsellor, student, booking_date, make_user, college):
    submit(client, student, "gad7", [1] * 7)
    url = f"{API}/assessments/student/{student.id}"

    assert client.get(url, headers=counsellor.headers).status_code == 403
    client.post(
        f"{API}/appointments/",
        json={"counsellor_id": counsellor.id, "date": booking_date.isoformat(), "time": "11:00"},
        headers=student.headers,
    )
    assert len(client.get(url, headers=counsellor.headers).json()) == 1
    assert len(client.get(url, headers=admin.headers).json()) == 1

    classmate = make_user("classmate@zencare.test", college_id=college)
    assert client.get(url, headers=classmate.headers).status_code == 403
