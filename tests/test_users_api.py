from fastapi.testclient import TestClient

from .conftest import API, PASSWORD


def register(client: TestClient, email: str, **extra):
    payload = {"email": email, "password": PASSWORD, "name": "Test User"}
    payload.update(extra)
    return client.post(f"{API}/users/register", json=payload)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_first_account_becomes_admin(client):
    first = register(client, "First@Zencare.test", role="counsellor")
    assert first.status_code == 201
    assert first.json()["role"] == "admin"
    assert first.json()["email"] == "first@zencare.test"

    second = register(client, "second@zencare.test")
    assert second.json()["role"] == "student"
    assert second.json()["approved"] is True


def test_counsellor_registers_unapproved(client, admin, college):
    response = register(client, "new.counsellor@zencare.test", role="counsellor", college_id=college)
    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "counsellor"
    assert body["approved"] is False

    pending = client.get(f"{API}/counsellors/pending", headers=admin.headers).json()
    assert [c["id"] for c in pending] == [body["id"]]
    assert pending[0]["session_modes"] == ["video", "audio", "chat"]


def test_registration_validation(client, admin):
    assert register(client, "admin@zencare.test").status_code == 409
    assert register(client, "someone@zencare.test", college_id=404).status_code == 400
    assert register(client, "not-an-email").status_code == 422
    assert register(client, "head@zencare.test", role="college_head").status_code == 422
    short = client.post(f"{API}/users/register", json={"email": "x@zencare.test", "password": "short", "name": "X Y"})
    assert short.status_code == 422


def test_login_and_me(client, admin):
    response = client.post(f"{API}/users/login", json={"email": "ADMIN@zencare.test", "password": PASSWORD})
    assert response.status_code == 200
    token = response.json()
    assert token["role"] == "admin"
    assert token["user_id"] == admin.id

    me = client.get(f"{API}/users/me", headers={"Authorization": f"Bearer {token['access_token']}"})
    assert me.json()["email"] == "admin@zencare.test"
    assert "password" not in me.json()


def test_bad_credentials_and_tokens(client, admin):
    wrong = client.post(f"{API}/users/login", json={"email": "admin@zencare.test", "password": "wrong-password"})
    assert wrong.status_code == 401
    assert client.get(f"{API}/users/me").status_code == 401
    assert client.get(f"{API}/users/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_profile_visibility(client, admin, make_user):
    alice = make_user("alice@zencare.test")
    bob = make_user("bob@zencare.test")
    assert client.get(f"{API}/users/{alice.id}", headers=alice.headers).status_code == 200
    assert client.get(f"{API}/users/{alice.id}", headers=admin.headers).status_code == 200
    assert client.get(f"{API}/users/{alice.id}", headers=bob.headers).status_code == 403
    assert client.get(f"{API}/users/9999", headers=admin.headers).status_code == 404


def test_update_own_profile_and_password(client, admin, make_user, login):
    alice = make_user("alice@zencare.test")
    response = client.put(
        f"{API}/users/{alice.id}",
        json={"name": "Alice Liddell", "phone": "+91 98765 43210", "password": "AnotherPass1"},
        headers=alice.headers,
    )
    assert response.status_code == 200
    assert response.json()["name"] == "Alice Liddell"
    login("alice@zencare.test", "AnotherPass1")

    bob = make_user("bob@zencare.test")
    assert client.put(f"{API}/users/{alice.id}", json={"name": "Hacked"}, headers=bob.headers).status_code == 403


def test_block_user(client, admin, make_user):
    alice = make_user("alice@zencare.test")
    response = client.put(
        f"{API}/users/{alice.id}/block", json={"blocked": True, "reason": "abusive messages"}, headers=admin.headers
    )
    assert response.status_code == 200
    assert response.json()["blocked"] is True

    login = client.post(f"{API}/users/login", json={"email": "alice@zencare.test", "password": PASSWORD})
    assert login.status_code == 403
    assert login.json()["detail"] == "User account blocked: abusive messages"
    assert client.get(f"{API}/users/me", headers=alice.headers).status_code == 403

    assert client.put(f"{API}/users/{admin.id}/block", json={"blocked": True}, headers=admin.headers).status_code == 400

    client.put(f"{API}/users/{alice.id}/block", json={"blocked": False}, headers=admin.headers)
    me = client.get(f"{API}/users/me", headers=alice.headers)
    assert me.status_code == 200
    assert me.json()["block_reason"] is None
    notifications = client.get(f"{API}/notifications/", headers=alice.headers).json()
    assert [n["type"] for n in notifications] == ["account_unblocked", "account_blocked"]


def test_admin_list_users(client, admin, make_user, college):
    alice = make_user("alice@zencare.test")
    make_user("bob@zencare.test")
    make_user("carol@zencare.test", role="counsellor", college_id=college)

    students = client.get(f"{API}/users/", params={"role": "student"}, headers=admin.headers).json()
    assert students["pagination"]["total"] == 2
    assert {u["role"] for u in students["users"]} == {"student"}

    pending = client.get(f"{API}/users/", params={"approved": False}, headers=admin.headers).json()
    assert [u["email"] for u in pending["users"]] == ["carol@zencare.test"]

    page = client.get(f"{API}/users/", params={"limit": 2, "page": 2}, headers=admin.headers).json()
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 4, "total_pages": 2}
    assert len(page["users"]) == 2

    found = client.get(f"{API}/users/", params={"search": "BOB"}, headers=admin.headers).json()
    assert [u["email"] for u in found["users"]] == ["bob@zencare.test"]

    assert client.get(f"{API}/users/", params={"role": "wizard"}, headers=admin.headers).status_code == 400
    assert client.get(f"{API}/users/", headers=alice.headers).status_code == 403


def test_delete_user_removes_dependent_rows(client, admin, make_user):
    alice = make_user("alice@zencare.test")
    bob = make_user("bob@zencare.test")
    client.post(
        f"{API}/reports/",
        json={"reported_user_id": bob.id, "type": "spam", "reason": "Keeps sending advertising links"},
        headers=alice.headers,
    )
    client.post(f"{API}/ai-counselor/chat", json={"message": "Hello"}, headers=alice.headers)

    response = client.delete(f"{API}/users/{alice.id}", headers=admin.headers)
    assert response.status_code == 200
    deleted = response.json()["deleted"]
    assert deleted["users"] == 1
    assert deleted["reports"] == 1
    assert deleted["ai_chat_sessions"] == 1
    assert deleted["ai_messages"] == 2

    assert client.get(f"{API}/users/{alice.id}", headers=admin.headers).status_code == 404
    assert client.get(f"{API}/users/me", headers=alice.headers).status_code == 401
    assert client.delete(f"{API}/users/{admin.id}", headers=admin.headers).status_code == 400

    logs = client.get(f"{API}/audit/logs", params={"action": "delete"}, headers=admin.headers).json()
    assert logs[0]["object_id"] == alice.id


def test_deleting_a_student_refreshes_counsellor_rating(client, admin, counsellor, college, make_user):
    harsh = make_user("harsh@zencare.test", college_id=college)
    kind = make_user("kind@zencare.test", college_id=college)
    for account, rating in ((harsh, 1), (kind, 5)):
        response = client.post(
            f"{API}/feedback/", json={"counsellor_id": counsellor.id, "rating": rating}, headers=account.headers
        )
        assert response.status_code == 201, response.text
    summary_url = f"{API}/feedback/counsellor/{counsellor.id}/summary"
    assert client.get(summary_url).json()["rating"] == 3.0

    response = client.delete(f"{API}/users/{harsh.id}", headers=admin.headers)
    assert response.json()["deleted"]["feedback"] == 1

    summary = client.get(summary_url).json()
    assert (summary["rating"], summary["total_reviews"]) == (5.0, 1)
    assert summary["distribution"] == {"1": 0, "2": 0, "3": 0, "4": 0, "5": 1}
    profile = client.get(f"{API}/counsellors/{counsellor.id}").json()
    assert (profile["rating"], profile["total_reviews"]) == (5.0, 1)
