from .conftest import API, PASSWORD


def head_request(**overrides):
    payload = {
        "name": "Dr. Kavya Iyer",
        "email": "kavya@zencare.test",
        "password": PASSWORD,
        "college_name": "Riverside Institute",
        "college_code": "RI05",
        "college_type": "engineering",
    }
    payload.update(overrides)
    return payload


def counsellor_request(college_id, **overrides):
    payload = {
        "name": "Sana Khan",
        "email": "sana@zencare.test",
        "password": PASSWORD,
        "specialization": "Grief Counselling",
        "experience": "5 years",
        "qualifications": ["MSc Psychology"],
        "languages": ["English", "Urdu"],
        "college_id": college_id,
    }
    payload.update(overrides)
    return payload


def test_college_head_request_approval_creates_college_and_account(client, admin, login):
    response = client.post(f"{API}/college-head-requests/", json=head_request())
    assert response.status_code == 201
    request = response.json()
    assert request["status"] == "pending"
    assert "password" not in request

    admin_notifications = client.get(f"{API}/notifications/", headers=admin.headers).json()
    assert admin_notifications[0]["type"] == "college_head_request"

    status = client.get(f"{API}/college-head-requests/status", params={"email": "KAVYA@zencare.test"}).json()
    assert status["status"] == "pending"

    pending = client.get(f"{API}/college-head-requests/", headers=admin.headers).json()
    assert [r["id"] for r in pending] == [request["id"]]

    approved = client.put(
        f"{API}/college-head-requests/{request['id']}", json={"action": "approve"}, headers=admin.headers
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert approved.json()["processed_by"] == admin.id

    headers = login("kavya@zencare.test")
    me = client.get(f"{API}/users/me", headers=headers).json()
    assert me["role"] == "college_head"
    college = client.get(f"{API}/colleges/{me['college_id']}").json()
    assert college["name"] == "Riverside Institute"
    assert college["code"] == "RI05"

    notifications = client.get(f"{API}/notifications/", headers=headers).json()
    assert notifications[0]["type"] == "college_head_request_approved"

    again = client.put(
        f"{API}/college-head-requests/{request['id']}", json={"action": "reject"}, headers=admin.headers
    )
    assert again.status_code == 400


def test_college_head_request_rejection_and_duplicates(client, admin):
    request = client.post(f"{API}/college-head-requests/", json=head_request()).json()
    assert client.post(f"{API}/college-head-requests/", json=head_request()).status_code == 409
    assert client.post(
        f"{API}/college-head-requests/", json=head_request(email="admin@zencare.test")
    ).status_code == 409

    rejected = client.put(
        f"{API}/college-head-requests/{request['id']}",
        json={"action": "reject", "reason": "Could not verify the institution"},
        headers=admin.headers,
    )
    assert rejected.json()["status"] == "rejected"
    status = client.get(f"{API}/college-head-requests/status", params={"email": "kavya@zencare.test"}).json()
    assert status["admin_notes"] == "Could not verify the institution"

    # a rejected applicant may apply again
    assert client.post(f"{API}/college-head-requests/", json=head_request()).status_code == 201

    assert client.get(f"{API}/college-head-requests/status", params={"email": "nobody@zencare.test"}).status_code == 404
    listing = client.get(f"{API}/college-head-requests/", params={"status": "all"}, headers=admin.headers)
    assert len(listing.json()) == 2
    assert client.get(
        f"{API}/college-head-requests/", params={"status": "archived"}, headers=admin.headers
    ).status_code == 400


def test_counsellor_request_reviewed_by_college_head(client, college_head, login, student):
    college_id = client.get(f"{API}/users/me", headers=college_head.headers).json()["college_id"]
    response = client.post(f"{API}/counsellor-requests/", json=counsellor_request(college_id))
    assert response.status_code == 201
    request = response.json()
    assert request["languages"] == ["English", "Urdu"]

    notifications = client.get(f"{API}/notifications/", headers=college_head.headers).json()
    assert notifications[0]["type"] == "counsellor_request"

    listing = client.get(f"{API}/counsellor-requests/", headers=college_head.headers).json()
    assert [r["id"] for r in listing] == [request["id"]]

    approved = client.put(
        f"{API}/counsellor-requests/{request['id']}", json={"action": "approve"}, headers=college_head.headers
    )
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"

    headers = login("sana@zencare.test")
    me = client.get(f"{API}/users/me", headers=headers).json()
    assert me["role"] == "counsellor"
    assert me["approved"] is True
    assert me["college_id"] == college_id

    profile = client.get(f"{API}/counsellors/{me['id']}").json()
    assert profile["specializations"] == ["Grief Counselling"]
    assert profile["experience"] == "5 years"

    status = client.get(f"{API}/counsellor-requests/status", params={"email": "sana@zencare.test"}).json()
    assert status["status"] == "approved"


def test_college_head_is_limited_to_own_college(client, admin, college_head, college):
    request = client.post(f"{API}/counsellor-requests/", json=counsellor_request(college)).json()

    response = client.put(
        f"{API}/counsellor-requests/{request['id']}", json={"action": "approve"}, headers=college_head.headers
    )
    assert response.status_code == 403
    response = client.get(f"{API}/counsellor-requests/", params={"college_id": college}, headers=college_head.headers)
    assert response.status_code == 403
    assert client.get(f"{API}/counsellor-requests/", headers=college_head.headers).json() == []

    everything = client.get(f"{API}/counsellor-requests/", headers=admin.headers).json()
    assert [r["id"] for r in everything] == [request["id"]]
    rejected = client.put(
        f"{API}/counsellor-requests/{request['id']}",
        json={"action": "reject", "reason": "Incomplete documents"},
        headers=admin.headers,
    )
    assert rejected.json()["status"] == "rejected"


def test_counsellor_request_validation(client, admin, college):
    assert client.post(f"{API}/counsellor-requests/", json=counsellor_request(9999)).status_code == 404
    assert client.post(f"{API}/counsellor-requests/", json=counsellor_request(college)).status_code == 201
    assert client.post(f"{API}/counsellor-requests/", json=counsellor_request(college)).status_code == 409
    assert client.post(
        f"{API}/counsellor-requests/", json=counsellor_request(college, email="admin@zencare.test")
    ).status_code == 409


def test_college_head_approves_own_counsellors(client, college_head, make_user):
    college_id = client.get(f"{API}/users/me", headers=college_head.headers).json()["college_id"]
    counsellor = make_user("local@zencare.test", role="counsellor", college_id=college_id)
    outsider = make_user("remote@zencare.test", role="counsellor")

    response = client.put(
        f"{API}/counsellors/{counsellor.id}/approval", json={"approved": True}, headers=college_head.headers
    )
    assert response.status_code == 200
    assert response.json()["approved"] is True
    response = client.put(
        f"{API}/counsellors/{outsider.id}/approval", json={"approved": True}, headers=college_head.headers
    )
    assert response.status_code == 403


def test_colleges_are_listed(client, college, college_head):
    names = [c["name"] for c in client.get(f"{API}/colleges/").json()]
    assert set(names) == {"Test College", "Head College"}
    assert client.get(f"{API}/colleges/9999").status_code == 404
