from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, Optional

import pytest
from fastapi.testclient import TestClient

from zencare_api.app.core.config import settings
from zencare_api.app.core.db import get_cursor, init_db
from zencare_api.app.main import app
from zencare_api.app.schemas.counsellor import WEEKDAYS
from zencare_api.app.services import slots
from zencare_api.app.services.college_service import CollegeService

API = "/api/v1"
PASSWORD = "Sup3rSecret!"

FULL_WEEK = {day: {"available": True, "slots": ["10:00", "11:00", "15:00"]} for day in WEEKDAYS}


@dataclass
class Account:
    id: int
    email: str
    headers: Dict[str, str]


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    path = tmp_path / "zencare_test.db"
    monkeypatch.setattr(settings, "database_url", str(path))
    monkeypatch.setattr(settings, "ai_chat_url", "")
    monkeypatch.setattr(settings, "super_admin_static_token", "")
    init_db()
    return path


@pytest.fixture
def client(db_path):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def login(client) -> Callable[..., Dict[str, str]]:
    def _login(email: str, password: str = PASSWORD) -> Dict[str, str]:
        response = client.post(f"{API}/users/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login


@pytest.fixture
def make_user(client, login) -> Callable[..., Account]:
    def _make_user(email: str, role: str = "student", college_id: Optional[int] = None) -> Account:
        response = client.post(
            f"{API}/users/register",
            json={
                "email": email,
                "password": PASSWORD,
                "name": email.split("@")[0].replace(".", " ").title(),
                "role": role,
                "college_id": college_id,
            },
        )
        assert response.status_code == 201, response.text
        return Account(id=response.json()["id"], email=email, headers=login(email))

    return _make_user


@pytest.fixture
def admin(make_user) -> Account:
    # the first account registered becomes the admin
    return make_user("admin@zencare.test")


@pytest.fixture
def college(db_path) -> int:
    with get_cursor() as cursor:
        return CollegeService.create_college(cursor, "Test College", code="TC01", address="Campus Road")


@pytest.fixture
def counsellor(client, admin, college, make_user) -> Account:
    """An approved counsellor at ``college`` available every day at 10:00, 11:00 and 15:00."""
    account = make_user("priya@zencare.test", role="counsellor", college_id=college)
    response = client.put(
        f"{API}/counsellors/{account.id}/schedule", json={"schedule": FULL_WEEK}, headers=account.headers
    )
    assert response.status_code == 200, response.text
    response = client.put(
        f"{API}/counsellors/{account.id}/approval", json={"approved": True}, headers=admin.headers
    )
    assert response.status_code == 200, response.text
    return account


@pytest.fixture
def student(admin, college, make_user) -> Account:
    return make_user("rahul@zencare.test", college_id=college)


@pytest.fixture
def college_head(client, admin, login) -> Account:
    """Head of "Head College", created through an approved college-head request."""
    response = client.post(
        f"{API}/college-head-requests/",
        json={
            "name": "Dr. Meera Rao",
            "email": "head@zencare.test",
            "password": PASSWORD,
            "position": "Dean of Students",
            "college_name": "Head College",
            "college_code": "HC09",
        },
    )
    assert response.status_code == 201, response.text
    response = client.put(
        f"{API}/college-head-requests/{response.json()['id']}", json={"action": "approve"}, headers=admin.headers
    )
    assert response.status_code == 200, response.text
    headers = login("head@zencare.test")
    me = client.get(f"{API}/users/me", headers=headers).json()
    return Account(id=me["id"], email=me["email"], headers=headers)


@pytest.fixture
def booking_date():
    """A date a week ahead, so it is never today or in the past."""
    return slots.local_now().date() + timedelta(days=7)
