"""
Tests for user endpoints.
"""
from datetime import datetime
from travelbuddy.models.user import UserRole
from travelbuddy.services.participation_service import join_plan


def test_get_user_by_id(client, make_user):
    user = make_user(name="Jane Doe")
    response = client.get(f"/api/users/{user.id}")
    assert response.status_code == 200
    assert response.json()["data"]["name"] == "Jane Doe"
    assert "hashed_password" not in response.json()["data"]


def test_get_missing_user(client):
    assert client.get("/api/users/9999").status_code == 404


def test_update_own_profile(client, make_user, headers):
    user = make_user()
    response = client.patch(
        f"/api/users/{user.id}",
        json={"bio": "Backpacker", "visited_countries": ["Peru", "Chile"]},
        headers=headers(user)
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["bio"] == "Backpacker"
    assert data["visited_countries"] == ["Peru", "Chile"]


def test_cannot_update_other_profile(client, make_user, headers):
    user, other = make_user(), make_user()
    response = client.patch(f"/api/users/{user.id}", json={"bio": "hacked"}, headers=headers(other))
    assert response.status_code == 403


def test_admin_can_update_any_profile(client, make_user, headers):
    admin = make_user(role=UserRole.ADMIN)
    user = make_user()
    response = client.patch(f"/api/users/{user.id}", json={"bio": "Edited"}, headers=headers(admin))
    assert response.status_code == 200


def test_change_password(client, make_user, headers, password):
    user = make_user(email="pw@example.com")
    wrong = client.patch(
        f"/api/users/{user.id}/password",
        json={"current_password": "not-it", "new_password": "another1"},
        headers=headers(user)
    )
    assert wrong.status_code == 400

    ok = client.patch(
        f"/api/users/{user.id}/password",
        json={"current_password": password, "new_password": "another1"},
        headers=headers(user)
    )
    assert ok.status_code == 200

    login = client.post("/api/auth/login", json={"email": "pw@example.com", "password": "another1"})
    assert login.status_code == 200


def test_search_users(client, make_user):
    make_user(name="Peru Fan", visited_countries=["Peru"], travel_interests=["hiking"])
    make_user(name="Beach Lover", visited_countries=["Spain"], travel_interests=["beach"])
    make_user(name="Hidden", visited_countries=["Peru"], is_blocked=True)

    response = client.get("/api/users/search", params={"visited_countries": "peru"})
    names = [u["name"] for u in response.json()["data"]["data"]]
    assert names == ["Peru Fan"]

    response = client.get("/api/users/search", params={"travel_interests": "beach,surf"})
    names = [u["name"] for u in response.json()["data"]["data"]]
    assert names == ["Beach Lover"]

    response = client.get("/api/users/search", params={"query": "lover"})
    assert response.json()["data"]["meta"]["total"] == 1


def test_list_all_users_hides_blocked(client, make_user):
    make_user()
    make_user(is_blocked=True)
    response = client.get("/api/users/all")
    assert response.json()["data"]["meta"]["total"] == 1


def test_admin_list_and_block(client, make_user, headers):
    admin = make_user(role=UserRole.ADMIN)
    user = make_user()

    assert client.get("/api/users", headers=headers(user)).status_code == 403

    response = client.patch(f"/api/users/{user.id}/admin", json={"is_blocked": True}, headers=headers(admin))
    assert response.status_code == 200
    assert response.json()["data"]["is_blocked"] is True

    blocked = client.get("/api/users", params={"status": "blocked"}, headers=headers(admin))
    assert [u["id"] for u in blocked.json()["data"]["data"]] == [user.id]

    assert client.get("/api/users/me", headers=headers(user)).status_code == 403


def test_admin_cannot_block_self(client, make_user, headers):
    admin = make_user(role=UserRole.ADMIN)
    response = client.patch(f"/api/users/{admin.id}/admin", json={"is_blocked": True}, headers=headers(admin))
    assert response.status_code == 400


def test_travel_history_lists_ended_joined_plans(client, db, make_user, make_plan, headers):
    host, guest = make_user(), make_user()
    ended = make_plan(host)
    upcoming = make_plan(host, start_date=datetime(2099, 1, 1), end_date=datetime(2099, 1, 5))
    join_plan(db, ended.id, guest.id, datetime(2025, 5, 1))
    join_plan(db, upcoming.id, guest.id)

    response = client.get("/api/users/me/travel-history", headers=headers(guest))
    ids = [p["id"] for p in response.json()["data"]["data"]]
    assert ids == [ended.id]
