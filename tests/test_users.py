"""
GAuth Web - User Management Tests

Integration tests for the admin-only /api/users endpoints:
- Listing, pagination and search
- Create, read, update, soft delete
- Validation and conflict handling
"""

from datetime import datetime, timedelta
from uuid import uuid4

from sqlmodel import select

from gauth_web.auth.models import Session, User
from tests.conftest import auth_headers, login_user, make_user


def create_body(**overrides) -> dict:
    body = {
        "username": "newuser",
        "email": "newuser@test.com",
        "password": "Secret123",
        "first_name": "New",
        "last_name": "User",
    }
    body.update(overrides)
    return body


# =============================================================================
# LIST / PAGINATION
# =============================================================================

class TestListUsers:

    def test_pagination(self, client, db_session, admin_headers):
        base = datetime.utcnow()
        for i in range(24):
            user = make_user(db_session, f"user{i:02d}")
            user.created_at = base + timedelta(seconds=i + 1)
            db_session.add(user)
        db_session.commit()

        response = client.get("/api/users?page=2&limit=10", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data["users"]) == 10
        assert data["pagination"] == {
            "current_page": 2,
            "total_pages": 3,
            "total_items": 25,
            "items_per_page": 10,
        }

    def test_last_page_partial(self, client, db_session, admin_headers):
        for i in range(24):
            make_user(db_session, f"user{i:02d}")

        data = client.get("/api/users?page=3&limit=10", headers=admin_headers).json()

        assert len(data["users"]) == 5

    def test_out_of_range_params_are_normalized(self, client, admin_headers):
        data = client.get("/api/users?page=0&limit=500", headers=admin_headers).json()

        assert data["pagination"]["current_page"] == 1
        assert data["pagination"]["items_per_page"] == 10

    def test_search_matches_username_email_and_name(self, client, db_session, admin_headers):
        make_user(db_session, "carol", email="carol@example.org")
        dave = make_user(db_session, "dave")
        dave.last_name = "Caroline"
        db_session.add(dave)
        db_session.commit()
        make_user(db_session, "erin")

        data = client.get("/api/users?search=carol", headers=admin_headers).json()

        usernames = sorted(u["username"] for u in data["users"])
        assert usernames == ["carol", "dave"]
        assert data["pagination"]["total_items"] == 2

    def test_search_wildcards_match_literally(self, client, db_session, admin_headers):
        make_user(db_session, "a_b")
        make_user(db_session, "axb")

        underscore = client.get("/api/users?search=a_b", headers=admin_headers).json()
        percent = client.get("/api/users?search=%25", headers=admin_headers).json()

        assert [u["username"] for u in underscore["users"]] == ["a_b"]
        assert percent["users"] == []
        assert percent["pagination"]["total_items"] == 0

    def test_deleted_users_hidden(self, client, db_session, admin_headers):
        ghost = make_user(db_session, "ghost")
        ghost.deleted_at = datetime.utcnow()
        db_session.add(ghost)
        db_session.commit()

        data = client.get("/api/users", headers=admin_headers).json()

        assert "ghost" not in [u["username"] for u in data["users"]]

    def test_no_password_in_listing(self, client, admin_headers):
        data = client.get("/api/users", headers=admin_headers).json()

        for user in data["users"]:
            assert "password" not in user
            assert "password_hash" not in user


# =============================================================================
# CREATE
# =============================================================================

class TestCreateUser:

    def test_create_user(self, client, admin_headers, default_roles):
        response = client.post(
            "/api/users",
            json=create_body(role_ids=[str(default_roles["user"].id)]),
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "newuser"
        assert data["is_active"] is True
        assert [r["name"] for r in data["roles"]] == ["user"]

        assert login_user(client, "newuser", "Secret123") is not None

    def test_unknown_role_ids_ignored(self, client, admin_headers):
        response = client.post(
            "/api/users",
            json=create_body(role_ids=[str(uuid4())]),
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["roles"] == []

    def test_duplicate_username_conflict(self, client, admin_headers):
        client.post("/api/users", json=create_body(), headers=admin_headers)

        response = client.post(
            "/api/users",
            json=create_body(email="other@test.com"),
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json() == {"error": "User with this username or email already exists"}

    def test_duplicate_email_conflict(self, client, admin_headers):
        client.post("/api/users", json=create_body(), headers=admin_headers)

        response = client.post(
            "/api/users",
            json=create_body(username="another"),
            headers=admin_headers,
        )

        assert response.status_code == 409

    def test_invalid_input_returns_400(self, client, admin_headers):
        for body in (
            create_body(username="ab"),
            create_body(email="not-an-email"),
            create_body(password="123"),
        ):
            response = client.post("/api/users", json=body, headers=admin_headers)
            assert response.status_code == 400
            assert "error" in response.json()


# =============================================================================
# READ / UPDATE
# =============================================================================

class TestGetAndUpdateUser:

    def test_get_user(self, client, admin_headers, test_member):
        response = client.get(f"/api/users/{test_member.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["username"] == "member"

    def test_malformed_id_returns_400(self, client, admin_headers):
        response = client.get("/api/users/not-a-uuid", headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid user ID"}

    def test_unknown_id_returns_404(self, client, admin_headers):
        response = client.get(f"/api/users/{uuid4()}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "User not found"}

    def test_partial_update(self, client, admin_headers, test_member):
        response = client.put(
            f"/api/users/{test_member.id}",
            json={"first_name": "Changed"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["first_name"] == "Changed"
        assert data["username"] == "member"
        assert data["email"] == "member@test.com"

    def test_update_replaces_roles(self, client, admin_headers, test_member, default_roles):
        response = client.put(
            f"/api/users/{test_member.id}",
            json={"role_ids": [str(default_roles["admin"].id)]},
            headers=admin_headers,
        )

        assert [r["name"] for r in response.json()["roles"]] == ["admin"]

    def test_update_username_conflict(self, client, admin_headers, test_member):
        response = client.put(
            f"/api/users/{test_member.id}",
            json={"username": "admin_user"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json() == {"error": "Username already exists"}

    def test_update_email_conflict(self, client, admin_headers, test_member):
        response = client.put(
            f"/api/users/{test_member.id}",
            json={"email": "admin_user@test.com"},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json() == {"error": "Email already exists"}

    def test_deactivate_user_blocks_login(self, client, admin_headers, test_member):
        client.put(
            f"/api/users/{test_member.id}",
            json={"is_active": False},
            headers=admin_headers,
        )

        assert login_user(client, "member", "MemberPass123") is None


# =============================================================================
# DELETE
# =============================================================================

class TestDeleteUser:

    def test_soft_delete_revokes_sessions(self, client, db_session, admin_headers, test_member):
        tokens = login_user(client, "member", "MemberPass123")

        response = client.delete(f"/api/users/{test_member.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json() == {"message": "User deleted successfully"}

        assert client.get("/api/auth/me", headers=auth_headers(tokens["access_token"])).status_code == 401
        assert client.get(f"/api/users/{test_member.id}", headers=admin_headers).status_code == 404

        db_session.expire_all()
        row = db_session.get(User, test_member.id)
        assert row is not None
        assert row.deleted_at is not None
        active = db_session.exec(
            select(Session).where(Session.user_id == test_member.id, Session.is_active == True)  # noqa: E712
        ).all()
        assert active == []

    def test_cannot_delete_self(self, client, admin_headers, test_admin):
        response = client.delete(f"/api/users/{test_admin.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json() == {"error": "Cannot delete your own account"}

    def test_deleted_username_stays_reserved(self, client, admin_headers, test_member):
        client.delete(f"/api/users/{test_member.id}", headers=admin_headers)

        response = client.post(
            "/api/users",
            json=create_body(username="member", email="fresh@test.com"),
            headers=admin_headers,
        )

        assert response.status_code == 409
