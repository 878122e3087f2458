"""
Tests for account management endpoints under /api/users.

These tests verify:
  - Listing never exposes password hashes
  - Administrative creation requires a password and relies on the database
    constraint for uniqueness
  - Updates merge fields, re-hash passwords and reissue tokens
  - Username changes detect conflicts but allow a no-op rename
  - Password changes require the current password
  - Deletion is idempotent
  - /me resolves the bearer token to the user
"""

import uuid

from jose import jwt


def admin_create_payload(**overrides):
    payload = {
        "firstName": "Katherine",
        "lastName": "Johnson",
        "email": "katherine@example.com",
        "username": "kjohnson",
        "password": "OrbitPass123!",
        "age": "101",
        "gender": "female",
        "contactNumber": "555-0142",
        "address": "Hampton, VA",
    }
    payload.update(overrides)
    return {key: value for key, value in payload.items() if value is not None}


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------

class TestListUsers:
    """Tests for GET /api/users."""

    async def test_list_empty(self, client):
        response = await client.get("/api/users")
        assert response.status_code == 200
        assert response.json() == {"users": []}

    async def test_list_excludes_passwords(self, client, registered_user):
        await client.post("/api/users", json=admin_create_payload())

        response = await client.get("/api/users")
        users = response.json()["users"]
        assert {u["username"] for u in users} == {"ada", "kjohnson"}
        for user in users:
            assert "password" not in user
            assert "passwordHash" not in user
        assert "$argon2" not in response.text

    async def test_timestamps_keep_utc_offset(self, client, registered_user):
        """Records read back from the database carry the same UTC timestamps."""
        listed = (await client.get("/api/users")).json()["users"][0]

        assert listed["createdAt"] == registered_user["user"]["createdAt"]
        assert listed["updatedAt"] == registered_user["user"]["updatedAt"]
        assert listed["createdAt"].endswith("Z")


class TestCreateUser:
    """Tests for POST /api/users."""

    async def test_create_user(self, client):
        response = await client.post(
            "/api/users", json=admin_create_payload(role="viewer")
        )
        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "kjohnson"
        assert data["role"] == "viewer"
        assert "token" not in data
        assert "password" not in data

    async def test_created_user_can_log_in(self, client):
        await client.post("/api/users", json=admin_create_payload())

        response = await client.post(
            "/api/users/login",
            json={"email": "katherine@example.com", "password": "OrbitPass123!"},
        )
        assert response.status_code == 200

    async def test_create_defaults_to_editor(self, client):
        response = await client.post("/api/users", json=admin_create_payload())
        assert response.json()["role"] == "editor"
        assert response.json()["isActive"] is True

    async def test_create_requires_password(self, client):
        response = await client.post(
            "/api/users", json=admin_create_payload(password=None)
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Password is required"

    async def test_create_duplicate_email_hits_constraint(self, client):
        await client.post("/api/users", json=admin_create_payload())

        response = await client.post(
            "/api/users", json=admin_create_payload(username="another")
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "constraint_violation"

    async def test_create_rejects_unknown_role(self, client):
        response = await client.post(
            "/api/users", json=admin_create_payload(role="superuser")
        )
        assert response.status_code == 400


# ---------------------------------------------------------------------------
# Single user
# ---------------------------------------------------------------------------

class TestUpdateUser:
    """Tests for PUT /api/users/{id}."""

    async def test_update_profile_fields(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(
            f"/api/users/{user_id}",
            json={"firstName": "Augusta", "address": "Ockham Park"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "User updated successfully"
        assert data["user"]["firstName"] == "Augusta"
        assert data["user"]["address"] == "Ockham Park"
        assert data["user"]["lastName"] == "Lovelace"
        assert data["token"]

    async def test_update_reissues_token_with_new_claims(self, client, registered_user, settings):
        user_id = registered_user["user"]["id"]

        response = await client.put(
            f"/api/users/{user_id}",
            json={"email": "countess@example.com", "role": "admin"},
        )
        claims = jwt.decode(
            response.json()["token"], settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
        assert claims["id"] == user_id
        assert claims["email"] == "countess@example.com"
        assert claims["role"] == "admin"

    async def test_update_password_is_rehashed(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(f"/api/users/{user_id}", json={"password": "NewPass456!"})
        assert response.status_code == 200
        assert "password" not in response.json()["user"]

        login = await client.post(
            "/api/users/login",
            json={"email": "ada@example.com", "password": "NewPass456!"},
        )
        assert login.status_code == 200

    async def test_update_with_empty_password_rejected(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(f"/api/users/{user_id}", json={"password": ""})
        assert response.status_code == 400
        assert response.json()["message"] == "Password is required"

        # Old password still works
        login = await client.post(
            "/api/users/login",
            json={"email": "ada@example.com", "password": registered_user["password"]},
        )
        assert login.status_code == 200

    async def test_update_unknown_user(self, client):
        response = await client.put(f"/api/users/{uuid.uuid4()}", json={"firstName": "Ghost"})
        assert response.status_code == 404

    async def test_update_with_malformed_id(self, client):
        response = await client.put("/api/users/not-a-uuid", json={"firstName": "Ghost"})
        assert response.status_code == 400

    async def test_update_into_taken_email(self, client, registered_user):
        await client.post("/api/users", json=admin_create_payload())

        response = await client.put(
            f"/api/users/{registered_user['user']['id']}",
            json={"email": "katherine@example.com"},
        )
        assert response.status_code == 409


class TestUpdateUsername:
    """Tests for PUT /api/users/{id}/username."""

    async def test_update_username(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(
            f"/api/users/{user_id}/username", json={"username": "countess"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Username updated successfully"
        assert data["user"]["username"] == "countess"
        assert "token" not in data

    async def test_same_username_is_not_a_conflict(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(
            f"/api/users/{user_id}/username", json={"username": "ada"}
        )
        assert response.status_code == 200

    async def test_username_held_by_other_user(self, client, registered_user):
        await client.post("/api/users", json=admin_create_payload())

        response = await client.put(
            f"/api/users/{registered_user['user']['id']}/username",
            json={"username": "kjohnson"},
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Username already in use"

    async def test_username_required(self, client, registered_user):
        response = await client.put(
            f"/api/users/{registered_user['user']['id']}/username", json={}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Username is required"

    async def test_unknown_user(self, client):
        response = await client.put(
            f"/api/users/{uuid.uuid4()}/username", json={"username": "free"}
        )
        assert response.status_code == 404


class TestChangePassword:
    """Tests for PUT /api/users/{id}/password."""

    async def test_empty_new_password_rejected(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(
            f"/api/users/{user_id}/password",
            json={"currentPassword": registered_user["password"], "newPassword": ""},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Password is required"

        empty_login = await client.post(
            "/api/users/login",
            json={"email": "ada@example.com", "password": ""},
        )
        assert empty_login.status_code == 401

    async def test_change_password(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(
            f"/api/users/{user_id}/password",
            json={"currentPassword": registered_user["password"], "newPassword": "Brand-New-1"},
        )
        assert response.status_code == 200
        assert response.json() == {"message": "Password changed successfully"}

    async def test_wrong_current_password(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.put(
            f"/api/users/{user_id}/password",
            json={"currentPassword": "nope", "newPassword": "Brand-New-1"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Current password is incorrect"

        # Old password still works
        login = await client.post(
            "/api/users/login",
            json={"email": "ada@example.com", "password": registered_user["password"]},
        )
        assert login.status_code == 200

    async def test_unknown_user(self, client):
        response = await client.put(
            f"/api/users/{uuid.uuid4()}/password",
            json={"currentPassword": "a", "newPassword": "b"},
        )
        assert response.status_code == 404


class TestDeleteUser:
    """Tests for DELETE /api/users/{id}."""

    async def test_delete_user(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        response = await client.delete(f"/api/users/{user_id}")
        assert response.status_code == 200
        assert response.json() == {"message": "User deleted successfully"}

        assert (await client.get("/api/users")).json() == {"users": []}

    async def test_delete_twice_is_still_success(self, client, registered_user):
        user_id = registered_user["user"]["id"]

        await client.delete(f"/api/users/{user_id}")
        response = await client.delete(f"/api/users/{user_id}")
        assert response.status_code == 200


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

class TestCurrentUser:
    """Tests for GET /api/users/me."""

    async def test_me_with_token(self, client, registered_user):
        response = await client.get(
            "/api/users/me",
            headers={"Authorization": f"Bearer {registered_user['token']}"},
        )
        assert response.status_code == 200
        assert response.json()["id"] == registered_user["user"]["id"]
        assert "password" not in response.json()

    async def test_me_without_token(self, client):
        response = await client.get("/api/users/me")
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_me_with_forged_token(self, client):
        response = await client.get(
            "/api/users/me",
            headers={"Authorization": "Bearer totally.fake.token"},
        )
        assert response.status_code == 401

    async def test_me_after_deletion(self, client, registered_user):
        await client.delete(f"/api/users/{registered_user['user']['id']}")

        response = await client.get(
            "/api/users/me",
            headers={"Authorization": f"Bearer {registered_user['token']}"},
        )
        assert response.status_code == 404


class TestHealth:

    async def test_health(self, client, settings):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok", "version": settings.APP_VERSION}
