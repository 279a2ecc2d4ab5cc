"""Integration tests for sign-in, sessions, registration and passwords."""

from __future__ import annotations

from carehome.models import Role
from carehome.tests.factories import TEST_PASSWORD
from carehome.tests.integration.conftest import bearer


async def test_sign_in_returns_token_and_cookie(client, people):
    response = await client.post(
        "/api/auth/sign-in",
        json={"email": people.staff.profile.email, "password": TEST_PASSWORD},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["profile"]["role"] == "STAFF"
    assert "carehome-session" in response.headers["set-cookie"]

    me = await client.get("/api/auth/me", headers=bearer(data["access_token"]))
    assert me.json()["id"] == str(people.staff.id)


async def test_sign_in_wrong_password(client, people):
    response = await client.post(
        "/api/auth/sign-in",
        json={"email": people.staff.profile.email, "password": "not-the-password"},
    )
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "INVALID_CREDENTIALS"


async def test_sign_in_unknown_email(client, people):
    response = await client.post(
        "/api/auth/sign-in",
        json={"email": "nobody@carehome.example.com", "password": TEST_PASSWORD},
    )
    assert response.status_code == 401


async def test_me_without_token(client):
    response = await client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


async def test_me_reports_family_links(client, people):
    response = await client.get("/api/auth/me", headers=people.family.headers)
    assert response.json()["linked_resident_profile_ids"] == [str(people.resident.id)]


async def test_expired_session_rejected(client, people, seed, db_session):
    token = await seed.token(people.staff.profile, expired=True)
    await db_session.commit()

    response = await client.get("/api/auth/me", headers=bearer(token))

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "SESSION_EXPIRED"


async def test_sign_out_revokes_session(client, people):
    response = await client.post("/api/auth/sign-out", headers=people.family.headers)
    assert response.status_code == 204

    response = await client.get("/api/auth/me", headers=people.family.headers)
    assert response.status_code == 401


class TestRegister:
    async def test_family_self_registration(self, client):
        response = await client.post(
            "/api/auth/register",
            json={
                "email": "New.Family@carehome.example.com",
                "password": "long-enough-pw",
                "full_name": "New Family",
            },
        )
        assert response.status_code == 201
        assert response.json()["role"] == "FAMILY"
        assert response.json()["email"] == "new.family@carehome.example.com"

        sign_in = await client.post(
            "/api/auth/sign-in",
            json={"email": "new.family@carehome.example.com", "password": "long-enough-pw"},
        )
        assert sign_in.status_code == 200

    async def test_admin_role_cannot_be_self_assigned(self, client):
        response = await client.post(
            "/api/auth/register",
            json={
                "email": "sneaky@carehome.example.com",
                "password": "long-enough-pw",
                "full_name": "Sneaky",
                "role": Role.ADMIN.value,
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "role"

    async def test_duplicate_email(self, client, people):
        response = await client.post(
            "/api/auth/register",
            json={
                "email": people.family.profile.email,
                "password": "long-enough-pw",
                "full_name": "Copy",
            },
        )
        assert response.status_code == 409

    async def test_short_password_is_validation_error(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "short@carehome.example.com", "password": "short", "full_name": "S"},
        )
        assert response.status_code == 422
        errors = response.json()["error"]["details"]["errors"]
        password_error = next(e for e in errors if e["field"] == "body.password")
        assert password_error["value"] is None


class TestInactiveProfiles:
    async def test_deactivated_profile_cannot_sign_in(self, client, people):
        response = await client.post(
            f"/api/profiles/{people.family.id}/deactivate", headers=people.admin.headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "inactive"

        sign_in = await client.post(
            "/api/auth/sign-in",
            json={"email": people.family.profile.email, "password": TEST_PASSWORD},
        )
        assert sign_in.status_code == 403
        assert sign_in.json()["error"]["code"] == "PROFILE_INACTIVE"

        # Deactivation also revoked the open session
        existing = await client.get("/api/auth/me", headers=people.family.headers)
        assert existing.status_code == 401


class TestPasswordChange:
    async def test_change_own_password_revokes_sessions(self, client, people):
        response = await client.post(
            f"/api/auth/password/{people.staff.id}",
            json={"new_password": "a-brand-new-password"},
            headers=people.staff.headers,
        )
        assert response.status_code == 200
        assert response.json()["revoked_sessions"] == 1

        sign_in = await client.post(
            "/api/auth/sign-in",
            json={"email": people.staff.profile.email, "password": "a-brand-new-password"},
        )
        assert sign_in.status_code == 200

    async def test_staff_cannot_change_other_password(self, client, people):
        response = await client.post(
            f"/api/auth/password/{people.admin.id}",
            json={"new_password": "a-brand-new-password"},
            headers=people.staff.headers,
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "POLICY_DENIED"
