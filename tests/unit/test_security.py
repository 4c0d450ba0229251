"""
Tests for tokens, password hashing and role helpers.
"""
import pytest
from datetime import timedelta

from bookify.core import roles
from bookify.core.roles import Role
from bookify.core.security import (
    hash_password, verify_password, create_access_token, create_refresh_token,
    create_purpose_token, decode_access_token, decode_refresh_token, decode_purpose_token,
    PASSWORD_RESET_PURPOSE, EMAIL_CONFIRMATION_PURPOSE
)

USER_ID = "0b6f2e1c-3f7a-4c1e-9d8e-6a2b7c9d0e11"


class TestPasswords:
    """Tests for bcrypt hashing"""

    def test_hash_and_verify(self):
        hashed = hash_password("Secret123!")

        assert hashed != "Secret123!"
        assert verify_password("Secret123!", hashed)
        assert not verify_password("wrong", hashed)

    def test_verify_without_hash(self):
        assert not verify_password("Secret123!", None)

    def test_verify_malformed_hash(self):
        assert not verify_password("Secret123!", "not-a-bcrypt-hash")


class TestTokens:
    """Tests for access, refresh and purpose tokens"""

    def test_access_token_round_trip(self):
        token = create_access_token(USER_ID, "a@test.com", "alice", ["User", "Organizer"])
        payload = decode_access_token(token)

        assert payload["sub"] == USER_ID
        assert payload["name"] == "alice"
        assert payload["roles"] == ["User", "Organizer"]

    def test_refresh_token_is_not_an_access_token(self):
        refresh = create_refresh_token(USER_ID)

        assert decode_access_token(refresh) is None
        assert decode_refresh_token(refresh)["sub"] == USER_ID

    def test_access_token_is_not_a_refresh_token(self):
        access = create_access_token(USER_ID, "a@test.com", "alice", ["User"])
        assert decode_refresh_token(access) is None

    def test_garbage_token(self):
        assert decode_access_token("not.a.jwt") is None

    def test_expired_purpose_token(self):
        token = create_purpose_token(USER_ID, "a@test.com", PASSWORD_RESET_PURPOSE, timedelta(seconds=-1))
        assert decode_purpose_token(token, PASSWORD_RESET_PURPOSE) is None

    def test_purpose_tokens_do_not_cross(self):
        """A confirmation token cannot reset a password."""
        token = create_purpose_token(USER_ID, "a@test.com", EMAIL_CONFIRMATION_PURPOSE, timedelta(hours=1))

        assert decode_purpose_token(token, PASSWORD_RESET_PURPOSE) is None
        assert decode_purpose_token(token, EMAIL_CONFIRMATION_PURPOSE)["sub"] == USER_ID


class TestRoles:
    """Tests for role normalization and permission helpers"""

    def test_normalize_any_case(self):
        assert roles.normalize_role("admin") == "Admin"
        assert roles.normalize_role(" ORGANIZER ") == "Organizer"

    def test_normalize_unknown(self):
        with pytest.raises(ValueError):
            roles.normalize_role("superuser")

    def test_permissions(self):
        assert roles.can_add_to_cart(["User"])
        assert not roles.can_add_to_cart(["Admin"])
        assert roles.can_manage_events(["organizer"])
        assert roles.can_manage_events(["Admin"])
        assert not roles.can_manage_events(["User"])
        assert roles.can_manage_users(["admin"])
        assert not roles.can_manage_users(["User", "Organizer"])

    def test_has_any_role(self):
        assert roles.has_any_role(["User", "Organizer"], Role.ADMIN.value, Role.ORGANIZER.value)
        assert not roles.has_any_role(["User"], Role.ADMIN.value, Role.ORGANIZER.value)


class TestAuthGuards:
    """Tests for authentication and role dependencies on real routes"""

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/cart")

        assert response.status_code == 401
        assert response.json()["error"] is True

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/api/cart", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_wrong_role(self, client, organizer_headers):
        """Organizers cannot read admin analytics."""
        response = await client.get("/api/analytics/dashboard-stats", headers=organizer_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_cannot_use_cart(self, client, admin_headers):
        """Only the User role may shop, even for admins."""
        response = await client.get("/api/cart", headers=admin_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Requires role: User"

    @pytest.mark.asyncio
    async def test_customer_cannot_manage_events(self, client, customer_headers):
        response = await client.post("/api/tickets", json={
            "event_id": 3, "ticket_type": "VIP", "quantity_available": 10
        }, headers=customer_headers)

        assert response.status_code == 403
        assert response.json()["message"] == "Requires role: Organizer or Admin"
