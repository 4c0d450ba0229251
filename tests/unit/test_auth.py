"""
Tests for authentication endpoints and the auth service.
"""
import pytest
from httpx import AsyncClient
from unittest.mock import patch, AsyncMock

from bookify.core.exceptions import AuthenticationError, AuthorizationError, ConflictError
from bookify.core.security import (
    create_refresh_token, create_password_reset_token, create_email_confirmation_token,
    REFRESH_COOKIE_NAME
)
from bookify.models.user import RegisterData
from bookify.services import auth_service
from tests.utils.factories import UserFactory
from tests.utils.mocks import MockDBConnection, MockDBContextManager

DB_TARGET = 'bookify.services.auth_service.get_db_connection'


def user_conn(user: dict, roles=("User",)) -> MockDBConnection:
    mock_conn = MockDBConnection()
    mock_conn.set_fetchrow_return("FROM users WHERE", user)
    mock_conn.set_fetch_return("SELECT role FROM user_roles", [{"role": r} for r in roles])
    return mock_conn


class TestLogin:
    """Tests for POST /api/auth/login"""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient):
        """Valid credentials return an access token and set the refresh cookie."""
        user = UserFactory.create(email="alice@test.com", password="Secret123!")
        mock_conn = user_conn(user, roles=("Organizer", "User"))

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.post(
                "/api/auth/login",
                json={"email": "alice@test.com", "password": "Secret123!"}
            )

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["roles"] == ["Organizer", "User"]
        assert "password_hash" not in data["user"]
        assert REFRESH_COOKIE_NAME in response.cookies

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client: AsyncClient):
        user = UserFactory.create(password="Secret123!")
        mock_conn = user_conn(user)

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.post(
                "/api/auth/login",
                json={"email": user["email"], "password": "nope"}
            )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient):
        """Unknown email gives the same answer as a wrong password."""
        with patch(DB_TARGET, return_value=MockDBContextManager(MockDBConnection())):
            response = await client.post(
                "/api/auth/login",
                json={"email": "ghost@test.com", "password": "Secret123!"}
            )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_login_invalid_body(self, client: AsyncClient):
        response = await client.post("/api/auth/login", json={"email": "not-an-email"})
        assert response.status_code == 422


class TestAuthenticateService:
    """Tests for auth_service.authenticate rules"""

    @pytest.mark.asyncio
    async def test_banned_user(self):
        user = UserFactory.create(is_deleted=True)

        with patch(DB_TARGET, return_value=MockDBContextManager(user_conn(user))):
            with pytest.raises(AuthorizationError):
                await auth_service.authenticate(user["email"], "Secret123!")

    @pytest.mark.asyncio
    async def test_unconfirmed_email(self):
        user = UserFactory.create(email_confirmed=False)

        with patch(DB_TARGET, return_value=MockDBContextManager(user_conn(user))):
            with patch('bookify.services.auth_service.settings.require_email_confirmation', True):
                with pytest.raises(AuthenticationError) as exc:
                    await auth_service.authenticate(user["email"], "Secret123!")

        assert exc.value.details == {"email_confirmation_required": True}


class TestRegister:
    """Tests for POST /api/auth/register"""

    @pytest.mark.asyncio
    async def test_register_success(self, client: AsyncClient, mock_email_service, mock_upload_service):
        """New users get the User role, a cart and a confirmation email."""
        created = UserFactory.create(username="newbie", email="newbie@test.com", email_confirmed=False)
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("INSERT INTO users", created)

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            with patch('bookify.services.auth_service.settings.require_email_confirmation', True):
                response = await client.post(
                    "/api/auth/register",
                    data={"username": "newbie", "email": "newbie@test.com", "password": "Secret123!"}
                )

        assert response.status_code == 201
        data = response.json()
        assert data["user_id"] == created["id"]
        assert data["email_confirmation_required"] is True
        assert mock_conn.calls_with("execute", "INSERT INTO user_roles") == [(created["id"], "User")]
        assert mock_conn.was_called_with("execute", "INSERT INTO carts")
        mock_email_service.assert_called_once()
        mock_upload_service.assert_not_called()

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, client: AsyncClient, mock_upload_service):
        """Duplicates are refused before the picture reaches storage."""
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return(
            "SELECT email, username FROM users",
            {"email": "taken@test.com", "username": "someone"}
        )

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.post(
                "/api/auth/register",
                data={"username": "newbie", "email": "TAKEN@test.com", "password": "Secret123!"},
                files={"profile_picture": ("me.png", b"\x89PNG", "image/png")}
            )

        assert response.status_code == 409
        assert response.json()["message"] == "Email is already registered"
        mock_upload_service.assert_not_called()
        assert not mock_conn.was_called_with("fetchrow", "INSERT INTO users")

    @pytest.mark.asyncio
    async def test_register_short_password(self, client: AsyncClient):
        """Form validation errors are reported as 400 with field details."""
        response = await client.post(
            "/api/auth/register",
            data={"username": "newbie", "email": "newbie@test.com", "password": "short"}
        )

        assert response.status_code == 400
        errors = response.json()["details"]["errors"]
        assert errors[0]["loc"] == ["password"]

    @pytest.mark.asyncio
    async def test_register_multibyte_password_over_bcrypt_limit(self, client: AsyncClient, mock_upload_service):
        """40 characters but 80 bytes: rejected as a form error, not a hashing crash."""
        response = await client.post(
            "/api/auth/register",
            data={"username": "newbie", "email": "newbie@test.com", "password": "\u00e9" * 40}
        )

        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["loc"] == ["password"]
        mock_upload_service.assert_not_called()

    def test_multibyte_password_within_limit(self):
        data = RegisterData(username="newbie", email="newbie@test.com", password="\u00e9" * 36)
        assert len(data.password.encode("utf-8")) == 72

    @pytest.mark.asyncio
    async def test_register_service_duplicate_username(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return(
            "SELECT email, username FROM users",
            {"email": "other@test.com", "username": "Newbie"}
        )
        data = RegisterData(username="newbie", email="newbie@test.com", password="Secret123!")

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            with pytest.raises(ConflictError) as exc:
                await auth_service.register_user(data, "https://cdn.example.com/p.jpg")

        assert exc.value.message == "Username is already taken"


class TestRefreshToken:
    """Tests for GET /api/auth/refresh-token"""

    @pytest.mark.asyncio
    async def test_refresh_success(self, client: AsyncClient):
        user = UserFactory.create()
        cookie = {"Cookie": f"{REFRESH_COOKIE_NAME}={create_refresh_token(user['id'])}"}

        with patch(DB_TARGET, return_value=MockDBContextManager(user_conn(user))):
            response = await client.get("/api/auth/refresh-token", headers=cookie)

        assert response.status_code == 200
        assert response.json()["access_token"]
        assert REFRESH_COOKIE_NAME in response.cookies

    @pytest.mark.asyncio
    async def test_refresh_without_cookie(self, client: AsyncClient):
        response = await client.get("/api/auth/refresh-token")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_banned_user(self, client: AsyncClient):
        user = UserFactory.create(is_deleted=True)
        cookie = {"Cookie": f"{REFRESH_COOKIE_NAME}={create_refresh_token(user['id'])}"}

        with patch(DB_TARGET, return_value=MockDBContextManager(user_conn(user))):
            response = await client.get("/api/auth/refresh-token", headers=cookie)

        assert response.status_code == 401


class TestPasswordFlows:
    """Tests for change, forgot and reset password"""

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, client: AsyncClient, customer_headers):
        user = UserFactory.create(password="Secret123!")

        with patch(DB_TARGET, return_value=MockDBContextManager(user_conn(user))):
            response = await client.post(
                "/api/auth/change-password",
                json={"current_password": "Wrong123!", "new_password": "Another123!"},
                headers=customer_headers
            )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_change_password_success(self, client: AsyncClient, customer_headers):
        user = UserFactory.create(password="Secret123!")
        mock_conn = user_conn(user)

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.post(
                "/api/auth/change-password",
                json={"current_password": "Secret123!", "new_password": "Another123!"},
                headers=customer_headers
            )

        assert response.status_code == 200
        assert mock_conn.was_called_with("execute", "UPDATE users SET password_hash")

    @pytest.mark.asyncio
    async def test_new_password_measured_in_bytes(self, client: AsyncClient, customer_headers):
        mock_conn = MockDBConnection()

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            change = await client.post(
                "/api/auth/change-password",
                json={"current_password": "Secret123!", "new_password": "\u00e9" * 40},
                headers=customer_headers
            )
            reset = await client.post(
                "/api/auth/reset-password",
                json={"token": "anything", "new_password": "\u20ac" * 25}
            )

        assert change.status_code == 422
        assert reset.status_code == 422
        assert not mock_conn.was_called_with("execute", "UPDATE users SET password_hash")

    @pytest.mark.asyncio
    async def test_forgot_password_unknown_account(self, client: AsyncClient, mock_email_service):
        """Unknown emails get the same answer and no email."""
        with patch(DB_TARGET, return_value=MockDBContextManager(MockDBConnection())):
            response = await client.post("/api/auth/forgot-password", json={"email": "ghost@test.com"})

        assert response.status_code == 200
        assert "If the account exists" in response.json()["message"]
        mock_email_service.assert_not_called()

    @pytest.mark.asyncio
    async def test_forgot_password_sends_link(self, client: AsyncClient, mock_email_service):
        user = UserFactory.create()

        with patch(DB_TARGET, return_value=MockDBContextManager(user_conn(user))):
            response = await client.post("/api/auth/forgot-password", json={"email": user["email"]})

        assert response.status_code == 200
        mock_email_service.assert_called_once()

    @pytest.mark.asyncio
    async def test_reset_password(self, client: AsyncClient):
        user = UserFactory.create()
        token = create_password_reset_token(user["id"], user["email"])
        mock_conn = user_conn(user)

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.post(
                "/api/auth/reset-password",
                json={"token": token, "new_password": "BrandNew123!"}
            )

        assert response.status_code == 200
        assert mock_conn.was_called_with("execute", "UPDATE users SET password_hash")

    @pytest.mark.asyncio
    async def test_reset_password_rejects_confirmation_token(self, client: AsyncClient):
        user = UserFactory.create()
        token = create_email_confirmation_token(user["id"], user["email"])

        response = await client.post(
            "/api/auth/reset-password",
            json={"token": token, "new_password": "BrandNew123!"}
        )

        assert response.status_code == 400


class TestConfirmEmail:
    """Tests for POST /api/auth/confirm-email"""

    @pytest.mark.asyncio
    async def test_confirm_email_signs_in(self, client: AsyncClient):
        user = UserFactory.create(email_confirmed=False)
        confirmed = dict(user, email_confirmed=True)
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("UPDATE users SET email_confirmed", confirmed)
        mock_conn.set_fetchrow_return("FROM users WHERE id", user)
        mock_conn.set_fetch_return("SELECT role FROM user_roles", [{"role": "User"}])
        token = create_email_confirmation_token(user["id"], user["email"])

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.post(
                "/api/auth/confirm-email",
                json={"user_id": user["id"], "token": token}
            )

        assert response.status_code == 200
        assert response.json()["user"]["email_confirmed"] is True

    @pytest.mark.asyncio
    async def test_confirm_email_token_for_other_user(self, client: AsyncClient):
        user = UserFactory.create(email_confirmed=False)
        token = create_email_confirmation_token(user["id"], user["email"])

        response = await client.post(
            "/api/auth/confirm-email",
            json={"user_id": UserFactory.create()["id"], "token": token}
        )

        assert response.status_code == 400


class TestProfile:
    """Tests for GET /api/auth/me and PUT /api/auth/editprofile"""

    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, customer_headers):
        with patch('bookify.services.auth_service.get_profile', new_callable=AsyncMock) as mock_get:
            mock_get.return_value = auth_service._to_profile(UserFactory.create(username="customer"), ["User"])
            response = await client.get("/api/auth/me", headers=customer_headers)

        assert response.status_code == 200
        assert response.json()["username"] == "customer"

    @pytest.mark.asyncio
    async def test_me_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_edit_profile_ignores_blank_fields(self, client: AsyncClient, customer_headers):
        user = UserFactory.create(name="Updated")
        mock_conn = user_conn(user)
        mock_conn.set_fetchrow_return("UPDATE users SET", user)

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.put(
                "/api/auth/editprofile",
                data={"name": "Updated", "address": "  "},
                headers=customer_headers
            )

        assert response.status_code == 200
        update_args = mock_conn.calls_with("fetchrow", "UPDATE users SET")
        assert len(update_args) == 1
        assert update_args[0][0] == "Updated"
        assert len(update_args[0]) == 2
