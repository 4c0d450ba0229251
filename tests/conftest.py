"""
Global pytest configuration and shared fixtures.
"""
import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from unittest.mock import AsyncMock, patch
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Cheap hashing for tests; must be set before settings load
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from bookify.main import app
from bookify.core.roles import Role
from tests.utils.mocks import auth_headers, CUSTOMER_ID, ORGANIZER_ID, ADMIN_ID


# ============================================================================
# Async HTTP client
# ============================================================================

@pytest.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the ASGI app."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ============================================================================
# Test users and auth headers
# ============================================================================

@pytest.fixture
def customer_headers():
    """Headers of a regular customer (User role)."""
    return auth_headers(CUSTOMER_ID, [Role.USER.value], "customer@test.com", "customer")


@pytest.fixture
def organizer_headers():
    return auth_headers(ORGANIZER_ID, [Role.USER.value, Role.ORGANIZER.value], "organizer@test.com", "organizer")


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, [Role.ADMIN.value], "admin@test.com", "admin")


# ============================================================================
# External services
# ============================================================================

@pytest.fixture
def mock_email_service():
    """Mock the SES email sender."""
    with patch('bookify.services.email_service.send_email', new_callable=AsyncMock) as mock:
        mock.return_value = True
        yield mock


@pytest.fixture
def mock_upload_service():
    """Mock the storage upload."""
    with patch('bookify.services.upload_service.upload_image', new_callable=AsyncMock) as mock:
        mock.return_value = "https://cdn.example.com/images/test.jpg"
        yield mock
