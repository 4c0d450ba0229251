"""
Tests for organization membership.
"""
import pytest
from httpx import AsyncClient
from unittest.mock import patch

from bookify.core.exceptions import NotFoundError
from bookify.services import organizations_service
from tests.utils.mocks import MockDBConnection, MockDBContextManager, CUSTOMER_ID

DB_TARGET = 'bookify.services.organizations_service.get_db_connection'


class TestAssignOrganizer:
    """Tests for linking users to organizations"""

    @pytest.mark.asyncio
    async def test_assign_grants_organizer_role(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM organizations WHERE id", {"id": 1})
        mock_conn.set_fetchrow_return("FROM users WHERE id", {"id": CUSTOMER_ID})

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            await organizations_service.assign_organizer(1, CUSTOMER_ID)

        assert mock_conn.calls_with("execute", "INSERT INTO user_roles") == [(CUSTOMER_ID, "Organizer")]

    @pytest.mark.asyncio
    async def test_assign_restores_removed_link(self):
        """Re-assigning someone who was removed clears the soft delete."""
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM organizations WHERE id", {"id": 1})
        mock_conn.set_fetchrow_return("FROM users WHERE id", {"id": CUSTOMER_ID})

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            await organizations_service.assign_organizer(1, CUSTOMER_ID)

        assert mock_conn.calls_with("execute", "DO UPDATE SET is_deleted = false") == [(CUSTOMER_ID, 1)]

    @pytest.mark.asyncio
    async def test_assign_missing_user(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM organizations WHERE id", {"id": 1})

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            with pytest.raises(NotFoundError):
                await organizations_service.assign_organizer(1, CUSTOMER_ID)

        assert not mock_conn.was_called_with("execute", "INSERT INTO user_roles")

    @pytest.mark.asyncio
    async def test_assign_missing_organization(self, client: AsyncClient, admin_headers):
        mock_conn = MockDBConnection()

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.post(
                "/api/organizations/9/organizers", json={"user_id": CUSTOMER_ID}, headers=admin_headers
            )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_assign_requires_admin(self, client: AsyncClient, organizer_headers):
        response = await client.post(
            "/api/organizations/1/organizers", json={"user_id": CUSTOMER_ID}, headers=organizer_headers
        )
        assert response.status_code == 403


class TestRemoveOrganizer:
    """Tests for unlinking organizers"""

    @pytest.mark.asyncio
    async def test_remove_is_soft(self, client: AsyncClient, admin_headers):
        mock_conn = MockDBConnection()

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.delete(f"/api/organizations/1/organizers/{CUSTOMER_ID}", headers=admin_headers)

        assert response.status_code == 204
        assert mock_conn.calls_with("execute", "UPDATE organization_organizers SET is_deleted = true") == [
            (1, CUSTOMER_ID)
        ]

    @pytest.mark.asyncio
    async def test_remove_unknown_link(self, client: AsyncClient, admin_headers):
        mock_conn = MockDBConnection()
        mock_conn.set_execute_return("UPDATE organization_organizers", "UPDATE 0")

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.delete(f"/api/organizations/1/organizers/{CUSTOMER_ID}", headers=admin_headers)

        assert response.status_code == 404
