"""
Tests for categories, events and products endpoints.
"""
import pytest
from httpx import AsyncClient
from unittest.mock import patch, AsyncMock
from datetime import datetime

from tests.utils.factories import EventFactory
from tests.utils.mocks import MockDBConnection, MockDBContextManager, ORGANIZER_ID


class TestCategories:
    """Tests for /api/categories"""

    @pytest.mark.asyncio
    async def test_list_is_public(self, client: AsyncClient):
        mock_conn = MockDBConnection()
        mock_conn.set_fetch_return("FROM categories", [
            {"id": 1, "name": "Concerts", "created_on": datetime.now(), "updated_on": None}
        ])

        with patch('bookify.services.categories_service.get_db_connection', return_value=MockDBContextManager(mock_conn)):
            response = await client.get("/api/categories")

        assert response.status_code == 200
        assert response.json()[0]["name"] == "Concerts"

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, client: AsyncClient, organizer_headers):
        response = await client.post("/api/categories", json={"name": "Theatre"}, headers=organizer_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_duplicate_name(self, client: AsyncClient, admin_headers):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("WHERE LOWER(name) = LOWER($1)", {"id": 4})

        with patch('bookify.services.categories_service.get_db_connection', return_value=MockDBContextManager(mock_conn)):
            response = await client.post("/api/categories", json={"name": " theatre "}, headers=admin_headers)

        assert response.status_code == 409
        assert mock_conn.calls_with("fetchrow", "LOWER(name)") == [("theatre", None)]

    @pytest.mark.asyncio
    async def test_delete_missing(self, client: AsyncClient, admin_headers):
        mock_conn = MockDBConnection()
        mock_conn.set_execute_return("UPDATE categories", "UPDATE 0")

        with patch('bookify.services.categories_service.get_db_connection', return_value=MockDBContextManager(mock_conn)):
            response = await client.delete("/api/categories/9", headers=admin_headers)

        assert response.status_code == 404


class TestEvents:
    """Tests for /api/events"""

    event_form = {
        "org_id": "1",
        "category_id": "2",
        "title": "Summer Fest",
        "event_date": "2030-07-01T20:00:00",
        "capacity": "5000",
    }

    @pytest.mark.asyncio
    async def test_list_events_filters(self, client: AsyncClient):
        with patch('bookify.services.events_service.get_events', new_callable=AsyncMock) as mock_list:
            mock_list.return_value = [EventFactory.create(id=1)]
            response = await client.get("/api/events?status=Active&search=fest&upcoming=true")

        assert response.status_code == 200
        kwargs = mock_list.call_args.kwargs
        assert kwargs["status"] == "Active"
        assert kwargs["search"] == "fest"
        assert kwargs["upcoming"] is True

    @pytest.mark.asyncio
    async def test_get_missing_event(self, client: AsyncClient):
        with patch('bookify.services.events_service.get_event_by_id', new_callable=AsyncMock) as mock_get:
            mock_get.return_value = None
            response = await client.get("/api/events/99")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_create_as_customer(self, client: AsyncClient, customer_headers):
        response = await client.post("/api/events", data=self.event_form, headers=customer_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_for_foreign_organization(self, client: AsyncClient, organizer_headers, mock_upload_service):
        """Organizers can only create events for their own organizations."""
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM organizations", {"id": 1})
        mock_conn.set_fetchrow_return("FROM categories", {"id": 2})

        with patch('bookify.services.events_service.get_db_connection', return_value=MockDBContextManager(mock_conn)):
            response = await client.post("/api/events", data=self.event_form, headers=organizer_headers)

        assert response.status_code == 403
        assert not mock_conn.was_called_with("fetchval", "INSERT INTO events")

    @pytest.mark.asyncio
    async def test_create_event(self, client: AsyncClient, organizer_headers, mock_upload_service):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM organizations", {"id": 1})
        mock_conn.set_fetchrow_return("FROM categories", {"id": 2})
        mock_conn.set_fetchrow_return("FROM organization_organizers", {"?column?": 1})
        mock_conn.set_fetchval_return("INSERT INTO events", 55)

        with patch('bookify.services.events_service.get_db_connection', return_value=MockDBContextManager(mock_conn)):
            response = await client.post("/api/events", data=self.event_form, headers=organizer_headers)

        assert response.status_code == 201
        assert response.json()["id"] == 55
        membership = mock_conn.calls_with("fetchrow", "FROM organization_organizers")
        assert membership == [(1, ORGANIZER_ID)]
        insert_args = mock_conn.calls_with("fetchval", "INSERT INTO events")[0]
        assert insert_args[8] == 5000
        assert insert_args[10] == "Active"

    @pytest.mark.asyncio
    async def test_create_with_bad_date(self, client: AsyncClient, organizer_headers):
        form = dict(self.event_form, event_date="next friday")
        response = await client.post("/api/events", data=form, headers=organizer_headers)

        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["loc"] == ["event_date"]

    @pytest.mark.asyncio
    async def test_delete_requires_admin(self, client: AsyncClient, organizer_headers):
        response = await client.delete("/api/events/1", headers=organizer_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_delete(self, client: AsyncClient, admin_headers):
        with patch('bookify.services.events_service.delete_event', new_callable=AsyncMock) as mock_delete:
            mock_delete.return_value = True
            response = await client.delete("/api/events/1", headers=admin_headers)

        assert response.status_code == 204


class TestProducts:
    """Tests for /api/products"""

    @pytest.mark.asyncio
    async def test_product_needs_one_outlet(self, client: AsyncClient, organizer_headers):
        response = await client.post(
            "/api/products",
            data={"name": "Hoodie", "price": "40", "stock_quantity": "10", "shop_id": "1", "store_id": "2"},
            headers=organizer_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_product(self, client: AsyncClient, organizer_headers, mock_upload_service):
        with patch('bookify.services.products_service.create_product', new_callable=AsyncMock) as mock_create:
            mock_create.return_value = {
                "id": 7, "name": "Hoodie", "price": "40.00", "final_price": "40.00", "remaining": 10, "stock_quantity": 10,
                "quantity_sold": 0, "limit_per_user": 2, "discount": "0",
                "points_earned_per_unit": 0, "store_id": 2
            }
            response = await client.post(
                "/api/products",
                data={"name": "Hoodie", "price": "40", "stock_quantity": "10", "store_id": "2", "limit_per_user": "2", "discount": " "},
                headers=organizer_headers
            )

        assert response.status_code == 201
        data, image_url, user_id, is_admin = mock_create.call_args.args
        assert data.store_id == 2
        assert data.limit_per_user == 2
        assert user_id == ORGANIZER_ID
        assert is_admin is False

    @pytest.mark.asyncio
    async def test_list_products_in_stock(self, client: AsyncClient):
        with patch('bookify.services.products_service.get_products', new_callable=AsyncMock) as mock_list:
            mock_list.return_value = []
            response = await client.get("/api/products?shop_id=3&in_stock=true")

        assert response.status_code == 200
        mock_list.assert_called_once_with(3, None, None, True, 50, 0)
