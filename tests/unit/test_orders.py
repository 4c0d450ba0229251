"""
Tests for checkout and orders.
"""
import pytest
from decimal import Decimal
from httpx import AsyncClient
from unittest.mock import patch, AsyncMock

from bookify.core.exceptions import ValidationError, InventoryError
from bookify.services import orders_service
from tests.utils.factories import TicketFactory, ProductFactory, CartLineFactory, OrderFactory
from tests.utils.mocks import MockDBConnection, MockDBContextManager, CUSTOMER_ID

DB_TARGET = 'bookify.services.orders_service.get_db_connection'


def checkout_conn(lines, order_total: str = "250.00", redemption=None, discount: str = "0") -> MockDBConnection:
    mock_conn = MockDBConnection()
    mock_conn.set_fetchval_return("SELECT id FROM carts", 10)
    mock_conn.set_fetchval_return("COALESCE(SUM(ci.quantity), 0)", 0)
    mock_conn.set_fetchval_return("INSERT INTO orders", 500)
    mock_conn.set_fetch_return("WHERE ci.cart_id", lines)
    mock_conn.set_fetch_return("WHERE ci.order_id", lines)
    mock_conn.set_fetchrow_return("FROM redemptions", redemption)
    mock_conn.set_fetchrow_return("FROM tickets", TicketFactory.create(id=1, available=50))
    mock_conn.set_fetchrow_return("FROM products", ProductFactory.create(id=2, available=50))
    mock_conn.set_fetchrow_return(
        "FROM orders WHERE id",
        OrderFactory.create(
            id=500, user_id=CUSTOMER_ID, total_amount=order_total, discount_amount=discount,
            redemption_id=redemption["id"] if redemption else None
        )
    )
    return mock_conn


class TestCheckout:
    """Tests for orders_service.checkout"""

    @pytest.mark.asyncio
    async def test_checkout_creates_unpaid_order(self):
        lines = [
            CartLineFactory.create(item_id=1, item_type="ticket", quantity=2, unit_price="100.00"),
            CartLineFactory.create(item_id=2, item_type="product", quantity=1, unit_price="50.00"),
        ]
        mock_conn = checkout_conn(lines)

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            order = await orders_service.checkout(CUSTOMER_ID)

        insert_args = mock_conn.calls_with("fetchval", "INSERT INTO orders")
        assert insert_args == [(CUSTOMER_ID, "Unpaid", Decimal("250.00"))]
        assert mock_conn.calls_with("execute", "SET cart_id = NULL, order_id = $1") == [(500, 10)]
        assert order.id == 500
        assert order.items_count == 3
        assert order.amount_due == Decimal("250.00")
        assert order.payment is None

    @pytest.mark.asyncio
    async def test_checkout_empty_cart(self):
        mock_conn = checkout_conn([])

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            with pytest.raises(ValidationError):
                await orders_service.checkout(CUSTOMER_ID)

        assert not mock_conn.was_called_with("fetchval", "INSERT INTO orders")

    @pytest.mark.asyncio
    async def test_checkout_sold_out(self):
        """Stock is checked again at checkout."""
        lines = [CartLineFactory.create(item_id=1, item_type="ticket", quantity=3)]
        mock_conn = checkout_conn(lines)
        mock_conn.fetchrow_returns["FROM tickets"] = TicketFactory.create(id=1, available=10, sold=9)

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            with pytest.raises(InventoryError):
                await orders_service.checkout(CUSTOMER_ID)

    @pytest.mark.asyncio
    async def test_checkout_applies_oldest_redemption(self):
        """An unused redemption becomes Applied and discounts the order."""
        lines = [CartLineFactory.create(item_id=1, item_type="ticket", quantity=1, unit_price="100.00")]
        redemption = {"id": 7, "points_spent": 1500}
        mock_conn = checkout_conn(lines, order_total="100.00", redemption=redemption, discount="15.00")

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            order = await orders_service.checkout(CUSTOMER_ID)

        assert mock_conn.calls_with("execute", "UPDATE orders SET redemption_id") == [(7, Decimal("15.00"), 500)]
        assert mock_conn.calls_with("execute", "UPDATE redemptions SET status") == [("Applied", 500, 7)]
        assert order.redemption_id == 7
        assert order.amount_due == Decimal("85.00")

    @pytest.mark.asyncio
    async def test_checkout_discount_capped(self):
        lines = [CartLineFactory.create(item_id=1, item_type="ticket", quantity=1, unit_price="10.00")]
        redemption = {"id": 8, "points_spent": 5000}
        mock_conn = checkout_conn(lines, order_total="10.00", redemption=redemption, discount="10.00")

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            order = await orders_service.checkout(CUSTOMER_ID)

        assert mock_conn.calls_with("execute", "UPDATE orders SET redemption_id") == [(8, Decimal("10.00"), 500)]
        assert order.amount_due == Decimal("0")


class TestDeleteOrder:
    """Tests for orders_service.delete_order"""

    @pytest.mark.asyncio
    async def test_delete_missing(self):
        with patch(DB_TARGET, return_value=MockDBContextManager(MockDBConnection())):
            assert await orders_service.delete_order(1, CUSTOMER_ID) is False

    @pytest.mark.asyncio
    async def test_delete_delivered_refused(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM orders", {"id": 1, "status": "Delivered", "redemption_id": None})

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            with pytest.raises(ValidationError):
                await orders_service.delete_order(1, CUSTOMER_ID)

        assert not mock_conn.was_called_with("execute", "DELETE")

    @pytest.mark.asyncio
    async def test_delete_releases_redemption(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM orders", {"id": 1, "status": "UnderReview", "redemption_id": 7})

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            assert await orders_service.delete_order(1, CUSTOMER_ID) is True

        assert mock_conn.calls_with("execute", "UPDATE redemptions") == [("Unused", 7)]
        assert mock_conn.was_called_with("execute", "DELETE FROM payments")
        assert mock_conn.was_called_with("execute", "DELETE FROM cart_items")
        assert mock_conn.was_called_with("execute", "DELETE FROM orders")


class TestOrderEndpoints:
    """Tests for /api/orders routes"""

    @pytest.mark.asyncio
    async def test_get_other_users_order(self, client: AsyncClient, customer_headers):
        """Orders of other users are reported as missing."""
        with patch('bookify.services.orders_service.get_order', new_callable=AsyncMock) as mock_get:
            mock_get.return_value = None
            response = await client.get("/api/orders/42", headers=customer_headers)

        assert response.status_code == 404
        mock_get.assert_called_once_with(42, CUSTOMER_ID)

    @pytest.mark.asyncio
    async def test_delete_order(self, client: AsyncClient, customer_headers):
        with patch('bookify.services.orders_service.delete_order', new_callable=AsyncMock) as mock_delete:
            mock_delete.return_value = True
            response = await client.delete("/api/orders/42", headers=customer_headers)

        assert response.status_code == 204

    @pytest.mark.asyncio
    async def test_list_orders_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/orders")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_orders(self, client: AsyncClient, customer_headers):
        mock_conn = MockDBConnection()
        mock_conn.set_fetch_return("FROM orders o", [
            dict(OrderFactory.create(id=3, total_amount="120.00", discount_amount="20.00"),
                 items_count=2, payment_status="Pending")
        ])

        with patch(DB_TARGET, return_value=MockDBContextManager(mock_conn)):
            response = await client.get("/api/orders?limit=5", headers=customer_headers)

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data[0]["amount_due"]) == Decimal("100.00")
        assert mock_conn.calls_with("fetch", "FROM orders o") == [(CUSTOMER_ID, 5, 0)]
