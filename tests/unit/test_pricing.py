"""
Tests for price arithmetic and availability guards.
"""
import pytest
from decimal import Decimal

from bookify.core.exceptions import InventoryError, NotFoundError
from bookify.models.cart import ItemType
from bookify.services import pricing_service, inventory_service
from tests.utils.factories import TicketFactory, ProductFactory
from tests.utils.mocks import MockDBConnection


class TestApplyDiscount:
    """Tests for pricing_service.apply_discount"""

    def test_percentage_discount(self):
        assert pricing_service.apply_discount(100, 10) == Decimal("90.00")

    def test_no_discount(self):
        assert pricing_service.apply_discount(Decimal("49.99"), None) == Decimal("49.99")

    def test_rounds_to_cents(self):
        """33.33% off 10.00 rounds half up."""
        assert pricing_service.apply_discount("10.00", "33.33") == Decimal("6.67")

    def test_full_discount_is_free(self):
        assert pricing_service.apply_discount(80, 100) == Decimal("0.00")


class TestPointsAndRemaining:
    """Tests for remaining stock and loyalty arithmetic"""

    def test_remaining_never_negative(self):
        assert pricing_service.remaining(10, 4) == 6
        assert pricing_service.remaining(3, 5) == 0

    def test_points_discount_value(self):
        assert pricing_service.points_discount(500, 0.01, Decimal("200")) == Decimal("5.00")

    def test_points_discount_capped_at_total(self):
        """Redeemed points never pay more than the order total."""
        assert pricing_service.points_discount(50000, 0.01, Decimal("120.00")) == Decimal("120.00")

    def test_loyalty_points_with_bonus(self):
        assert pricing_service.loyalty_points_for(Decimal("250.00"), 0.10, 15) == 40

    def test_loyalty_points_truncate(self):
        assert pricing_service.loyalty_points_for(Decimal("19.99"), 0.10) == 1


class TestEnsureAvailable:
    """Tests for inventory_service.ensure_available"""

    def test_within_stock(self):
        ticket = TicketFactory.create(available=10, sold=5)
        inventory_service.ensure_available(ticket, 5)

    def test_exceeds_stock(self):
        ticket = TicketFactory.create(id=7, available=10, sold=8)

        with pytest.raises(InventoryError) as exc:
            inventory_service.ensure_available(ticket, 3)

        assert exc.value.status_code == 409
        assert exc.value.details["remaining"] == 2
        assert exc.value.details["item_id"] == 7

    def test_per_user_limit_counts_held_quantity(self):
        """Units already in the user's orders count towards the limit."""
        product = ProductFactory.create(available=100, limit_per_user=4)

        inventory_service.ensure_available(product, 2, already_held=2)
        with pytest.raises(InventoryError) as exc:
            inventory_service.ensure_available(product, 3, already_held=2)

        assert exc.value.details["limit_per_user"] == 4
        assert exc.value.details["already_held"] == 2

    def test_zero_limit_means_unlimited(self):
        product = ProductFactory.create(available=1000, limit_per_user=0)
        inventory_service.ensure_available(product, 500, already_held=400)

    def test_unit_price_uses_discount(self):
        ticket = TicketFactory.create(price="250.00", discount="20")
        assert inventory_service.unit_price(ticket) == Decimal("200.00")


class TestLoadItem:
    """Tests for inventory_service.load_item and record_sale"""

    @pytest.mark.asyncio
    async def test_missing_ticket(self):
        mock_conn = MockDBConnection()

        with pytest.raises(NotFoundError):
            await inventory_service.load_item(mock_conn, ItemType.TICKET, 99)

    @pytest.mark.asyncio
    async def test_product_query(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM products", ProductFactory.create(id=3))

        item = await inventory_service.load_item(mock_conn, "product", 3)

        assert item["id"] == 3
        assert not mock_conn.was_called_with("fetchrow", "FOR UPDATE")

    @pytest.mark.asyncio
    async def test_record_sale_locks_and_increments(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM tickets", TicketFactory.create(id=5, available=10, sold=2))

        await inventory_service.record_sale(mock_conn, ItemType.TICKET, 5, 3)

        assert mock_conn.was_called_with("fetchrow", "FOR UPDATE")
        assert mock_conn.calls_with("execute", "UPDATE tickets SET quantity_sold") == [(3, 5)]

    @pytest.mark.asyncio
    async def test_record_sale_rejects_oversell(self):
        mock_conn = MockDBConnection()
        mock_conn.set_fetchrow_return("FROM products", ProductFactory.create(id=5, available=4, sold=4))

        with pytest.raises(InventoryError):
            await inventory_service.record_sale(mock_conn, ItemType.PRODUCT, 5, 1)

        assert not mock_conn.was_called_with("execute", "UPDATE products")
