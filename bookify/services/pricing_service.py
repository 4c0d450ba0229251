"""Price and availability arithmetic shared by the catalog and checkout flows."""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def apply_discount(price, discount_percent) -> Decimal:
    """Price after a percentage discount, rounded to cents"""
    price = Decimal(str(price or 0))
    discount = Decimal(str(discount_percent or 0))
    final = price - (price * discount / Decimal("100"))
    return max(final, Decimal("0")).quantize(CENT, rounding=ROUND_HALF_UP)


def remaining(available: int, sold: int) -> int:
    return max((available or 0) - (sold or 0), 0)


def points_discount(points_spent: int, point_value: float, total: Decimal) -> Decimal:
    """Currency value of redeemed points, never more than the order total"""
    value = (Decimal(points_spent or 0) * Decimal(str(point_value))).quantize(CENT, rounding=ROUND_HALF_UP)
    return min(value, total)


def loyalty_points_for(total: Decimal, earn_rate: float, bonus_points: int = 0) -> int:
    """Points earned for a paid order: a share of the amount plus per-item bonuses"""
    base = int(Decimal(str(total)) * Decimal(str(earn_rate)))
    return max(base, 0) + max(bonus_points, 0)
