import logging
from typing import List
from bookify.database import get_db_connection
from bookify.models.analytics import (
    OrgEarnings, EventAttendance, UserActivity, UserPayments, TopEvent, UserLoyalty,
    RefundableTickets, OrgRevenueBreakdown, UserEngagement, DashboardStats
)

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_DAYS = 30

# Order lines that count as revenue
DELIVERED_LINES_CTE = """
    delivered_lines AS (
        SELECT ci.item_type, ci.item_id, ci.quantity, ci.unit_price, o.user_id
        FROM cart_items ci
        JOIN orders o ON o.id = ci.order_id
        WHERE o.status = 'Delivered' AND ci.is_deleted = false
    )
"""


def engagement_score(events_attended: int, products_purchased: int, reviews_written: int, loyalty_points: int) -> float:
    return round(events_attended * 3 + products_purchased * 1 + reviews_written * 2 + loyalty_points / 100, 2)


async def get_org_revenue_breakdown() -> List[OrgRevenueBreakdown]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(f"""
            WITH {DELIVERED_LINES_CTE},
            ticket_rev AS (
                SELECT ev.org_id, SUM(l.quantity * l.unit_price) AS revenue
                FROM delivered_lines l
                JOIN tickets t ON l.item_type = 'ticket' AND t.id = l.item_id
                JOIN events ev ON ev.id = t.event_id
                GROUP BY ev.org_id
            ),
            shop_rev AS (
                SELECT ev.org_id, SUM(l.quantity * l.unit_price) AS revenue
                FROM delivered_lines l
                JOIN products p ON l.item_type = 'product' AND p.id = l.item_id
                JOIN shops sh ON sh.id = p.shop_id
                JOIN events ev ON ev.id = sh.event_id
                GROUP BY ev.org_id
            ),
            store_rev AS (
                SELECT st.org_id, SUM(l.quantity * l.unit_price) AS revenue
                FROM delivered_lines l
                JOIN products p ON l.item_type = 'product' AND p.id = l.item_id
                JOIN stores st ON st.id = p.store_id
                GROUP BY st.org_id
            )
            SELECT
                o.id AS org_id,
                o.name AS org_name,
                COALESCE(tr.revenue, 0) AS ticket_revenue,
                COALESCE(sr.revenue, 0) AS shop_revenue,
                COALESCE(sto.revenue, 0) AS store_revenue,
                COALESCE(tr.revenue, 0) + COALESCE(sr.revenue, 0) + COALESCE(sto.revenue, 0) AS total_revenue
            FROM organizations o
            LEFT JOIN ticket_rev tr ON tr.org_id = o.id
            LEFT JOIN shop_rev sr ON sr.org_id = o.id
            LEFT JOIN store_rev sto ON sto.org_id = o.id
            WHERE o.is_deleted = false
            ORDER BY total_revenue DESC, o.name
        """)
        return [OrgRevenueBreakdown(**dict(row)) for row in rows]


async def get_org_earnings() -> List[OrgEarnings]:
    breakdown = await get_org_revenue_breakdown()
    return [
        OrgEarnings(org_id=row.org_id, org_name=row.org_name, total_earnings=row.total_revenue)
        for row in breakdown
    ]


async def get_event_attendance() -> List[EventAttendance]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT e.id AS event_id, e.title AS event_title,
                   COALESCE(SUM(t.quantity_sold), 0) AS tickets_sold
            FROM events e
            LEFT JOIN tickets t ON t.event_id = e.id AND t.is_deleted = false
            WHERE e.is_deleted = false
            GROUP BY e.id, e.title
            ORDER BY tickets_sold DESC, e.title
        """)
        return [EventAttendance(**dict(row)) for row in rows]


async def get_user_activity() -> UserActivity:
    """Active users placed an order within the last 30 days"""
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow(f"""
            SELECT
                (SELECT COUNT(*) FROM users WHERE is_deleted = false) AS total_users,
                (SELECT COUNT(DISTINCT o.user_id) FROM orders o
                 JOIN users u ON u.id = o.user_id AND u.is_deleted = false
                 WHERE o.order_date >= NOW() - INTERVAL '{ACTIVE_WINDOW_DAYS} days') AS active_users
        """)
        return UserActivity(**dict(row))


async def get_user_payments() -> List[UserPayments]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT u.id AS user_id, u.username AS user_name,
                   SUM(GREATEST(o.total_amount - o.discount_amount, 0)) AS total_paid
            FROM users u
            JOIN orders o ON o.user_id = u.id AND o.status = 'Delivered'
            GROUP BY u.id, u.username
            ORDER BY total_paid DESC
        """)
        return [UserPayments(**dict(row)) for row in rows]


async def get_top_events(limit: int = 10) -> List[TopEvent]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(f"""
            WITH {DELIVERED_LINES_CTE}
            SELECT ev.id AS event_id, ev.title AS event_title,
                   SUM(l.quantity * l.unit_price) AS revenue
            FROM delivered_lines l
            JOIN tickets t ON l.item_type = 'ticket' AND t.id = l.item_id
            JOIN events ev ON ev.id = t.event_id
            WHERE ev.is_deleted = false
            GROUP BY ev.id, ev.title
            ORDER BY revenue DESC
            LIMIT $1
        """, limit)
        return [TopEvent(**dict(row)) for row in rows]


async def get_user_loyalty() -> List[UserLoyalty]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT u.id AS user_id, u.username AS user_name,
                   COUNT(o.id) AS total_orders,
                   COALESCE(SUM(GREATEST(o.total_amount - o.discount_amount, 0))
                            FILTER (WHERE o.status = 'Delivered'), 0) AS total_spent,
                   u.loyalty_points
            FROM users u
            LEFT JOIN orders o ON o.user_id = u.id
            WHERE u.is_deleted = false
            GROUP BY u.id, u.username, u.loyalty_points
            ORDER BY u.loyalty_points DESC, total_spent DESC
        """)
        return [UserLoyalty(**dict(row)) for row in rows]


async def get_refundable_tickets() -> List[RefundableTickets]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch("""
            SELECT e.id AS event_id, e.title AS event_title,
                   SUM(t.quantity_sold) AS refundable_tickets
            FROM tickets t
            JOIN events e ON e.id = t.event_id
            WHERE t.is_refundable = true AND t.is_deleted = false AND e.is_deleted = false
            GROUP BY e.id, e.title
            HAVING SUM(t.quantity_sold) > 0
            ORDER BY refundable_tickets DESC
        """)
        return [RefundableTickets(**dict(row)) for row in rows]


async def get_user_engagement() -> List[UserEngagement]:
    async with get_db_connection(use_transaction=False) as conn:
        rows = await conn.fetch(f"""
            WITH {DELIVERED_LINES_CTE}
            SELECT
                u.id AS user_id,
                u.username AS user_name,
                (SELECT COUNT(DISTINCT t.event_id) FROM delivered_lines l
                 JOIN tickets t ON l.item_type = 'ticket' AND t.id = l.item_id
                 WHERE l.user_id = u.id) AS events_attended,
                (SELECT COALESCE(SUM(l.quantity), 0) FROM delivered_lines l
                 WHERE l.item_type = 'product' AND l.user_id = u.id) AS products_purchased,
                (SELECT COUNT(*) FROM reviews r
                 WHERE r.user_id = u.id AND r.is_deleted = false) AS reviews_written,
                u.loyalty_points
            FROM users u
            WHERE u.is_deleted = false
        """)

    results = []
    for row in rows:
        data = dict(row)
        data['engagement_score'] = engagement_score(
            data['events_attended'], data['products_purchased'],
            data['reviews_written'], data['loyalty_points']
        )
        results.append(UserEngagement(**data))

    results.sort(key=lambda r: r.engagement_score, reverse=True)
    return results


async def get_dashboard_stats() -> DashboardStats:
    async with get_db_connection(use_transaction=False) as conn:
        row = await conn.fetchrow("""
            SELECT
                (SELECT COUNT(*) FROM organizations WHERE is_deleted = false) AS total_organizations,
                (SELECT COUNT(*) FROM user_roles WHERE role = 'Admin') AS total_admins,
                (SELECT COUNT(*) FROM user_roles WHERE role = 'Organizer') AS total_organizers,
                (SELECT COUNT(*) FROM users WHERE is_deleted = false) AS total_users,
                (SELECT COUNT(*) FROM events WHERE is_deleted = false) AS total_events,
                (SELECT COALESCE(SUM(quantity_sold), 0) FROM tickets) AS total_tickets_sold,
                (SELECT COALESCE(SUM(quantity_sold), 0) FROM products) AS total_products_sold
        """)
        stats = dict(row)

        top_product = await conn.fetchrow("""
            SELECT id, name, quantity_sold FROM products
            WHERE is_deleted = false AND quantity_sold > 0
            ORDER BY quantity_sold DESC LIMIT 1
        """)
        top_event = await conn.fetchrow("""
            SELECT e.id, e.title, SUM(t.quantity_sold) AS tickets_sold
            FROM events e JOIN tickets t ON t.event_id = e.id
            WHERE e.is_deleted = false
            GROUP BY e.id, e.title
            HAVING SUM(t.quantity_sold) > 0
            ORDER BY tickets_sold DESC LIMIT 1
        """)

    if top_product:
        stats.update(
            top_product_id=top_product['id'],
            top_product_name=top_product['name'],
            top_product_sold=top_product['quantity_sold']
        )
    if top_event:
        stats.update(
            top_event_id=top_event['id'],
            top_event_title=top_event['title'],
            top_event_tickets_sold=top_event['tickets_sold']
        )
    return DashboardStats(**stats)
