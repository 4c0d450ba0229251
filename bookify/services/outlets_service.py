import logging
from typing import Optional
from bookify.database import get_db_connection
from bookify.core.exceptions import ConflictError, NotFoundError
from bookify.models.outlet import Shop, Store, ShopCreate, StoreCreate, OutletUpdate, OutletStatus
from bookify.services.events_service import ensure_event_exists
from bookify.services.organizations_service import ensure_org_access
from bookify.services.products_service import get_outlet_products

logger = logging.getLogger(__name__)


# Shops (one per event)

async def _load_shop(conn, where: str, value) -> Optional[Shop]:
    row = await conn.fetchrow(f"""
        SELECT sh.id, sh.event_id, ev.title AS event_title, sh.name, sh.description,
               sh.status, sh.logo_url, sh.created_on
        FROM shops sh
        JOIN events ev ON ev.id = sh.event_id
        WHERE {where} = $1 AND sh.is_deleted = false
    """, value)
    if not row:
        return None

    shop = Shop(**dict(row))
    shop.products = await get_outlet_products(conn, shop_id=shop.id)
    return shop


async def get_shop(shop_id: int) -> Optional[Shop]:
    async with get_db_connection(use_transaction=False) as conn:
        return await _load_shop(conn, "sh.id", shop_id)


async def get_shop_by_event(event_id: int) -> Optional[Shop]:
    async with get_db_connection(use_transaction=False) as conn:
        return await _load_shop(conn, "sh.event_id", event_id)


async def create_shop(data: ShopCreate, logo_url: Optional[str], user_id: str, is_admin: bool) -> Shop:
    async with get_db_connection() as conn:
        event = await ensure_event_exists(conn, data.event_id)
        await ensure_org_access(conn, event['org_id'], user_id, is_admin)

        existing = await conn.fetchrow(
            "SELECT id, is_deleted FROM shops WHERE event_id = $1",
            data.event_id
        )
        if existing and not existing['is_deleted']:
            raise ConflictError("This event already has a shop")

        if existing:
            shop_id = existing['id']
            await _revive(conn, "shops", shop_id, data.name, data.description, logo_url)
        else:
            shop_id = await conn.fetchval("""
                INSERT INTO shops (event_id, name, description, status, logo_url, is_deleted, created_on, updated_on)
                VALUES ($1, $2, $3, $4, $5, false, NOW(), NOW())
                RETURNING id
            """, data.event_id, data.name, data.description, OutletStatus.ACTIVE, logo_url)
            logger.info(f"Created shop {shop_id} for event {data.event_id}")
        return await _load_shop(conn, "sh.id", shop_id)


async def _shop_org_id(conn, shop_id: int) -> Optional[int]:
    row = await conn.fetchrow("""
        SELECT ev.org_id FROM shops sh
        JOIN events ev ON ev.id = sh.event_id
        WHERE sh.id = $1 AND sh.is_deleted = false
    """, shop_id)
    return row['org_id'] if row else None


async def update_shop(shop_id: int, data: OutletUpdate, logo_url: Optional[str],
                      user_id: str, is_admin: bool) -> Optional[Shop]:
    async with get_db_connection() as conn:
        org_id = await _shop_org_id(conn, shop_id)
        if org_id is None:
            return None
        await ensure_org_access(conn, org_id, user_id, is_admin)

        await _apply_update(conn, "shops", shop_id, data, logo_url)
        return await _load_shop(conn, "sh.id", shop_id)


async def delete_shop(shop_id: int) -> bool:
    return await _soft_delete(shop_id, "shops")


# Stores (one per organization)

async def _load_store(conn, where: str, value) -> Optional[Store]:
    row = await conn.fetchrow(f"""
        SELECT st.id, st.org_id, o.name AS org_name, st.name, st.description,
               st.status, st.logo_url, st.created_on
        FROM stores st
        JOIN organizations o ON o.id = st.org_id
        WHERE {where} = $1 AND st.is_deleted = false
    """, value)
    if not row:
        return None

    store = Store(**dict(row))
    store.products = await get_outlet_products(conn, store_id=store.id)
    return store


async def get_store(store_id: int) -> Optional[Store]:
    async with get_db_connection(use_transaction=False) as conn:
        return await _load_store(conn, "st.id", store_id)


async def get_store_by_org(org_id: int) -> Optional[Store]:
    async with get_db_connection(use_transaction=False) as conn:
        return await _load_store(conn, "st.org_id", org_id)


async def create_store(data: StoreCreate, logo_url: Optional[str], user_id: str, is_admin: bool) -> Store:
    async with get_db_connection() as conn:
        org = await conn.fetchrow(
            "SELECT id FROM organizations WHERE id = $1 AND is_deleted = false",
            data.org_id
        )
        if not org:
            raise NotFoundError("Organization not found")
        await ensure_org_access(conn, data.org_id, user_id, is_admin)

        existing = await conn.fetchrow(
            "SELECT id, is_deleted FROM stores WHERE org_id = $1",
            data.org_id
        )
        if existing and not existing['is_deleted']:
            raise ConflictError("This organization already has a store")

        if existing:
            store_id = existing['id']
            await _revive(conn, "stores", store_id, data.name, data.description, logo_url)
        else:
            store_id = await conn.fetchval("""
                INSERT INTO stores (org_id, name, description, status, logo_url, is_deleted, created_on, updated_on)
                VALUES ($1, $2, $3, $4, $5, false, NOW(), NOW())
                RETURNING id
            """, data.org_id, data.name, data.description, OutletStatus.ACTIVE, logo_url)
            logger.info(f"Created store {store_id} for organization {data.org_id}")
        return await _load_store(conn, "st.id", store_id)


async def update_store(store_id: int, data: OutletUpdate, logo_url: Optional[str],
                       user_id: str, is_admin: bool) -> Optional[Store]:
    async with get_db_connection() as conn:
        row = await conn.fetchrow(
            "SELECT org_id FROM stores WHERE id = $1 AND is_deleted = false",
            store_id
        )
        if not row:
            return None
        await ensure_org_access(conn, row['org_id'], user_id, is_admin)

        await _apply_update(conn, "stores", store_id, data, logo_url)
        return await _load_store(conn, "st.id", store_id)


async def delete_store(store_id: int) -> bool:
    return await _soft_delete(store_id, "stores")


# Shared

async def _apply_update(conn, table: str, outlet_id: int, data: OutletUpdate, logo_url: Optional[str]):
    update_fields = []
    params = []
    param_idx = 1

    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        if isinstance(value, str) and not value.strip():
            continue
        update_fields.append(f"{field} = ${param_idx}")
        params.append(value)
        param_idx += 1

    if logo_url:
        update_fields.append(f"logo_url = ${param_idx}")
        params.append(logo_url)
        param_idx += 1

    if update_fields:
        update_fields.append("updated_on = NOW()")
        params.append(outlet_id)
        await conn.execute(
            f"UPDATE {table} SET {', '.join(update_fields)} WHERE id = ${param_idx}",
            *params
        )
        logger.info(f"Updated {table[:-1]} {outlet_id}")


async def _revive(conn, table: str, outlet_id: int, name: str, description: Optional[str],
                  logo_url: Optional[str]):
    """Bring a soft deleted outlet back with the new details; the old logo stays unless replaced"""
    await conn.execute(f"""
        UPDATE {table}
        SET name = $1, description = $2, logo_url = COALESCE($3, logo_url), status = '{OutletStatus.ACTIVE}',
            is_deleted = false, updated_on = NOW()
        WHERE id = $4
    """, name, description, logo_url, outlet_id)
    logger.info(f"Restored {table[:-1]} {outlet_id}")


async def _soft_delete(outlet_id: int, table: str) -> bool:
    async with get_db_connection() as conn:
        result = await conn.execute(f"""
            UPDATE {table} SET is_deleted = true, status = '{OutletStatus.INACTIVE}', updated_on = NOW()
            WHERE id = $1 AND is_deleted = false
        """, outlet_id)

        deleted = result == "UPDATE 1"
        if deleted:
            logger.info(f"Soft deleted {table[:-1]}: {outlet_id}")
        return deleted
