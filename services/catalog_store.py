# services/catalog_store.py
from typing import Any, Dict, List, Optional

import asyncpg

from services.errors import CatalogPersistenceError

# columns a caller may write on products; never interpolate anything else
PRODUCT_FIELDS = (
    "name",
    "description",
    "price",
    "sale_price",
    "image_url",
    "brand",
    "external_link",
    "category_id",
    "stock",
)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _writable(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - set(PRODUCT_FIELDS)
    if unknown:
        raise ValueError(f"Unknown product fields: {sorted(unknown)}")
    return dict(fields)


class CatalogStore:
    """
    Thin asyncpg wrapper used by the feed importer.
    Every driver/connection error comes out as CatalogPersistenceError.
    """

    def __init__(self, pool: Any):
        self.pool = pool

    async def list_categories(self) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("SELECT id, name FROM categories")
        except _DB_ERRORS as e:
            raise CatalogPersistenceError(str(e)) from e
        return [dict(r) for r in rows]

    async def find_product_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        # name is not unique; the oldest row wins
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    """
                    SELECT id, name
                    FROM products
                    WHERE name = $1
                    ORDER BY id
                    LIMIT 1
                    """,
                    name,
                )
        except _DB_ERRORS as e:
            raise CatalogPersistenceError(str(e)) from e
        return dict(row) if row else None

    async def update_product(self, product_id: int, fields: Dict[str, Any]) -> None:
        payload = _writable(fields)
        if not payload:
            return
        cols = list(payload)
        assignments = ", ".join(f"{c} = ${i + 2}" for i, c in enumerate(cols))
        sql = f"UPDATE products SET {assignments} WHERE id = $1"
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(sql, product_id, *[payload[c] for c in cols])
        except _DB_ERRORS as e:
            raise CatalogPersistenceError(str(e)) from e

    async def insert_product(self, fields: Dict[str, Any]) -> int:
        payload = _writable(fields)
        cols = list(payload)
        placeholders = ", ".join(f"${i + 1}" for i in range(len(cols)))
        sql = f"""
            INSERT INTO products ({", ".join(cols)})
            VALUES ({placeholders})
            RETURNING id
        """
        try:
            async with self.pool.acquire() as conn:
                product_id = await conn.fetchval(sql, *[payload[c] for c in cols])
        except _DB_ERRORS as e:
            raise CatalogPersistenceError(str(e)) from e
        return int(product_id)

    # ---- used by /products/normalize-categories ----

    async def list_products_for_categorizing(self) -> List[Dict[str, Any]]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT id, name, description, category_id FROM products ORDER BY id"
                )
        except _DB_ERRORS as e:
            raise CatalogPersistenceError(str(e)) from e
        return [dict(r) for r in rows]

    async def set_product_category(self, product_id: int, category_id: int) -> None:
        await self.update_product(product_id, {"category_id": category_id})
