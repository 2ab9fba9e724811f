"""
Tests for the asyncpg-backed catalog store used by the feed importer.
"""
import unittest
from decimal import Decimal

import asyncpg

from fake_pool import DEFAULT, FakePool
from services.catalog_store import CatalogStore
from services.errors import CatalogPersistenceError


class TestCatalogStoreErrors(unittest.IsolatedAsyncioTestCase):

    async def test_acquire_failure_is_wrapped(self):
        store = CatalogStore(FakePool(acquire_error=asyncpg.InterfaceError("pool is closed")))
        calls = [
            store.list_categories(),
            store.find_product_by_name("Cap"),
            store.update_product(1, {"stock": 0}),
            store.insert_product({"name": "Cap"}),
            store.list_products_for_categorizing(),
        ]
        for call in calls:
            with self.assertRaises(CatalogPersistenceError) as ctx:
                await call
            self.assertIn("pool is closed", str(ctx.exception))
            self.assertIsInstance(ctx.exception.__cause__, asyncpg.InterfaceError)

    async def test_query_failure_is_wrapped(self):
        def boom(method, sql, args):
            raise ConnectionResetError("connection reset by peer")

        store = CatalogStore(FakePool(boom))
        with self.assertRaises(CatalogPersistenceError) as ctx:
            await store.insert_product({"name": "Cap", "price": Decimal("1")})
        self.assertEqual(str(ctx.exception), "connection reset by peer")

    async def test_unknown_columns_rejected_before_any_query(self):
        pool = FakePool()
        store = CatalogStore(pool)
        with self.assertRaises(ValueError):
            await store.update_product(1, {"stock": 1, "id": 5})
        with self.assertRaises(ValueError):
            await store.insert_product({"name": "Cap", "price; DROP TABLE products": 1})
        self.assertEqual(pool.conn.queries, [])


class TestCatalogStoreQueries(unittest.IsolatedAsyncioTestCase):

    async def test_update_builds_positional_set_clause(self):
        pool = FakePool()
        await CatalogStore(pool).update_product(7, {"price": Decimal("9.50"), "stock": 10})
        method, sql, args = pool.conn.queries[0]
        self.assertEqual(method, "execute")
        self.assertIn("SET price = $2, stock = $3 WHERE id = $1", sql)
        self.assertEqual(args, (7, Decimal("9.50"), 10))

    async def test_empty_update_is_a_no_op(self):
        pool = FakePool()
        await CatalogStore(pool).update_product(7, {})
        self.assertEqual(pool.conn.queries, [])

    async def test_insert_returns_new_id(self):
        def new_id(method, sql, args):
            return 31 if method == "fetchval" else DEFAULT

        pool = FakePool(new_id)
        product_id = await CatalogStore(pool).insert_product({"name": "Cap", "stock": 0})
        self.assertEqual(product_id, 31)
        _, sql, args = pool.conn.queries[0]
        self.assertIn("INSERT INTO products (name, stock)", sql)
        self.assertEqual(args, ("Cap", 0))

    async def test_find_by_name(self):
        def row(method, sql, args):
            return {"id": 3, "name": args[0]} if args[0] == "Cap" else None

        store = CatalogStore(FakePool(row))
        self.assertEqual(await store.find_product_by_name("Cap"), {"id": 3, "name": "Cap"})
        self.assertIsNone(await store.find_product_by_name("Hat"))


if __name__ == "__main__":
    unittest.main()
