"""
Unit tests for checkout pricing and canonical category seeding.
"""
import unittest
from decimal import Decimal

from fastapi import HTTPException

from categories import missing_canonical
from orders import OrderItemIn, price_order_items


class TestPriceOrderItems(unittest.TestCase):

    def setUp(self):
        self.products = {
            1: {"id": 1, "price": Decimal("19.99"), "stock": 5},
            2: {"id": 2, "price": 4.5, "stock": 1},
        }

    def test_subtotal(self):
        items = [OrderItemIn(product_id=1, quantity=2), OrderItemIn(product_id=2, quantity=1)]
        self.assertEqual(price_order_items(items, self.products), Decimal("44.48"))

    def test_unknown_product(self):
        with self.assertRaises(HTTPException) as ctx:
            price_order_items([OrderItemIn(product_id=99, quantity=1)], self.products)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.detail, "Product 99 not found")

    def test_insufficient_stock(self):
        with self.assertRaises(HTTPException) as ctx:
            price_order_items([OrderItemIn(product_id=2, quantity=3)], self.products)
        self.assertEqual(ctx.exception.detail, "Insufficient stock for product 2")


class TestMissingCanonical(unittest.TestCase):

    def test_case_insensitive(self):
        self.assertEqual(
            missing_canonical(["men", "WOMEN", "Outlet", None]),
            ["Unisex", "Special Offers"],
        )

    def test_nothing_missing(self):
        self.assertEqual(missing_canonical(["Men", "Women", "Unisex", "Special Offers"]), [])


if __name__ == "__main__":
    unittest.main()
