"""
Unit tests for per-entry field coercion.
"""
import unittest
from decimal import Decimal

from services.feed_normalizer import (
    IN_STOCK_QUANTITY,
    normalize_entry,
    parse_price,
    parse_sale_price,
    stock_from_availability,
)


class TestPriceParsing(unittest.TestCase):

    def test_comma_decimal_separator(self):
        self.assertEqual(parse_price("19,99"), Decimal("19.99"))

    def test_currency_noise_is_stripped(self):
        self.assertEqual(parse_price("$ 19.99 USD"), Decimal("19.99"))
        self.assertEqual(parse_price("59,99 EUR"), Decimal("59.99"))

    def test_empty_and_garbage_are_zero(self):
        self.assertEqual(parse_price(""), Decimal("0"))
        self.assertEqual(parse_price(None), Decimal("0"))
        self.assertEqual(parse_price("call us"), Decimal("0"))
        self.assertEqual(parse_price("1.2.3"), Decimal("0"))
        self.assertEqual(parse_price("."), Decimal("0"))

    def test_never_negative(self):
        self.assertEqual(parse_price("-5.00"), Decimal("5.00"))

    def test_sale_price(self):
        self.assertIsNone(parse_sale_price(""))
        self.assertIsNone(parse_sale_price(None))
        self.assertEqual(parse_sale_price("15.50"), Decimal("15.50"))
        self.assertEqual(parse_sale_price("n/a"), Decimal("0"))


class TestAvailability(unittest.TestCase):

    def test_in_stock_variants(self):
        for raw in ("in_stock", "IN_STOCK", "in stock", "In-Stock"):
            self.assertEqual(stock_from_availability(raw), IN_STOCK_QUANTITY, raw)
        self.assertEqual(IN_STOCK_QUANTITY, 10)

    def test_everything_else_is_zero(self):
        for raw in ("out_of_stock", "out of stock", "preorder", "backorder", "", None):
            self.assertEqual(stock_from_availability(raw), 0, raw)


class TestNormalizeEntry(unittest.TestCase):

    def test_full_entry(self):
        item = normalize_entry({
            "title": "Women's Running Shoes",
            "description": "Mesh upper",
            "price": "59,99 EUR",
            "sale_price": "49,99 EUR",
            "image_link": "https://cdn.example.com/shoe.jpg",
            "brand": "Fleet",
            "link": "https://shop.example.com/shoe",
            "product_type": "Apparel > Women > Shoes",
            "availability": "in_stock",
        })
        self.assertEqual(item.name, "Women's Running Shoes")
        self.assertEqual(item.description, "Mesh upper")
        self.assertEqual(item.price, Decimal("59.99"))
        self.assertEqual(item.sale_price, Decimal("49.99"))
        self.assertEqual(item.image_url, "https://cdn.example.com/shoe.jpg")
        self.assertEqual(item.brand, "Fleet")
        self.assertEqual(item.external_link, "https://shop.example.com/shoe")
        self.assertEqual(item.stock, 10)
        self.assertEqual(item.category_text, "Apparel > Women > Shoes")

    def test_g_prefixed_fallbacks(self):
        item = normalize_entry({
            "g_title": "Cap",
            "g_image_link": "cap.jpg",
            "g_product_type": "Unisex",
        })
        self.assertEqual(item.name, "Cap")
        self.assertEqual(item.image_url, "cap.jpg")
        self.assertEqual(item.product_type, "Unisex")

    def test_missing_fields_default_to_empty(self):
        item = normalize_entry({"title": "Bare"})
        self.assertEqual(item.description, "")
        self.assertEqual(item.price, Decimal("0"))
        self.assertIsNone(item.sale_price)
        self.assertEqual(item.image_url, "")
        self.assertEqual(item.stock, 0)

    def test_category_text_falls_back_to_name_and_description(self):
        item = normalize_entry({"title": "Polo", "description": "for men"})
        self.assertEqual(item.category_text, "Polo for men")

    def test_wrapped_text_shapes(self):
        item = normalize_entry({
            "title": [{"#text": "Scarf"}],
            "price": {"@_currency": "EUR", "#text": "9,50"},
        })
        self.assertEqual(item.name, "Scarf")
        self.assertEqual(item.price, Decimal("9.50"))

    def test_empty_name_is_skipped(self):
        self.assertIsNone(normalize_entry({"title": "   ", "price": "10"}))
        self.assertIsNone(normalize_entry({"price": "10"}))
        self.assertIsNone(normalize_entry({}))

    def test_present_but_empty_title_does_not_fall_back(self):
        self.assertIsNone(normalize_entry({"title": "", "g_title": "Hidden"}))


if __name__ == "__main__":
    unittest.main()
