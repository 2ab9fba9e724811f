# services/feed_normalizer.py
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

from services.feed_parser import node_text

IN_STOCK_QUANTITY = 10

_PRICE_JUNK_RE = re.compile(r"[^0-9.,]")
_AVAILABILITY_SEP_RE = re.compile(r"[\s\-]+")


@dataclass(frozen=True)
class NormalizedEntry:
    name: str
    description: str
    price: Decimal
    sale_price: Optional[Decimal]
    image_url: str
    brand: str
    external_link: str
    product_type: str
    stock: int

    @property
    def category_text(self) -> str:
        # Departs from the product_type-only rule: with no product_type the
        # title + description is resolved instead, so untyped feeds still land
        # in a real category.
        return self.product_type or f"{self.name} {self.description}"


def parse_price(raw: Optional[str]) -> Decimal:
    """
    "19,99" -> 19.99, "$ 19.99 USD" -> 19.99, "" or garbage -> 0.
    """
    cleaned = _PRICE_JUNK_RE.sub("", raw or "").replace(",", ".", 1)
    if not cleaned:
        return Decimal("0")
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")
    return value if value.is_finite() else Decimal("0")


def parse_sale_price(raw: Optional[str]) -> Optional[Decimal]:
    if not raw:
        return None
    return parse_price(raw)


def stock_from_availability(raw: Optional[str]) -> int:
    # also accepts the legacy "in stock" spelling, unlike a plain in_stock match
    availability = _AVAILABILITY_SEP_RE.sub("_", (raw or "").strip().lower())
    return IN_STOCK_QUANTITY if "in_stock" in availability else 0


def _field(entry: Dict[str, Any], *keys: str) -> str:
    # first key that is present wins, even when its text is empty
    for key in keys:
        if key in entry:
            return node_text(entry[key])
    return ""


def normalize_entry(entry: Dict[str, Any]) -> Optional[NormalizedEntry]:
    """
    Coerce one raw feed entry into typed product fields.
    Returns None when the entry has no usable name; the caller skips it.
    """
    name = _field(entry, "title", "g_title")
    if not name:
        return None

    return NormalizedEntry(
        name=name,
        description=_field(entry, "description"),
        price=parse_price(_field(entry, "price")),
        sale_price=parse_sale_price(_field(entry, "sale_price")),
        image_url=_field(entry, "image_link", "g_image_link"),
        brand=_field(entry, "brand"),
        external_link=_field(entry, "link"),
        product_type=_field(entry, "product_type", "g_product_type"),
        stock=stock_from_availability(_field(entry, "availability")),
    )
