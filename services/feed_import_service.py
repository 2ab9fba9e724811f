# services/feed_import_service.py
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

from services.category_resolver import resolve_category
from services.errors import CatalogPersistenceError
from services.feed_normalizer import NormalizedEntry, normalize_entry
from services.feed_parser import parse_feed

logger = logging.getLogger("uvicorn.error")


@dataclass
class FeedImportResult:
    imported: int = 0
    inserted: int = 0
    updated: int = 0
    skipped: int = 0


def build_category_map(categories: Iterable[Dict[str, Any]]) -> Dict[str, int]:
    return {
        (c.get("name") or "").lower(): c["id"]
        for c in categories
        if c.get("name")
    }


def category_id_for(text: str, category_map: Dict[str, int]) -> Optional[int]:
    return category_map.get(resolve_category(text).lower())


def _product_fields(item: NormalizedEntry, category_id: Optional[int]) -> Dict[str, Any]:
    return {
        "description": item.description,
        "price": item.price,
        "sale_price": item.sale_price,
        "image_url": item.image_url,
        "brand": item.brand,
        "external_link": item.external_link,
        "category_id": category_id,
        "stock": item.stock,
    }


async def import_feed(store: Any, payload: Union[str, bytes]) -> FeedImportResult:
    """
    1. Parse the whole feed (input errors surface before any DB access).
    2. Load categories once into a lowercase name -> id map.
    3. For each entry, in order: resolve category, look the product up by
       exact name, update it in place or insert a new row.

    A CatalogPersistenceError stops the run; rows already written stay.
    """
    entries = parse_feed(payload)
    category_map = build_category_map(await store.list_categories())
    result = FeedImportResult()

    logger.info("feed import: %d entries, %d categories", len(entries), len(category_map))

    try:
        for raw in entries:
            item = normalize_entry(raw)
            if item is None:
                result.skipped += 1
                continue

            fields = _product_fields(item, category_id_for(item.category_text, category_map))
            existing = await store.find_product_by_name(item.name)
            if existing and existing.get("id"):
                await store.update_product(existing["id"], fields)
                result.updated += 1
            else:
                await store.insert_product({"name": item.name, **fields})
                result.inserted += 1
            result.imported += 1
    except CatalogPersistenceError as e:
        logger.error("feed import aborted after %d entries: %s", result.imported, e)
        raise

    logger.info(
        "feed import done: imported=%d inserted=%d updated=%d skipped=%d",
        result.imported, result.inserted, result.updated, result.skipped,
    )
    return result


async def recategorize_products(store: Any) -> int:
    """
    Re-resolve every product's category from its name + description.
    Only touches rows whose resolved category exists and differs.
    Returns the number of rows updated.
    """
    category_map = build_category_map(await store.list_categories())
    updated = 0
    for p in await store.list_products_for_categorizing():
        desired_id = category_id_for(f"{p['name']} {p.get('description') or ''}", category_map)
        if desired_id and desired_id != p.get("category_id"):
            await store.set_product_category(p["id"], desired_id)
            updated += 1
    return updated
