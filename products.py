# products.py
import json
import logging
import math
from typing import Optional, Union

import asyncpg
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel, confloat, conint

from auth import require_auth
from settings import get_db_pool, MAX_FEED_MB, MAX_IMAGE_MB, VALID_IMAGE_MIME
from services.catalog_store import CatalogStore, PRODUCT_FIELDS
from services.errors import CatalogPersistenceError, FeedInputError
from services.feed_import_service import import_feed, recategorize_products
from services.storage_client import generate_image_key, upload_product_image

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/products", tags=["products"])

FEED_CONTENT_TYPES = {"application/xml", "text/xml", "text/plain"}

PRODUCT_SELECT = """
    SELECT
      p.id, p.name, p.description, p.price, p.sale_price, p.image_url,
      p.brand, p.external_link, p.category_id, p.stock, p.created_at,
      c.id   AS cat_id,
      c.name AS cat_name
    FROM products p
    LEFT JOIN categories c ON c.id = p.category_id
"""


def get_catalog_store(pool: asyncpg.pool.Pool = Depends(get_db_pool)) -> CatalogStore:
    return CatalogStore(pool)


def _product_out(r) -> dict:
    out = {k: r[k] for k in ("id", "name", "description", "price", "sale_price", "image_url",
                             "brand", "external_link", "category_id", "stock", "created_at")}
    out["categories"] = {"id": r["cat_id"], "name": r["cat_name"]} if r["cat_id"] is not None else None
    return out


def clean_sale_price(value) -> Optional[float]:
    """None for blank, non-numeric, NaN or infinite input."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        sale = float(value)
    except (TypeError, ValueError):
        return None
    return sale if math.isfinite(sale) else None


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[confloat(ge=0)] = None
    sale_price: Optional[Union[float, str]] = None
    image_url: Optional[str] = None
    brand: Optional[str] = None
    external_link: Optional[str] = None
    category_id: Optional[int] = None
    stock: Optional[conint(ge=0)] = None


# ----------------------------- FEED IMPORT -----------------------------
@router.post("/import-xml", dependencies=[Depends(require_auth)])
async def import_xml(request: Request, store: CatalogStore = Depends(get_catalog_store)):
    """
    Import a product XML feed (raw body, Content-Type application/xml,
    text/xml or text/plain; or JSON {"xml": "..."}).

    Products are upserted by exact name. Returns { success, imported }.
    """
    max_bytes = MAX_FEED_MB * 1024 * 1024
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Feed too large (>{MAX_FEED_MB}MB)")

    body = await request.body()
    if len(body) > max_bytes:
        raise HTTPException(status_code=413, detail=f"Feed too large (>{MAX_FEED_MB}MB)")

    content_type = (request.headers.get("content-type") or "").split(";")[0].strip().lower()
    payload: Union[str, bytes] = b""
    if content_type in FEED_CONTENT_TYPES:
        payload = body
    elif content_type == "application/json":
        try:
            doc = json.loads(body or b"{}")
        except ValueError:
            doc = {}
        xml = doc.get("xml") if isinstance(doc, dict) else None
        payload = xml if isinstance(xml, str) else b""

    try:
        result = await import_feed(store, payload)
    except FeedInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CatalogPersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True, "imported": result.imported}


@router.post("/normalize-categories", dependencies=[Depends(require_auth)])
async def normalize_categories(store: CatalogStore = Depends(get_catalog_store)):
    """Fix category_id of existing products based on their name + description."""
    try:
        updated = await recategorize_products(store)
    except CatalogPersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True, "updated": updated}


# ----------------------------- CRUD -----------------------------
@router.get("")
async def list_products(pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    async with pool.acquire() as conn:
        rows = await conn.fetch(PRODUCT_SELECT + " ORDER BY p.created_at DESC, p.id DESC")
    return [_product_out(r) for r in rows]


@router.get("/{product_id}")
async def get_product(product_id: int, pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    async with pool.acquire() as conn:
        row = await conn.fetchrow(PRODUCT_SELECT + " WHERE p.id = $1", product_id)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")
    return _product_out(row)


@router.post("", status_code=201, dependencies=[Depends(require_auth)])
async def create_product(
    name: str = Form(...),
    price: float = Form(..., ge=0),
    description: Optional[str] = Form(None),
    category_id: Optional[int] = Form(None),
    stock: int = Form(0, ge=0),
    image: Optional[UploadFile] = File(None),
    pool: asyncpg.pool.Pool = Depends(get_db_pool),
):
    """Create a product; an optional image is pushed to object storage first."""
    image_url = None
    if image is not None and image.filename:
        content = await image.read()
        if not content:
            raise HTTPException(status_code=400, detail="Empty image file")
        if len(content) > MAX_IMAGE_MB * 1024 * 1024:
            raise HTTPException(status_code=413, detail=f"Image too large (>{MAX_IMAGE_MB}MB)")
        content_type = (image.content_type or "").lower()
        if content_type not in VALID_IMAGE_MIME:
            raise HTTPException(status_code=415, detail=f"Unsupported content-type: {content_type}")
        key = generate_image_key(content, original_filename=image.filename, content_type=content_type)
        try:
            image_url = upload_product_image(content, key, content_type)
        except RuntimeError as e:
            raise HTTPException(status_code=500, detail=str(e))

    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO products (name, description, price, image_url, category_id, stock)
            VALUES ($1, $2, $3, $4, $5, $6)
            RETURNING *
            """,
            name, description or None, price, image_url, category_id, stock,
        )
    return dict(row)


@router.put("/{product_id}", dependencies=[Depends(require_auth)])
async def update_product(
    product_id: int,
    body: ProductUpdate,
    pool: asyncpg.pool.Pool = Depends(get_db_pool),
):
    payload = body.model_dump(exclude_unset=True)

    # blank, null or non-numeric sale_price means "leave it alone"
    if "sale_price" in payload:
        sale = clean_sale_price(payload["sale_price"])
        if sale is None:
            payload.pop("sale_price")
        else:
            payload["sale_price"] = sale

    cols = [c for c in PRODUCT_FIELDS if c in payload]
    async with pool.acquire() as conn:
        if cols:
            assignments = ", ".join(f"{c} = ${i + 2}" for i, c in enumerate(cols))
            row = await conn.fetchrow(
                f"UPDATE products SET {assignments} WHERE id = $1 RETURNING *",
                product_id, *[payload[c] for c in cols],
            )
        else:
            row = await conn.fetchrow("SELECT * FROM products WHERE id = $1", product_id)
    if not row:
        raise HTTPException(status_code=404, detail="Product not found")
    return dict(row)


@router.delete("/{product_id}", dependencies=[Depends(require_auth)])
async def delete_product(product_id: int, pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    async with pool.acquire() as conn:
        await conn.execute("DELETE FROM products WHERE id = $1", product_id)
    return {"success": True}


@router.delete("", dependencies=[Depends(require_auth)])
async def delete_all_products(pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    async with pool.acquire() as conn:
        status_txt = await conn.execute("DELETE FROM products")
    logger.info("bulk product delete: %s", status_txt)
    return {"success": True}
