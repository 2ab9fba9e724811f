# orders.py
from decimal import Decimal
from typing import Dict, List, Optional

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, conint

from auth import require_auth
from settings import get_db_pool

router = APIRouter(prefix="/orders", tags=["orders"])

ORDER_STATUSES = ("Pending", "Shipped", "Delivered")


# --------- Pydantic models ----------
class OrderItemIn(BaseModel):
    product_id: int
    quantity: conint(ge=1) = 1


class OrderIn(BaseModel):
    user_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    county: Optional[str] = None
    email: Optional[str] = None
    delivery_type: Optional[str] = None
    items: List[OrderItemIn] = []


class OrderStatusIn(BaseModel):
    status: str


class InsufficientStock(Exception):
    pass


# --------- helpers ----------
def price_order_items(items: List[OrderItemIn], products: Dict[int, dict]) -> Decimal:
    """
    Check every line against the product snapshot and return the subtotal.
    Raises HTTPException(400) for unknown products or insufficient stock.
    """
    subtotal = Decimal("0")
    for item in items:
        p = products.get(item.product_id)
        if not p:
            raise HTTPException(status_code=400, detail=f"Product {item.product_id} not found")
        if p["stock"] < item.quantity:
            raise HTTPException(status_code=400, detail=f"Insufficient stock for product {item.product_id}")
        subtotal += Decimal(str(p["price"])) * item.quantity
    return subtotal


# --------- routes ----------
@router.get("")
async def list_orders(
    status: Optional[str] = Query(None),
    pool: asyncpg.pool.Pool = Depends(get_db_pool),
):
    sql = """
        SELECT id, user_name, phone, address, city, county, email, delivery_type,
               subtotal, total, status, created_at
        FROM orders
        WHERE ($1::text IS NULL OR status = $1)
        ORDER BY created_at DESC, id DESC
    """
    async with pool.acquire() as conn:
        rows = await conn.fetch(sql, status)
    return [dict(r) for r in rows]


@router.get("/{order_id}")
async def get_order(order_id: int, pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    async with pool.acquire() as conn:
        order = await conn.fetchrow("SELECT * FROM orders WHERE id = $1", order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        items = await conn.fetch(
            """
            SELECT oi.id, oi.order_id, oi.product_id, oi.quantity, oi.price,
                   p.name AS product_name, p.image_url AS product_image_url
            FROM order_items oi
            LEFT JOIN products p ON p.id = oi.product_id
            WHERE oi.order_id = $1
            ORDER BY oi.id
            """,
            order_id,
        )
    return {
        **dict(order),
        "items": [
            {
                "id": r["id"],
                "order_id": r["order_id"],
                "product_id": r["product_id"],
                "quantity": r["quantity"],
                "price": r["price"],
                "products": {
                    "id": r["product_id"],
                    "name": r["product_name"],
                    "image_url": r["product_image_url"],
                } if r["product_name"] is not None else None,
            }
            for r in items
        ],
    }


@router.post("", status_code=201)
async def create_order(body: OrderIn, pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    """
    Public checkout endpoint (no auth).

    Order row, item rows and stock decrements are written in one
    transaction; each decrement only applies while stock >= quantity.
    """
    if not (body.user_name or "").strip() or not body.items:
        raise HTTPException(status_code=400, detail="Missing user_name or items")

    product_ids = sorted({it.product_id for it in body.items})

    try:
        async with pool.acquire() as conn:
            async with conn.transaction():
                rows = await conn.fetch(
                    "SELECT id, price, stock FROM products WHERE id = ANY($1::int[])",
                    product_ids,
                )
                products = {r["id"]: dict(r) for r in rows}
                subtotal = price_order_items(body.items, products)
                total = subtotal

                order_id = await conn.fetchval(
                    """
                    INSERT INTO orders (user_name, phone, address, city, county, email,
                                        delivery_type, subtotal, total, status)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, 'Pending')
                    RETURNING id
                    """,
                    body.user_name, body.phone, body.address, body.city, body.county,
                    body.email, body.delivery_type, subtotal, total,
                )

                for item in body.items:
                    await conn.execute(
                        """
                        INSERT INTO order_items (order_id, product_id, quantity, price)
                        VALUES ($1, $2, $3, $4)
                        """,
                        order_id, item.product_id, item.quantity,
                        products[item.product_id]["price"],
                    )
                    status_txt = await conn.execute(
                        """
                        UPDATE products
                           SET stock = stock - $2
                         WHERE id = $1 AND stock >= $2
                        """,
                        item.product_id, item.quantity,
                    )
                    if status_txt.split()[-1] == "0":
                        # raced with another checkout; rolls the whole order back
                        raise InsufficientStock(item.product_id)
    except InsufficientStock as e:
        raise HTTPException(status_code=400, detail=f"Insufficient stock for product {e.args[0]}")

    return {"id": order_id}


@router.put("/{order_id}/status", dependencies=[Depends(require_auth)])
async def update_order_status(
    order_id: int,
    body: OrderStatusIn,
    pool: asyncpg.pool.Pool = Depends(get_db_pool),
):
    if body.status not in ORDER_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            "UPDATE orders SET status = $2 WHERE id = $1 RETURNING *", order_id, body.status
        )
    if not row:
        raise HTTPException(status_code=404, detail="Order not found")
    return dict(row)
