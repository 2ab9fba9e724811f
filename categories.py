# categories.py
from typing import Optional

import asyncpg
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from auth import require_auth
from settings import get_db_pool
from services.category_resolver import CANONICAL_CATEGORIES

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryIn(BaseModel):
    name: Optional[str] = None


def _require_name(body: CategoryIn) -> str:
    name = (body.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Name required")
    return name


@router.get("")
async def list_categories(pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT * FROM categories ORDER BY name")
    return [dict(r) for r in rows]


@router.post("", status_code=201, dependencies=[Depends(require_auth)])
async def create_category(body: CategoryIn, pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    name = _require_name(body)
    async with pool.acquire() as conn:
        row = await conn.fetchrow("INSERT INTO categories (name) VALUES ($1) RETURNING *", name)
    return dict(row)


@router.put("/{category_id}", dependencies=[Depends(require_auth)])
async def update_category(
    category_id: int,
    body: CategoryIn,
    pool: asyncpg.pool.Pool = Depends(get_db_pool),
):
    name = _require_name(body)
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            "UPDATE categories SET name = $2 WHERE id = $1 RETURNING *", category_id, name
        )
    if not row:
        raise HTTPException(status_code=404, detail="Category not found")
    return dict(row)


@router.delete("/{category_id}", dependencies=[Depends(require_auth)])
async def delete_category(category_id: int, pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    async with pool.acquire() as conn:
        await conn.execute("DELETE FROM categories WHERE id = $1", category_id)
    return {"success": True}


def missing_canonical(existing_names) -> list:
    have = {(n or "").lower() for n in existing_names}
    return [n for n in CANONICAL_CATEGORIES if n.lower() not in have]


@router.post("/sync", dependencies=[Depends(require_auth)])
async def sync_categories(pool: asyncpg.pool.Pool = Depends(get_db_pool)):
    """
    Make sure the storefront's fixed categories (Men, Women, Unisex,
    Special Offers) exist. Run once before the first feed import.
    """
    async with pool.acquire() as conn:
        existing = await conn.fetch("SELECT id, name FROM categories")
        to_insert = missing_canonical(r["name"] for r in existing)
        if to_insert:
            await conn.executemany(
                "INSERT INTO categories (name) VALUES ($1)", [(n,) for n in to_insert]
            )
        rows = await conn.fetch("SELECT * FROM categories ORDER BY name")
    return {"success": True, "categories": [dict(r) for r in rows]}
