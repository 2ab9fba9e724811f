# settings.py
import os
from dotenv import load_dotenv
from fastapi import Request, HTTPException
import asyncpg

load_dotenv()

# -----------------------------------------------------------------------------
# Core app settings
# -----------------------------------------------------------------------------
ENV = (os.getenv("ENV") or "development").lower()
ENABLE_DOCS = ENV != "production"

CORS_ORIGINS = (os.getenv("CORS_ORIGINS") or "").strip()
ALLOW_ORIGINS = [o.strip() for o in CORS_ORIGINS.split(",") if o.strip()] or ["*"]

DATABASE_URL = os.getenv("DATABASE_URL")
DB_CONNECT_TIMEOUT = float(os.getenv("DB_CONNECT_TIMEOUT", "8"))

LOG_REQUESTS = (os.getenv("LOG_REQUESTS") or "").lower() in {"1", "true", "yes"}

# -----------------------------------------------------------------------------
# Write protection (Supabase-issued JWTs, verified locally)
# -----------------------------------------------------------------------------
AUTH_ENABLED = (os.getenv("AUTH_ENABLED") or "").lower() == "true"
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET", "")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

# Upload limits
MAX_FEED_MB = int(os.getenv("MAX_FEED_MB", "10"))
MAX_IMAGE_MB = int(os.getenv("MAX_IMAGE_MB", "10"))
VALID_IMAGE_MIME = {
    "image/jpeg", "image/png", "image/webp", "image/gif",
}

# -----------------------------------------------------------------------------
# S3-compatible object storage (Supabase Storage, R2, MinIO, ...)
# -----------------------------------------------------------------------------
STORAGE_ENDPOINT = os.getenv("STORAGE_ENDPOINT", "").strip()
STORAGE_ACCESS_KEY_ID = os.getenv("STORAGE_ACCESS_KEY_ID", "").strip()
STORAGE_SECRET_ACCESS_KEY = os.getenv("STORAGE_SECRET_ACCESS_KEY", "").strip()
STORAGE_BUCKET = os.getenv("STORAGE_BUCKET", "product-images").strip()
STORAGE_REGION = os.getenv("STORAGE_REGION", "auto")

# Public base for end-user image URLs, no trailing slash.
# Example: https://<project>.supabase.co/storage/v1/object/public/product-images
STORAGE_PUBLIC_BASE = (os.getenv("STORAGE_PUBLIC_BASE") or "").rstrip("/")

# Where in the bucket product images go
STORAGE_PREFIX = os.getenv("STORAGE_PREFIX", "products/").lstrip("/")

# Feature switch: True only when all required creds are present
USE_STORAGE = all([STORAGE_ENDPOINT, STORAGE_ACCESS_KEY_ID, STORAGE_SECRET_ACCESS_KEY, STORAGE_BUCKET])


def storage_public_url(key: str) -> str:
    """
    Build a public URL for an object using STORAGE_PUBLIC_BASE.
    Falls back to empty string if not configured.
    """
    if not STORAGE_PUBLIC_BASE:
        return ""
    return f"{STORAGE_PUBLIC_BASE}/{key.lstrip('/')}"


# -----------------------------------------------------------------------------
# Helper for accessing DB pool in routes
# -----------------------------------------------------------------------------
def get_db_pool(request: Request) -> asyncpg.pool.Pool:
    """
    Dependency to fetch the asyncpg pool from app.state.
    Raises HTTPException if the pool is missing (e.g., before startup).
    """
    pool = getattr(request.app.state, "db", None)
    if pool is None:
        raise HTTPException(status_code=500, detail="DB pool not initialized")
    return pool
