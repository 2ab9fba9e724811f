# main.py
import os
import sys
import logging
import asyncpg
import traceback
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware

# Ensure app root on path
APP_ROOT = os.path.dirname(os.path.abspath(__file__))
if APP_ROOT not in sys.path:
    sys.path.insert(0, APP_ROOT)

from settings import (
    ENABLE_DOCS, ALLOW_ORIGINS, DATABASE_URL, DB_CONNECT_TIMEOUT, LOG_REQUESTS,
    AUTH_ENABLED, USE_STORAGE,
)

from middlewares.headers import security_headers

# Routers
from products import router as products_router
from categories import router as categories_router
from orders import router as orders_router

logger = logging.getLogger("uvicorn.error")

app = FastAPI(
    title="Storefront API",
    version="1.0.0",
    docs_url="/docs" if ENABLE_DOCS else None,
    redoc_url="/redoc" if ENABLE_DOCS else None,
    openapi_url="/openapi.json" if ENABLE_DOCS else None,
)


# ---- log full tracebacks so 500s aren't silent ----
class TraceLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.error("\n===== UNCAUGHT EXCEPTION =====")
            logger.error("Path: %s %s", request.method, request.url.path)
            logger.error(traceback.format_exc())
            logger.error("===== END TRACE =====\n")
            raise
app.add_middleware(TraceLogMiddleware)

app.middleware("http")(security_headers)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


# DB pool
@app.on_event("startup")
async def startup():
    try:
        app.state.db = await asyncpg.create_pool(DATABASE_URL, timeout=DB_CONNECT_TIMEOUT)
        logger.info("✅ DB pool created")
    except Exception as e:
        app.state.db = None
        logger.error(f"⚠️ Failed to connect to DB at startup: {e}")

    logger.info("auth on writes: %s, object storage: %s",
                "enabled" if AUTH_ENABLED else "disabled",
                "configured" if USE_STORAGE else "not configured")


@app.on_event("shutdown")
async def shutdown():
    try:
        if getattr(app.state, "db", None):
            await app.state.db.close()
            logger.info("🔌 DB pool closed")
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# -------- Router mounts --------
app.include_router(products_router, prefix="/api")      # /api/products, /api/products/import-xml
app.include_router(categories_router, prefix="/api")    # /api/categories, /api/categories/sync
app.include_router(orders_router, prefix="/api")        # /api/orders


# health
@app.get("/api/health")
async def health():
    return {"ok": True}


@app.get("/healthz", response_class=PlainTextResponse)
async def healthz():
    return "ok"


# Optional request logging
if LOG_REQUESTS:
    @app.middleware("http")
    async def _req_logger(request, call_next):
        logger.info(f"➡ {request.method} {request.url.path} from {request.client.host if request.client else 'unknown'}")
        resp = await call_next(request)
        logger.info(f"⬅ {request.method} {request.url.path} -> {resp.status_code}")
        return resp


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "4000")),
        reload=ENABLE_DOCS,
        log_level="info",
    )
