# middlewares/headers.py
from fastapi import Request, Response


async def security_headers(request: Request, call_next):
    resp: Response = await call_next(request)

    # catalog and order data change constantly; never let proxies cache the API
    if request.url.path.startswith("/api/"):
        resp.headers.setdefault("Cache-Control", "no-store")
    resp.headers.setdefault("X-Frame-Options", "DENY")
    resp.headers.setdefault("X-Content-Type-Options", "nosniff")
    resp.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return resp
