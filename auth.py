# auth.py
from fastapi import Header, HTTPException, Request
from jose import JWTError, jwt

import settings

ALGORITHM = "HS256"


def decode_access_token(token: str) -> dict:
    """
    Verify a Supabase-issued access token with the project's JWT secret.
    Raises HTTPException(401) on any problem.
    """
    if not settings.SUPABASE_JWT_SECRET:
        raise HTTPException(status_code=401, detail="Auth error")
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=settings.JWT_AUDIENCE,
        )
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    return payload


# ===== Write guard dependency =====
async def require_auth(request: Request, authorization: str = Header(None)):
    """
    No-op unless AUTH_ENABLED=true. Attaches the token claims to
    request.state.user so handlers can see who made the change.
    """
    if not settings.AUTH_ENABLED:
        return None

    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = decode_access_token(token)
    request.state.user = user
    return user
