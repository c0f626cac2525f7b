from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_db
from app.core.errors import AuthenticationError
from app.models import User

PBKDF2_ITERATIONS = 260_000

def require_admin(x_admin_token: str | None = Header(default=None, alias="X-Admin-Token")) -> None:
    if not settings.admin_token or not x_admin_token or not hmac.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")

def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"

def verify_password(password: str, encoded: str) -> bool:
    try:
        algo, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)

async def get_current_user(request: Request, session: AsyncSession = Depends(get_db)) -> Optional[User]:
    """Resolve the acting user from the header set by the upstream session layer.

    No header means an anonymous request.
    """
    raw = request.headers.get(settings.user_header)
    if raw is None or not raw.strip():
        return None
    try:
        user_id = int(raw)
    except ValueError:
        raise AuthenticationError(f"malformed {settings.user_header} header: {raw!r}") from None
    user = (await session.execute(select(User).where(User.id == user_id))).scalars().first()
    if not user:
        raise AuthenticationError(f"unknown user id {user_id}")
    return user

async def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise AuthenticationError("anonymous request to a user-only endpoint")
    return user
