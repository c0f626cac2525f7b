from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.core.errors import AuthenticationError
from app.core.ratelimit import API_TIER, rate_limit
from app.core.security import require_user, verify_password
from app.models import User

router = APIRouter(prefix="/api", tags=["users"])

class LoginRequest(BaseModel):
    username: str
    password: str

def _serialize_user(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "createdAt": u.created_at.isoformat() if u.created_at else None,
    }

@router.get("/user")
async def current_user(user: User = Depends(require_user)):
    return _serialize_user(user)

@router.post("/login", dependencies=[Depends(rate_limit(API_TIER))])
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_db)):
    """Check credentials for the session layer in front of this service.

    The caller issues its own session and forwards the returned id in the
    user header on later requests.
    """
    user = (await session.execute(select(User).where(User.username == payload.username.strip()))).scalars().first()
    if not user or not verify_password(payload.password, user.password_hash):
        raise AuthenticationError(
            f"failed login for {payload.username!r}",
            public_message="Invalid username or password",
        )
    return _serialize_user(user)
