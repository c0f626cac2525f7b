from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from app.api.deps import get_store
from app.core.config import settings
from app.core.db import get_sessionmaker
from app.core.security import hash_password, require_admin
from app.models import User
from app.services.media import refresh_signed_urls
from app.services.storage import ObjectStore

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

class UserCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=8)

@router.get("/users")
async def list_users():
    async with get_sessionmaker()() as session:
        users = (await session.execute(select(User).order_by(User.id.asc()))).scalars().all()
        return [
            {
                "id": u.id,
                "username": u.username,
                "createdAt": u.created_at.isoformat() if u.created_at else None,
            }
            for u in users
        ]

@router.post("/users", status_code=201)
async def create_user(payload: UserCreate):
    async with get_sessionmaker()() as session:
        user = User(username=payload.username.strip(), password_hash=hash_password(payload.password))
        session.add(user)
        try:
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise HTTPException(status_code=409, detail="User already exists")
        await session.refresh(user)
        return {"id": user.id, "username": user.username}

@router.delete("/users/{user_id}")
async def delete_user(user_id: int):
    # Articles survive with user_id set to NULL
    async with get_sessionmaker()() as session:
        res = await session.execute(delete(User).where(User.id == user_id))
        await session.commit()
        if res.rowcount == 0:
            raise HTTPException(status_code=404, detail="User not found")
        return {"ok": True}

@router.post("/media/refresh")
async def admin_refresh_media(store: ObjectStore = Depends(get_store)):
    async with get_sessionmaker()() as session:
        refreshed = await refresh_signed_urls(session, store, settings)
        return {"refreshed": refreshed}
