from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from app.api.deps import get_store
from app.services.storage import ObjectStore

router = APIRouter(prefix="/api/media", tags=["media"])

@router.get("/{key}")
async def get_media(
    key: str,
    expires: int = Query(...),
    signature: str = Query(..., min_length=1),
    store: ObjectStore = Depends(get_store),
):
    """Serve a stored object behind a signed, expiring URL."""
    if not store.verify(key, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired media link")
    obj = await store.get(key)

    headers = {"Cache-Control": obj.cache_control} if obj.cache_control else None
    return FileResponse(obj.path, media_type=obj.content_type, headers=headers)
