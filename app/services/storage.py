from __future__ import annotations

import asyncio
import datetime as dt
import hashlib
import hmac
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, urlencode

from app.core.config import Settings
from app.core.db import utc_now
from app.core.errors import NotFoundError, UploadError

logger = logging.getLogger(__name__)

KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,199}$")

@dataclass
class StoredObject:
    key: str
    path: Path
    content_type: str
    cache_control: str | None

class ObjectStore(ABC):
    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str, cache_control: str | None = None) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> StoredObject:
        ...

    @abstractmethod
    def signed_url(self, key: str, ttl: dt.timedelta) -> tuple[str, dt.datetime]:
        """Return a retrieval URL for ``key`` valid for ``ttl`` and its expiry (naive UTC)."""

    @abstractmethod
    def verify(self, key: str, expires: int, signature: str) -> bool:
        ...

class LocalObjectStore(ObjectStore):
    """Filesystem-backed store; objects are served back by the media router."""

    def __init__(self, root: str | Path, base_url: str, secret: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self._secret = secret.encode("utf-8")

    @classmethod
    def from_settings(cls, settings: Settings) -> "LocalObjectStore":
        return cls(settings.media_dir, settings.public_base_url, settings.signing_secret)

    def _path(self, key: str) -> Path:
        if not KEY_RE.match(key):
            raise ValueError(f"invalid object key: {key!r}")
        return self.root / key

    def _write(self, key: str, data: bytes, meta: dict) -> None:
        path = self._path(key)
        self.root.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".part")
        tmp.write_bytes(data)
        tmp.replace(path)
        path.with_name(path.name + ".meta.json").write_text(json.dumps(meta), encoding="utf-8")

    async def put(self, key: str, data: bytes, content_type: str, cache_control: str | None = None) -> None:
        meta = {"content_type": content_type, "cache_control": cache_control}
        try:
            await asyncio.to_thread(self._write, key, data, meta)
        except OSError as e:
            raise UploadError(f"failed to store {key}: {e}") from e
        logger.debug("Stored object %s (%d bytes)", key, len(data))

    def _read_meta(self, key: str) -> StoredObject:
        # No object is ever stored under a malformed key
        if not KEY_RE.match(key):
            raise NotFoundError("Media not found")
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Media not found")
        meta_path = path.with_name(path.name + ".meta.json")
        meta = json.loads(meta_path.read_text(encoding="utf-8")) if meta_path.is_file() else {}
        return StoredObject(
            key=key,
            path=path,
            content_type=meta.get("content_type") or "application/octet-stream",
            cache_control=meta.get("cache_control"),
        )

    async def get(self, key: str) -> StoredObject:
        return await asyncio.to_thread(self._read_meta, key)

    def _signature(self, key: str, expires: int) -> str:
        msg = f"{key}:{expires}".encode("utf-8")
        return hmac.new(self._secret, msg, hashlib.sha256).hexdigest()

    def signed_url(self, key: str, ttl: dt.timedelta) -> tuple[str, dt.datetime]:
        self._path(key)
        expires_at = (utc_now() + ttl).replace(microsecond=0)
        expires = int(expires_at.replace(tzinfo=dt.timezone.utc).timestamp())
        query = urlencode({"expires": expires, "signature": self._signature(key, expires)})
        return f"{self.base_url}/api/media/{quote(key)}?{query}", expires_at

    def verify(self, key: str, expires: int, signature: str) -> bool:
        if not hmac.compare_digest(self._signature(key, expires).encode("utf-8"), signature.encode("utf-8")):
            return False
        now = int(utc_now().replace(tzinfo=dt.timezone.utc).timestamp())
        return expires > now
