from __future__ import annotations

import base64
import datetime as dt
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import or_, and_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.db import utc_now
from app.core.errors import DatabaseError, ProviderError
from app.models import Article
from app.services.fetcher import Fetcher
from app.services.normalize import object_key
from app.services.providers import GenerationProvider
from app.services.retry import RetryPolicy
from app.services.sanitize import strip_markup, truncate_words
from app.services.storage import ObjectStore

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE = "audio/mpeg"

@dataclass
class MediaAsset:
    url: str
    key: Optional[str] = None
    expires_at: Optional[dt.datetime] = None

class MediaAcquirer:
    def __init__(self, provider: GenerationProvider, store: ObjectStore, fetcher: Fetcher, settings: Settings):
        self.provider = provider
        self.store = store
        self.fetcher = fetcher
        self.settings = settings
        self.retry = RetryPolicy.from_settings(settings)

    @property
    def url_ttl(self) -> dt.timedelta:
        return dt.timedelta(days=self.settings.signed_url_ttl_days)

    async def acquire_image(self, prompt: str, title: str) -> MediaAsset:
        """Generate an image, re-host it and return a signed URL.

        Raises ProviderError, DownloadError or UploadError; callers decide
        whether a missing image is fatal.
        """
        provider_url = await self.retry.run(lambda: self.provider.generate_image(prompt), stage="image")
        fetched = await self.retry.run(
            lambda: self.fetcher.fetch_bytes(provider_url),
            stage="image",
            timeout=self.settings.request_timeout_seconds,
        )

        key = object_key(title, "png")
        content_type = fetched.content_type or "image/png"
        await self.retry.run(
            lambda: self.store.put(key, fetched.data, content_type, self.settings.image_cache_control),
            stage="image",
        )
        url, expires_at = self.store.signed_url(key, self.url_ttl)
        logger.info("Stored image %s (%d bytes)", key, len(fetched.data))
        return MediaAsset(url=url, key=key, expires_at=expires_at)

    def speech_input(self, content: str) -> str:
        # Speech synthesis is never sent markup
        text = truncate_words(strip_markup(content), self.settings.tts_max_chars)
        if not text:
            raise ProviderError("no speakable text in article content", stage="audio")
        return text

    async def synthesize_speech(self, content: str) -> bytes:
        text = self.speech_input(content)
        return await self.retry.run(lambda: self.provider.synthesize_speech(text), stage="audio")

    async def acquire_audio(self, content: str, title: str) -> MediaAsset:
        audio = await self.synthesize_speech(content)

        if self.settings.audio_storage == "object_store":
            key = object_key(title, "mp3")
            await self.retry.run(
                lambda: self.store.put(key, audio, AUDIO_CONTENT_TYPE, self.settings.image_cache_control),
                stage="audio",
            )
            url, expires_at = self.store.signed_url(key, self.url_ttl)
            return MediaAsset(url=url, key=key, expires_at=expires_at)

        encoded = base64.b64encode(audio).decode("ascii")
        return MediaAsset(url=f"data:{AUDIO_CONTENT_TYPE};base64,{encoded}")

async def refresh_signed_urls(session: AsyncSession, store: ObjectStore, settings: Settings) -> int:
    """Re-sign stored media URLs that expire within the refresh margin."""
    cutoff = utc_now() + dt.timedelta(hours=settings.media_refresh_margin_hours)
    ttl = dt.timedelta(days=settings.signed_url_ttl_days)

    stmt = select(Article).where(
        or_(
            and_(Article.image_key.is_not(None), or_(Article.image_expires_at.is_(None), Article.image_expires_at < cutoff)),
            and_(Article.audio_key.is_not(None), or_(Article.audio_expires_at.is_(None), Article.audio_expires_at < cutoff)),
        )
    )
    try:
        articles = (await session.execute(stmt)).scalars().all()
        refreshed = 0
        for a in articles:
            if a.image_key and (a.image_expires_at is None or a.image_expires_at < cutoff):
                a.image_url, a.image_expires_at = store.signed_url(a.image_key, ttl)
                refreshed += 1
            if a.audio_key and (a.audio_expires_at is None or a.audio_expires_at < cutoff):
                a.audio_url, a.audio_expires_at = store.signed_url(a.audio_key, ttl)
                refreshed += 1
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        raise DatabaseError(f"media refresh failed: {e}") from e

    if refreshed:
        logger.info("Re-signed %d media URLs across %d articles", refreshed, len(articles))
    return refreshed
