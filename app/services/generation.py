from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.core.errors import ArticleServiceError, InvalidInputError
from app.models import Article
from app.services import articles as article_store
from app.services.media import MediaAcquirer, MediaAsset
from app.services.prompts import (
    RESEARCH_SYSTEM_ROLE,
    ArticleLength,
    build_image_prompt,
    build_research_prompt,
)
from app.services.providers import GenerationProvider
from app.services.retry import RetryPolicy
from app.services.validator import parse_provider_reply, validate

logger = logging.getLogger(__name__)

class GenerationStage(str, Enum):
    IDLE = "idle"
    PROMPT_BUILT = "prompt_built"
    TEXT_GENERATED = "text_generated"
    VALIDATED = "validated"
    IMAGE_ACQUIRED = "image_acquired"
    AUDIO_ACQUIRED = "audio_acquired"
    PERSISTED = "persisted"
    DONE = "done"
    FAILED = "failed"

@dataclass
class GenerationRun:
    """In-memory trace of one generation request."""

    topic: str
    stage: GenerationStage = GenerationStage.IDLE
    history: list[GenerationStage] = field(default_factory=lambda: [GenerationStage.IDLE])
    durations: dict[str, float] = field(default_factory=dict)
    degraded: dict[str, str] = field(default_factory=dict)
    failed_stage: Optional[str] = None
    error: Optional[str] = None

    def advance(self, stage: GenerationStage) -> None:
        self.stage = stage
        self.history.append(stage)

    def fail(self, stage: str, exc: Exception) -> None:
        self.failed_stage = stage
        self.error = str(exc)
        self.advance(GenerationStage.FAILED)

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        start = time.monotonic()
        try:
            yield
        finally:
            self.durations[name] = round(time.monotonic() - start, 3)

    @property
    def total_seconds(self) -> float:
        return round(sum(self.durations.values()), 3)

@dataclass
class GenerationResult:
    article: Article
    run: GenerationRun

def _parse_length(length: ArticleLength | str | None, default: str) -> ArticleLength:
    try:
        return ArticleLength(length or default)
    except ValueError:
        allowed = ", ".join(l.value for l in ArticleLength)
        raise InvalidInputError(f"Length must be one of: {allowed}") from None

class ArticleOrchestrator:
    def __init__(self, provider: GenerationProvider, media: MediaAcquirer, settings: Settings):
        self.provider = provider
        self.media = media
        self.settings = settings
        self.retry = RetryPolicy.from_settings(settings)

    async def generate_article(
        self,
        session: AsyncSession,
        topic: object,
        length: ArticleLength | str | None = None,
        user_id: Optional[int] = None,
    ) -> GenerationResult:
        if not isinstance(topic, str) or not topic.strip():
            raise InvalidInputError("Topic is required and must be a non-empty string")
        topic = topic.strip()
        article_length = _parse_length(length, self.settings.default_length)

        run = GenerationRun(topic=topic)
        current = "prompt"
        try:
            prompt = build_research_prompt(topic, article_length)
            run.advance(GenerationStage.PROMPT_BUILT)

            current = "text"
            with run.timed("text"):
                reply = await self.retry.run(
                    lambda: self.provider.generate_text(RESEARCH_SYSTEM_ROLE, prompt, article_length),
                    stage="text",
                )
            run.advance(GenerationStage.TEXT_GENERATED)

            current = "validate"
            draft = validate(parse_provider_reply(reply))
            run.advance(GenerationStage.VALIDATED)

            image = await self._best_effort(run, "image", self._image(draft.title))
            run.advance(GenerationStage.IMAGE_ACQUIRED)

            audio = await self._best_effort(run, "audio", self.media.acquire_audio(draft.content, draft.title))
            run.advance(GenerationStage.AUDIO_ACQUIRED)

            current = "persist"
            with run.timed("persist"):
                article = await article_store.create_article(
                    session,
                    draft,
                    topic=topic,
                    length=article_length.value,
                    user_id=user_id,
                    image=image,
                    audio=audio,
                )
            run.advance(GenerationStage.PERSISTED)
        except ArticleServiceError as e:
            run.fail(e.stage or current, e)
            logger.error("Generation failed at stage %s for topic %r: %s", run.failed_stage, topic, e)
            raise

        run.advance(GenerationStage.DONE)
        logger.info(
            "Generated article %d for topic %r in %.1fs (%d citations%s)",
            article.id,
            topic,
            run.total_seconds,
            len(draft.citations),
            f", degraded: {', '.join(run.degraded)}" if run.degraded else "",
        )
        return GenerationResult(article=article, run=run)

    async def _image(self, title: str) -> MediaAsset:
        return await self.media.acquire_image(build_image_prompt(title), title)

    async def _best_effort(self, run: GenerationRun, stage: str, pending) -> Optional[MediaAsset]:
        try:
            with run.timed(stage):
                return await pending
        except ArticleServiceError as e:
            run.degraded[stage] = str(e)
            logger.warning("Continuing without %s for topic %r: %s", stage, run.topic, e)
            return None
