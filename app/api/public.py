from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, StrictStr
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_media, get_orchestrator
from app.core.config import settings
from app.core.db import get_db
from app.core.errors import InvalidInputError
from app.core.ratelimit import AI_TIER, API_TIER, GENERATION_TIER, SPEECH_TIER, rate_limit
from app.core.security import get_current_user
from app.models import Article, Citation, User
from app.services import articles as article_store
from app.services.generation import ArticleOrchestrator
from app.services.media import AUDIO_CONTENT_TYPE, MediaAcquirer
from app.services.prompts import ArticleLength

router = APIRouter(prefix="/api", tags=["articles"])

class GenerateRequest(BaseModel):
    topic: StrictStr
    length: Optional[ArticleLength] = None

class ArchiveRequest(BaseModel):
    archived: StrictBool

class BulkArchiveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    article_ids: list[StrictInt] = Field(alias="articleIds", min_length=1)
    archived: StrictBool

def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None

def serialize_article(a: Article) -> dict[str, Any]:
    return {
        "id": a.id,
        "title": a.title,
        "content": a.content,
        "summary": a.summary,
        "imageUrl": a.image_url,
        "audioUrl": a.audio_url,
        "archived": a.archived,
        "userId": a.user_id,
        "createdAt": _iso(a.created_at),
        "updatedAt": _iso(a.updated_at),
    }

def serialize_citation(c: Citation) -> dict[str, Any]:
    return {
        "id": c.id,
        "articleId": c.article_id,
        "source": c.source,
        "author": c.author,
        "year": c.year,
        "url": c.url,
        "quote": c.quote,
    }

@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}

@router.post(
    "/articles/generate",
    dependencies=[Depends(rate_limit(API_TIER, AI_TIER, GENERATION_TIER))],
)
async def generate_article(
    payload: GenerateRequest,
    session: AsyncSession = Depends(get_db),
    user: Optional[User] = Depends(get_current_user),
    orchestrator: ArticleOrchestrator = Depends(get_orchestrator),
):
    topic = payload.topic.strip()
    if len(topic) < settings.topic_min_chars:
        raise InvalidInputError(f"Topic must be at least {settings.topic_min_chars} characters")
    if len(topic) > settings.topic_max_chars:
        raise InvalidInputError(f"Topic must be at most {settings.topic_max_chars} characters")

    result = await orchestrator.generate_article(
        session,
        topic,
        length=payload.length,
        user_id=user.id if user else None,
    )
    return serialize_article(result.article)

@router.get("/articles", dependencies=[Depends(rate_limit(API_TIER))])
async def list_articles(
    show_archived: bool = Query(default=False, alias="showArchived"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    session: AsyncSession = Depends(get_db),
):
    limit = limit or settings.default_page_limit
    if limit > settings.max_page_limit:
        raise InvalidInputError(f"limit must be at most {settings.max_page_limit}")

    result = await article_store.list_articles(session, archived=show_archived, page=page, limit=limit)
    return {
        "articles": [serialize_article(a) for a in result.articles],
        "pagination": {
            "total": result.total,
            "page": result.page,
            "limit": result.limit,
            "totalPages": result.total_pages,
        },
    }

# Must be registered before /articles/{article_id}/archive so "bulk" is not parsed as an id
@router.patch("/articles/bulk/archive", dependencies=[Depends(rate_limit(API_TIER))])
async def bulk_archive(payload: BulkArchiveRequest, session: AsyncSession = Depends(get_db)):
    updated = await article_store.bulk_set_archived(session, payload.article_ids, payload.archived)
    return [serialize_article(a) for a in updated]

@router.get("/articles/{article_id}", dependencies=[Depends(rate_limit(API_TIER))])
async def get_article(article_id: int, session: AsyncSession = Depends(get_db)):
    return serialize_article(await article_store.get_article(session, article_id))

@router.get("/articles/{article_id}/citations", dependencies=[Depends(rate_limit(API_TIER))])
async def get_citations(article_id: int, session: AsyncSession = Depends(get_db)):
    citations = await article_store.get_citations(session, article_id)
    return [serialize_citation(c) for c in citations]

@router.post(
    "/articles/{article_id}/speech",
    dependencies=[Depends(rate_limit(API_TIER, AI_TIER, SPEECH_TIER))],
)
async def article_speech(
    article_id: int,
    session: AsyncSession = Depends(get_db),
    media: MediaAcquirer = Depends(get_media),
):
    # Regenerated on every call; nothing is cached or persisted
    article = await article_store.get_article(session, article_id)
    audio = await media.synthesize_speech(article.content)
    return Response(content=audio, media_type=AUDIO_CONTENT_TYPE)

@router.patch("/articles/{article_id}/archive", dependencies=[Depends(rate_limit(API_TIER))])
async def archive_article(article_id: int, payload: ArchiveRequest, session: AsyncSession = Depends(get_db)):
    return serialize_article(await article_store.set_archived(session, article_id, payload.archived))
