from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import utc_now
from app.core.errors import DatabaseError, NotFoundError
from app.models import Article, Citation
from app.services.media import MediaAsset
from app.services.validator import ArticleDraft

@dataclass
class ArticlePage:
    articles: list[Article]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

async def _commit(session: AsyncSession, what: str) -> None:
    try:
        await session.commit()
    except (SQLAlchemyError, OverflowError) as e:
        await session.rollback()
        raise DatabaseError(f"{what} failed: {type(e).__name__}: {e}") from e

# SQLite INTEGER is a signed 64-bit value; larger ids cannot match any row
MAX_ROW_ID = 2**63 - 1

def _storable_ids(ids: Iterable[int]) -> set[int]:
    return {i for i in ids if -MAX_ROW_ID <= i <= MAX_ROW_ID}

def _newest_first(stmt):
    return stmt.order_by(Article.created_at.desc(), Article.id.desc())

async def create_article(
    session: AsyncSession,
    draft: ArticleDraft,
    *,
    topic: Optional[str] = None,
    length: Optional[str] = None,
    user_id: Optional[int] = None,
    image: Optional[MediaAsset] = None,
    audio: Optional[MediaAsset] = None,
) -> Article:
    """Insert the article and its citations in a single transaction."""
    now = utc_now()
    article = Article(
        user_id=user_id,
        title=draft.title,
        content=draft.content,
        summary=draft.summary,
        topic=topic,
        length=length,
        image_url=image.url if image else None,
        image_key=image.key if image else None,
        image_expires_at=image.expires_at if image else None,
        audio_url=audio.url if audio else None,
        audio_key=audio.key if audio else None,
        audio_expires_at=audio.expires_at if audio else None,
        archived=False,
        created_at=now,
        updated_at=now,
    )
    citations = [
        Citation(
            article=article,
            source=c.source,
            author=c.author,
            year=c.year,
            url=c.url,
            quote=c.quote,
        )
        for c in draft.citations
    ]
    session.add(article)
    session.add_all(citations)
    await _commit(session, "article insert")
    return article

async def list_articles(session: AsyncSession, archived: bool, page: int, limit: int) -> ArticlePage:
    try:
        total = (await session.execute(
            select(func.count(Article.id)).where(Article.archived == archived)
        )).scalar_one()
        offset = (page - 1) * limit
        # Pages past the end are empty; huge offsets also overflow SQLite's integer bind
        if offset >= total:
            return ArticlePage(articles=[], total=total, page=page, limit=limit)
        stmt = _newest_first(select(Article).where(Article.archived == archived))
        rows = (await session.execute(stmt.offset(offset).limit(limit))).scalars().all()
    except SQLAlchemyError as e:
        raise DatabaseError(f"article listing failed: {e}") from e
    return ArticlePage(articles=list(rows), total=total, page=page, limit=limit)

async def get_article(session: AsyncSession, article_id: int) -> Article:
    if not _storable_ids([article_id]):
        raise NotFoundError("Article not found")
    a = (await session.execute(select(Article).where(Article.id == article_id))).scalars().first()
    if not a:
        raise NotFoundError("Article not found")
    return a

async def get_citations(session: AsyncSession, article_id: int) -> list[Citation]:
    # An article without citations (or no article at all) is an empty list, not an error
    if not _storable_ids([article_id]):
        return []
    stmt = select(Citation).where(Citation.article_id == article_id).order_by(Citation.id.asc())
    return list((await session.execute(stmt)).scalars().all())

async def set_archived(session: AsyncSession, article_id: int, archived: bool) -> Article:
    a = await get_article(session, article_id)
    a.archived = archived
    a.updated_at = utc_now()
    await _commit(session, "archive update")
    return a

async def bulk_set_archived(session: AsyncSession, article_ids: Iterable[int], archived: bool) -> list[Article]:
    """Apply ``archived`` to every existing id; unknown ids are skipped.

    Raises NotFoundError only when none of the ids exist.
    """
    ids = _storable_ids(article_ids)
    if not ids:
        raise NotFoundError("No matching articles found")
    matched = (await session.execute(select(Article.id).where(Article.id.in_(ids)))).scalars().all()
    if not matched:
        raise NotFoundError("No matching articles found")

    await session.execute(
        update(Article)
        .where(Article.id.in_(matched))
        .values(archived=archived, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    await _commit(session, "bulk archive update")

    stmt = _newest_first(select(Article).where(Article.id.in_(matched)))
    return list((await session.execute(stmt.execution_options(populate_existing=True))).scalars().all())
