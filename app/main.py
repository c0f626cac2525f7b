from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.db import dispose_engine, get_engine
from app.core.errors import ArticleServiceError, RateLimitedError
from app.core.logging_utils import setup_logging
from app.core.scheduler import start_scheduler, shutdown_scheduler
from app.api.public import router as public_router
from app.api.media import router as media_router
from app.api.users import router as users_router
from app.api.admin import router as admin_router
from app.services.fetcher import Fetcher
from app.services.providers import OpenAIProvider
from app.services.storage import LocalObjectStore

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = [
    '''
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        created_at DATETIME NOT NULL DEFAULT (CURRENT_TIMESTAMP)
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS articles (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        summary TEXT NOT NULL,
        topic TEXT,
        length TEXT,
        image_url TEXT,
        image_key TEXT,
        image_expires_at DATETIME,
        audio_url TEXT,
        audio_key TEXT,
        audio_expires_at DATETIME,
        archived BOOLEAN NOT NULL DEFAULT 0,
        created_at DATETIME NOT NULL DEFAULT (CURRENT_TIMESTAMP),
        updated_at DATETIME NOT NULL DEFAULT (CURRENT_TIMESTAMP),
        FOREIGN KEY(user_id) REFERENCES users(id) ON DELETE SET NULL
    );
    ''',
    '''
    CREATE TABLE IF NOT EXISTS citations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        article_id INTEGER NOT NULL,
        source TEXT NOT NULL,
        author TEXT,
        year INTEGER,
        url TEXT,
        quote TEXT,
        FOREIGN KEY(article_id) REFERENCES articles(id) ON DELETE CASCADE
    );
    ''',
    'CREATE INDEX IF NOT EXISTS ix_articles_archived_created ON articles(archived, created_at);',
    'CREATE INDEX IF NOT EXISTS ix_citations_article_id ON citations(article_id);',
]

async def create_tables() -> None:
    # Simple, no migration tool needed
    async with get_engine().begin() as conn:
        for stmt in CREATE_TABLES_SQL:
            await conn.execute(text(stmt))

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.log_level)
    await create_tables()

    # Capabilities already on app.state are kept
    if getattr(app.state, "provider", None) is None:
        app.state.provider = OpenAIProvider.from_settings(settings)
    if getattr(app.state, "store", None) is None:
        app.state.store = LocalObjectStore.from_settings(settings)
    if getattr(app.state, "fetcher", None) is None:
        app.state.fetcher = Fetcher(settings.user_agent, settings.request_timeout_seconds)

    if settings.media_refresh_enabled:
        start_scheduler(app.state.store)
    logger.info("Research articles API started (db=%s)", settings.db_path)
    try:
        yield
    finally:
        shutdown_scheduler()
        await dispose_engine()

app = FastAPI(title="Research Articles API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(ArticleServiceError)
async def service_error_handler(request: Request, exc: ArticleServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed (stage=%s): %s", request.method, request.url.path, exc.stage, exc)
    else:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc)
    headers = None
    if isinstance(exc, RateLimitedError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(status_code=exc.status_code, content={"error": exc.public_message}, headers=headers)

@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": message})

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})

app.include_router(public_router)
app.include_router(media_router)
app.include_router(users_router)
app.include_router(admin_router)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
