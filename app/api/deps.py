from __future__ import annotations

from fastapi import Depends, Request

from app.core.config import settings
from app.services.generation import ArticleOrchestrator
from app.services.media import MediaAcquirer
from app.services.storage import ObjectStore

# Provider, store and fetcher live on app.state, filled once by the app lifespan

def get_store(request: Request) -> ObjectStore:
    return request.app.state.store

def get_media(request: Request, store: ObjectStore = Depends(get_store)) -> MediaAcquirer:
    return MediaAcquirer(request.app.state.provider, store, request.app.state.fetcher, settings)

def get_orchestrator(request: Request, media: MediaAcquirer = Depends(get_media)) -> ArticleOrchestrator:
    return ArticleOrchestrator(request.app.state.provider, media, settings)
