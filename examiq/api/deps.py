"""Request dependencies shared by the API routes."""
from typing import Optional

from fastapi import Header, HTTPException, Request

from examiq.config import settings
from examiq.services.llm.base import LLMProvider
from examiq.services.llm.factory import LLMFactory
from examiq.services.pipeline import GenerationPipeline
from examiq.services.progress import ProgressRegistry
from examiq.services.storage import MaterialStore
from examiq.services.tutor import TutorService


def verify_internal_token(x_ai_internal_token: Optional[str] = Header(default=None)) -> None:
    if settings.is_production and not settings.AI_INTERNAL_TOKEN:
        raise HTTPException(status_code=500, detail="AI_INTERNAL_TOKEN is not configured")
    if settings.AI_INTERNAL_TOKEN and x_ai_internal_token != settings.AI_INTERNAL_TOKEN:
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_provider(request: Request) -> LLMProvider:
    provider = getattr(request.app.state, "provider", None)
    if provider is not None:
        return provider
    try:
        return LLMFactory.get_provider()
    except ValueError as e:
        raise HTTPException(status_code=503, detail=f"LLM provider unavailable: {e}")


def get_store(request: Request) -> MaterialStore:
    return request.app.state.store


def get_registry(request: Request) -> ProgressRegistry:
    return request.app.state.registry


def get_pipeline(request: Request) -> GenerationPipeline:
    return GenerationPipeline(get_provider(request), get_store(request))


def get_tutor(request: Request) -> TutorService:
    return TutorService(get_provider(request))
