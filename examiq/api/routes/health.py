"""Health check endpoints."""
from fastapi import APIRouter

from examiq.config import settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "examiq-ai",
        "environment": settings.ENVIRONMENT,
        "llm_provider": settings.LLM_PROVIDER,
        "storage": "postgres" if settings.DATABASE_URL else "memory",
    }


@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "ExamIQ AI Service",
        "version": "0.1.0",
        "status": "running",
    }
