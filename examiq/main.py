"""Main FastAPI application for ExamIQ AI service."""
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from examiq.api.routes import generation, health, materials, tutor
from examiq.config import settings
from examiq.logging_utils import configure_logging
from examiq.services.llm.base import LLMProvider
from examiq.services.progress import ProgressRegistry
from examiq.services.storage import InMemoryMaterialStore, MaterialStore, PostgresMaterialStore

configure_logging()
logger = logging.getLogger(__name__)


def create_app(
    provider: Optional[LLMProvider] = None,
    store: Optional[MaterialStore] = None,
) -> FastAPI:
    """Build the application; provider and store default to configuration."""
    app = FastAPI(
        title="ExamIQ AI Service",
        description="AI microservice for study notes, practice questions, and tutoring",
        version="0.1.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # In development, allow all origins for ease of testing
    allowed_origins = ["*"] if settings.is_development else [settings.FRONTEND_URL]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if store is None:
        store = PostgresMaterialStore() if settings.DATABASE_URL else InMemoryMaterialStore()

    # A None provider is resolved per request through LLMFactory
    app.state.provider = provider
    app.state.store = store
    app.state.registry = ProgressRegistry(retention=settings.PROGRESS_RETENTION)

    app.include_router(health.router, tags=["Health"])
    app.include_router(generation.router, tags=["Generation"])
    app.include_router(materials.router, tags=["Materials"])
    app.include_router(tutor.router, tags=["Tutor"])

    @app.on_event("startup")
    async def startup_event():
        """Initialize services on startup."""
        logger.info(f"ExamIQ AI Service starting in {settings.ENVIRONMENT} mode")
        logger.info(f"LLM Provider: {settings.LLM_PROVIDER}")

        if isinstance(app.state.store, PostgresMaterialStore):
            from examiq.db.connection import init_schema

            try:
                await init_schema()
                logger.info("Database schema ready")
            except Exception as e:
                logger.error(f"Database connection failed: {e}")
                raise
        else:
            logger.info("Storing materials in memory")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Cleanup on shutdown."""
        if isinstance(app.state.store, PostgresMaterialStore):
            from examiq.db.connection import close_db_pool

            await close_db_pool()

        logger.info("ExamIQ AI Service shutting down")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "examiq.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
    )
