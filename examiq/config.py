"""Configuration settings for ExamIQ AI service."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database (empty keeps materials in memory)
    DATABASE_URL: str = ""

    # LLM Configuration
    LLM_PROVIDER: str = "openai"  # openai, anthropic, gemini or mock

    # OpenAI
    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-5"

    # Anthropic (optional)
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-sonnet-4-5"

    # Gemini (optional)
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-pro"

    # Generation
    GENERATION_TEMPERATURE: float = 0.4
    GENERATION_MAX_TOKENS: int = 8192
    GENERATION_TIMEOUT_SECONDS: float = 120.0  # 0 disables the per-call timeout
    GENERATION_MAX_RETRIES: int = 2
    GENERATION_RETRY_BACKOFF_SECONDS: float = 2.0

    # Uploads
    MAX_UPLOAD_BYTES: int = 20 * 1024 * 1024

    # Number of finished requests whose progress stays pollable
    PROGRESS_RETENTION: int = 256

    # Service Configuration
    AI_INTERNAL_TOKEN: str = ""
    FRONTEND_URL: str = "http://localhost:3000"  # Frontend URL for CORS
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.ENVIRONMENT == "development"


# Global settings instance
settings = Settings()
