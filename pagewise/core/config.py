from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = "Pagewise Study Analysis API"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    cors_allowed_origins: str | list[str] = "http://localhost:5173"

    # Gemini Configuration
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash-latest"
    llm_timeout_seconds: int = 60
    llm_temperature: float = 0.7
    llm_page_max_tokens: int = 2500
    llm_quiz_max_tokens: int = 3000

    # Page Analysis Configuration
    analysis_initial_retry_delay_seconds: float = 2.0  # first backoff on rate limit
    analysis_max_attempts: int = 3  # total attempts per page, including the first
    analysis_inter_page_delay_seconds: float = 1.0  # polite delay between pages in a batch
    analysis_batch_concurrency: int = 5  # pages in flight during a comprehensive pass
    analysis_max_page_chars: int = 15000  # max chars of page text sent to the LLM
    analysis_min_page_chars: int = 50  # comprehensive pass skips pages below this

    # Study History Storage (MinIO)
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str = "pagewise_minio"
    minio_secret_key: str = "pagewise_minio_secret"
    minio_secure: bool = False
    minio_study_history_bucket: str = "study-history"

    # Session cache (Redis)
    redis_url: str = "redis://localhost:6379"
    redis_max_connections: int = 10
    session_cache_prefix: str = "pagewise:session"
    session_cache_ttl_seconds: int = 86400  # 1 day

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PAGEWISE_",
        extra="ignore",
    )

    @property
    def minio_buckets(self) -> list[str]:
        """Return the list of buckets the application requires."""

        return [self.minio_study_history_bucket]

    @property
    def resolved_cors_allowed_origins(self) -> list[str]:
        """Return the configured CORS origins as a normalized list."""

        if isinstance(self.cors_allowed_origins, str):
            return [
                origin.strip()
                for origin in self.cors_allowed_origins.split(",")
                if origin.strip()
            ]

        return list(self.cors_allowed_origins)


@lru_cache
def get_settings() -> Settings:
    """Cache settings to avoid re-parsing environment files."""
    return Settings()
