# topicsweep/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    ENV: str = "local"

    SERVICE_NAME: str | None = None
    FRONTEND_ORIGIN: str | None = None

    BETTERSTACK_API_KEY: str | None = None  # PRODUCTION MODE ONLY
    BETTERSTACK_HOST: str | None = None  # PRODUCTION MODE ONLY

    OTEL_SERVICE_NAME: str | None = None
    OTEL_SERVICE_VERSION: str | None = None
    OTEL_SAMPLE_RATIO: str | None = None
    OTEL_ENABLE_METRICS: str | None = None
    OTEL_ENABLE_TRACING: str | None = None

    # topic-count selection
    SELECTION_EXECUTOR: str = "process"  # "process" | "thread"
    SELECTION_MAX_WORKERS: int | None = None
    SELECTION_TIME_BUDGET_SECONDS: float | None = None
    DEFAULT_RANDOM_SEED: int | None = 2016
    MAX_DOCUMENTS: int = 20000
    RATE_LIMIT: str = "60/minute"

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
    )


settings = Settings()
