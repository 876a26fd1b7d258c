# app/core/config.py
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    NEO4J_URI: str
    NEO4J_USER: str
    NEO4J_PASSWORD: str
    REDIS_URL: str
    LIMITER_STORAGE_URI: str = ""
    RATE_LIMIT_ENABLED: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = [
        "http://localhost:8000",
        "http://localhost:8080",
    ]

    DEFAULT_GRAPH_NAME: str = "myGraph"
    # Upper bound on raw paths discovered by a single all-paths query.
    MAX_ENUMERATED_PATHS: int = 10_000
    # Maximum number of hops followed by the all-paths search; None is unbounded.
    MAX_PATH_DEPTH: int | None = None

    IDEMPOTENCY_TTL_SECONDS: int = 24 * 60 * 60
    READ_RETRIES: int = Field(default=3, ge=1)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
