from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    NODE_ENV: str = "development"

    # Remote document store (server side)
    DATABASE_URL: str = "sqlite:///./smart_lms.db"

    # Persistence client: remote first, local fallback
    API_URL: str = "http://127.0.0.1:5000/api"
    REQUEST_TIMEOUT: float = 2.0
    LOCAL_STORE_DIR: str = ".smart_lms"

    # Optional JSON file with {"users": [...], "courses": [...], "progress": [...]}
    SEED_DATA_FILE: Optional[str] = None

    # CORS configuration - comma-separated list of allowed origins
    CORS_ORIGINS: str = "*"

    # Generative AI features are optional; without a key they report as unavailable
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    LOG_LEVEL: str = "INFO"
    PORT: int = 5000

    @property
    def is_sqlite(self) -> bool:
        return self.DATABASE_URL.startswith("sqlite")

    model_config = SettingsConfigDict(env_file=".env.development", extra="ignore")


settings = Settings()
