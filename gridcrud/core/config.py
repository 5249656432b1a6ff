from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "gridcrud"

    DATABASE_URL: str = "sqlite+pysqlite:///./gridcrud.db"
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False
    DB_CHECK_ON_STARTUP: bool = True
    DB_CREATE_SCHEMA: bool = True  # create missing tables at startup

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    RESOURCE_PATH: str = "/users"
    PAGINATION_MODE: Literal["page", "range", "none"] = "page"
    REQUEST_TIMEOUT_SECONDS: float = 10.0

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["text", "json"] = "text"

    HOST: str = "0.0.0.0"
    PORT: int = 8081

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
