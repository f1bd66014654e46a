"""
Application settings loaded from environment variables.
"""

from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with type safety."""

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "mobile_specs"
    DATABASE_URL: Optional[str] = None  # Full URL overrides the DB_* parts

    # Connection pool
    DB_POOL_SIZE: int = 10
    DB_POOL_TIMEOUT: float = 30.0  # Seconds to wait for a free connection

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3001
    NODE_ENV: str = "development"

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # Data client
    API_BASE_URL: str = "http://localhost:3001/api"

    @property
    def database_url(self) -> str:
        """SQLAlchemy async URL for the catalog database."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+aiomysql://{quote_plus(self.DB_USER)}:{quote_plus(self.DB_PASSWORD)}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4"
        )

    @property
    def is_development(self) -> bool:
        return self.NODE_ENV.lower() == "development"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        return [origin.strip() for origin in self.FRONTEND_URL.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, extra="ignore"
    )


# Global settings instance
settings = Settings()
