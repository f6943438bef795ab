"""Dependency providers and settings management."""

from functools import lru_cache

from fastapi import Header, HTTPException, status
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment or .env."""

    BACKEND_CORS_ORIGINS: str = "http://localhost:3000"

    # Period bucketer iteration cap; longer ranges come back truncated
    PERIOD_MAX_BUCKETS: int = 100
    CURRENCY_SYMBOL: str = "R$"
    DEFAULT_GRANULARITY: str = "day"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()  # type: ignore[call-arg]


def get_organization_id(
    organization_id: str | None = Header(default=None, alias="X-Organization-ID"),
) -> str:
    """Resolve the tenant organization from the `X-Organization-ID` header.

    Authentication is handled upstream; this only scopes every query.
    """
    if not organization_id or not organization_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Organization-ID header is required",
        )
    return organization_id.strip()
