from functools import lru_cache
from typing import Literal, Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # --- Upstream directories ---
    MEDICAID_BASE_URL: str = "https://psapi.ohpnm.omes.maximus.com/fhir/PublicSearchFHIR"
    MEDICAID_PROGRAM: str = "1"
    NPI_BASE_URL: str = "https://npiregistry.cms.hhs.gov/api/"
    NPI_API_VERSION: str = "2.1"
    NPI_RESULT_LIMIT: int = 50
    HOME_STATE: str = "OH"

    # --- HTTP timeouts ---
    HTTP_TIMEOUT: float = 5.0
    HTTP_CONNECT_TIMEOUT: float = 5.0

    # --- Aggregation policy ---
    REGISTRY_ON_EMPTY: bool = True
    REGISTRY_ALWAYS: bool = False

    # --- Enrichment store ---
    STORE_BACKEND: Literal["memory", "mongo"] = "memory"
    STORE_SEED_PATH: Optional[str] = None
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "provider_locator"
    MONGO_TIMEOUT_MS: int = 5000
    NAME_LOOKUP_LIMIT: int = 10
    REVIEW_LOOKUP_LIMIT: int = 50
    ENRICHMENT_CONCURRENCY: int = 8

    # --- API ---
    AUTH_REQUIRED: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


class SearchPolicy(BaseModel):
    """When the registry is consulted after the Medicaid directory."""

    registry_on_empty: bool = True
    registry_always: bool = False

    @classmethod
    def from_settings(cls, s: Settings) -> "SearchPolicy":
        return cls(registry_on_empty=s.REGISTRY_ON_EMPTY, registry_always=s.REGISTRY_ALWAYS)


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
