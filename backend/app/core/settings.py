# backend/app/core/settings.py
"""
ZRP BOM Engine - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Calculate path to .env in project root (4 levels up from this file)
# backend/app/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


def _split_csv(v):
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "ZRP BOM Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Upstream Operations API
    # ===================
    OPS_API_URL: str = Field(
        default="http://localhost:9000/api/v1",
        description="Base URL of the operations API that owns parts, orders and inventory",
    )
    OPS_API_KEY: Optional[str] = Field(default=None, description="Bearer key sent upstream")
    OPS_API_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        return _split_csv(v)

    # ===================
    # BOM Resolution
    # ===================
    ASSEMBLY_IPN_PREFIXES: List[str] = Field(
        default=["ASY-", "PCA-"],
        description="Fallback assembly predicate when a part record carries no is_assembly flag",
    )
    BOM_MAX_DEPTH: int = Field(default=25, ge=1, description="Deepest BOM level the walker will visit")
    BOM_DEFAULT_EXPANDED_DEPTH: int = Field(
        default=2, ge=0, description="Tree rows shallower than this start expanded"
    )

    @field_validator("ASSEMBLY_IPN_PREFIXES", mode="before")
    @classmethod
    def parse_assembly_prefixes(cls, v):
        v = _split_csv(v)
        if isinstance(v, list):
            return [str(prefix).upper() for prefix in v]
        return v

    # ===================
    # Inventory Netting
    # ===================
    TRUST_SERVER_SHORTAGE_STATUS: bool = Field(
        default=False,
        description="Keep the server's shortage labels instead of recomputing them",
    )

    # ===================
    # Procurement
    # ===================
    OPEN_PO_STATUSES: List[str] = Field(
        default=["submitted", "partial"],
        description="Purchase order states that accept receipts",
    )

    @field_validator("OPEN_PO_STATUSES", mode="before")
    @classmethod
    def parse_open_statuses(cls, v):
        v = _split_csv(v)
        if isinstance(v, list):
            return [str(s).lower() for s in v]
        return v

    # ===================
    # Polling
    # ===================
    POLL_INTERVAL_SECONDS: float = Field(default=5.0, gt=0)

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # json or text
    LOG_FILE: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Singleton settings loader (cached)."""
    return Settings()


settings = get_settings()
