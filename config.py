# ============================================================================
# CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for the upstream OGC API Features service
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: AppConfig, get_app_config, validate_configuration
# DEPENDENCIES: pydantic-settings, pydantic
# SOURCE: Environment variables, .env file
# PATTERNS: Singleton pattern for config (lru_cache)
# ============================================================================

"""
Application Configuration Module

Provides centralized configuration for the loader function app:
- Upstream OGC API Features service URL (may carry pass-through query
  parameters such as access tokens)
- Loader defaults (page size, concurrency, strategy override, page bound)
- HTTP client timeout

Environment Variables:
    OGC_SERVICE_URL          Upstream service URL (required)
    OGC_CRS                  Explicit request CRS for all collections (optional)
    OGC_LIMIT                Features per request (default: 5000)
    OGC_MAX_CONCURRENCY      Parallel requests for the offset strategy (default: 6)
    OGC_STRATEGY             Force "next" or "offset" (default: auto-detect)
    OGC_MAX_PAGES            Safety bound for next-link chains (default: unbounded)
    OGC_SEARCH_PROPERTY      Default search property (default: name)
    HTTP_TIMEOUT_SECONDS     Upstream request timeout (default: 30)

Usage:
    from config import get_app_config

    config = get_app_config()
    options = config.source_options("roads")
"""

import logging
from functools import lru_cache
from typing import Literal, Optional

import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        ogc_service_url: Upstream OGC API Features service URL
        ogc_crs: Explicit request CRS override
        ogc_limit: Features per request
        ogc_max_concurrency: Parallel requests (offset strategy)
        ogc_strategy: Forced paging strategy
        ogc_max_pages: Next-link safety bound
        ogc_search_property: Default property for text search
        http_timeout_seconds: Upstream request timeout
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Upstream service
    ogc_service_url: str = Field(..., description="OGC API Features service URL")
    ogc_crs: Optional[str] = Field(default=None, description="Explicit request CRS")

    # Loader defaults
    ogc_limit: int = Field(default=5000, ge=1, description="Features per request")
    ogc_max_concurrency: int = Field(
        default=6,
        ge=1,
        description="Maximum parallel requests (offset strategy)"
    )
    ogc_strategy: Optional[Literal["next", "offset"]] = Field(
        default=None,
        description="Force a paging strategy (auto-detected if not set)"
    )
    ogc_max_pages: Optional[int] = Field(
        default=None,
        ge=1,
        description="Safety bound for next-link chains"
    )
    ogc_search_property: str = Field(
        default="name",
        description="Default feature property for text search"
    )

    # HTTP client
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upstream request timeout in seconds"
    )

    @field_validator("ogc_strategy", "ogc_crs", "ogc_max_pages", mode="before")
    @classmethod
    def empty_as_unset(cls, v):
        """Empty environment values mean "not configured"."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("ogc_service_url")
    @classmethod
    def validate_service_url(cls, v: str) -> str:
        v = v.strip()
        if httpx.URL(v).scheme not in ("http", "https"):
            raise ValueError(f"OGC_SERVICE_URL must be an http(s) URL, got '{v}'")
        return v

    def source_options(self, collection_id: str, strategy: Optional[str] = None):
        """Vector source options for one collection of the upstream service."""
        from ogc_loader.config import OGCFeatureSourceOptions

        return OGCFeatureSourceOptions(
            base_url=self.ogc_service_url,
            collection_id=collection_id,
            crs=self.ogc_crs,
            limit=self.ogc_limit,
            max_concurrent_requests=self.ogc_max_concurrency,
            strategy=strategy or self.ogc_strategy,
            max_pages=self.ogc_max_pages
        )

    def search_options(self, collection_id: str, search_property: Optional[str] = None):
        """Search source options for one collection of the upstream service."""
        from ogc_loader.config import OGCSearchSourceOptions

        return OGCSearchSourceOptions(
            label=collection_id,
            base_url=self.ogc_service_url,
            collection_id=collection_id,
            search_property=search_property or self.ogc_search_property
        )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If required environment variables are missing
    """
    return AppConfig()


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> bool:
    """
    Validate configuration on application startup.

    Returns:
        bool: True if configuration is valid

    Raises:
        Exception: If configuration validation fails
    """
    try:
        config = get_app_config()
        logger.info("Configuration validation:")
        logger.info(f"  OGC Service: {config.ogc_service_url.split('?')[0]}")
        logger.info(f"  Request CRS: {config.ogc_crs or 'negotiated'}")
        logger.info(f"  Page size: {config.ogc_limit}")
        logger.info(f"  Max concurrency: {config.ogc_max_concurrency}")
        logger.info(f"  Strategy: {config.ogc_strategy or 'auto'}")
        logger.info(f"  Max pages: {config.ogc_max_pages or 'unbounded'}")

        # Test options construction for the loader package
        config.source_options("validation")
        logger.info("✅ Loader options built successfully")

        return True

    except Exception as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise


# ============================================================================
# Module Initialization
# ============================================================================

if __name__ == "__main__":
    # For testing configuration
    logging.basicConfig(level=logging.INFO)
    validate_configuration()
