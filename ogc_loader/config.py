# ============================================================================
# CONTEXT - OGC LOADER CONFIGURATION
# ============================================================================
# STATUS: Standalone Configuration - Per-source loader options
# PURPOSE: Validated options for vector sources and search sources
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OGCFeatureSourceOptions, OGCSearchSourceOptions, RewriteUrl,
#          DEFAULT_LIMIT, DEFAULT_CONCURRENCY
# INTERFACES: Pydantic BaseModel
# PYDANTIC_MODELS: OGCFeatureSourceOptions, OGCSearchSourceOptions
# DEPENDENCIES: pydantic, httpx, os
# SOURCE: Constructor arguments, environment variables for defaults
# VALIDATION: Pydantic v2 validation
# ENTRY_POINTS: from ogc_loader.config import OGCFeatureSourceOptions
# ============================================================================

"""
OGC Loader Configuration - Standalone

Per-source configuration for the feature loader. NO dependencies on the
application's config.py, so the package can be embedded anywhere.

Environment Variables (defaults only, explicit arguments always win):
    - OGC_LOADER_DEFAULT_LIMIT: Features per request (default: 5000)
    - OGC_LOADER_MAX_CONCURRENCY: Parallel requests for the offset strategy (default: 6)
"""

import os
from typing import Any, Callable, Literal, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_LIMIT = 5000
DEFAULT_CONCURRENCY = 6

# Receives a copy of the request URL, returns a new URL (or None to keep it)
RewriteUrl = Callable[[httpx.URL], Optional[httpx.URL]]


def _validate_base_url(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("base_url must not be empty")
    url = httpx.URL(v)
    if url.scheme not in ("http", "https"):
        raise ValueError(f"base_url must be an http(s) URL, got '{v}'")
    return v


class OGCFeatureSourceOptions(BaseModel):
    """
    Options for one OGC API Features vector source.

    Example:
        options = OGCFeatureSourceOptions(
            base_url="https://example.com/ogcapi?token=abc",
            collection_id="roads",
            crs="http://www.opengis.net/def/crs/EPSG/0/25832"
        )
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    base_url: str = Field(
        description="Service URL up to (not including) the /collections part; may carry query params"
    )
    collection_id: str = Field(
        min_length=1,
        description="Collection identifier"
    )
    crs: Optional[str] = Field(
        default=None,
        description="Explicit request CRS (e.g. http://www.opengis.net/def/crs/EPSG/0/25832)"
    )
    limit: int = Field(
        default_factory=lambda: int(os.getenv("OGC_LOADER_DEFAULT_LIMIT", str(DEFAULT_LIMIT))),
        ge=1,
        description="Features per request (page size for the offset strategy)"
    )
    max_concurrent_requests: int = Field(
        default_factory=lambda: int(os.getenv("OGC_LOADER_MAX_CONCURRENCY", str(DEFAULT_CONCURRENCY))),
        ge=1,
        description="Maximum parallel requests (offset strategy only)"
    )
    strategy: Optional[Literal["next", "offset"]] = Field(
        default=None,
        description="Force a paging strategy; auto-detected when not set"
    )
    max_pages: Optional[int] = Field(
        default=None,
        ge=1,
        description="Safety bound on the next-link chain (unbounded when not set)"
    )
    attributions: Optional[str] = Field(
        default=None,
        description="Attribution for the layer; metadata attribution is used when not set"
    )
    rewrite_url: Optional[RewriteUrl] = Field(
        default=None,
        description="Hook to rewrite request URLs; must return a new URL"
    )

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        return _validate_base_url(v)


class OGCSearchSourceOptions(BaseModel):
    """
    Options for a search source on one collection.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    label: str = Field(
        description="Source label, e.g. shown as a title for results"
    )
    base_url: str = Field(
        description="Service URL up to the /collections part; query params are reused for every request"
    )
    collection_id: str = Field(
        min_length=1,
        description="Collection identifier"
    )
    search_property: str = Field(
        min_length=1,
        description="Feature property used for filtering"
    )
    label_property: Optional[str] = Field(
        default=None,
        description="Property used as result label (defaults to search_property)"
    )
    render_label: Optional[Callable[[Any], Optional[str]]] = Field(
        default=None,
        description="Custom label function, receives the raw feature"
    )
    rewrite_url: Optional[RewriteUrl] = Field(
        default=None,
        description="Hook to rewrite request URLs; must return a new URL"
    )

    @field_validator("base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        return _validate_base_url(v)
