# ============================================================================
# CONTEXT - OGC API FEATURES LOADER MODULE
# ============================================================================
# STATUS: Standalone Module - OGC API Features client loader
# PURPOSE: Load large, server-paginated feature collections for a viewport
#          extent with automatic strategy detection and cancellation
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OGCFeaturesVectorSource, OGCFeatureSearchSource, OGCFeatureSourceOptions,
#          OGCSearchSourceOptions, CancellationToken, get_loader_triggers
# INTERFACES: FeatureStore protocol (add_features, remove_loaded_extent, changed)
# PYDANTIC_MODELS: CollectionMetadata, LoadedFeatureCollection, SearchResult
# DEPENDENCIES: httpx, pydantic, azure-functions (triggers only)
# SOURCE: Any OGC API - Features service (Core, optionally CRS and offset paging)
# SCOPE: Client-side loading, no persistence, no spatial indexing
# PATTERNS: Orchestrator, Strategy, Memoized futures, Cancellation token
# ENTRY_POINTS: from ogc_loader import OGCFeaturesVectorSource, get_loader_triggers
# ============================================================================

"""
OGC API Features Loader - Standalone Module

Fetches potentially very large, server-paginated feature collections into
a feature store, one viewport extent at a time.

Features:
- Next-link paging (standards compliant, sequential)
- Offset/limit paging with bounded parallel requests (auto-detected)
- Cancellation of stale loads when the extent changes
- CRS negotiation against the collection's supported CRS list
- Memoized collection metadata with retry after failure
- Text search on a collection property

Architecture:
    ogc_loader/
    ├── exceptions.py       # Error kinds
    ├── cancellation.py     # Per-session cancellation token
    ├── config.py           # Per-source options (pydantic)
    ├── models.py           # Server documents and results
    ├── request_utils.py    # URL builder, single page request
    ├── crs.py              # Request CRS negotiation
    ├── metadata.py         # Metadata + offset probe cache
    ├── strategy.py         # Strategy selection
    ├── next_strategy.py    # Next-link paging
    ├── offset_strategy.py  # Offset paging
    ├── store.py            # Feature store contract
    ├── vector_source.py    # Load orchestrator
    ├── search_source.py    # Text search
    └── triggers.py         # Azure Functions HTTP handlers

Usage:
    async with httpx.AsyncClient() as client:
        source = OGCFeaturesVectorSource(
            OGCFeatureSourceOptions(base_url="https://example.com/ogcapi", collection_id="roads"),
            client,
            InMemoryFeatureStore()
        )
        session = await source.load((6.9, 51.9, 7.7, 52.1), "EPSG:4326")

Integration:
    # In function_app.py
    from ogc_loader import get_loader_triggers

    for trigger in get_loader_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.ANONYMOUS
        )(trigger['handler'])
"""

from .cancellation import CancellationToken, is_cancellation
from .config import OGCFeatureSourceOptions, OGCSearchSourceOptions
from .exceptions import (
    CapabilityProbeError,
    CollectionInfoError,
    FeatureDecodeError,
    InvalidConfigurationError,
    LoadCancelledError,
    MetadataFetchError,
    OGCLoaderError,
    PageFetchError,
    PageLimitExceededError,
    SearchError,
)
from .metadata import CollectionMetadataCache
from .models import CollectionMetadata, FeatureBatchResponse, LoadedFeatureCollection
from .search_source import OGCFeatureSearchSource, SearchResult
from .store import FeatureStore, InMemoryFeatureStore
from .strategy import StrategyKind, select_strategy
from .triggers import get_loader_triggers
from .vector_source import LoadSession, LoadState, OGCFeaturesVectorSource

__version__ = "1.0.0"
__all__ = [
    "CancellationToken",
    "is_cancellation",
    "OGCFeatureSourceOptions",
    "OGCSearchSourceOptions",
    "OGCLoaderError",
    "CollectionInfoError",
    "MetadataFetchError",
    "CapabilityProbeError",
    "PageFetchError",
    "FeatureDecodeError",
    "InvalidConfigurationError",
    "LoadCancelledError",
    "PageLimitExceededError",
    "SearchError",
    "CollectionMetadataCache",
    "CollectionMetadata",
    "FeatureBatchResponse",
    "LoadedFeatureCollection",
    "OGCFeatureSearchSource",
    "SearchResult",
    "FeatureStore",
    "InMemoryFeatureStore",
    "StrategyKind",
    "select_strategy",
    "get_loader_triggers",
    "LoadSession",
    "LoadState",
    "OGCFeaturesVectorSource",
]
