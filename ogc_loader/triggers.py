# ============================================================================
# CONTEXT - OGC LOADER TRIGGERS
# ============================================================================
# STATUS: HTTP Triggers - Loader endpoints
# PURPOSE: Azure Functions HTTP triggers exposing metadata, full-extent loads
#          and text search against the upstream OGC API Features service
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: get_loader_triggers, error_status
# INTERFACES: Azure Functions HttpRequest/HttpResponse
# PYDANTIC_MODELS: LoadQueryParameters, LoadedFeatureCollection, SearchResult
# DEPENDENCIES: azure.functions, httpx, pydantic, json
# SOURCE: HTTP requests from clients (web maps, QGIS, curl)
# PATTERNS: Trigger Pattern, Factory Pattern (get_loader_triggers)
# ENTRY_POINTS: Function App route registration via get_loader_triggers()
# ============================================================================

"""
OGC Loader HTTP Triggers - Azure Functions Handlers

Endpoints:
- GET /api/loader/collections/{collection_id}
      Upstream collection metadata plus the detected paging strategy
- GET /api/loader/collections/{collection_id}/items?bbox=...&map_crs=...
      Runs one load session for the extent, returns a GeoJSON FeatureCollection
- GET /api/loader/collections/{collection_id}/search?q=...&property=...&limit=...
      Wildcard text search on one property

Error mapping:
    400  invalid request parameters or configuration
    502  upstream service failed (metadata, probe, page, decode, search)
    500  anything else

Integration:
    In function_app.py:

    from ogc_loader import get_loader_triggers

    for trigger in get_loader_triggers():
        app.route(
            route=trigger['route'],
            methods=trigger['methods'],
            auth_level=func.AuthLevel.ANONYMOUS
        )(trigger['handler'])
"""

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import azure.functions as func
import httpx
from pydantic import ValidationError

from config import AppConfig, get_app_config
from util_logger import LoggerFactory, ComponentType

from .exceptions import (
    CollectionInfoError,
    FeatureDecodeError,
    PageFetchError,
    PageLimitExceededError,
    SearchError,
)
from .metadata import CollectionMetadataCache
from .models import LoadedFeatureCollection, LoadQueryParameters
from .search_source import OGCFeatureSearchSource
from .store import InMemoryFeatureStore
from .strategy import select_strategy
from .vector_source import LoadState, OGCFeaturesVectorSource

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "LoaderTriggers")

ClientFactory = Callable[[], httpx.AsyncClient]

UPSTREAM_ERRORS = (
    CollectionInfoError,
    PageFetchError,
    FeatureDecodeError,
    PageLimitExceededError,
    SearchError,
)

DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 1000


def error_status(error: BaseException) -> Tuple[int, str]:
    """Map a loader error to (HTTP status, error code)."""
    if isinstance(error, UPSTREAM_ERRORS):
        return 502, "BadGateway"
    if isinstance(error, (ValidationError, ValueError)):
        return 400, "BadRequest"
    return 500, "InternalServerError"


# ============================================================================
# TRIGGER REGISTRY FUNCTION
# ============================================================================

def get_loader_triggers(client_factory: Optional[ClientFactory] = None) -> List[Dict[str, Any]]:
    """
    Get list of loader trigger configurations for function_app.py.

    Args:
        client_factory: Creates the shared upstream HTTP client (defaults to
            an httpx.AsyncClient with the configured timeout)

    Returns:
        List of dicts with keys:
        - route: URL route pattern
        - methods: List of HTTP methods
        - handler: Async trigger handler
    """
    return [
        {
            'route': 'loader/collections/{collection_id}',
            'methods': ['GET'],
            'handler': LoaderCollectionTrigger(client_factory).handle
        },
        {
            'route': 'loader/collections/{collection_id}/items',
            'methods': ['GET'],
            'handler': LoaderItemsTrigger(client_factory).handle
        },
        {
            'route': 'loader/collections/{collection_id}/search',
            'methods': ['GET'],
            'handler': LoaderSearchTrigger(client_factory).handle
        }
    ]


# ============================================================================
# BASE TRIGGER CLASS
# ============================================================================

class BaseLoaderTrigger:
    """
    Base class for loader triggers.

    Provides common functionality:
    - Lazy configuration and upstream HTTP client
    - Per-collection metadata caches shared across requests
    - JSON response formatting
    - Error responses
    """

    def __init__(self, client_factory: Optional[ClientFactory] = None):
        self._client_factory = client_factory
        self._client: Optional[httpx.AsyncClient] = None
        self._metadata_caches: Dict[str, CollectionMetadataCache] = {}

    @property
    def config(self) -> AppConfig:
        return get_app_config()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if self._client_factory is not None:
                self._client = self._client_factory()
            else:
                self._client = httpx.AsyncClient(timeout=self.config.http_timeout_seconds)
        return self._client

    def _get_metadata_cache(self, collection_id: str) -> CollectionMetadataCache:
        cache = self._metadata_caches.get(collection_id)
        if cache is None:
            cache = CollectionMetadataCache(self._get_client(), self.config.ogc_service_url, collection_id)
            self._metadata_caches[collection_id] = cache
        return cache

    def _json_response(
        self,
        data: Any,
        status_code: int = 200,
        content_type: str = "application/json"
    ) -> func.HttpResponse:
        """
        Create JSON HTTP response.

        Args:
            data: Data to serialize (dict, Pydantic model, etc.)
            status_code: HTTP status code
            content_type: Response content type

        Returns:
            Azure Functions HttpResponse
        """
        if hasattr(data, 'model_dump'):
            data = data.model_dump(mode='json', exclude_none=True)

        return func.HttpResponse(
            body=json.dumps(data, indent=2),
            status_code=status_code,
            mimetype=content_type
        )

    def _error_response(
        self,
        message: str,
        status_code: int = 400,
        error_type: str = "BadRequest"
    ) -> func.HttpResponse:
        error_body = {
            "code": error_type,
            "description": message
        }
        return func.HttpResponse(
            body=json.dumps(error_body, indent=2),
            status_code=status_code,
            mimetype="application/json"
        )

    def _exception_response(self, error: BaseException) -> func.HttpResponse:
        status_code, error_type = error_status(error)
        return self._error_response(message=str(error), status_code=status_code, error_type=error_type)


# ============================================================================
# ENDPOINT TRIGGERS
# ============================================================================

class LoaderCollectionTrigger(BaseLoaderTrigger):
    """
    Upstream collection metadata trigger.

    Endpoint: GET /api/loader/collections/{collection_id}
    """

    async def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        collection_id = req.route_params.get('collection_id')
        if not collection_id:
            return self._error_response(message="Collection ID is required", status_code=400)

        try:
            cache = self._get_metadata_cache(collection_id)
            metadata = await cache.get_metadata()
            capabilities = await cache.get_capabilities()
        except CollectionInfoError as e:
            return self._exception_response(e)
        except Exception as e:
            logger.error(f"Error getting collection metadata: {e}", exc_info=True)
            return self._exception_response(e)

        body = metadata.model_dump(mode='json', exclude_none=True)
        body['supportsOffsetStrategy'] = capabilities.supports_offset_strategy
        body['strategy'] = select_strategy(
            self.config.ogc_strategy, capabilities.supports_offset_strategy
        ).value

        logger.info(f"Collection metadata requested for '{collection_id}'")
        return self._json_response(body)


class LoaderItemsTrigger(BaseLoaderTrigger):
    """
    Full-extent load trigger (main endpoint).

    Endpoint: GET /api/loader/collections/{collection_id}/items

    Query Parameters:
    - bbox: Extent (minx,miny,maxx,maxy) in map CRS (required)
    - map_crs: CRS of the extent (default EPSG:4326)
    - strategy: Force "next" or "offset" (default: auto-detect)
    """

    async def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        collection_id = req.route_params.get('collection_id')
        if not collection_id:
            return self._error_response(message="Collection ID is required", status_code=400)

        try:
            params = LoadQueryParameters(**{
                k: v for k, v in req.params.items()
                if k in ('bbox', 'map_crs', 'strategy')
            })
            options = self.config.source_options(collection_id, params.strategy)
        except ValidationError as e:
            return self._error_response(message=f"Invalid query parameters: {str(e)}", status_code=400)

        store = InMemoryFeatureStore()
        source = OGCFeaturesVectorSource(
            options,
            self._get_client(),
            store,
            metadata_cache=self._get_metadata_cache(collection_id)
        )
        session = await source.load(params.bbox, params.map_crs)

        if session.state is not LoadState.SUCCEEDED:
            logger.warning(
                f"Load for '{collection_id}' ended {session.state.value}: {session.error}",
                extra={'custom_dimensions': {
                    'collection_id': collection_id,
                    'session_id': session.session_id
                }}
            )
            return self._exception_response(session.error)

        feature_collection = LoadedFeatureCollection(
            features=store.features,
            numberReturned=len(store.features),
            strategy=session.strategy.value if session.strategy else None,
            crs=session.request_crs,
            timeStamp=datetime.now(timezone.utc).isoformat()
        )

        logger.info(
            f"Feature load: collection='{collection_id}', "
            f"returned={feature_collection.numberReturned}, "
            f"strategy={feature_collection.strategy}"
        )

        return self._json_response(feature_collection, content_type="application/geo+json")


class LoaderSearchTrigger(BaseLoaderTrigger):
    """
    Text search trigger.

    Endpoint: GET /api/loader/collections/{collection_id}/search

    Query Parameters:
    - q: Search text (required)
    - property: Property to search (default: configured search property)
    - limit: Max results (1-1000, default 10)
    """

    async def handle(self, req: func.HttpRequest) -> func.HttpResponse:
        collection_id = req.route_params.get('collection_id')
        if not collection_id:
            return self._error_response(message="Collection ID is required", status_code=400)

        text = req.params.get('q')
        if not text:
            return self._error_response(message="Query parameter 'q' is required", status_code=400)

        try:
            limit = int(req.params.get('limit', DEFAULT_SEARCH_LIMIT))
        except ValueError:
            return self._error_response(message="Query parameter 'limit' must be an integer", status_code=400)
        if not 1 <= limit <= MAX_SEARCH_LIMIT:
            return self._error_response(
                message=f"Query parameter 'limit' must be between 1 and {MAX_SEARCH_LIMIT}",
                status_code=400
            )

        try:
            options = self.config.search_options(collection_id, req.params.get('property'))
            results = await OGCFeatureSearchSource(options, self._get_client()).search(text, limit)
        except SearchError as e:
            logger.warning(f"Search on '{collection_id}' failed: {e}")
            return self._exception_response(e)
        except ValidationError as e:
            return self._error_response(message=f"Invalid query parameters: {str(e)}", status_code=400)
        except Exception as e:
            logger.error(f"Error searching features: {e}", exc_info=True)
            return self._exception_response(e)

        logger.info(f"Search: collection='{collection_id}', q='{text}', returned={len(results)}")
        return self._json_response({
            "collection": collection_id,
            "query": text,
            "numberReturned": len(results),
            "results": [result.model_dump(mode='json') for result in results]
        })
