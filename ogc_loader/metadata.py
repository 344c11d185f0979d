# ============================================================================
# CONTEXT - COLLECTION METADATA CACHE
# ============================================================================
# STATUS: Service Layer - Collection metadata and capability probing
# PURPOSE: Fetch /collections/{id} metadata and probe offset support, memoized
#          once per source instance with clear-on-failure
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: get_collection_metadata, supports_offset_strategy, CollectionMetadataCache
# DEPENDENCIES: httpx (async), pydantic, asyncio
# PATTERNS: Memoized futures shared by concurrent callers
# ============================================================================

"""
Collection Metadata Cache.

Two lookups are needed before the first load of a source:
- Collection metadata (supported CRS list, attribution)
- Offset-strategy support (one probe request with limit=1)

Both are fetched lazily, once per source instance. Concurrent loads that
arrive while a lookup is in flight share the same future (and the same
error). A failed lookup is logged once and its memo slot is cleared, so the
next load retries instead of staying stuck on a transient error.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from util_logger import LoggerFactory, ComponentType

from .exceptions import CapabilityProbeError, MetadataFetchError
from .models import CollectionCapabilities, CollectionMetadata
from .request_utils import GEOJSON_HEADERS, URLLike, collection_url, extract_next_link

logger = LoggerFactory.create_logger(ComponentType.CACHE, "CollectionMetadataCache")

JSON_HEADERS = {"Accept": "application/json"}


async def get_collection_metadata(
    client: httpx.AsyncClient,
    base_url: URLLike,
    collection_id: str
) -> CollectionMetadata:
    """
    Request metadata for one collection.

    Args:
        client: Injected HTTP client
        base_url: Service URL (without the /collections part)
        collection_id: Collection to describe

    Returns:
        CollectionMetadata (unknown fields ignored)

    Raises:
        MetadataFetchError: non-2xx status, transport failure or unusable body
    """
    url = collection_url(base_url, "collections", collection_id)
    try:
        response = await client.get(url, headers=JSON_HEADERS)
    except httpx.HTTPError as e:
        raise MetadataFetchError(
            f"Failed to fetch collection metadata for collection '{collection_id}': {e}"
        ) from e

    if not response.is_success:
        raise MetadataFetchError(
            f"Failed to fetch collection metadata for collection '{collection_id}' "
            f"(status code {response.status_code})",
            status_code=response.status_code
        )

    try:
        data = response.json()
        if not isinstance(data, dict):
            raise ValueError("metadata document is not a JSON object")
        return CollectionMetadata.model_validate({"id": collection_id, **data})
    except (ValueError, ValidationError) as e:
        raise MetadataFetchError(
            f"Invalid collection metadata for collection '{collection_id}': {e}",
            status_code=response.status_code
        ) from e


async def supports_offset_strategy(
    client: httpx.AsyncClient,
    collection_items_url: URLLike
) -> bool:
    """
    Probe whether the service pages with the non-standard `offset` parameter.

    Issues a limit=1 request. The service qualifies only if the returned
    `next` link carries an `offset` parameter AND the response reports an
    integer numberMatched. No next link at all means "use the standard
    strategy": offset paging is only used when proven to work.

    Raises:
        CapabilityProbeError: non-200 status or transport failure
    """
    url = httpx.URL(str(collection_items_url))
    url = url.copy_set_param("limit", "1").copy_set_param("f", "json")
    try:
        response = await client.get(url, headers=GEOJSON_HEADERS)
    except httpx.HTTPError as e:
        raise CapabilityProbeError(f"Failed to probe collection information: {e}") from e

    if response.status_code != 200:
        raise CapabilityProbeError(
            f"Failed to probe collection information (status code {response.status_code})",
            status_code=response.status_code
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise CapabilityProbeError(f"Probe response is not valid JSON: {e}", status_code=200) from e
    if not isinstance(payload, dict):
        return False

    next_link = extract_next_link(payload.get("links"))
    if not next_link:
        return False

    has_offset = "offset" in url.join(next_link).params
    number_matched = payload.get("numberMatched")
    has_count = isinstance(number_matched, int) and not isinstance(number_matched, bool)
    return has_offset and has_count


class _Memo:
    """
    Memoized coroutine result with clear-on-failure.

    The shared future is shielded: a caller that gets cancelled does not
    cancel the lookup for the other callers.
    """

    def __init__(self, name: str, factory: Callable[[], Awaitable[Any]]):
        self.name = name
        self._factory = factory
        self._future: Optional[asyncio.Future] = None

    @property
    def resolved(self) -> bool:
        future = self._future
        return future is not None and future.done() and not future.cancelled() and future.exception() is None

    async def get(self) -> Any:
        if self._future is None:
            future = asyncio.ensure_future(self._factory())
            future.add_done_callback(self._on_done)
            self._future = future
        return await asyncio.shield(self._future)

    def _on_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            error = None
        else:
            error = future.exception()
        if future.cancelled() or error is not None:
            if self._future is future:
                self._future = None
        if error is not None:
            logger.error(
                f"Failed to retrieve {self.name}: {error}",
                extra={'custom_dimensions': {
                    'lookup': self.name,
                    'error_type': type(error).__name__,
                    'status_code': getattr(error, 'status_code', None)
                }}
            )

    def clear(self) -> None:
        self._future = None


class CollectionMetadataCache:
    """
    Per-source cache of collection metadata and offset capability.

    Usage:
        cache = CollectionMetadataCache(client, "https://example.com/ogcapi", "roads")
        metadata, capabilities = await asyncio.gather(
            cache.get_metadata(), cache.get_capabilities()
        )
    """

    def __init__(self, client: httpx.AsyncClient, base_url: URLLike, collection_id: str):
        self.client = client
        self.base_url = str(base_url)
        self.collection_id = collection_id
        self.items_url = collection_url(base_url, "collections", collection_id, "items")
        self._metadata = _Memo("collection metadata", self._fetch_metadata)
        self._capabilities = _Memo("collection capabilities", self._fetch_capabilities)

    async def _fetch_metadata(self) -> CollectionMetadata:
        metadata = await get_collection_metadata(self.client, self.base_url, self.collection_id)
        logger.debug(f"Collection metadata loaded for '{self.collection_id}' (crs={metadata.crs})")
        return metadata

    async def _fetch_capabilities(self) -> CollectionCapabilities:
        supported = await supports_offset_strategy(self.client, self.items_url)
        logger.debug(f"Offset strategy supported for '{self.collection_id}': {supported}")
        return CollectionCapabilities(supports_offset_strategy=supported)

    async def get_metadata(self) -> CollectionMetadata:
        return await self._metadata.get()

    async def get_capabilities(self) -> CollectionCapabilities:
        return await self._capabilities.get()

    @property
    def is_resolved(self) -> bool:
        """True once both lookups have completed successfully."""
        return self._metadata.resolved and self._capabilities.resolved

    def clear(self) -> None:
        """Forget both lookups (next call re-fetches)."""
        self._metadata.clear()
        self._capabilities.clear()
