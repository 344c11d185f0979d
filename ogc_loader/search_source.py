# ============================================================================
# CONTEXT - OGC FEATURES SEARCH SOURCE
# ============================================================================
# STATUS: Service Layer - Text search on one collection
# PURPOSE: Wildcard property search returning labelled results
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: OGCFeatureSearchSource, SearchResult
# PYDANTIC_MODELS: SearchResult
# DEPENDENCIES: httpx (async), pydantic, uuid
# ENTRY_POINTS: results = await OGCFeatureSearchSource(options, client).search("Main", 10)
# ============================================================================

"""
OGC Features Search Source.

Searches one collection by filtering `search_property` with a wildcard
pattern (`*text*`), as supported by queryable properties on most
OGC API Features servers.
"""

import uuid
from typing import Any, Dict, List, Optional, Union

import httpx
from pydantic import BaseModel, Field

from util_logger import LoggerFactory, ComponentType

from .cancellation import CancellationToken
from .config import OGCSearchSourceOptions
from .exceptions import SearchError
from .request_utils import collection_url

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "OGCFeatureSearchSource")

JSON_HEADERS = {"Accept": "application/json"}


class SearchResult(BaseModel):
    """One search hit."""
    id: Union[str, int] = Field(
        description="Feature id, or a generated UUID if the feature has none"
    )
    label: str = Field(
        description="Display label"
    )
    geometry: Optional[Dict[str, Any]] = Field(
        default=None,
        description="GeoJSON geometry as returned by the service"
    )
    properties: Dict[str, Any] = Field(
        default_factory=dict,
        description="Feature properties"
    )


class OGCFeatureSearchSource:
    """Search source for one OGC API Features collection."""

    def __init__(self, options: OGCSearchSourceOptions, client: httpx.AsyncClient):
        self.options = options
        self.client = client
        self.label = options.label

    def get_url(self, text: str, limit: int) -> httpx.URL:
        options = self.options
        url = collection_url(options.base_url, "collections", options.collection_id, "items")
        url = url.copy_set_param(options.search_property, f"*{text}*")
        url = url.copy_set_param("limit", str(limit))
        url = url.copy_set_param("f", "json")

        if options.rewrite_url is not None:
            rewritten = options.rewrite_url(url)
            if rewritten is not None:
                url = httpx.URL(str(rewritten))
        return url

    async def search(
        self,
        text: str,
        max_results: int,
        token: Optional[CancellationToken] = None
    ) -> List[SearchResult]:
        """
        Search features whose `search_property` contains `text`.

        Raises:
            SearchError: request failed or returned an unusable body
            LoadCancelledError: token was cancelled
        """
        url = self.get_url(text, max_results)
        request = self.client.get(url, headers=JSON_HEADERS)
        try:
            if token is not None:
                response = await token.run(request)
            else:
                response = await request
        except httpx.HTTPError as e:
            raise SearchError(f"Failed to search on OGC API Features service: {e}") from e

        if not response.is_success:
            raise SearchError(
                f"Failed to search on OGC API Features service "
                f"(request failed with status {response.status_code})"
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise SearchError(f"Failed to search on OGC API Features service: {e}") from e

        features = payload.get("features") if isinstance(payload, dict) else None
        if not isinstance(features, list):
            raise SearchError("Search response does not contain a features array")

        results = [self._create_result(feature) for feature in features if isinstance(feature, dict)]
        logger.debug(
            f"Search for '{text}' returned {len(results)} results",
            extra={'custom_dimensions': {'collection_id': self.options.collection_id}}
        )
        return results

    def _create_result(self, feature: Dict[str, Any]) -> SearchResult:
        properties = feature.get("properties") or {}
        feature_id = feature.get("id")
        return SearchResult(
            id=feature_id if feature_id is not None else str(uuid.uuid4()),
            label=self._render_label(feature, properties),
            geometry=feature.get("geometry"),
            properties=properties
        )

    def _render_label(self, feature: Dict[str, Any], properties: Dict[str, Any]) -> str:
        """
        render_label, then label_property, then search_property, else "".

        A property whose value is null counts as missing, so a null label
        falls through to the next candidate instead of rendering "None".
        """
        options = self.options
        if options.render_label is not None:
            custom_label = options.render_label(feature)
            if custom_label:
                return custom_label

        if options.label_property and properties.get(options.label_property) is not None:
            return str(properties[options.label_property])
        if properties.get(options.search_property) is not None:
            return str(properties[options.search_property])
        return ""
