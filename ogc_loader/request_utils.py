# ============================================================================
# CONTEXT - REQUEST URL BUILDER
# ============================================================================
# STATUS: Service Layer - URL construction and single-page queries
# PURPOSE: Build items URLs (bbox, crs, offset/limit), resolve next links,
#          issue one page request and decode it
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: collection_url, build_collection_request_url, build_offset_page_url,
#          extract_next_link, decode_geojson_features, query_features
# DEPENDENCIES: httpx (async)
# PATTERNS: Pure functions over immutable httpx.URL values
# ============================================================================

"""
Request URL Builder for OGC API Features items requests.

All URL helpers take and return httpx.URL values. httpx.URL is immutable,
so every helper works on a copy by construction and pass-through query
parameters already present on the base URL (e.g. access tokens) are kept.

Example:
    items_url = collection_url("https://example.com/ogcapi?token=abc", "collections", "roads", "items")
    # https://example.com/ogcapi/collections/roads/items?token=abc

    url = build_collection_request_url(items_url, (1, 2, 3, 4), "http://www.opengis.net/def/crs/EPSG/0/25832")
    # ...items?token=abc&bbox=1%2C2%2C3%2C4&bbox-crs=...&crs=...&f=json
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Union
from urllib.parse import quote

import httpx

from .cancellation import CancellationToken
from .exceptions import FeatureDecodeError, PageFetchError
from .models import Extent, FeatureBatchResponse

logger = logging.getLogger(__name__)

URLLike = Union[str, httpx.URL]

# Decodes a parsed items response into a list of features
FeatureDecoder = Callable[[Dict[str, Any]], List[Any]]

GEOJSON_HEADERS = {"Accept": "application/geo+json"}


def collection_url(base_url: URLLike, *segments: Any) -> httpx.URL:
    """
    Append path segments to a service base URL, keeping its query string.

    Args:
        base_url: Service URL, may carry pass-through query parameters
        *segments: Path segments (escaped individually)

    Returns:
        New URL, e.g. {base}/collections/{id}/items?{base query}
    """
    url = httpx.URL(str(base_url))
    path = url.path.rstrip("/")
    for segment in segments:
        path += "/" + quote(str(segment), safe="")
    return url.copy_with(path=path)


def format_coordinate(value: float) -> str:
    """Render a coordinate without a trailing '.0' for integral values."""
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def build_collection_request_url(base_items_url: URLLike, extent: Extent, crs: str) -> httpx.URL:
    """
    Build the items request URL for one extent.

    Sets bbox, bbox-crs, crs and f=json. Pure function.
    """
    url = httpx.URL(str(base_items_url))
    url = url.copy_set_param("bbox", ",".join(format_coordinate(c) for c in extent))
    url = url.copy_set_param("bbox-crs", crs)
    url = url.copy_set_param("crs", crs)
    url = url.copy_set_param("f", "json")
    return url


def build_offset_page_url(base_url: URLLike, offset: int, page_size: int) -> httpx.URL:
    """Add (or replace) the offset and limit parameters."""
    url = httpx.URL(str(base_url))
    url = url.copy_set_param("offset", str(offset))
    url = url.copy_set_param("limit", str(page_size))
    return url


def extract_next_link(links: Any) -> Optional[str]:
    """
    Return the href of the single link with rel="next".

    Zero or several "next" links both yield None: an ambiguous response is
    treated as having no usable next link.
    """
    if not isinstance(links, Sequence) or isinstance(links, (str, bytes)):
        return None

    hrefs = [
        link.get("href")
        for link in links
        if isinstance(link, dict) and link.get("rel") == "next"
    ]
    if len(hrefs) != 1:
        return None

    href = hrefs[0]
    if not isinstance(href, str) or not href:
        return None
    return href


def decode_geojson_features(payload: Dict[str, Any]) -> List[Any]:
    """
    Default decoder: return the GeoJSON feature objects as-is.

    Raises:
        FeatureDecodeError: payload is not a FeatureCollection
    """
    if payload.get("type", "FeatureCollection") != "FeatureCollection":
        raise FeatureDecodeError(f"Expected a GeoJSON FeatureCollection, got type {payload.get('type')!r}")
    features = payload.get("features", [])
    if not isinstance(features, list):
        raise FeatureDecodeError("FeatureCollection 'features' member is not an array")
    return list(features)


def _number_matched(payload: Dict[str, Any]) -> Optional[int]:
    value = payload.get("numberMatched")
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


async def query_features(
    client: httpx.AsyncClient,
    url: URLLike,
    decoder: Optional[FeatureDecoder] = None,
    token: Optional[CancellationToken] = None
) -> FeatureBatchResponse:
    """
    Fetch and decode one page of features.

    Args:
        client: Injected HTTP client
        url: Fully built page URL
        decoder: Feature decoder (defaults to plain GeoJSON dicts)
        token: Session cancellation token, if any

    Returns:
        FeatureBatchResponse with features, next link and numberMatched

    Raises:
        LoadCancelledError: token cancelled before or during the request
        PageFetchError: transport failure or non-200 status
        FeatureDecodeError: body is not decodable
    """
    request_url = httpx.URL(str(url))
    decode = decoder or decode_geojson_features

    request = client.get(request_url, headers=GEOJSON_HEADERS)
    try:
        if token is not None:
            response = await token.run(request)
        else:
            response = await request
    except httpx.HTTPError as e:
        raise PageFetchError(f"Request failed: {e}", url=str(request_url)) from e

    if response.status_code != 200:
        raise PageFetchError(
            f"Failed to load features (status code {response.status_code})",
            status_code=response.status_code,
            url=str(request_url)
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise FeatureDecodeError(f"Response is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise FeatureDecodeError("Response is not a JSON object")

    features = decode(payload)
    logger.debug(f"Decoded {len(features)} features from {request_url}")

    next_link = extract_next_link(payload.get("links"))
    if next_link is not None:
        # Relative hrefs are resolved against the request; absolute ones are kept
        next_link = str(request_url.join(next_link))

    return FeatureBatchResponse(
        features=features,
        next_link=next_link,
        number_matched=_number_matched(payload)
    )
