# ============================================================================
# CONTEXT - CRS NEGOTIATOR
# ============================================================================
# STATUS: Service Layer - Request CRS resolution
# PURPOSE: Pick the CRS for items requests from map CRS, override and server list
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: get_request_crs, find_matching_crs, RequestCrsCache, DEFAULT_CRS
# DEPENDENCIES: logging, typing
# ============================================================================

"""
CRS negotiation for OGC API Features requests.

Resolution order:
    1. Explicitly configured CRS (always wins, even if the server does not list it)
    2. Map CRS, if the server lists it (EPSG:<code> is matched against
       http://www.opengis.net/def/crs/EPSG/0/<code>)
    3. CRS84 fallback, with a warning

Known limitation: only the "/EPSG/0/" URI form is recognized as equivalent
to the short "EPSG:<code>" form. This is not a general CRS URI
equivalence engine.
"""

import logging
from typing import Dict, Optional, Sequence

from .models import DEFAULT_CRS

logger = logging.getLogger(__name__)

EPSG_URI_TEMPLATE = "http://www.opengis.net/def/crs/EPSG/0/{code}"


def find_matching_crs(test_crs: str, available_crs_uris: Optional[Sequence[str]]) -> Optional[str]:
    """
    Find `test_crs` in the list of CRS URIs offered by the server.

    Args:
        test_crs: "EPSG:4326" or a full URI such as
            "http://www.opengis.net/def/crs/EPSG/0/4326"
        available_crs_uris: Server CRS list (may be None or empty)

    Returns:
        The matching URI from the list, or None
    """
    if not available_crs_uris:
        return None

    if test_crs.startswith("EPSG:"):
        code = test_crs.split(":", 1)[1]
        candidate = EPSG_URI_TEMPLATE.format(code=code)
    else:
        candidate = test_crs

    for crs_uri in available_crs_uris:
        if crs_uri == candidate:
            return crs_uri
    return None


def get_request_crs(
    map_crs: str,
    supported_crs: Optional[Sequence[str]],
    configured_crs: Optional[str]
) -> str:
    """Determine the CRS to use for feature requests."""
    if configured_crs:
        return configured_crs

    matching = find_matching_crs(map_crs, supported_crs)
    if not matching:
        logger.warning(
            f"Map CRS '{map_crs}' not supported. Falling back to default CRS '{DEFAULT_CRS}'."
        )
        return DEFAULT_CRS
    return matching


class RequestCrsCache:
    """
    Map CRS -> request CRS, per source instance.

    Append-only: each map CRS resolves deterministically, so a value is
    computed once on the first miss and reused afterwards.
    """

    def __init__(self, configured_crs: Optional[str] = None):
        self.configured_crs = configured_crs
        self._cache: Dict[str, str] = {}

    def resolve(self, map_crs: str, supported_crs: Optional[Sequence[str]]) -> str:
        request_crs = self._cache.get(map_crs)
        if request_crs is None:
            request_crs = get_request_crs(map_crs, supported_crs, self.configured_crs)
            self._cache[map_crs] = request_crs
        return request_crs

    def __contains__(self, map_crs: str) -> bool:
        return map_crs in self._cache

    def __len__(self) -> int:
        return len(self._cache)
