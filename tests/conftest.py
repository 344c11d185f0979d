"""
Root conftest.py - sys.path, env vars, fake OGC API Features server.

Sets up the test environment so all production code can be imported
without an upstream service or Azure infrastructure.
"""

import asyncio
import os
import sys
from typing import Any, Dict, List, Optional

import httpx
import pytest

# Add project root to sys.path so 'ogc_loader', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

SERVICE_URL = "https://ogc.example.com/api"

# Read by config.AppConfig; set before any test imports config
_ENV_DEFAULTS = {
    "OGC_SERVICE_URL": f"{SERVICE_URL}?token=secret",
    "OGC_LIMIT": "5",
    "OGC_MAX_CONCURRENCY": "2",
}
for _key, _value in _ENV_DEFAULTS.items():
    os.environ.setdefault(_key, _value)


def make_feature(index: int) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "id": index,
        "geometry": {"type": "Point", "coordinates": [float(index), float(index)]},
        "properties": {"name": f"Feature {index}", "category": "road" if index % 2 else "path"},
    }


class FakeOGCServer:
    """
    Minimal OGC API Features server for httpx.MockTransport.

    - GET {base}                             landing page
    - GET {base}/conformance                 conformance declaration
    - GET {base}/collections/{id}            collection metadata
    - GET {base}/collections/{id}/items      paged features

    With supports_offset=True, pages are addressed with offset/limit and
    responses carry numberMatched. Otherwise next links use an opaque
    `cursor` parameter and numberMatched is omitted.
    """

    def __init__(
        self,
        total: int = 28,
        collection_id: str = "roads",
        supports_offset: bool = True,
        metadata: Optional[Dict[str, Any]] = None,
        metadata_status: int = 200,
        probe_status: int = 200,
        items_status: int = 200,
        delays: Optional[Dict[int, float]] = None,
        bbox_delays: Optional[Dict[str, float]] = None,
    ):
        self.features = [make_feature(i) for i in range(total)]
        self.collection_id = collection_id
        self.supports_offset = supports_offset
        self.metadata = metadata if metadata is not None else {
            "id": collection_id,
            "title": "Roads",
            "crs": [
                "http://www.opengis.net/def/crs/OGC/1.3/CRS84",
                "http://www.opengis.net/def/crs/EPSG/0/4326",
                "http://www.opengis.net/def/crs/EPSG/0/25832",
            ],
        }
        self.metadata_status = metadata_status
        self.probe_status = probe_status
        self.items_status = items_status
        self.delays = delays or {}
        self.bbox_delays = bbox_delays or {}
        self.requests: List[httpx.Request] = []

    # ------------------------------------------------------------------
    # Request bookkeeping
    # ------------------------------------------------------------------

    def _collection_path(self) -> str:
        return f"/api/collections/{self.collection_id}"

    @property
    def metadata_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == self._collection_path()]

    @property
    def probe_requests(self) -> List[httpx.Request]:
        return [r for r in self.items_requests_all if r.url.params.get("limit") == "1"]

    @property
    def items_requests_all(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == self._collection_path() + "/items"]

    @property
    def page_requests(self) -> List[httpx.Request]:
        """Items requests excluding the limit=1 capability probe."""
        return [r for r in self.items_requests_all if r.url.params.get("limit") != "1"]

    # ------------------------------------------------------------------
    # Handler
    # ------------------------------------------------------------------

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in ("/api", "/api/"):
            return httpx.Response(200, json={"title": "Fake OGC API", "links": []})
        if path == "/api/conformance":
            return httpx.Response(200, json={"conformsTo": [
                "http://www.opengis.net/spec/ogcapi-features-1/1.0/conf/core",
                "http://www.opengis.net/spec/ogcapi-features-2/1.0/conf/crs",
            ]})
        if path == self._collection_path():
            if self.metadata_status != 200:
                return httpx.Response(self.metadata_status, json={"code": "Error"})
            return httpx.Response(200, json=self.metadata)
        if path == self._collection_path() + "/items":
            return await self._items(request)
        return httpx.Response(404, json={"code": "NotFound"})

    async def _items(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        limit = int(params.get("limit", "10"))
        is_probe = limit == 1

        if is_probe and self.probe_status != 200:
            return httpx.Response(self.probe_status, json={"code": "Error"})
        if not is_probe and self.items_status != 200:
            return httpx.Response(self.items_status, json={"code": "Error"})

        features = self.features
        for key, value in params.items():
            if value.startswith("*") and value.endswith("*") and len(value) > 1:
                needle = value.strip("*").lower()
                features = [
                    f for f in features
                    if needle in str(f["properties"].get(key, "")).lower()
                ]

        position_param = "offset" if self.supports_offset else "cursor"
        start = int(params.get(position_param, "0"))

        delay = self.delays.get(start) or self.bbox_delays.get(params.get("bbox", ""))
        if delay:
            await asyncio.sleep(delay)

        page = features[start:start + limit]
        body: Dict[str, Any] = {
            "type": "FeatureCollection",
            "features": page,
            "numberReturned": len(page),
            "links": [{"rel": "self", "href": str(request.url)}],
        }
        if self.supports_offset:
            body["numberMatched"] = len(features)
        if start + limit < len(features):
            next_url = request.url.copy_set_param(position_param, str(start + limit))
            body["links"].append({"rel": "next", "href": str(next_url), "type": "application/geo+json"})
        return httpx.Response(200, json=body)


@pytest.fixture
def fake_server():
    """Factory fixture: build a FakeOGCServer with custom settings."""
    def _make(**kwargs) -> FakeOGCServer:
        return FakeOGCServer(**kwargs)
    return _make


@pytest.fixture
def make_client():
    """Factory fixture: AsyncClient backed by a fake server handler."""
    def _make(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return _make


@pytest.fixture
def service_url() -> str:
    return SERVICE_URL
