"""
Tests for the public and detailed health checks.
"""

import httpx
import pytest

from config import get_app_config
from health import (
    HealthStatus,
    check_loader_module,
    check_upstream_conformance,
    check_upstream_connectivity,
    get_detailed_health,
    get_public_health,
)


@pytest.fixture(autouse=True)
def fresh_config():
    get_app_config.cache_clear()
    yield
    get_app_config.cache_clear()


class TestChecks:

    @pytest.mark.asyncio
    async def test_connectivity_pass(self, fake_server, make_client, service_url):
        server = fake_server()
        result = await check_upstream_connectivity(make_client(server.handler), f"{service_url}?token=secret")

        assert result.status == "pass"
        assert result.details == {"host": "ogc.example.com", "status_code": 200}
        assert "secret" not in str(result.to_dict())

    @pytest.mark.asyncio
    async def test_connectivity_error_status(self, make_client, service_url):
        result = await check_upstream_connectivity(
            make_client(lambda r: httpx.Response(503)), service_url
        )
        assert result.status == "fail"
        assert result.details["status_code"] == 503

    @pytest.mark.asyncio
    async def test_connectivity_transport_error(self, make_client, service_url):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        result = await check_upstream_connectivity(make_client(handler), service_url)

        assert result.status == "fail"
        assert "ConnectTimeout" in result.message

    @pytest.mark.asyncio
    async def test_conformance(self, fake_server, make_client, service_url):
        server = fake_server()
        result = await check_upstream_conformance(make_client(server.handler), service_url)

        assert result.status == "pass"
        assert result.details == {"conformance_classes": 2, "crs_supported": True}

    @pytest.mark.asyncio
    async def test_conformance_bad_body(self, make_client, service_url):
        result = await check_upstream_conformance(
            make_client(lambda r: httpx.Response(200, content=b"<html/>")), service_url
        )
        assert result.status == "fail"

    def test_loader_module(self):
        result = check_loader_module()
        assert result.status == "pass"
        assert result.details["endpoints"] == 3


class TestHealthEndpoints:

    @pytest.mark.asyncio
    async def test_public_health(self, fake_server, make_client):
        server = fake_server()

        result = await get_public_health(make_client(server.handler))

        assert result["status"] == HealthStatus.HEALTHY.value
        assert set(result) == {"status", "timestamp"}

    @pytest.mark.asyncio
    async def test_public_health_unhealthy(self, make_client):
        result = await get_public_health(make_client(lambda r: httpx.Response(500)))
        assert result["status"] == HealthStatus.UNHEALTHY.value

    @pytest.mark.asyncio
    async def test_detailed_health(self, fake_server, make_client):
        server = fake_server()

        result = await get_detailed_health(make_client(server.handler))

        assert result["status"] == HealthStatus.HEALTHY.value
        assert result["app"] == "ogc-loader"
        assert set(result["checks"]) == {"upstream", "conformance", "loader_module"}

    @pytest.mark.asyncio
    async def test_detailed_health_degraded_without_conformance(self, make_client):
        def handler(request):
            if request.url.path.endswith("/conformance"):
                return httpx.Response(404)
            return httpx.Response(200, json={"title": "Landing"})

        result = await get_detailed_health(make_client(handler))

        assert result["status"] == HealthStatus.DEGRADED.value
        assert result["checks"]["conformance"]["status"] == "fail"
