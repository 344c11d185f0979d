# ============================================================================
# CONTEXT - HEALTH CHECK MODULE
# ============================================================================
# STATUS: Core Infrastructure - Health Monitoring
# PURPOSE: Health checks for APIM integration and monitoring of the loader app
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: get_public_health, get_detailed_health, get_app_identity, HealthStatus
# DEPENDENCIES: httpx (async), config, util_logger
# PATTERNS: Two-tier health checks (public/detailed) for APIM
# ============================================================================

"""
Health Check Module for the OGC loader function app

Provides two-tier health monitoring optimized for Azure APIM integration:

1. Public Health (/api/health):
   - Minimal response for external callers
   - Returns only status and timestamp
   - Always returns 200 (status in body indicates health)

2. Detailed Health (/api/health/detailed):
   - Upstream OGC API Features landing page reachability with latency
   - Upstream conformance classes (offset paging is not a conformance
     class, CRS support is)
   - Loader module status
   - Returns 503 if unhealthy

Usage:
    from health import get_public_health, get_detailed_health

    result = await get_public_health()
    # {"status": "healthy", "timestamp": "2026-10-17T12:00:00+00:00"}
"""

import time
import uuid
from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Optional, Dict, Any

import httpx

from config import get_app_config
from util_logger import LoggerFactory, ComponentType

# Create module logger
logger = LoggerFactory.create_logger(ComponentType.ADAPTER, "HealthService")

CRS_CONFORMANCE_CLASS = "http://www.opengis.net/spec/ogcapi-features-2/1.0/conf/crs"


# ============================================================================
# Health Status Enum
# ============================================================================

class HealthStatus(str, Enum):
    """Health status values."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"      # Non-critical components failing
    UNHEALTHY = "unhealthy"    # Critical components failing


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class CheckResult:
    """Result of a single health check."""
    status: str              # "pass" or "fail"
    latency_ms: float        # Time taken for check
    message: str             # Human-readable status message
    details: Optional[Dict[str, Any]] = None  # Additional details

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "status": self.status,
            "latency_ms": round(self.latency_ms, 2),
            "message": self.message
        }
        if self.details:
            result["details"] = self.details
        return result


def get_app_identity() -> Dict[str, str]:
    """Name and description used in startup logs and health responses."""
    return {
        "name": "ogc-loader",
        "description": "OGC API Features Loader Service"
    }


def _service_host(service_url: str) -> str:
    # Never report query parameters, they may carry access tokens
    return httpx.URL(service_url).host


# ============================================================================
# Health Check Functions
# ============================================================================

async def check_upstream_connectivity(client: httpx.AsyncClient, service_url: str) -> CheckResult:
    """
    Check the upstream OGC API Features landing page.

    This is a critical check - failure means UNHEALTHY status.

    Args:
        client: HTTP client (timeout configured by caller)
        service_url: Upstream service URL

    Returns:
        CheckResult with reachability and latency
    """
    start_time = time.perf_counter()

    try:
        url = httpx.URL(service_url).copy_set_param("f", "json")
        response = await client.get(url, headers={"Accept": "application/json"})
        latency_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            return CheckResult(
                status="fail",
                latency_ms=latency_ms,
                message=f"Upstream returned status {response.status_code}",
                details={"host": _service_host(service_url), "status_code": response.status_code}
            )

        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="Upstream landing page reachable",
            details={"host": _service_host(service_url), "status_code": response.status_code}
        )

    except httpx.HTTPError as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Upstream connectivity check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Upstream connection failed: {type(e).__name__}",
            details={"error": str(e)}
        )


async def check_upstream_conformance(client: httpx.AsyncClient, service_url: str) -> CheckResult:
    """
    Check the upstream conformance declaration.

    This is a non-critical check - failure means DEGRADED status.

    Returns:
        CheckResult with conformance class count and CRS support
    """
    from ogc_loader.request_utils import collection_url

    start_time = time.perf_counter()

    try:
        url = collection_url(service_url, "conformance").copy_set_param("f", "json")
        response = await client.get(url, headers={"Accept": "application/json"})
        latency_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            return CheckResult(
                status="fail",
                latency_ms=latency_ms,
                message=f"Conformance request returned status {response.status_code}",
                details={"status_code": response.status_code}
            )

        conforms_to = response.json().get("conformsTo", [])
        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message=f"{len(conforms_to)} conformance classes declared",
            details={
                "conformance_classes": len(conforms_to),
                "crs_supported": CRS_CONFORMANCE_CLASS in conforms_to
            }
        )

    except (httpx.HTTPError, ValueError, AttributeError) as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.warning(f"Upstream conformance check failed: {e}")

        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message=f"Conformance check failed: {type(e).__name__}",
            details={"error": str(e)}
        )


def check_loader_module() -> CheckResult:
    """
    Check loader module availability.

    This is a non-critical check - failure means DEGRADED status.
    """
    start_time = time.perf_counter()

    try:
        from ogc_loader import get_loader_triggers, __version__
        triggers = get_loader_triggers()
        latency_ms = (time.perf_counter() - start_time) * 1000
        return CheckResult(
            status="pass",
            latency_ms=latency_ms,
            message="Loader module loaded",
            details={"endpoints": len(triggers), "version": __version__}
        )
    except ImportError as e:
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.error(f"Loader module check failed: {e}")
        return CheckResult(
            status="fail",
            latency_ms=latency_ms,
            message="Loader module unavailable",
            details={"error": str(e)}
        )


async def _with_client(client: Optional[httpx.AsyncClient], timeout_seconds: float, check):
    if client is not None:
        return await check(client)
    async with httpx.AsyncClient(timeout=timeout_seconds) as owned_client:
        return await check(owned_client)


# ============================================================================
# Main Entry Points
# ============================================================================

async def get_public_health(client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """
    Get minimal health status for public endpoint.

    Returns only status and timestamp - no internal details.

    Args:
        client: Optional HTTP client (a short-lived one is created otherwise)

    Returns:
        Dict with status and timestamp only
    """
    start_time = time.perf_counter()
    config = get_app_config()

    upstream_result = await _with_client(
        client, 3.0,
        lambda c: check_upstream_connectivity(c, config.ogc_service_url)
    )

    # Determine overall status based on critical checks only
    if upstream_result.status == "pass":
        status = HealthStatus.HEALTHY
    else:
        status = HealthStatus.UNHEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Public health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'public'
        }
    })

    return {
        "status": status.value,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


async def get_detailed_health(client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """
    Get detailed health status for APIM probes and operations.

    SECURITY NOTE: Block this endpoint from external access via APIM policy.

    Returns:
        Dict with full health metrics
    """
    start_time = time.perf_counter()
    request_id = str(uuid.uuid4())[:8]
    config = get_app_config()

    checks = {}
    critical_failures = []
    non_critical_failures = []

    async def run_upstream_checks(c: httpx.AsyncClient):
        return (
            await check_upstream_connectivity(c, config.ogc_service_url),
            await check_upstream_conformance(c, config.ogc_service_url)
        )

    upstream_result, conformance_result = await _with_client(
        client, config.http_timeout_seconds, run_upstream_checks
    )

    # Critical: upstream landing page
    checks["upstream"] = upstream_result.to_dict()
    if upstream_result.status == "fail":
        critical_failures.append("upstream")

    # Non-critical: conformance declaration
    checks["conformance"] = conformance_result.to_dict()
    if conformance_result.status == "fail":
        non_critical_failures.append("conformance")

    # Non-critical: loader module
    module_result = check_loader_module()
    checks["loader_module"] = module_result.to_dict()
    if module_result.status == "fail":
        non_critical_failures.append("loader_module")

    if critical_failures:
        status = HealthStatus.UNHEALTHY
    elif non_critical_failures:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY

    total_duration = (time.perf_counter() - start_time) * 1000

    logger.info("Detailed health check completed", extra={
        'custom_dimensions': {
            'status': status.value,
            'duration_ms': round(total_duration, 2),
            'check_type': 'detailed',
            'request_id': request_id,
            'critical_failures': critical_failures,
            'non_critical_failures': non_critical_failures,
            'upstream_latency_ms': upstream_result.latency_ms
        }
    })

    identity = get_app_identity()
    return {
        "status": status.value,
        "app": identity["name"],
        "description": identity["description"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "checks": checks,
        "total_duration_ms": round(total_duration, 2)
    }
