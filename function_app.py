# ============================================================================
# CONTEXT - AZURE FUNCTIONS ENTRY POINT
# ============================================================================
# STATUS: Core Infrastructure - Function App Entry Point
# PURPOSE: Main entry point for Azure Functions runtime with the OGC loader API
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: app (FunctionApp instance)
# DEPENDENCIES: azure-functions, ogc_loader, health
# ============================================================================

"""
Azure Functions Entry Point for the OGC loader

This module serves as the main entry point for the Azure Functions runtime.
It registers the loader HTTP triggers and the health checks.

Architecture:
    - Loader API: 3 endpoints in front of an upstream OGC API Features service
    - Health checks: 2 endpoints for monitoring and APIM integration
        - /api/health - Public (minimal response for external callers)
        - /api/health/detailed - Internal (full metrics for APIM probes)

Deployment:
    - Local: func start
    - Azure: func azure functionapp publish <app-name> --python --build remote
"""

import azure.functions as func
import json
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize Azure Function App
app = func.FunctionApp()

# ============================================================================
# Loader API - 3 Endpoints
# ============================================================================

try:
    from ogc_loader import get_loader_triggers

    logger.info("Registering OGC loader endpoints...")

    triggers = get_loader_triggers()

    # Upstream collection metadata
    @app.route(route="loader/collections/{collection_id}", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    async def loader_collection(req: func.HttpRequest) -> func.HttpResponse:
        return await triggers[0]['handler'](req)

    # Load all features for an extent
    @app.route(route="loader/collections/{collection_id}/items", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    async def loader_items(req: func.HttpRequest) -> func.HttpResponse:
        return await triggers[1]['handler'](req)

    # Text search
    @app.route(route="loader/collections/{collection_id}/search", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
    async def loader_search(req: func.HttpRequest) -> func.HttpResponse:
        return await triggers[2]['handler'](req)

    logger.info("✅ OGC loader API registered successfully (3 endpoints)")

except ImportError as e:
    logger.warning(f"⚠️ OGC loader module not available: {e}")
    logger.warning("OGC loader API will not be available")

# ============================================================================
# Health Check Endpoints - 2 Endpoints (Public + Detailed)
# ============================================================================

@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """
    Public health check endpoint - minimal response for external callers.

    Always returns 200 - status in body indicates health.

    Returns:
        JSON: {"status": "healthy|unhealthy", "timestamp": "..."}
    """
    from health import get_public_health

    result = await get_public_health()

    return func.HttpResponse(
        json.dumps(result, default=str),
        mimetype="application/json",
        status_code=200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )


@app.route(route="health/detailed", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def health_detailed(req: func.HttpRequest) -> func.HttpResponse:
    """
    Detailed health check endpoint - for APIM probes and operations.

    Returns 503 if unhealthy, 200 otherwise.

    SECURITY: Block this endpoint from external access via APIM policy.
    """
    from health import get_detailed_health, HealthStatus

    result = await get_detailed_health()

    # Return 503 if unhealthy, 200 otherwise (healthy or degraded)
    status_code = 503 if result["status"] == HealthStatus.UNHEALTHY.value else 200

    return func.HttpResponse(
        json.dumps(result, default=str, indent=2),
        mimetype="application/json",
        status_code=status_code,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"}
    )

# ============================================================================
# Application Startup
# ============================================================================

from health import get_app_identity
_app_identity = get_app_identity()

logger.info("="*60)
logger.info(f"{_app_identity['name']} - {_app_identity['description']}")
logger.info("="*60)
logger.info("Function App initialized successfully")
logger.info("Available endpoints:")
logger.info("  - GET /api/health - Public health check (minimal)")
logger.info("  - GET /api/health/detailed - Detailed health (APIM only)")
logger.info("")
logger.info("OGC loader API (3 endpoints):")
logger.info("  - GET /api/loader/collections/{id} - Upstream collection metadata")
logger.info("  - GET /api/loader/collections/{id}/items?bbox=&map_crs= - Load extent")
logger.info("  - GET /api/loader/collections/{id}/search?q=&property= - Text search")
logger.info("="*60)
