"""
Health Check Routes
===================

Kubernetes-compatible health and readiness endpoints.
"""

from fastapi import APIRouter, Request

from api import __version__
from api.schemas import HealthResponse, HealthStatus, ReadinessResponse
from sql_analyst.errors import SQLAnalystError
from sql_analyst.observability.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["Health"])


def _check_database(agent) -> bool:
    try:
        agent.executor.execute("SELECT 1")
    except SQLAnalystError as e:
        logger.warning("health_check_failed", component="database", error=str(e))
        return False
    return True


def _check_catalog(agent) -> bool:
    try:
        return len(agent.catalog.list_entities()) > 0
    except (OSError, ValueError) as e:
        logger.warning("health_check_failed", component="catalog", error=str(e))
        return False


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the service",
)
def health_check(request: Request) -> HealthResponse:
    """
    Health check endpoint for load balancers and monitoring.

    The API is degraded when the database cannot be queried or the catalog
    holds no entities.

    Returns:
        HealthResponse with current service status
    """
    agent = getattr(request.app.state, "agent", None)
    checks = {
        "api": True,
        "agent": agent is not None,
    }
    if agent is not None:
        checks["database"] = _check_database(agent)
        checks["catalog"] = _check_catalog(agent)

    status = HealthStatus.HEALTHY if all(checks.values()) else HealthStatus.DEGRADED
    if agent is None:
        status = HealthStatus.UNHEALTHY

    return HealthResponse(
        status=status,
        version=__version__,
        checks=checks,
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Returns whether the service is ready to handle requests",
)
def readiness_check(request: Request) -> ReadinessResponse:
    """
    Readiness check for Kubernetes.

    Used to determine if the pod should receive traffic.

    Returns:
        ReadinessResponse indicating readiness status
    """
    agent = getattr(request.app.state, "agent", None)
    checks = {
        "agent_loaded": agent is not None,
        "database_reachable": agent is not None and _check_database(agent),
    }

    return ReadinessResponse(
        ready=all(checks.values()),
        checks=checks,
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Simple liveness probe",
)
async def liveness_check() -> dict:
    """
    Liveness check for Kubernetes.

    Returns:
        Simple OK response
    """
    return {"status": "ok"}
