"""Observability API endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from database import Database, get_database
from .health import HealthStatus, check_database_health, get_overall_health

router = APIRouter(tags=["Observability"])


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns health status of the record store",
    status_code=200,
)
def health_check(database: Database = Depends(get_database)):
    """Return 200 when all components are healthy, 503 otherwise."""
    components = {"database": check_database_health(database)}
    overall_status = get_overall_health(components)

    body = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": component.status.value,
                "message": component.message,
                "latency_ms": component.latency_ms,
            }
            for name, component in components.items()
        },
    }
    status_code = (
        status.HTTP_200_OK
        if overall_status == HealthStatus.HEALTHY
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return JSONResponse(status_code=status_code, content=body)
