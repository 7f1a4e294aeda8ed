"""Health check utilities.

Provides health checks for the record store, the component every request
depends on.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from sqlalchemy import text

from database import Database

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_database_health(database: Database) -> ComponentHealth:
    """Check record store connectivity."""
    try:
        start = time.time()
        with database.session() as session:
            session.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message="Database unavailable",
        )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses."""
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
