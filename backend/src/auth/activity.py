"""Best-effort last-active tracking for authenticated principals."""

import logging
from datetime import datetime
from typing import Optional

from database import Database
from models.base import utcnow
from models.principal_activity import PrincipalActivity

logger = logging.getLogger(__name__)


def touch_last_active(
    database: Database,
    identity: str,
    role: str,
    now: Optional[datetime] = None,
) -> bool:
    """Record that a principal was active.

    Runs as a background task after the response is sent. Failures are logged
    and never reach the caller.

    Returns:
        bool: True if the timestamp was written
    """
    try:
        with database.session() as session:
            session.merge(PrincipalActivity(
                identity=identity,
                role=role,
                last_active_at=now or utcnow(),
            ))
        return True
    except Exception as e:
        logger.warning(
            f"Failed to update last-active timestamp: {e}",
            exc_info=True,
            extra={"principal_id": identity},
        )
        return False
