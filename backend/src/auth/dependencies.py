"""FastAPI dependencies for authentication.

Token verification happens upstream (API gateway or authentication
middleware), which attaches an auth.principal.Principal to
request.state.principal. These dependencies only read it.

Usage:
    @router.get("/clubs/{club_id}/documents")
    def list_documents(principal: Principal = Depends(get_current_principal)):
        ...

Tests override get_current_principal through app.dependency_overrides.
"""

import logging

from fastapi import BackgroundTasks, Depends, HTTPException, Request, status

from database import Database, get_database
from .activity import touch_last_active
from .principal import Principal

logger = logging.getLogger(__name__)


def get_current_principal(
    request: Request,
    background_tasks: BackgroundTasks,
    database: Database = Depends(get_database),
) -> Principal:
    """Return the authenticated principal and schedule a last-active update.

    Raises:
        HTTPException 401: If no principal was attached to the request
    """
    principal = getattr(request.state, "principal", None)
    if not isinstance(principal, Principal):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    background_tasks.add_task(touch_last_active, database, principal.identity, principal.role.value)
    return principal
