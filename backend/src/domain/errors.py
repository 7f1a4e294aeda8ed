"""Error taxonomy of the verification core.

Every failure is raised as a typed exception so the caller (HTTP layer, scheduler)
can map it to a specific reason. StorageError lives with the storage port.
"""

from typing import Optional


class SafeguardingError(Exception):
    """Base class for all typed failures of the verification core."""

    code = "SAFEGUARDING_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DocumentValidationError(SafeguardingError):
    """Upload rejected because of its type, size, extension or declared expiry.

    The user can fix the input and retry.
    """

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class InvalidTransitionError(SafeguardingError):
    """A state machine rule was violated (usually a stale client view)."""

    code = "INVALID_TRANSITION"

    def __init__(self, message: str, current_status: Optional[str] = None):
        super().__init__(message)
        self.current_status = current_status


class AccessDeniedError(SafeguardingError):
    """Authorization failed. The message never reveals whether the resource exists."""

    code = "FORBIDDEN"

    def __init__(self, reason: str = "forbidden"):
        super().__init__(f"Access denied: {reason}")
        self.reason = reason


class NotFoundError(SafeguardingError):
    """Resource id is unknown."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: object):
        super().__init__(f"{resource} {resource_id} not found")
        self.resource = resource
        self.resource_id = resource_id
