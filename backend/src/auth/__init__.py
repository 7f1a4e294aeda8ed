"""Authorization: principals, roles and the access rule table."""

from .policy import (
    ACCESS_RULES,
    AccessDecision,
    AccessRule,
    Action,
    Resource,
    ResourceKind,
    authorize,
    enforce,
)
from .principal import Principal
from .roles import AdminRole, UserRole

__all__ = [
    "ACCESS_RULES",
    "AccessDecision",
    "AccessRule",
    "Action",
    "AdminRole",
    "Principal",
    "Resource",
    "ResourceKind",
    "UserRole",
    "authorize",
    "enforce",
]
