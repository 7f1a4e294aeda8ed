"""Data-driven access control for documents and club profiles.

Access is decided by a single ordered rule table. Each row names the actions
it covers, the roles it applies to, whether the principal must own the
resource, and (for reserved actions) the admin sub-role required. Ownership
is resolved through OWNER_FIELDS, so a new owned resource type only needs a
row in that mapping.

Evaluation: the first rule whose actions and roles both match decides. If no
rule matches, the request is denied with "insufficient-role".
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, FrozenSet, Optional, Tuple

from domain.errors import AccessDeniedError
from .principal import Principal
from .roles import AdminRole, UserRole

logger = logging.getLogger(__name__)


class Action(str, Enum):
    """Actions guarded by the access policy."""
    VIEW = "view"
    UPLOAD = "upload"
    DELETE = "delete"
    DECIDE_VERIFICATION = "decide-verification"
    PURGE_AUDIT = "purge-audit"


class ResourceKind(str, Enum):
    """Owned resource types."""
    DOCUMENT = "document"
    CLUB_PROFILE = "club_profile"


# Attribute holding the owning club id, per resource kind
OWNER_FIELDS = {
    ResourceKind.DOCUMENT: "club_id",
    ResourceKind.CLUB_PROFILE: "id",
}

DENY_INSUFFICIENT_ROLE = "insufficient-role"
DENY_NOT_OWNER = "not-owner"


@dataclass(frozen=True)
class Resource:
    """The target of an access check.

    owner_id is None when the resource could not be loaded; only admins are
    allowed through in that case, so a missing resource looks exactly like a
    foreign one to everyone else.
    """
    kind: ResourceKind
    owner_id: Optional[str]

    @classmethod
    def of(cls, kind: ResourceKind, obj: Any) -> "Resource":
        """Build a resource from any object exposing the kind's owner field."""
        owner = getattr(obj, OWNER_FIELDS[kind]) if obj is not None else None
        return cls(kind=kind, owner_id=str(owner) if owner is not None else None)

    @classmethod
    def missing(cls, kind: ResourceKind) -> "Resource":
        return cls(kind=kind, owner_id=None)


@dataclass(frozen=True)
class AccessRule:
    """One row of the access table."""
    actions: FrozenSet[Action]
    allowed_roles: FrozenSet[UserRole]
    ownership_required: bool = False
    required_admin_sub_role: Optional[AdminRole] = None


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


# Actions only a SUPER_ADMIN may perform
RESERVED_ACTIONS = frozenset({Action.PURGE_AUDIT})

ACCESS_RULES: Tuple[AccessRule, ...] = (
    AccessRule(
        actions=RESERVED_ACTIONS,
        allowed_roles=frozenset({UserRole.ADMIN}),
        required_admin_sub_role=AdminRole.SUPER_ADMIN,
    ),
    AccessRule(
        actions=frozenset(Action) - RESERVED_ACTIONS,
        allowed_roles=frozenset({UserRole.ADMIN}),
    ),
    AccessRule(
        actions=frozenset({Action.VIEW, Action.UPLOAD, Action.DELETE}),
        allowed_roles=frozenset({UserRole.CLUB}),
        ownership_required=True,
    ),
)


def _owns(principal: Principal, resource: Resource) -> bool:
    if principal.owned_profile_id is None or resource.owner_id is None:
        return False
    return str(principal.owned_profile_id) == resource.owner_id


def authorize(
    principal: Principal,
    action: Action,
    resource: Resource,
    rules: Tuple[AccessRule, ...] = ACCESS_RULES,
) -> AccessDecision:
    """Decide whether principal may perform action on resource.

    Pure function: no I/O, no logging.

    Example:
        >>> club = Principal(identity="u1", role=UserRole.CLUB, owned_profile_id="c1")
        >>> authorize(club, Action.VIEW, Resource(ResourceKind.DOCUMENT, "c1")).allowed
        True
        >>> authorize(club, Action.DECIDE_VERIFICATION, Resource(ResourceKind.DOCUMENT, "c1")).reason
        'insufficient-role'
    """
    for rule in rules:
        if action not in rule.actions or principal.role not in rule.allowed_roles:
            continue
        if rule.required_admin_sub_role and principal.admin_sub_role != rule.required_admin_sub_role:
            return AccessDecision.deny(DENY_INSUFFICIENT_ROLE)
        if rule.ownership_required and not _owns(principal, resource):
            return AccessDecision.deny(DENY_NOT_OWNER)
        return AccessDecision.allow()

    return AccessDecision.deny(DENY_INSUFFICIENT_ROLE)


def enforce(principal: Principal, action: Action, resource: Resource) -> None:
    """Raise AccessDeniedError unless authorize() allows the request."""
    decision = authorize(principal, action, resource)
    if not decision.allowed:
        logger.warning(
            f"Access denied: principal={principal.identity}, role={principal.role.value}, "
            f"action={action.value}, resource={resource.kind.value}, reason={decision.reason}",
            extra={"principal_id": principal.identity},
        )
        raise AccessDeniedError(decision.reason)
