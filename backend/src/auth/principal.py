"""Authenticated principal supplied by the upstream authentication layer."""

from dataclasses import dataclass
from typing import Optional

from .roles import AdminRole, UserRole


@dataclass(frozen=True)
class Principal:
    """The actor making a request.

    Attributes:
        identity: Stable user identifier
        role: Principal role
        owned_profile_id: Id of the profile this principal owns (club id for CLUB)
        admin_sub_role: Sub-role for ADMIN principals
    """
    identity: str
    role: UserRole
    owned_profile_id: Optional[str] = None
    admin_sub_role: Optional[AdminRole] = None
