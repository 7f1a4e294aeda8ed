"""Principal roles for the safeguarding platform.

Role Summary:
- ADMIN: Reviews evidence, decides verification, manages club status
- CLUB: Owns one club profile and its documents
- PARENT: Browses verified clubs; owns a parent profile only

Admins carry a sub-role. SUPER_ADMIN is required for a small set of
irreversible actions (purging audit data).

Permission Matrix:
┌───────────────────────┬───────┬──────────────┬────────┐
│ Action                │ ADMIN │ CLUB (owner) │ PARENT │
├───────────────────────┼───────┼──────────────┼────────┤
│ View documents        │   ✓   │      ✓       │        │
│ Upload documents      │   ✓   │      ✓       │        │
│ Delete documents      │   ✓   │      ✓       │        │
│ Decide verification   │   ✓   │              │        │
│ Purge audit log       │ SUPER │              │        │
└───────────────────────┴───────┴──────────────┴────────┘
"""

from enum import Enum


class UserRole(str, Enum):
    """Role of an authenticated principal.

    Values are stored as TEXT in the database and must match exactly.
    """
    ADMIN = "ADMIN"
    CLUB = "CLUB"
    PARENT = "PARENT"


class AdminRole(str, Enum):
    """Sub-role carried by ADMIN principals."""
    SUPER_ADMIN = "SUPER_ADMIN"
    MODERATOR = "MODERATOR"
    SUPPORT = "SUPPORT"
