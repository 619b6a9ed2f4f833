"""Role hierarchy and account-assignment table.

Provides:
- ``Role``: closed enumeration of the five role tiers.
- ``ROLE_RANK``: explicit partial order (CASHIER and PHARMACIST share a rank).
- ``ASSIGNABLE_ROLES``: creator role → roles it may provision.
- ``MANAGEABLE_ROLES``: actor role → account roles it may modify.
"""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role of an authenticated principal.

    Ordered by privilege:
    ``SUPERADMIN > PRODUCT_OWNER > ADMIN > MANAGER > {CASHIER, PHARMACIST}``
    """

    SUPERADMIN = "SUPERADMIN"
    PRODUCT_OWNER = "PRODUCT_OWNER"
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    CASHIER = "CASHIER"
    PHARMACIST = "PHARMACIST"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        """Parse a role string case-insensitively.

        Raises:
            ValueError: if the string names no known role.
        """
        if isinstance(value, Role):
            return value
        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError):
            raise ValueError(f"Unknown role: {value!r}. Must be one of {[r.value for r in cls]}") from None

    @property
    def rank(self) -> int:
        return ROLE_RANK[self]

    def outranks(self, other: Role) -> bool:
        """True if this role is strictly above ``other``."""
        return ROLE_RANK[self] > ROLE_RANK[other]


ROLE_RANK: dict[Role, int] = {
    Role.SUPERADMIN: 4,
    Role.PRODUCT_OWNER: 3,
    Role.ADMIN: 2,
    Role.MANAGER: 1,
    Role.CASHIER: 0,
    Role.PHARMACIST: 0,
}

# Roles that always belong to a branch.
BRANCH_ROLES = frozenset({Role.MANAGER, Role.CASHIER, Role.PHARMACIST})

# Roles that may narrow their view with acting company/branch overrides.
OVERRIDE_ROLES = frozenset({Role.SUPERADMIN, Role.ADMIN})

# ── Account assignment ──────────────────────────────────
# Every entry is strictly below its creator. Only SUPERADMIN provisions
# ADMIN accounts; MANAGER and branch staff provision nobody.

ASSIGNABLE_ROLES: dict[Role, frozenset[Role]] = {
    Role.SUPERADMIN: frozenset(
        {Role.PRODUCT_OWNER, Role.ADMIN, Role.MANAGER, Role.CASHIER, Role.PHARMACIST}
    ),
    Role.PRODUCT_OWNER: frozenset({Role.MANAGER, Role.CASHIER, Role.PHARMACIST}),
    Role.ADMIN: frozenset({Role.MANAGER, Role.CASHIER, Role.PHARMACIST}),
    Role.MANAGER: frozenset(),
    Role.CASHIER: frozenset(),
    Role.PHARMACIST: frozenset(),
}


def can_assign_role(creator: Role | str, target: Role | str) -> bool:
    """Check if ``creator`` may provision an account with role ``target``.

    Example::

        can_assign_role(Role.SUPERADMIN, Role.ADMIN)  # True
        can_assign_role(Role.ADMIN, Role.ADMIN)       # False
        can_assign_role(Role.MANAGER, Role.CASHIER)   # False
    """
    return Role.parse(target) in ASSIGNABLE_ROLES[Role.parse(creator)]


# Accounts an actor may update, activate or delete. Wider than
# ASSIGNABLE_ROLES only for MANAGER, who maintains branch staff.

MANAGEABLE_ROLES: dict[Role, frozenset[Role]] = {
    **ASSIGNABLE_ROLES,
    Role.MANAGER: frozenset({Role.CASHIER, Role.PHARMACIST}),
}


def can_manage_role(actor: Role | str, target: Role | str) -> bool:
    """Check if ``actor`` may modify an account holding (or given) role ``target``."""
    return Role.parse(target) in MANAGEABLE_ROLES[Role.parse(actor)]


__all__ = [
    "ASSIGNABLE_ROLES",
    "BRANCH_ROLES",
    "MANAGEABLE_ROLES",
    "OVERRIDE_ROLES",
    "ROLE_RANK",
    "Role",
    "can_assign_role",
    "can_manage_role",
]
