"""Resource kinds and actions.

Provides:
- ``ResourceKind``: every entity kind the engine reasons about.
- ``Action``: operations a principal may attempt.
- Kind groupings used by the resolver and the cascade planner.
"""

from __future__ import annotations

from enum import Enum


class ResourceKind(str, Enum):
    """Kind of entity targeted by a request."""

    USER = "user"
    COMPANY = "company"
    BRANCH = "branch"
    SHIFT = "shift"
    SALE = "sale"
    BATCH = "batch"
    PRODUCT = "product"
    CUSTOMER = "customer"

    @property
    def is_operational(self) -> bool:
        return self in OPERATIONAL_KINDS

    @property
    def is_self_assignable(self) -> bool:
        return self in SELF_ASSIGNABLE_KINDS


class Action(str, Enum):
    """Operation attempted on a resource kind.

    ``LIST`` covers read-many; ``READ`` is read-one.
    """

    READ = "read"
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ACTIVATE = "activate"


# Platform administration: visible to PRODUCT_OWNER.
ADMINISTRATION_KINDS = frozenset({ResourceKind.USER, ResourceKind.COMPANY, ResourceKind.BRANCH})

# Branch operations: every record carries a branch_id.
OPERATIONAL_KINDS = frozenset(
    {
        ResourceKind.SHIFT,
        ResourceKind.SALE,
        ResourceKind.BATCH,
        ResourceKind.PRODUCT,
        ResourceKind.CUSTOMER,
    }
)

# Narrowed to assigned users for non-managerial staff.
SELF_ASSIGNABLE_KINDS = frozenset({ResourceKind.SHIFT})

# Removal order of branch resources inside a cascade.
CASCADE_RESOURCE_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.SALE,
    ResourceKind.SHIFT,
    ResourceKind.BATCH,
    ResourceKind.PRODUCT,
    ResourceKind.CUSTOMER,
)

ALL_ACTIONS = frozenset(Action)


__all__ = [
    "ADMINISTRATION_KINDS",
    "ALL_ACTIONS",
    "Action",
    "CASCADE_RESOURCE_ORDER",
    "OPERATIONAL_KINDS",
    "ResourceKind",
    "SELF_ASSIGNABLE_KINDS",
]
