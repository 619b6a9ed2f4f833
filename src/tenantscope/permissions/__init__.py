"""Fixed rule tables for tenantscope.

Defines:
- Role: closed role enumeration with an explicit rank order
- ResourceKind / Action: what is targeted and how
- ASSIGNABLE_ROLES: creator role → roles it may provision
- MANAGEABLE_ROLES: actor role → account roles it may modify
- ROLE_CAPABILITIES: role → kind → granted actions
- expand_actions(): resolve implied actions
"""

from .capabilities import (
    ACTION_INHERITANCE,
    MANAGE,
    ROLE_CAPABILITIES,
    expand_actions,
    has_capability,
)
from .resources import (
    ADMINISTRATION_KINDS,
    ALL_ACTIONS,
    CASCADE_RESOURCE_ORDER,
    OPERATIONAL_KINDS,
    SELF_ASSIGNABLE_KINDS,
    Action,
    ResourceKind,
)
from .roles import (
    ASSIGNABLE_ROLES,
    BRANCH_ROLES,
    MANAGEABLE_ROLES,
    OVERRIDE_ROLES,
    ROLE_RANK,
    Role,
    can_assign_role,
    can_manage_role,
)

__all__ = [
    "ACTION_INHERITANCE",
    "ADMINISTRATION_KINDS",
    "ALL_ACTIONS",
    "ASSIGNABLE_ROLES",
    "Action",
    "BRANCH_ROLES",
    "CASCADE_RESOURCE_ORDER",
    "MANAGE",
    "MANAGEABLE_ROLES",
    "OPERATIONAL_KINDS",
    "OVERRIDE_ROLES",
    "ROLE_CAPABILITIES",
    "ROLE_RANK",
    "ResourceKind",
    "Role",
    "SELF_ASSIGNABLE_KINDS",
    "can_assign_role",
    "can_manage_role",
    "expand_actions",
    "has_capability",
]
