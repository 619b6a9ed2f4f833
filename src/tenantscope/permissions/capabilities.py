"""Role capability matrix, action inheritance, and expansion.

Provides:
- ``ACTION_INHERITANCE``: parent action → implied actions.
- ``expand_actions()``: resolve implied actions.
- ``ROLE_CAPABILITIES``: role → resource kind → granted actions.
- ``has_capability()``: table lookup used when capability enforcement is on.

Capabilities answer CAN-this-role-ever; scope answers ON-WHICH-records.
"""

from __future__ import annotations

from .resources import ALL_ACTIONS, Action, ResourceKind
from .roles import Role

# ── Action Inheritance ──────────────────────────────────
# Parent action implies all children.

ACTION_INHERITANCE: dict[Action, tuple[Action, ...]] = {
    Action.UPDATE: (Action.READ,),
    Action.DELETE: (Action.READ,),
    Action.ACTIVATE: (Action.READ,),
    Action.READ: (Action.LIST,),
}


def expand_actions(actions: tuple[Action, ...] | list[Action] | frozenset[Action]) -> frozenset[Action]:
    """Expand actions by resolving inheritance.

    Example::

        >>> sorted(a.value for a in expand_actions((Action.UPDATE,)))
        ['list', 'read', 'update']
    """
    expanded: set[Action] = set(actions)
    queue = list(actions)

    while queue:
        action = queue.pop()
        for child in ACTION_INHERITANCE.get(action, ()):
            if child not in expanded:
                expanded.add(child)
                queue.append(child)

    return frozenset(expanded)


MANAGE = ALL_ACTIONS
_VIEW = expand_actions((Action.READ,))


def _grants(**kinds: frozenset[Action] | tuple[Action, ...]) -> dict[ResourceKind, frozenset[Action]]:
    return {ResourceKind(name): expand_actions(tuple(actions)) for name, actions in kinds.items()}


# ── Role → Capabilities ─────────────────────────────────

ROLE_CAPABILITIES: dict[Role, dict[ResourceKind, frozenset[Action]]] = {
    Role.SUPERADMIN: {kind: MANAGE for kind in ResourceKind},
    Role.PRODUCT_OWNER: _grants(user=MANAGE, company=MANAGE, branch=MANAGE),
    Role.ADMIN: {kind: MANAGE for kind in ResourceKind},
    Role.MANAGER: _grants(
        user=(Action.UPDATE, Action.ACTIVATE),
        company=_VIEW,
        branch=_VIEW,
        shift=MANAGE,
        sale=(Action.CREATE, Action.UPDATE),
        batch=MANAGE,
        product=MANAGE,
        customer=MANAGE,
    ),
    Role.CASHIER: _grants(
        user=_VIEW,
        branch=_VIEW,
        shift=_VIEW,
        sale=(Action.CREATE, Action.READ),
        batch=_VIEW,
        product=_VIEW,
        customer=(Action.CREATE, Action.UPDATE),
    ),
    Role.PHARMACIST: _grants(
        user=_VIEW,
        branch=_VIEW,
        shift=_VIEW,
        sale=(Action.CREATE, Action.READ),
        batch=(Action.CREATE, Action.UPDATE),
        product=(Action.UPDATE,),
        customer=(Action.CREATE, Action.UPDATE),
    ),
}


def has_capability(role: Role | str, kind: ResourceKind | str, action: Action | str) -> bool:
    """Check if a role is ever allowed ``action`` on ``kind``.

    Example::

        has_capability(Role.CASHIER, ResourceKind.SALE, Action.CREATE)  # True
        has_capability(Role.CASHIER, ResourceKind.SALE, Action.DELETE)  # False
    """
    granted = ROLE_CAPABILITIES[Role.parse(role)].get(ResourceKind(kind), frozenset())
    return Action(action) in granted


__all__ = [
    "ACTION_INHERITANCE",
    "MANAGE",
    "ROLE_CAPABILITIES",
    "expand_actions",
    "has_capability",
]
