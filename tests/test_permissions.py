"""Tests for role, resource and capability tables."""

from __future__ import annotations

import pytest

from tenantscope import Action, ResourceKind, Role, can_assign_role, has_capability
from tenantscope.permissions import (
    ADMINISTRATION_KINDS,
    ASSIGNABLE_ROLES,
    CASCADE_RESOURCE_ORDER,
    MANAGEABLE_ROLES,
    OPERATIONAL_KINDS,
    ROLE_CAPABILITIES,
    ROLE_RANK,
    can_manage_role,
    expand_actions,
)


class TestRole:
    """Tests for the Role enumeration and its order."""

    def test_parse_case_insensitive(self) -> None:
        assert Role.parse("admin") is Role.ADMIN
        assert Role.parse(" Product_Owner ") is Role.PRODUCT_OWNER
        assert Role.parse(Role.CASHIER) is Role.CASHIER

    def test_parse_unknown(self) -> None:
        with pytest.raises(ValueError, match="Unknown role"):
            Role.parse("OWNER")

    def test_parse_non_string(self) -> None:
        with pytest.raises(ValueError):
            Role.parse(3)  # type: ignore[arg-type]

    def test_every_role_ranked(self) -> None:
        assert set(ROLE_RANK) == set(Role)

    def test_order(self) -> None:
        assert Role.SUPERADMIN.outranks(Role.PRODUCT_OWNER)
        assert Role.PRODUCT_OWNER.outranks(Role.ADMIN)
        assert Role.ADMIN.outranks(Role.MANAGER)
        assert Role.MANAGER.outranks(Role.CASHIER)
        assert Role.MANAGER.outranks(Role.PHARMACIST)

    def test_staff_share_rank(self) -> None:
        """CASHIER and PHARMACIST are peers."""
        assert Role.CASHIER.rank == Role.PHARMACIST.rank
        assert not Role.CASHIER.outranks(Role.PHARMACIST)
        assert not Role.PHARMACIST.outranks(Role.CASHIER)


class TestAssignableRoles:
    """Tests for the account-creation table."""

    def test_every_entry_strictly_below_creator(self) -> None:
        for creator, targets in ASSIGNABLE_ROLES.items():
            for target in targets:
                assert creator.outranks(target), f"{creator} -> {target}"

    def test_only_superadmin_creates_admin(self) -> None:
        creators = [role for role in Role if can_assign_role(role, Role.ADMIN)]
        assert creators == [Role.SUPERADMIN]

    def test_admin_creates_branch_staff(self) -> None:
        assert ASSIGNABLE_ROLES[Role.ADMIN] == {Role.MANAGER, Role.CASHIER, Role.PHARMACIST}

    @pytest.mark.parametrize("creator", [Role.MANAGER, Role.CASHIER, Role.PHARMACIST])
    def test_branch_roles_create_nobody(self, creator: Role) -> None:
        assert ASSIGNABLE_ROLES[creator] == frozenset()

    def test_string_arguments(self) -> None:
        assert can_assign_role("superadmin", "admin")
        assert not can_assign_role("admin", "admin")


class TestManageableRoles:
    """Tests for the account-modification table."""

    def test_every_entry_strictly_below_actor(self) -> None:
        for actor, targets in MANAGEABLE_ROLES.items():
            assert all(actor.outranks(target) for target in targets), actor

    def test_manager_maintains_staff_only(self) -> None:
        assert can_manage_role(Role.MANAGER, Role.CASHIER)
        assert can_manage_role("manager", "pharmacist")
        assert not can_manage_role(Role.MANAGER, Role.MANAGER)
        assert not can_manage_role(Role.MANAGER, Role.SUPERADMIN)

    def test_matches_assignment_above_manager(self) -> None:
        for actor in (Role.SUPERADMIN, Role.PRODUCT_OWNER, Role.ADMIN, Role.CASHIER, Role.PHARMACIST):
            assert MANAGEABLE_ROLES[actor] == ASSIGNABLE_ROLES[actor]


class TestResourceKinds:
    """Tests for ResourceKind groupings."""

    def test_groupings_partition_kinds(self) -> None:
        assert ADMINISTRATION_KINDS | OPERATIONAL_KINDS == set(ResourceKind)
        assert not ADMINISTRATION_KINDS & OPERATIONAL_KINDS

    def test_cascade_order_covers_operational_kinds(self) -> None:
        assert set(CASCADE_RESOURCE_ORDER) == OPERATIONAL_KINDS
        assert CASCADE_RESOURCE_ORDER[0] is ResourceKind.SALE

    def test_properties(self) -> None:
        assert ResourceKind.SALE.is_operational
        assert not ResourceKind.BRANCH.is_operational
        assert ResourceKind.SHIFT.is_self_assignable
        assert not ResourceKind.SALE.is_self_assignable


class TestCapabilities:
    """Tests for action inheritance and the capability matrix."""

    def test_expand_update(self) -> None:
        assert expand_actions((Action.UPDATE,)) == {Action.UPDATE, Action.READ, Action.LIST}

    def test_expand_is_idempotent(self) -> None:
        once = expand_actions([Action.DELETE, Action.CREATE])
        assert expand_actions(once) == once

    def test_every_role_has_an_entry(self) -> None:
        assert set(ROLE_CAPABILITIES) == set(Role)

    def test_superadmin_manages_everything(self) -> None:
        for kind in ResourceKind:
            for action in Action:
                assert has_capability(Role.SUPERADMIN, kind, action)

    def test_product_owner_has_no_operational_capability(self) -> None:
        for kind in OPERATIONAL_KINDS:
            assert not has_capability(Role.PRODUCT_OWNER, kind, Action.LIST)

    def test_cashier(self) -> None:
        assert has_capability(Role.CASHIER, ResourceKind.SALE, Action.CREATE)
        assert has_capability(Role.CASHIER, ResourceKind.SALE, Action.LIST)
        assert not has_capability(Role.CASHIER, ResourceKind.SALE, Action.DELETE)
        assert not has_capability(Role.CASHIER, ResourceKind.COMPANY, Action.READ)

    def test_pharmacist_edits_batches(self) -> None:
        assert has_capability("pharmacist", "batch", "update")
        assert not has_capability("cashier", "batch", "update")

    def test_manager_cannot_create_users(self) -> None:
        assert not has_capability(Role.MANAGER, ResourceKind.USER, Action.CREATE)
        assert has_capability(Role.MANAGER, ResourceKind.USER, Action.ACTIVATE)
