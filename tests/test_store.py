"""Tests for InMemoryTenancyStore."""

from __future__ import annotations

import pytest

from tenantscope import (
    Branch,
    Company,
    DeletionExecutor,
    InMemoryTenancyStore,
    NotFoundError,
    Resource,
    ResourceKind,
    Role,
    TenancyGraph,
    TenancyIntegrityError,
    User,
)
from tenantscope.cascade import DeletionStep


class TestProtocols:
    def test_store_is_graph_and_executor(self, store: InMemoryTenancyStore) -> None:
        assert isinstance(store, TenancyGraph)
        assert isinstance(store, DeletionExecutor)


class TestWrites:
    """Integrity checks on writes."""

    def test_company_owner_must_be_admin(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_company(Company(id="c9", owner_admin_id="m1"))
        with pytest.raises(TenancyIntegrityError):
            store.add_company(Company(id="c9", owner_admin_id="ghost"))

    def test_duplicate_company(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_company(Company(id="c1", owner_admin_id="a1"))

    def test_branch_requires_company(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_branch(Branch(id="b9", company_id="c404"))

    def test_branch_with_invalid_manager_not_stored(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_branch(Branch(id="b9", company_id="c1", manager_id="u1"))
        with pytest.raises(NotFoundError):
            store.get_branch("b9")

    def test_branch_with_manager(self, store: InMemoryTenancyStore) -> None:
        branch = store.add_branch(Branch(id="b9", company_id="c2", manager_id="m9"))
        assert branch.manager_id == "m9"
        manager = store.get_user("m9")
        assert (manager.branch_id, manager.company_id) == ("b9", "c2")

    def test_staff_require_branch(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_user(User(id="u9", role=Role.PHARMACIST))

    def test_user_company_filled_from_branch(self, store: InMemoryTenancyStore) -> None:
        assert store.get_user("u3").company_id == "c1"

    def test_user_company_mismatch(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_user(User(id="u9", role=Role.CASHIER, branch_id="b1", company_id="c2"))

    def test_manager_sets_branch_manager(self, store: InMemoryTenancyStore) -> None:
        assert store.manager_of_branch("b1") == "m1"
        assert store.manager_of_branch("b4") is None

    def test_second_manager_rejected(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_user(User(id="m8", role=Role.MANAGER, branch_id="b1"))

    def test_resource_requires_branch(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_resource(Resource(id="x", kind=ResourceKind.SALE, branch_id="b404"))

    def test_resource_must_be_operational(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.add_resource(Resource(id="x", kind=ResourceKind.USER, branch_id="b1"))

    def test_set_business_type(self, store: InMemoryTenancyStore) -> None:
        assert store.set_business_type("c3", "pharmacy").is_configured
        assert store.get_company("c3").business_type == "pharmacy"


class TestManagerReassignment:
    """assign_manager keeps both sides consistent."""

    def test_reassign(self, store: InMemoryTenancyStore) -> None:
        store.assign_manager("b1", "m9")
        assert store.manager_of_branch("b1") == "m9"
        assert store.get_user("m9").branch_id == "b1"
        assert store.branches_managed_by("m1") == []
        assert store.get_user("m1").branch_id is None

    def test_second_branch_keeps_home(self, store: InMemoryTenancyStore) -> None:
        store.assign_manager("b4", "m3")
        assert sorted(store.branches_managed_by("m3")) == ["b3", "b4"]
        assert store.get_user("m3").branch_id == "b3"

    def test_clear(self, store: InMemoryTenancyStore) -> None:
        store.assign_manager("b2", None)
        assert store.manager_of_branch("b2") is None
        assert store.get_user("m2").branch_id is None

    def test_non_manager_rejected(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.assign_manager("b1", "u1")
        assert store.manager_of_branch("b1") == "m1"


class TestReads:
    """TenancyGraph reads."""

    def test_branches_of_company(self, store: InMemoryTenancyStore) -> None:
        assert store.branches_of_company("c1") == ["b1", "b2"]
        assert store.branches_of_company("c404") == []

    def test_company_of_branch(self, store: InMemoryTenancyStore) -> None:
        assert store.company_of_branch("b4") == "c3"
        with pytest.raises(NotFoundError) as exc_info:
            store.company_of_branch("b404")
        assert exc_info.value.entity == "branch"

    def test_companies_owned_by(self, store: InMemoryTenancyStore) -> None:
        assert store.companies_owned_by("a2") == ["c2", "c3"]
        assert store.companies_owned_by("a3") == []

    def test_get_missing(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(NotFoundError):
            store.get_user("ghost")
        with pytest.raises(NotFoundError):
            store.get_company("c404")
        with pytest.raises(NotFoundError):
            store.get_resource(ResourceKind.SALE, "nope")

    def test_user_queries(self, store: InMemoryTenancyStore) -> None:
        assert sorted(store.users_in_branches(["b1"])) == ["m1", "u1", "u2"]
        assert sorted(store.users_in_companies(["c2"])) == ["m3", "u4"]
        assert sorted(store.users_created_by("a2")) == ["m3", "u4"]

    def test_resource_ids(self, store: InMemoryTenancyStore) -> None:
        assert sorted(store.resource_ids(ResourceKind.SHIFT, ["b1"])) == ["s1", "s2"]
        assert store.resource_ids("sale", ["b2", "b3"]) == ["sale2", "sale3"]
        with pytest.raises(ValueError):
            store.resource_ids(ResourceKind.BRANCH, ["b1"])

    def test_delete_user(self, store: InMemoryTenancyStore) -> None:
        assert store.delete_user("m2") is True
        assert store.manager_of_branch("b2") is None
        assert store.delete_user("m2") is False
        # Shift assignments keep the dangling id.
        store.delete_user("u3")
        assert store.get_resource("shift", "s3").assigned_user_ids == {"u3"}


class TestApplyDeletionPlan:
    """The executor applies every step or none."""

    def test_leaves_first_plan_applies(self, store: InMemoryTenancyStore) -> None:
        removed = store.apply_deletion_plan(
            [
                DeletionStep(ResourceKind.SALE, ("sale3",)),
                DeletionStep(ResourceKind.PRODUCT, ("p3",)),
                DeletionStep(ResourceKind.USER, ("m3", "u4")),
                DeletionStep(ResourceKind.BRANCH, ("b3",)),
                DeletionStep(ResourceKind.COMPANY, ("c2",)),
            ]
        )
        assert removed == 6
        assert store.companies_owned_by("a2") == ["c3"]

    def test_unknown_ids_skipped(self, store: InMemoryTenancyStore) -> None:
        assert store.apply_deletion_plan([DeletionStep(ResourceKind.SALE, ("ghost",))]) == 0

    def test_parent_before_child_rolls_back(self, store: InMemoryTenancyStore) -> None:
        steps = [
            DeletionStep(ResourceKind.SALE, ("sale1", "sale2")),
            DeletionStep(ResourceKind.COMPANY, ("c1",)),
        ]
        with pytest.raises(TenancyIntegrityError):
            store.apply_deletion_plan(steps)
        assert store.resource_ids(ResourceKind.SALE, ["b1", "b2"]) == ["sale1", "sale2"]
        assert store.get_company("c1").id == "c1"

    def test_owner_before_company_rolls_back(self, store: InMemoryTenancyStore) -> None:
        with pytest.raises(TenancyIntegrityError):
            store.apply_deletion_plan([DeletionStep(ResourceKind.USER, ("a2",))])
        assert store.get_user("a2").role is Role.ADMIN

    def test_failure_in_subclass_rolls_back(self, store: InMemoryTenancyStore) -> None:
        class FlakyStore(InMemoryTenancyStore):
            def _apply_step(self, step: DeletionStep) -> int:
                if step.kind is ResourceKind.BRANCH:
                    raise RuntimeError("connection reset")
                return super()._apply_step(step)

        flaky = FlakyStore()
        flaky.add_user(User(id="a1", role=Role.ADMIN))
        flaky.add_company(Company(id="c1", owner_admin_id="a1"))
        flaky.add_branch(Branch(id="b1", company_id="c1"))
        flaky.add_resource(Resource(id="sale1", kind=ResourceKind.SALE, branch_id="b1"))

        with pytest.raises(RuntimeError):
            flaky.apply_deletion_plan(
                [DeletionStep(ResourceKind.SALE, ("sale1",)), DeletionStep(ResourceKind.BRANCH, ("b1",))]
            )
        assert flaky.resource_ids(ResourceKind.SALE, ["b1"]) == ["sale1"]
