"""Shared fixtures: a small two-admin tenancy.

    sa  SUPERADMIN          po  PRODUCT_OWNER
    a1  ADMIN ── c1 (pharmacy) ── b1 (m1; u1 cashier, u2 pharmacist)
                               └─ b2 (m2; u3 cashier)
    a2  ADMIN ── c2 (retail)   ── b3 (m3; u4 cashier)
              └─ c3 (no business type) ── b4 (no manager)
    a3  ADMIN, no companies     m9  MANAGER, no branch

    shifts: s1@b1 [u1], s2@b1 [u2], s3@b2 [u3]
    sales:  sale1@b1, sale2@b2, sale3@b3
    other:  bt1 batch@b1, p1 product@b1, p3 product@b3, k1 customer@b2
"""

from __future__ import annotations

from typing import Callable

import pytest

from tenantscope import (
    Branch,
    CascadeDeleter,
    Company,
    EngineConfig,
    IdentityContext,
    InMemoryTenancyStore,
    PolicyEvaluator,
    Resource,
    ResourceKind,
    Role,
    ScopeResolver,
    User,
    build_identity_context,
)


def _user(user_id: str, role: Role, branch_id: str | None = None, created_by: str | None = None) -> User:
    return User(id=user_id, role=role, branch_id=branch_id, created_by=created_by)


@pytest.fixture
def store() -> InMemoryTenancyStore:
    s = InMemoryTenancyStore()

    s.add_user(_user("sa", Role.SUPERADMIN))
    s.add_user(_user("po", Role.PRODUCT_OWNER, created_by="sa"))
    for admin in ("a1", "a2", "a3"):
        s.add_user(_user(admin, Role.ADMIN, created_by="sa"))

    s.add_company(Company(id="c1", owner_admin_id="a1", name="North Pharmacy", business_type="pharmacy"))
    s.add_company(Company(id="c2", owner_admin_id="a2", name="Corner Shop", business_type="retail"))
    s.add_company(Company(id="c3", owner_admin_id="a2", name="Draft"))

    s.add_branch(Branch(id="b1", company_id="c1", name="Main St"))
    s.add_branch(Branch(id="b2", company_id="c1", name="Harbor"))
    s.add_branch(Branch(id="b3", company_id="c2", name="Center"))
    s.add_branch(Branch(id="b4", company_id="c3", name="Pending"))

    s.add_user(_user("m1", Role.MANAGER, "b1", created_by="a1"))
    s.add_user(_user("m2", Role.MANAGER, "b2", created_by="a1"))
    s.add_user(_user("m3", Role.MANAGER, "b3", created_by="a2"))
    s.add_user(_user("m9", Role.MANAGER, created_by="sa"))
    s.add_user(_user("u1", Role.CASHIER, "b1", created_by="a1"))
    s.add_user(_user("u2", Role.PHARMACIST, "b1", created_by="a1"))
    s.add_user(_user("u3", Role.CASHIER, "b2", created_by="a1"))
    s.add_user(_user("u4", Role.CASHIER, "b3", created_by="a2"))

    s.add_resource(Resource(id="s1", kind=ResourceKind.SHIFT, branch_id="b1", assigned_user_ids={"u1"}))
    s.add_resource(Resource(id="s2", kind=ResourceKind.SHIFT, branch_id="b1", assigned_user_ids={"u2"}))
    s.add_resource(Resource(id="s3", kind=ResourceKind.SHIFT, branch_id="b2", assigned_user_ids={"u3"}))
    s.add_resource(Resource(id="sale1", kind=ResourceKind.SALE, branch_id="b1"))
    s.add_resource(Resource(id="sale2", kind=ResourceKind.SALE, branch_id="b2"))
    s.add_resource(Resource(id="sale3", kind=ResourceKind.SALE, branch_id="b3"))
    s.add_resource(Resource(id="bt1", kind=ResourceKind.BATCH, branch_id="b1"))
    s.add_resource(Resource(id="p1", kind=ResourceKind.PRODUCT, branch_id="b1"))
    s.add_resource(Resource(id="p3", kind=ResourceKind.PRODUCT, branch_id="b3"))
    s.add_resource(Resource(id="k1", kind=ResourceKind.CUSTOMER, branch_id="b2"))

    return s


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def resolver(store: InMemoryTenancyStore, config: EngineConfig) -> ScopeResolver:
    return ScopeResolver(store, config)


@pytest.fixture
def evaluator(store: InMemoryTenancyStore, config: EngineConfig) -> PolicyEvaluator:
    return PolicyEvaluator(store, config)


@pytest.fixture
def deleter(store: InMemoryTenancyStore) -> CascadeDeleter:
    return CascadeDeleter(store)


@pytest.fixture
def ctx(store: InMemoryTenancyStore) -> Callable[..., IdentityContext]:
    """Build a validated IdentityContext for a fixture user."""

    def build(
        user_id: str,
        acting_company_id: str | None = None,
        acting_branch_id: str | None = None,
    ) -> IdentityContext:
        return build_identity_context(
            store.get_user(user_id),
            store,
            acting_company_id=acting_company_id,
            acting_branch_id=acting_branch_id,
        )

    return build
