"""Scope predicates and their resolution.

Provides:
- ``DenyReason``: reason codes shared by predicates and decisions.
- ``ScopeKind`` / ``ScopePredicate``: the visibility filter for one
  (identity, resource kind) pair.
- ``ScopeResolver``: the single place where scope predicates are computed.
- ``RequestScopeCache``: per-request memoization of ``resolve``.

Resolution order (first match wins):

1. SUPERADMIN → ALLOW_ALL (narrowed by a validated acting company/branch)
2. PRODUCT_OWNER → ALLOW_ALL for administration kinds, DENY otherwise
3. ADMIN → COMPANY_IN(owned companies), NEEDS_ONBOARDING when none.
   For users, unplaced accounts the admin created are also visible.
4. ADMIN with override → override must be owned, else DENY
5. MANAGER → BRANCH_IN(managed branches), UNASSIGNED when none.
   Never widened to the manager's company.
6. CASHIER / PHARMACIST → BRANCH_IN({own branch}), or ASSIGNED_TO for
   self-assignable kinds
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, TypeVar

from .config import EngineConfig
from .exceptions import NotFoundError
from .graph import TenancyGraph
from .identity import IdentityContext
from .models import ResourceTenancy, tenancy_of
from .permissions import ADMINISTRATION_KINDS, ResourceKind, Role

_T = TypeVar("_T")


class DenyReason(str, Enum):
    """Reason codes reported with a Deny.

    NEEDS_ONBOARDING and UNASSIGNED are legitimate states, not failures;
    callers render each code differently.
    """

    OUT_OF_SCOPE = "OUT_OF_SCOPE"
    INVALID_ROLE_ASSIGNMENT = "INVALID_ROLE_ASSIGNMENT"
    MISSING_BRANCH = "MISSING_BRANCH"
    NOT_FOUND = "NOT_FOUND"
    NEEDS_ONBOARDING = "NEEDS_ONBOARDING"
    UNASSIGNED = "UNASSIGNED"
    ACTION_NOT_PERMITTED = "ACTION_NOT_PERMITTED"


class ScopeKind(str, Enum):
    """Shape of a scope predicate."""

    ALLOW_ALL = "allow_all"
    COMPANY_IN = "company_in"
    BRANCH_IN = "branch_in"
    ASSIGNED_TO = "assigned_to"
    DENY = "deny"
    NEEDS_ONBOARDING = "needs_onboarding"
    UNASSIGNED = "unassigned"


EMPTY_SCOPE_KINDS = frozenset({ScopeKind.DENY, ScopeKind.NEEDS_ONBOARDING, ScopeKind.UNASSIGNED})


@dataclass(frozen=True)
class ScopePredicate:
    """Visibility filter for one identity and resource kind.

    For COMPANY_IN, ``branch_ids`` holds the branches of the listed
    companies so that records carrying only a branch_id can be matched.
    For ASSIGNED_TO, a record must be in ``branch_ids`` AND list
    ``user_id`` among its assigned users. ``owner_id`` additionally admits
    records with no company or branch that were created by that user.
    """

    kind: ScopeKind
    company_ids: frozenset[str] = frozenset()
    branch_ids: frozenset[str] = frozenset()
    user_id: str | None = None
    owner_id: str | None = None
    reason: DenyReason | None = None

    # ── Constructors ────────────────────────────────────

    @classmethod
    def allow_all(cls) -> ScopePredicate:
        return cls(ScopeKind.ALLOW_ALL)

    @classmethod
    def company_in(
        cls,
        company_ids: Iterable[str],
        branch_ids: Iterable[str] = (),
        owner_id: str | None = None,
    ) -> ScopePredicate:
        return cls(
            ScopeKind.COMPANY_IN,
            company_ids=frozenset(company_ids),
            branch_ids=frozenset(branch_ids),
            owner_id=owner_id,
        )

    @classmethod
    def branch_in(cls, branch_ids: Iterable[str]) -> ScopePredicate:
        return cls(ScopeKind.BRANCH_IN, branch_ids=frozenset(branch_ids))

    @classmethod
    def assigned_to(cls, user_id: str, branch_ids: Iterable[str]) -> ScopePredicate:
        return cls(ScopeKind.ASSIGNED_TO, branch_ids=frozenset(branch_ids), user_id=user_id)

    @classmethod
    def deny(cls, reason: DenyReason = DenyReason.OUT_OF_SCOPE) -> ScopePredicate:
        return cls(ScopeKind.DENY, reason=reason)

    @classmethod
    def needs_onboarding(cls) -> ScopePredicate:
        return cls(ScopeKind.NEEDS_ONBOARDING, reason=DenyReason.NEEDS_ONBOARDING)

    @classmethod
    def unassigned(cls) -> ScopePredicate:
        return cls(ScopeKind.UNASSIGNED, reason=DenyReason.UNASSIGNED)

    # ── Evaluation ──────────────────────────────────────

    @property
    def is_empty(self) -> bool:
        """True when no record can match (Deny or a marker state)."""
        return self.kind in EMPTY_SCOPE_KINDS

    def matches(self, tenancy: ResourceTenancy) -> bool:
        """Check whether a record with the given tenancy is visible."""
        if self.kind is ScopeKind.ALLOW_ALL:
            return True
        if self.owner_id is not None and self._owns_unplaced(tenancy):
            return True
        if self.kind is ScopeKind.COMPANY_IN:
            if tenancy.company_id is not None:
                return tenancy.company_id in self.company_ids
            return tenancy.branch_id is not None and tenancy.branch_id in self.branch_ids
        if self.kind is ScopeKind.BRANCH_IN:
            return tenancy.branch_id is not None and tenancy.branch_id in self.branch_ids
        if self.kind is ScopeKind.ASSIGNED_TO:
            return (
                tenancy.branch_id is not None
                and tenancy.branch_id in self.branch_ids
                and self.user_id in tenancy.assigned_user_ids
            )
        return False

    def _owns_unplaced(self, tenancy: ResourceTenancy) -> bool:
        return tenancy.created_by == self.owner_id and tenancy.company_id is None and tenancy.branch_id is None

    def filter(
        self,
        records: Iterable[_T],
        tenancy: Callable[[_T], ResourceTenancy] = tenancy_of,  # type: ignore[assignment]
    ) -> list[_T]:
        """Return the visible subset of ``records``, preserving order."""
        if self.is_empty:
            return []
        if self.kind is ScopeKind.ALLOW_ALL:
            return list(records)
        return [record for record in records if self.matches(tenancy(record))]

    def as_filter(self) -> dict[str, Any] | None:
        """Storage-friendly form: field name → allowed values.

        Returns ``{}`` for ALLOW_ALL and ``None`` when nothing is visible.
        An ``or_unplaced_created_by`` key admits unplaced records created by
        that user in addition to those matching the other keys.
        """
        if self.is_empty:
            return None
        if self.kind is ScopeKind.ALLOW_ALL:
            return {}
        if self.kind is ScopeKind.COMPANY_IN:
            if self.owner_id is not None:
                return {"company_id": sorted(self.company_ids), "or_unplaced_created_by": self.owner_id}
            return {"company_id": sorted(self.company_ids)}
        if self.kind is ScopeKind.BRANCH_IN:
            return {"branch_id": sorted(self.branch_ids)}
        return {"branch_id": sorted(self.branch_ids), "assigned_user_ids__contains": self.user_id}


class ScopeResolver:
    """Computes the ScopePredicate for an identity and resource kind.

    Stateless: every call re-reads the graph. Use ``RequestScopeCache``
    to reuse results within a single request.
    """

    def __init__(self, graph: TenancyGraph, config: EngineConfig | None = None) -> None:
        self._graph = graph
        self._config = config or EngineConfig()

    @property
    def graph(self) -> TenancyGraph:
        return self._graph

    def resolve(self, ctx: IdentityContext, kind: ResourceKind | str) -> ScopePredicate:
        kind = ResourceKind(kind)
        try:
            return self._resolve(ctx, kind)
        except NotFoundError:
            return ScopePredicate.deny(DenyReason.NOT_FOUND)

    def for_request(self, ctx: IdentityContext) -> RequestScopeCache:
        return RequestScopeCache(self, ctx)

    def _resolve(self, ctx: IdentityContext, kind: ResourceKind) -> ScopePredicate:
        if ctx.role is Role.SUPERADMIN:
            return self._resolve_superadmin(ctx)
        if ctx.role is Role.PRODUCT_OWNER:
            if kind in ADMINISTRATION_KINDS:
                return ScopePredicate.allow_all()
            return ScopePredicate.deny()
        if ctx.role is Role.ADMIN:
            return self._resolve_admin(ctx, kind)
        if ctx.role is Role.MANAGER:
            return self._resolve_manager(ctx)
        return self._resolve_staff(ctx, kind)

    def _resolve_superadmin(self, ctx: IdentityContext) -> ScopePredicate:
        if ctx.acting_branch_id is not None:
            branch_company = self._graph.company_of_branch(ctx.acting_branch_id)
            if ctx.acting_company_id is not None and branch_company != ctx.acting_company_id:
                return ScopePredicate.deny()
            return ScopePredicate.branch_in({ctx.acting_branch_id})
        if ctx.acting_company_id is not None:
            self._graph.get_company(ctx.acting_company_id)
            return self._company_scope([ctx.acting_company_id])
        return ScopePredicate.allow_all()

    def _resolve_admin(self, ctx: IdentityContext, kind: ResourceKind) -> ScopePredicate:
        owned = self._graph.companies_owned_by(ctx.user_id)

        if ctx.acting_company_id is not None:
            if ctx.acting_company_id not in owned:
                return ScopePredicate.deny()
            companies = [ctx.acting_company_id]
        else:
            companies = list(owned)

        if ctx.acting_branch_id is not None:
            branch_company = self._graph.company_of_branch(ctx.acting_branch_id)
            if branch_company not in companies:
                return ScopePredicate.deny()
            if self._hides_incomplete(kind) and not self._graph.get_company(branch_company).is_configured:
                return ScopePredicate.needs_onboarding()
            return ScopePredicate.branch_in({ctx.acting_branch_id})

        if not companies:
            return ScopePredicate.needs_onboarding()
        if self._hides_incomplete(kind):
            companies = [c for c in companies if self._graph.get_company(c).is_configured]
            if not companies:
                return ScopePredicate.needs_onboarding()
        # Staff the admin created stay reachable after losing their branch.
        owner = ctx.user_id if kind is ResourceKind.USER and ctx.acting_company_id is None else None
        return self._company_scope(companies, owner)

    def _resolve_manager(self, ctx: IdentityContext) -> ScopePredicate:
        managed = self._graph.branches_managed_by(ctx.user_id)
        if not managed:
            return ScopePredicate.unassigned()

        if ctx.acting_branch_id is not None:
            if ctx.acting_branch_id not in managed:
                return ScopePredicate.deny()
            managed = [ctx.acting_branch_id]
        if ctx.acting_company_id is not None:
            managed = [b for b in managed if self._graph.company_of_branch(b) == ctx.acting_company_id]
            if not managed:
                return ScopePredicate.deny()
        return ScopePredicate.branch_in(managed)

    def _resolve_staff(self, ctx: IdentityContext, kind: ResourceKind) -> ScopePredicate:
        if ctx.branch_id is None:
            return ScopePredicate.unassigned()
        if kind.is_self_assignable:
            return ScopePredicate.assigned_to(ctx.user_id, {ctx.branch_id})
        return ScopePredicate.branch_in({ctx.branch_id})

    def _company_scope(self, companies: list[str], owner_id: str | None = None) -> ScopePredicate:
        branches = [b for c in companies for b in self._graph.branches_of_company(c)]
        return ScopePredicate.company_in(companies, branches, owner_id)

    def _hides_incomplete(self, kind: ResourceKind) -> bool:
        return kind.is_operational and self._config.exclude_incomplete_companies


class RequestScopeCache:
    """Memoizes ``ScopeResolver.resolve`` for one request.

    Bound to a single IdentityContext. Create one per request and drop it
    when the request ends; sharing it across requests serves stale
    privileges after a reassignment.
    """

    def __init__(self, resolver: ScopeResolver, ctx: IdentityContext) -> None:
        self._resolver = resolver
        self.ctx = ctx
        self._cache: dict[ResourceKind, ScopePredicate] = {}

    def resolve(self, kind: ResourceKind | str) -> ScopePredicate:
        kind = ResourceKind(kind)
        predicate = self._cache.get(kind)
        if predicate is None:
            predicate = self._resolver.resolve(self.ctx, kind)
            self._cache[kind] = predicate
        return predicate

    def __len__(self) -> int:
        return len(self._cache)


__all__ = [
    "DenyReason",
    "EMPTY_SCOPE_KINDS",
    "RequestScopeCache",
    "ScopeKind",
    "ScopePredicate",
    "ScopeResolver",
]
