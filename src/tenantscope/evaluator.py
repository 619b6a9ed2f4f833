"""Policy evaluation on top of scope resolution.

``PolicyEvaluator.authorize`` answers one question per call:

- LIST: always allowed; the decision carries the scope predicate to apply.
- READ / UPDATE / DELETE / ACTIVATE: allowed iff the target's tenancy
  satisfies the requester's scope predicate. On a User, the target role
  (current or requested) must also be one the requester manages.
- CREATE on User: role-assignment table lookup, then branch requirement.
- CREATE on Company: SUPERADMIN or ADMIN only.
- CREATE on anything else: the parent coordinates must be in scope.

The evaluator keeps no state between calls. Deny outcomes are values,
never exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, TypeVar, Union

from .audit import AuditActor, AuditEvent
from .config import EngineConfig
from .exceptions import NotFoundError
from .graph import TenancyGraph
from .identity import IdentityContext
from .models import Branch, Company, Resource, ResourceTenancy, User, tenancy_of
from .permissions import (
    ASSIGNABLE_ROLES,
    BRANCH_ROLES,
    MANAGEABLE_ROLES,
    Action,
    ResourceKind,
    Role,
    has_capability,
)
from .scope import DenyReason, RequestScopeCache, ScopePredicate, ScopeResolver

_T = TypeVar("_T")

# Actions on an existing User that are checked against MANAGEABLE_ROLES.
_ACCOUNT_CHANGES = frozenset({Action.UPDATE, Action.ACTIVATE, Action.DELETE})

Target = Union[ResourceTenancy, Resource, User, Branch, Company]


@dataclass(frozen=True)
class Decision:
    """Allow, or Deny with a reason code.

    ``scope`` is the predicate the decision was based on (always set for
    LIST). ``event`` is the audit record for a Deny.
    """

    allowed: bool
    reason: DenyReason | None = None
    scope: ScopePredicate | None = None
    event: AuditEvent | None = None

    @property
    def denied(self) -> bool:
        return not self.allowed

    def __bool__(self) -> bool:
        return self.allowed


class PolicyEvaluator:
    """Allow/Deny decisions for single records, scopes for lists."""

    def __init__(
        self,
        graph: TenancyGraph,
        config: EngineConfig | None = None,
        resolver: ScopeResolver | None = None,
    ) -> None:
        self._graph = graph
        self._config = config or EngineConfig()
        self._resolver = resolver or ScopeResolver(graph, self._config)

    @property
    def resolver(self) -> ScopeResolver:
        return self._resolver

    def authorize(
        self,
        ctx: IdentityContext,
        action: Action | str,
        kind: ResourceKind | str,
        target: Optional[Target] = None,
        *,
        scope: ScopePredicate | None = None,
    ) -> Decision:
        """Decide whether ``ctx`` may perform ``action`` on ``kind``.

        Args:
            ctx: Requester identity for this request.
            action: Attempted action.
            kind: Targeted resource kind.
            target: Tenancy of the concrete record (required except for LIST).
            scope: Predicate already resolved for (ctx, kind) in this request.

        Raises:
            ValueError: a single-record action was requested without a target.
        """
        action = Action(action)
        kind = ResourceKind(kind)
        tenancy = None if target is None else tenancy_of(target)

        if action is Action.LIST:
            return Decision(allowed=True, scope=scope or self._resolver.resolve(ctx, kind))
        if tenancy is None:
            raise ValueError(f"Action {action.value!r} on {kind.value!r} requires a target")

        if action is Action.CREATE and kind is ResourceKind.USER:
            return self._decide(ctx, action, kind, tenancy, self._check_account_creation(ctx, tenancy))

        if self._config.enforce_capabilities and not has_capability(ctx.role, kind, action):
            return self._deny(ctx, action, kind, tenancy, DenyReason.ACTION_NOT_PERMITTED)

        if action is Action.CREATE and kind is ResourceKind.COMPANY:
            return self._decide(ctx, action, kind, tenancy, self._check_company_creation(ctx, tenancy))

        if kind is ResourceKind.USER and action is Action.READ and tenancy.record_id == ctx.user_id:
            return Decision(allowed=True)

        if kind is ResourceKind.USER and action in _ACCOUNT_CHANGES and tenancy.role is not None:
            if tenancy.role not in MANAGEABLE_ROLES[ctx.role]:
                return self._deny(ctx, action, kind, tenancy, DenyReason.INVALID_ROLE_ASSIGNMENT)

        predicate = scope or self._resolver.resolve(ctx, kind)
        if predicate.is_empty:
            return self._deny(ctx, action, kind, tenancy, predicate.reason or DenyReason.OUT_OF_SCOPE, predicate)

        try:
            located = self._locate(action, kind, tenancy)
        except NotFoundError:
            return self._deny(ctx, action, kind, tenancy, DenyReason.NOT_FOUND, predicate)

        if located is not None and predicate.matches(located):
            return Decision(allowed=True, scope=predicate)
        return self._deny(ctx, action, kind, tenancy, DenyReason.OUT_OF_SCOPE, predicate)

    def authorize_many(
        self,
        ctx: IdentityContext,
        action: Action | str,
        kind: ResourceKind | str,
        targets: Sequence[Target],
        *,
        cache: RequestScopeCache | None = None,
    ) -> list[Decision]:
        """Authorize several targets of one kind, resolving scope once."""
        cache = cache or self._resolver.for_request(ctx)
        predicate = cache.resolve(kind)
        return [self.authorize(ctx, action, kind, target, scope=predicate) for target in targets]

    def filter(
        self,
        ctx: IdentityContext,
        kind: ResourceKind | str,
        records: Iterable[_T],
        *,
        scope: ScopePredicate | None = None,
    ) -> list[_T]:
        """Return the subset of ``records`` visible to ``ctx``."""
        predicate = scope or self._resolver.resolve(ctx, kind)
        return predicate.filter(records)

    # ── Checks ──────────────────────────────────────────

    def _check_account_creation(self, ctx: IdentityContext, target: ResourceTenancy) -> DenyReason | None:
        if target.role is None or target.role not in ASSIGNABLE_ROLES[ctx.role]:
            return DenyReason.INVALID_ROLE_ASSIGNMENT
        if target.role not in BRANCH_ROLES:
            return None

        if target.branch_id is None:
            return DenyReason.MISSING_BRANCH
        try:
            company = self._graph.company_of_branch(target.branch_id)
        except NotFoundError:
            return DenyReason.MISSING_BRANCH
        if target.company_id is not None and target.company_id != company:
            return DenyReason.MISSING_BRANCH

        if ctx.role is Role.ADMIN:
            if company not in self._graph.companies_owned_by(ctx.user_id):
                return DenyReason.MISSING_BRANCH
            if ctx.acting_company_id is not None and company != ctx.acting_company_id:
                return DenyReason.MISSING_BRANCH
            if ctx.acting_branch_id is not None and target.branch_id != ctx.acting_branch_id:
                return DenyReason.MISSING_BRANCH
        elif ctx.role not in (Role.SUPERADMIN, Role.PRODUCT_OWNER) and target.branch_id != ctx.branch_id:
            return DenyReason.MISSING_BRANCH
        return None

    def _check_company_creation(self, ctx: IdentityContext, target: ResourceTenancy) -> DenyReason | None:
        if ctx.role is Role.SUPERADMIN:
            return None
        if ctx.role is Role.ADMIN and target.created_by in (None, ctx.user_id):
            return None
        return DenyReason.OUT_OF_SCOPE

    def _locate(self, action: Action, kind: ResourceKind, target: ResourceTenancy) -> ResourceTenancy | None:
        """Complete the target's company from the graph.

        Returns None when the supplied company disagrees with the branch.
        Raises NotFoundError for an unknown branch or company.
        """
        if kind is ResourceKind.COMPANY:
            company_id = target.company_id or target.record_id
            if company_id is None:
                return None
            self._graph.get_company(company_id)
            return target.model_copy(update={"company_id": company_id, "branch_id": None})

        if kind is ResourceKind.BRANCH and action is Action.CREATE:
            # The branch does not exist yet; only its company is in play.
            target = target.model_copy(update={"branch_id": None})

        if target.branch_id is not None:
            company_id = self._graph.company_of_branch(target.branch_id)
            if target.company_id is not None and target.company_id != company_id:
                return None
            return target.model_copy(update={"company_id": company_id})

        if target.company_id is not None:
            self._graph.get_company(target.company_id)
        return target

    # ── Results ─────────────────────────────────────────

    def _decide(
        self,
        ctx: IdentityContext,
        action: Action,
        kind: ResourceKind,
        target: ResourceTenancy,
        reason: DenyReason | None,
    ) -> Decision:
        if reason is None:
            return Decision(allowed=True)
        return self._deny(ctx, action, kind, target, reason)

    def _deny(
        self,
        ctx: IdentityContext,
        action: Action,
        kind: ResourceKind,
        target: ResourceTenancy,
        reason: DenyReason,
        scope: ScopePredicate | None = None,
    ) -> Decision:
        event = AuditEvent(
            actor=AuditActor.from_context(ctx),
            action=action,
            kind=kind,
            target_id=target.record_id,
            decision="deny",
            reason_code=reason,
        )
        return Decision(allowed=False, reason=reason, scope=scope, event=event)


__all__ = [
    "Decision",
    "PolicyEvaluator",
    "Target",
]
