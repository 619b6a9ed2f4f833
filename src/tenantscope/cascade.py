"""Cascading deletion of a tenancy root.

``CascadeDeleter`` only plans: it reads the ownership closure of an Admin
or a Company and emits leaves-first steps:

    sales → shifts → batches → products → customers
        → users → branches → companies → admin user record

No step removes a parent while a child still references it, so storage
needs no cascade triggers. ``execute_plan`` hands the whole plan to the
storage collaborator, which must apply it in one transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from .audit import AuditActor, CascadeEvent, CascadeStepRecord
from .exceptions import InvalidCascadeRootError, NotFoundError, PlanExecutionError, StorageError
from .graph import DeletionExecutor, TenancyGraph
from .identity import IdentityContext
from .permissions import BRANCH_ROLES, CASCADE_RESOURCE_ORDER, ResourceKind, Role


class CascadeRoot(str, Enum):
    """Entity kinds whose deletion cascades."""

    ADMIN = "admin"
    COMPANY = "company"


@dataclass(frozen=True)
class DeletionStep:
    """Remove every ``kind`` record whose id is in ``ids``."""

    kind: ResourceKind
    ids: tuple[str, ...]

    def __len__(self) -> int:
        return len(self.ids)


@dataclass(frozen=True)
class DeletionPlan:
    """Ordered, leaves-first deletion steps for one root."""

    root_kind: CascadeRoot
    root_id: str
    steps: tuple[DeletionStep, ...] = ()

    @property
    def empty(self) -> bool:
        return not self.steps

    @property
    def total(self) -> int:
        return sum(len(step) for step in self.steps)

    def ids_for(self, kind: ResourceKind | str) -> frozenset[str]:
        kind = ResourceKind(kind)
        return frozenset(i for step in self.steps if step.kind is kind for i in step.ids)

    def __iter__(self) -> Iterator[DeletionStep]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)


class CascadeDeleter:
    """Plans the ordered closure of entities removed with a tenancy root."""

    def __init__(self, graph: TenancyGraph) -> None:
        self._graph = graph

    def plan_deletion(self, root_kind: CascadeRoot | str, root_id: str) -> DeletionPlan:
        """Compute the deletion plan for an Admin or a Company.

        A root that does not exist yields an empty plan.

        Raises:
            InvalidCascadeRootError: ``root_id`` is a user that is not an ADMIN.
        """
        root_kind = CascadeRoot(root_kind)
        tail: list[DeletionStep] = []
        protected = {root_id}

        if root_kind is CascadeRoot.ADMIN:
            try:
                admin = self._graph.get_user(root_id)
            except NotFoundError:
                return DeletionPlan(root_kind, root_id)
            if admin.role is not Role.ADMIN:
                raise InvalidCascadeRootError(
                    f"User {root_id!r} is {admin.role.value}, not ADMIN",
                    root_id=root_id,
                    role=admin.role.value,
                )
            companies = sorted(self._graph.companies_owned_by(root_id))
            created = self._graph.users_created_by(root_id)
            tail.append(DeletionStep(ResourceKind.USER, (root_id,)))
        else:
            try:
                company = self._graph.get_company(root_id)
            except NotFoundError:
                return DeletionPlan(root_kind, root_id)
            companies = [company.id]
            created = []
            protected.add(company.owner_admin_id)

        branches = sorted({b for c in companies for b in self._graph.branches_of_company(c)})

        steps = [
            DeletionStep(kind, tuple(sorted(self._graph.resource_ids(kind, branches))))
            for kind in CASCADE_RESOURCE_ORDER
        ]

        candidates = set(self._graph.users_in_branches(branches))
        candidates.update(self._graph.users_in_companies(companies))
        # Created staff placed in another admin's branch belong to that tenant now.
        candidates.update(u for u in created if self._is_unplaced(u, companies))
        users = sorted(u for u in candidates - protected if self._is_staff(u))

        steps.append(DeletionStep(ResourceKind.USER, tuple(users)))
        steps.append(DeletionStep(ResourceKind.BRANCH, tuple(branches)))
        steps.append(DeletionStep(ResourceKind.COMPANY, tuple(companies)))
        steps.extend(tail)

        return DeletionPlan(root_kind, root_id, tuple(step for step in steps if step.ids))

    def _is_staff(self, user_id: str) -> bool:
        try:
            return self._graph.get_user(user_id).role in BRANCH_ROLES
        except NotFoundError:
            return False

    def _is_unplaced(self, user_id: str, companies: list[str]) -> bool:
        try:
            user = self._graph.get_user(user_id)
        except NotFoundError:
            return False
        return user.branch_id is None and user.company_id in (None, *companies)


def execute_plan(
    executor: DeletionExecutor,
    plan: DeletionPlan,
    ctx: IdentityContext | None = None,
) -> CascadeEvent:
    """Apply a deletion plan in one transaction and return its audit event.

    Raises:
        PlanExecutionError: the executor failed; nothing was applied.
        StorageError: infrastructure failure reported by the executor.
    """
    removed = 0
    if not plan.empty:
        try:
            removed = executor.apply_deletion_plan(plan.steps)
        except StorageError:
            raise
        except Exception as e:
            raise PlanExecutionError(
                f"Deletion plan for {plan.root_kind.value} {plan.root_id!r} failed: {e}",
                root_kind=plan.root_kind.value,
                root_id=plan.root_id,
            ) from e

    return CascadeEvent(
        actor=AuditActor.from_context(ctx) if ctx is not None else None,
        root_kind=plan.root_kind.value,
        root_id=plan.root_id,
        steps=[CascadeStepRecord(kind=step.kind.value, ids=list(step.ids)) for step in plan.steps],
        removed=removed,
    )


__all__ = [
    "CascadeDeleter",
    "CascadeRoot",
    "DeletionPlan",
    "DeletionStep",
    "execute_plan",
]
