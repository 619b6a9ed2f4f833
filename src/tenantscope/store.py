"""In-memory storage collaborator.

``InMemoryTenancyStore`` implements both sides the engine talks to:
- ``TenancyGraph`` reads (companies, branches, users, branch resources)
- ``DeletionExecutor.apply_deletion_plan``: all steps or none

Writes validate the tenancy invariants:
- a branch belongs to an existing company
- a branch manager is a MANAGER user whose branch agrees with the branch
- CASHIER / PHARMACIST accounts always have a branch
- user company_id agrees with the company of their branch

Every read and write takes the same lock, so a reader never observes a
half-applied deletion plan.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Sequence

from .cascade import DeletionStep
from .exceptions import NotFoundError, TenancyIntegrityError
from .models import Branch, Company, Resource, User
from .permissions import OPERATIONAL_KINDS, ResourceKind, Role

logger = logging.getLogger(__name__)


class InMemoryTenancyStore:
    """Thread-safe in-memory tenancy storage."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._companies: dict[str, Company] = {}
        self._branches: dict[str, Branch] = {}
        self._users: dict[str, User] = {}
        self._resources: dict[ResourceKind, dict[str, Resource]] = {kind: {} for kind in OPERATIONAL_KINDS}

    # ── Writes ──────────────────────────────────────────

    def add_user(self, user: User) -> User:
        with self._lock:
            if user.id in self._users:
                raise TenancyIntegrityError(f"User {user.id!r} already exists", user_id=user.id)

            if user.branch_id is None:
                if user.role in (Role.CASHIER, Role.PHARMACIST):
                    raise TenancyIntegrityError(f"{user.role.value} requires a branch", user_id=user.id)
            else:
                branch = self._require_branch(user.branch_id)
                if user.company_id is not None and user.company_id != branch.company_id:
                    raise TenancyIntegrityError(
                        "User company does not match the company of their branch",
                        user_id=user.id,
                        branch_id=branch.id,
                    )
                user = user.model_copy(update={"company_id": branch.company_id})
                if user.role is Role.MANAGER:
                    if branch.manager_id not in (None, user.id):
                        raise TenancyIntegrityError(
                            f"Branch {branch.id!r} already has a manager",
                            branch_id=branch.id,
                            manager_id=branch.manager_id,
                        )
                    self._branches[branch.id] = branch.model_copy(update={"manager_id": user.id})

            self._users[user.id] = user
            return user

    def add_company(self, company: Company) -> Company:
        with self._lock:
            if company.id in self._companies:
                raise TenancyIntegrityError(f"Company {company.id!r} already exists", company_id=company.id)
            owner = self._users.get(company.owner_admin_id)
            if owner is None or owner.role is not Role.ADMIN:
                raise TenancyIntegrityError(
                    "Company owner must be an existing ADMIN",
                    company_id=company.id,
                    owner_admin_id=company.owner_admin_id,
                )
            self._companies[company.id] = company
            return company

    def add_branch(self, branch: Branch) -> Branch:
        with self._lock:
            if branch.id in self._branches:
                raise TenancyIntegrityError(f"Branch {branch.id!r} already exists", branch_id=branch.id)
            if branch.company_id not in self._companies:
                raise TenancyIntegrityError(
                    f"Company {branch.company_id!r} does not exist",
                    branch_id=branch.id,
                    company_id=branch.company_id,
                )
            manager_id = branch.manager_id
            self._branches[branch.id] = branch.model_copy(update={"manager_id": None})
            if manager_id is not None:
                try:
                    self.assign_manager(branch.id, manager_id)
                except TenancyIntegrityError:
                    del self._branches[branch.id]
                    raise
            return self._branches[branch.id]

    def add_resource(self, resource: Resource) -> Resource:
        with self._lock:
            if resource.kind not in OPERATIONAL_KINDS:
                raise TenancyIntegrityError(f"{resource.kind.value} is not a branch resource", resource_id=resource.id)
            self._require_branch(resource.branch_id)
            self._resources[resource.kind][resource.id] = resource
            return resource

    def assign_manager(self, branch_id: str, user_id: str | None) -> Branch:
        """Reassign (or clear) a branch manager, keeping both sides consistent."""
        with self._lock:
            branch = self._require_branch(branch_id)
            previous = branch.manager_id

            if user_id is not None:
                manager = self._users.get(user_id)
                if manager is None or manager.role is not Role.MANAGER:
                    raise TenancyIntegrityError(
                        "Branch manager must be an existing MANAGER",
                        branch_id=branch_id,
                        manager_id=user_id,
                    )

            branch = branch.model_copy(update={"manager_id": user_id})
            self._branches[branch_id] = branch

            if previous is not None and previous != user_id and previous in self._users:
                self._rehome_manager(previous)
            if user_id is not None:
                manager = self._users[user_id]
                if manager.branch_id is None or self._branches.get(manager.branch_id, branch).manager_id != user_id:
                    self._users[user_id] = manager.model_copy(
                        update={"branch_id": branch_id, "company_id": branch.company_id}
                    )

            logger.debug("Branch %s manager %s -> %s", branch_id, previous, user_id)
            return branch

    def set_business_type(self, company_id: str, business_type: str | None) -> Company:
        with self._lock:
            company = self.get_company(company_id)
            company = company.model_copy(update={"business_type": business_type})
            self._companies[company_id] = company
            return company

    def set_user_active(self, user_id: str, active: bool) -> User:
        with self._lock:
            user = self.get_user(user_id).model_copy(update={"is_active": active})
            self._users[user_id] = user
            return user

    def delete_user(self, user_id: str) -> bool:
        """Delete one user without cascading.

        Branches managed by the user lose their manager; resources keep
        their (now dangling) assignment ids.
        """
        with self._lock:
            if user_id not in self._users:
                return False
            self._delete_user(user_id)
            return True

    # ── TenancyGraph reads ──────────────────────────────

    def branches_of_company(self, company_id: str) -> list[str]:
        with self._lock:
            return [b.id for b in self._branches.values() if b.company_id == company_id]

    def company_of_branch(self, branch_id: str) -> str:
        with self._lock:
            return self._require_branch(branch_id, NotFoundError).company_id

    def manager_of_branch(self, branch_id: str) -> str | None:
        with self._lock:
            return self._require_branch(branch_id, NotFoundError).manager_id

    def branches_managed_by(self, user_id: str) -> list[str]:
        with self._lock:
            return [b.id for b in self._branches.values() if b.manager_id == user_id]

    def companies_owned_by(self, admin_id: str) -> list[str]:
        with self._lock:
            return [c.id for c in self._companies.values() if c.owner_admin_id == admin_id]

    def get_company(self, company_id: str) -> Company:
        with self._lock:
            company = self._companies.get(company_id)
            if company is None:
                raise NotFoundError("company", company_id)
            return company

    def get_branch(self, branch_id: str) -> Branch:
        with self._lock:
            return self._require_branch(branch_id, NotFoundError)

    def get_user(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError("user", user_id)
            return user

    def get_resource(self, kind: ResourceKind | str, resource_id: str) -> Resource:
        with self._lock:
            resource = self._resources_of(kind).get(resource_id)
            if resource is None:
                raise NotFoundError(ResourceKind(kind).value, resource_id)
            return resource

    def users_in_branches(self, branch_ids: Iterable[str]) -> list[str]:
        wanted = set(branch_ids)
        with self._lock:
            return [u.id for u in self._users.values() if u.branch_id in wanted]

    def users_in_companies(self, company_ids: Iterable[str]) -> list[str]:
        wanted = set(company_ids)
        with self._lock:
            return [u.id for u in self._users.values() if u.company_id in wanted]

    def users_created_by(self, user_id: str) -> list[str]:
        with self._lock:
            return [u.id for u in self._users.values() if u.created_by == user_id]

    def resource_ids(self, kind: ResourceKind | str, branch_ids: Iterable[str]) -> list[str]:
        wanted = set(branch_ids)
        with self._lock:
            return [r.id for r in self._resources_of(kind).values() if r.branch_id in wanted]

    # ── Listing helpers ─────────────────────────────────

    def companies(self) -> list[Company]:
        with self._lock:
            return list(self._companies.values())

    def branches(self) -> list[Branch]:
        with self._lock:
            return list(self._branches.values())

    def users(self) -> list[User]:
        with self._lock:
            return list(self._users.values())

    def resources(self, kind: ResourceKind | str) -> list[Resource]:
        with self._lock:
            return list(self._resources_of(kind).values())

    # ── DeletionExecutor ────────────────────────────────

    def apply_deletion_plan(self, steps: Sequence[DeletionStep]) -> int:
        """Apply every step in order inside one transaction.

        Each step behaves like a foreign-key-checked DELETE: removing a
        parent that is still referenced fails. On any failure the store is
        restored to its state before the first step and the error is
        re-raised.

        Returns:
            Number of records removed.
        """
        with self._lock:
            snapshot = self._snapshot()
            removed = 0
            try:
                for step in steps:
                    removed += self._apply_step(step)
            except Exception:
                self._restore(snapshot)
                logger.warning("Deletion plan rolled back after %d removals", removed)
                raise
            logger.debug("Deletion plan applied: %d steps, %d records", len(steps), removed)
            return removed

    # ── Internals ───────────────────────────────────────

    def _apply_step(self, step: DeletionStep) -> int:
        removed = 0
        for record_id in step.ids:
            if step.kind is ResourceKind.COMPANY:
                if record_id not in self._companies:
                    continue
                if any(b.company_id == record_id for b in self._branches.values()):
                    raise TenancyIntegrityError(
                        f"Company {record_id!r} is still referenced by a branch", company_id=record_id
                    )
                del self._companies[record_id]
            elif step.kind is ResourceKind.BRANCH:
                if record_id not in self._branches:
                    continue
                if any(u.branch_id == record_id for u in self._users.values()) or any(
                    r.branch_id == record_id for table in self._resources.values() for r in table.values()
                ):
                    raise TenancyIntegrityError(
                        f"Branch {record_id!r} is still referenced", branch_id=record_id
                    )
                del self._branches[record_id]
            elif step.kind is ResourceKind.USER:
                if record_id not in self._users:
                    continue
                if any(c.owner_admin_id == record_id for c in self._companies.values()):
                    raise TenancyIntegrityError(
                        f"User {record_id!r} still owns a company", user_id=record_id
                    )
                self._delete_user(record_id)
            else:
                if self._resources_of(step.kind).pop(record_id, None) is None:
                    continue
            removed += 1
        return removed

    def _delete_user(self, user_id: str) -> None:
        del self._users[user_id]
        for branch in list(self._branches.values()):
            if branch.manager_id == user_id:
                self._branches[branch.id] = branch.model_copy(update={"manager_id": None})

    def _rehome_manager(self, user_id: str) -> None:
        manager = self._users[user_id]
        managed = [b for b in self._branches.values() if b.manager_id == user_id]
        if manager.branch_id is not None and any(b.id == manager.branch_id for b in managed):
            return
        home = managed[0] if managed else None
        self._users[user_id] = manager.model_copy(
            update={
                "branch_id": home.id if home else None,
                "company_id": home.company_id if home else None,
            }
        )

    def _require_branch(self, branch_id: str, error: type = TenancyIntegrityError) -> Branch:
        branch = self._branches.get(branch_id)
        if branch is None:
            if error is NotFoundError:
                raise NotFoundError("branch", branch_id)
            raise TenancyIntegrityError(f"Branch {branch_id!r} does not exist", branch_id=branch_id)
        return branch

    def _resources_of(self, kind: ResourceKind | str) -> dict[str, Resource]:
        kind = ResourceKind(kind)
        if kind not in OPERATIONAL_KINDS:
            raise ValueError(f"{kind.value} is not a branch resource kind")
        return self._resources[kind]

    def _snapshot(self) -> tuple:
        return (
            dict(self._companies),
            dict(self._branches),
            dict(self._users),
            {kind: dict(table) for kind, table in self._resources.items()},
        )

    def _restore(self, snapshot: tuple) -> None:
        self._companies, self._branches, self._users, self._resources = snapshot


__all__ = [
    "InMemoryTenancyStore",
]
