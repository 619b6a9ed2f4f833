"""Read-only tenancy lookups consumed by the engine.

The storage collaborator implements ``TenancyGraph``; the engine never
writes through it. Lookups of a single id raise ``NotFoundError`` when the
id does not exist. Collection lookups return an empty list instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Protocol, Sequence, runtime_checkable

from .models import Company, User
from .permissions import ResourceKind

if TYPE_CHECKING:
    from .cascade import DeletionStep


@runtime_checkable
class TenancyGraph(Protocol):
    """Company → Branch → User ownership edges."""

    def branches_of_company(self, company_id: str) -> list[str]: ...

    def company_of_branch(self, branch_id: str) -> str:
        """Raises NotFoundError for an unknown branch."""
        ...

    def manager_of_branch(self, branch_id: str) -> str | None:
        """Raises NotFoundError for an unknown branch."""
        ...

    def branches_managed_by(self, user_id: str) -> list[str]: ...

    def companies_owned_by(self, admin_id: str) -> list[str]: ...

    def get_company(self, company_id: str) -> Company:
        """Raises NotFoundError for an unknown company."""
        ...

    def get_user(self, user_id: str) -> User:
        """Raises NotFoundError for an unknown user."""
        ...

    def users_in_branches(self, branch_ids: Iterable[str]) -> list[str]: ...

    def users_in_companies(self, company_ids: Iterable[str]) -> list[str]: ...

    def users_created_by(self, user_id: str) -> list[str]: ...

    def resource_ids(self, kind: ResourceKind, branch_ids: Iterable[str]) -> list[str]: ...


@runtime_checkable
class DeletionExecutor(Protocol):
    """Transactional side of the storage collaborator.

    ``apply_deletion_plan`` must apply every step or none of them.
    """

    def apply_deletion_plan(self, steps: Sequence[DeletionStep]) -> int: ...


__all__ = [
    "DeletionExecutor",
    "TenancyGraph",
]
