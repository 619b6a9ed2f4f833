"""Per-request identity of the requester.

IdentityContext is the only way the engine learns who is asking. It is
built once per request from the authenticated User plus the optional
acting company/branch overrides, and passed explicitly to every call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .exceptions import NotFoundError, OverrideRejectedError, SecurityError
from .graph import TenancyGraph
from .models import User
from .permissions import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdentityContext:
    """Role and tenancy coordinates of one request.

    - role / user_id: the authenticated principal
    - company_id / branch_id: the principal's own coordinates (may be None)
    - created_by: the principal that provisioned this account
    - acting_company_id / acting_branch_id: validated view narrowing
    """

    role: Role
    user_id: str
    company_id: str | None = None
    branch_id: str | None = None
    created_by: str | None = None
    acting_company_id: str | None = None
    acting_branch_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", Role.parse(self.role))
        if not self.user_id:
            raise ValueError("IdentityContext requires a user_id")

    @classmethod
    def from_user(
        cls,
        user: User,
        *,
        acting_company_id: str | None = None,
        acting_branch_id: str | None = None,
    ) -> IdentityContext:
        return cls(
            role=user.role,
            user_id=user.id,
            company_id=user.company_id,
            branch_id=user.branch_id,
            created_by=user.created_by,
            acting_company_id=acting_company_id,
            acting_branch_id=acting_branch_id,
        )

    @property
    def has_override(self) -> bool:
        return self.acting_company_id is not None or self.acting_branch_id is not None

    def without_override(self) -> IdentityContext:
        return replace(self, acting_company_id=None, acting_branch_id=None)


def build_identity_context(
    user: User,
    graph: TenancyGraph,
    *,
    acting_company_id: str | None = None,
    acting_branch_id: str | None = None,
) -> IdentityContext:
    """Build and validate the IdentityContext for one request.

    Overrides are checked here so that an invalid selection is rejected
    before any handler runs:

    - SUPERADMIN: the company/branch must exist and agree with each other.
    - ADMIN: the company must be owned; the branch must belong to an owned
      company (and to the acting company when both are given).
    - MANAGER: the branch must be one they manage; the company must be the
      company of a managed branch.
    - PRODUCT_OWNER, CASHIER, PHARMACIST: overrides may only repeat their
      own coordinates and are then dropped.

    Raises:
        SecurityError: the account is deactivated.
        OverrideRejectedError: the override is unknown, unowned, or inconsistent.
    """
    if not user.is_active:
        raise SecurityError("Account is deactivated", code="ACCOUNT_DEACTIVATED", user_id=user.id)

    company = acting_company_id or None
    branch = acting_branch_id or None
    if company is None and branch is None:
        return IdentityContext.from_user(user)

    try:
        if user.role is Role.SUPERADMIN:
            if company is not None:
                graph.get_company(company)
            if branch is not None:
                branch_company = graph.company_of_branch(branch)
                _require(company is None or branch_company == company, user, company, branch)

        elif user.role is Role.ADMIN:
            owned = set(graph.companies_owned_by(user.id))
            _require(company is None or company in owned, user, company, branch)
            if branch is not None:
                branch_company = graph.company_of_branch(branch)
                _require(branch_company in owned, user, company, branch)
                _require(company is None or branch_company == company, user, company, branch)

        elif user.role is Role.MANAGER:
            managed = graph.branches_managed_by(user.id)
            _require(branch is None or branch in managed, user, company, branch)
            if company is not None:
                scoped = [branch] if branch is not None else managed
                _require(any(graph.company_of_branch(b) == company for b in scoped), user, company, branch)

        else:
            _require(company is None or company == user.company_id, user, company, branch)
            _require(branch is None or branch == user.branch_id, user, company, branch)
            return IdentityContext.from_user(user)

    except NotFoundError as e:
        logger.debug("Override references unknown %s %s", e.entity, e.entity_id)
        raise OverrideRejectedError(
            f"Unknown {e.entity} in override",
            user_id=user.id,
            acting_company_id=company,
            acting_branch_id=branch,
        ) from e

    return IdentityContext.from_user(user, acting_company_id=company, acting_branch_id=branch)


def _require(condition: bool, user: User, company: str | None, branch: str | None) -> None:
    if not condition:
        raise OverrideRejectedError(
            user_id=user.id,
            role=user.role.value,
            acting_company_id=company,
            acting_branch_id=branch,
        )


__all__ = [
    "IdentityContext",
    "build_identity_context",
]
