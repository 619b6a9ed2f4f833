"""Tenancy data models.

Pydantic models for the entities the engine reasons over. The storage
collaborator owns them; the engine only ever reads them through a
TenancyGraph.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .permissions import ResourceKind, Role


class Company(BaseModel):
    """Top-level tenant owned by exactly one ADMIN."""

    model_config = ConfigDict(frozen=True)

    id: str
    owner_admin_id: str
    name: str = ""
    business_type: Optional[str] = None  # None = incomplete, not yet configured

    @property
    def is_configured(self) -> bool:
        return bool(self.business_type)


class Branch(BaseModel):
    """Operational sub-unit of a Company, optionally managed by one MANAGER."""

    model_config = ConfigDict(frozen=True)

    id: str
    company_id: str
    name: str = ""
    manager_id: Optional[str] = None
    is_active: bool = True


class User(BaseModel):
    """Authenticated principal as stored by the storage collaborator."""

    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    company_id: Optional[str] = None
    branch_id: Optional[str] = None
    created_by: Optional[str] = None
    is_active: bool = True

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, v: str | Role) -> Role:
        return Role.parse(v)


class ResourceTenancy(BaseModel):
    """Tenancy facts of a single target record.

    ``company_id`` may be left empty when ``branch_id`` is known; the
    evaluator completes it from the TenancyGraph. ``role`` is only
    meaningful for User targets: the role being created, or the current or
    requested role of an account being modified.
    """

    model_config = ConfigDict(frozen=True)

    record_id: Optional[str] = None
    branch_id: Optional[str] = None
    company_id: Optional[str] = None
    assigned_user_ids: frozenset[str] = Field(default_factory=frozenset)
    role: Optional[Role] = None
    created_by: Optional[str] = None

    @field_validator("role", mode="before")
    @classmethod
    def parse_role(cls, v: str | Role | None) -> Role | None:
        return None if v is None else Role.parse(v)


class Resource(BaseModel):
    """Generic branch-scoped operational record (Shift, Sale, Batch, ...)."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ResourceKind
    branch_id: str
    assigned_user_ids: frozenset[str] = Field(default_factory=frozenset)

    def tenancy(self, company_id: str | None = None) -> ResourceTenancy:
        return ResourceTenancy(
            record_id=self.id,
            branch_id=self.branch_id,
            company_id=company_id,
            assigned_user_ids=self.assigned_user_ids,
        )


def tenancy_of(record: Company | Branch | User | Resource | ResourceTenancy) -> ResourceTenancy:
    """Extract the tenancy facts of any stored record."""
    if isinstance(record, ResourceTenancy):
        return record
    if isinstance(record, Resource):
        return record.tenancy()
    if isinstance(record, Company):
        return ResourceTenancy(record_id=record.id, company_id=record.id, created_by=record.owner_admin_id)
    if isinstance(record, Branch):
        return ResourceTenancy(record_id=record.id, branch_id=record.id, company_id=record.company_id)
    if isinstance(record, User):
        return ResourceTenancy(
            record_id=record.id,
            branch_id=record.branch_id,
            company_id=record.company_id,
            role=record.role,
            created_by=record.created_by,
        )
    raise TypeError(f"Cannot derive tenancy from {type(record).__name__}")


__all__ = [
    "Branch",
    "Company",
    "Resource",
    "ResourceTenancy",
    "User",
    "tenancy_of",
]
