"""Structured audit events.

The engine does not log decisions. Every Deny and every executed cascade
plan is returned as one of these models, and the caller forwards it to
its audit/telemetry collaborator.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from .identity import IdentityContext
from .permissions import Action, ResourceKind, Role
from .scope import DenyReason


class AuditActor(BaseModel):
    """Identity snapshot embedded in an audit event."""

    role: Role
    user_id: str
    company_id: Optional[str] = None
    branch_id: Optional[str] = None
    acting_company_id: Optional[str] = None
    acting_branch_id: Optional[str] = None

    @classmethod
    def from_context(cls, ctx: IdentityContext) -> AuditActor:
        return cls(
            role=ctx.role,
            user_id=ctx.user_id,
            company_id=ctx.company_id,
            branch_id=ctx.branch_id,
            acting_company_id=ctx.acting_company_id,
            acting_branch_id=ctx.acting_branch_id,
        )


class AuditEvent(BaseModel):
    """``{ctx, action, kind, targetId, decision, reasonCode}`` for one decision."""

    event_type: str = "authorization"
    actor: AuditActor
    action: Action
    kind: ResourceKind
    target_id: Optional[str] = None
    decision: str = "deny"
    reason_code: Optional[DenyReason] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CascadeStepRecord(BaseModel):
    kind: str
    ids: list[str] = Field(default_factory=list)


class CascadeEvent(BaseModel):
    """Record of one executed deletion plan."""

    event_type: str = "cascade"
    actor: Optional[AuditActor] = None
    root_kind: str
    root_id: str
    steps: list[CascadeStepRecord] = Field(default_factory=list)
    removed: int = 0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "AuditActor",
    "AuditEvent",
    "CascadeEvent",
    "CascadeStepRecord",
]
