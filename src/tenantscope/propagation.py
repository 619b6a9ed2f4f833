"""Acting company/branch propagation for transports.

The surrounding transport supplies an IdentityContext from an
authenticated session plus two optional override values:
- HTTP services: ``X-Company-ID`` / ``X-Branch-ID`` headers
- gRPC services: ``x-company-id`` / ``x-branch-id`` metadata

These helpers only extract and forward raw ids. Validation happens in
``build_identity_context``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import grpc

from .graph import TenancyGraph
from .identity import IdentityContext, build_identity_context
from .models import User

logger = logging.getLogger(__name__)

# HTTP header keys
HTTP_COMPANY_HEADER = "X-Company-ID"
HTTP_BRANCH_HEADER = "X-Branch-ID"

# gRPC metadata keys (must be lowercase)
GRPC_COMPANY_HEADER = "x-company-id"
GRPC_BRANCH_HEADER = "x-branch-id"


@dataclass(frozen=True)
class ActingOverrides:
    """Raw override ids as received from a transport."""

    company_id: str | None = None
    branch_id: str | None = None

    @property
    def empty(self) -> bool:
        return self.company_id is None and self.branch_id is None


def _clean(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    text = str(value).strip()
    return text or None


def extract_overrides_from_headers(headers: Mapping[str, str]) -> ActingOverrides:
    """Extract overrides from HTTP headers (case-insensitive).

    Accepts both plain header names and WSGI-style ``HTTP_X_COMPANY_ID``
    keys. Blank values are treated as absent.
    """
    normalized = {str(k).lower().replace("_", "-"): v for k, v in headers.items()}

    def lookup(name: str) -> str | None:
        key = name.lower()
        return _clean(normalized.get(key, normalized.get(f"http-{key}")))

    return ActingOverrides(
        company_id=lookup(HTTP_COMPANY_HEADER),
        branch_id=lookup(HTTP_BRANCH_HEADER),
    )


def extract_overrides_from_grpc_metadata(context: grpc.ServicerContext) -> ActingOverrides:
    """Extract overrides from gRPC invocation metadata.

    Example:
        async def ListSales(self, request, context):
            overrides = extract_overrides_from_grpc_metadata(context)
    """
    metadata = dict(context.invocation_metadata() or ())
    return ActingOverrides(
        company_id=_clean(metadata.get(GRPC_COMPANY_HEADER)),
        branch_id=_clean(metadata.get(GRPC_BRANCH_HEADER)),
    )


def create_grpc_metadata_with_overrides(
    company_id: Optional[str] = None,
    branch_id: Optional[str] = None,
    additional_metadata: Optional[list[tuple[str, str]]] = None,
) -> list[tuple[str, str]]:
    """Create gRPC metadata carrying the acting company/branch.

    Example:
        metadata = create_grpc_metadata_with_overrides(company_id="c1")
        response = await stub.ListSales(request, metadata=metadata)
    """
    metadata: list[tuple[str, str]] = []

    if company_id:
        metadata.append((GRPC_COMPANY_HEADER, company_id))
    if branch_id:
        metadata.append((GRPC_BRANCH_HEADER, branch_id))

    if additional_metadata:
        metadata.extend(additional_metadata)

    return metadata


def identity_from_headers(user: User, graph: TenancyGraph, headers: Mapping[str, str]) -> IdentityContext:
    """Build a validated IdentityContext from HTTP headers.

    Raises:
        OverrideRejectedError: the override is unknown, unowned, or inconsistent.
    """
    overrides = extract_overrides_from_headers(headers)
    return build_identity_context(
        user,
        graph,
        acting_company_id=overrides.company_id,
        acting_branch_id=overrides.branch_id,
    )


def identity_from_grpc_context(
    user: User,
    graph: TenancyGraph,
    context: grpc.ServicerContext,
) -> IdentityContext:
    """Build a validated IdentityContext from gRPC metadata."""
    overrides = extract_overrides_from_grpc_metadata(context)
    if not overrides.empty:
        logger.debug(
            "Acting override received (user=%s, company=%s, branch=%s)",
            user.id,
            overrides.company_id,
            overrides.branch_id,
        )
    return build_identity_context(
        user,
        graph,
        acting_company_id=overrides.company_id,
        acting_branch_id=overrides.branch_id,
    )


__all__ = [
    "ActingOverrides",
    "GRPC_BRANCH_HEADER",
    "GRPC_COMPANY_HEADER",
    "HTTP_BRANCH_HEADER",
    "HTTP_COMPANY_HEADER",
    "create_grpc_metadata_with_overrides",
    "extract_overrides_from_grpc_metadata",
    "extract_overrides_from_headers",
    "identity_from_grpc_context",
    "identity_from_headers",
]
