from .config import EngineConfig, LogLevel, load_config_from_env
from .exceptions import (
    ConfigurationError,
    InvalidCascadeRootError,
    NotFoundError,
    OverrideRejectedError,
    PlanExecutionError,
    SecurityError,
    StorageError,
    TenancyIntegrityError,
    TenantScopeError,
)
from .permissions import Action, ResourceKind, Role, can_assign_role, has_capability
from .models import Branch, Company, Resource, ResourceTenancy, User, tenancy_of
from .graph import DeletionExecutor, TenancyGraph
from .identity import IdentityContext, build_identity_context
from .scope import DenyReason, RequestScopeCache, ScopeKind, ScopePredicate, ScopeResolver
from .audit import AuditActor, AuditEvent, CascadeEvent
from .evaluator import Decision, PolicyEvaluator
from .cascade import CascadeDeleter, CascadeRoot, DeletionPlan, DeletionStep, execute_plan
from .store import InMemoryTenancyStore
from .logging import (
    IdentityLoggerAdapter,
    TenancyLogFormatter,
    get_identity_logger,
    safe_preview,
    setup_logging,
)

__all__ = [
    'EngineConfig',
    'LogLevel',
    'load_config_from_env',
    'TenantScopeError',
    'ConfigurationError',
    'SecurityError',
    'OverrideRejectedError',
    'NotFoundError',
    'TenancyIntegrityError',
    'InvalidCascadeRootError',
    'StorageError',
    'PlanExecutionError',
    'Action',
    'ResourceKind',
    'Role',
    'can_assign_role',
    'has_capability',
    'Branch',
    'Company',
    'Resource',
    'ResourceTenancy',
    'User',
    'tenancy_of',
    'DeletionExecutor',
    'TenancyGraph',
    'IdentityContext',
    'build_identity_context',
    'DenyReason',
    'RequestScopeCache',
    'ScopeKind',
    'ScopePredicate',
    'ScopeResolver',
    'AuditActor',
    'AuditEvent',
    'CascadeEvent',
    'Decision',
    'PolicyEvaluator',
    'CascadeDeleter',
    'CascadeRoot',
    'DeletionPlan',
    'DeletionStep',
    'execute_plan',
    'InMemoryTenancyStore',
    'IdentityLoggerAdapter',
    'TenancyLogFormatter',
    'get_identity_logger',
    'safe_preview',
    'setup_logging',
]
