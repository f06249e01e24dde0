from .builder import build, build_permissions
from .dsl import (
    PlanBuilder,
    StageBuilder,
    JobBuilder,
    plan,
    stage,
    job,
    script,
    checkout,
    test_parser,
    git_repository,
    remote_trigger,
    polling_trigger,
    notification,
    branch_management,
    permissions,
)
from .errors import (
    PlanSpecError,
    ConfigurationError,
    ValidationError,
    PublishError,
    AuthenticationError,
    NetworkError,
    ServerRejectionError,
)
from .model import Plan, PlanReference, PermissionSet, PermissionType
from .publisher import publish_plan, publish_permissions
from .validator import validate, validate_permissions

__all__ = [
    "build", "build_permissions", "validate", "validate_permissions",
    "publish_plan", "publish_permissions",
    "PlanBuilder", "StageBuilder", "JobBuilder",
    "plan", "stage", "job", "script", "checkout", "test_parser",
    "git_repository", "remote_trigger", "polling_trigger", "notification",
    "branch_management", "permissions",
    "Plan", "PlanReference", "PermissionSet", "PermissionType",
    "PlanSpecError", "ConfigurationError", "ValidationError", "PublishError",
    "AuthenticationError", "NetworkError", "ServerRejectionError",
]
