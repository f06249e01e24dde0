# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple, Union

from .errors import ConfigurationError


def _require(value: Optional[str], field_name: str, owner: str) -> None:
    if value is None or not str(value).strip():
        raise ConfigurationError(f"{owner} requires a non-empty {field_name}", field=field_name)


# ---------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Project:
    key: str
    name: str = ""
    description: str | None = None

    def __post_init__(self) -> None:
        _require(self.key, "project.key", "Project")


@dataclass(frozen=True)
class PlanIdentifier:
    """(project key, plan key) pair that identifies a plan on the server."""
    project_key: str
    plan_key: str

    def __post_init__(self) -> None:
        _require(self.project_key, "project_key", "PlanIdentifier")
        _require(self.plan_key, "plan_key", "PlanIdentifier")

    def __str__(self) -> str:
        return f"{self.project_key}-{self.plan_key}"


# Returned by a successful plan publish.
PlanReference = PlanIdentifier


# ---------------------------------------------------------------------
# Repository binding
# ---------------------------------------------------------------------

class ChangeDetection(str, Enum):
    POLLING = "polling"
    PUSH = "push"


@dataclass(frozen=True)
class Repository:
    """A VCS repository bound to the plan."""
    name: str
    url: str
    branch: str = "master"
    # name of a shared credential on the server, never the secret itself
    shared_credentials: str | None = None
    change_detection: ChangeDetection = ChangeDetection.POLLING
    quiet_period_seconds: int | None = None

    def __post_init__(self) -> None:
        _require(self.name, "repository.name", "Repository")
        _require(self.url, "repository.url", "Repository")


# ---------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class CheckoutItem:
    """Either the plan's default repository (repository=None) or a named one."""
    repository: str | None = None
    path: str | None = None

    @property
    def is_default(self) -> bool:
        return self.repository is None


@dataclass(frozen=True)
class CheckoutTask:
    items: Tuple[CheckoutItem, ...] = (CheckoutItem(),)
    clean_checkout: bool = False
    description: str | None = None
    enabled: bool = True

    type = "checkout"


@dataclass(frozen=True)
class ScriptTask:
    body: str
    description: str | None = None
    working_subdirectory: str | None = None
    environment: str | None = None
    enabled: bool = True

    type = "script"


class TestType(str, Enum):
    JUNIT = "junit"
    TESTNG = "testng"
    NUNIT = "nunit"
    MOCHA = "mocha"

    __test__ = False


@dataclass(frozen=True)
class TestParserTask:
    test_type: TestType
    result_directories: Tuple[str, ...]
    description: str | None = None
    pick_up_outdated_files: bool = False
    enabled: bool = True

    type = "test_parser"

    # keep pytest from collecting this class
    __test__ = False


Task = Union[CheckoutTask, ScriptTask, TestParserTask]


# ---------------------------------------------------------------------
# Jobs / stages
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Job:
    """
    A job runs its tasks in declaration order. Final tasks run afterwards
    regardless of the outcome of the regular tasks.
    """
    name: str
    key: str
    tasks: Tuple[Task, ...] = ()
    final_tasks: Tuple[Task, ...] = ()
    description: str | None = None
    enabled: bool = True

    def __post_init__(self) -> None:
        _require(self.name, "job.name", "Job")
        _require(self.key, "job.key", "Job")

    @property
    def all_tasks(self) -> Tuple[Task, ...]:
        return self.tasks + self.final_tasks


@dataclass(frozen=True)
class Stage:
    name: str
    jobs: Tuple[Job, ...] = ()
    description: str | None = None
    manual: bool = False

    def __post_init__(self) -> None:
        _require(self.name, "stage.name", "Stage")


# ---------------------------------------------------------------------
# Triggers / notifications
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteTrigger:
    """Build started by a call from the repository host (webhook)."""
    name: str = "Remote trigger"
    description: str | None = None
    ip_addresses: Tuple[str, ...] = ()

    type = "remote"


@dataclass(frozen=True)
class PollingTrigger:
    period_seconds: int = 180
    name: str = "Repository polling"
    description: str | None = None

    type = "polling"


Trigger = Union[RemoteTrigger, PollingTrigger]


class NotificationType(str, Enum):
    PLAN_STATUS_CHANGED = "plan_status_changed"
    PLAN_FAILED = "plan_failed"
    PLAN_COMPLETED = "plan_completed"
    JOB_FAILED = "job_failed"


@dataclass(frozen=True)
class Notification:
    """
    recipients: "committers", "watchers", "responsible",
    "user:<name>" or "email:<address>".
    """
    type: NotificationType = NotificationType.PLAN_STATUS_CHANGED
    recipients: Tuple[str, ...] = ("committers",)


# ---------------------------------------------------------------------
# Branch management
# ---------------------------------------------------------------------

class BranchCreation(str, Enum):
    MANUALLY = "manually"
    FOR_VCS_BRANCH = "for_vcs_branch"
    FOR_PULL_REQUEST = "for_pull_request"


@dataclass(frozen=True)
class BranchCleanup:
    """
    removed_after_days: delete a branch plan N days after its branch disappears
    from the repository (0 = immediately, None = never).
    inactive_after_days: delete after N days without builds (None = never).
    """
    removed_after_days: int | None = None
    inactive_after_days: int | None = None

    @property
    def deletes_immediately(self) -> bool:
        return self.removed_after_days == 0


@dataclass(frozen=True)
class BranchManagement:
    creation: BranchCreation = BranchCreation.MANUALLY
    cleanup: BranchCleanup = field(default_factory=BranchCleanup)
    notify_committers: bool = False


# ---------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class Plan:
    """
    A named pipeline definition. Stage order is execution order. The first
    repository is the plan's default repository.
    """
    project: Project
    key: str
    name: str
    stages: Tuple[Stage, ...] = ()
    repositories: Tuple[Repository, ...] = ()
    triggers: Tuple[Trigger, ...] = ()
    notifications: Tuple[Notification, ...] = ()
    branch_management: BranchManagement = field(default_factory=BranchManagement)
    description: str | None = None
    enabled: bool = True

    def __post_init__(self) -> None:
        _require(self.key, "plan.key", "Plan")
        _require(self.name, "plan.name", "Plan")

    @property
    def identifier(self) -> PlanIdentifier:
        return PlanIdentifier(self.project.key, self.key)

    @property
    def default_repository(self) -> Repository | None:
        return self.repositories[0] if self.repositories else None

    @property
    def jobs(self) -> Tuple[Job, ...]:
        return tuple(j for s in self.stages for j in s.jobs)


# ---------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------

class PermissionType(str, Enum):
    VIEW = "VIEW"
    EDIT = "EDIT"
    BUILD = "BUILD"
    CLONE = "CLONE"
    ADMIN = "ADMIN"


LOGGED_IN = "logged_in"
ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class PermissionSet:
    """
    Grants keyed by principal: "logged_in", "anonymous", "user:<name>"
    or "group:<name>".
    """
    plan: PlanIdentifier
    grants: Mapping[str, FrozenSet[PermissionType]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # read-only copy of the caller's mapping
        grants = {p: frozenset(allowed) for p, allowed in self.grants.items()}
        object.__setattr__(self, "grants", MappingProxyType(grants))

    def __hash__(self) -> int:
        return hash((self.plan, frozenset(self.grants.items())))

    def allowed(self, principal: str) -> FrozenSet[PermissionType]:
        return self.grants.get(principal, frozenset())
