# src/planspec/dsl.py
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from .errors import ConfigurationError
from .model import (
    ANONYMOUS,
    LOGGED_IN,
    BranchCleanup,
    BranchCreation,
    BranchManagement,
    ChangeDetection,
    CheckoutItem,
    CheckoutTask,
    Job,
    Notification,
    NotificationType,
    PermissionSet,
    PermissionType,
    Plan,
    PlanIdentifier,
    PollingTrigger,
    Project,
    RemoteTrigger,
    Repository,
    ScriptTask,
    Stage,
    Task,
    TestParserTask,
    TestType,
    Trigger,
)


# ---------------------------------------------------------------------
# Task helpers
# ---------------------------------------------------------------------

def script(description: str, body: str, *, cwd: str | None = None, env: str | None = None) -> ScriptTask:
    """Create an inline shell script task."""
    return ScriptTask(body=body, description=description, working_subdirectory=cwd, environment=env)


def checkout(
    description: str | None = None,
    *repositories: str,
    clean: bool = False,
) -> CheckoutTask:
    """
    Checkout task. With no repository names the plan's default repository
    is checked out.
    """
    items = tuple(CheckoutItem(repository=r) for r in repositories) or (CheckoutItem(),)
    return CheckoutTask(items=items, clean_checkout=clean, description=description)


def test_parser(
    description: str | None,
    *result_directories: str,
    test_type: TestType | str = TestType.JUNIT,
    pick_up_outdated_files: bool = False,
) -> TestParserTask:
    return TestParserTask(
        test_type=TestType(test_type),
        result_directories=tuple(result_directories),
        description=description,
        pick_up_outdated_files=pick_up_outdated_files,
    )


test_parser.__test__ = False  # type: ignore[attr-defined]


# ---------------------------------------------------------------------
# Repository / triggers / notifications
# ---------------------------------------------------------------------

def git_repository(
    name: str,
    url: str,
    *,
    branch: str = "master",
    credentials: str | None = None,
    change_detection: ChangeDetection | str = ChangeDetection.POLLING,
    quiet_period_seconds: int | None = None,
) -> Repository:
    return Repository(
        name=name,
        url=url,
        branch=branch,
        shared_credentials=credentials,
        change_detection=ChangeDetection(change_detection),
        quiet_period_seconds=quiet_period_seconds,
    )


def remote_trigger(
    ip_addresses: str | Iterable[str] = (),
    *,
    name: str = "Remote trigger",
    description: str | None = None,
) -> RemoteTrigger:
    """ip_addresses may be a comma separated string or an iterable."""
    if isinstance(ip_addresses, str):
        ips = [p.strip() for p in ip_addresses.split(",")]
    else:
        ips = [p.strip() for p in ip_addresses]
    return RemoteTrigger(name=name, description=description, ip_addresses=tuple(p for p in ips if p))


def polling_trigger(period_seconds: int = 180) -> PollingTrigger:
    return PollingTrigger(period_seconds=period_seconds)


def notification(
    type: NotificationType | str = NotificationType.PLAN_STATUS_CHANGED,
    *recipients: str,
) -> Notification:
    return Notification(type=NotificationType(type), recipients=tuple(recipients) or ("committers",))


def branch_management(
    *,
    creation: BranchCreation | str = BranchCreation.MANUALLY,
    delete_removed_after_days: int | None = None,
    delete_inactive_after_days: int | None = None,
    notify_committers: bool = False,
) -> BranchManagement:
    return BranchManagement(
        creation=BranchCreation(creation),
        cleanup=BranchCleanup(
            removed_after_days=delete_removed_after_days,
            inactive_after_days=delete_inactive_after_days,
        ),
        notify_committers=notify_committers,
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class JobBuilder:
    def __init__(self, name: str, key: str):
        self.name = name
        self.key = key
        self._tasks: list[Task] = []
        self._final_tasks: list[Task] = []
        self._description: Optional[str] = None
        self._enabled: bool = True

    def describe(self, description: str):
        self._description = description
        return self

    def tasks(self, *tasks: Task):
        self._tasks.extend(tasks)
        return self

    def final_tasks(self, *tasks: Task):
        self._final_tasks.extend(tasks)
        return self

    def step(self, description: str, body: str, cwd: str | None = None):
        self._tasks.append(script(description, body, cwd=cwd))
        return self

    def enable(self, enabled: bool = True):
        self._enabled = enabled
        return self

    def build(self) -> Job:
        if not self._tasks:
            raise ConfigurationError(f"Job '{self.key}' has no tasks", field="tasks")
        return Job(
            name=self.name,
            key=self.key,
            tasks=tuple(self._tasks),
            final_tasks=tuple(self._final_tasks),
            description=self._description,
            enabled=self._enabled,
        )


class StageBuilder:
    def __init__(self, name: str):
        self.name = name
        self._jobs: list[Job] = []
        self._description: Optional[str] = None
        self._manual = False

    def describe(self, description: str):
        self._description = description
        return self

    def manual(self, manual: bool = True):
        self._manual = manual
        return self

    def jobs(self, *jobs: Job | JobBuilder):
        self._jobs.extend(j.build() if isinstance(j, JobBuilder) else j for j in jobs)
        return self

    def build(self) -> Stage:
        if not self._jobs:
            raise ConfigurationError(f"Stage '{self.name}' has no jobs", field="jobs")
        return Stage(
            name=self.name,
            jobs=tuple(self._jobs),
            description=self._description,
            manual=self._manual,
        )


class PlanBuilder:
    """
    Fluent plan definition. Nothing is shared with the returned Plan: build()
    hands out a frozen value and the builder can be discarded.
    """

    def __init__(self, project: Project, name: str, key: str):
        self.project = project
        self.name = name
        self.key = key
        self._description: Optional[str] = None
        self._stages: list[Stage] = []
        self._repositories: list[Repository] = []
        self._triggers: list[Trigger] = []
        self._notifications: list[Notification] = []
        self._branch_management = BranchManagement()
        self._enabled = True

    def describe(self, description: str):
        self._description = description
        return self

    def stages(self, *stages: Stage | StageBuilder):
        self._stages.extend(s.build() if isinstance(s, StageBuilder) else s for s in stages)
        return self

    def repositories(self, *repositories: Repository):
        self._repositories.extend(repositories)
        return self

    def triggers(self, *triggers: Trigger):
        self._triggers.extend(triggers)
        return self

    def notifications(self, *notifications: Notification):
        self._notifications.extend(notifications)
        return self

    def branches(self, policy: BranchManagement):
        self._branch_management = policy
        return self

    def enable(self, enabled: bool = True):
        self._enabled = enabled
        return self

    def build(self) -> Plan:
        if not self._stages:
            raise ConfigurationError(f"Plan '{self.key}' has no stages", field="stages")
        return Plan(
            project=self.project,
            key=self.key,
            name=self.name,
            description=self._description,
            stages=tuple(self._stages),
            repositories=tuple(self._repositories),
            triggers=tuple(self._triggers),
            notifications=tuple(self._notifications),
            branch_management=self._branch_management,
            enabled=self._enabled,
        )


def plan(project_key: str, key: str, name: str, *, project_name: str = "") -> PlanBuilder:
    """Convenience: plan('PROJ', 'KEY', 'name').stages(...).build()"""
    return PlanBuilder(Project(key=project_key, name=project_name), name=name, key=key)


def stage(name: str, *jobs: Job | JobBuilder, description: str | None = None) -> StageBuilder:
    sb = StageBuilder(name).jobs(*jobs)
    if description:
        sb.describe(description)
    return sb


def job(name: str, key: str, *tasks: Task, final: Sequence[Task] = (), description: str | None = None) -> Job:
    jb = JobBuilder(name, key).tasks(*tasks).final_tasks(*final)
    if description:
        jb.describe(description)
    return jb.build()


# ---------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------

def permissions(
    project_key: str,
    plan_key: str,
    *,
    logged_in: Iterable[PermissionType | str] = (),
    anonymous: Iterable[PermissionType | str] = (),
    users: Optional[Dict[str, List[PermissionType | str]]] = None,
    groups: Optional[Dict[str, List[PermissionType | str]]] = None,
) -> PermissionSet:
    grants: Dict[str, frozenset] = {}

    def _add(principal: str, perms: Iterable[PermissionType | str]) -> None:
        values = frozenset(PermissionType(p) for p in perms)
        if values:
            grants[principal] = values

    _add(LOGGED_IN, logged_in)
    _add(ANONYMOUS, anonymous)
    for name, perms in (users or {}).items():
        _add(f"user:{name}", perms)
    for name, perms in (groups or {}).items():
        _add(f"group:{name}", perms)

    return PermissionSet(plan=PlanIdentifier(project_key, plan_key), grants=grants)
