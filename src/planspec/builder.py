# builder.py
from __future__ import annotations

from typing import Any, Mapping, Optional, Union

import pydantic

from .config import (
    CheckoutTaskConfig,
    PermissionsConfig,
    PlanConfig,
    PollingTriggerConfig,
    RemoteTriggerConfig,
    ScriptTaskConfig,
    TestParserTaskConfig,
)
from .dsl import permissions as _permissions
from .errors import ConfigurationError
from .model import (
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

ConfigInput = Union[Plan, PlanConfig, Mapping[str, Any]]


def _loc(error: dict) -> str:
    return ".".join(str(p) for p in error.get("loc", ())) or "<root>"


def parse_config(config_input: Union[PlanConfig, Mapping[str, Any]]) -> PlanConfig:
    """Validate a mapping against the PlanConfig schema."""
    if isinstance(config_input, PlanConfig):
        return config_input
    if not isinstance(config_input, Mapping):
        raise ConfigurationError(
            f"plan configuration must be a mapping, got {type(config_input).__name__}"
        )
    try:
        return PlanConfig.model_validate(dict(config_input))
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        raise ConfigurationError(
            first.get("msg", "invalid value"),
            field=_loc(first),
            errors=e.error_count(),
        ) from e


def _task(cfg) -> Task:
    if isinstance(cfg, CheckoutTaskConfig):
        return CheckoutTask(
            items=tuple(CheckoutItem(repository=i.repository, path=i.path) for i in cfg.items),
            clean_checkout=cfg.clean_checkout,
            description=cfg.description,
            enabled=cfg.enabled,
        )
    if isinstance(cfg, ScriptTaskConfig):
        return ScriptTask(
            body=cfg.body,
            description=cfg.description,
            working_subdirectory=cfg.working_subdirectory,
            environment=cfg.environment,
            enabled=cfg.enabled,
        )
    if isinstance(cfg, TestParserTaskConfig):
        return TestParserTask(
            test_type=TestType(cfg.test_type),
            result_directories=tuple(cfg.result_directories),
            description=cfg.description,
            pick_up_outdated_files=cfg.pick_up_outdated_files,
            enabled=cfg.enabled,
        )
    raise ConfigurationError(f"unknown task config {type(cfg).__name__}", field="type")


def _trigger(cfg) -> Trigger:
    if isinstance(cfg, RemoteTriggerConfig):
        return RemoteTrigger(
            name=cfg.name,
            description=cfg.description,
            ip_addresses=tuple(cfg.ip_addresses),
        )
    if isinstance(cfg, PollingTriggerConfig):
        return PollingTrigger(
            period_seconds=cfg.period_seconds,
            name=cfg.name,
            description=cfg.description,
        )
    raise ConfigurationError(f"unknown trigger config {type(cfg).__name__}", field="type")


def build(config_input: ConfigInput) -> Plan:
    """
    Pure function from a static configuration description to a Plan value.
    No I/O; identical input gives an equal Plan.

    Raises ConfigurationError when the input does not match the schema or a
    required identity field is empty.
    """
    if isinstance(config_input, Plan):
        return config_input

    cfg = parse_config(config_input)

    stages = tuple(
        Stage(
            name=s.name,
            description=s.description,
            manual=s.manual,
            jobs=tuple(
                Job(
                    name=j.name,
                    key=j.key,
                    description=j.description,
                    tasks=tuple(_task(t) for t in j.tasks),
                    final_tasks=tuple(_task(t) for t in j.final_tasks),
                    enabled=j.enabled,
                )
                for j in s.jobs
            ),
        )
        for s in cfg.stages
    )

    repositories = tuple(
        Repository(
            name=r.name,
            url=r.url,
            branch=r.branch,
            shared_credentials=r.credentials,
            change_detection=ChangeDetection(r.change_detection),
            quiet_period_seconds=r.quiet_period_seconds,
        )
        for r in cfg.repositories
    )

    bm = cfg.branch_management
    branch_management = BranchManagement(
        creation=BranchCreation(bm.creation),
        cleanup=BranchCleanup(
            removed_after_days=bm.delete_removed_after_days,
            inactive_after_days=bm.delete_inactive_after_days,
        ),
        notify_committers=bm.notify_committers,
    )

    return Plan(
        project=Project(
            key=cfg.project.key,
            name=cfg.project.name,
            description=cfg.project.description,
        ),
        key=cfg.key,
        name=cfg.name,
        description=cfg.description,
        enabled=cfg.enabled,
        stages=stages,
        repositories=repositories,
        triggers=tuple(_trigger(t) for t in cfg.triggers),
        notifications=tuple(
            Notification(type=NotificationType(n.type), recipients=tuple(n.recipients))
            for n in cfg.notifications
        ),
        branch_management=branch_management,
    )


def build_permissions(
    config_input: Union[PermissionSet, PermissionsConfig, Mapping[str, Any], None],
    plan_id: PlanIdentifier,
) -> Optional[PermissionSet]:
    """
    Build the permission set for plan_id. A mapping may be either the
    permissions block itself or a whole plan configuration carrying one.
    Returns None when nothing is configured.
    """
    if config_input is None or isinstance(config_input, PermissionSet):
        return config_input

    if isinstance(config_input, Mapping) and "project" in config_input:
        config_input = parse_config(config_input).permissions
        if config_input is None:
            return None

    if not isinstance(config_input, PermissionsConfig):
        try:
            config_input = PermissionsConfig.model_validate(dict(config_input))
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            raise ConfigurationError(
                first.get("msg", "invalid value"),
                field="permissions." + _loc(first),
            ) from e
        except (TypeError, ValueError) as e:
            raise ConfigurationError(str(e), field="permissions") from e

    return _permissions(
        plan_id.project_key,
        plan_id.plan_key,
        logged_in=config_input.logged_in,
        anonymous=config_input.anonymous,
        users=config_input.users,
        groups=config_input.groups,
    )
