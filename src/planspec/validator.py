# validator.py
from __future__ import annotations

import ipaddress
import re
from typing import Iterable, Set

from .errors import ValidationError
from .model import (
    ANONYMOUS,
    CheckoutTask,
    Job,
    PermissionSet,
    PermissionType,
    Plan,
    RemoteTrigger,
    ScriptTask,
    Task,
    TestParserTask,
)

# Keys are what the server uses in URLs and build result names.
KEY_RE = re.compile(r"^[A-Z][A-Z0-9]*$")
PRINCIPAL_RE = re.compile(r"^(logged_in|anonymous|(user|group):\S+)$")
RECIPIENT_RE = re.compile(r"^(committers|watchers|responsible|(user|email):\S+)$")


def _check_key(value: str, field: str) -> None:
    if not KEY_RE.match(value or ""):
        raise ValidationError(
            field,
            "must start with an uppercase letter and contain only A-Z and 0-9",
            value=value,
        )


def _check_unique(names: Iterable[str], field: str) -> None:
    seen: Set[str] = set()
    for n in names:
        if n in seen:
            raise ValidationError(field, "must be unique", value=n)
        seen.add(n)


def _check_task(task: Task, plan: Plan, field: str) -> None:
    if isinstance(task, ScriptTask):
        if not task.body.strip():
            raise ValidationError(f"{field}.body", "script body must not be empty")

    elif isinstance(task, TestParserTask):
        if not task.result_directories:
            raise ValidationError(
                f"{field}.result_directories",
                "at least one result directory is required",
            )

    elif isinstance(task, CheckoutTask):
        if not task.items:
            raise ValidationError(f"{field}.items", "at least one checkout item is required")
        declared = {r.name for r in plan.repositories}
        for i, item in enumerate(task.items):
            if item.is_default:
                if plan.default_repository is None:
                    raise ValidationError(
                        f"{field}.items[{i}]",
                        "checks out the default repository but the plan declares none",
                    )
            elif item.repository not in declared:
                raise ValidationError(
                    f"{field}.items[{i}].repository",
                    "must reference a declared repository",
                    value=item.repository,
                    known=sorted(declared),
                )


def _check_job(job: Job, plan: Plan, field: str) -> None:
    _check_key(job.key, f"{field}.key")
    if not job.tasks:
        raise ValidationError(f"{field}.tasks", "job must have at least one task")
    for i, task in enumerate(job.tasks):
        _check_task(task, plan, f"{field}.tasks[{i}]")
    for i, task in enumerate(job.final_tasks):
        _check_task(task, plan, f"{field}.final_tasks[{i}]")


def validate(plan: Plan) -> None:
    """
    Check the structural rules of a plan.

    Raises ValidationError for the first violation found; errors are not
    aggregated. Returns None when the plan is valid.
    """
    _check_key(plan.project.key, "project.key")
    _check_key(plan.key, "plan.key")

    if not plan.stages:
        raise ValidationError("stages", "plan must have at least one stage")

    _check_unique((s.name for s in plan.stages), "stages.name")

    for si, stage in enumerate(plan.stages):
        if not stage.jobs:
            raise ValidationError(f"stages[{si}].jobs", "stage must have at least one job")

    _check_unique((j.key for j in plan.jobs), "jobs.key")

    for si, stage in enumerate(plan.stages):
        for ji, job in enumerate(stage.jobs):
            _check_job(job, plan, f"stages[{si}].jobs[{ji}]")

    _check_unique((r.name for r in plan.repositories), "repositories.name")

    for ti, trigger in enumerate(plan.triggers):
        if isinstance(trigger, RemoteTrigger):
            for addr in trigger.ip_addresses:
                try:
                    ipaddress.ip_network(addr.strip(), strict=False)
                except ValueError:
                    raise ValidationError(
                        f"triggers[{ti}].ip_addresses",
                        "entries must be IP addresses or CIDR networks",
                        value=addr,
                    )
        elif trigger.period_seconds <= 0:
            raise ValidationError(f"triggers[{ti}].period_seconds", "must be > 0")

    for ni, notification in enumerate(plan.notifications):
        if not notification.recipients:
            raise ValidationError(f"notifications[{ni}].recipients", "at least one recipient is required")
        for recipient in notification.recipients:
            if not RECIPIENT_RE.match(recipient):
                raise ValidationError(
                    f"notifications[{ni}].recipients",
                    "recipient must be committers, watchers, responsible, user:<name> or email:<address>",
                    value=recipient,
                )

    cleanup = plan.branch_management.cleanup
    if cleanup.removed_after_days is not None and cleanup.removed_after_days < 0:
        raise ValidationError(
            "branch_management.cleanup.removed_after_days",
            "must be >= 0",
            value=cleanup.removed_after_days,
        )
    if cleanup.inactive_after_days is not None and cleanup.inactive_after_days < 0:
        raise ValidationError(
            "branch_management.cleanup.inactive_after_days",
            "must be >= 0",
            value=cleanup.inactive_after_days,
        )


def validate_permissions(permissions: PermissionSet) -> None:
    _check_key(permissions.plan.project_key, "permissions.project_key")
    _check_key(permissions.plan.plan_key, "permissions.plan_key")

    for principal, allowed in permissions.grants.items():
        if not PRINCIPAL_RE.match(principal):
            raise ValidationError(
                "permissions",
                "principal must be logged_in, anonymous, user:<name> or group:<name>",
                value=principal,
            )
        if not allowed:
            raise ValidationError(
                f"permissions.{principal}",
                "grant set must not be empty",
            )
        if principal == ANONYMOUS and set(allowed) - {PermissionType.VIEW}:
            raise ValidationError(
                f"permissions.{principal}",
                "anonymous users may only be granted VIEW",
                granted=sorted(p.value for p in allowed),
            )
