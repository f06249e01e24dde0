# codec.py
from __future__ import annotations

import json
from typing import Any, Dict, List

from .model import (
    CheckoutTask,
    PermissionSet,
    Plan,
    PollingTrigger,
    RemoteTrigger,
    ScriptTask,
    Task,
    TestParserTask,
    Trigger,
)


def _drop_none(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


def task_to_dict(task: Task) -> dict:
    if isinstance(task, CheckoutTask):
        return _drop_none({
            "type": task.type,
            "description": task.description,
            "items": [_drop_none({"repository": i.repository, "path": i.path}) for i in task.items],
            "clean_checkout": task.clean_checkout,
            "enabled": task.enabled,
        })
    if isinstance(task, ScriptTask):
        return _drop_none({
            "type": task.type,
            "description": task.description,
            "body": task.body,
            "working_subdirectory": task.working_subdirectory,
            "environment": task.environment,
            "enabled": task.enabled,
        })
    if isinstance(task, TestParserTask):
        return _drop_none({
            "type": task.type,
            "description": task.description,
            "test_type": task.test_type.value,
            "result_directories": list(task.result_directories),
            "pick_up_outdated_files": task.pick_up_outdated_files,
            "enabled": task.enabled,
        })
    raise TypeError(f"Unknown task type: {type(task).__name__}")


def trigger_to_dict(trigger: Trigger) -> dict:
    if isinstance(trigger, RemoteTrigger):
        return _drop_none({
            "type": trigger.type,
            "name": trigger.name,
            "description": trigger.description,
            "ip_addresses": list(trigger.ip_addresses),
        })
    if isinstance(trigger, PollingTrigger):
        return _drop_none({
            "type": trigger.type,
            "name": trigger.name,
            "description": trigger.description,
            "period_seconds": trigger.period_seconds,
        })
    raise TypeError(f"Unknown trigger type: {type(trigger).__name__}")


def plan_to_dict(plan: Plan) -> dict:
    """
    Convert a Plan to a dictionary for API submission.

    The shape matches the PlanConfig input schema, so build(plan_to_dict(p))
    gives back an equal plan.
    """
    stages: List[dict] = []
    for stage in plan.stages:
        stages.append(_drop_none({
            "name": stage.name,
            "description": stage.description,
            "manual": stage.manual,
            "jobs": [
                _drop_none({
                    "name": job.name,
                    "key": job.key,
                    "description": job.description,
                    "tasks": [task_to_dict(t) for t in job.tasks],
                    "final_tasks": [task_to_dict(t) for t in job.final_tasks],
                    "enabled": job.enabled,
                })
                for job in stage.jobs
            ],
        }))

    bm = plan.branch_management
    return _drop_none({
        "project": _drop_none({
            "key": plan.project.key,
            "name": plan.project.name,
            "description": plan.project.description,
        }),
        "key": plan.key,
        "name": plan.name,
        "description": plan.description,
        "enabled": plan.enabled,
        "stages": stages,
        "repositories": [
            _drop_none({
                "name": r.name,
                "url": r.url,
                "branch": r.branch,
                "credentials": r.shared_credentials,
                "change_detection": r.change_detection.value,
                "quiet_period_seconds": r.quiet_period_seconds,
            })
            for r in plan.repositories
        ],
        "triggers": [trigger_to_dict(t) for t in plan.triggers],
        "notifications": [
            {"type": n.type.value, "recipients": list(n.recipients)}
            for n in plan.notifications
        ],
        "branch_management": _drop_none({
            "creation": bm.creation.value,
            "delete_removed_after_days": bm.cleanup.removed_after_days,
            "delete_inactive_after_days": bm.cleanup.inactive_after_days,
            "notify_committers": bm.notify_committers,
        }),
    })


def permissions_to_dict(permissions: PermissionSet) -> dict:
    """Grant lists are sorted so equal permission sets encode identically."""
    grants: Dict[str, Any] = {"logged_in": [], "anonymous": [], "users": {}, "groups": {}}
    for principal, allowed in sorted(permissions.grants.items()):
        values = sorted(p.value for p in allowed)
        if principal.startswith("user:"):
            grants["users"][principal[len("user:"):]] = values
        elif principal.startswith("group:"):
            grants["groups"][principal[len("group:"):]] = values
        else:
            grants[principal] = values

    return {
        "project_key": permissions.plan.project_key,
        "plan_key": permissions.plan.plan_key,
        "permissions": grants,
    }


def dumps(payload: dict) -> str:
    """Stable JSON text (sorted keys) for previews and request bodies."""
    return json.dumps(payload, sort_keys=True, indent=2, ensure_ascii=False)
