from __future__ import annotations

import copy
from typing import Any, Dict, List, Tuple

import pytest

from planspec.credentials import Credentials
from planspec.ui.console import Console, set_console


class FakeServer:
    """In-memory CI server: plans and permissions are upserted by (project, plan)."""

    def __init__(self) -> None:
        self.plans: Dict[Tuple[str, str], dict] = {}
        self.permissions: Dict[Tuple[str, str], dict] = {}
        self.calls: List[Tuple[str, Tuple[str, str]]] = []

    def submit_plan(self, payload: dict) -> dict:
        key = (payload["project"]["key"], payload["key"])
        self.plans[key] = copy.deepcopy(payload)
        self.calls.append(("plan", key))
        return {"projectKey": key[0], "planKey": key[1]}

    def submit_permissions(self, payload: dict) -> dict:
        key = (payload["project_key"], payload["plan_key"])
        if key not in self.plans:
            raise AssertionError(f"permissions published before plan {key}")
        self.permissions[key] = copy.deepcopy(payload)
        self.calls.append(("permissions", key))
        return {}


@pytest.fixture(autouse=True)
def _quiet_console():
    set_console(Console())
    yield
    set_console(Console())


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "PLANSPEC_SERVER",
        "PLANSPEC_SPEC_FILE",
        "PLANSPEC_CREDENTIALS_FILE",
        "PLANSPEC_TIMEOUT",
        "PLANSPEC_USERNAME",
        "PLANSPEC_PASSWORD",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="ci-bot", password="s3cret")


def _script(n: int) -> Dict[str, Any]:
    return {"type": "script", "description": f"step {n}", "body": f"make step{n}"}


@pytest.fixture
def template_config() -> Dict[str, Any]:
    """TMPLTS/FAGT: one stage, one job, 5 script tasks and 2 final tasks."""
    return {
        "project": {"key": "TMPLTS", "name": "Templates"},
        "key": "FAGT",
        "name": "fm-app-go-template",
        "stages": [
            {
                "name": "Default Stage",
                "description": "Build, test and push",
                "jobs": [
                    {
                        "name": "Default Job",
                        "key": "DJ",
                        "tasks": [_script(n) for n in range(1, 6)],
                        "final_tasks": [
                            {
                                "type": "test_parser",
                                "description": "Parse test result",
                                "result_directories": ["test-result/junit-test-report.xml"],
                            },
                            {"type": "script", "description": "Cleanup", "body": "make clean"},
                        ],
                    }
                ],
            }
        ],
        "repositories": [
            {
                "name": "fm-app-go-template",
                "url": "git@bitbucket.org:fusemail/fm-app-go-template.git",
                "credentials": "Bitbucket Cloud - Bamboo Master Key",
            }
        ],
        "triggers": [
            {"type": "remote", "ip_addresses": "104.192.136.0/21,34.198.203.127"},
        ],
        "notifications": [{"type": "plan_status_changed", "recipients": ["committers"]}],
        "branch_management": {
            "creation": "for_vcs_branch",
            "delete_removed_after_days": 0,
            "notify_committers": True,
        },
        "permissions": {"logged_in": ["VIEW"], "anonymous": ["VIEW"]},
    }
