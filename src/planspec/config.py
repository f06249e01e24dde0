# config.py
"""
Input schema for plan definitions.

A plan can be written as a mapping literal (or JSON file) that matches
PlanConfig. The schema only checks shape and types; structural rules
(at least one stage, checkout references, ...) belong to the validator.
"""
from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .model import PermissionType


class _Config(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ProjectConfig(_Config):
    key: str
    name: str = ""
    description: Optional[str] = None


class RepositoryConfig(_Config):
    name: str
    url: str
    branch: str = "master"
    # shared credential name on the server
    credentials: Optional[str] = None
    change_detection: Literal["polling", "push"] = "polling"
    quiet_period_seconds: Optional[int] = None


class CheckoutItemConfig(_Config):
    repository: Optional[str] = None
    path: Optional[str] = None


# -------------------- Tasks --------------------

class CheckoutTaskConfig(_Config):
    type: Literal["checkout"]
    items: List[CheckoutItemConfig] = Field(default_factory=lambda: [CheckoutItemConfig()])
    clean_checkout: bool = False
    description: Optional[str] = None
    enabled: bool = True


class ScriptTaskConfig(_Config):
    type: Literal["script"]
    body: str
    description: Optional[str] = None
    working_subdirectory: Optional[str] = None
    environment: Optional[str] = None
    enabled: bool = True


class TestParserTaskConfig(_Config):
    type: Literal["test_parser"]
    test_type: Literal["junit", "testng", "nunit", "mocha"] = "junit"
    result_directories: List[str]
    description: Optional[str] = None
    pick_up_outdated_files: bool = False
    enabled: bool = True

    @field_validator("result_directories", mode="before")
    @classmethod
    def _split(cls, v):
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v


TaskConfig = Annotated[
    Union[CheckoutTaskConfig, ScriptTaskConfig, TestParserTaskConfig],
    Field(discriminator="type"),
]


class JobConfig(_Config):
    name: str
    key: str
    description: Optional[str] = None
    tasks: List[TaskConfig] = Field(default_factory=list)
    final_tasks: List[TaskConfig] = Field(default_factory=list)
    enabled: bool = True


class StageConfig(_Config):
    name: str
    description: Optional[str] = None
    manual: bool = False
    jobs: List[JobConfig] = Field(default_factory=list)


# -------------------- Triggers / notifications --------------------

class RemoteTriggerConfig(_Config):
    type: Literal["remote"]
    name: str = "Remote trigger"
    description: Optional[str] = None
    ip_addresses: List[str] = Field(default_factory=list)

    @field_validator("ip_addresses", mode="before")
    @classmethod
    def _split(cls, v):
        # the server UI takes a comma separated list
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return v


class PollingTriggerConfig(_Config):
    type: Literal["polling"]
    period_seconds: int = 180
    name: str = "Repository polling"
    description: Optional[str] = None


TriggerConfig = Annotated[
    Union[RemoteTriggerConfig, PollingTriggerConfig],
    Field(discriminator="type"),
]


class NotificationConfig(_Config):
    type: Literal["plan_status_changed", "plan_failed", "plan_completed", "job_failed"] = "plan_status_changed"
    recipients: List[str] = Field(default_factory=lambda: ["committers"])


class BranchManagementConfig(_Config):
    creation: Literal["manually", "for_vcs_branch", "for_pull_request"] = "manually"
    # 0 = delete as soon as the branch is removed from the repository
    delete_removed_after_days: Optional[int] = None
    delete_inactive_after_days: Optional[int] = None
    notify_committers: bool = False


class PermissionsConfig(_Config):
    logged_in: List[PermissionType] = Field(default_factory=list)
    anonymous: List[PermissionType] = Field(default_factory=list)
    users: Dict[str, List[PermissionType]] = Field(default_factory=dict)
    groups: Dict[str, List[PermissionType]] = Field(default_factory=dict)


# -------------------- Plan --------------------

class PlanConfig(_Config):
    project: ProjectConfig
    key: str
    name: str
    description: Optional[str] = None
    enabled: bool = True
    stages: List[StageConfig] = Field(default_factory=list)
    repositories: List[RepositoryConfig] = Field(default_factory=list)
    triggers: List[TriggerConfig] = Field(default_factory=list)
    notifications: List[NotificationConfig] = Field(default_factory=list)
    branch_management: BranchManagementConfig = Field(default_factory=BranchManagementConfig)
    permissions: Optional[PermissionsConfig] = None
