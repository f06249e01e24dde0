from __future__ import annotations

import copy

import pytest

from planspec.builder import build, build_permissions
from planspec.dsl import JobBuilder, PlanBuilder, StageBuilder, plan, script, stage
from planspec.errors import ConfigurationError
from planspec.model import (
    BranchCreation,
    ChangeDetection,
    PermissionType,
    Plan,
    PlanIdentifier,
    RemoteTrigger,
    ScriptTask,
    TestParserTask,
)
from planspec.validator import validate


def test_template_scenario_shape(template_config) -> None:
    p = build(template_config)

    assert p.identifier == PlanIdentifier("TMPLTS", "FAGT")
    assert len(p.stages) == 1
    assert len(p.stages[0].jobs) == 1
    job = p.stages[0].jobs[0]
    assert len(job.tasks) == 5
    assert len(job.final_tasks) == 2
    validate(p)


def test_tasks_keep_declaration_order(template_config) -> None:
    job = build(template_config).stages[0].jobs[0]

    assert [t.body for t in job.tasks] == [f"make step{n}" for n in range(1, 6)]
    assert isinstance(job.final_tasks[0], TestParserTask)
    assert isinstance(job.final_tasks[1], ScriptTask)
    # final tasks come after the regular tasks, whatever those do
    assert job.all_tasks[-2:] == job.final_tasks


def test_build_is_deterministic(template_config) -> None:
    assert build(template_config) == build(copy.deepcopy(template_config))


def test_build_does_not_mutate_input(template_config) -> None:
    before = copy.deepcopy(template_config)
    build(template_config)
    assert template_config == before


def test_build_maps_policies(template_config) -> None:
    p = build(template_config)

    assert p.default_repository.change_detection is ChangeDetection.POLLING
    assert p.default_repository.shared_credentials == "Bitbucket Cloud - Bamboo Master Key"
    assert isinstance(p.triggers[0], RemoteTrigger)
    assert p.triggers[0].ip_addresses == ("104.192.136.0/21", "34.198.203.127")
    assert p.branch_management.creation is BranchCreation.FOR_VCS_BRANCH
    assert p.branch_management.notify_committers is True


def test_zero_day_cleanup_deletes_immediately(template_config) -> None:
    p = build(template_config)
    assert p.branch_management.cleanup.removed_after_days == 0
    assert p.branch_management.cleanup.deletes_immediately


def test_plan_value_passes_through(template_config) -> None:
    p = build(template_config)
    assert build(p) is p


def test_unknown_field_is_configuration_error(template_config) -> None:
    template_config["stages"][0]["jobs"][0]["timeout"] = 5

    with pytest.raises(ConfigurationError) as exc:
        build(template_config)
    assert exc.value.field.startswith("stages.0.jobs.0")


def test_unknown_task_type_is_configuration_error(template_config) -> None:
    template_config["stages"][0]["jobs"][0]["tasks"][0]["type"] = "maven"

    with pytest.raises(ConfigurationError) as exc:
        build(template_config)
    assert "stages.0.jobs.0.tasks.0" in exc.value.field


@pytest.mark.parametrize("field", ["key", "name"])
def test_missing_identity_is_configuration_error(template_config, field) -> None:
    del template_config[field]

    with pytest.raises(ConfigurationError) as exc:
        build(template_config)
    assert exc.value.field == field


def test_empty_project_key_is_configuration_error(template_config) -> None:
    template_config["project"]["key"] = "  "

    with pytest.raises(ConfigurationError) as exc:
        build(template_config)
    assert exc.value.field == "project.key"


def test_non_mapping_input_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        build(["not", "a", "plan"])


def test_build_permissions_from_plan_config(template_config) -> None:
    p = build(template_config)
    perms = build_permissions(template_config, p.identifier)

    assert perms.plan == p.identifier
    assert perms.allowed("logged_in") == {PermissionType.VIEW}
    assert perms.allowed("anonymous") == {PermissionType.VIEW}
    assert perms.allowed("user:nobody") == frozenset()


def test_build_permissions_none_when_not_configured(template_config) -> None:
    del template_config["permissions"]
    p = build(template_config)
    assert build_permissions(template_config, p.identifier) is None


def test_build_permissions_rejects_unknown_operation() -> None:
    with pytest.raises(ConfigurationError) as exc:
        build_permissions({"logged_in": ["DESTROY"]}, PlanIdentifier("TMPLTS", "FAGT"))
    assert exc.value.field.startswith("permissions.logged_in")


# ---------------------------------------------------------------------
# Fluent DSL
# ---------------------------------------------------------------------

def test_fluent_builders_refuse_unfinished_values() -> None:
    with pytest.raises(ConfigurationError):
        JobBuilder("Default Job", "DJ").build()
    with pytest.raises(ConfigurationError):
        StageBuilder("Default Stage").build()
    with pytest.raises(ConfigurationError):
        plan("TMPLTS", "FAGT", "template").build()


def test_fluent_builder_returns_frozen_plan() -> None:
    builder = plan("TMPLTS", "FAGT", "template").stages(
        stage("Default Stage", JobBuilder("Default Job", "DJ").step("Build", "make"))
    )
    p = builder.build()

    assert isinstance(builder, PlanBuilder)
    assert isinstance(p, Plan)
    assert isinstance(p.stages, tuple)

    # later builder calls don't leak into the finished value
    builder.stages(stage("Extra", JobBuilder("Other", "OJ").tasks(script("x", "true"))))
    assert len(p.stages) == 1
    with pytest.raises(AttributeError):
        p.key = "OTHER"  # type: ignore[misc]
