from __future__ import annotations

import json
import textwrap
from pathlib import Path

import pytest

from planspec.errors import ConfigurationError
from planspec.loader import discover_spec, find_spec_files, load_spec
from planspec.model import CheckoutTask, PermissionType, PlanIdentifier, TestParserTask
from planspec.validator import validate, validate_permissions

REPO_ROOT = Path(__file__).resolve().parent.parent


def test_repository_plan_file() -> None:
    spec = load_spec(REPO_ROOT / "planspec_plan.py")
    p = spec.plan

    assert p.identifier == PlanIdentifier("TMPLTS", "FAGT")
    job = p.stages[0].jobs[0]
    assert len(job.tasks) == 6
    assert isinstance(job.tasks[0], CheckoutTask)
    assert job.tasks[0].clean_checkout
    assert len(job.final_tasks) == 2
    assert isinstance(job.final_tasks[0], TestParserTask)
    assert p.branch_management.cleanup.deletes_immediately
    validate(p)

    assert spec.permissions is not None
    assert spec.permissions.allowed("anonymous") == {PermissionType.VIEW}
    validate_permissions(spec.permissions)


def test_json_spec(tmp_path, template_config) -> None:
    path = tmp_path / "app_plan.json"
    path.write_text(json.dumps(template_config))

    spec = load_spec(path)

    assert spec.plan.key == "FAGT"
    assert spec.permissions.allowed("logged_in") == {PermissionType.VIEW}


def test_python_spec_with_plan_constant(tmp_path, template_config) -> None:
    path = tmp_path / "other_plan.py"
    path.write_text(f"PLAN = {template_config!r}\n")

    spec = load_spec(path)

    assert spec.plan.name == "fm-app-go-template"
    # permissions come from the mapping's own block
    assert spec.permissions is not None


def test_python_spec_without_plan(tmp_path) -> None:
    path = tmp_path / "empty_plan.py"
    path.write_text("X = 1\n")

    with pytest.raises(ConfigurationError) as exc:
        load_spec(path)
    assert exc.value.field == "spec"


def test_permissions_for_another_plan(tmp_path) -> None:
    path = tmp_path / "mixed_plan.py"
    path.write_text(textwrap.dedent("""
        from planspec.dsl import JobBuilder, permissions, plan, stage

        def define_plan():
            return plan("TMPLTS", "FAGT", "template").stages(
                stage("Default Stage", JobBuilder("Default Job", "DJ").step("Build", "make"))
            )

        def define_permissions():
            return permissions("TMPLTS", "OTHER", logged_in=["VIEW"])
    """))

    with pytest.raises(ConfigurationError) as exc:
        load_spec(path)
    assert exc.value.field == "permissions"


def test_invalid_json(tmp_path) -> None:
    path = tmp_path / "broken_plan.json"
    path.write_text("{not json")

    with pytest.raises(ConfigurationError):
        load_spec(path)


def test_discovery_prefers_default_file(tmp_path) -> None:
    (tmp_path / "planspec_plan.py").write_text("")
    (tmp_path / "other_plan.json").write_text("{}")

    assert discover_spec(None, tmp_path).name == "planspec_plan.py"
    assert [p.name for p in find_spec_files(tmp_path)] == ["planspec_plan.py", "other_plan.json"]


def test_discovery_ambiguous(tmp_path) -> None:
    (tmp_path / "a_plan.py").write_text("")
    (tmp_path / "b_plan.py").write_text("")

    with pytest.raises(ConfigurationError):
        discover_spec(None, tmp_path)


def test_discovery_nothing_found(tmp_path) -> None:
    with pytest.raises(ConfigurationError) as exc:
        discover_spec(None, tmp_path)
    assert exc.value.field == "spec"


def test_explicit_spec_without_suffix(tmp_path) -> None:
    (tmp_path / "ci_plan.py").write_text("")

    assert discover_spec(str(tmp_path / "ci_plan")).name == "ci_plan.py"
    with pytest.raises(ConfigurationError):
        discover_spec(str(tmp_path / "missing"))
