# loader.py
from __future__ import annotations

import json
import runpy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from .builder import build, build_permissions
from .dsl import PlanBuilder
from .errors import ConfigurationError
from .model import PermissionSet, Plan
from .settings import DEFAULT_SPEC_FILE


@dataclass(frozen=True)
class PlanSpec:
    """What a spec file defines: the plan and, optionally, its permissions."""
    plan: Plan
    permissions: Optional[PermissionSet] = None


def find_spec_files(directory: str | Path = ".") -> List[Path]:
    """planspec_plan.py first, then any other *_plan.py / *_plan.json."""
    root = Path(directory)
    found: List[Path] = []

    default = root / DEFAULT_SPEC_FILE
    if default.exists():
        found.append(default)

    for pattern in ("*_plan.py", "*_plan.json"):
        for path in sorted(root.glob(pattern)):
            if path != default:
                found.append(path)

    return found


def discover_spec(spec_arg: str | None, directory: str | Path = ".") -> Path:
    """
    Resolve the spec file from an explicit argument or by looking in directory.

    Raises:
        ConfigurationError: if nothing (or more than one candidate) is found
    """
    if spec_arg:
        path = Path(spec_arg)
        if not path.exists() and path.suffix not in (".py", ".json"):
            path = Path(str(path) + ".py")
        if not path.exists():
            raise ConfigurationError(f"Spec file not found: {spec_arg}", field="spec")
        return path

    candidates = find_spec_files(directory)
    if not candidates:
        raise ConfigurationError(
            f"No spec file found (looked for {DEFAULT_SPEC_FILE}, *_plan.py, *_plan.json)",
            field="spec",
        )
    if len(candidates) > 1 and candidates[0].name != DEFAULT_SPEC_FILE:
        raise ConfigurationError(
            "Multiple spec files found: " + ", ".join(str(c) for c in candidates),
            field="spec",
        )
    return candidates[0]


def _resolve(globals_dict: dict, func_name: str, const_name: str) -> Any:
    if func_name in globals_dict and callable(globals_dict[func_name]):
        return globals_dict[func_name]()
    return globals_dict.get(const_name)


def load_spec(path: str | Path) -> PlanSpec:
    """
    Load a plan definition from a file.

    A .py file must define either:
      - define_plan() -> Plan | PlanBuilder | dict
      - PLAN = ...
    and may define define_permissions() / PERMISSIONS the same way.

    A .json file holds one plan configuration object, optionally with a
    "permissions" block.
    """
    spec_path = Path(path).expanduser().resolve()
    if not spec_path.exists():
        raise ConfigurationError(f"Spec file not found: {spec_path}", field="spec")

    if spec_path.suffix == ".json":
        try:
            data = json.loads(spec_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {spec_path.name}: {e}", field="spec") from e
        plan = build(data)
        return PlanSpec(plan=plan, permissions=build_permissions(data, plan.identifier))

    if spec_path.suffix != ".py":
        raise ConfigurationError(
            f"Spec must be a .py or .json file, got: {spec_path.name}",
            field="spec",
        )

    module_name = f"planspec_spec_{spec_path.stem}"
    globals_dict = runpy.run_path(str(spec_path), run_name=module_name)

    raw_plan = _resolve(globals_dict, "define_plan", "PLAN")
    if raw_plan is None:
        raise ConfigurationError(
            f"{spec_path.name} must define define_plan() or PLAN",
            field="spec",
        )
    if isinstance(raw_plan, PlanBuilder):
        raw_plan = raw_plan.build()
    plan = build(raw_plan)

    raw_permissions = _resolve(globals_dict, "define_permissions", "PERMISSIONS")
    if raw_permissions is None and isinstance(raw_plan, dict):
        raw_permissions = raw_plan.get("permissions")
    permissions = build_permissions(raw_permissions, plan.identifier)

    if permissions is not None and permissions.plan != plan.identifier:
        raise ConfigurationError(
            f"Permissions are for {permissions.plan}, plan is {plan.identifier}",
            field="permissions",
        )

    return PlanSpec(plan=plan, permissions=permissions)
