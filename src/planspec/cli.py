# cli.py
from __future__ import annotations

import sys
from typing import NoReturn, Optional

import click

from planspec.codec import dumps, permissions_to_dict, plan_to_dict
from planspec.credentials import load_credentials
from planspec.errors import PlanSpecError
from planspec.loader import PlanSpec, discover_spec, load_spec
from planspec.publisher import publish_permissions, publish_plan
from planspec.settings import Settings
from planspec.ui.console import Console, get_console, set_console
from planspec.validator import validate, validate_permissions

# Phase names reported when a run fails.
BUILD = "build"
VALIDATE = "validate"
PUBLISH_PLAN = "publish-plan"
PUBLISH_PERMISSIONS = "publish-permissions"


def _fail(stage: str, exc: BaseException) -> NoReturn:
    console = get_console()
    if isinstance(exc, PlanSpecError):
        console.print_error(
            f"{stage} failed",
            f"{exc.kind}: {exc.message}",
            details=[f"{k}={v}" for k, v in exc.details.items()] or None,
        )
        if console.debug:
            console.print_exception(exc)
    else:
        console.print_error(f"{stage} failed", f"{type(exc).__name__}: {exc}")
        console.print_exception(exc)
    sys.exit(1)


def _settings() -> Settings:
    try:
        return Settings.from_env()
    except PlanSpecError as e:
        _fail(BUILD, e)


def _load_and_validate(spec: Optional[str]) -> PlanSpec:
    """Build and validate phases shared by every command."""
    console = get_console()
    try:
        path = discover_spec(spec)
        console.print_debug(f"Loading spec from {path}")
        loaded = load_spec(path)
    except Exception as e:
        _fail(BUILD, e)

    try:
        validate(loaded.plan)
        if loaded.permissions is not None:
            validate_permissions(loaded.permissions)
    except PlanSpecError as e:
        _fail(VALIDATE, e)

    return loaded


@click.group(invoke_without_command=True)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show requests and stack traces)",
)
@click.pass_context
def cli(ctx, debug):
    """planspec: define a CI plan in code and publish it to the CI server."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    # bare `planspec` publishes using environment settings only
    if ctx.invoked_subcommand is None:
        ctx.invoke(publish)


@cli.command("validate")
@click.option("--spec", default=None, help="Spec file (defaults to PLANSPEC_SPEC_FILE or planspec_plan.py)")
def validate_cmd(spec):
    """Build and validate the plan without publishing."""
    spec = spec or _settings().spec_file
    loaded = _load_and_validate(spec)
    get_console().print_plan(loaded.plan)
    get_console().print_info(f"OK: {loaded.plan.identifier} is valid")


@cli.command()
@click.option("--spec", default=None, help="Spec file (defaults to PLANSPEC_SPEC_FILE or planspec_plan.py)")
def render(spec):
    """Print the JSON that would be sent to the server."""
    spec = spec or _settings().spec_file
    loaded = _load_and_validate(spec)
    payload = {"plan": plan_to_dict(loaded.plan)}
    if loaded.permissions is not None:
        payload["permissions"] = permissions_to_dict(loaded.permissions)
    click.echo(dumps(payload))


@cli.command()
@click.option("--spec", default=None, help="Spec file (defaults to PLANSPEC_SPEC_FILE or planspec_plan.py)")
@click.option("--server", default=None, help="CI server base URL (defaults to PLANSPEC_SERVER)")
@click.option("--credentials-file", default=None, help="Credentials properties file (defaults to .credentials)")
@click.option(
    "--timeout",
    default=None,
    type=click.FloatRange(min=0, min_open=True),
    help="Request timeout in seconds",
)
def publish(spec=None, server=None, credentials_file=None, timeout=None):
    """Publish the plan, then its permissions."""
    console = get_console()
    settings = _settings()
    spec = spec or settings.spec_file
    if timeout is None:
        timeout = settings.timeout

    loaded = _load_and_validate(spec)
    console.print_plan(loaded.plan)

    try:
        server = server.rstrip("/") if server else settings.require_server()
        credentials = load_credentials(credentials_file or settings.credentials_file)
    except PlanSpecError as e:
        _fail(PUBLISH_PLAN, e)

    try:
        ref = publish_plan(server, credentials, loaded.plan, timeout=timeout)
    except Exception as e:
        _fail(PUBLISH_PLAN, e)
    console.print_published("plan", ref, server)

    if loaded.permissions is None:
        console.print_debug("No permissions defined, skipping")
        return

    # No rollback: if this fails the plan stays published.
    try:
        publish_permissions(server, credentials, loaded.permissions, timeout=timeout)
    except Exception as e:
        _fail(PUBLISH_PERMISSIONS, e)
    console.print_published("permissions", loaded.permissions.plan, server)


def main() -> None:
    try:
        cli.main(standalone_mode=False)
    except click.exceptions.Abort:
        get_console().print_info("\nInterrupted by user")
        sys.exit(130)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)


if __name__ == "__main__":
    main()
