"""Console output formatting utilities for planspec."""

from __future__ import annotations

import sys
from typing import Optional

from ..model import CheckoutTask, Plan, PlanReference, ScriptTask, TestParserTask


def _task_label(task) -> str:
    if isinstance(task, CheckoutTask):
        kind = "checkout"
    elif isinstance(task, ScriptTask):
        kind = "script"
    elif isinstance(task, TestParserTask):
        kind = f"test-parser ({task.test_type.value})"
    else:
        kind = type(task).__name__
    return f"{kind}: {task.description}" if task.description else kind


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show debug lines and stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_plan(self, plan: Plan) -> None:
        """Print the stage / job / task outline of a plan."""
        self.print_header(f"PLAN {plan.identifier}: {plan.name}")
        if plan.default_repository is not None:
            repo = plan.default_repository
            print(f"Repository: {repo.url} ({repo.branch})")
        for stage in plan.stages:
            print(f"Stage: {stage.name}{' (manual)' if stage.manual else ''}")
            for job in stage.jobs:
                print(f"  Job: {job.name} [{job.key}]")
                for task in job.tasks:
                    print(f"    - {_task_label(task)}")
                for task in job.final_tasks:
                    print(f"    - (final) {_task_label(task)}")
        cleanup = plan.branch_management.cleanup
        if cleanup.removed_after_days is not None:
            print(f"Branch cleanup: {cleanup.removed_after_days} day(s) after removal")
        print()

    def print_published(self, what: str, ref: PlanReference, server: str) -> None:
        print(f"PUBLISHED: {what} {ref} -> {server}")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
