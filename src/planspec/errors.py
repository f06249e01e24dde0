# errors.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class PlanSpecError(Exception):
    """
    Structured planspec error with enough context for:
      - clean CLI output
      - tests asserting on the failing field / status
      - debugging without full tracebacks
    """
    kind: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}"]
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


class ConfigurationError(PlanSpecError):
    """A required field is missing or a configuration value has the wrong shape."""

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any):
        if field is not None:
            details = {"field": field, **details}
        super().__init__(kind="configuration", message=message, details=details)
        self.field = field


class ValidationError(PlanSpecError):
    """A structural rule of the plan is violated."""

    def __init__(self, field: str, rule: str, **details: Any):
        super().__init__(
            kind="validation",
            message=f"{field}: {rule}",
            details=details,
        )
        self.field = field
        self.rule = rule


class PublishError(PlanSpecError):
    """Base for failures while talking to the CI server."""


class NetworkError(PublishError):
    def __init__(self, message: str, *, url: Optional[str] = None):
        details = {"url": url} if url else {}
        super().__init__(kind="network", message=message, details=details)
        self.url = url


class AuthenticationError(PublishError):
    def __init__(self, message: str, *, status: Optional[int] = None, url: Optional[str] = None):
        details: Dict[str, Any] = {}
        if status is not None:
            details["status"] = status
        if url:
            details["url"] = url
        super().__init__(kind="authentication", message=message, details=details)
        self.status = status


class ServerRejectionError(PublishError):
    """The server answered, but refused the definition (conflict, bad payload, 5xx)."""

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: str = "",
        url: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if status is not None:
            details["status"] = status
        if url:
            details["url"] = url
        if body:
            details["body"] = body[:2000]
        super().__init__(kind="server_rejection", message=message, details=details)
        self.status = status
        self.body = body
