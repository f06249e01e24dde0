# publisher.py
from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from typing import Optional, Protocol
from urllib.parse import quote, urljoin

from .codec import permissions_to_dict, plan_to_dict
from .credentials import Credentials
from .errors import AuthenticationError, NetworkError, ServerRejectionError
from .model import PermissionSet, Plan, PlanReference
from .settings import DEFAULT_TIMEOUT
from .ui.console import get_console

API_PREFIX = "/rest/api/latest"


class Transport(Protocol):
    """What the publisher needs from a CI server. Both calls are upserts."""

    def submit_plan(self, payload: dict) -> dict: ...

    def submit_permissions(self, payload: dict) -> dict: ...


class HttpTransport:
    """HTTP client for the CI server's plan and permission endpoints."""

    def __init__(self, base_url: str, credentials: Credentials, timeout: float = DEFAULT_TIMEOUT):
        """
        Args:
            base_url: Server address (e.g., "http://ci.example.com:8085")
            credentials: Resolved user credentials, sent as HTTP basic auth
            timeout: Socket timeout in seconds for each request
        """
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout

    def _request(self, method: str, path: str, data: Optional[dict] = None) -> dict:
        """
        Make an HTTP request to the server.

        Returns:
            Parsed JSON response as dictionary ({} for an empty body)

        Raises:
            AuthenticationError: 401 / 403
            ServerRejectionError: any other HTTP error status, or a body that is not JSON
            NetworkError: the server could not be reached
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))

        req_headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": self.credentials.authorization_header(),
        }

        req_data = None
        if data is not None:
            req_data = json.dumps(data, sort_keys=True).encode("utf-8")

        req = urllib.request.Request(url, data=req_data, headers=req_headers, method=method)
        get_console().print_debug(f"{method} {url}")

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                raw = response.read()
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            if e.code in (401, 403):
                raise AuthenticationError(
                    f"Server refused credentials for user '{self.credentials.username}': {e.code} {e.reason}",
                    status=e.code,
                    url=url,
                ) from e
            raise ServerRejectionError(
                f"Request failed: {e.code} {e.reason}",
                status=e.code,
                body=error_body,
                url=url,
            ) from e
        except urllib.error.URLError as e:
            raise NetworkError(f"Network error: {e.reason}", url=url) from e
        except (TimeoutError, ConnectionError, http.client.HTTPException) as e:
            raise NetworkError(f"Network error: {type(e).__name__}: {e}", url=url) from e

        try:
            response_data = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ServerRejectionError(
                f"Response is not valid UTF-8: {e}",
                body=raw.decode("utf-8", errors="replace"),
                url=url,
            ) from e

        if not response_data.strip():
            return {}
        try:
            parsed = json.loads(response_data)
        except json.JSONDecodeError as e:
            raise ServerRejectionError(f"Invalid JSON response: {e}", body=response_data, url=url) from e
        if not isinstance(parsed, dict):
            raise ServerRejectionError("Expected a JSON object in response", body=response_data, url=url)
        return parsed

    def submit_plan(self, payload: dict) -> dict:
        plan_id = quote(f"{payload['project']['key']}-{payload['key']}")
        return self._request("PUT", f"{API_PREFIX}/plan/{plan_id}", data=payload)

    def submit_permissions(self, payload: dict) -> dict:
        plan_id = quote(f"{payload['project_key']}-{payload['plan_key']}")
        return self._request("PUT", f"{API_PREFIX}/permissions/plan/{plan_id}", data=payload)


def _transport(
    server: str,
    credentials: Credentials,
    transport: Optional[Transport],
    timeout: float,
) -> Transport:
    if transport is not None:
        return transport
    return HttpTransport(server, credentials, timeout=timeout)


def publish_plan(
    server: str,
    credentials: Credentials,
    plan: Plan,
    *,
    transport: Optional[Transport] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> PlanReference:
    """
    Create or update the plan on the server. Publishing the same plan again
    overwrites the previous definition. A single attempt, no retries.
    """
    console = get_console()
    ref = plan.identifier
    console.print_debug(f"Publishing plan {ref} to {server}")

    response = _transport(server, credentials, transport, timeout).submit_plan(plan_to_dict(plan))

    # echoed identity fields, when present, must be ours
    expected = {"projectKey": ref.project_key, "planKey": ref.plan_key}
    mismatched = {k: response[k] for k in expected if k in response and response[k] != expected[k]}
    if mismatched:
        raise ServerRejectionError(
            f"Server acknowledged a different plan than {ref}: {mismatched}",
            body=json.dumps(response),
        )

    console.print_debug(f"Plan {ref} published")
    return ref


def publish_permissions(
    server: str,
    credentials: Credentials,
    permissions: PermissionSet,
    *,
    transport: Optional[Transport] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """
    Replace the plan's permissions. The plan must already exist on the
    server, so call this after publish_plan.
    """
    console = get_console()
    console.print_debug(f"Publishing permissions for {permissions.plan} to {server}")
    _transport(server, credentials, transport, timeout).submit_permissions(
        permissions_to_dict(permissions)
    )
    console.print_debug(f"Permissions for {permissions.plan} published")
