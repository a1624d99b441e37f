"""
Client for the status API of a running supervisor.

Used by a second invocation that finds the installation locked: it shows the
owner's state and exits without touching any process.
"""

from __future__ import annotations

import logging
from typing import Final

import httpx
from pydantic import ValidationError

from eth_supervisor.types import CamelModel

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Final[float] = 5.0
"""HTTP request timeout in seconds."""

STATUS_ENDPOINT: Final = "/status"
"""Path of the status document."""


class StatusError(Exception):
    """
    Error fetching the status of the running supervisor.

    Raised when the owner is unreachable or answers with something unexpected.
    """


class RoleStatus(CamelModel):
    """One role as reported by the owner."""

    role: str
    client: str
    state: str
    pid: int | None = None
    exit_code: int | None = None


class SupervisorStatus(CamelModel):
    """Status document served at /status."""

    phase: str
    shutdown_reason: str | None = None
    roles: list[RoleStatus]


async def fetch_status(
    base_url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SupervisorStatus:
    """
    Fetch the status document of the running supervisor.

    Args:
        base_url: Base URL of the status API (e.g., "http://127.0.0.1:5059").
        timeout: Request timeout in seconds.
        transport: Optional transport, for tests.

    Raises:
        StatusError: If the request fails or the document is malformed.
    """
    url = f"{base_url.rstrip('/')}{STATUS_ENDPOINT}"
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise StatusError(f"HTTP error {e.response.status_code} from {url}") from e
    except httpx.RequestError as e:
        raise StatusError(f"Cannot reach {url}: {e!r}") from e

    try:
        return SupervisorStatus.model_validate_json(response.content)
    except ValidationError as e:
        raise StatusError(f"Malformed status from {url}") from e


def format_status(status: SupervisorStatus) -> list[str]:
    """Render the status as log lines, one per role."""
    lines = [f"Supervisor phase: {status.phase}"]
    for role in status.roles:
        pid = role.pid if role.pid is not None else "-"
        line = f"  {role.role:<10} {role.client:<22} {role.state:<15} pid={pid}"
        if role.exit_code is not None:
            line += f" exit={role.exit_code}"
        lines.append(line)
    return lines
