"""Local status API: server for the owning instance, client for observers."""

from .client import (
    RoleStatus,
    StatusError,
    SupervisorStatus,
    fetch_status,
    format_status,
)
from .server import StatusServer, StatusServerConfig

__all__ = [
    "RoleStatus",
    "StatusError",
    "StatusServer",
    "StatusServerConfig",
    "SupervisorStatus",
    "fetch_status",
    "format_status",
]
