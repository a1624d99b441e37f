"""Checks applied to operator-supplied directories."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from eth_supervisor.types import ConfigurationError


def default_allowed_roots() -> tuple[Path, ...]:
    """Directories under which install and key directories may live."""
    return (Path.home(), Path("/opt"), Path("/srv"))


def validate_operator_dir(
    raw: str | Path,
    *,
    label: str,
    allowed_roots: Sequence[Path] | None = None,
) -> Path:
    """
    Resolve a directory supplied on the command line.

    The path must exist, be a directory and resolve (after following symlinks)
    to a location under one of the allowed roots.

    Args:
        raw: Path as given by the operator.
        label: Name used in error messages.
        allowed_roots: Permitted parent directories. Defaults to home, /opt and /srv.

    Returns:
        The resolved absolute path.

    Raises:
        ConfigurationError: If any check fails.
    """
    roots = default_allowed_roots() if allowed_roots is None else tuple(allowed_roots)

    path = Path(raw).expanduser()
    try:
        resolved = path.resolve(strict=True)
    except (FileNotFoundError, RuntimeError) as e:
        raise ConfigurationError(f"{label} does not exist: {raw}") from e

    if not resolved.is_dir():
        raise ConfigurationError(f"{label} is not a directory: {resolved}")

    for root in roots:
        if resolved.is_relative_to(root.resolve()):
            return resolved

    allowed = ", ".join(str(r) for r in roots)
    raise ConfigurationError(f"{label} must be under one of: {allowed} (got {resolved})")
