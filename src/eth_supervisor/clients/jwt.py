"""Engine API JWT secret shared by the execution and consensus clients."""

from __future__ import annotations

import logging
import os
import secrets
from pathlib import Path
from typing import Final

logger = logging.getLogger(__name__)

JWT_SECRET_BYTES: Final = 32
"""Length of the shared secret. Clients expect 32 bytes as hex."""


def ensure_jwt_secret(path: Path) -> Path:
    """
    Create the JWT secret file if it does not exist.

    An existing secret is kept so running clients stay compatible.

    Args:
        path: Location of `jwt.hex`.

    Returns:
        The path of the secret file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    except FileExistsError:
        logger.debug("Using existing JWT secret %s", path)
        return path

    with os.fdopen(fd, "w") as f:
        f.write(secrets.token_hex(JWT_SECRET_BYTES))
    logger.info("Generated JWT secret %s", path)
    return path
