"""Secure directory constants."""

from __future__ import annotations

import re
from typing import Final

DIR_PREFIX: Final = "ethsup-"
"""Secure directories are named `<prefix><pid>` so stale ones can be matched to dead PIDs."""

STALE_DIR_PATTERN: Final = re.compile(rf"{DIR_PREFIX}(\d+)")
"""Matches a secure directory name and captures its owner PID."""

PASSWORD_FILE_NAME: Final = "password.txt"
"""Master password file inside the secure directory."""

SECRETS_DIR_NAME: Final = "secrets"
"""Subdirectory holding one password file per validator."""

MIN_PASSWORD_LENGTH: Final = 8
"""Shortest accepted keystore password."""

ENTITY_ID_PATTERN: Final = re.compile(r"(?:0x)?[0-9a-fA-F]{1,128}")
"""Accepted validator identifiers: hexadecimal, optionally 0x-prefixed. Matched in full."""

RAM_DISK_SECTORS: Final = 2048
"""Size of the macOS RAM disk in 512-byte sectors (1 MiB)."""

RAM_DISK_VOLUME: Final = "EthSupervisorSecure"
"""Volume name of the macOS RAM disk."""

EXTERNAL_TOOL_TIMEOUT: Final[float] = 30.0
"""Bound on hdiutil and diskutil invocations, in seconds."""
