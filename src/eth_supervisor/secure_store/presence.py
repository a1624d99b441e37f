"""
Physical presence check.

Before unlocking validator keys the operator may be asked to type a six-digit
code from an authenticator app. The input is checked for the format of a
one-time code only; no secret is shared with an authenticator and nothing is
verified against one.

This is a presence heuristic. It stops an unattended restart (a crash loop, a
remote reboot) from unlocking keys without someone at the keyboard. It offers
no protection against a person who can type at the prompt.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Final

from eth_supervisor.types import PresenceCheckError

logger = logging.getLogger(__name__)

ONE_TIME_CODE_PATTERN: Final = re.compile(r"[0-9]{6}")
"""Six ASCII digits, matched in full."""


def require_physical_presence(token_input: str) -> None:
    """
    Accept or reject the operator's input.

    Surrounding whitespace is ignored.

    Raises:
        PresenceCheckError: If the input is not a six-digit code.
    """
    if not ONE_TIME_CODE_PATTERN.fullmatch(token_input.strip()):
        raise PresenceCheckError("Presence check failed: expected a 6-digit code")
    logger.info("Physical presence confirmed")


def prompt_for_presence(read: Callable[[str], str] = input) -> None:
    """Ask the operator for a code and check it."""
    require_physical_presence(read("Enter the 6-digit code from your authenticator app: "))
