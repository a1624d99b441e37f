"""
Blocking startup steps.

Prompts and the Prysm wallet import block for as long as the operator or the
external tool takes. Running them on the event loop thread would hold back
signal handling until they return, so they run on daemon threads instead.

A daemon thread never delays interpreter exit. A prompt still waiting for
input when shutdown completes is abandoned with the process.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_blocking(func: Callable[..., T], /, *args: Any, name: str = "blocking") -> T:
    """
    Run `func(*args)` on a daemon thread and await its result.

    Cancelling the await does not stop the call. Its outcome is then dropped.

    Args:
        func: The blocking callable.
        args: Positional arguments for `func`.
        name: Thread name, shown in debug logs.

    Returns:
        What `func` returned.

    Raises:
        Exception: Whatever `func` raised.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[T] = loop.create_future()

    def settle(result: Any, error: Exception | None) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def target() -> None:
        outcome: tuple[Any, Exception | None]
        try:
            outcome = (func(*args), None)
        except Exception as e:
            outcome = (None, e)
        try:
            loop.call_soon_threadsafe(settle, *outcome)
        except RuntimeError:
            logger.debug("%s finished after the event loop closed", name)

    threading.Thread(target=target, name=name, daemon=True).start()
    return await future
