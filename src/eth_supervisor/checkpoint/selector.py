"""
Checkpoint sync endpoint selection.

A beacon node started with a checkpoint URL downloads a recent finalized state
instead of syncing from genesis. Public providers differ in availability and
freshness, so each candidate is probed for its finalized header and the
freshest responsive one wins.

Probes run concurrently against a shared HTTP client. Each probe has its own
timeout and the whole selection has a budget; probes still pending when the
budget runs out are cancelled and count as unreachable. A failing probe never
fails the selection.

An operator-provided URL bypasses all of this. It is trusted as given and no
request is made.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence

import httpx
from pydantic import BaseModel, Field, ValidationError

from eth_supervisor.metrics import checkpoint_eligible_candidates, checkpoint_probe_time

from .candidate import CheckpointCandidate, rank_candidates, slot_start_time
from .config import (
    FRESHNESS_THRESHOLD,
    HEADER_ENDPOINT,
    MAINNET_CHECKPOINT_URLS,
    MAX_CLOCK_SKEW,
    OVERALL_BUDGET,
    PER_REQUEST_TIMEOUT,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
"""Returns the current Unix time."""


class _HeaderMessage(BaseModel):
    slot: int = Field(ge=0)


class _SignedHeader(BaseModel):
    message: _HeaderMessage


class _HeaderData(BaseModel):
    header: _SignedHeader


class HeaderResponse(BaseModel):
    """Subset of the Beacon API block header response that the probe reads."""

    data: _HeaderData

    @property
    def slot(self) -> int:
        return self.data.header.message.slot


async def probe_candidate(
    client: httpx.AsyncClient,
    url: str,
    *,
    timeout: float = PER_REQUEST_TIMEOUT,
    clock: Clock = time.time,
) -> CheckpointCandidate:
    """
    Probe one endpoint for its finalized header.

    Args:
        client: Shared HTTP client.
        url: Base URL of the endpoint.
        timeout: Bound on this probe in seconds.
        clock: Source of the current Unix time.

    Returns:
        The probe result. Failures are reported in the result, never raised.
    """
    full_url = f"{url.rstrip('/')}{HEADER_ENDPOINT}"
    started = time.perf_counter()

    try:
        async with asyncio.timeout(timeout):
            response = await client.get(full_url, headers={"Accept": "application/json"})
            response.raise_for_status()
        latency = time.perf_counter() - started
        header = HeaderResponse.model_validate_json(response.content)
    except TimeoutError:
        return CheckpointCandidate.unreachable(url, f"timed out after {timeout}s")
    except httpx.HTTPStatusError as e:
        return CheckpointCandidate.unreachable(url, f"HTTP {e.response.status_code}")
    except httpx.RequestError as e:
        return CheckpointCandidate.unreachable(url, f"request failed: {e!r}")
    except ValidationError as e:
        return CheckpointCandidate.unreachable(url, f"malformed response: {e.error_count()} errors")

    checkpoint_probe_time.observe(latency)
    age = clock() - slot_start_time(header.slot)
    if age < -MAX_CLOCK_SKEW:
        return CheckpointCandidate.unreachable(
            url, f"finalized slot {header.slot} is in the future"
        )

    return CheckpointCandidate(
        url=url,
        reachable=True,
        head_slot=header.slot,
        head_slot_age=max(age, 0.0),
        latency=latency,
    )


async def probe_all(
    candidates: Sequence[str],
    *,
    per_request_timeout: float = PER_REQUEST_TIMEOUT,
    overall_budget: float = OVERALL_BUDGET,
    client: httpx.AsyncClient | None = None,
    clock: Clock = time.time,
) -> list[CheckpointCandidate]:
    """
    Probe every candidate concurrently within the overall budget.

    Returns:
        One result per candidate, in input order.
    """
    if not candidates:
        return []

    owns_client = client is None
    http = client if client is not None else httpx.AsyncClient(follow_redirects=True)
    try:
        tasks = [
            asyncio.create_task(
                probe_candidate(http, url, timeout=per_request_timeout, clock=clock),
                name=f"probe-{url}",
            )
            for url in candidates
        ]
        _, pending = await asyncio.wait(tasks, timeout=overall_budget)

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        results = []
        for url, task in zip(candidates, tasks, strict=True):
            if task in pending:
                results.append(CheckpointCandidate.unreachable(url, "selection budget exceeded"))
            else:
                results.append(task.result())
        return results
    finally:
        if owns_client:
            await http.aclose()


async def select_best(
    candidates: Sequence[str],
    per_request_timeout: float = PER_REQUEST_TIMEOUT,
    overall_budget: float = OVERALL_BUDGET,
    *,
    freshness_threshold: float = FRESHNESS_THRESHOLD,
    client: httpx.AsyncClient | None = None,
    clock: Clock = time.time,
) -> str | None:
    """
    Return the best checkpoint URL among `candidates`, or None.

    Args:
        candidates: Base URLs to probe.
        per_request_timeout: Bound on each probe in seconds.
        overall_budget: Bound on the whole selection in seconds.
        freshness_threshold: Maximum accepted finalized slot age in seconds.
        client: Shared HTTP client. A private one is created if omitted.
        clock: Source of the current Unix time.
    """
    results = await probe_all(
        candidates,
        per_request_timeout=per_request_timeout,
        overall_budget=overall_budget,
        client=client,
        clock=clock,
    )

    for result in results:
        if result.reachable:
            logger.debug(
                "Checkpoint %s: slot=%s age=%.0fs latency=%.0fms",
                result.url,
                result.head_slot,
                result.head_slot_age or 0.0,
                (result.latency or 0.0) * 1000,
            )
        else:
            logger.debug("Checkpoint %s unreachable: %s", result.url, result.error)

    ranked = rank_candidates(results, freshness_threshold)
    checkpoint_eligible_candidates.set(len(ranked))

    if not ranked:
        logger.warning("No healthy checkpoint endpoint among %d candidates", len(candidates))
        return None

    best = ranked[0]
    logger.info(
        "Selected checkpoint %s (slot %s, %.0fms, %d/%d healthy)",
        best.url,
        best.head_slot,
        (best.latency or 0.0) * 1000,
        len(ranked),
        len(candidates),
    )
    return best.url


async def select_checkpoint_url(
    override: str | None = None,
    candidates: Sequence[str] = MAINNET_CHECKPOINT_URLS,
    *,
    per_request_timeout: float = PER_REQUEST_TIMEOUT,
    overall_budget: float = OVERALL_BUDGET,
    freshness_threshold: float = FRESHNESS_THRESHOLD,
    client: httpx.AsyncClient | None = None,
    clock: Clock = time.time,
) -> str | None:
    """
    Resolve the checkpoint URL for this run.

    A non-empty override is returned unchanged without any network request.
    Otherwise the candidates are probed and the best one is returned.

    Returns:
        The URL to sync from, or None to sync from genesis.
    """
    if override:
        logger.info("Using user-provided checkpoint URL %s (skipping health checks)", override)
        return override

    logger.info("Probing %d checkpoint endpoints", len(candidates))
    return await select_best(
        candidates,
        per_request_timeout,
        overall_budget,
        freshness_threshold=freshness_threshold,
        client=client,
        clock=clock,
    )
