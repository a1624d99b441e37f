"""Tests for checkpoint endpoint probing and selection."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

import httpx
import pytest

from eth_supervisor.checkpoint import (
    HEADER_ENDPOINT,
    probe_all,
    select_best,
    select_checkpoint_url,
    slot_start_time,
)
from eth_supervisor.metrics import REGISTRY

HEAD_SLOT = 10_000_000
NOW = float(slot_start_time(HEAD_SLOT) + 30)

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]


def header_body(slot: int) -> dict[str, object]:
    """Beacon API header response. Slots are strings on the wire."""
    return {
        "execution_optimistic": False,
        "finalized": True,
        "data": {
            "root": "0x" + "00" * 32,
            "canonical": True,
            "header": {
                "message": {
                    "slot": str(slot),
                    "proposer_index": "1",
                    "parent_root": "0x" + "11" * 32,
                    "state_root": "0x" + "22" * 32,
                    "body_root": "0x" + "33" * 32,
                },
                "signature": "0x" + "44" * 96,
            },
        },
    }


def fixed_clock() -> float:
    return NOW


def routes(table: dict[str, Handler]) -> tuple[httpx.AsyncClient, list[str]]:
    """HTTP client answering per host from `table`, plus the list of requested hosts."""
    requested: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.host)
        return await table[request.url.host](request)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), requested


def slot_reply(slot: int, delay: float = 0.0) -> Handler:
    async def reply(request: httpx.Request) -> httpx.Response:
        assert request.url.path == HEADER_ENDPOINT
        if delay:
            await asyncio.sleep(delay)
        return httpx.Response(200, json=header_body(slot))

    return reply


def status_reply(status: int) -> Handler:
    async def reply(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="unavailable")

    return reply


def body_reply(body: bytes) -> Handler:
    async def reply(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body)

    return reply


async def refuse(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


class TestProbeAll:
    """Tests for probing candidates."""

    async def test_reachable_candidate_reports_slot_and_age(self) -> None:
        """A healthy endpoint yields its slot, slot age and latency."""
        client, _ = routes({"a.example": slot_reply(HEAD_SLOT)})

        async with client:
            [result] = await probe_all(["https://a.example"], client=client, clock=fixed_clock)

        assert result.reachable
        assert result.head_slot == HEAD_SLOT
        assert result.head_slot_age == pytest.approx(30.0)
        assert result.latency is not None and result.latency >= 0
        assert result.error is None

    @pytest.mark.parametrize(
        ("handler", "error"),
        [
            (status_reply(503), "HTTP 503"),
            (body_reply(b"<html>not json</html>"), "malformed response"),
            (body_reply(b'{"data": {"header": {"message": {"slot": "-1"}}}}'), "malformed"),
            (refuse, "request failed"),
        ],
        ids=["http-error", "not-json", "negative-slot", "refused"],
    )
    async def test_failures_are_reported_not_raised(self, handler: Handler, error: str) -> None:
        """Every kind of failure becomes an unreachable candidate."""
        client, _ = routes({"a.example": handler})

        async with client:
            [result] = await probe_all(["https://a.example"], client=client, clock=fixed_clock)

        assert not result.reachable
        assert result.error is not None and error in result.error

    async def test_slow_candidate_times_out(self) -> None:
        """A probe slower than the per-request timeout is unreachable."""
        client, _ = routes({"slow.example": slot_reply(HEAD_SLOT, delay=1.0)})

        async with client:
            [result] = await probe_all(
                ["https://slow.example"],
                per_request_timeout=0.05,
                client=client,
                clock=fixed_clock,
            )

        assert not result.reachable
        assert result.error == "timed out after 0.05s"

    async def test_overall_budget_bounds_selection(self) -> None:
        """Probes still running when the budget expires are cancelled."""
        client, _ = routes(
            {
                "fast.example": slot_reply(HEAD_SLOT),
                "slow.example": slot_reply(HEAD_SLOT, delay=2.0),
            }
        )
        started = time.monotonic()

        async with client:
            results = await probe_all(
                ["https://slow.example", "https://fast.example"],
                per_request_timeout=5.0,
                overall_budget=0.1,
                client=client,
                clock=fixed_clock,
            )

        assert time.monotonic() - started < 1.0
        assert [r.url for r in results] == ["https://slow.example", "https://fast.example"]
        assert results[0].error == "selection budget exceeded"
        assert results[1].reachable

    async def test_no_candidates(self) -> None:
        """Nothing to probe yields nothing."""
        assert await probe_all([]) == []


class TestSelectBest:
    """Tests for choosing the best candidate."""

    async def test_freshest_candidate_wins(self) -> None:
        """The most recent finalized slot wins regardless of input order."""
        client, _ = routes(
            {
                "old.example": slot_reply(HEAD_SLOT - 10),
                "new.example": slot_reply(HEAD_SLOT),
                "down.example": refuse,
            }
        )

        async with client:
            best = await select_best(
                ["https://old.example", "https://down.example", "https://new.example"],
                client=client,
                clock=fixed_clock,
            )

        assert best == "https://new.example"

    async def test_equal_age_prefers_lower_latency(self) -> None:
        """Among equally fresh candidates the faster one wins."""
        client, _ = routes(
            {
                "slow.example": slot_reply(HEAD_SLOT, delay=0.1),
                "fast.example": slot_reply(HEAD_SLOT),
            }
        )

        async with client:
            best = await select_best(
                ["https://slow.example", "https://fast.example"],
                client=client,
                clock=fixed_clock,
            )

        assert best == "https://fast.example"

    async def test_stale_candidates_are_rejected(self) -> None:
        """An endpoint whose finalized slot is older than the threshold is not used."""
        stale_slot = HEAD_SLOT - 200  # 40 minutes behind
        client, _ = routes({"stale.example": slot_reply(stale_slot)})

        async with client:
            best = await select_best(["https://stale.example"], client=client, clock=fixed_clock)

        assert best is None

    async def test_future_slot_is_rejected(self) -> None:
        """An endpoint claiming a finalized slot ahead of the clock never wins."""
        client, _ = routes(
            {
                "honest.example": slot_reply(HEAD_SLOT),
                "bogus.example": slot_reply(HEAD_SLOT + 1_000_000),
            }
        )

        async with client:
            results = await probe_all(
                ["https://honest.example", "https://bogus.example"],
                client=client,
                clock=fixed_clock,
            )
            best = await select_best(
                ["https://bogus.example", "https://honest.example"],
                client=client,
                clock=fixed_clock,
            )

        assert not results[1].reachable
        assert results[1].error is not None and "in the future" in results[1].error
        assert best == "https://honest.example"

    async def test_small_clock_skew_is_tolerated(self) -> None:
        """A slot starting within the skew allowance counts as just finalized."""
        client, _ = routes({"ahead.example": slot_reply(HEAD_SLOT + 3)})

        async with client:
            results = await probe_all(["https://ahead.example"], client=client, clock=fixed_clock)

        assert results[0].reachable
        assert results[0].head_slot_age == 0.0

    async def test_all_unreachable_returns_none(self) -> None:
        """With no healthy endpoint the node syncs from genesis."""
        client, _ = routes({"a.example": refuse, "b.example": status_reply(500)})

        async with client:
            best = await select_best(
                ["https://a.example", "https://b.example"], client=client, clock=fixed_clock
            )

        assert best is None
        assert REGISTRY.get_sample_value("eth_supervisor_checkpoint_eligible_candidates") == 0


class TestSelectCheckpointUrl:
    """Tests for resolving the checkpoint URL of a run."""

    async def test_override_skips_probing(self, caplog: pytest.LogCaptureFixture) -> None:
        """An operator-provided URL is returned unchanged without any request."""
        client, requested = routes({"a.example": slot_reply(HEAD_SLOT)})
        override = "https://my-beacon.internal:5052"

        with caplog.at_level("INFO", logger="eth_supervisor.checkpoint"):
            async with client:
                url = await select_checkpoint_url(
                    override, ["https://a.example"], client=client, clock=fixed_clock
                )

        assert url == override
        assert requested == []
        assert "skipping health checks" in caplog.text

    async def test_without_override_probes_candidates(self) -> None:
        """Without an override the best candidate is selected."""
        client, requested = routes({"a.example": slot_reply(HEAD_SLOT)})

        async with client:
            url = await select_checkpoint_url(
                None, ["https://a.example"], client=client, clock=fixed_clock
            )

        assert url == "https://a.example"
        assert requested == ["a.example"]
