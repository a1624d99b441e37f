"""Tests for checkpoint candidate ranking."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from eth_supervisor.checkpoint import (
    FRESHNESS_THRESHOLD,
    MAINNET_GENESIS_TIME,
    CheckpointCandidate,
    rank_candidates,
    slot_start_time,
)


def reachable(url: str, age: float, latency: float) -> CheckpointCandidate:
    return CheckpointCandidate(
        url=url,
        reachable=True,
        head_slot=1,
        head_slot_age=age,
        latency=latency,
    )


candidates = st.lists(
    st.one_of(
        st.builds(
            reachable,
            url=st.text(min_size=1, max_size=8),
            age=st.floats(min_value=0, max_value=2 * FRESHNESS_THRESHOLD),
            latency=st.floats(min_value=0, max_value=10),
        ),
        st.builds(
            CheckpointCandidate.unreachable,
            url=st.text(min_size=1, max_size=8),
            error=st.just("refused"),
        ),
    ),
    max_size=12,
)


class TestSlotTime:
    """Tests for slot to wall-clock conversion."""

    def test_genesis(self) -> None:
        """Slot 0 starts at genesis."""
        assert slot_start_time(0) == MAINNET_GENESIS_TIME

    def test_twelve_second_slots(self) -> None:
        """Each slot is 12 seconds."""
        assert slot_start_time(100) - slot_start_time(99) == 12


class TestEligibility:
    """Tests for candidate eligibility."""

    def test_fresh_reachable_is_eligible(self) -> None:
        """Reachable and younger than the threshold."""
        assert reachable("a", 60, 0.1).is_eligible(FRESHNESS_THRESHOLD)

    def test_threshold_is_exclusive(self) -> None:
        """A slot exactly at the threshold age is too old."""
        assert not reachable("a", FRESHNESS_THRESHOLD, 0.1).is_eligible(FRESHNESS_THRESHOLD)

    def test_unreachable_is_never_eligible(self) -> None:
        """Failed probes are never selected."""
        assert not CheckpointCandidate.unreachable("a", "boom").is_eligible(FRESHNESS_THRESHOLD)


class TestRanking:
    """Tests for ordering eligible candidates."""

    def test_fresher_beats_faster(self) -> None:
        """Slot age outranks latency."""
        fast_old = reachable("fast", age=900, latency=0.01)
        slow_new = reachable("slow", age=300, latency=2.0)

        ranked = rank_candidates([fast_old, slow_new], FRESHNESS_THRESHOLD)

        assert [c.url for c in ranked] == ["slow", "fast"]
        assert [c.rank for c in ranked] == [0, 1]

    def test_latency_breaks_ties(self) -> None:
        """Equal ages are ordered by latency."""
        ranked = rank_candidates(
            [reachable("b", 300, 0.5), reachable("a", 300, 0.2)], FRESHNESS_THRESHOLD
        )

        assert [c.url for c in ranked] == ["a", "b"]

    @given(candidates)
    def test_ranking_properties(self, pool: list[CheckpointCandidate]) -> None:
        """Only eligible candidates survive, sorted by (age, latency), ranked 0..n-1."""
        ranked = rank_candidates(pool, FRESHNESS_THRESHOLD)

        eligible = [c for c in pool if c.is_eligible(FRESHNESS_THRESHOLD)]
        assert len(ranked) == len(eligible)
        assert all(c.is_eligible(FRESHNESS_THRESHOLD) for c in ranked)
        assert [c.rank for c in ranked] == list(range(len(ranked)))
        keys = [(c.head_slot_age, c.latency) for c in ranked]
        assert keys == sorted(keys)
        if ranked:
            assert ranked[0].head_slot_age == min(c.head_slot_age or 0.0 for c in eligible)
