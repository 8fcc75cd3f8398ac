"""
Unit tests for LeaderboardService.

Covers the best-score rule, compare-and-set race handling, deadlines,
input validation and top-N ranking.
"""
import asyncio
import math
import random

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from src.common.exceptions import (
    ContentionError,
    InvalidInputError,
    StoreTimeoutError,
    StoreUnavailableError,
)
from src.modules.leaderboard.leaderboard_service import (
    LeaderboardService,
    RankedScore,
    clamp_limit,
    parse_score,
)
from src.modules.scores.stores.base import CompareAndSetResult
from src.modules.scores.stores.memory_store import InMemoryScoreStore
from src.modules.scores.stores.sql_store import SqlScoreStore


class InterleavingStore(InMemoryScoreStore):
    """Yields to the event loop around every call so concurrent submissions interleave."""

    def __init__(self):
        super().__init__()
        self.cas_calls = 0

    async def get(self, address):
        await asyncio.sleep(0)
        record = await super().get(address)
        await asyncio.sleep(0)
        return record

    async def compare_and_set(self, address, expected_current, new_score):
        self.cas_calls += 1
        await asyncio.sleep(0)
        return await super().compare_and_set(address, expected_current, new_score)


class AlwaysLosingStore(InMemoryScoreStore):
    """Every compare-and-set reports a concurrent writer that is still below the candidate."""

    def __init__(self):
        super().__init__()
        self.cas_calls = 0

    async def compare_and_set(self, address, expected_current, new_score):
        self.cas_calls += 1
        return CompareAndSetResult(applied=False, current_score=float(self.cas_calls))


class SlowStore(InMemoryScoreStore):
    async def get(self, address):
        await asyncio.sleep(1)
        return await super().get(address)

    async def range_by_score_descending(self, limit):
        await asyncio.sleep(1)
        return await super().range_by_score_descending(limit)


class BrokenStore(InMemoryScoreStore):
    async def get(self, address):
        raise StoreUnavailableError("connection refused")


# ============================================================================
# SUBMISSION
# ============================================================================


class TestSubmitScore:

    async def test_first_submission_is_applied(self, service, memory_store):
        result = await service.submit_score("alice", 10)

        assert result.applied is True
        assert result.current_score == 10.0
        assert (await memory_store.get("alice")).score == 10.0

    async def test_lower_score_is_not_applied(self, service, memory_store):
        await service.submit_score("alice", 10)
        before = await memory_store.get("alice")

        result = await service.submit_score("alice", 3)

        assert result.applied is False
        assert result.current_score == 10.0
        assert result.submitted_score == 3.0
        assert await memory_store.get("alice") == before

    async def test_equal_score_is_a_no_op(self, service, memory_store):
        await service.submit_score("alice", 10)
        before = await memory_store.get("alice")

        first = await service.submit_score("alice", 10)
        second = await service.submit_score("alice", 10)

        assert first.applied is False
        assert second.applied is False
        assert (await memory_store.get("alice")).updated_at == before.updated_at

    async def test_higher_score_replaces(self, service, memory_store):
        await service.submit_score("alice", 10)

        result = await service.submit_score("alice", 12.5)

        assert result.applied is True
        assert (await memory_store.get("alice")).score == 12.5

    async def test_zero_is_a_valid_first_score(self, service, memory_store):
        result = await service.submit_score("alice", 0)

        assert result.applied is True
        assert (await memory_store.get("alice")).score == 0.0

    async def test_numeric_string_is_accepted(self, service):
        result = await service.submit_score("alice", " 42.5 ")

        assert result.applied is True
        assert result.current_score == 42.5

    async def test_stored_score_never_decreases(self, service, memory_store):
        rng = random.Random(7)
        observed = []
        for _ in range(200):
            await service.submit_score("alice", rng.uniform(-100, 100))
            observed.append((await memory_store.get("alice")).score)

        assert observed == sorted(observed)

    async def test_store_failure_propagates(self):
        service = LeaderboardService(BrokenStore())

        with pytest.raises(StoreUnavailableError):
            await service.submit_score("alice", 10)


@pytest_asyncio.fixture(params=["memory", "sql"])
async def racing_store(request, tmp_path):
    """A store that lets concurrent submissions interleave: in-memory with forced yields, or SQLite."""
    if request.param == "memory":
        yield InterleavingStore()
        return
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
    store = SqlScoreStore(engine)
    await store.create_schema()
    yield store
    await store.close()


class TestConcurrentSubmissions:

    async def test_concurrent_submissions_keep_the_maximum(self, racing_store):
        service = LeaderboardService(racing_store, timeout_seconds=30, backoff_seconds=0)

        results = await asyncio.gather(*(service.submit_score("alice", s) for s in [10, 7, 25, 3]))

        assert (await racing_store.get("alice")).score == 25.0
        assert any(r.applied and r.current_score == 25.0 for r in results)
        for result in results:
            assert result.current_score >= result.submitted_score

    async def test_many_writers_settle_on_highest(self, racing_store):
        scores = list(range(40))
        random.Random(3).shuffle(scores)
        service = LeaderboardService(racing_store, max_attempts=len(scores), timeout_seconds=30, backoff_seconds=0)

        await asyncio.gather(*(service.submit_score("alice", s) for s in scores))

        assert (await racing_store.get("alice")).score == 39.0

    async def test_different_addresses_do_not_interfere(self, racing_store):
        service = LeaderboardService(racing_store, timeout_seconds=30, backoff_seconds=0)

        await asyncio.gather(
            service.submit_score("alice", 5),
            service.submit_score("bob", 8),
            service.submit_score("alice", 9),
            service.submit_score("bob", 2),
        )

        assert (await racing_store.get("alice")).score == 9.0
        assert (await racing_store.get("bob")).score == 8.0

    async def test_repeated_submissions_from_many_players(self, racing_store):
        service = LeaderboardService(racing_store, max_attempts=10, timeout_seconds=30, backoff_seconds=0)
        submissions = [(f"player-{i % 5}", float(i)) for i in range(25)]
        random.Random(11).shuffle(submissions)

        await asyncio.gather(*(service.submit_score(address, score) for address, score in submissions))

        top = await service.get_top_scores(10)
        assert top == [RankedScore(f"player-{i}", 20.0 + i) for i in (4, 3, 2, 1, 0)]

    async def test_retry_ceiling_raises_contention(self):
        store = AlwaysLosingStore()
        service = LeaderboardService(store, max_attempts=5, backoff_seconds=0)

        with pytest.raises(ContentionError) as exc_info:
            await service.submit_score("alice", 100)

        assert store.cas_calls == 5
        assert exc_info.value.retryable is True

    async def test_lost_race_to_higher_score_is_not_an_error(self):
        class OvertakenStore(InMemoryScoreStore):
            async def compare_and_set(self, address, expected_current, new_score):
                return CompareAndSetResult(applied=False, current_score=500.0)

        service = LeaderboardService(OvertakenStore(), backoff_seconds=0)

        result = await service.submit_score("alice", 100)

        assert result.applied is False
        assert result.current_score == 500.0


class TestDeadlines:

    async def test_slow_submit_times_out(self):
        store = SlowStore()
        service = LeaderboardService(store, timeout_seconds=0.05)

        with pytest.raises(StoreTimeoutError):
            await service.submit_score("alice", 10)

        assert await InMemoryScoreStore.get(store, "alice") is None

    async def test_timeout_is_a_store_unavailable_error(self):
        service = LeaderboardService(SlowStore())

        with pytest.raises(StoreUnavailableError):
            await service.get_top_scores(5, timeout=0.05)

    async def test_retries_share_one_deadline(self):
        class SlowLosingStore(AlwaysLosingStore):
            async def compare_and_set(self, address, expected_current, new_score):
                await asyncio.sleep(0.03)
                return await super().compare_and_set(address, expected_current, new_score)

        store = SlowLosingStore()
        service = LeaderboardService(store, max_attempts=50, timeout_seconds=0.1, backoff_seconds=0)

        with pytest.raises(StoreTimeoutError):
            await service.submit_score("alice", 1000)

        assert store.cas_calls < 50


class TestValidation:

    @pytest.mark.parametrize("address", ["", None, 123, ["alice"], "x" * 256])
    async def test_bad_address_is_rejected(self, service, memory_store, address):
        with pytest.raises(InvalidInputError):
            await service.submit_score(address, 5)

        assert await memory_store.range_by_score_descending(100) == []

    @pytest.mark.parametrize("score", [None, "not-a-number", "", True, math.nan, math.inf, -math.inf, "inf", {}, [1]])
    async def test_bad_score_is_rejected(self, service, memory_store, score):
        with pytest.raises(InvalidInputError):
            await service.submit_score("addr", score)

        assert await memory_store.get("addr") is None

    def test_parse_score_accepts_ints_and_floats(self):
        assert parse_score(3) == 3.0
        assert parse_score(-2.5) == -2.5
        assert parse_score("1e3") == 1000.0

    def test_invalid_input_is_not_retryable(self):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_score("nope")

        assert exc_info.value.retryable is False


# ============================================================================
# RANKING
# ============================================================================


class TestTopScores:

    async def _seed(self, service, scores):
        for address, score in scores.items():
            await service.submit_score(address, score)

    async def test_ties_broken_by_address(self, service):
        await self._seed(service, {"A": 50, "B": 80, "C": 80, "D": 10})

        top = await service.get_top_scores(3)

        assert top == [RankedScore("B", 80.0), RankedScore("C", 80.0), RankedScore("A", 50.0)]

    async def test_ordering_is_stable_across_calls(self, service):
        await self._seed(service, {"C": 80, "A": 50, "B": 80, "D": 10})

        first = await service.get_top_scores(4)
        second = await service.get_top_scores(4)

        assert first == second
        assert [entry.address for entry in first] == ["B", "C", "A", "D"]

    async def test_insertion_order_does_not_matter(self):
        orders = [["A", "B", "C"], ["C", "B", "A"], ["B", "A", "C"]]
        results = []
        for order in orders:
            service = LeaderboardService(InMemoryScoreStore())
            for address in order:
                await service.submit_score(address, 1)
            results.append(await service.get_top_scores(10))

        assert results[0] == results[1] == results[2]

    async def test_empty_leaderboard(self, service):
        assert await service.get_top_scores(10) == []

    async def test_limit_zero_clamps_to_one(self, service):
        await self._seed(service, {"A": 1, "B": 2})

        top = await service.get_top_scores(0)

        assert top == [RankedScore("B", 2.0)]

    async def test_limit_above_maximum_clamps_to_hundred(self, service):
        await self._seed(service, {f"player-{i:03d}": i for i in range(150)})

        top = await service.get_top_scores(1000)

        assert len(top) == 100
        assert top[0] == RankedScore("player-149", 149.0)

    async def test_missing_limit_uses_default(self, service):
        await self._seed(service, {f"p{i}": i for i in range(30)})

        assert len(await service.get_top_scores()) == 20
        assert len(await service.get_top_scores("not-a-number")) == 20

    @pytest.mark.parametrize(
        "limit, expected",
        [(None, 20), (0, 1), (-5, 1), (1, 1), (55, 55), (100, 100), (101, 100), ("7", 7), ("abc", 20), (True, 20), (3.9, 3)],
    )
    def test_clamp_limit(self, limit, expected):
        assert clamp_limit(limit) == expected


class TestPlayerLookup:

    async def test_returns_stored_record(self, service):
        await service.submit_score("alice", 10)

        record = await service.get_player_score("alice")

        assert record.score == 10.0

    async def test_unknown_address_returns_none(self, service):
        assert await service.get_player_score("ghost") is None

    async def test_empty_address_rejected(self, service):
        with pytest.raises(InvalidInputError):
            await service.get_player_score("")
