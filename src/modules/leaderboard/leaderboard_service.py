# src/leaderboard/leaderboard_service.py

import asyncio
import logging
import math
import numbers
import random
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, TypeVar

from src.common.config import settings
from src.common.exceptions import ContentionError, InvalidInputError, StoreTimeoutError
from src.modules.scores.stores.base import BaseScoreStore, ScoreRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_ADDRESS_LENGTH = 255
MAX_BACKOFF_SECONDS = 0.25


@dataclass(frozen=True)
class SubmitResult:
    """
    Outcome of a score submission.

    `current_score` is the best score stored for the address once the call
    returned: the submitted score when applied, the higher existing one otherwise.
    """
    applied: bool
    address: str
    submitted_score: float
    current_score: float


@dataclass(frozen=True)
class RankedScore:
    address: str
    score: float


def validate_address(address: Any) -> str:
    if not isinstance(address, str) or not address:
        raise InvalidInputError("Address is required")
    if len(address) > MAX_ADDRESS_LENGTH:
        raise InvalidInputError(f"Address must be at most {MAX_ADDRESS_LENGTH} characters")
    return address


def parse_score(score: Any) -> float:
    """
    Coerce a submitted score to a finite float.

    Accepts real numbers and numeric strings. Booleans, NaN and infinities
    are rejected. Zero is a valid score.
    """
    if score is None:
        raise InvalidInputError("Score is required")
    if isinstance(score, bool):
        raise InvalidInputError("Score must be a valid number")

    try:
        if isinstance(score, numbers.Real):
            value = float(score)
        elif isinstance(score, str):
            value = float(score.strip())
        else:
            raise InvalidInputError("Score must be a valid number")
    except (ValueError, OverflowError):
        raise InvalidInputError("Score must be a valid number")

    if not math.isfinite(value):
        raise InvalidInputError("Score must be a finite number")
    return value


def clamp_limit(limit: Any, default: int = 20, maximum: int = 100) -> int:
    """
    Force a requested page size into [1, maximum].

    Missing or non-integer input falls back to `default`; it is never an error.
    """
    if limit is None or isinstance(limit, bool):
        return default
    try:
        value = int(limit)
    except (TypeError, ValueError, OverflowError):
        return default
    return min(max(value, 1), maximum)


class LeaderboardService:
    """
    Keeps the best score per address and serves the top-N ranking.

    Every write goes through the store's compare-and-set. A lost race is
    retried with the score the store reports, so concurrent submissions for
    one address always settle on the highest of them. No in-process lock is
    taken, so several instances can share one store.
    """

    def __init__(
        self,
        store: BaseScoreStore,
        max_attempts: int = 5,
        timeout_seconds: float = 5.0,
        backoff_seconds: float = 0.01,
        default_limit: int = 20,
        max_limit: int = 100,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.timeout_seconds = timeout_seconds
        self.backoff_seconds = backoff_seconds
        self.default_limit = default_limit
        self.max_limit = max_limit

    @classmethod
    def from_settings(cls, store: BaseScoreStore) -> "LeaderboardService":
        return cls(
            store,
            max_attempts=settings.SUBMIT_MAX_ATTEMPTS,
            timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
            backoff_seconds=settings.RETRY_BACKOFF_SECONDS,
            default_limit=settings.LEADERBOARD_DEFAULT_LIMIT,
            max_limit=settings.LEADERBOARD_MAX_LIMIT,
        )

    def clamp_limit(self, limit: Any) -> int:
        return clamp_limit(limit, self.default_limit, self.max_limit)

    async def submit_score(self, address: Any, score: Any, timeout: Optional[float] = None) -> SubmitResult:
        """
        Record `score` for `address` if it beats the stored best.

        Raises:
            InvalidInputError: address empty or score not a finite number
            ContentionError: compare-and-set lost `max_attempts` times in a row
            StoreUnavailableError / StoreTimeoutError: backend failure or deadline hit
        """
        address = validate_address(address)
        candidate = parse_score(score)
        return await self._run_with_deadline(self._submit(address, candidate), timeout, f"submit for {address}")

    async def get_top_scores(self, limit: Any = None, timeout: Optional[float] = None) -> List[RankedScore]:
        clamped = self.clamp_limit(limit)
        records = await self._run_with_deadline(
            self.store.range_by_score_descending(clamped), timeout, f"top {clamped} query"
        )
        return [RankedScore(address=record.address, score=record.score) for record in records]

    async def get_player_score(self, address: Any, timeout: Optional[float] = None) -> Optional[ScoreRecord]:
        address = validate_address(address)
        return await self._run_with_deadline(self.store.get(address), timeout, f"lookup for {address}")

    async def check_store(self, timeout: Optional[float] = None) -> bool:
        return await self._run_with_deadline(self.store.ping(), timeout, "store health check")

    async def _submit(self, address: str, candidate: float) -> SubmitResult:
        record = await self.store.get(address)
        current = record.score if record else None
        attempt = 0

        while True:
            if current is not None and current >= candidate:
                logger.debug("Score %s for %s does not beat stored %s", candidate, address, current)
                return SubmitResult(applied=False, address=address, submitted_score=candidate, current_score=current)

            if attempt == self.max_attempts:
                logger.warning(
                    "Giving up on %s after %d compare-and-set attempts (stored %s, submitted %s)",
                    address, attempt, current, candidate,
                )
                raise ContentionError(
                    f"Score for {address} changed concurrently {attempt} times; retry the submission"
                )

            if attempt:
                await asyncio.sleep(self._backoff(attempt))
            attempt += 1

            outcome = await self.store.compare_and_set(address, current, candidate)
            if outcome.applied:
                logger.info("New best score for %s: %s (previous %s)", address, candidate, current)
                return SubmitResult(applied=True, address=address, submitted_score=candidate, current_score=candidate)

            logger.debug(
                "Compare-and-set for %s lost on attempt %d/%d: expected %s, found %s",
                address, attempt, self.max_attempts, current, outcome.current_score,
            )
            current = outcome.current_score

    def _backoff(self, attempt: int) -> float:
        # Exponential with jitter so racing writers spread out
        delay = min(self.backoff_seconds * (2 ** (attempt - 1)), MAX_BACKOFF_SECONDS)
        return delay + random.uniform(0, self.backoff_seconds)

    async def _run_with_deadline(self, operation: Awaitable[T], timeout: Optional[float], description: str) -> T:
        deadline = self.timeout_seconds if timeout is None else timeout
        try:
            return await asyncio.wait_for(operation, timeout=deadline)
        except asyncio.TimeoutError as e:
            logger.warning("%s exceeded its %ss deadline", description, deadline)
            raise StoreTimeoutError(f"{description} did not complete within {deadline}s") from e
