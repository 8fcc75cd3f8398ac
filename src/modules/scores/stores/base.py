"""
Abstract base class for score stores.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

# Read by ping(); never written
HEALTHCHECK_KEY = "__healthcheck__"


@dataclass(frozen=True)
class ScoreRecord:
    """Best score stored for one address."""
    address: str
    score: float
    updated_at: datetime


@dataclass(frozen=True)
class CompareAndSetResult:
    """Outcome of a compare-and-set attempt."""
    applied: bool
    current_score: Optional[float]  # None when the address has no record


class BaseScoreStore(ABC):
    """
    Keyed store of ScoreRecords with atomic compare-and-set and an
    ordered scan by score.

    Implementations raise StoreUnavailableError when the backend cannot be
    reached. Missing data is never an error.
    """

    @abstractmethod
    async def get(self, address: str) -> Optional[ScoreRecord]:
        """
        Fetch the record for an address.

        Returns:
            The ScoreRecord, or None if the address has never been stored
        """
        pass

    @abstractmethod
    async def compare_and_set(
        self,
        address: str,
        expected_current: Optional[float],
        new_score: float,
    ) -> CompareAndSetResult:
        """
        Atomically replace the stored score if it still equals `expected_current`.

        Args:
            address: Record key
            expected_current: Score the caller last read, or None if the caller
                saw no record (the write then only succeeds as a create)
            new_score: Score to store

        Returns:
            CompareAndSetResult(applied=True, current_score=new_score) on success,
            otherwise applied=False with the score actually stored now
        """
        pass

    @abstractmethod
    async def range_by_score_descending(self, limit: int) -> List[ScoreRecord]:
        """
        Return at most `limit` records, highest score first, ties broken
        by address ascending.
        """
        pass

    async def ping(self) -> bool:
        """Round-trip a read to the backend."""
        await self.get(HEALTHCHECK_KEY)
        return True

    async def close(self) -> None:
        pass
