"""
In-process score store.

Scores live in a dict and are lost on restart. Only suitable for tests
and single-process local runs; use the SQL store for anything shared.
"""
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .base import BaseScoreStore, CompareAndSetResult, ScoreRecord


class InMemoryScoreStore(BaseScoreStore):
    """Dict-backed store. Each operation is atomic under a short-lived lock."""

    def __init__(self):
        self._records: Dict[str, ScoreRecord] = {}
        # Held only around dict access, never across an await
        self._lock = threading.Lock()

    async def get(self, address: str) -> Optional[ScoreRecord]:
        with self._lock:
            return self._records.get(address)

    async def compare_and_set(
        self,
        address: str,
        expected_current: Optional[float],
        new_score: float,
    ) -> CompareAndSetResult:
        with self._lock:
            existing = self._records.get(address)
            current = existing.score if existing else None
            if current != expected_current:
                return CompareAndSetResult(applied=False, current_score=current)

            self._records[address] = ScoreRecord(
                address=address,
                score=new_score,
                updated_at=datetime.now(timezone.utc),
            )
            return CompareAndSetResult(applied=True, current_score=new_score)

    async def range_by_score_descending(self, limit: int) -> List[ScoreRecord]:
        with self._lock:
            snapshot = list(self._records.values())
        snapshot.sort(key=lambda record: (-record.score, record.address))
        return snapshot[:limit]
