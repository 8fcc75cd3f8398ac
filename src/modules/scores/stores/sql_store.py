"""
SQLAlchemy-backed score store.

Works against any async driver SQLAlchemy supports; PostgreSQL (asyncpg)
in production, SQLite (aiosqlite) for local runs.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from src.common.exceptions import StoreUnavailableError
from src.models.models import Base, Score
from .base import BaseScoreStore, CompareAndSetResult, ScoreRecord

logger = logging.getLogger(__name__)

# Errors that mean the backend, not the caller, is at fault
BACKEND_ERRORS = (SQLAlchemyError, OSError)


def _to_record(row: Score) -> ScoreRecord:
    return ScoreRecord(address=row.address, score=row.score, updated_at=row.updated_at)


class SqlScoreStore(BaseScoreStore):
    """
    Score store over a single `scores` table.

    compare_and_set never reads and writes in separate steps: a create is a
    plain INSERT that loses on a primary-key collision, and an update is a
    single UPDATE guarded by `score = :expected`. The database serializes
    competing writers, so any number of service instances can share it.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def create_schema(self) -> None:
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except BACKEND_ERRORS as e:
            logger.error("Failed to create score schema: %s", e)
            raise StoreUnavailableError(f"Could not initialise score store: {e}") from e

    async def get(self, address: str) -> Optional[ScoreRecord]:
        try:
            async with self.session_factory() as session:
                row = await self._fetch(session, address)
        except BACKEND_ERRORS as e:
            logger.error("Error reading score for %s: %s", address, e)
            raise StoreUnavailableError(f"Score store read failed: {e}") from e
        return _to_record(row) if row else None

    async def compare_and_set(
        self,
        address: str,
        expected_current: Optional[float],
        new_score: float,
    ) -> CompareAndSetResult:
        now = datetime.now(timezone.utc)
        try:
            async with self.session_factory() as session:
                if expected_current is None:
                    return await self._create(session, address, new_score, now)

                stmt = (
                    update(Score)
                    .where(Score.address == address, Score.score == expected_current)
                    .values(score=new_score, updated_at=now)
                    .execution_options(synchronize_session=False)
                )
                result = await session.execute(stmt)
                if result.rowcount == 1:
                    await session.commit()
                    return CompareAndSetResult(applied=True, current_score=new_score)

                await session.rollback()
                row = await self._fetch(session, address)
                return CompareAndSetResult(applied=False, current_score=row.score if row else None)
        except BACKEND_ERRORS as e:
            logger.error("Error writing score for %s: %s", address, e)
            raise StoreUnavailableError(f"Score store write failed: {e}") from e

    async def range_by_score_descending(self, limit: int) -> List[ScoreRecord]:
        # Byte-wise address order on PostgreSQL so ties sort the same as in Python
        address_order = Score.address.collate("C") if self.engine.dialect.name == "postgresql" else Score.address
        stmt = select(Score).order_by(Score.score.desc(), address_order.asc()).limit(limit)
        try:
            async with self.session_factory() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except BACKEND_ERRORS as e:
            logger.error("Error scanning top %s scores: %s", limit, e)
            raise StoreUnavailableError(f"Score store scan failed: {e}") from e
        return [_to_record(row) for row in rows]

    async def close(self) -> None:
        await self.engine.dispose()

    async def _fetch(self, session: AsyncSession, address: str) -> Optional[Score]:
        result = await session.execute(select(Score).where(Score.address == address))
        return result.scalars().first()

    async def _create(
        self,
        session: AsyncSession,
        address: str,
        score: float,
        now: datetime,
    ) -> CompareAndSetResult:
        session.add(Score(address=address, score=score, created_at=now, updated_at=now))
        try:
            await session.commit()
        except IntegrityError:
            # Another writer created the record first
            await session.rollback()
            logger.debug("Create for %s lost to a concurrent insert", address)
            row = await self._fetch(session, address)
            return CompareAndSetResult(applied=False, current_score=row.score if row else None)
        return CompareAndSetResult(applied=True, current_score=score)
