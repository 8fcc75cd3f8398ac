# src/common/database/database.py

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import create_async_engine

from src.common.config import settings
from src.modules.scores.stores.base import BaseScoreStore
from src.modules.scores.stores.memory_store import InMemoryScoreStore
from src.modules.scores.stores.sql_store import SqlScoreStore

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


def create_score_store(database_url: Optional[str] = None) -> BaseScoreStore:
    """
    Build the score store for a database URL.

    `memory://` gives an InMemoryScoreStore; anything else is handed to
    SQLAlchemy's async engine.
    """
    url = database_url or settings.DATABASE_URL
    if url.startswith(MEMORY_URL):
        return InMemoryScoreStore()

    engine_kwargs = {"echo": settings.DATABASE_ECHO, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        engine_kwargs["pool_size"] = settings.DATABASE_POOL_SIZE
    engine = create_async_engine(url, **engine_kwargs)
    return SqlScoreStore(engine)


async def connect_to_db(database_url: Optional[str] = None) -> BaseScoreStore:
    """Create the store once at startup and make sure its schema exists."""
    store = create_score_store(database_url)
    if isinstance(store, SqlScoreStore):
        await store.create_schema()
        logger.info("Connected to score database (%s)", store.engine.dialect.name)
    else:
        logger.warning("Using in-memory score store; scores will not survive a restart")
    return store


async def close_db_connection(store: BaseScoreStore) -> None:
    await store.close()
    logger.info("Score store closed")
