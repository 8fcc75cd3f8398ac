import asyncio
import json
import logging
import os
from typing import Dict, Optional

from src.common.database.database import connect_to_db, close_db_connection
from src.common.exceptions import LeaderboardError
from src.modules.leaderboard.leaderboard_service import LeaderboardService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

# Path to a JSON object of {address: score}; the sample below is used when unset
SEED_FILE = os.getenv("SEED_FILE")

sample_scores = {
    "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984": 1200,
    "0x6b175474e89094c44da98b954eedeac495271d0f": 950,
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": 950,
    "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2": 430,
    "0xdac17f958d2ee523a2206206994597c13d831ec7": 0,
}

def load_scores(path: Optional[str]) -> Dict[str, object]:
    if not path:
        return sample_scores
    with open(path, "r") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object of address -> score")
    return data

async def seed_scores(service: LeaderboardService, scores: Dict[str, object]) -> Dict[str, int]:
    """
    Submit every score through the service so the best-score rule applies to seed data too.
    """
    counts = {"applied": 0, "ignored": 0, "rejected": 0}
    for address, score in scores.items():
        try:
            result = await service.submit_score(address, score)
        except LeaderboardError as e:
            if e.retryable:
                raise
            logger.warning("Skipping %s: %s", address, e.detail)
            counts["rejected"] += 1
            continue
        counts["applied" if result.applied else "ignored"] += 1
    return counts

async def seed_all():
    store = await connect_to_db()
    try:
        service = LeaderboardService.from_settings(store)
        counts = await seed_scores(service, load_scores(SEED_FILE))
        logger.info(
            "Seeding complete: %s applied, %s ignored, %s rejected",
            counts["applied"], counts["ignored"], counts["rejected"],
        )
    finally:
        await close_db_connection(store)

if __name__ == "__main__":
    asyncio.run(seed_all())
