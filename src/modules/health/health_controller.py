# src/health/health_controller.py

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.common.exceptions import StoreUnavailableError
from src.common.utils.global_messages import GlobalMessages
from src.modules.leaderboard.dependencies import get_leaderboard_service
from src.modules.leaderboard.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/health", tags=["Health"])

# Health check endpoint
@router.get("")
async def health_check():
    return {"status": "ok", "message": GlobalMessages.API_RUNNING}

@router.get("/store")
async def store_health_check(service: LeaderboardService = Depends(get_leaderboard_service)):
    """
    Check that the score store answers a read.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        await service.check_store()
    except StoreUnavailableError as e:
        return JSONResponse(
            status_code=503,
            content={
                "success": False,
                "error": GlobalMessages.STORE_UNREACHABLE,
                "details": e.detail,
                "timestamp": timestamp,
            },
        )
    return {"success": True, "message": GlobalMessages.STORE_REACHABLE, "timestamp": timestamp}
