# src/leaderboard/leaderboard_controller.py

from typing import Optional, Union

from fastapi import APIRouter, Depends

from src.common.exceptions import ScoreNotFoundError
from src.common.utils.global_messages import GlobalMessages
from src.modules.leaderboard import schemas
from src.modules.leaderboard.dependencies import get_leaderboard_service
from src.modules.leaderboard.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/scores", tags=["scores"])

# Endpoint names the original game clients call
legacy_router = APIRouter(tags=["legacy"])

SubmitResponse = Union[schemas.ScoreAcceptedResponse, schemas.ScoreNotImprovedResponse]


async def _submit(payload: schemas.ScoreSubmitRequest, service: LeaderboardService) -> SubmitResponse:
    result = await service.submit_score(payload.address, payload.score)
    if result.applied:
        return schemas.ScoreAcceptedResponse(
            message=GlobalMessages.SCORE_SAVED,
            address=result.address,
            score=result.current_score,
        )
    return schemas.ScoreNotImprovedResponse(
        message=GlobalMessages.HIGHER_SCORE_PRESENT,
        address=result.address,
        current_score=result.current_score,
        submitted_score=result.submitted_score,
    )


async def _top_scores(limit: Optional[str], service: LeaderboardService) -> schemas.TopScoresResponse:
    safe_limit = service.clamp_limit(limit)
    entries = await service.get_top_scores(safe_limit)
    return schemas.TopScoresResponse(
        message=GlobalMessages.SCORES_RETRIEVED if entries else GlobalMessages.NO_SCORES_FOUND,
        count=len(entries),
        limit=safe_limit,
        scores=[schemas.LeaderboardEntry.model_validate(entry) for entry in entries],
    )


# POST /scores - Submit a score, kept only if it beats the stored best
@router.post("", response_model=SubmitResponse)
async def submit_score(
    payload: schemas.ScoreSubmitRequest,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """
    Submit a score for an address.

    A score that does not beat the stored best is not an error: the response
    carries `applied: false` with the stored `currentScore`.
    """
    return await _submit(payload, service)


# GET /scores/top - Highest scores first
@router.get("/top", response_model=schemas.TopScoresResponse)
async def get_top_scores(
    limit: Optional[str] = None,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """
    Retrieve the leaderboard.

    Query Parameters:
    - **limit**: Number of entries, default 20. Clamped to 1..100; anything non-numeric uses the default.
    """
    return await _top_scores(limit, service)


# GET /scores/player/{address} - Best score for one address
# Kept under /player so no address can collide with /scores/top
@router.get("/player/{address}", response_model=schemas.PlayerScoreResponse)
async def get_player_score(
    address: str,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    record = await service.get_player_score(address)
    if not record:
        raise ScoreNotFoundError(GlobalMessages.PLAYER_NOT_FOUND)
    return schemas.PlayerScoreResponse(address=record.address, score=record.score, updated_at=record.updated_at)


@legacy_router.post("/save-score", response_model=SubmitResponse)
async def save_score(
    payload: schemas.ScoreSubmitRequest,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    return await _submit(payload, service)


@legacy_router.get("/top-users", response_model=schemas.TopScoresResponse)
async def top_users(
    limit: Optional[str] = None,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    return await _top_scores(limit, service)
