# src/leaderboard/schemas.py

from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field

class ScoreSubmitRequest(BaseModel):
    # Left untyped so bad or missing values reach the service and come back as invalid_input
    address: Any = None
    score: Any = None

class ScoreAcceptedResponse(BaseModel):
    success: bool = True
    applied: bool = True
    message: str
    address: str
    score: float

class ScoreNotImprovedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    applied: bool = False
    message: str
    address: str
    current_score: float = Field(alias="currentScore")
    submitted_score: float = Field(alias="submittedScore")

class LeaderboardEntry(BaseModel):
    address: str
    score: float

    model_config = ConfigDict(from_attributes=True)

class TopScoresResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    count: int
    limit: int
    scores: List[LeaderboardEntry]

class PlayerScoreResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    address: str
    score: float
    updated_at: datetime = Field(alias="updatedAt")
