# src/leaderboard/dependencies.py

from fastapi import Request

from src.modules.leaderboard.leaderboard_service import LeaderboardService

def get_leaderboard_service(request: Request) -> LeaderboardService:
    """
    Dependency returning the LeaderboardService built during application startup.
    """
    return request.app.state.leaderboard_service
