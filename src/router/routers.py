# src/router/routers.py

from fastapi import FastAPI
from src.modules.leaderboard.leaderboard_controller import router as leaderboard_router
from src.modules.leaderboard.leaderboard_controller import legacy_router
from src.modules.health.health_controller import router as health_router

def include_routers(app: FastAPI) -> None:
    app.include_router(leaderboard_router)
    app.include_router(legacy_router)
    app.include_router(health_router)
