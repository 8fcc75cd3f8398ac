# src/main.py

import logging

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.middleware import SlowAPIMiddleware
from slowapi.errors import RateLimitExceeded
from src.common.database.database import connect_to_db, close_db_connection
from src.common.config import settings
from src.common.exceptions import LeaderboardError, leaderboard_error_handler, request_validation_error_handler
from src.common.rate_limit import limiter
from src.modules.leaderboard.leaderboard_service import LeaderboardService
from src.router.routers import include_routers

# Centralized logging configuration
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    # One store and one service for the life of the process
    store = await connect_to_db()
    app.state.score_store = store
    app.state.leaderboard_service = LeaderboardService.from_settings(store)
    yield
    await close_db_connection(store)

# Initialize FastAPI app with lifespan manager
app = FastAPI(
    title="Highscore Leaderboard API",
    description="Keeps the best score per player address and serves the top of the leaderboard.",
    version="1.0.0",
    lifespan=lifespan
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Error responses share one JSON envelope
app.add_exception_handler(LeaderboardError, leaderboard_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_error_handler)

# Middleware for CORS using allowed origins from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers from a separate file
include_routers(app)
