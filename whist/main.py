"""FastAPI main application."""

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from whist.api.game_handler import GameHandler
from whist.api.routes import router
from whist.api.websocket import ConnectionManager
from whist.config import settings
from whist.constants import DEFAULT_PACING, PacingDelays
from whist.repositories.game_repository import GameRepository
from whist.repositories.high_score_repository import HighScoreRepository
from whist.services.high_score_service import HighScoreService
from whist.services.publisher_service import PublisherService
from whist.services.registry import GameRegistry

# Configure logging for the app (must be after imports but before app usage)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
    stream=sys.stdout,
)
logging.getLogger("whist").setLevel(logging.INFO)
logger = logging.getLogger(__name__)


async def _connect_optional(repository: GameRepository | HighScoreRepository, name: str) -> bool:
    try:
        await repository.connect()
    except (ConnectionError, TimeoutError, OSError, PyMongoError):
        # Catch MongoDB connection errors (ServerSelectionTimeoutError, etc.)
        logger.warning("MongoDB not available, running without %s", name)
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup and shutdown events.

    Handles:
    - MongoDB connections for saved games and high scores (optional)
    - Redis connection for game events (optional)
    - Cleanup on shutdown
    """
    publisher = PublisherService()
    await publisher.connect()

    game_repository: GameRepository | None = GameRepository()
    if not await _connect_optional(game_repository, "saved games"):
        game_repository = None
    high_score_repository: HighScoreRepository | None = HighScoreRepository()
    if not await _connect_optional(high_score_repository, "high scores"):
        high_score_repository = None

    high_scores = HighScoreService(high_score_repository, publisher)
    app.state.game_repository = game_repository
    app.state.high_score_repository = high_score_repository
    app.state.publisher_service = publisher
    app.state.manager.game_handler.set_services(game_repository, high_scores)

    yield

    for game_id in list(app.state.registry.games):
        app.state.manager.game_handler.cancel_game(game_id)
    await high_scores.wait_idle()

    if game_repository:
        await game_repository.disconnect()
    if high_score_repository:
        await high_score_repository.disconnect()
    await publisher.close()


def create_app(pacing: PacingDelays = DEFAULT_PACING) -> FastAPI:
    """Build the application with a fresh game registry.

    Args:
        pacing: Baseline delays for automatic steps

    Returns:
        Configured FastAPI app
    """
    app = FastAPI(
        title="Whist API",
        description="Calling whist game server with traditional and Keller rules",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.registry = GameRegistry()
    app.state.manager = ConnectionManager(app.state.registry)
    app.state.manager.set_game_handler(GameHandler(app.state.manager, pacing=pacing))
    app.state.game_repository = None
    app.state.high_score_repository = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, "http://localhost:3000", "http://localhost:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


def main() -> None:
    """Run the application."""
    uvicorn.run(
        "whist.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="info",
    )


if __name__ == "__main__":
    main()
