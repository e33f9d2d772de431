"""High-score repository for MongoDB persistence."""

import logging
from datetime import UTC, datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from whist.config import settings

logger = logging.getLogger(__name__)


class HighScoreRepository:
    """Per-format leaderboards of finished games."""

    def __init__(self, limit: int | None = None) -> None:
        """Initialize repository."""
        self.client: AsyncIOMotorClient[dict[str, Any]] | None = None
        self.db: AsyncIOMotorDatabase[dict[str, Any]] | None = None
        self.limit = limit or settings.high_score_limit

    async def connect(self) -> None:
        """Connect to MongoDB and create indexes."""
        try:
            self.client = AsyncIOMotorClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=2000,
            )
            self.db = self.client[settings.mongodb_database]
            await self.client.admin.command("ping")
            await self.db.high_scores.create_index(
                [("category", ASCENDING), ("score", DESCENDING)]
            )
            logger.info("High score store ready")
        except PyMongoError:
            logger.warning("MongoDB not available for high scores")
            raise

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()

    async def record(
        self,
        category: str,
        player_name: str,
        score: int,
        player_count: int,
        mode: str,
    ) -> bool:
        """Store one finished score.

        Args:
            category: Leaderboard (the game format)
            player_name: Human who scored
            score: Final score
            player_count: Players at the table
            mode: "single" or "multi"

        Returns:
            True if successful
        """
        if self.db is None:
            return False

        entry = {
            "category": category,
            "player_name": player_name,
            "score": score,
            "player_count": player_count,
            "mode": mode,
            "recorded_at": datetime.now(UTC).isoformat(),
        }
        try:
            result = await self.db.high_scores.insert_one(entry)
        except PyMongoError:
            logger.exception("Error recording high score for %s", player_name)
            return False
        else:
            return result.acknowledged

    async def top(self, category: str) -> list[dict[str, Any]]:
        """Best scores of a leaderboard, highest first.

        Args:
            category: Leaderboard (the game format)

        Returns:
            Up to ``limit`` entries
        """
        if self.db is None:
            return []

        try:
            cursor = (
                self.db.high_scores.find({"category": category}, {"_id": 0})
                .sort("score", DESCENDING)
                .limit(self.limit)
            )
            return [doc async for doc in cursor]
        except PyMongoError:
            logger.exception("Error loading high scores for %s", category)
            return []
