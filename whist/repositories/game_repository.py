"""Saved-game repository for MongoDB persistence."""

import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from whist.config import settings
from whist.models.game import Game
from whist.services.game_serializer import build_save_document, deserialize_game

logger = logging.getLogger(__name__)


class GameRepository:
    """Repository for saved single-player games using MongoDB.

    Each save is stored as ``{_id, player_name, format, round, score,
    saved_at, state}``; only the newest ``max_saved_games`` per player are
    kept.
    """

    def __init__(self, max_saved_games: int | None = None) -> None:
        """Initialize repository."""
        self.client: AsyncIOMotorClient[dict[str, Any]] | None = None
        self.db: AsyncIOMotorDatabase[dict[str, Any]] | None = None
        self.max_saved_games = max_saved_games or settings.max_saved_games

    async def connect(self) -> None:
        """Connect to MongoDB and create indexes."""
        try:
            self.client = AsyncIOMotorClient(
                settings.mongodb_uri,
                serverSelectionTimeoutMS=2000,  # 2 second timeout
            )
            self.db = self.client[settings.mongodb_database]

            # Verify connection
            await self.client.admin.command("ping")
            logger.info("Connected to MongoDB: %s", settings.mongodb_database)

            await self._create_indexes()

        except PyMongoError:
            logger.warning("MongoDB not available")
            raise

    async def _create_indexes(self) -> None:
        """Create indexes for efficient queries."""
        if self.db is None:
            return

        try:
            # Listing a player's saves, newest first
            await self.db.saved_games.create_index(
                [("player_name_lower", ASCENDING), ("saved_at", DESCENDING)]
            )
            logger.info("MongoDB indexes created successfully")
        except PyMongoError:
            logger.exception("Error creating indexes")

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def save(self, game: Game, player_name: str) -> str | None:
        """Store a snapshot of a game for one player and prune old saves.

        Args:
            game: Game instance to save
            player_name: Human player the save belongs to

        Returns:
            Id of the new save, or None if it could not be stored
        """
        if self.db is None:
            return None

        document = build_save_document(game, player_name)
        document["player_name_lower"] = player_name.lower()
        try:
            await self.db.saved_games.replace_one({"_id": document["_id"]}, document, upsert=True)
            await self._prune(player_name)
        except PyMongoError:
            logger.exception("Error saving game %s for %s", game.id, player_name)
            return None
        else:
            logger.info("Game %s saved for %s as %s", game.id, player_name, document["_id"])
            return document["_id"]

    async def _prune(self, player_name: str) -> None:
        if self.db is None:
            return
        cursor = (
            self.db.saved_games.find({"player_name_lower": player_name.lower()}, {"_id": 1})
            .sort("saved_at", DESCENDING)
            .skip(self.max_saved_games)
        )
        stale = [doc["_id"] async for doc in cursor]
        if stale:
            await self.db.saved_games.delete_many({"_id": {"$in": stale}})
            logger.debug("Pruned %d old saves for %s", len(stale), player_name)

    async def list_for_player(self, player_name: str) -> list[dict[str, Any]]:
        """Save metadata for a player, newest first (without game state).

        Args:
            player_name: Player to look up (case-insensitive)

        Returns:
            List of save summaries
        """
        if self.db is None:
            return []

        try:
            cursor = (
                self.db.saved_games.find(
                    {"player_name_lower": player_name.lower()},
                    {"state": 0, "player_name_lower": 0},
                )
                .sort("saved_at", DESCENDING)
                .limit(self.max_saved_games)
            )
            saves = [doc async for doc in cursor]
        except PyMongoError:
            logger.exception("Error listing saves for %s", player_name)
            return []
        else:
            return saves

    async def find_by_id(self, save_id: str) -> tuple[Game, str] | None:
        """Load a save.

        Args:
            save_id: Save identifier

        Returns:
            The restored game and the owning player's name, or None
        """
        if self.db is None:
            return None

        try:
            result = await self.db.saved_games.find_one({"_id": save_id})
        except PyMongoError:
            logger.exception("Error finding save %s", save_id)
            return None
        else:
            if result:
                return deserialize_game(result["state"]), result["player_name"]
            return None

    async def delete(self, save_id: str) -> bool:
        """Delete a save.

        Args:
            save_id: Save identifier

        Returns:
            True if successful
        """
        if self.db is None:
            return False

        try:
            result = await self.db.saved_games.delete_one({"_id": save_id})
        except PyMongoError:
            logger.exception("Error deleting save %s", save_id)
            return False
        else:
            return result.deleted_count > 0
