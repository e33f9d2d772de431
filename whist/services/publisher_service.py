"""Redis publisher service for game events.

Game lifecycle events (currently ``game_finished``) are published on
``game_events:<game_id>`` so leaderboards and other services can react
without being wired into the game server. Redis is optional: without it
publishing is a logged no-op.
"""

import asyncio
import json
import logging
import time
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from whist.config import settings
from whist.constants import REDIS_PUBLISH_TIMEOUT

logger = logging.getLogger(__name__)


class PublisherService:
    """Service for publishing game events via Redis pub/sub."""

    def __init__(self) -> None:
        """Initialize publisher service."""
        self.redis_client: redis.Redis | None = None
        self._instance_id = f"instance_{int(time.time() * 1000)}"

    async def connect(self) -> None:
        """Connect to Redis and verify connection."""
        try:
            self.redis_client = redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
            # Actually verify the connection works
            await self.redis_client.ping()
            logger.info("Connected to Redis (instance: %s)", self._instance_id)
        except (RedisError, TimeoutError, OSError):
            logger.warning("Redis not available, running without pub/sub")
            self.redis_client = None

    async def publish(self, channel: str, message: dict[str, Any]) -> bool:
        """Publish message to Redis channel.

        Args:
            channel: Channel name
            message: Message payload

        Returns:
            True if successful

        """
        if not self.redis_client:
            return False

        try:
            message["_instance_id"] = self._instance_id
            message_json = json.dumps(message)
            async with asyncio.timeout(REDIS_PUBLISH_TIMEOUT):
                await self.redis_client.publish(channel, message_json)
            logger.debug("Published message to channel %s", channel)
        except (RedisError, TypeError, TimeoutError):
            logger.exception("Error publishing message")
            return False
        else:
            return True

    async def publish_game_event(
        self,
        event_type: str,
        game_id: str,
        data: dict[str, Any],
    ) -> bool:
        """Publish game event to Redis.

        Args:
            event_type: Type of event (e.g., "game_finished")
            game_id: Game identifier
            data: Event data

        Returns:
            True if successful
        """
        message = {
            "event": event_type,
            "game_id": game_id,
            "data": data,
            "timestamp": time.time(),
        }

        return await self.publish(f"game_events:{game_id}", message)

    async def close(self) -> None:
        """Close Redis connection."""
        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("Redis connection closed")

    @property
    def is_connected(self) -> bool:
        """Check if Redis is connected."""
        return self.redis_client is not None
