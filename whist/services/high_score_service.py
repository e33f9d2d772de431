"""Recording of finished games.

Recording runs as a background task: leaderboard or Redis trouble is
logged and never reaches the game.
"""

import asyncio
import logging

from whist.models.game import Game
from whist.repositories.high_score_repository import HighScoreRepository
from whist.services.publisher_service import PublisherService

logger = logging.getLogger(__name__)


class HighScoreService:
    """Writes final scores of human players and announces finished games."""

    def __init__(
        self,
        repository: HighScoreRepository | None = None,
        publisher: PublisherService | None = None,
    ) -> None:
        self.repository = repository
        self.publisher = publisher
        self._tasks: set[asyncio.Task[None]] = set()

    def record_game(self, game: Game) -> asyncio.Task[None]:
        """Start recording a finished game in the background."""
        task = asyncio.create_task(self._record(game.id, _summary(game)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _record(self, game_id: str, summary: dict) -> None:
        try:
            if self.repository is not None:
                for entry in summary["humans"]:
                    await self.repository.record(
                        summary["format"],
                        entry["player_name"],
                        entry["score"],
                        summary["player_count"],
                        summary["mode"],
                    )
            if self.publisher is not None:
                await self.publisher.publish_game_event("game_finished", game_id, summary)
        except Exception:
            logger.exception("Failed to record finished game %s", game_id)
        else:
            logger.info("Recorded finished game %s", game_id)

    async def wait_idle(self) -> None:
        """Wait for pending recordings (shutdown and tests)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)


def _summary(game: Game) -> dict:
    # Taken eagerly so later changes to the game cannot leak into the record
    winner = game.get_winner()
    return {
        "format": game.game_format.value,
        "player_count": len(game.players),
        "mode": "single" if game.is_single_player else "multi",
        "winner": winner.name if winner else None,
        "humans": [{"player_name": p.name, "score": p.score} for p in game.humans],
        "scores": {p.name: p.score for p in game.players},
    }
