"""Random bot that makes random valid moves."""

import random

from whist.bots.base_bot import BaseBot, BotDifficulty
from whist.models.calls import legal_calls
from whist.models.card import Card
from whist.models.game import Game


class RandomBot(BaseBot):
    """Bot that makes completely random decisions.

    This serves as a baseline for evaluating other bot strategies
    and provides an unpredictable opponent for testing.
    """

    def __init__(
        self,
        player_id: str,
        _difficulty: BotDifficulty = BotDifficulty.RANDOM,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize random bot."""
        # Random bot ignores difficulty but accepts it for API compatibility
        super().__init__(player_id, BotDifficulty.RANDOM, rng)

    def make_call(self, game: Game) -> int:
        """Pick uniformly among the legal calls."""
        return self.rng.choice(legal_calls(game, self.player(game)))

    def pick_card(self, game: Game) -> Card:
        """Pick a random legal card."""
        return self.rng.choice(self.legal_cards(game))
