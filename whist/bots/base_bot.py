"""Base class for all bot strategies."""

import random
from abc import ABC, abstractmethod
from enum import Enum

from whist.constants import CPU_BLIND_CHANCE
from whist.models.calls import forbidden_call, legal_calls
from whist.models.card import Card
from whist.models.enums import Guess
from whist.models.game import Game
from whist.models.player import Player
from whist.models.trick import legal_cards


class BotDifficulty(str, Enum):
    """Bot difficulty levels."""

    RANDOM = "random"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class BaseBot(ABC):
    """Abstract base class for bot AI strategies.

    All bot implementations must inherit from this class and implement
    the make_call() and pick_card() methods. Keller decisions (blind
    choice and side games) have shared defaults.
    """

    def __init__(
        self,
        player_id: str,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the bot.

        Args:
            player_id: ID of the player this bot controls
            difficulty: Bot difficulty level
            rng: Random source for noise and coin flips

        """
        self.player_id = player_id
        self.difficulty = difficulty
        self.rng = rng or random.Random()

    @abstractmethod
    def make_call(self, game: Game) -> int:
        """Choose a call for the current round.

        Args:
            game: Current game state (it is this bot's turn to call)

        Returns:
            A call the validator accepts

        """

    @abstractmethod
    def pick_card(self, game: Game) -> Card:
        """Choose a card for the current trick.

        Args:
            game: Current game state (it is this bot's turn to play)

        Returns:
            A legal card from the bot's hand

        """

    def player(self, game: Game) -> Player:
        return game.require_player(self.player_id)

    def legal_cards(self, game: Game) -> list[Card]:
        """Cards this bot may play into the current trick."""
        return legal_cards(self.player(game).hand, game.current_trick.lead_suit)

    def settle_call(self, game: Game, call: int, estimate: float) -> int:
        """Turn a raw estimate into a call the rules allow.

        A dealer landing on the forbidden value steps down one (up from 0);
        if that is still forbidden it falls back to 0 or card_count - 1,
        whichever is nearer the estimate. Anything still illegal (No3Z)
        moves to the nearest legal call, preferring the higher one.
        """
        card_count = game.card_count
        call = max(0, min(card_count, call))

        forbidden = forbidden_call(game, self.player(game))
        if forbidden is not None and call == forbidden:
            call = call - 1 if call > 0 else call + 1
            call = max(0, min(card_count, call))
            if call == forbidden:
                fallbacks = [0, max(card_count - 1, 0)]
                call = min(fallbacks, key=lambda v: abs(v - estimate))

        allowed = legal_calls(game, self.player(game))
        if allowed and call not in allowed:
            target = call
            call = min(allowed, key=lambda v: (abs(v - target), -v))
        return call

    def choose_blind_round_one(self, _game: Game) -> bool:
        """Whether to call blind from round 1 (Keller)."""
        return self.rng.random() < CPU_BLIND_CHANCE

    def halo_move(self, game: Game) -> Guess | None:
        """Next Halo move: a guess, or None to bank."""
        halo = game.minigame
        if halo is None or halo.current_card is None:
            return None

        streak = halo.correct_guesses
        if streak > 0 and self.rng.random() < min(0.2 + streak * 0.15, 0.8):
            return None

        value = halo.current_card.value
        if value <= 4:
            return Guess.HIGHER
        if value >= 12:
            return Guess.LOWER
        if value == 8 and self.rng.random() < 0.1:
            return Guess.SAME
        return Guess.HIGHER if self.rng.random() < 0.5 else Guess.LOWER

    def brucie_move(self, game: Game) -> Guess | None:
        """Next Brucie Bonus move: a guess, or None to bank. Never skips."""
        brucie = game.minigame
        if brucie is None or brucie.current_card is None:
            return None

        streak = brucie.correct_guesses
        if streak > 0 and self.rng.random() < streak * 0.35:
            return None
        return Guess.HIGHER if brucie.current_card.value <= 7 else Guess.LOWER

    def __str__(self) -> str:
        """Return string representation."""
        return f"{self.__class__.__name__} ({self.difficulty.value})"
