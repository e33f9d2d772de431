"""Rule-based bot with heuristic calling and card play."""

import math
import random
from collections import Counter

from whist.bots.base_bot import BaseBot, BotDifficulty
from whist.constants import CPU_HIGH_CARD_VALUE, CPU_HIGH_CARD_WEIGHT, CPU_TRUMP_WEIGHT
from whist.models.card import Card, card_strength
from whist.models.enums import Rank
from whist.models.game import Game
from whist.models.trick import trick_value

# Trump card win estimates for the hard estimator
TRUMP_WIN_ESTIMATES = {Rank.ACE: 0.95, Rank.KING: 0.85, Rank.QUEEN: 0.70}
TRUMP_HONOUR_ESTIMATE = 0.50
LOW_TRUMP_ESTIMATE = 0.30

# Off-suit win estimates, scaled down as the table grows
OFF_SUIT_WIN_ESTIMATES = {Rank.ACE: 0.80, Rank.KING: 0.55, Rank.QUEEN: 0.35}
OFF_SUIT_HONOUR_ESTIMATE = 0.15
HONOUR_VALUE = 10
SHORT_SUIT_PENALTY = 0.15

NOISE_BY_DIFFICULTY = {
    BotDifficulty.EASY: 1.0,
    BotDifficulty.MEDIUM: 0.5,
}


class RuleBasedBot(BaseBot):
    """Bot that uses hand-strength heuristics.

    Calling Strategy:
    - Easy/medium: 0.7 per card J or better plus 0.5 per trump, with
      uniform noise (wider on easy), rounded and clamped
    - Hard: per-card win estimates that account for trump rank, table
      size and short suits, with +/-10% variance

    Playing Strategy:
    - Leading: strongest card when tricks are still needed, else weakest
    - Following: when tricks are needed, the first card in hand order that
      beats the table (not necessarily the cheapest winner); otherwise the
      weakest card
    """

    def __init__(
        self,
        player_id: str,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize rule-based bot."""
        super().__init__(player_id, difficulty, rng)

    def make_call(self, game: Game) -> int:
        """Estimate tricks from the hand and settle on a legal call.

        Args:
            game: Current game state

        Returns:
            Call for this round

        """
        hand = self.player(game).hand
        if self.difficulty == BotDifficulty.HARD:
            estimate = self.estimate_tricks_detailed(hand, game)
        else:
            estimate = self.estimate_tricks(hand, game)
            spread = NOISE_BY_DIFFICULTY.get(self.difficulty, 0.5)
            estimate += self.rng.uniform(-spread, spread)

        call = max(0, min(game.card_count, round(estimate)))
        return self.settle_call(game, call, estimate)

    @staticmethod
    def estimate_tricks(hand: list[Card], game: Game) -> float:
        """Simple hand strength: high cards and trumps."""
        expected = 0.0
        for card in hand:
            if card.value >= CPU_HIGH_CARD_VALUE:
                expected += CPU_HIGH_CARD_WEIGHT
            if game.trump is not None and card.suit == game.trump:
                expected += CPU_TRUMP_WEIGHT
        return expected

    def estimate_tricks_detailed(self, hand: list[Card], game: Game) -> float:
        """Suit-aware hand strength used on hard difficulty."""
        trump = game.trump
        suit_counts = Counter(card.suit for card in hand)
        table_factor = math.sqrt(len(game.players) / 2)

        expected = 0.0
        for card in hand:
            if trump is not None and card.suit == trump:
                if card.rank in TRUMP_WIN_ESTIMATES:
                    expected += TRUMP_WIN_ESTIMATES[card.rank]
                elif card.value >= HONOUR_VALUE:
                    expected += TRUMP_HONOUR_ESTIMATE
                else:
                    expected += LOW_TRUMP_ESTIMATE
                continue

            if card.rank in OFF_SUIT_WIN_ESTIMATES:
                expected += OFF_SUIT_WIN_ESTIMATES[card.rank] / table_factor
            elif card.value >= HONOUR_VALUE:
                expected += OFF_SUIT_HONOUR_ESTIMATE / table_factor

            # Short-suited honours tend to get trumped
            if trump is not None and suit_counts[card.suit] <= 2 and card.value >= 12:
                expected -= SHORT_SUIT_PENALTY

        return expected * (1 + self.rng.uniform(-0.1, 0.1))

    def pick_card(self, game: Game) -> Card:
        """Pick a card for the current trick.

        Args:
            game: Current game state

        Returns:
            Card to play

        """
        playable = self.legal_cards(game)
        if not playable:
            msg = "No cards to play"
            raise ValueError(msg)

        trump = game.trump
        trick = game.current_trick
        needs_tricks = self.player(game).tricks_needed() > 0

        if trick.lead_suit is None:
            if needs_tricks:
                return max(playable, key=lambda c: card_strength(c, trump))
            return min(playable, key=lambda c: card_strength(c, trump))

        if needs_tricks:
            best = trick.best_value(trump)
            for card in playable:
                if trick_value(card, trick.lead_suit, trump) > best:
                    return card

        return min(playable, key=lambda c: card_strength(c, trump))
