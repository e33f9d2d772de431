"""Card model, deck construction and shuffling."""

import random
from dataclasses import dataclass
from typing import Any

from whist.constants import TRUMP_VALUE_OFFSET
from whist.models.enums import Rank, Suit

SUIT_ORDER = {suit: index for index, suit in enumerate(Suit)}


@dataclass(frozen=True)
class Card:
    """An immutable playing card.

    Attributes:
        suit: Card suit
        rank: Card rank (2..A)

    """

    suit: Suit
    rank: Rank

    @property
    def value(self) -> int:
        """Rank value, 2 low and ace 14."""
        return self.rank.value_number

    def to_dict(self) -> dict[str, str]:
        """Convert to a JSON-friendly dict."""
        return {"suit": self.suit.value, "rank": self.rank.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Card":
        """Build a card from ``{"suit": ..., "rank": ...}``."""
        return cls(Suit(data["suit"]), Rank(data["rank"]))

    def __str__(self) -> str:
        return f"{self.rank.value} of {self.suit.value}"


# Shown in place of cards a viewer may not see
PLACEHOLDER_CARD = Card(Suit.CLUBS, Rank.TWO)


def new_deck() -> list[Card]:
    """Return all 52 cards exactly once."""
    return [Card(suit, rank) for suit in Suit for rank in Rank]


def shuffle(deck: list[Card], rng: random.Random | None = None) -> list[Card]:
    """Return a Fisher-Yates shuffled copy of ``deck``.

    Args:
        deck: Cards to shuffle (left untouched)
        rng: Random source, defaults to a freshly seeded generator

    Returns:
        New list holding the same cards in random order

    """
    rng = rng or random.Random()
    shuffled = list(deck)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def sort_hand(cards: list[Card]) -> list[Card]:
    """Sort cards by suit (spades, hearts, diamonds, clubs), then ascending rank."""
    return sorted(cards, key=lambda c: (SUIT_ORDER[c.suit], c.value))


def random_card(rng: random.Random | None = None) -> Card:
    """Draw a uniformly random card, with replacement."""
    rng = rng or random.Random()
    return Card(rng.choice(list(Suit)), rng.choice(list(Rank)))


def card_strength(card: Card, trump: Suit | None) -> int:
    """Trump-weighted strength used by the CPU to rank its own cards."""
    if trump is not None and card.suit == trump:
        return TRUMP_VALUE_OFFSET + card.value
    return card.value
