"""Trick model and winner resolution."""

from dataclasses import dataclass, field

from whist.constants import TRUMP_VALUE_OFFSET
from whist.models.card import Card
from whist.models.enums import Suit
from whist.models.errors import GameInvariantError


@dataclass
class PlayedCard:
    """A card played into a trick by a player."""

    player_id: str
    card: Card


@dataclass
class Trick:
    """A single trick within a round.

    Attributes:
        cards: Cards played so far, in play order
        lead_suit: Suit of the first card, set when it is played
        winner_id: Set once every player has played

    """

    cards: list[PlayedCard] = field(default_factory=list)
    lead_suit: Suit | None = None
    winner_id: str | None = None

    def add_card(self, player_id: str, card: Card) -> None:
        """Append a card; the first card fixes the lead suit."""
        self.cards.append(PlayedCard(player_id, card))
        if self.lead_suit is None:
            self.lead_suit = card.suit

    def has_player_played(self, player_id: str) -> bool:
        """Check if a player already played into this trick."""
        return any(pc.player_id == player_id for pc in self.cards)

    def best_value(self, trump: Suit | None) -> int:
        """Highest trick value on the table (0 for an empty trick)."""
        if self.lead_suit is None:
            return 0
        return max((trick_value(pc.card, self.lead_suit, trump) for pc in self.cards), default=0)

    def is_complete(self, player_count: int) -> bool:
        return len(self.cards) == player_count


def trick_value(card: Card, lead_suit: Suit, trump: Suit | None) -> int:
    """Value of a card within a trick.

    Trump cards score 100 + rank so they beat every other card, cards of
    the lead suit score their rank, and anything else scores 0.
    """
    if trump is not None and card.suit == trump:
        return TRUMP_VALUE_OFFSET + card.value
    if card.suit == lead_suit:
        return card.value
    return 0


def resolve_trick(cards: list[PlayedCard], lead_suit: Suit, trump: Suit | None) -> str:
    """Determine who won a trick.

    Args:
        cards: Played cards in play order
        lead_suit: Suit of the first card
        trump: Trump suit for the round, or None

    Returns:
        ID of the winning player

    Raises:
        GameInvariantError: If the input could not have come from a legal trick

    """
    if not cards:
        raise GameInvariantError("Cannot resolve an empty trick")
    if cards[0].card.suit != lead_suit:
        raise GameInvariantError(
            f"Lead suit {lead_suit.value} does not match first card {cards[0].card}"
        )
    if len({pc.card for pc in cards}) != len(cards):
        raise GameInvariantError("Duplicate card in trick")

    values = [trick_value(pc.card, lead_suit, trump) for pc in cards]
    best = max(values)
    if values.count(best) > 1:
        raise GameInvariantError(f"Tied winning value {best} in trick")
    return cards[values.index(best)].player_id


def legal_cards(hand: list[Card], lead_suit: Suit | None) -> list[Card]:
    """Cards a player may play: the lead suit if they hold it, else anything."""
    if lead_suit is None:
        return list(hand)
    following = [c for c in hand if c.suit == lead_suit]
    return following or list(hand)
