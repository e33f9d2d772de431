"""Player model."""

from dataclasses import dataclass, field

from whist.constants import BLIND_ROUNDS_REQUIRED, BRUCIE_DEFAULT_MULTIPLIER
from whist.models.card import Card
from whist.models.enums import Suit


@dataclass
class KellerPlayerState:
    """Per-player bookkeeping for the Keller ruleset.

    Attributes:
        consecutive_zero_calls: Zero calls in a row (No3Z rule)
        blind_rounds_completed: Rounds played calling blind (3 are owed)
        is_in_blind_mode: Currently calling without seeing the hand
        blind_mode_started_round: Round blind mode began, if it has
        blind_mode_starts_next_round: Blind mode queued for the next deal
        made_round_one_blind_choice: Player chose or declined blind in round 1
        swap_used: The one-time card swap was used
        halo_score: Banked Halo result, added after round 8
        brucie_multiplier: Multiplier applied to the final round score

    """

    consecutive_zero_calls: int = 0
    blind_rounds_completed: int = 0
    is_in_blind_mode: bool = False
    blind_mode_started_round: int | None = None
    blind_mode_starts_next_round: bool = False
    made_round_one_blind_choice: bool = False
    swap_used: bool = False
    halo_score: int | None = None
    brucie_multiplier: int = BRUCIE_DEFAULT_MULTIPLIER

    @property
    def blind_rounds_remaining(self) -> int:
        return BLIND_ROUNDS_REQUIRED - self.blind_rounds_completed

    def record_call(self, call: int) -> None:
        """Track zero calls for the No3Z rule."""
        if call == 0:
            self.consecutive_zero_calls += 1
        else:
            self.consecutive_zero_calls = 0


@dataclass
class Player:
    """Represents a player in the game.

    Attributes:
        id: Unique player identifier
        name: Player's display name
        hand: Current cards, kept in suit-then-rank order
        call: Tricks called this round (None until the player calls)
        tricks_won: Tricks taken this round
        score: Running total
        is_dealer: Whether this player deals the current round
        is_connected: Whether player is currently connected
        is_cpu: Whether this is a computer player
        is_blind_calling: Calling this round without seeing the hand (Keller)
        cpu_controlled: Disconnected human whose seat the table handed to a CPU
        keller: Keller bookkeeping, None in the traditional ruleset

    """

    id: str
    name: str
    hand: list[Card] = field(default_factory=list)
    call: int | None = None
    tricks_won: int = 0
    score: int = 0
    is_dealer: bool = False
    is_connected: bool = True
    is_cpu: bool = False
    is_blind_calling: bool = False
    cpu_controlled: bool = False
    keller: KellerPlayerState | None = None

    @property
    def is_automated(self) -> bool:
        """Whether a bot makes this seat's moves."""
        return self.is_cpu or self.cpu_controlled

    def reset_round(self) -> None:
        """Reset player state for a new round."""
        self.hand = []
        self.call = None
        self.tricks_won = 0
        self.is_blind_calling = False

    def has_card(self, card: Card) -> bool:
        """Check if player has a card in their hand."""
        return card in self.hand

    def remove_card(self, card: Card) -> None:
        """Remove a card from player's hand."""
        self.hand.remove(card)

    def has_suit(self, suit: Suit) -> bool:
        return any(c.suit == suit for c in self.hand)

    def made_call(self) -> bool:
        """Check if player has called this round."""
        return self.call is not None

    def tricks_needed(self) -> int:
        """Tricks still required to hit the call."""
        return (self.call or 0) - self.tricks_won

    def __str__(self) -> str:
        cpu_str = " (CPU)" if self.is_cpu else ""
        return f"{self.name}{cpu_str} - Score: {self.score}"
