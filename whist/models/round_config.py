"""Static per-round rules: card count, trump suit and double scoring."""

from dataclasses import dataclass

from whist.models.enums import ErrorCode, Suit
from whist.models.errors import GameError


@dataclass(frozen=True)
class RoundConfig:
    """Rules for one of the 13 rounds."""

    round_number: int
    card_count: int
    trump: Suit | None
    double_points: bool = False


ROUND_CONFIGS: tuple[RoundConfig, ...] = (
    RoundConfig(1, 7, Suit.CLUBS),
    RoundConfig(2, 6, Suit.DIAMONDS),
    RoundConfig(3, 5, Suit.HEARTS),
    RoundConfig(4, 4, Suit.SPADES),
    RoundConfig(5, 3, None),
    RoundConfig(6, 2, Suit.CLUBS),
    RoundConfig(7, 1, Suit.DIAMONDS),
    RoundConfig(8, 2, Suit.HEARTS),
    RoundConfig(9, 3, Suit.SPADES),
    RoundConfig(10, 4, None),
    RoundConfig(11, 5, Suit.CLUBS),
    RoundConfig(12, 6, Suit.DIAMONDS),
    RoundConfig(13, 7, Suit.HEARTS, double_points=True),
)


def config_for(round_number: int) -> RoundConfig:
    """Look up the rules for a round.

    Raises:
        GameError: OUT_OF_RANGE when ``round_number`` is not in 1..13

    """
    if not 1 <= round_number <= len(ROUND_CONFIGS):
        raise GameError(ErrorCode.OUT_OF_RANGE, f"No round {round_number}")
    return ROUND_CONFIGS[round_number - 1]
