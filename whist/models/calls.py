"""Call (bid) validation."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from whist.constants import CONSECUTIVE_ZERO_LIMIT
from whist.models.enums import ErrorCode
from whist.models.errors import GameError

if TYPE_CHECKING:
    from whist.models.game import Game
    from whist.models.player import Player


@dataclass(frozen=True)
class Rejection:
    """Why a proposed call is not allowed."""

    code: ErrorCode
    message: str

    def to_error(self) -> GameError:
        return GameError(self.code, self.message)


def forbidden_call(game: "Game", player: "Player") -> int | None:
    """The value the dealer may not call, or None for everyone else.

    The dealer calls last, so the other calls are all known: the dealer
    may not bring the total up to the number of cards dealt.
    """
    if not player.is_dealer:
        return None
    others = sum(p.call or 0 for p in game.players if p.id != player.id)
    return game.card_count - others


def _zero_call_blocked(game: "Game", player: "Player", forbidden: int | None) -> bool:
    keller = player.keller
    if keller is None or keller.consecutive_zero_calls < CONSECUTIVE_ZERO_LIMIT:
        return False
    # A dealer left with only 0 and the forbidden value must be allowed to call 0
    alternatives = [v for v in range(1, game.card_count + 1) if v != forbidden]
    return bool(alternatives)


def validate_call(game: "Game", player: "Player", call: int) -> Rejection | None:
    """Check a proposed call without changing any state.

    Args:
        game: Game the call is made in
        player: Player making the call
        call: Proposed number of tricks

    Returns:
        None if the call is legal, else the first rule it breaks

    """
    if not 0 <= call <= game.card_count:
        return Rejection(
            ErrorCode.OUT_OF_RANGE, f"Call must be between 0 and {game.card_count}"
        )

    current = game.current_player
    if current is None or current.id != player.id:
        return Rejection(ErrorCode.NOT_YOUR_TURN, "It's not your turn to call")

    forbidden = forbidden_call(game, player)
    if forbidden is not None and call == forbidden:
        return Rejection(
            ErrorCode.DEALER_RESTRICTION,
            f"As dealer you cannot call {forbidden} (total would equal card count)",
        )

    if call == 0 and _zero_call_blocked(game, player, forbidden):
        return Rejection(
            ErrorCode.CONSECUTIVE_ZERO_RESTRICTION, "Cannot call 0 three times in a row"
        )

    return None


def legal_calls(game: "Game", player: "Player") -> list[int]:
    """All values the player could call right now."""
    return [v for v in range(game.card_count + 1) if validate_call(game, player, v) is None]
