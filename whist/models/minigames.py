"""Keller side games played between rounds.

Both games visit every player once, in seat order. On their turn a player
sees a card and guesses whether the next one is higher or lower, building
a streak they can bank at any time. A wrong guess busts them. Every reveal
is followed by a pause until a client acknowledges the result, so result
screens can be shown before the game moves on.

* Halo (after round 7) also allows guessing "same" and scores the streak
  squared, up to 7 correct guesses (49 points). The score is added after
  round 8.
* Brucie Bonus (after round 12) caps the streak at 3 and produces the
  multiplier for the final round: bank for streak + 2 (at most 3), skip
  before guessing for 2, bust for 1.
"""

import random
from dataclasses import dataclass, field
from typing import ClassVar

from whist.constants import (
    BRUCIE_BUST_MULTIPLIER,
    BRUCIE_MAX_GUESSES,
    BRUCIE_SKIP_MULTIPLIER,
    HALO_MAX_GUESSES,
)
from whist.models.card import Card, random_card
from whist.models.enums import ErrorCode, Guess
from whist.models.errors import GameError


@dataclass
class RevealResult:
    """Outcome of one move, shown until acknowledged.

    ``final_score`` is None while the player's turn continues.
    """

    player_id: str
    player_name: str
    action: str
    previous_card: Card
    new_card: Card | None
    was_correct: bool | None
    correct_guesses: int
    final_score: int | None


@dataclass
class MinigameResult:
    """A player's finished side-game result (points or multiplier)."""

    player_id: str
    value: int


@dataclass
class RevealGame:
    """Shared higher/lower streak mechanics."""

    player_ids: list[str]
    current_player_id: str | None = None
    current_card: Card | None = None
    correct_guesses: int = 0
    is_complete: bool = False
    results: list[MinigameResult] = field(default_factory=list)
    last_result: RevealResult | None = None
    waiting_for_continue: bool = False
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    kind: ClassVar[str] = ""
    allowed_guesses: ClassVar[frozenset[Guess]] = frozenset(Guess)
    max_guesses: ClassVar[int] = 0

    def __post_init__(self) -> None:
        if self.current_player_id is None and not self.is_complete and self.player_ids:
            self.current_player_id = self.player_ids[0]
            self.current_card = random_card(self.rng)

    # Scoring rules supplied by each game
    def bust_value(self) -> int:
        raise NotImplementedError

    def max_value(self) -> int:
        raise NotImplementedError

    def bank_value(self) -> int:
        raise NotImplementedError

    def _check_turn(self, player_id: str) -> None:
        if self.is_complete or self.current_card is None:
            raise GameError(ErrorCode.INVALID_STATE, "Everyone has already played")
        if self.current_player_id != player_id:
            raise GameError(ErrorCode.NOT_YOUR_TURN, "It's not your turn")
        if self.waiting_for_continue:
            raise GameError(ErrorCode.INVALID_STATE, "Waiting for the last result to be seen")

    def guess(self, player_id: str, player_name: str, guess: Guess) -> RevealResult:
        """Guess the next card relative to the current one."""
        self._check_turn(player_id)
        if guess not in self.allowed_guesses:
            raise GameError(ErrorCode.INVALID_STATE, f"Cannot guess {guess.value} here")

        previous = self.current_card
        assert previous is not None
        new_card = random_card(self.rng)
        correct = (
            (guess == Guess.HIGHER and new_card.value > previous.value)
            or (guess == Guess.LOWER and new_card.value < previous.value)
            or (guess == Guess.SAME and new_card.value == previous.value)
        )

        final_score: int | None
        if correct:
            self.correct_guesses += 1
            self.current_card = new_card
            final_score = self.max_value() if self.correct_guesses >= self.max_guesses else None
        else:
            final_score = self.bust_value()

        return self._show(
            RevealResult(
                player_id=player_id,
                player_name=player_name,
                action=guess.value,
                previous_card=previous,
                new_card=new_card,
                was_correct=correct,
                correct_guesses=self.correct_guesses,
                final_score=final_score,
            )
        )

    def bank(self, player_id: str, player_name: str) -> RevealResult:
        """Lock in the current streak and end the turn."""
        self._check_turn(player_id)
        assert self.current_card is not None
        return self._show(
            RevealResult(
                player_id=player_id,
                player_name=player_name,
                action="bank",
                previous_card=self.current_card,
                new_card=None,
                was_correct=None,
                correct_guesses=self.correct_guesses,
                final_score=self.bank_value(),
            )
        )

    def _show(self, result: RevealResult) -> RevealResult:
        self.last_result = result
        self.waiting_for_continue = True
        return result

    def acknowledge(self) -> MinigameResult | None:
        """Clear the shown result and move on.

        Returns:
            The finished result if the acting player's turn ended, else None

        """
        if not self.waiting_for_continue or self.last_result is None:
            raise GameError(ErrorCode.INVALID_STATE, "Nothing to acknowledge")

        result = self.last_result
        self.last_result = None
        self.waiting_for_continue = False
        if result.final_score is None:
            return None

        finished = MinigameResult(result.player_id, result.final_score)
        self.results.append(finished)
        self._advance(result.player_id)
        return finished

    def _advance(self, player_id: str) -> None:
        next_index = self.player_ids.index(player_id) + 1
        if next_index >= len(self.player_ids):
            self.is_complete = True
            self.current_player_id = None
            self.current_card = None
            return
        self.current_player_id = self.player_ids[next_index]
        self.current_card = random_card(self.rng)
        self.correct_guesses = 0


@dataclass
class HaloMinigame(RevealGame):
    """Higher/lower/same, scoring the streak squared."""

    kind: ClassVar[str] = "halo"
    allowed_guesses: ClassVar[frozenset[Guess]] = frozenset(Guess)
    max_guesses: ClassVar[int] = HALO_MAX_GUESSES

    def bust_value(self) -> int:
        return 0

    def max_value(self) -> int:
        return HALO_MAX_GUESSES**2

    def bank_value(self) -> int:
        return self.correct_guesses**2


@dataclass
class BrucieBonus(RevealGame):
    """Higher/lower for the final round multiplier; equal ranks lose."""

    kind: ClassVar[str] = "brucie"
    allowed_guesses: ClassVar[frozenset[Guess]] = frozenset({Guess.HIGHER, Guess.LOWER})
    max_guesses: ClassVar[int] = BRUCIE_MAX_GUESSES

    def bust_value(self) -> int:
        return BRUCIE_BUST_MULTIPLIER

    def max_value(self) -> int:
        return BRUCIE_MAX_GUESSES

    def bank_value(self) -> int:
        return min(self.correct_guesses + 2, BRUCIE_MAX_GUESSES)

    def skip(self, player_id: str, player_name: str) -> RevealResult:
        """Take the guaranteed multiplier without guessing."""
        self._check_turn(player_id)
        if self.correct_guesses > 0:
            raise GameError(ErrorCode.INVALID_STATE, "Can only skip before guessing")
        assert self.current_card is not None
        return self._show(
            RevealResult(
                player_id=player_id,
                player_name=player_name,
                action="skip",
                previous_card=self.current_card,
                new_card=None,
                was_correct=None,
                correct_guesses=0,
                final_score=BRUCIE_SKIP_MULTIPLIER,
            )
        )


Minigame = HaloMinigame | BrucieBonus
