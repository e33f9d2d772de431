"""Round history records."""

from dataclasses import dataclass, field


@dataclass
class PlayerRoundResult:
    """How one player did in a finished round."""

    player_id: str
    player_name: str
    call: int
    tricks_won: int
    round_score: int

    @property
    def hit(self) -> bool:
        return self.call == self.tricks_won


@dataclass
class RoundResult:
    """Scores of a finished round, appended to the game's history."""

    round_number: int
    player_results: list[PlayerRoundResult] = field(default_factory=list)

    def score_for(self, player_id: str) -> int:
        """Round score of a player (0 if they did not take part)."""
        for result in self.player_results:
            if result.player_id == player_id:
                return result.round_score
        return 0
