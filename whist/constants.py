"""Game constants for calling whist."""

from dataclasses import dataclass

# Game limits
MAX_PLAYERS = 7
MIN_PLAYERS = 2
MAX_ROUNDS = 13
MAX_CPU_PLAYERS = 6
MAX_NAME_LENGTH = 20

CPU_NAMES = ("Alice", "Bob", "Charlie", "Diana", "Edward", "Fiona")

# Game id alphabet (no 0/O or 1/I)
GAME_ID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
GAME_ID_LENGTH = 6

# Speed multipliers a client may select
SPEED_SETTINGS = (0.25, 0.5, 1.0, 2.0)

# Scoring (actual logic in models/scoring.py)
EXACT_CALL_BONUS = 10
DOUBLE_POINTS_MULTIPLIER = 2

# Keller ruleset
BLIND_ROUNDS_REQUIRED = 3
BLIND_AUTO_TRIGGER_ROUND = 11
CONSECUTIVE_ZERO_LIMIT = 2
HALO_AFTER_ROUND = 7
HALO_SCORE_ROUND = 8
BRUCIE_AFTER_ROUND = 12
HALO_MAX_GUESSES = 7
BRUCIE_MAX_GUESSES = 3
BRUCIE_DEFAULT_MULTIPLIER = 2
BRUCIE_SKIP_MULTIPLIER = 2
BRUCIE_BUST_MULTIPLIER = 1

# CPU heuristics
CPU_HIGH_CARD_VALUE = 11
CPU_HIGH_CARD_WEIGHT = 0.7
CPU_TRUMP_WEIGHT = 0.5
CPU_BLIND_CHANCE = 0.3

# Trick values
TRUMP_VALUE_OFFSET = 100

# Publisher service
REDIS_PUBLISH_TIMEOUT = 5


@dataclass(frozen=True)
class PacingDelays:
    """Baseline pacing delays in seconds, before the per-game speed multiplier.

    Attributes:
        dealer_settle: Pause after the dealer is found, before round 1 is dealt
        dealer_tie: Pause before re-dealing to tied players
        cpu_think_min: Lower bound for a CPU call or lead
        cpu_think_max: Upper bound for a CPU call or lead
        cpu_follow_up: Pause between chained CPU plays in one trick
        trick_display: How long a completed trick stays on the table
        minigame_min: Lower bound for a CPU mini-game move
        minigame_max: Upper bound for a CPU mini-game move

    """

    dealer_settle: float = 3.0
    dealer_tie: float = 2.0
    cpu_think_min: float = 1.0
    cpu_think_max: float = 1.5
    cpu_follow_up: float = 0.5
    trick_display: float = 2.0
    minigame_min: float = 0.8
    minigame_max: float = 1.2

    @classmethod
    def instant(cls) -> "PacingDelays":
        """Pacing with every delay at zero (simulations and tests)."""
        return cls(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0)


DEFAULT_PACING = PacingDelays()
