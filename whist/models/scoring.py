"""Round scoring."""

from whist.constants import DOUBLE_POINTS_MULTIPLIER, EXACT_CALL_BONUS


def score_round(
    call: int, tricks_won: int, *, double_points: bool = False, multiplier: int = 1
) -> int:
    """Score one player's round.

    Hitting the call exactly earns 10 plus the tricks won, over-calling
    earns just the tricks won, and under-calling earns nothing.

    Args:
        call: Number of tricks the player called
        tricks_won: Tricks the player actually took
        double_points: Whether the round scores double
        multiplier: Extra multiplier (Brucie Bonus in the final Keller round)

    Returns:
        Points for the round (never negative)

    """
    if tricks_won == call:
        score = EXACT_CALL_BONUS + tricks_won
    elif tricks_won > call:
        score = tricks_won
    else:
        score = 0

    if double_points:
        score *= DOUBLE_POINTS_MULTIPLIER
    return score * multiplier
