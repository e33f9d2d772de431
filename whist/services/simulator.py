"""Headless games between CPU players.

Drives a game from the lobby to the final scores with no pauses, using
the same public operations and autopilot as live games.
"""

import logging
import random
import uuid

from whist.bots.autopilot import Autopilot
from whist.bots.base_bot import BotDifficulty
from whist.constants import CPU_NAMES, MAX_PLAYERS, MIN_PLAYERS
from whist.models.enums import GameFormat, GamePhase
from whist.models.errors import GameInvariantError
from whist.models.game import Game, generate_game_id
from whist.models.player import Player

logger = logging.getLogger(__name__)

# Upper bound on automated steps; a full 7-player Keller game needs far fewer
MAX_STEPS = 10_000


def create_cpu_game(
    player_count: int = 4,
    game_format: GameFormat = GameFormat.TRADITIONAL,
    rng: random.Random | None = None,
) -> Game:
    """Create a lobby seated entirely with CPU players.

    Args:
        player_count: Number of players (2-7)
        game_format: Ruleset to play
        rng: Random source for the whole game

    Returns:
        Game in the lobby phase

    """
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        msg = f"Must have {MIN_PLAYERS}-{MAX_PLAYERS} players"
        raise ValueError(msg)

    rng = rng or random.Random()
    game = Game(id=generate_game_id(rng), game_format=game_format, rng=rng)
    names = ["Host", *CPU_NAMES]
    for name in names[:player_count]:
        game._seat(Player(id=str(uuid.UUID(int=rng.getrandbits(128))), name=name, is_cpu=True))
    return game


def play_out(game: Game, autopilot: Autopilot | None = None) -> Game:
    """Play a CPU-only game to the end.

    Host-only steps (start, next round, leaving a side game) are taken on
    behalf of seat 0; pacing gates are passed straight through.

    Args:
        game: Game in any phase whose remaining decisions belong to CPUs
        autopilot: Bot driver (a medium-difficulty one by default)

    Returns:
        The same game, now in the game_end phase

    Raises:
        GameInvariantError: If the game stops making progress

    """
    autopilot = autopilot or Autopilot(BotDifficulty.MEDIUM, game.rng)
    host = game.host
    if host is None:
        raise GameInvariantError("Cannot play out a game without players")

    for _ in range(MAX_STEPS):
        if game.phase == GamePhase.GAME_END:
            logger.info(
                "Game %s finished: %s",
                game.id,
                ", ".join(f"{p.name}={p.score}" for p in game.get_leaderboard()),
            )
            return game
        _step(game, autopilot, host.id)

    raise GameInvariantError(f"Game {game.id} made no progress in {MAX_STEPS} steps")


def _step(game: Game, autopilot: Autopilot, host_id: str) -> None:
    match game.phase:
        case GamePhase.LOBBY:
            game.start(host_id)
        case GamePhase.DETERMINING_DEALER:
            if game.dealer_contenders:
                game.deal_for_dealer()
            else:
                game.begin_first_round()
        case GamePhase.ROUND_END:
            logger.debug("Game %s round %d complete", game.id, game.current_round)
            game.next_round(host_id)
        case GamePhase.PLAYING if game.trick_pending:
            game.advance_after_trick()
        case GamePhase.HALO_MINIGAME | GamePhase.BRUCIE_BONUS if (
            game.minigame is not None and game.minigame.is_complete
        ):
            game.continue_after_minigame(host_id)
        case _:
            action = autopilot.next_action(game, acknowledge_results=True)
            if action is None:
                raise GameInvariantError(f"Game {game.id} is waiting on a human in {game.phase}")
            autopilot.apply(game, action)
