"""In-memory registry of live games.

Holds the one canonical ``Game`` per id plus a player -> game index so a
WebSocket connection can be routed without a search.
"""

import logging
import random
import uuid

from whist.models.enums import ErrorCode, GameFormat, GamePhase
from whist.models.errors import GameError
from whist.models.game import Game, generate_game_id
from whist.models.player import Player

logger = logging.getLogger(__name__)


def new_player_id() -> str:
    return str(uuid.uuid4())


class GameRegistry:
    """Live games keyed by id.

    Game ids are matched case-insensitively since players type them in.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self.games: dict[str, Game] = {}
        self.player_games: dict[str, str] = {}
        self._rng = rng

    def _game_rng(self) -> random.Random:
        # A seeded registry gives every game its own reproducible stream
        if self._rng is None:
            return random.Random()
        return random.Random(self._rng.getrandbits(64))

    def add_game(self, game: Game) -> Game:
        """Register a game, re-rolling its id on collision."""
        while game.id in self.games:
            game.id = generate_game_id(game.rng)
        self.games[game.id] = game
        for player in game.players:
            self.player_games[player.id] = game.id
        logger.info("Game %s registered (%d games live)", game.id, len(self.games))
        return game

    def create_game(self, host_name: str, game_format: GameFormat) -> tuple[Game, Player]:
        """Open a multiplayer lobby.

        Returns:
            The new game and its host player

        """
        game = Game.create(
            host_name, new_player_id(), game_format=game_format, rng=self._game_rng()
        )
        self.add_game(game)
        host = game.host
        assert host is not None
        return game, host

    def create_single_player_game(
        self, player_name: str, game_format: GameFormat, cpu_count: int
    ) -> tuple[Game, Player]:
        """Open a lobby for one human and ``cpu_count`` CPU players.

        Raises:
            GameError: CAPACITY_EXCEEDED when cpu_count is outside 1-6

        """
        if cpu_count < 1:
            raise GameError(ErrorCode.CAPACITY_EXCEEDED, "Single player needs at least 1 CPU")
        game = Game.create(
            player_name,
            new_player_id(),
            game_format=game_format,
            cpu_count=cpu_count,
            rng=self._game_rng(),
        )
        self.add_game(game)
        human = game.host
        assert human is not None
        return game, human

    def get_game(self, game_id: str) -> Game | None:
        return self.games.get(game_id.upper())

    def require_game(self, game_id: str) -> Game:
        game = self.get_game(game_id)
        if game is None:
            raise GameError(ErrorCode.NOT_FOUND, f"Game {game_id} not found")
        return game

    def get_game_for_player(self, player_id: str) -> Game | None:
        game_id = self.player_games.get(player_id)
        return self.games.get(game_id) if game_id else None

    def active_games(self) -> list[Game]:
        """Games still accepting or playing (not finished)."""
        return [g for g in self.games.values() if g.phase != GamePhase.GAME_END]

    def join_game(self, game_id: str, name: str) -> Player:
        """Seat a new player in a lobby.

        Raises:
            GameError: NOT_FOUND for an unknown game, otherwise as ``Game.add_player``

        """
        game = self.require_game(game_id)
        player = game.add_player(name, new_player_id())
        self.player_games[player.id] = game.id
        logger.info("Player %s joined game %s", name, game.id)
        return player

    def remove_player(self, game_id: str, player_id: str) -> bool:
        """Take a player out of a lobby, dropping the lobby once no human is left.

        Returns:
            True if the game itself was removed

        """
        game = self.get_game(game_id)
        if game is None or game.phase != GamePhase.LOBBY:
            return False
        game.remove_player(player_id)
        self.player_games.pop(player_id, None)
        if game.is_empty():
            self.remove_game(game.id)
            return True
        return False

    def reconnect_player(self, game_id: str, player_id: str) -> Player:
        """Mark a returning player as connected.

        Raises:
            GameError: NOT_FOUND if the game or player is unknown

        """
        game = self.require_game(game_id)
        game.set_connected(player_id, True)
        return game.require_player(player_id)

    def remove_game(self, game_id: str) -> Game | None:
        game = self.games.pop(game_id, None)
        if game is None:
            return None
        for player in game.players:
            if self.player_games.get(player.id) == game_id:
                del self.player_games[player.id]
        logger.info("Game %s removed", game_id)
        return game

    def restore_saved_game(self, game: Game, player_name: str) -> tuple[Game, Player]:
        """Bring a saved single-player game back under a fresh id.

        The human seat named ``player_name`` gets a new player id, so old
        connections can never reach the restored game.

        Raises:
            GameError: NOT_FOUND if no human in the save has that name

        """
        human = next(
            (p for p in game.humans if p.name.lower() == player_name.lower()),
            None,
        )
        if human is None:
            raise GameError(ErrorCode.NOT_FOUND, f"No player named {player_name} in this save")

        game.replace_player_id(human.id, new_player_id())
        game.id = generate_game_id(game.rng)
        for player in game.players:
            player.is_connected = player.is_cpu
        self.add_game(game)
        logger.info("Restored saved game for %s as %s", player_name, game.id)
        return game, human
