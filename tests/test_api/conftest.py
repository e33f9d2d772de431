"""Pytest configuration for API tests."""

import random
from unittest.mock import AsyncMock, MagicMock

import pytest

from whist.api.game_handler import GameHandler
from whist.bots.base_bot import BotDifficulty
from whist.constants import PacingDelays
from whist.models.enums import GameFormat
from whist.services.registry import GameRegistry


@pytest.fixture
def registry():
    return GameRegistry(rng=random.Random(3))


@pytest.fixture
def mock_manager(registry):
    """Create a mock connection manager in front of a real registry.

    Every human seat marked connected counts as an open connection.
    """
    manager = MagicMock()
    manager.registry = registry
    manager.broadcast_to_game = AsyncMock()
    manager.send_personal_message = AsyncMock()

    def connected_players(game_id):
        game = registry.get_game(game_id)
        if game is None:
            return []
        return [p.id for p in game.humans if p.is_connected]

    manager.connected_players = MagicMock(side_effect=connected_players)
    return manager


@pytest.fixture
def game_handler(mock_manager):
    """Create a game handler with mock manager and no pauses."""
    return GameHandler(
        mock_manager,
        pacing=PacingDelays.instant(),
        difficulty=BotDifficulty.MEDIUM,
        rng=random.Random(0),
        propagate_invariant_errors=True,
    )


@pytest.fixture
def single_player(registry):
    """A traditional lobby: one human host and three CPU players."""
    return registry.create_single_player_game("Ann", GameFormat.TRADITIONAL, 3)


@pytest.fixture
def lobby(registry):
    """A multiplayer lobby with two humans."""
    game, host = registry.create_game("Ann", GameFormat.TRADITIONAL)
    guest = registry.join_game(game.id, "Bo")
    return game, host, guest

