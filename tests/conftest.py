"""Shared fixtures: small deterministic games."""

import random
from collections.abc import Callable

import pytest

from whist.models.enums import GameFormat, GamePhase
from whist.models.game import Game
from whist.models.player import Player

GameFactory = Callable[..., Game]


@pytest.fixture
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def make_game() -> GameFactory:
    """Build a lobby with ``players`` seats (ids p0, p1, ...), seeded."""

    def _make(
        players: int = 4,
        game_format: GameFormat = GameFormat.TRADITIONAL,
        seed: int = 7,
        cpu_seats: tuple[int, ...] = (),
    ) -> Game:
        game = Game(id="TEST01", game_format=game_format, rng=random.Random(seed))
        for i in range(players):
            game._seat(Player(id=f"p{i}", name=f"Player {i}", is_cpu=i in cpu_seats))
        return game

    return _make


@pytest.fixture
def deal_round() -> Callable[[Game, int], Game]:
    """Skip the dealer draw: seat ``dealer`` deals and round 1 starts."""

    def _deal(game: Game, dealer: int = 3) -> Game:
        game.phase = GamePhase.DETERMINING_DEALER
        game._set_dealer(dealer)
        game.begin_first_round()
        return game

    return _deal
