"""Game domain models."""

from whist.models.card import Card, new_deck, shuffle, sort_hand
from whist.models.enums import Command, ErrorCode, GameFormat, GamePhase, Guess, Rank, Suit
from whist.models.errors import GameError, GameInvariantError
from whist.models.game import Game
from whist.models.minigames import BrucieBonus, HaloMinigame
from whist.models.player import KellerPlayerState, Player
from whist.models.round import PlayerRoundResult, RoundResult
from whist.models.round_config import ROUND_CONFIGS, RoundConfig, config_for
from whist.models.trick import PlayedCard, Trick, resolve_trick

__all__ = [
    "ROUND_CONFIGS",
    "BrucieBonus",
    "Card",
    "Command",
    "ErrorCode",
    "Game",
    "GameError",
    "GameFormat",
    "GameInvariantError",
    "GamePhase",
    "Guess",
    "HaloMinigame",
    "KellerPlayerState",
    "PlayedCard",
    "Player",
    "PlayerRoundResult",
    "Rank",
    "RoundConfig",
    "RoundResult",
    "Suit",
    "Trick",
    "config_for",
    "new_deck",
    "resolve_trick",
    "shuffle",
    "sort_hand",
]
