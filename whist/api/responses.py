"""Response models and DTOs."""

from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from whist.constants import MAX_CPU_PLAYERS, MAX_NAME_LENGTH
from whist.models.card import Card
from whist.models.enums import Command, ErrorCode, GameFormat, Guess, Rank, Suit
from whist.models.game import Game

__all__ = [
    "CallPayload",
    "CardPayload",
    "Command",
    "CreateGameRequest",
    "CreateGameResponse",
    "CreateSinglePlayerRequest",
    "ErrorCode",
    "ErrorResponse",
    "GameInfo",
    "GuessPayload",
    "PlayCardPayload",
    "PlayerInfo",
    "RestoreGameRequest",
    "ServerMessage",
    "SpeedPayload",
    "VotePayload",
]


PlayerName = Annotated[str, Field(min_length=1, max_length=MAX_NAME_LENGTH)]


class PlayerInfo(BaseModel):
    """Player information for responses."""

    id: str
    name: str
    score: int
    is_cpu: bool
    is_connected: bool


class GameInfo(BaseModel):
    """Game information response."""

    id: str
    game_format: GameFormat
    phase: str
    is_single_player: bool
    current_round: int
    players: list[PlayerInfo]

    @classmethod
    def from_game(cls, game: Game) -> "GameInfo":
        return cls(
            id=game.id,
            game_format=game.game_format,
            phase=game.phase.value,
            is_single_player=game.is_single_player,
            current_round=game.current_round,
            players=[
                PlayerInfo(
                    id=p.id,
                    name=p.name,
                    score=p.score,
                    is_cpu=p.is_cpu,
                    is_connected=p.is_connected,
                )
                for p in game.players
            ],
        )


@dataclass
class ServerMessage:
    """Message sent from server to clients via WebSocket.

    Attributes:
        command: Command type
        game_id: Game identifier
        content: Message payload (varies by command)
        receiver_id: Specific player to receive (empty = broadcast)
        excluded_id: Player to exclude from broadcast

    """

    command: Command
    game_id: str
    content: Any
    receiver_id: str = ""
    excluded_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "command": self.command.value,
            "content": self.content,
        }


class CreateGameRequest(BaseModel):
    """Request to open a multiplayer lobby."""

    player_name: PlayerName
    game_format: GameFormat = GameFormat.TRADITIONAL


class CreateSinglePlayerRequest(CreateGameRequest):
    """Request to start a game against CPU players."""

    cpu_count: int = Field(default=3, ge=1, le=MAX_CPU_PLAYERS)


class CreateGameResponse(BaseModel):
    """Response for game creation."""

    game_id: str
    player_id: str
    message: str = "Game created successfully"


class RestoreGameRequest(BaseModel):
    """Request to continue a saved game."""

    save_id: str
    player_name: PlayerName


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: str | None = None


# Inbound WebSocket payloads


class CallPayload(BaseModel):
    call: int


class CardPayload(BaseModel):
    suit: Suit
    rank: Rank

    def to_card(self) -> Card:
        return Card(self.suit, self.rank)


class PlayCardPayload(BaseModel):
    card: CardPayload


class SpeedPayload(BaseModel):
    speed: Literal[0.25, 0.5, 1.0, 2.0]


class GuessPayload(BaseModel):
    guess: Guess


class VotePayload(BaseModel):
    player_id: str
    vote: bool = True
