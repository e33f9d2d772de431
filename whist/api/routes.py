"""API routes."""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request, WebSocket

from whist.api.responses import (
    CreateGameRequest,
    CreateGameResponse,
    CreateSinglePlayerRequest,
    GameInfo,
    RestoreGameRequest,
    ServerMessage,
)
from whist.api.websocket import ConnectionManager
from whist.constants import MAX_PLAYERS
from whist.models.enums import Command, ErrorCode, GameFormat, GamePhase
from whist.models.errors import GameError
from whist.models.game import Game
from whist.models.player import Player
from whist.models.round_config import ROUND_CONFIGS

logger = logging.getLogger(__name__)

router = APIRouter()

# WebSocket close codes
CLOSE_NOT_FOUND = 4004
CLOSE_IN_PROGRESS = 4005
CLOSE_FULL = 4003
CLOSE_REJECTED = 4000

_CLOSE_CODES = {
    ErrorCode.NOT_FOUND: CLOSE_NOT_FOUND,
    ErrorCode.INVALID_TRANSITION: CLOSE_IN_PROGRESS,
    ErrorCode.CAPACITY_EXCEEDED: CLOSE_FULL,
}


def http_error(error: GameError) -> HTTPException:
    """Map a rejected action to an HTTP error."""
    status_code = 404 if error.code == ErrorCode.NOT_FOUND else 400
    return HTTPException(
        status_code=status_code, detail={"error": error.message, "code": error.code.value}
    )


@router.post("/games")
async def create_game(body: CreateGameRequest, request: Request) -> CreateGameResponse:
    """Open a multiplayer lobby hosted by the caller."""
    manager: ConnectionManager = request.app.state.manager
    game, host = manager.registry.create_game(body.player_name, body.game_format)
    logger.info("Lobby %s opened by %s (%s)", game.id, host.name, game.game_format.value)
    return CreateGameResponse(game_id=game.id, player_id=host.id)


@router.post("/games/single-player")
async def create_single_player_game(
    body: CreateSinglePlayerRequest, request: Request
) -> CreateGameResponse:
    """Seat the caller against CPU players."""
    manager: ConnectionManager = request.app.state.manager
    try:
        game, human = manager.registry.create_single_player_game(
            body.player_name, body.game_format, body.cpu_count
        )
    except GameError as e:
        raise http_error(e) from e
    return CreateGameResponse(game_id=game.id, player_id=human.id)


@router.post("/games/restore")
async def restore_game(body: RestoreGameRequest, request: Request) -> CreateGameResponse:
    """Continue a saved game under a new game id."""
    manager: ConnectionManager = request.app.state.manager
    repository = request.app.state.game_repository
    if repository is None:
        raise HTTPException(status_code=503, detail="Saved games are not available")

    found = await repository.find_by_id(body.save_id)
    if found is None:
        raise HTTPException(status_code=404, detail="Save not found")
    game, _owner = found

    try:
        game, human = manager.registry.restore_saved_game(game, body.player_name)
    except GameError as e:
        raise http_error(e) from e
    return CreateGameResponse(
        game_id=game.id, player_id=human.id, message="Game restored successfully"
    )


@router.get("/saves/{player_name}")
async def list_saves(player_name: str, request: Request) -> dict[str, Any]:
    """Saved games of a player, newest first."""
    repository = request.app.state.game_repository
    saves = await repository.list_for_player(player_name) if repository else []
    return {"saves": saves, "count": len(saves)}


@router.delete("/saves/{save_id}")
async def delete_save(save_id: str, request: Request) -> dict[str, Any]:
    """Remove a saved game."""
    repository = request.app.state.game_repository
    if repository is None:
        raise HTTPException(status_code=503, detail="Saved games are not available")
    if not await repository.delete(save_id):
        raise HTTPException(status_code=404, detail="Save not found")
    logger.info("Save %s deleted", save_id)
    return {"deleted": save_id}


@router.get("/highscores/{game_format}")
async def get_high_scores(game_format: GameFormat, request: Request) -> dict[str, Any]:
    """Top scores for one ruleset."""
    repository = request.app.state.high_score_repository
    scores = await repository.top(game_format.value) if repository else []
    return {"format": game_format.value, "scores": scores}


@router.get("/games/active")
async def get_active_games(request: Request) -> dict[str, Any]:
    """Get list of unfinished games.

    Returns:
        Games with player counts; lobbies can still be joined

    """
    manager: ConnectionManager = request.app.state.manager
    active_games = [
        {
            "game_id": game.id,
            "game_format": game.game_format.value,
            "phase": game.phase.value,
            "joinable": game.phase == GamePhase.LOBBY and len(game.players) < MAX_PLAYERS,
            "player_count": len(game.players),
            "max_players": MAX_PLAYERS,
            "player_names": [p.name for p in game.humans][:3],
            "cpu_count": sum(1 for p in game.players if p.is_cpu),
            "current_round": game.current_round,
        }
        for game in manager.registry.active_games()
    ]

    # Sort joinable games first, then by player count descending
    active_games.sort(key=lambda g: (not g["joinable"], -g["player_count"]))

    return {"games": active_games, "count": len(active_games)}


@router.get("/games/rounds")
async def get_rounds() -> dict[str, Any]:
    """The fixed 13-round schedule."""
    return {
        "rounds": [
            {
                "round_number": config.round_number,
                "card_count": config.card_count,
                "trump": config.trump.value if config.trump else None,
                "double_points": config.double_points,
            }
            for config in ROUND_CONFIGS
        ]
    }


@router.get("/games/{game_id}")
async def get_game(game_id: str, request: Request) -> GameInfo:
    """Get public game information.

    Args:
        game_id: Game identifier
        request: Incoming request

    Returns:
        Game summary without any hands

    """
    manager: ConnectionManager = request.app.state.manager
    game = manager.registry.get_game(game_id)

    if not game:
        raise HTTPException(status_code=404, detail="Game not found")

    return GameInfo.from_game(game)


@router.websocket("/games/{game_id}/ws")
async def game_socket(
    websocket: WebSocket,
    game_id: str,
    player_id: str | None = Query(default=None, description="Seat to reconnect to"),
    name: str | None = Query(default=None, description="Name to join the lobby with"),
) -> None:
    """WebSocket endpoint to join or rejoin a game.

    Args:
        websocket: WebSocket connection
        game_id: Game to join
        player_id: Existing player identifier (host, reconnect or restore)
        name: Display name for a new player

    """
    manager: ConnectionManager = websocket.app.state.manager
    # Must accept before closing to avoid HTTP 403
    await websocket.accept()

    game = manager.registry.get_game(game_id)
    if not game:
        await websocket.close(code=CLOSE_NOT_FOUND, reason="Game not found")
        return

    player = await _seat_for(manager, websocket, game, player_id, name)
    if player is None:
        return

    await manager.connect(websocket, game.id, player.id)
    await manager.send_personal_message(
        ServerMessage(
            command=Command.INIT,
            game_id=game.id,
            content={"game_id": game.id, "player_id": player.id, "name": player.name},
        ),
        game.id,
        player.id,
    )
    await manager.game_handler.player_joined(game, player.id)

    await manager.handle_player_message(websocket, game.id, player.id)


async def _seat_for(
    manager: ConnectionManager,
    websocket: WebSocket,
    game: Game,
    player_id: str | None,
    name: str | None,
) -> Player | None:
    """Find the returning player or seat a new one; close the socket on failure."""
    if player_id:
        player = game.get_player(player_id)
        if player is None or player.is_cpu:
            await websocket.close(code=CLOSE_NOT_FOUND, reason="Player not found")
            return None
        return manager.registry.reconnect_player(game.id, player_id)

    if not name:
        await websocket.close(code=CLOSE_REJECTED, reason="A name is required to join")
        return None

    try:
        return manager.registry.join_game(game.id, name)
    except GameError as e:
        await websocket.close(code=_CLOSE_CODES.get(e.code, CLOSE_REJECTED), reason=e.message)
        return None
