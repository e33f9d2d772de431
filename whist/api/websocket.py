"""WebSocket connection manager and hub."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from fastapi import WebSocket, WebSocketDisconnect

from whist.api.game_handler import GameHandler
from whist.api.responses import Command, ErrorCode, ServerMessage

if TYPE_CHECKING:
    from whist.services.registry import GameRegistry

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections for games.

    Handles:
    - Player connections per game
    - Message delivery to one player or a whole table
    - Connection lifecycle
    """

    def __init__(self, registry: GameRegistry) -> None:
        """Initialize the connection manager."""
        # game_id -> player_id -> WebSocket
        self.active_connections: dict[str, dict[str, WebSocket]] = {}
        self.registry = registry
        self.game_handler: GameHandler

    def set_game_handler(self, game_handler: GameHandler) -> None:
        """Set the game handler after initialization to avoid circular imports.

        Args:
            game_handler: The game handler instance

        """
        self.game_handler = game_handler

    async def connect(self, websocket: WebSocket, game_id: str, player_id: str) -> None:
        """Register an accepted WebSocket connection for a player.

        Args:
            websocket: WebSocket connection
            game_id: Game identifier
            player_id: Player identifier

        """
        if game_id not in self.active_connections:
            self.active_connections[game_id] = {}

        self.active_connections[game_id][player_id] = websocket
        logger.info("Player %s connected to game %s", player_id, game_id)

    def disconnect(self, game_id: str, player_id: str) -> None:
        """Remove a player WebSocket connection.

        Args:
            game_id: Game identifier
            player_id: Player identifier

        """
        if game_id in self.active_connections and player_id in self.active_connections[game_id]:
            del self.active_connections[game_id][player_id]
            logger.info("Player %s disconnected from game %s", player_id, game_id)

            if not self.active_connections[game_id]:
                del self.active_connections[game_id]

        game = self.registry.get_game(game_id)
        player = game.get_player(player_id) if game else None
        if player is not None:
            player.is_connected = False

    def connected_players(self, game_id: str) -> list[str]:
        """IDs of players with an open connection to a game."""
        return list(self.active_connections.get(game_id, {}))

    async def send_personal_message(
        self, message: ServerMessage, game_id: str, player_id: str
    ) -> None:
        """Send message to specific player.

        Args:
            message: Message to send
            game_id: Game identifier
            player_id: Player identifier

        """
        if game_id in self.active_connections and player_id in self.active_connections[game_id]:
            websocket = self.active_connections[game_id][player_id]
            try:
                await websocket.send_json(message.to_dict())
            except (WebSocketDisconnect, RuntimeError, ConnectionError, OSError):
                logger.warning("Connection lost to %s", player_id)
                self.disconnect(game_id, player_id)

    async def broadcast_to_game(
        self,
        message: ServerMessage,
        game_id: str,
        excluded_player_id: str | None = None,
    ) -> None:
        """Broadcast message to all players in a game.

        Args:
            message: Message to broadcast
            game_id: Game identifier
            excluded_player_id: Player to exclude from broadcast

        """
        disconnected_players = []

        for player_id, websocket in list(self.active_connections.get(game_id, {}).items()):
            if excluded_player_id and player_id == excluded_player_id:
                continue

            try:
                await websocket.send_json(message.to_dict())
            except (WebSocketDisconnect, RuntimeError, ConnectionError, OSError):
                logger.warning("Connection lost to player %s", player_id)
                disconnected_players.append(player_id)

        for player_id in disconnected_players:
            self.disconnect(game_id, player_id)

    async def handle_player_message(
        self, websocket: WebSocket, game_id: str, player_id: str
    ) -> None:
        """Handle incoming messages from a player until the connection closes.

        Args:
            websocket: WebSocket connection
            game_id: Game identifier
            player_id: Player identifier

        """
        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message: Any = json.loads(data)
                except json.JSONDecodeError:
                    await self._report_bad_message(game_id, player_id, "Invalid JSON")
                    continue
                if not isinstance(message, dict):
                    await self._report_bad_message(game_id, player_id, "Expected an object")
                    continue

                command = message.get("command", "")
                content = message.get("content") or {}
                if not isinstance(command, str) or not isinstance(content, dict):
                    await self._report_bad_message(
                        game_id, player_id, "Expected a command name and an object payload"
                    )
                    continue

                logger.info("Received %s from player %s in game %s", command, player_id, game_id)

                game = self.registry.get_game(game_id)
                if game is None:
                    logger.warning("Game %s not found", game_id)
                    await websocket.close(code=4004, reason="Game not found")
                    break

                await self.game_handler.handle_command(game, player_id, command, content)

        except WebSocketDisconnect:
            logger.info("Player %s disconnected from game %s", player_id, game_id)

        except (RuntimeError, ConnectionError, OSError) as e:
            logger.warning("Error handling message from %s: %s", player_id, e)

        finally:
            self.disconnect(game_id, player_id)
            await self.game_handler.player_left(game_id, player_id)

    async def _report_bad_message(self, game_id: str, player_id: str, reason: str) -> None:
        await self.send_personal_message(
            ServerMessage(
                command=Command.REPORT_ERROR,
                game_id=game_id,
                content={"error": reason, "code": ErrorCode.INVALID_MESSAGE.value},
            ),
            game_id,
            player_id,
        )
