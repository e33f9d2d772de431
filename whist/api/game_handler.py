"""Game logic handler for WebSocket commands.

Every command and every scheduled continuation for a game runs under
that game's lock. Continuations (CPU moves, clearing a finished trick,
the dealer draw) sleep outside the lock, then re-check the game once
they hold it, so a stale timer can never act on a game that moved on.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from whist.api.responses import (
    CallPayload,
    Command,
    ErrorCode,
    GuessPayload,
    PlayCardPayload,
    ServerMessage,
    SpeedPayload,
    VotePayload,
)
from whist.bots.autopilot import Autopilot
from whist.bots.base_bot import BotDifficulty
from whist.config import settings
from whist.constants import DEFAULT_PACING, PacingDelays
from whist.models.enums import GamePhase
from whist.models.errors import GameError, GameInvariantError
from whist.models.game import MINIGAME_PHASES, Game
from whist.services.game_serializer import serialize_game_for_player

if TYPE_CHECKING:
    from whist.api.websocket import ConnectionManager
    from whist.repositories.game_repository import GameRepository
    from whist.services.high_score_service import HighScoreService

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Game, str, dict[str, Any]], Awaitable[None]]

# Commands that never change the game
READ_ONLY_COMMANDS = frozenset({Command.REQUEST_STATE, Command.SAVE_GAME})


class GameHandler:
    """Handles game logic for WebSocket commands.

    Validates client intents against the game, pushes a redacted state to
    every connected player after each change and keeps CPU players and
    timed steps moving.
    """

    def __init__(
        self,
        manager: "ConnectionManager",
        pacing: PacingDelays = DEFAULT_PACING,
        difficulty: BotDifficulty | None = None,
        rng: random.Random | None = None,
        propagate_invariant_errors: bool | None = None,
    ) -> None:
        """Initialize handler with connection manager."""
        self.manager = manager
        self.pacing = pacing
        self.difficulty = difficulty or BotDifficulty(settings.default_bot_difficulty)
        self.rng = rng or random.Random()
        self.propagate_invariant_errors = (
            settings.is_development
            if propagate_invariant_errors is None
            else propagate_invariant_errors
        )
        self.game_repository: GameRepository | None = None
        self.high_scores: HighScoreService | None = None

        self._locks: dict[str, asyncio.Lock] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._autopilots: dict[str, Autopilot] = {}
        self._recorded: set[str] = set()
        # Continuation failures held for drain() in development
        self._failures: dict[str, GameInvariantError] = {}

        self.handlers: dict[str, CommandHandler] = {
            Command.START_GAME: self._handle_start_game,
            Command.MAKE_CALL: self._handle_make_call,
            Command.PLAY_CARD: self._handle_play_card,
            Command.NEXT_ROUND: self._handle_next_round,
            Command.SET_SPEED: self._handle_set_speed,
            Command.REQUEST_STATE: self._handle_request_state,
            Command.START_BLIND_ROUNDS: self._handle_start_blind_rounds,
            Command.START_BLIND_ROUNDS_NOW: self._handle_start_blind_rounds_now,
            Command.DECLINE_BLIND_ROUND_ONE: self._handle_decline_blind_round_one,
            Command.USE_SWAP: self._handle_use_swap,
            Command.HALO_GUESS: self._handle_halo_guess,
            Command.HALO_BANK: self._handle_halo_bank,
            Command.BRUCIE_GUESS: self._handle_brucie_guess,
            Command.BRUCIE_BANK: self._handle_brucie_bank,
            Command.SKIP_BRUCIE: self._handle_skip_brucie,
            Command.MINIGAME_ACKNOWLEDGE: self._handle_minigame_acknowledge,
            Command.MINIGAME_CONTINUE: self._handle_minigame_continue,
            Command.SAVE_GAME: self._handle_save_game,
            Command.VOTE_CPU_REPLACEMENT: self._handle_vote_cpu_replacement,
        }

    def set_services(
        self,
        game_repository: "GameRepository | None",
        high_scores: "HighScoreService | None",
    ) -> None:
        """Set external services for saved games and high scores."""
        self.game_repository = game_repository
        self.high_scores = high_scores

    def lock_for(self, game_id: str) -> asyncio.Lock:
        lock = self._locks.get(game_id)
        if lock is None:
            lock = self._locks[game_id] = asyncio.Lock()
        return lock

    def autopilot_for(self, game: Game) -> Autopilot:
        autopilot = self._autopilots.get(game.id)
        if autopilot is None:
            autopilot = self._autopilots[game.id] = Autopilot(self.difficulty, game.rng)
        return autopilot

    # ------------------------------------------------------------------
    # Command dispatch
    # ------------------------------------------------------------------

    async def handle_command(
        self, game: Game, player_id: str, command: str, content: dict[str, Any]
    ) -> None:
        """Route incoming command to appropriate handler.

        Args:
            game: Game instance
            player_id: ID of player who sent command
            command: Command type
            content: Command payload

        """
        handler = self.handlers.get(command)
        if handler is None:
            logger.warning("Unknown command: %s", command)
            await self._send_error(game.id, player_id, ErrorCode.INVALID_MESSAGE, "Unknown command")
            return

        async with self.lock_for(game.id):
            if self.manager.registry.get_game(game.id) is not game:
                logger.info("Dropping %s for closed game %s", command, game.id)
                return
            try:
                await handler(game, player_id, content or {})
            except ValidationError as e:
                await self._send_error(
                    game.id, player_id, ErrorCode.INVALID_MESSAGE, str(e.errors()[0]["msg"])
                )
                return
            except GameError as e:
                logger.info("Rejected %s from %s in game %s: %s", command, player_id, game.id, e)
                await self._send_error(game.id, player_id, e.code, e.message)
                return
            except GameInvariantError as e:
                await self._fail_game(game, e)
                return

            if command not in READ_ONLY_COMMANDS:
                await self._after_change(game)

    async def _send_error(
        self, game_id: str, player_id: str, code: ErrorCode, message: str
    ) -> None:
        """Send error message to a specific player."""
        await self.manager.send_personal_message(
            ServerMessage(
                command=Command.REPORT_ERROR,
                game_id=game_id,
                content={"error": message, "code": code.value},
            ),
            game_id,
            player_id,
        )

    async def _handle_start_game(self, game: Game, player_id: str, _content: dict) -> None:
        """Handle START_GAME command - host closes the lobby and the dealer draw begins."""
        game.start(player_id)
        logger.info("Game %s started with %d players", game.id, len(game.players))

    async def _handle_make_call(self, game: Game, player_id: str, content: dict) -> None:
        payload = CallPayload.model_validate(content)
        game.make_call(player_id, payload.call)
        logger.info("Player %s called %d in game %s", player_id, payload.call, game.id)

    async def _handle_play_card(self, game: Game, player_id: str, content: dict) -> None:
        payload = PlayCardPayload.model_validate(content)
        winner_id = game.play_card(player_id, payload.card.to_card())
        if winner_id is not None:
            logger.debug("Trick %d of game %s won by %s", game.trick_number, game.id, winner_id)

    async def _handle_next_round(self, game: Game, player_id: str, _content: dict) -> None:
        game.next_round(player_id)

    async def _handle_set_speed(self, game: Game, player_id: str, content: dict) -> None:
        game.require_player(player_id)
        game.set_speed(SpeedPayload.model_validate(content).speed)

    async def _handle_request_state(self, game: Game, player_id: str, _content: dict) -> None:
        """Handle REQUEST_STATE command - sends full game state to requesting player."""
        await self.send_game_state(game, player_id)

    async def _handle_start_blind_rounds(self, game: Game, player_id: str, _content: dict) -> None:
        game.start_blind_rounds(player_id)

    async def _handle_start_blind_rounds_now(
        self, game: Game, player_id: str, _content: dict
    ) -> None:
        game.start_blind_rounds_now(player_id)

    async def _handle_decline_blind_round_one(
        self, game: Game, player_id: str, _content: dict
    ) -> None:
        game.decline_blind_round_one(player_id)

    async def _handle_use_swap(self, game: Game, player_id: str, content: dict) -> None:
        payload = PlayCardPayload.model_validate(content)
        game.use_swap(player_id, payload.card.to_card())

    async def _handle_halo_guess(self, game: Game, player_id: str, content: dict) -> None:
        game.halo_guess(player_id, GuessPayload.model_validate(content).guess)

    async def _handle_halo_bank(self, game: Game, player_id: str, _content: dict) -> None:
        game.halo_bank(player_id)

    async def _handle_brucie_guess(self, game: Game, player_id: str, content: dict) -> None:
        game.brucie_guess(player_id, GuessPayload.model_validate(content).guess)

    async def _handle_brucie_bank(self, game: Game, player_id: str, _content: dict) -> None:
        game.brucie_bank(player_id)

    async def _handle_skip_brucie(self, game: Game, player_id: str, _content: dict) -> None:
        game.skip_brucie(player_id)

    async def _handle_minigame_acknowledge(
        self, game: Game, player_id: str, _content: dict
    ) -> None:
        if game.require_player(player_id).is_cpu:
            raise GameError(ErrorCode.NOT_YOUR_TURN, "CPU players cannot acknowledge")
        game.acknowledge_minigame(player_id)

    async def _handle_minigame_continue(self, game: Game, player_id: str, _content: dict) -> None:
        game.continue_after_minigame(player_id)

    async def _handle_save_game(self, game: Game, player_id: str, _content: dict) -> None:
        """Handle SAVE_GAME command - stores a snapshot the player can restore later."""
        player = game.require_player(player_id)
        if not game.is_single_player:
            raise GameError(ErrorCode.INVALID_STATE, "Only single player games can be saved")
        if game.phase in (GamePhase.LOBBY, GamePhase.GAME_END):
            raise GameError(ErrorCode.INVALID_TRANSITION, "Nothing to save yet")
        if self.game_repository is None:
            raise GameError(ErrorCode.INVALID_STATE, "Saving is not available")

        save_id = await self.game_repository.save(game, player.name)
        if save_id is None:
            raise GameError(ErrorCode.INVALID_STATE, "Could not save the game")
        await self.manager.send_personal_message(
            ServerMessage(
                command=Command.GAME_SAVED,
                game_id=game.id,
                content={"save_id": save_id},
            ),
            game.id,
            player_id,
        )

    async def _handle_vote_cpu_replacement(
        self, game: Game, player_id: str, content: dict
    ) -> None:
        """Handle VOTE_CPU_REPLACEMENT command - hand a dropped player's seat to a CPU."""
        payload = VotePayload.model_validate(content)
        target = game.require_player(payload.player_id)
        in_favour, needed = game.vote_cpu_replacement(player_id, target.id, payload.vote)
        await self.manager.broadcast_to_game(
            ServerMessage(
                command=Command.CPU_REPLACEMENT_VOTE,
                game_id=game.id,
                content={
                    "player_id": target.id,
                    "name": target.name,
                    "votes": in_favour,
                    "votes_needed": needed,
                },
            ),
            game.id,
        )
        if target.cpu_controlled:
            logger.info("CPU took over %s in game %s", target.name, game.id)
            await self.manager.broadcast_to_game(
                ServerMessage(
                    command=Command.CPU_REPLACEMENT_ACTIVATED,
                    game_id=game.id,
                    content={"player_id": target.id, "name": target.name},
                ),
                game.id,
            )

    # ------------------------------------------------------------------
    # State pushes
    # ------------------------------------------------------------------

    async def send_game_state(self, game: Game, player_id: str) -> None:
        """Send the player's view of the game (for connect/reconnect)."""
        await self.manager.send_personal_message(
            ServerMessage(
                command=Command.GAME_STATE,
                game_id=game.id,
                content=serialize_game_for_player(game, player_id),
            ),
            game.id,
            player_id,
        )

    async def broadcast_state(self, game: Game) -> None:
        """Send every connected player their own view of the game."""
        for player_id in self.manager.connected_players(game.id):
            await self.send_game_state(game, player_id)

    async def _after_change(self, game: Game) -> None:
        # Called with the game lock held
        await self.broadcast_state(game)
        if game.phase == GamePhase.GAME_END:
            self._record_finished(game)
            return
        self.schedule(game)

    def _record_finished(self, game: Game) -> None:
        if game.id in self._recorded:
            return
        self._recorded.add(game.id)
        winner = game.get_winner()
        logger.info("Game %s over, winner %s", game.id, winner.name if winner else "-")
        if self.high_scores is not None:
            self.high_scores.record_game(game)

    # ------------------------------------------------------------------
    # Continuations
    # ------------------------------------------------------------------

    def _humans_present(self, game: Game) -> bool:
        return any(p.is_connected for p in game.humans)

    def _continuation_delay(self, game: Game) -> float | None:
        """Baseline delay before the next automatic step, or None if nothing is due."""
        pacing = self.pacing
        if game.phase == GamePhase.DETERMINING_DEALER:
            return pacing.dealer_tie if game.dealer_contenders else pacing.dealer_settle
        if game.phase == GamePhase.PLAYING and game.trick_pending:
            return pacing.trick_display

        autopilot = self.autopilot_for(game)
        if not autopilot.due(game, acknowledge_results=not self._humans_present(game)):
            return None
        if game.phase in MINIGAME_PHASES:
            return self.rng.uniform(pacing.minigame_min, pacing.minigame_max)
        if game.phase == GamePhase.PLAYING and game.current_trick.cards:
            return pacing.cpu_follow_up
        return self.rng.uniform(pacing.cpu_think_min, pacing.cpu_think_max)

    def schedule(self, game: Game) -> asyncio.Task[None] | None:
        """Arm the next automatic step for a game, if one is due.

        At most one continuation is pending per game; it works out what to
        do when it fires.
        """
        existing = self._tasks.get(game.id)
        if existing is not None and not existing.done():
            return existing

        delay = self._continuation_delay(game)
        if delay is None:
            return None
        task = asyncio.create_task(self._run_continuation(game.id, delay * game.speed))
        self._tasks[game.id] = task
        return task

    async def _run_continuation(self, game_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        async with self.lock_for(game_id):
            if self._tasks.get(game_id) is asyncio.current_task():
                del self._tasks[game_id]
            game = self.manager.registry.get_game(game_id)
            if game is None:
                return
            try:
                changed = self._step(game)
            except Exception as e:  # noqa: BLE001
                await self._fail_game(game, e, in_task=True)
                return
            if changed:
                await self._after_change(game)

    def _step(self, game: Game) -> bool:
        """Take the automatic step that is due now.

        Returns:
            True if the game changed

        """
        if game.phase == GamePhase.DETERMINING_DEALER:
            if game.dealer_contenders:
                game.deal_for_dealer()
            else:
                game.begin_first_round()
            return True
        if game.phase == GamePhase.PLAYING and game.trick_pending:
            game.advance_after_trick()
            return True

        autopilot = self.autopilot_for(game)
        action = autopilot.next_action(game, acknowledge_results=not self._humans_present(game))
        if action is None:
            return False
        autopilot.apply(game, action)
        return True

    def cancel_game(self, game_id: str) -> None:
        """Cancel pending continuations and forget per-game state."""
        task = self._tasks.pop(game_id, None)
        if task is not None and not task.done():
            task.cancel()
        self._autopilots.pop(game_id, None)
        self._locks.pop(game_id, None)

    async def drain(self, game_id: str) -> None:
        """Run continuations until the game waits on a human (tests and simulations)."""
        while (task := self._tasks.get(game_id)) is not None:
            await task
            if self._tasks.get(game_id) is task:
                del self._tasks[game_id]
        failure = self._failures.pop(game_id, None)
        if failure is not None:
            raise failure

    async def _fail_game(self, game: Game, error: Exception, *, in_task: bool = False) -> None:
        """Tear down a game that hit a defect; other games are untouched.

        In development a failed command re-raises to its caller, while a
        failed continuation is kept for ``drain`` since no caller awaits it.
        """
        logger.error("Invariant violated in game %s: %s", game.id, error, exc_info=error)
        if isinstance(error, GameError):
            error = GameInvariantError(f"Automatic step rejected: {error}")
        elif not isinstance(error, GameInvariantError):
            error = GameInvariantError(f"Automatic step failed: {error!r}")
        if self.propagate_invariant_errors:
            if not in_task:
                raise error
            self._failures[game.id] = error

        game.phase = GamePhase.GAME_END
        await self.manager.broadcast_to_game(
            ServerMessage(
                command=Command.REPORT_ERROR,
                game_id=game.id,
                content={
                    "error": "The game hit an internal error and was closed",
                    "code": ErrorCode.INTERNAL_ERROR.value,
                },
            ),
            game.id,
        )
        self.cancel_game(game.id)
        self.manager.registry.remove_game(game.id)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    async def player_joined(self, game: Game, player_id: str) -> None:
        """Announce a (re)connected player and send them the game."""
        async with self.lock_for(game.id):
            player = game.require_player(player_id)
            game.set_connected(player_id, True)
            await self.manager.broadcast_to_game(
                ServerMessage(
                    command=Command.JOINED,
                    game_id=game.id,
                    content={"player_id": player_id, "name": player.name},
                ),
                game.id,
                excluded_player_id=player_id,
            )
            await self.broadcast_state(game)
            if game.phase != GamePhase.GAME_END:
                self.schedule(game)

    async def player_left(self, game_id: str, player_id: str) -> None:
        """Handle a dropped connection.

        In the lobby the seat is given up (and an empty lobby closed);
        once the game runs the seat is kept for a reconnect.
        """
        async with self.lock_for(game_id):
            registry = self.manager.registry
            game = registry.get_game(game_id)
            if game is None:
                return
            player = game.get_player(player_id)
            if player is None:
                return

            if game.phase == GamePhase.LOBBY:
                if registry.remove_player(game_id, player_id):
                    self.cancel_game(game_id)
                    return
            else:
                player.is_connected = False

            await self.manager.broadcast_to_game(
                ServerMessage(
                    command=Command.LEFT,
                    game_id=game_id,
                    content={"player_id": player_id, "name": player.name},
                ),
                game_id,
            )
            await self.broadcast_state(game)
            if game.phase != GamePhase.GAME_END:
                # With nobody left to watch, CPU side-game results clear themselves
                self.schedule(game)
