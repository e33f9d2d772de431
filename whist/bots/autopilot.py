"""Moves for CPU seats.

The autopilot answers one question: "is an automated move due, and which
one?" Callers drive it in a loop, either straight through (simulations)
or one move per scheduled continuation (live games), so long CPU-only
stretches never recurse.
"""

import logging
import random
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from whist.bots.base_bot import BaseBot, BotDifficulty
from whist.bots.random_bot import RandomBot
from whist.bots.rule_based_bot import RuleBasedBot
from whist.models.card import Card
from whist.models.enums import GamePhase, Guess
from whist.models.game import Game
from whist.models.player import Player

logger = logging.getLogger(__name__)

BotFactory = Callable[[str, BotDifficulty, random.Random], BaseBot]


class ActionKind(str, Enum):
    """Kinds of automated moves."""

    BLIND_CHOICE = "blind_choice"
    CALL = "call"
    PLAY = "play"
    HALO_GUESS = "halo_guess"
    HALO_BANK = "halo_bank"
    BRUCIE_GUESS = "brucie_guess"
    BRUCIE_BANK = "brucie_bank"
    ACKNOWLEDGE = "acknowledge"
    NEXT_ROUND = "next_round"
    CONTINUE = "continue"


@dataclass(frozen=True)
class BotAction:
    """A move chosen for a CPU seat."""

    kind: ActionKind
    player_id: str
    call: int | None = None
    card: Card | None = None
    guess: Guess | None = None
    go_blind: bool = False


def _default_factory(player_id: str, difficulty: BotDifficulty, rng: random.Random) -> BaseBot:
    if difficulty == BotDifficulty.RANDOM:
        return RandomBot(player_id, rng=rng)
    return RuleBasedBot(player_id, difficulty, rng)


class Autopilot:
    """Chooses and applies moves for the CPU players of one game.

    Bots are created lazily, one per CPU seat.
    """

    def __init__(
        self,
        difficulty: BotDifficulty = BotDifficulty.MEDIUM,
        rng: random.Random | None = None,
        bot_factory: BotFactory | None = None,
    ) -> None:
        self.difficulty = difficulty
        self.rng = rng or random.Random()
        self._factory = bot_factory or _default_factory
        self.bots: dict[str, BaseBot] = {}

    def bot_for(self, player: Player) -> BaseBot:
        """Get (or create) the bot playing a seat."""
        bot = self.bots.get(player.id)
        if bot is None:
            bot = self._factory(player.id, self.difficulty, self.rng)
            self.bots[player.id] = bot
        return bot

    def due(self, game: Game, *, acknowledge_results: bool = False) -> bool:
        """Whether an automated move is waiting, without choosing it."""
        if game.phase == GamePhase.CALLING or (
            game.phase == GamePhase.PLAYING and not game.trick_pending
        ):
            player = game.current_player
            return player is not None and player.is_automated

        if game.phase == GamePhase.ROUND_END:
            return self._host_automated(game)

        if game.phase in (GamePhase.HALO_MINIGAME, GamePhase.BRUCIE_BONUS):
            minigame = game.minigame
            if minigame is None:
                return False
            if minigame.is_complete:
                return self._host_automated(game)
            if minigame.waiting_for_continue:
                return acknowledge_results and minigame.last_result is not None
            player_id = minigame.current_player_id
            player = game.get_player(player_id) if player_id else None
            return player is not None and player.is_automated

        return False

    @staticmethod
    def _host_automated(game: Game) -> bool:
        # Host-only steps are taken for a host whose seat a CPU has taken over
        host = game.host
        return host is not None and host.is_automated

    def next_action(self, game: Game, *, acknowledge_results: bool = False) -> BotAction | None:
        """Work out the automated move that is due, if any.

        Args:
            game: Game to inspect
            acknowledge_results: Also dismiss side-game results (only when no
                human is around to do it)

        Returns:
            The move to make, or None when the game waits on a human or a timer

        """
        if not self.due(game, acknowledge_results=acknowledge_results):
            return None
        if game.phase == GamePhase.CALLING:
            return self._calling_action(game)
        if game.phase == GamePhase.PLAYING:
            player = game.current_player
            assert player is not None
            return BotAction(ActionKind.PLAY, player.id, card=self.bot_for(player).pick_card(game))
        if game.phase == GamePhase.ROUND_END:
            assert game.host is not None
            return BotAction(ActionKind.NEXT_ROUND, game.host.id)
        return self._minigame_action(game)

    def _calling_action(self, game: Game) -> BotAction:
        player = game.current_player
        assert player is not None
        bot = self.bot_for(player)

        keller = player.keller
        if game.current_round == 1 and keller is not None and not keller.made_round_one_blind_choice:
            return BotAction(
                ActionKind.BLIND_CHOICE, player.id, go_blind=bot.choose_blind_round_one(game)
            )
        return BotAction(ActionKind.CALL, player.id, call=bot.make_call(game))

    def _minigame_action(self, game: Game) -> BotAction:
        minigame = game.minigame
        assert minigame is not None
        if minigame.is_complete:
            assert game.host is not None
            return BotAction(ActionKind.CONTINUE, game.host.id)
        if minigame.waiting_for_continue:
            assert minigame.last_result is not None
            return BotAction(ActionKind.ACKNOWLEDGE, minigame.last_result.player_id)

        assert minigame.current_player_id is not None
        player = game.require_player(minigame.current_player_id)
        bot = self.bot_for(player)
        if game.phase == GamePhase.HALO_MINIGAME:
            guess = bot.halo_move(game)
            if guess is None:
                return BotAction(ActionKind.HALO_BANK, player.id)
            return BotAction(ActionKind.HALO_GUESS, player.id, guess=guess)

        guess = bot.brucie_move(game)
        if guess is None:
            return BotAction(ActionKind.BRUCIE_BANK, player.id)
        return BotAction(ActionKind.BRUCIE_GUESS, player.id, guess=guess)

    def apply(self, game: Game, action: BotAction) -> None:
        """Apply a move through the game's public operations."""
        logger.debug("CPU %s: %s", action.player_id, action.kind.value)
        match action.kind:
            case ActionKind.BLIND_CHOICE:
                if action.go_blind:
                    game.start_blind_rounds_now(action.player_id)
                else:
                    game.decline_blind_round_one(action.player_id)
            case ActionKind.CALL:
                assert action.call is not None
                game.make_call(action.player_id, action.call)
            case ActionKind.PLAY:
                assert action.card is not None
                game.play_card(action.player_id, action.card)
            case ActionKind.HALO_GUESS:
                assert action.guess is not None
                game.halo_guess(action.player_id, action.guess)
            case ActionKind.HALO_BANK:
                game.halo_bank(action.player_id)
            case ActionKind.BRUCIE_GUESS:
                assert action.guess is not None
                game.brucie_guess(action.player_id, action.guess)
            case ActionKind.BRUCIE_BANK:
                game.brucie_bank(action.player_id)
            case ActionKind.ACKNOWLEDGE:
                game.acknowledge_minigame(action.player_id)
            case ActionKind.NEXT_ROUND:
                game.next_round(action.player_id)
            case ActionKind.CONTINUE:
                game.continue_after_minigame(action.player_id)
