"""Tests for WebSocket game handler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from whist.api.game_handler import GameHandler
from whist.api.responses import Command
from whist.constants import PacingDelays
from whist.models.calls import legal_calls
from whist.models.enums import ErrorCode, GameFormat, GamePhase
from whist.models.errors import GameError, GameInvariantError

pytestmark = pytest.mark.anyio


def sent_to(manager, player_id):
    """Messages sent personally to one player, oldest first."""
    return [
        call.args[0]
        for call in manager.send_personal_message.await_args_list
        if call.args[2] == player_id
    ]


def error_codes(manager, player_id):
    return [
        m.content["code"] for m in sent_to(manager, player_id) if m.command == Command.REPORT_ERROR
    ]


def broadcasts(manager, command):
    return [
        call.args[0]
        for call in manager.broadcast_to_game.await_args_list
        if call.args[0].command == command
    ]


class TestDispatch:
    """Tests for routing and rejecting commands."""

    async def test_unknown_command(self, game_handler, single_player, mock_manager):
        game, human = single_player
        await game_handler.handle_command(game, human.id, "SHUFFLE_EVERYTHING", {})
        assert error_codes(mock_manager, human.id) == [ErrorCode.INVALID_MESSAGE.value]

    async def test_rejected_action_reports_code(self, game_handler, lobby, mock_manager):
        """Only the host may start; the guest gets NOT_HOST and nothing changes."""
        game, _host, guest = lobby
        await game_handler.handle_command(game, guest.id, Command.START_GAME, {})

        assert error_codes(mock_manager, guest.id) == [ErrorCode.NOT_HOST.value]
        assert game.phase == GamePhase.LOBBY
        assert not any(m.command == Command.GAME_STATE for m in sent_to(mock_manager, guest.id))

    async def test_malformed_payload(self, game_handler, single_player, mock_manager):
        game, human = single_player
        await game_handler.handle_command(game, human.id, Command.MAKE_CALL, {"call": "lots"})
        assert error_codes(mock_manager, human.id) == [ErrorCode.INVALID_MESSAGE.value]

    async def test_commands_for_closed_game_are_dropped(
        self, game_handler, single_player, mock_manager, registry
    ):
        game, human = single_player
        registry.remove_game(game.id)
        await game_handler.handle_command(game, human.id, Command.START_GAME, {})
        assert game.phase == GamePhase.LOBBY
        mock_manager.send_personal_message.assert_not_awaited()

    async def test_request_state(self, game_handler, single_player, mock_manager):
        game, human = single_player
        await game_handler.handle_command(game, human.id, Command.REQUEST_STATE, {})

        (message,) = sent_to(mock_manager, human.id)
        assert message.command == Command.GAME_STATE
        assert message.content["viewer_id"] == human.id
        assert message.content["phase"] == "lobby"


class TestSinglePlayerFlow:
    """Tests for CPU continuations around a human player."""

    async def test_start_runs_until_the_human_calls(self, game_handler, single_player, mock_manager):
        game, human = single_player
        await game_handler.handle_command(game, human.id, Command.START_GAME, {})
        await game_handler.drain(game.id)

        assert game.phase == GamePhase.CALLING
        assert game.current_player is human
        assert all(p.call is not None for p in game.players[game.dealer_index + 1 :] if p.is_cpu)

        state = sent_to(mock_manager, human.id)[-1]
        assert state.command == Command.GAME_STATE
        for player in state.content["players"]:
            if player["id"] != human.id:
                assert player["hand"] == [{"suit": "clubs", "rank": "2"}] * 7

    async def test_human_call_hands_over_to_cpus(self, game_handler, single_player, mock_manager):
        game, human = single_player
        await game_handler.handle_command(game, human.id, Command.START_GAME, {})
        await game_handler.drain(game.id)

        call = legal_calls(game, human)[0]
        await game_handler.handle_command(game, human.id, Command.MAKE_CALL, {"call": call})
        await game_handler.drain(game.id)

        assert human.call == call
        assert game.phase == GamePhase.PLAYING
        assert game.current_player is human
        assert not game.trick_pending

    async def test_out_of_turn_call(self, game_handler, single_player, mock_manager):
        game, human = single_player
        game._set_dealer(0)
        game.phase = GamePhase.DETERMINING_DEALER
        game.begin_first_round()

        await game_handler.handle_command(game, human.id, Command.MAKE_CALL, {"call": 1})
        assert error_codes(mock_manager, human.id) == [ErrorCode.NOT_YOUR_TURN.value]
        assert human.call is None

    async def test_speed(self, game_handler, single_player, mock_manager):
        game, human = single_player
        await game_handler.handle_command(game, human.id, Command.SET_SPEED, {"speed": 0.5})
        assert game.speed == 0.5

        await game_handler.handle_command(game, human.id, Command.SET_SPEED, {"speed": 3})
        assert game.speed == 0.5
        assert error_codes(mock_manager, human.id) == [ErrorCode.INVALID_MESSAGE.value]


class TestSideGameAcknowledgement:
    """CPU results wait for a connected human, and clear themselves otherwise."""

    @pytest.fixture
    def halo_game(self, registry):
        game, human = registry.create_single_player_game("Ann", GameFormat.KELLER, 2)
        game._set_dealer(2)
        game.current_round = 7
        game.phase = GamePhase.ROUND_END
        game.next_round(human.id)
        return game, human

    async def test_results_wait_for_the_human(self, game_handler, halo_game, mock_manager):
        game, human = halo_game
        await game_handler.handle_command(game, human.id, Command.HALO_BANK, {})
        await game_handler.drain(game.id)
        assert game.minigame.waiting_for_continue

        await game_handler.handle_command(game, human.id, Command.MINIGAME_ACKNOWLEDGE, {})
        await game_handler.drain(game.id)

        cpu = game.players[1]
        assert game.minigame.waiting_for_continue
        assert game.minigame.last_result.player_id == cpu.id

        await game_handler.handle_command(game, human.id, Command.MINIGAME_ACKNOWLEDGE, {})
        assert not game.minigame.waiting_for_continue
        await game_handler.drain(game.id)

    async def test_results_clear_without_humans(self, game_handler, halo_game):
        game, human = halo_game
        await game_handler.handle_command(game, human.id, Command.HALO_BANK, {})
        await game_handler.handle_command(game, human.id, Command.MINIGAME_ACKNOWLEDGE, {})
        await game_handler.drain(game.id)

        await game_handler.player_left(game.id, human.id)
        await game_handler.drain(game.id)

        assert game.phase == GamePhase.HALO_MINIGAME
        assert game.minigame.is_complete
        assert [r.player_id for r in game.minigame.results] == [p.id for p in game.players]

    async def test_cpu_cannot_acknowledge(self, game_handler, halo_game, mock_manager):
        game, human = halo_game
        await game_handler.handle_command(game, human.id, Command.HALO_BANK, {})
        cpu = game.players[1]
        await game_handler.handle_command(game, cpu.id, Command.MINIGAME_ACKNOWLEDGE, {})
        assert error_codes(mock_manager, cpu.id) == [ErrorCode.NOT_YOUR_TURN.value]
        assert game.minigame.waiting_for_continue


class TestSaveGame:
    """Tests for SAVE_GAME."""

    async def test_save_sends_save_id(self, game_handler, single_player, mock_manager):
        game, human = single_player
        game.start(human.id)
        repository = MagicMock()
        repository.save = AsyncMock(return_value="save-1")
        game_handler.set_services(repository, None)

        await game_handler.handle_command(game, human.id, Command.SAVE_GAME, {})

        repository.save.assert_awaited_once_with(game, "Ann")
        (message,) = sent_to(mock_manager, human.id)
        assert message.command == Command.GAME_SAVED
        assert message.content == {"save_id": "save-1"}

    async def test_nothing_to_save_in_lobby(self, game_handler, single_player, mock_manager):
        game, human = single_player
        game_handler.set_services(MagicMock(), None)
        await game_handler.handle_command(game, human.id, Command.SAVE_GAME, {})
        assert error_codes(mock_manager, human.id) == [ErrorCode.INVALID_TRANSITION.value]

    async def test_multiplayer_games_cannot_be_saved(self, game_handler, lobby, mock_manager):
        game, host, _guest = lobby
        game.start(host.id)
        game_handler.set_services(MagicMock(), None)
        await game_handler.handle_command(game, host.id, Command.SAVE_GAME, {})
        assert error_codes(mock_manager, host.id) == [ErrorCode.INVALID_STATE.value]

    async def test_saving_unavailable(self, game_handler, single_player, mock_manager):
        game, human = single_player
        game.start(human.id)
        await game_handler.handle_command(game, human.id, Command.SAVE_GAME, {})
        assert error_codes(mock_manager, human.id) == [ErrorCode.INVALID_STATE.value]


class TestGameEnd:
    async def test_finished_game_recorded_once(self, game_handler, single_player):
        game, human = single_player
        high_scores = MagicMock()
        game_handler.set_services(None, high_scores)
        game._set_dealer(0)
        game.current_round = 13
        game.phase = GamePhase.ROUND_END

        await game_handler.handle_command(game, human.id, Command.NEXT_ROUND, {})
        await game_handler.handle_command(game, human.id, Command.SET_SPEED, {"speed": 2.0})

        assert game.phase == GamePhase.GAME_END
        high_scores.record_game.assert_called_once_with(game)
        assert game.id not in game_handler._tasks


class TestFailures:
    """Defects close only the affected game."""

    @pytest.fixture
    def lenient_handler(self, mock_manager):
        return GameHandler(
            mock_manager, pacing=PacingDelays.instant(), propagate_invariant_errors=False
        )

    async def test_invariant_error_closes_game(
        self, lenient_handler, single_player, mock_manager, registry, monkeypatch
    ):
        game, human = single_player
        other, _ = registry.create_game("Cy", GameFormat.TRADITIONAL)
        monkeypatch.setattr(game, "start", MagicMock(side_effect=GameInvariantError("broken")))

        await lenient_handler.handle_command(game, human.id, Command.START_GAME, {})

        assert game.phase == GamePhase.GAME_END
        assert registry.get_game(game.id) is None
        assert registry.get_game(other.id) is other
        (report,) = broadcasts(mock_manager, Command.REPORT_ERROR)
        assert report.content["code"] == ErrorCode.INTERNAL_ERROR.value

    async def test_rejected_automatic_step_closes_game(
        self, lenient_handler, single_player, registry, monkeypatch
    ):
        game, human = single_player
        monkeypatch.setattr(
            game,
            "begin_first_round",
            MagicMock(side_effect=GameError(ErrorCode.INVALID_STATE, "nope")),
        )
        await lenient_handler.handle_command(game, human.id, Command.START_GAME, {})
        await lenient_handler.drain(game.id)
        assert registry.get_game(game.id) is None

    async def test_unexpected_error_in_continuation_closes_game(
        self, lenient_handler, single_player, mock_manager, registry, monkeypatch
    ):
        game, human = single_player
        monkeypatch.setattr(game, "begin_first_round", MagicMock(side_effect=ValueError("boom")))

        await lenient_handler.handle_command(game, human.id, Command.START_GAME, {})
        await lenient_handler.drain(game.id)

        assert game.phase == GamePhase.GAME_END
        assert registry.get_game(game.id) is None
        (report,) = broadcasts(mock_manager, Command.REPORT_ERROR)
        assert report.content["code"] == ErrorCode.INTERNAL_ERROR.value

    async def test_continuation_error_raised_from_drain_in_development(
        self, game_handler, single_player, registry, monkeypatch
    ):
        game, human = single_player
        monkeypatch.setattr(game, "begin_first_round", MagicMock(side_effect=ValueError("boom")))

        await game_handler.handle_command(game, human.id, Command.START_GAME, {})
        with pytest.raises(GameInvariantError, match="boom"):
            await game_handler.drain(game.id)

        assert registry.get_game(game.id) is None
        # Reported once
        await game_handler.drain(game.id)

    async def test_invariant_error_propagates_in_development(
        self, game_handler, single_player, monkeypatch
    ):
        game, human = single_player
        monkeypatch.setattr(game, "start", MagicMock(side_effect=GameInvariantError("broken")))
        with pytest.raises(GameInvariantError):
            await game_handler.handle_command(game, human.id, Command.START_GAME, {})


class TestContinuations:
    """Tests for pacing and the single pending continuation."""

    async def test_delays_follow_pacing(self, mock_manager, single_player):
        game, human = single_player
        handler = GameHandler(mock_manager, rng=MagicMock(uniform=MagicMock(return_value=1.25)))
        game.phase = GamePhase.DETERMINING_DEALER
        game.dealer_contenders = [0, 2]
        assert handler._continuation_delay(game) == 2.0

        game.dealer_contenders = []
        game._set_dealer(3)
        assert handler._continuation_delay(game) == 3.0

        game.begin_first_round()
        assert game.current_player is human
        assert handler._continuation_delay(game) is None

        game.current_player_index = 1
        assert handler._continuation_delay(game) == 1.25

    async def test_one_pending_continuation_per_game(self, mock_manager, single_player):
        game, human = single_player
        handler = GameHandler(mock_manager)
        game.start(human.id)

        task = handler.schedule(game)
        assert task is not None
        assert handler.schedule(game) is task

        handler.cancel_game(game.id)
        with pytest.raises(asyncio.CancelledError):
            await task

    async def test_stale_continuation_does_nothing(self, game_handler, single_player, registry):
        game, human = single_player
        game.start(human.id)
        task = game_handler.schedule(game)
        registry.remove_game(game.id)
        await task
        assert game.phase == GamePhase.DETERMINING_DEALER
        assert game.current_round == 0


class TestConnections:
    """Tests for joins and drops."""

    async def test_join_is_announced_to_others(self, game_handler, lobby, mock_manager):
        game, _host, guest = lobby
        await game_handler.player_joined(game, guest.id)

        (joined,) = broadcasts(mock_manager, Command.JOINED)
        assert joined.content == {"player_id": guest.id, "name": "Bo"}
        assert mock_manager.broadcast_to_game.await_args_list[0].kwargs == {
            "excluded_player_id": guest.id
        }

    async def test_leaving_lobby_frees_seat(self, game_handler, lobby, mock_manager, registry):
        game, host, guest = lobby
        await game_handler.player_left(game.id, guest.id)
        assert game.get_player(guest.id) is None
        assert broadcasts(mock_manager, Command.LEFT)

        await game_handler.player_left(game.id, host.id)
        assert registry.get_game(game.id) is None

    async def test_leaving_running_game_keeps_seat(self, game_handler, lobby, mock_manager):
        game, host, guest = lobby
        game.start(host.id)
        await game_handler.player_left(game.id, guest.id)

        assert game.get_player(guest.id) is guest
        assert not guest.is_connected
        (left,) = broadcasts(mock_manager, Command.LEFT)
        assert left.content["player_id"] == guest.id
        game_handler.cancel_game(game.id)


class TestCpuReplacement:
    """Tests for handing a dropped player's seat to a CPU."""

    @pytest.fixture
    def table(self, game_handler, lobby, registry):
        """Ann, Bo and Cy in round 1 with Ann dealing, so Bo calls first."""
        game, ann, bo = lobby
        cy = registry.join_game(game.id, "Cy")
        game.start(ann.id)
        game._set_dealer(0)
        game.begin_first_round()
        return game, ann, bo, cy

    async def test_vote_hands_seat_to_cpu(self, game_handler, table, mock_manager):
        game, ann, bo, cy = table
        assert game.current_player is bo
        await game_handler.player_left(game.id, bo.id)

        await game_handler.handle_command(
            game, ann.id, Command.VOTE_CPU_REPLACEMENT, {"player_id": bo.id}
        )
        (vote,) = broadcasts(mock_manager, Command.CPU_REPLACEMENT_VOTE)
        assert vote.content == {"player_id": bo.id, "name": "Bo", "votes": 1, "votes_needed": 2}
        assert not broadcasts(mock_manager, Command.CPU_REPLACEMENT_ACTIVATED)
        await game_handler.drain(game.id)
        assert bo.call is None

        await game_handler.handle_command(
            game, cy.id, Command.VOTE_CPU_REPLACEMENT, {"player_id": bo.id}
        )
        (activated,) = broadcasts(mock_manager, Command.CPU_REPLACEMENT_ACTIVATED)
        assert activated.content == {"player_id": bo.id, "name": "Bo"}

        await game_handler.drain(game.id)
        assert bo.call is not None
        assert game.current_player is cy

    async def test_reconnect_takes_seat_back(self, game_handler, table):
        game, ann, bo, cy = table
        await game_handler.player_left(game.id, bo.id)
        game.vote_cpu_replacement(ann.id, bo.id, True)
        game.vote_cpu_replacement(cy.id, bo.id, True)
        assert bo.cpu_controlled

        await game_handler.player_joined(game, bo.id)

        assert bo.is_connected
        assert not bo.cpu_controlled
        await game_handler.drain(game.id)
        assert game.current_player is bo
        assert bo.call is None

    async def test_connected_player_cannot_be_replaced(self, game_handler, table, mock_manager):
        game, ann, bo, _cy = table
        await game_handler.handle_command(
            game, ann.id, Command.VOTE_CPU_REPLACEMENT, {"player_id": bo.id}
        )
        assert error_codes(mock_manager, ann.id) == [ErrorCode.INVALID_STATE.value]
        assert not broadcasts(mock_manager, Command.CPU_REPLACEMENT_VOTE)

    async def test_not_offered_in_single_player(self, game_handler, single_player, mock_manager):
        game, human = single_player
        game.start(human.id)
        await game_handler.handle_command(
            game, human.id, Command.VOTE_CPU_REPLACEMENT, {"player_id": game.players[1].id}
        )
        assert error_codes(mock_manager, human.id) == [ErrorCode.INVALID_STATE.value]

    async def test_target_required(self, game_handler, table, mock_manager):
        game, ann, _bo, _cy = table
        await game_handler.handle_command(game, ann.id, Command.VOTE_CPU_REPLACEMENT, {})
        assert error_codes(mock_manager, ann.id) == [ErrorCode.INVALID_MESSAGE.value]
