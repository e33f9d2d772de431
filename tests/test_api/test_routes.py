"""Tests for API routes."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from whist.constants import PacingDelays
from whist.main import create_app
from whist.models.enums import GameFormat, GamePhase
from whist.services.game_serializer import deserialize_game, serialize_game


@pytest.fixture
def test_app():
    """Create an app with no pauses; the lifespan (MongoDB, Redis) is not run."""
    return create_app(PacingDelays.instant())


@pytest.fixture
def client(test_app):
    """Create a test client."""
    return TestClient(test_app, raise_server_exceptions=False)


@pytest.fixture
def registry(test_app):
    return test_app.state.registry


class TestCreateGame:
    """Tests for POST /games endpoints."""

    def test_create_game_success(self, client, registry):
        response = client.post("/games", json={"player_name": "Ann", "game_format": "keller"})
        assert response.status_code == 200

        data = response.json()
        assert data["message"] == "Game created successfully"
        game = registry.get_game(data["game_id"])
        assert game.game_format == GameFormat.KELLER
        assert game.host.id == data["player_id"]

    def test_format_defaults_to_traditional(self, client, registry):
        data = client.post("/games", json={"player_name": "Ann"}).json()
        assert registry.get_game(data["game_id"]).game_format == GameFormat.TRADITIONAL

    @pytest.mark.parametrize("name", ["", "x" * 21])
    def test_name_length(self, client, name):
        assert client.post("/games", json={"player_name": name}).status_code == 422

    def test_single_player(self, client, registry):
        response = client.post("/games/single-player", json={"player_name": "Ann", "cpu_count": 2})
        assert response.status_code == 200
        game = registry.get_game(response.json()["game_id"])
        assert game.is_single_player
        assert [p.is_cpu for p in game.players] == [False, True, True]

    @pytest.mark.parametrize("cpu_count", [0, 7])
    def test_single_player_cpu_range(self, client, cpu_count):
        response = client.post(
            "/games/single-player", json={"player_name": "Ann", "cpu_count": cpu_count}
        )
        assert response.status_code == 422


class TestLookups:
    """Tests for the read-only endpoints."""

    def test_get_game(self, client):
        game_id = client.post("/games", json={"player_name": "Ann"}).json()["game_id"]
        response = client.get(f"/games/{game_id.lower()}")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == game_id
        assert data["phase"] == "lobby"
        assert data["players"][0]["name"] == "Ann"
        assert "hand" not in data["players"][0]

    def test_get_unknown_game(self, client):
        assert client.get("/games/ZZZZZZ").status_code == 404

    def test_active_games_joinable_first(self, client, registry):
        started, host = registry.create_game("Ann", GameFormat.TRADITIONAL)
        registry.join_game(started.id, "Bo")
        registry.join_game(started.id, "Cy")
        started.start(host.id)
        open_lobby, _ = registry.create_game("Di", GameFormat.KELLER)
        finished, _ = registry.create_game("Ed", GameFormat.TRADITIONAL)
        finished.phase = GamePhase.GAME_END

        data = client.get("/games/active").json()

        assert data["count"] == 2
        assert [g["game_id"] for g in data["games"]] == [open_lobby.id, started.id]
        assert data["games"][0]["joinable"] is True
        assert data["games"][1]["player_names"] == ["Ann", "Bo", "Cy"]

    def test_rounds(self, client):
        rounds = client.get("/games/rounds").json()["rounds"]
        assert len(rounds) == 13
        assert rounds[4] == {"round_number": 5, "card_count": 3, "trump": None, "double_points": False}
        assert rounds[12]["double_points"] is True

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestPersistenceEndpoints:
    """Tests for saves and high scores."""

    def test_without_storage(self, client):
        assert client.get("/saves/Ann").json() == {"saves": [], "count": 0}
        assert client.get("/highscores/keller").json() == {"format": "keller", "scores": []}
        response = client.post("/games/restore", json={"save_id": "s1", "player_name": "Ann"})
        assert response.status_code == 503

    def test_unknown_format(self, client):
        assert client.get("/highscores/bridge").status_code == 422

    def test_high_scores(self, client, test_app):
        repository = MagicMock()
        repository.top = AsyncMock(return_value=[{"player_name": "Ann", "score": 180}])
        test_app.state.high_score_repository = repository

        data = client.get("/highscores/traditional").json()

        repository.top.assert_awaited_once_with("traditional")
        assert data["scores"][0]["score"] == 180

    def test_restore(self, client, test_app, registry):
        game, human = registry.create_single_player_game("Ann", GameFormat.TRADITIONAL, 2)
        game.start(human.id)
        saved = deserialize_game(serialize_game(game))
        repository = MagicMock()
        repository.find_by_id = AsyncMock(return_value=(saved, "Ann"))
        test_app.state.game_repository = repository

        response = client.post("/games/restore", json={"save_id": "s1", "player_name": "ann"})

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Game restored successfully"
        restored = registry.get_game(data["game_id"])
        assert restored is saved
        assert restored.get_player(data["player_id"]).name == "Ann"
        assert data["player_id"] != human.id

    def test_delete_save(self, client, test_app):
        repository = MagicMock()
        repository.delete = AsyncMock(return_value=True)
        test_app.state.game_repository = repository

        response = client.delete("/saves/s1")

        assert response.status_code == 200
        assert response.json() == {"deleted": "s1"}
        repository.delete.assert_awaited_once_with("s1")

    def test_delete_unknown_save(self, client, test_app):
        repository = MagicMock()
        repository.delete = AsyncMock(return_value=False)
        test_app.state.game_repository = repository
        assert client.delete("/saves/gone").status_code == 404

    def test_delete_without_storage(self, client):
        assert client.delete("/saves/s1").status_code == 503

    def test_restore_missing_save(self, client, test_app):
        repository = MagicMock()
        repository.find_by_id = AsyncMock(return_value=None)
        test_app.state.game_repository = repository
        response = client.post("/games/restore", json={"save_id": "gone", "player_name": "Ann"})
        assert response.status_code == 404

    def test_restore_wrong_player(self, client, test_app, registry):
        game, _ = registry.create_single_player_game("Ann", GameFormat.TRADITIONAL, 1)
        repository = MagicMock()
        repository.find_by_id = AsyncMock(return_value=(deserialize_game(serialize_game(game)), "Ann"))
        test_app.state.game_repository = repository
        response = client.post("/games/restore", json={"save_id": "s1", "player_name": "Bo"})
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "error.notFound"


class TestWebSocket:
    """Tests for the game socket."""

    def test_host_connects(self, client):
        created = client.post("/games", json={"player_name": "Ann"}).json()
        url = f"/games/{created['game_id']}/ws?player_id={created['player_id']}"

        with client.websocket_connect(url) as ws:
            init = ws.receive_json()
            assert init == {
                "command": "INIT",
                "content": {
                    "game_id": created["game_id"],
                    "player_id": created["player_id"],
                    "name": "Ann",
                },
            }
            state = ws.receive_json()
            assert state["command"] == "GAME_STATE"
            assert state["content"]["viewer_id"] == created["player_id"]

            ws.send_json({"command": "REQUEST_STATE", "content": {}})
            assert ws.receive_json()["command"] == "GAME_STATE"

    def test_second_player_joins_by_name(self, client, registry):
        created = client.post("/games", json={"player_name": "Ann"}).json()
        game_id = created["game_id"]

        with client.websocket_connect(f"/games/{game_id}/ws?player_id={created['player_id']}") as host:
            host.receive_json()
            host.receive_json()

            with client.websocket_connect(f"/games/{game_id}/ws?name=Bo") as guest:
                init = guest.receive_json()
                assert init["command"] == "INIT"
                assert init["content"]["name"] == "Bo"

                joined = host.receive_json()
                assert joined["command"] == "JOINED"
                assert joined["content"]["name"] == "Bo"
                assert len(registry.get_game(game_id).players) == 2

    def test_bad_messages(self, client):
        created = client.post("/games", json={"player_name": "Ann"}).json()
        url = f"/games/{created['game_id']}/ws?player_id={created['player_id']}"

        with client.websocket_connect(url) as ws:
            ws.receive_json()
            ws.receive_json()

            ws.send_text("not json")
            error = ws.receive_json()
            assert error["command"] == "REPORT_ERROR"
            assert error["content"]["code"] == "error.invalidMessage"

            ws.send_json(["START_GAME"])
            assert ws.receive_json()["content"]["code"] == "error.invalidMessage"

            ws.send_json({"command": "PLAY_CARD", "content": {"card": {"suit": "stars", "rank": "2"}}})
            assert ws.receive_json()["content"]["code"] == "error.invalidMessage"

    def test_malformed_command_keeps_connection(self, client, registry):
        created = client.post("/games", json={"player_name": "Ann"}).json()
        game_id = created["game_id"]

        with client.websocket_connect(f"/games/{game_id}/ws?player_id={created['player_id']}") as host:
            host.receive_json()
            host.receive_json()

            with client.websocket_connect(f"/games/{game_id}/ws?name=Bo") as guest:
                guest.receive_json()
                guest.receive_json()

                guest.send_json({"command": ["START_GAME"], "content": {}})
                error = guest.receive_json()
                assert error["command"] == "REPORT_ERROR"
                assert error["content"]["code"] == "error.invalidMessage"

                guest.send_json({"command": "START_GAME", "content": "now"})
                assert guest.receive_json()["content"]["code"] == "error.invalidMessage"

                guest.send_json({"command": "REQUEST_STATE", "content": {}})
                assert guest.receive_json()["command"] == "GAME_STATE"

            # Bo's seat is given up when the socket closes
            assert host.receive_json()["command"] == "JOINED"
            assert host.receive_json()["command"] == "GAME_STATE"
            assert host.receive_json()["command"] == "LEFT"
            game = registry.get_game(game_id)
            assert [p.name for p in game.players] == ["Ann"]

    def test_unknown_game_is_closed(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/games/ZZZZZZ/ws?name=Ann") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4004

    def test_name_required(self, client):
        game_id = client.post("/games", json={"player_name": "Ann"}).json()["game_id"]
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/games/{game_id}/ws") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4000

    def test_cpu_seats_cannot_be_taken(self, client, registry):
        created = client.post("/games/single-player", json={"player_name": "Ann"}).json()
        cpu = registry.get_game(created["game_id"]).players[1]
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/games/{created['game_id']}/ws?player_id={cpu.id}") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4004

    def test_started_game_rejects_newcomers(self, client, registry):
        created = client.post("/games/single-player", json={"player_name": "Ann"}).json()
        game = registry.get_game(created["game_id"])
        game.start(created["player_id"])
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect(f"/games/{game.id}/ws?name=Bo") as ws:
                ws.receive_json()
        assert exc_info.value.code == 4005

    def test_single_player_start_reaches_the_human(self, client):
        created = client.post("/games/single-player", json={"player_name": "Ann"}).json()
        player_id = created["player_id"]

        with client.websocket_connect(f"/games/{created['game_id']}/ws?player_id={player_id}") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_json({"command": "START_GAME", "content": {}})

            for _ in range(50):
                message = ws.receive_json()
                assert message["command"] == "GAME_STATE"
                view = message["content"]
                current = view["players"][view["current_player_index"]]
                if view["phase"] == "calling" and current["id"] == player_id:
                    break
            else:
                pytest.fail("Human never got a turn to call")

            own = next(p for p in view["players"] if p["id"] == player_id)
            assert len(own["hand"]) == 7
