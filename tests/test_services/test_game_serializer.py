"""Tests for game serialization and per-player views."""

from whist.models.card import PLACEHOLDER_CARD
from whist.models.enums import GameFormat, GamePhase, Guess
from whist.services.game_serializer import (
    build_save_document,
    deserialize_game,
    serialize_game,
    serialize_game_for_player,
)

HIDDEN = PLACEHOLDER_CARD.to_dict()


def without_timestamp(data: dict) -> dict:
    return {k: v for k, v in data.items() if k != "updated_at"}


class TestRoundTrip:
    """Saved state restores to an identical game."""

    def test_mid_trick_keller_game(self, make_game, deal_round):
        game = deal_round(make_game(game_format=GameFormat.KELLER))
        game.start_blind_rounds_now("p1")
        for player in game.players:
            if not player.keller.made_round_one_blind_choice:
                game.decline_blind_round_one(player.id)
        game.use_swap("p0", game.players[0].hand[0])
        for player_id, call in (("p0", 1), ("p1", 2), ("p2", 0), ("p3", 0)):
            game.make_call(player_id, call)
        game.play_card("p0", game.players[0].hand[0])

        data = serialize_game(game)
        restored = deserialize_game(data)

        assert without_timestamp(serialize_game(restored)) == without_timestamp(data)
        assert restored.created_at == game.created_at
        assert restored.players[1].is_blind_calling
        assert restored.current_trick.cards[0].player_id == "p0"

    def test_side_game_state(self, make_game, deal_round):
        game = deal_round(make_game(game_format=GameFormat.KELLER))
        game.current_round = 7
        game.phase = GamePhase.ROUND_END
        game.next_round("p0")
        game.halo_guess("p0", Guess.HIGHER)

        restored = deserialize_game(serialize_game(game))

        assert type(restored.minigame) is type(game.minigame)
        assert restored.minigame.waiting_for_continue
        assert restored.minigame.last_result == game.minigame.last_result
        assert restored.minigame.rng is restored.rng
        restored.acknowledge_minigame("p0")

    def test_cpu_replacement_state(self, make_game, deal_round):
        game = deal_round(make_game())
        game.set_connected("p2", False)
        game.set_connected("p3", False)
        game.vote_cpu_replacement("p0", "p2", True)
        game.vote_cpu_replacement("p0", "p3", True)
        game.vote_cpu_replacement("p1", "p3", True)

        restored = deserialize_game(serialize_game(game))

        assert restored.players[3].cpu_controlled
        assert not restored.players[2].cpu_controlled
        assert restored.cpu_replacement_votes == {"p2": ["p0"]}


class TestPlayerView:
    """Each player only sees what they are allowed to."""

    def test_other_hands_are_hidden_while_playing(self, make_game, deal_round):
        game = deal_round(make_game())
        view = serialize_game_for_player(game, "p1")

        hands = {p["id"]: p["hand"] for p in view["players"]}
        assert hands["p1"] == [c.to_dict() for c in game.players[1].hand]
        for player_id in ("p0", "p2", "p3"):
            assert hands[player_id] == [HIDDEN] * 7

    def test_swap_deck_is_never_sent(self, make_game, deal_round):
        game = deal_round(make_game(game_format=GameFormat.KELLER))
        view = serialize_game_for_player(game, "p0")
        assert "swap_deck" not in view
        assert "dealer_contenders" not in view
        assert view["swap_deck_size"] == 24
        assert view["viewer_id"] == "p0"
        assert view["host_id"] == "p0"

    def test_hands_show_outside_calling_and_playing(self, make_game, deal_round):
        game = deal_round(make_game())
        game.phase = GamePhase.ROUND_END
        view = serialize_game_for_player(game, "p1")
        assert view["players"][0]["hand"] == [c.to_dict() for c in game.players[0].hand]

    def test_blind_caller_cannot_see_own_hand(self, make_game, deal_round):
        game = deal_round(make_game(game_format=GameFormat.KELLER))
        game.start_blind_rounds_now("p2")
        assert serialize_game_for_player(game, "p2")["players"][2]["hand"] == [HIDDEN] * 7

        for player_id in ("p0", "p1"):
            game.decline_blind_round_one(player_id)
            game.make_call(player_id, 0)
        game.make_call("p2", 1)
        game.decline_blind_round_one("p3")
        game.make_call("p3", 0)
        assert game.phase == GamePhase.PLAYING

        own = serialize_game_for_player(game, "p2")["players"][2]["hand"]
        assert own == [c.to_dict() for c in game.players[2].hand]

    def test_round_one_hand_hidden_until_choice(self, make_game, deal_round):
        game = deal_round(make_game(game_format=GameFormat.KELLER))
        assert serialize_game_for_player(game, "p0")["players"][0]["hand"] == [HIDDEN] * 7
        game.decline_blind_round_one("p0")
        visible = serialize_game_for_player(game, "p0")["players"][0]["hand"]
        assert visible == [c.to_dict() for c in game.players[0].hand]


class TestSaveDocument:
    def test_envelope(self, make_game, deal_round):
        game = deal_round(make_game())
        game.players[1].score = 31

        document = build_save_document(game, "Player 1")

        assert document["player_name"] == "Player 1"
        assert document["format"] == "traditional"
        assert document["round"] == 1
        assert document["score"] == 31
        assert document["state"]["id"] == game.id
        assert isinstance(document["_id"], str)
        assert isinstance(document["saved_at"], str)
