"""Game serialization.

Converts ``Game`` objects to plain dictionaries and back. The full form
is used by the saved-game store; ``serialize_game_for_player`` produces
the redacted view pushed to each client.
"""

import uuid
from datetime import UTC, datetime
from typing import Any

from whist.models.card import PLACEHOLDER_CARD, Card
from whist.models.enums import GameFormat, GamePhase, Suit
from whist.models.game import Game
from whist.models.minigames import (
    BrucieBonus,
    HaloMinigame,
    Minigame,
    MinigameResult,
    RevealResult,
)
from whist.models.player import KellerPlayerState, Player
from whist.models.round import PlayerRoundResult, RoundResult
from whist.models.trick import PlayedCard, Trick

HIDDEN_HAND_PHASES = (GamePhase.CALLING, GamePhase.PLAYING)


def serialize_card(card: Card) -> dict[str, str]:
    """Serialize a Card to a dictionary."""
    return card.to_dict()


def deserialize_card(data: dict[str, Any]) -> Card:
    """Deserialize a Card from a dictionary."""
    return Card.from_dict(data)


def serialize_keller_state(state: KellerPlayerState) -> dict[str, Any]:
    """Serialize Keller bookkeeping to a dictionary."""
    return {
        "consecutive_zero_calls": state.consecutive_zero_calls,
        "blind_rounds_completed": state.blind_rounds_completed,
        "blind_rounds_remaining": state.blind_rounds_remaining,
        "is_in_blind_mode": state.is_in_blind_mode,
        "blind_mode_started_round": state.blind_mode_started_round,
        "blind_mode_starts_next_round": state.blind_mode_starts_next_round,
        "made_round_one_blind_choice": state.made_round_one_blind_choice,
        "swap_used": state.swap_used,
        "halo_score": state.halo_score,
        "brucie_multiplier": state.brucie_multiplier,
    }


def deserialize_keller_state(data: dict[str, Any]) -> KellerPlayerState:
    """Deserialize Keller bookkeeping from a dictionary."""
    return KellerPlayerState(
        consecutive_zero_calls=data.get("consecutive_zero_calls", 0),
        blind_rounds_completed=data.get("blind_rounds_completed", 0),
        is_in_blind_mode=data.get("is_in_blind_mode", False),
        blind_mode_started_round=data.get("blind_mode_started_round"),
        blind_mode_starts_next_round=data.get("blind_mode_starts_next_round", False),
        made_round_one_blind_choice=data.get("made_round_one_blind_choice", False),
        swap_used=data.get("swap_used", False),
        halo_score=data.get("halo_score"),
        brucie_multiplier=data.get("brucie_multiplier", 2),
    )


def serialize_player(player: Player) -> dict[str, Any]:
    """Serialize a Player to a dictionary."""
    return {
        "id": player.id,
        "name": player.name,
        "hand": [serialize_card(c) for c in player.hand],
        "call": player.call,
        "tricks_won": player.tricks_won,
        "score": player.score,
        "is_dealer": player.is_dealer,
        "is_connected": player.is_connected,
        "is_cpu": player.is_cpu,
        "is_blind_calling": player.is_blind_calling,
        "cpu_controlled": player.cpu_controlled,
        "keller": serialize_keller_state(player.keller) if player.keller else None,
    }


def deserialize_player(data: dict[str, Any]) -> Player:
    """Deserialize a Player from a dictionary."""
    keller = data.get("keller")
    return Player(
        id=data["id"],
        name=data["name"],
        hand=[deserialize_card(c) for c in data.get("hand", [])],
        call=data.get("call"),
        tricks_won=data.get("tricks_won", 0),
        score=data.get("score", 0),
        is_dealer=data.get("is_dealer", False),
        is_connected=data.get("is_connected", True),
        is_cpu=data.get("is_cpu", False),
        is_blind_calling=data.get("is_blind_calling", False),
        cpu_controlled=data.get("cpu_controlled", False),
        keller=deserialize_keller_state(keller) if keller else None,
    )


def serialize_played_card(played: PlayedCard) -> dict[str, Any]:
    """Serialize a PlayedCard to a dictionary."""
    return {"player_id": played.player_id, "card": serialize_card(played.card)}


def deserialize_played_card(data: dict[str, Any]) -> PlayedCard:
    """Deserialize a PlayedCard from a dictionary."""
    return PlayedCard(player_id=data["player_id"], card=deserialize_card(data["card"]))


def serialize_trick(trick: Trick) -> dict[str, Any]:
    """Serialize a Trick to a dictionary."""
    return {
        "cards": [serialize_played_card(pc) for pc in trick.cards],
        "lead_suit": trick.lead_suit.value if trick.lead_suit else None,
        "winner_id": trick.winner_id,
    }


def deserialize_trick(data: dict[str, Any]) -> Trick:
    """Deserialize a Trick from a dictionary."""
    lead_suit = data.get("lead_suit")
    return Trick(
        cards=[deserialize_played_card(pc) for pc in data.get("cards", [])],
        lead_suit=Suit(lead_suit) if lead_suit else None,
        winner_id=data.get("winner_id"),
    )


def serialize_round_result(result: RoundResult) -> dict[str, Any]:
    """Serialize a RoundResult to a dictionary."""
    return {
        "round_number": result.round_number,
        "player_results": [
            {
                "player_id": r.player_id,
                "player_name": r.player_name,
                "call": r.call,
                "tricks_won": r.tricks_won,
                "round_score": r.round_score,
            }
            for r in result.player_results
        ],
    }


def deserialize_round_result(data: dict[str, Any]) -> RoundResult:
    """Deserialize a RoundResult from a dictionary."""
    return RoundResult(
        round_number=data["round_number"],
        player_results=[PlayerRoundResult(**r) for r in data.get("player_results", [])],
    )


def _serialize_reveal(result: RevealResult | None) -> dict[str, Any] | None:
    if result is None:
        return None
    return {
        "player_id": result.player_id,
        "player_name": result.player_name,
        "action": result.action,
        "previous_card": serialize_card(result.previous_card),
        "new_card": serialize_card(result.new_card) if result.new_card else None,
        "was_correct": result.was_correct,
        "correct_guesses": result.correct_guesses,
        "final_score": result.final_score,
    }


def _deserialize_reveal(data: dict[str, Any] | None) -> RevealResult | None:
    if data is None:
        return None
    new_card = data.get("new_card")
    return RevealResult(
        player_id=data["player_id"],
        player_name=data["player_name"],
        action=data["action"],
        previous_card=deserialize_card(data["previous_card"]),
        new_card=deserialize_card(new_card) if new_card else None,
        was_correct=data.get("was_correct"),
        correct_guesses=data.get("correct_guesses", 0),
        final_score=data.get("final_score"),
    )


def serialize_minigame(minigame: Minigame | None) -> dict[str, Any] | None:
    """Serialize the running side game (None when there is none)."""
    if minigame is None:
        return None
    return {
        "kind": minigame.kind,
        "player_ids": list(minigame.player_ids),
        "current_player_id": minigame.current_player_id,
        "current_card": serialize_card(minigame.current_card) if minigame.current_card else None,
        "correct_guesses": minigame.correct_guesses,
        "is_complete": minigame.is_complete,
        "results": [{"player_id": r.player_id, "value": r.value} for r in minigame.results],
        "last_result": _serialize_reveal(minigame.last_result),
        "waiting_for_continue": minigame.waiting_for_continue,
    }


def deserialize_minigame(data: dict[str, Any] | None) -> Minigame | None:
    """Deserialize a side game from a dictionary."""
    if data is None:
        return None
    cls = HaloMinigame if data["kind"] == HaloMinigame.kind else BrucieBonus
    current_card = data.get("current_card")
    return cls(
        player_ids=list(data["player_ids"]),
        current_player_id=data.get("current_player_id"),
        current_card=deserialize_card(current_card) if current_card else None,
        correct_guesses=data.get("correct_guesses", 0),
        is_complete=data.get("is_complete", False),
        results=[MinigameResult(**r) for r in data.get("results", [])],
        last_result=_deserialize_reveal(data.get("last_result")),
        waiting_for_continue=data.get("waiting_for_continue", False),
    )


def serialize_game(game: Game) -> dict[str, Any]:
    """Serialize a complete Game to a dictionary.

    Args:
        game: Game instance to serialize

    Returns:
        Dictionary holding every field needed to resume the game
    """
    return {
        "id": game.id,
        "game_format": game.game_format.value,
        "is_single_player": game.is_single_player,
        "phase": game.phase.value,
        "players": [serialize_player(p) for p in game.players],
        "current_round": game.current_round,
        "current_player_index": game.current_player_index,
        "dealer_index": game.dealer_index,
        "trump": game.trump.value if game.trump else None,
        "card_count": game.card_count,
        "double_points": game.double_points,
        "current_trick": serialize_trick(game.current_trick),
        "trick_number": game.trick_number,
        "trick_pending": game.trick_pending,
        "dealer_cards": [serialize_played_card(pc) for pc in game.dealer_cards],
        "dealer_contenders": list(game.dealer_contenders),
        "round_history": [serialize_round_result(r) for r in game.round_history],
        "swap_deck": [serialize_card(c) for c in game.swap_deck],
        "minigame": serialize_minigame(game.minigame),
        "speed": game.speed,
        "cpu_replacement_votes": {k: list(v) for k, v in game.cpu_replacement_votes.items()},
        "created_at": game.created_at.isoformat(),
        "updated_at": datetime.now(UTC).isoformat(),
    }


def deserialize_game(data: dict[str, Any]) -> Game:
    """Deserialize a Game from a dictionary.

    Args:
        data: Output of ``serialize_game``

    Returns:
        Game instance with full state restored
    """
    trump = data.get("trump")
    created_at = data.get("created_at")
    game = Game(
        id=data["id"],
        game_format=GameFormat(data.get("game_format", GameFormat.TRADITIONAL.value)),
        is_single_player=data.get("is_single_player", False),
        phase=GamePhase(data["phase"]),
        current_round=data.get("current_round", 0),
        current_player_index=data.get("current_player_index", 0),
        dealer_index=data.get("dealer_index", -1),
        trump=Suit(trump) if trump else None,
        card_count=data.get("card_count", 0),
        double_points=data.get("double_points", False),
        current_trick=deserialize_trick(data.get("current_trick", {})),
        trick_number=data.get("trick_number", 1),
        trick_pending=data.get("trick_pending", False),
        dealer_cards=[deserialize_played_card(pc) for pc in data.get("dealer_cards", [])],
        dealer_contenders=list(data.get("dealer_contenders", [])),
        round_history=[deserialize_round_result(r) for r in data.get("round_history", [])],
        swap_deck=[deserialize_card(c) for c in data.get("swap_deck", [])],
        minigame=deserialize_minigame(data.get("minigame")),
        speed=data.get("speed", 1.0),
        cpu_replacement_votes={
            k: list(v) for k, v in data.get("cpu_replacement_votes", {}).items()
        },
    )
    if created_at:
        game.created_at = datetime.fromisoformat(created_at)

    # Restore players
    game.players = [deserialize_player(p) for p in data.get("players", [])]
    if game.minigame is not None:
        game.minigame.rng = game.rng
    return game


def serialize_game_for_player(game: Game, viewer_id: str) -> dict[str, Any]:
    """Build the view of a game that one player is allowed to see.

    Other players' hands are replaced by placeholder cards while cards are
    being called or played. In the Keller format a player calling blind
    (or still making the round 1 blind choice) does not see their own
    hand either. The swap deck is never shown.

    Args:
        game: Game to view
        viewer_id: Player receiving the view

    Returns:
        Redacted game dictionary
    """
    view = serialize_game(game)
    view.pop("swap_deck")
    view.pop("dealer_contenders")
    view["swap_deck_size"] = len(game.swap_deck)
    view["viewer_id"] = viewer_id
    view["host_id"] = game.host.id if game.host else None

    hidden = [serialize_card(PLACEHOLDER_CARD)]
    for player_view, player in zip(view["players"], game.players, strict=True):
        if game.phase in HIDDEN_HAND_PHASES and player.id != viewer_id:
            player_view["hand"] = hidden * len(player.hand)
        elif player.id == viewer_id and _own_hand_hidden(game, player):
            player_view["hand"] = hidden * len(player.hand)
    return view


def _own_hand_hidden(game: Game, player: Player) -> bool:
    if game.phase != GamePhase.CALLING or player.keller is None:
        return False
    return player.is_blind_calling or (
        game.current_round == 1 and not player.keller.made_round_one_blind_choice
    )


def build_save_document(game: Game, player_name: str) -> dict[str, Any]:
    """Wrap a game in the saved-game envelope.

    The metadata lets a player pick a save without loading the state.

    Args:
        game: Game to save
        player_name: Human the save belongs to

    Returns:
        Document with ``_id``, metadata and the full ``state``
    """
    player = next((p for p in game.humans if p.name == player_name), None)
    return {
        "_id": str(uuid.uuid4()),
        "player_name": player_name,
        "format": game.game_format.value,
        "round": game.current_round,
        "score": player.score if player else 0,
        "saved_at": datetime.now(UTC).isoformat(),
        "state": serialize_game(game),
    }
