"""Game aggregate and round/phase state machine.

``Game`` owns all mutable state of one game and is only changed through
its public operations. Every operation validates first and raises
``GameError`` before touching anything, so a rejected action leaves the
game exactly as it was.

Operations never wait. Where play has to pause (dealer found, tied
dealer cards, a completed trick on the table) the game stops in an
intermediate state and the caller resumes it with ``begin_first_round``,
``deal_for_dealer`` or ``advance_after_trick`` once the pause is over.
"""

import random
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from whist.constants import (
    BLIND_AUTO_TRIGGER_ROUND,
    BLIND_ROUNDS_REQUIRED,
    BRUCIE_AFTER_ROUND,
    CPU_NAMES,
    GAME_ID_ALPHABET,
    GAME_ID_LENGTH,
    HALO_AFTER_ROUND,
    HALO_SCORE_ROUND,
    MAX_CPU_PLAYERS,
    MAX_NAME_LENGTH,
    MAX_PLAYERS,
    MAX_ROUNDS,
    MIN_PLAYERS,
    SPEED_SETTINGS,
)
from whist.models.calls import validate_call
from whist.models.card import Card, new_deck, shuffle, sort_hand
from whist.models.enums import ErrorCode, GameFormat, GamePhase, Guess, Suit
from whist.models.errors import GameError, GameInvariantError
from whist.models.minigames import BrucieBonus, HaloMinigame, Minigame, RevealResult
from whist.models.player import KellerPlayerState, Player
from whist.models.round import PlayerRoundResult, RoundResult
from whist.models.round_config import config_for
from whist.models.scoring import score_round
from whist.models.trick import PlayedCard, Trick, resolve_trick

MINIGAME_PHASES = (GamePhase.HALO_MINIGAME, GamePhase.BRUCIE_BONUS)


def generate_game_id(rng: random.Random | None = None) -> str:
    """Generate a short, unambiguous game code."""
    rng = rng or random.Random()
    return "".join(rng.choice(GAME_ID_ALPHABET) for _ in range(GAME_ID_LENGTH))


@dataclass
class Game:
    """Represents a game of calling whist.

    Attributes:
        id: Short game code
        game_format: Traditional or Keller rules
        is_single_player: One human playing against CPU players
        phase: Current phase of the game
        players: Players in seat order (turn order)
        current_round: Round number (0 before the first deal)
        current_player_index: Seat whose turn it is
        dealer_index: Seat of the dealer (-1 until chosen)
        trump: Trump suit of the current round
        card_count: Cards dealt to each player this round
        double_points: Whether the current round scores double
        current_trick: Trick being played
        trick_number: Trick number within the round (1-indexed)
        trick_pending: A completed trick is on the table awaiting advance
        dealer_cards: Cards drawn while choosing the dealer
        dealer_contenders: Seats still in the dealer draw
        round_history: Results of finished rounds
        swap_deck: Undealt cards available to the Keller swap
        minigame: State of the running side game, if any
        speed: Pacing multiplier applied to every scheduled delay
        cpu_replacement_votes: Voters per disconnected seat asking for a CPU stand-in

    """

    id: str
    game_format: GameFormat = GameFormat.TRADITIONAL
    is_single_player: bool = False
    phase: GamePhase = GamePhase.LOBBY
    players: list[Player] = field(default_factory=list)
    current_round: int = 0
    current_player_index: int = 0
    dealer_index: int = -1
    trump: Suit | None = None
    card_count: int = 0
    double_points: bool = False
    current_trick: Trick = field(default_factory=Trick)
    trick_number: int = 1
    trick_pending: bool = False
    dealer_cards: list[PlayedCard] = field(default_factory=list)
    dealer_contenders: list[int] = field(default_factory=list)
    round_history: list[RoundResult] = field(default_factory=list)
    swap_deck: list[Card] = field(default_factory=list)
    minigame: Minigame | None = None
    speed: float = 1.0
    cpu_replacement_votes: dict[str, list[str]] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    rng: random.Random = field(default_factory=random.Random, repr=False, compare=False)

    @classmethod
    def create(
        cls,
        host_name: str,
        host_id: str,
        *,
        game_format: GameFormat = GameFormat.TRADITIONAL,
        cpu_count: int = 0,
        rng: random.Random | None = None,
    ) -> "Game":
        """Create a lobby hosted by ``host_name``.

        Args:
            host_name: Display name of the host
            host_id: Player ID of the host
            game_format: Ruleset to play
            cpu_count: CPU opponents to seat; any makes it a single-player game
            rng: Random source for ids, shuffles and side games

        Returns:
            New game in the lobby phase

        """
        if not 0 <= cpu_count <= MAX_CPU_PLAYERS:
            raise GameError(
                ErrorCode.CAPACITY_EXCEEDED, f"Between 0 and {MAX_CPU_PLAYERS} CPU players allowed"
            )
        rng = rng or random.Random()
        game = cls(
            id=generate_game_id(rng),
            game_format=game_format,
            is_single_player=cpu_count > 0,
            rng=rng,
        )
        game._seat(Player(id=host_id, name=host_name))
        for name in CPU_NAMES[:cpu_count]:
            game._seat(Player(id=str(uuid.UUID(int=rng.getrandbits(128))), name=name, is_cpu=True))
        return game

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def is_keller(self) -> bool:
        return self.game_format == GameFormat.KELLER

    @property
    def host(self) -> Player | None:
        """The host is whoever sits in seat 0."""
        return self.players[0] if self.players else None

    @property
    def current_player(self) -> Player | None:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    @property
    def dealer(self) -> Player | None:
        if 0 <= self.dealer_index < len(self.players):
            return self.players[self.dealer_index]
        return None

    @property
    def humans(self) -> list[Player]:
        return [p for p in self.players if not p.is_cpu]

    @property
    def round_over(self) -> bool:
        """The last trick of the round is on the table."""
        return self.trick_pending and self.trick_number >= self.card_count

    def get_player(self, player_id: str) -> Player | None:
        """Get player by ID."""
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def require_player(self, player_id: str) -> Player:
        """Get player by ID or raise NOT_FOUND."""
        player = self.get_player(player_id)
        if player is None:
            raise GameError(ErrorCode.NOT_FOUND, f"Player {player_id} is not in this game")
        return player

    def seat_of(self, player_id: str) -> int:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        raise GameError(ErrorCode.NOT_FOUND, f"Player {player_id} is not in this game")

    def get_leaderboard(self) -> list[Player]:
        """Players ordered by score, best first."""
        return sorted(self.players, key=lambda p: p.score, reverse=True)

    def get_winner(self) -> Player | None:
        """Get the game winner (only once the game is over)."""
        if self.phase != GamePhase.GAME_END or not self.players:
            return None
        return self.get_leaderboard()[0]

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def _require_phase(self, *phases: GamePhase) -> None:
        if self.phase not in phases:
            allowed = ", ".join(p.value for p in phases)
            raise GameError(
                ErrorCode.INVALID_TRANSITION,
                f"Not allowed during {self.phase.value} (needs {allowed})",
            )

    def _require_host(self, player_id: str) -> None:
        self.require_player(player_id)
        if self.host is None or self.host.id != player_id:
            raise GameError(ErrorCode.NOT_HOST, "Only the host can do that")

    def _require_turn(self, player_id: str) -> Player:
        player = self.require_player(player_id)
        if self.current_player is None or self.current_player.id != player_id:
            raise GameError(ErrorCode.NOT_YOUR_TURN, "It's not your turn")
        return player

    def _require_keller(self, player_id: str) -> KellerPlayerState:
        if not self.is_keller:
            raise GameError(ErrorCode.INVALID_TRANSITION, "Only available in the Keller format")
        keller = self.require_player(player_id).keller
        if keller is None:
            raise GameInvariantError(f"Player {player_id} has no Keller state")
        return keller

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------

    def _seat(self, player: Player) -> None:
        if self.is_keller and player.keller is None:
            player.keller = KellerPlayerState()
        self.players.append(player)

    def add_player(self, name: str, player_id: str) -> Player:
        """Seat a new player in the lobby.

        Raises:
            GameError: INVALID_TRANSITION after the lobby closes,
                CAPACITY_EXCEEDED when full, DUPLICATE_NAME when the name is taken

        """
        self._require_phase(GamePhase.LOBBY)
        if not 1 <= len(name.strip()) <= MAX_NAME_LENGTH:
            raise GameError(ErrorCode.OUT_OF_RANGE, f"Name must be 1-{MAX_NAME_LENGTH} characters")
        if len(self.players) >= MAX_PLAYERS:
            raise GameError(ErrorCode.CAPACITY_EXCEEDED, "Game is full")
        if any(p.name.lower() == name.lower() for p in self.players):
            raise GameError(ErrorCode.DUPLICATE_NAME, f"Name {name} is already taken")
        if self.get_player(player_id) is not None:
            raise GameError(ErrorCode.DUPLICATE_NAME, "Player already joined")

        player = Player(id=player_id, name=name)
        self._seat(player)
        return player

    def remove_player(self, player_id: str) -> bool:
        """Remove a player from the lobby.

        Returns:
            True if player was removed

        """
        self._require_phase(GamePhase.LOBBY)
        for i, player in enumerate(self.players):
            if player.id == player_id:
                self.players.pop(i)
                return True
        return False

    def is_empty(self) -> bool:
        """No humans are left at the table."""
        return not self.humans

    def set_speed(self, speed: float) -> None:
        """Change the pacing multiplier (applies to delays scheduled afterwards)."""
        if speed not in SPEED_SETTINGS:
            raise GameError(ErrorCode.OUT_OF_RANGE, f"Speed must be one of {SPEED_SETTINGS}")
        self.speed = speed

    def set_connected(self, player_id: str, connected: bool) -> None:
        player = self.require_player(player_id)
        player.is_connected = connected
        if connected:
            # A returning player takes the seat back from the CPU
            player.cpu_controlled = False
            self.cpu_replacement_votes.pop(player_id, None)

    def vote_cpu_replacement(self, voter_id: str, target_id: str, vote: bool) -> tuple[int, int]:
        """Vote on handing a disconnected player's seat to a CPU.

        The seat is handed over once every connected human has voted for it;
        it is handed back when the player reconnects.

        Args:
            voter_id: Connected human casting the vote
            target_id: Disconnected player the vote is about
            vote: True to vote for a CPU stand-in, False to withdraw the vote

        Returns:
            Votes in favour and votes needed

        Raises:
            GameError: INVALID_TRANSITION outside a running game, INVALID_STATE in
                single player or when the target is not a disconnected human seat

        """
        if self.phase in (GamePhase.LOBBY, GamePhase.GAME_END):
            raise GameError(ErrorCode.INVALID_TRANSITION, "No game in progress")
        if self.is_single_player:
            raise GameError(
                ErrorCode.INVALID_STATE, "CPU replacement voting is only for multiplayer games"
            )
        voter = self.require_player(voter_id)
        target = self.require_player(target_id)
        if voter.is_cpu or not voter.is_connected:
            raise GameError(ErrorCode.INVALID_STATE, "Only connected players can vote")
        if target.is_cpu or target.is_connected or target.cpu_controlled:
            raise GameError(ErrorCode.INVALID_STATE, "Player is not disconnected")

        votes = self.cpu_replacement_votes.setdefault(target_id, [])
        if vote and voter_id not in votes:
            votes.append(voter_id)
        elif not vote and voter_id in votes:
            votes.remove(voter_id)

        voters = {p.id for p in self.humans if p.is_connected and p.id != target_id}
        in_favour = sum(1 for pid in votes if pid in voters)
        if voters and in_favour >= len(voters):
            target.cpu_controlled = True
            del self.cpu_replacement_votes[target_id]
        return in_favour, len(voters)

    def replace_player_id(self, old_id: str, new_id: str) -> None:
        """Rebind a seat to a new player ID (reconnect or restore).

        Every reference to the old ID is rewritten, including the trick,
        the dealer draw, the round history and the running side game.
        """
        if self.get_player(new_id) is not None:
            raise GameError(ErrorCode.DUPLICATE_NAME, f"Player {new_id} is already seated")
        self.require_player(old_id).id = new_id

        for played in (*self.current_trick.cards, *self.dealer_cards):
            if played.player_id == old_id:
                played.player_id = new_id
        if self.current_trick.winner_id == old_id:
            self.current_trick.winner_id = new_id
        for round_result in self.round_history:
            for result in round_result.player_results:
                if result.player_id == old_id:
                    result.player_id = new_id

        if self.minigame is not None:
            game = self.minigame
            game.player_ids = [new_id if pid == old_id else pid for pid in game.player_ids]
            if game.current_player_id == old_id:
                game.current_player_id = new_id
            for finished in game.results:
                if finished.player_id == old_id:
                    finished.player_id = new_id
            if game.last_result is not None and game.last_result.player_id == old_id:
                game.last_result.player_id = new_id

        votes = self.cpu_replacement_votes.pop(old_id, None)
        if votes is not None:
            self.cpu_replacement_votes[new_id] = votes
        for voters in self.cpu_replacement_votes.values():
            voters[:] = [new_id if pid == old_id else pid for pid in voters]

    # ------------------------------------------------------------------
    # Dealer determination
    # ------------------------------------------------------------------

    def start(self, requester_id: str) -> bool:
        """Close the lobby and draw for dealer.

        Returns:
            True if the first draw already found a dealer

        """
        self._require_phase(GamePhase.LOBBY)
        self._require_host(requester_id)
        if not MIN_PLAYERS <= len(self.players) <= MAX_PLAYERS:
            raise GameError(
                ErrorCode.CAPACITY_EXCEEDED,
                f"Need {MIN_PLAYERS}-{MAX_PLAYERS} players to start",
            )

        self.phase = GamePhase.DETERMINING_DEALER
        self.dealer_contenders = list(range(len(self.players)))
        return self.deal_for_dealer()

    def deal_for_dealer(self) -> bool:
        """Deal one card to each contender; the single highest rank deals.

        On a tie only the tied players stay in the draw and the caller
        deals again.

        Returns:
            True if a dealer was chosen

        """
        self._require_phase(GamePhase.DETERMINING_DEALER)
        if not self.dealer_contenders:
            raise GameError(ErrorCode.INVALID_STATE, "Dealer already chosen")

        deck = shuffle(new_deck(), self.rng)
        self.dealer_cards = [
            PlayedCard(self.players[seat].id, deck[i])
            for i, seat in enumerate(self.dealer_contenders)
        ]

        best = max(pc.card.value for pc in self.dealer_cards)
        tied = [
            seat
            for seat, pc in zip(self.dealer_contenders, self.dealer_cards, strict=True)
            if pc.card.value == best
        ]
        if len(tied) > 1:
            self.dealer_contenders = tied
            return False

        self.dealer_contenders = []
        self._set_dealer(tied[0])
        return True

    def determine_dealer(self) -> int:
        """Draw until a dealer is found, without pauses.

        Returns:
            Seat of the dealer

        """
        while not self.deal_for_dealer():
            pass
        return self.dealer_index

    def _set_dealer(self, seat: int) -> None:
        self.dealer_index = seat
        for i, player in enumerate(self.players):
            player.is_dealer = i == seat

    def begin_first_round(self) -> None:
        """Leave dealer determination and deal round 1."""
        self._require_phase(GamePhase.DETERMINING_DEALER)
        if self.dealer_index < 0 or self.dealer_contenders:
            raise GameError(ErrorCode.INVALID_STATE, "Dealer not chosen yet")
        self._start_round(1)

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def _start_round(self, round_number: int) -> None:
        config = config_for(round_number)
        self.current_round = round_number
        self.card_count = config.card_count
        self.trump = config.trump
        self.double_points = config.double_points
        self.trick_number = 1
        self.trick_pending = False
        self.current_trick = Trick()
        self.dealer_cards = []

        for player in self.players:
            player.reset_round()

        deck = shuffle(new_deck(), self.rng)
        dealt = 0
        hands: list[list[Card]] = [[] for _ in self.players]
        for _ in range(self.card_count):
            for hand in hands:
                hand.append(deck[dealt])
                dealt += 1
        for player, hand in zip(self.players, hands, strict=True):
            player.hand = sort_hand(hand)

        all_cards = [c for p in self.players for c in p.hand]
        if len(set(all_cards)) != len(all_cards):
            raise GameInvariantError(f"Duplicate card dealt in round {round_number}")

        self.swap_deck = deck[dealt:] if self.is_keller else []
        if self.is_keller:
            self._update_blind_modes(round_number)

        self.phase = GamePhase.CALLING
        self.current_player_index = (self.dealer_index + 1) % len(self.players)

    def _update_blind_modes(self, round_number: int) -> None:
        for player in self.players:
            keller = player.keller
            if keller is None:
                continue

            if keller.blind_mode_starts_next_round and not keller.is_in_blind_mode:
                keller.is_in_blind_mode = True
                keller.blind_mode_starts_next_round = False
                if keller.blind_mode_started_round is None:
                    keller.blind_mode_started_round = round_number

            # Blind rounds still owed are forced once only that many rounds remain
            if (
                round_number >= BLIND_AUTO_TRIGGER_ROUND
                and keller.blind_rounds_completed < BLIND_ROUNDS_REQUIRED
                and not keller.is_in_blind_mode
            ):
                rounds_left = MAX_ROUNDS - round_number + 1
                if rounds_left <= keller.blind_rounds_remaining:
                    keller.is_in_blind_mode = True
                    if keller.blind_mode_started_round is None:
                        keller.blind_mode_started_round = round_number

            if keller.is_in_blind_mode and keller.blind_rounds_completed < BLIND_ROUNDS_REQUIRED:
                player.is_blind_calling = True

    def make_call(self, player_id: str, call: int) -> None:
        """Record a player's call and pass the turn on.

        When everyone has called, play starts with the seat left of the dealer.
        """
        self._require_phase(GamePhase.CALLING)
        player = self.require_player(player_id)
        rejection = validate_call(self, player, call)
        if rejection is not None:
            raise rejection.to_error()

        player.call = call
        if player.keller is not None:
            player.keller.record_call(call)

        if all(p.made_call() for p in self.players):
            self.phase = GamePhase.PLAYING
            self.current_player_index = (self.dealer_index + 1) % len(self.players)
        else:
            self.current_player_index = (self.current_player_index + 1) % len(self.players)

    def play_card(self, player_id: str, card: Card) -> str | None:
        """Play a card into the current trick.

        Returns:
            Winner's ID when this card completes the trick, else None

        """
        self._require_phase(GamePhase.PLAYING)
        if self.trick_pending:
            raise GameError(ErrorCode.INVALID_STATE, "Trick is still being shown")
        player = self._require_turn(player_id)
        if not player.has_card(card):
            raise GameError(ErrorCode.CARD_NOT_IN_HAND, f"{card} is not in your hand")
        lead_suit = self.current_trick.lead_suit
        if lead_suit is not None and card.suit != lead_suit and player.has_suit(lead_suit):
            raise GameError(ErrorCode.MUST_FOLLOW_SUIT, f"You must follow {lead_suit.value}")
        if any(pc.card == card for pc in self.current_trick.cards):
            raise GameInvariantError(f"{card} was already played in this trick")

        player.remove_card(card)
        self.current_trick.add_card(player_id, card)

        if not self.current_trick.is_complete(len(self.players)):
            self.current_player_index = (self.current_player_index + 1) % len(self.players)
            return None

        assert self.current_trick.lead_suit is not None
        winner_id = resolve_trick(self.current_trick.cards, self.current_trick.lead_suit, self.trump)
        self.current_trick.winner_id = winner_id
        self.require_player(winner_id).tricks_won += 1
        self.trick_pending = True
        return winner_id

    def advance_after_trick(self) -> None:
        """Clear a completed trick: the winner leads next, or the round ends."""
        self._require_phase(GamePhase.PLAYING)
        if not self.trick_pending:
            raise GameError(ErrorCode.INVALID_STATE, "No completed trick to clear")

        self.trick_pending = False
        if self.trick_number >= self.card_count:
            self._end_round()
            return

        winner_id = self.current_trick.winner_id
        if winner_id is None:
            raise GameInvariantError("Completed trick has no winner")
        self.trick_number += 1
        self.current_trick = Trick()
        self.current_player_index = self.seat_of(winner_id)

    def _end_round(self) -> None:
        result = RoundResult(round_number=self.current_round)
        for player in self.players:
            if player.call is None:
                continue

            multiplier = 1
            if self.is_keller and self.current_round == MAX_ROUNDS and player.keller is not None:
                multiplier = player.keller.brucie_multiplier
            round_score = score_round(
                player.call,
                player.tricks_won,
                double_points=self.double_points,
                multiplier=multiplier,
            )
            player.score += round_score
            result.player_results.append(
                PlayerRoundResult(
                    player_id=player.id,
                    player_name=player.name,
                    call=player.call,
                    tricks_won=player.tricks_won,
                    round_score=round_score,
                )
            )

            keller = player.keller
            if keller is not None:
                if player.is_blind_calling:
                    keller.blind_rounds_completed += 1
                    if keller.blind_rounds_completed >= BLIND_ROUNDS_REQUIRED:
                        keller.is_in_blind_mode = False
                player.is_blind_calling = False

        if self.is_keller and self.current_round == HALO_SCORE_ROUND:
            for player in self.players:
                if player.keller is not None and player.keller.halo_score is not None:
                    player.score += player.keller.halo_score

        self.round_history.append(result)
        self.phase = GamePhase.ROUND_END

    def next_round(self, requester_id: str) -> None:
        """Host moves on from the round summary."""
        self._require_phase(GamePhase.ROUND_END)
        self._require_host(requester_id)

        if self.current_round >= MAX_ROUNDS:
            self.phase = GamePhase.GAME_END
        elif self.is_keller and self.current_round == HALO_AFTER_ROUND:
            self.minigame = HaloMinigame(player_ids=[p.id for p in self.players], rng=self.rng)
            self.phase = GamePhase.HALO_MINIGAME
        elif self.is_keller and self.current_round == BRUCIE_AFTER_ROUND:
            self.minigame = BrucieBonus(player_ids=[p.id for p in self.players], rng=self.rng)
            self.phase = GamePhase.BRUCIE_BONUS
        else:
            self._proceed_to_next_round()

    def _proceed_to_next_round(self) -> None:
        self._set_dealer((self.dealer_index + 1) % len(self.players))
        self._start_round(self.current_round + 1)

    # ------------------------------------------------------------------
    # Keller extras
    # ------------------------------------------------------------------

    def start_blind_rounds(self, player_id: str) -> None:
        """Queue blind calling from the next round on."""
        keller = self._require_keller(player_id)
        if (
            keller.is_in_blind_mode
            or keller.blind_mode_starts_next_round
            or keller.blind_rounds_completed >= BLIND_ROUNDS_REQUIRED
        ):
            raise GameError(ErrorCode.INVALID_STATE, "Blind rounds already chosen")
        keller.blind_mode_starts_next_round = True

    def _require_round_one_choice(self, player_id: str) -> KellerPlayerState:
        keller = self._require_keller(player_id)
        self._require_phase(GamePhase.CALLING)
        if self.current_round != 1:
            raise GameError(ErrorCode.INVALID_TRANSITION, "Only possible in round 1")
        if keller.made_round_one_blind_choice:
            raise GameError(ErrorCode.INVALID_STATE, "Round 1 choice already made")
        return keller

    def start_blind_rounds_now(self, player_id: str) -> None:
        """Go blind immediately, from round 1."""
        keller = self._require_round_one_choice(player_id)
        keller.is_in_blind_mode = True
        keller.blind_mode_started_round = 1
        keller.made_round_one_blind_choice = True
        self.require_player(player_id).is_blind_calling = True

    def decline_blind_round_one(self, player_id: str) -> None:
        """See the round 1 hand instead of calling blind."""
        keller = self._require_round_one_choice(player_id)
        keller.made_round_one_blind_choice = True

    def use_swap(self, player_id: str, card: Card) -> Card:
        """Swap a hand card for the top undealt card, once per game.

        Returns:
            The card drawn into the hand

        """
        keller = self._require_keller(player_id)
        self._require_phase(GamePhase.CALLING)
        player = self._require_turn(player_id)
        if keller.swap_used:
            raise GameError(ErrorCode.INVALID_STATE, "Swap already used")
        if not player.has_card(card):
            raise GameError(ErrorCode.CARD_NOT_IN_HAND, f"{card} is not in your hand")
        if not self.swap_deck:
            raise GameError(ErrorCode.INVALID_STATE, "No cards left to swap")

        player.remove_card(card)
        drawn = self.swap_deck.pop(0)
        self.swap_deck.append(card)
        player.hand = sort_hand([*player.hand, drawn])
        keller.swap_used = True
        return drawn

    # ------------------------------------------------------------------
    # Side games
    # ------------------------------------------------------------------

    def _require_minigame(self, phase: GamePhase) -> Minigame:
        self._require_phase(phase)
        if self.minigame is None:
            raise GameInvariantError(f"Phase {phase.value} without side game state")
        return self.minigame

    def halo_guess(self, player_id: str, guess: Guess) -> RevealResult:
        halo = self._require_minigame(GamePhase.HALO_MINIGAME)
        return halo.guess(player_id, self.require_player(player_id).name, guess)

    def halo_bank(self, player_id: str) -> RevealResult:
        halo = self._require_minigame(GamePhase.HALO_MINIGAME)
        return halo.bank(player_id, self.require_player(player_id).name)

    def brucie_guess(self, player_id: str, guess: Guess) -> RevealResult:
        brucie = self._require_minigame(GamePhase.BRUCIE_BONUS)
        return brucie.guess(player_id, self.require_player(player_id).name, guess)

    def brucie_bank(self, player_id: str) -> RevealResult:
        brucie = self._require_minigame(GamePhase.BRUCIE_BONUS)
        return brucie.bank(player_id, self.require_player(player_id).name)

    def skip_brucie(self, player_id: str) -> RevealResult:
        brucie = self._require_minigame(GamePhase.BRUCIE_BONUS)
        if not isinstance(brucie, BrucieBonus):
            raise GameInvariantError("Brucie phase holds another side game")
        return brucie.skip(player_id, self.require_player(player_id).name)

    def acknowledge_minigame(self, requester_id: str) -> None:
        """Dismiss the shown side-game result and let the game move on."""
        self._require_phase(*MINIGAME_PHASES)
        self.require_player(requester_id)
        minigame = self._require_minigame(self.phase)
        finished = minigame.acknowledge()
        if finished is None:
            return

        keller = self.require_player(finished.player_id).keller
        if keller is None:
            raise GameInvariantError(f"Player {finished.player_id} has no Keller state")
        if isinstance(minigame, HaloMinigame):
            keller.halo_score = finished.value
        else:
            keller.brucie_multiplier = finished.value

    def continue_after_minigame(self, requester_id: str) -> None:
        """Host returns to the main game once everyone has played the side game."""
        self._require_phase(*MINIGAME_PHASES)
        self._require_host(requester_id)
        minigame = self._require_minigame(self.phase)
        if not minigame.is_complete:
            raise GameError(ErrorCode.INVALID_STATE, "Not everyone has played yet")
        self.minigame = None
        self._proceed_to_next_round()
