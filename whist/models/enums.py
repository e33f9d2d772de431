"""Enums for the game."""

from enum import Enum, StrEnum


class Suit(str, Enum):
    """Card suits, declared in hand display order."""

    SPADES = "spades"
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"


class Rank(str, Enum):
    """Card ranks from deuce to ace."""

    TWO = "2"
    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"

    @property
    def value_number(self) -> int:
        """Numeric value of the rank (2..14, ace high)."""
        return _RANK_VALUES[self]


_RANK_VALUES = {rank: index + 2 for index, rank in enumerate(Rank)}


class GamePhase(str, Enum):
    """Phases of a game's lifecycle."""

    LOBBY = "lobby"
    DETERMINING_DEALER = "determining_dealer"
    CALLING = "calling"
    PLAYING = "playing"
    ROUND_END = "round_end"
    HALO_MINIGAME = "halo_minigame"
    BRUCIE_BONUS = "brucie_bonus"
    GAME_END = "game_end"


class GameFormat(str, Enum):
    """Rulesets."""

    TRADITIONAL = "traditional"
    KELLER = "keller"


class Guess(str, Enum):
    """Mini-game guesses about the next revealed card."""

    HIGHER = "higher"
    LOWER = "lower"
    SAME = "same"


class Command(str, Enum):
    """WebSocket commands."""

    # Commands sent to players
    INIT = "INIT"
    JOINED = "JOINED"
    LEFT = "LEFT"
    GAME_STATE = "GAME_STATE"  # Full redacted state
    GAME_SAVED = "GAME_SAVED"
    CPU_REPLACEMENT_VOTE = "CPU_REPLACEMENT_VOTE"
    CPU_REPLACEMENT_ACTIVATED = "CPU_REPLACEMENT_ACTIVATED"
    REPORT_ERROR = "REPORT_ERROR"

    # Commands from client
    START_GAME = "START_GAME"
    MAKE_CALL = "MAKE_CALL"
    PLAY_CARD = "PLAY_CARD"
    NEXT_ROUND = "NEXT_ROUND"
    SET_SPEED = "SET_SPEED"
    REQUEST_STATE = "REQUEST_STATE"
    START_BLIND_ROUNDS = "START_BLIND_ROUNDS"
    START_BLIND_ROUNDS_NOW = "START_BLIND_ROUNDS_NOW"
    DECLINE_BLIND_ROUND_ONE = "DECLINE_BLIND_ROUND_ONE"
    USE_SWAP = "USE_SWAP"
    HALO_GUESS = "HALO_GUESS"
    HALO_BANK = "HALO_BANK"
    BRUCIE_GUESS = "BRUCIE_GUESS"
    BRUCIE_BANK = "BRUCIE_BANK"
    SKIP_BRUCIE = "SKIP_BRUCIE"
    MINIGAME_ACKNOWLEDGE = "MINIGAME_ACKNOWLEDGE"
    MINIGAME_CONTINUE = "MINIGAME_CONTINUE"
    SAVE_GAME = "SAVE_GAME"
    VOTE_CPU_REPLACEMENT = "VOTE_CPU_REPLACEMENT"


class ErrorCode(StrEnum):
    """Error codes for i18n translation on the frontend."""

    # Phase and turn errors
    INVALID_TRANSITION = "error.invalidTransition"
    INVALID_STATE = "error.invalidState"
    NOT_YOUR_TURN = "error.notYourTurn"
    NOT_HOST = "error.notHost"

    # Call errors
    OUT_OF_RANGE = "error.outOfRange"
    DEALER_RESTRICTION = "error.dealerRestriction"
    CONSECUTIVE_ZERO_RESTRICTION = "error.consecutiveZeroRestriction"

    # Card errors
    CARD_NOT_IN_HAND = "error.cardNotInHand"
    MUST_FOLLOW_SUIT = "error.mustFollowSuit"

    # Lobby and lookup errors
    NOT_FOUND = "error.notFound"
    CAPACITY_EXCEEDED = "error.capacityExceeded"
    DUPLICATE_NAME = "error.duplicateName"

    # Transport errors
    INVALID_MESSAGE = "error.invalidMessage"
    INTERNAL_ERROR = "error.internalError"
