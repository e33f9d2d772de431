"""Game errors."""

from whist.models.enums import ErrorCode


class GameError(Exception):
    """A rejected player action.

    Raised by model operations after validation and before any mutation,
    so a rejected action never leaves partial state behind.

    Attributes:
        code: Machine-readable error code
        message: Human-readable explanation

    """

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = code
        self.message = message or code.value
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"GameError({self.code.name}, {self.message!r})"


class GameInvariantError(RuntimeError):
    """Internal state is inconsistent (a defect, not a player mistake)."""
