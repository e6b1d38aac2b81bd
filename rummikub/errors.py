"""Errors raised by the engine.

Everything under :class:`RummikubError` is recoverable and reported only to
the actor that made the request; the game is left untouched. An
:class:`InvariantViolation` means the game state is desynchronized.
"""

from __future__ import annotations

from typing import Optional


class RummikubError(Exception):
    code = "ERROR"


class ValidationError(RummikubError):
    code = "VALIDATION"


class InvalidSet(ValidationError):
    code = "INVALID_SET"


class InsufficientInitialValue(ValidationError):
    code = "INSUFFICIENT_INITIAL_VALUE"

    def __init__(self, value: int, required: int) -> None:
        super().__init__(f"initial play must score at least {required}, got {value}")
        self.value = value
        self.required = required


class TileNotOwned(ValidationError):
    code = "TILE_NOT_OWNED"


class TurnError(RummikubError):
    code = "TURN"


class NotYourTurn(TurnError):
    code = "NOT_YOUR_TURN"


class GameNotStarted(TurnError):
    code = "GAME_NOT_STARTED"


class GameAlreadyStarted(TurnError):
    code = "GAME_ALREADY_STARTED"


class GameOver(TurnError):
    code = "GAME_OVER"


class CapacityError(RummikubError):
    code = "CAPACITY"


class GameFull(CapacityError):
    code = "GAME_FULL"


class InsufficientPlayers(CapacityError):
    code = "INSUFFICIENT_PLAYERS"


class ResourceError(RummikubError):
    code = "RESOURCE"


class DeckEmpty(ResourceError):
    code = "DECK_EMPTY"


class StateError(RummikubError):
    code = "STATE"


class InvalidBoardState(StateError):
    code = "INVALID_BOARD_STATE"

    def __init__(self, index: int, reason: str = "") -> None:
        message = f"board has an invalid set at index {index}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.index = index


class IllegalRearrangement(StateError):
    code = "ILLEGAL_REARRANGEMENT"


class GameNotFound(RummikubError):
    code = "NOT_FOUND"

    def __init__(self, game_id: str) -> None:
        super().__init__(f"game {game_id} not found")
        self.game_id = game_id


class PlayerNotFound(RummikubError):
    code = "PLAYER_NOT_FOUND"


class InvariantViolation(RuntimeError):
    def __init__(self, message: str, tile_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.tile_id = tile_id
