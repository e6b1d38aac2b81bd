from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class MoveKind(str, Enum):
    DRAW = "DRAW"
    PASS = "PASS"
    PLAY = "PLAY"


@dataclass(frozen=True)
class Move:
    kind: MoveKind
    tile_ids: Tuple[str, ...] = ()
    set_index: Optional[int] = None
    description: str = ""

    @staticmethod
    def draw() -> "Move":
        return Move(MoveKind.DRAW, description="drew a tile")

    @staticmethod
    def skip(reason: str = "passed") -> "Move":
        return Move(MoveKind.PASS, description=reason)

    @staticmethod
    def play(tile_ids, set_index: Optional[int] = None, description: str = "played a set from hand") -> "Move":
        return Move(MoveKind.PLAY, tuple(tile_ids), set_index, description)
