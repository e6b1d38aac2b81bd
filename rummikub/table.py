from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .meld import Meld
from .tiles import Tile


@dataclass(frozen=True)
class BoardValidation:
    valid: bool
    invalid_set_index: Optional[int] = None
    reason: str = ""


@dataclass
class Board:
    melds: List[Meld] = field(default_factory=list)

    def copy(self) -> "Board":
        return Board([meld.copy() for meld in self.melds])

    def all_tiles(self) -> Iterable[Tile]:
        for meld in self.melds:
            for tile in meld.tiles:
                yield tile

    def tile_ids(self) -> Set[str]:
        return {tile.id for tile in self.all_tiles()}

    def tiles_by_id(self) -> Dict[str, Tile]:
        return {tile.id: tile for tile in self.all_tiles()}

    def validate(self, strict: bool = True) -> BoardValidation:
        for idx, meld in enumerate(self.melds):
            ok, reason = meld.is_valid(strict)
            if not ok:
                return BoardValidation(False, idx, reason)
        return BoardValidation(True)

    def layout(self) -> List[List[str]]:
        return [meld.tile_ids() for meld in self.melds]


@dataclass(frozen=True)
class BoardSnapshot:
    melds: Tuple[Tuple[Tile, ...], ...] = ()

    @classmethod
    def take(cls, board: Board) -> "BoardSnapshot":
        return cls(tuple(tuple(meld.tiles) for meld in board.melds))

    def restore(self) -> Board:
        return Board([Meld(list(tiles)) for tiles in self.melds])

    def tile_ids(self) -> Set[str]:
        return {tile.id for tiles in self.melds for tile in tiles}


def tiles_added_since(board: Board, snapshot: BoardSnapshot) -> List[Tile]:
    """Tiles on the board now that were not there when the snapshot was taken."""
    before = snapshot.tile_ids()
    return [tile for tile in board.all_tiles() if tile.id not in before]


def tiles_removed_since(board: Board, snapshot: BoardSnapshot) -> List[Tile]:
    now = board.tile_ids()
    return [tile for tiles in snapshot.melds for tile in tiles if tile.id not in now]
