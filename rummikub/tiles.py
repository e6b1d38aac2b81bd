from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

MIN_NUMBER = 1
MAX_NUMBER = 13


class Color(str, Enum):
    RED = "red"
    BLUE = "blue"
    YELLOW = "yellow"
    BLACK = "black"


COLORS = tuple(Color)


@dataclass(frozen=True)
class NumberedTile:
    id: str
    color: Color
    number: int

    def __post_init__(self) -> None:
        if not isinstance(self.color, Color):
            object.__setattr__(self, "color", Color(self.color))
        if not MIN_NUMBER <= self.number <= MAX_NUMBER:
            raise ValueError(f"tile number out of range: {self.number}")

    @property
    def is_joker(self) -> bool:
        return False


@dataclass(frozen=True)
class Joker:
    id: str

    @property
    def is_joker(self) -> bool:
        return True


Tile = Union[NumberedTile, Joker]


def is_joker(tile: Tile) -> bool:
    return isinstance(tile, Joker)


def split_jokers(tiles: Iterable[Tile]) -> tuple[List[NumberedTile], int]:
    numbered: List[NumberedTile] = []
    jokers = 0
    for tile in tiles:
        if isinstance(tile, Joker):
            jokers += 1
        else:
            numbered.append(tile)
    return numbered, jokers


def tile_label(tile: Tile) -> str:
    if isinstance(tile, Joker):
        return "joker"
    return f"{tile.color.value}_{tile.number}"


def iter_full_deck(values: int = MAX_NUMBER, copies: int = 2, num_jokers: int = 2) -> Iterable[Tile]:
    for copy in range(copies):
        for color in COLORS:
            for number in range(MIN_NUMBER, values + 1):
                yield NumberedTile(f"{color.value}_{number}_{copy}", color, number)
    for n in range(1, num_jokers + 1):
        yield Joker(f"joker_{n}")


def new_deck(
    values: int = MAX_NUMBER,
    copies: int = 2,
    num_jokers: int = 2,
    rng: Optional[random.Random] = None,
) -> List[Tile]:
    deck = list(iter_full_deck(values, copies, num_jokers))
    (rng or random.Random()).shuffle(deck)
    return deck


def tile_to_dict(tile: Tile) -> Dict[str, Any]:
    if isinstance(tile, Joker):
        return {"id": tile.id, "isJoker": True}
    return {"id": tile.id, "color": tile.color.value, "number": tile.number, "isJoker": False}


def tile_from_dict(data: Dict[str, Any]) -> Tile:
    if data.get("isJoker"):
        return Joker(data["id"])
    return NumberedTile(data["id"], Color(data["color"]), int(data["number"]))
