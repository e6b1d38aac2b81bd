"""Meld validation and scoring.

Every check goes through :func:`resolve_meld`, so validation, scoring and
arrangement always agree on what a joker stands for.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from .tiles import COLORS, MAX_NUMBER, MIN_NUMBER, Color, Joker, Tile, split_jokers, tile_label


class MeldKind(str, Enum):
    RUN = "RUN"
    GROUP = "GROUP"


@dataclass(frozen=True)
class RunResolution:
    color: Color
    start: int
    length: int

    @property
    def end(self) -> int:
        return self.start + self.length - 1

    def numbers(self) -> List[int]:
        return list(range(self.start, self.end + 1))

    def value(self) -> int:
        return sum(self.numbers())


@dataclass(frozen=True)
class MeldResolution:
    kind: MeldKind
    value: int
    run: Optional[RunResolution] = None
    number: Optional[int] = None


def resolve_run(tiles: Sequence[Tile]) -> Optional[RunResolution]:
    if len(tiles) < 3:
        return None
    numbered, jokers = split_jokers(tiles)
    if not numbered:
        return None
    colors = {tile.color for tile in numbered}
    if len(colors) > 1:
        return None
    color = numbered[0].color
    nums = sorted(tile.number for tile in numbered)
    length = len(tiles)

    if jokers == 0:
        for prev, cur in zip(nums, nums[1:]):
            if cur != prev + 1:
                return None
        return RunResolution(color, nums[0], length)

    for start in range(max(MIN_NUMBER, nums[0] - jokers), nums[0] + 1):
        end = start + length - 1
        if end > MAX_NUMBER:
            continue
        needed = 0
        placed = 0
        for pos in range(start, end + 1):
            if placed < len(nums) and nums[placed] == pos:
                placed += 1
            else:
                needed += 1
        if needed == jokers and placed == len(nums):
            return RunResolution(color, start, length)
    return None


def _group_number(tiles: Sequence[Tile]) -> Tuple[bool, Optional[int]]:
    if not 3 <= len(tiles) <= 4:
        return False, None
    numbered, jokers = split_jokers(tiles)
    if not numbered:
        return True, None
    if len({tile.number for tile in numbered}) > 1:
        return False, None
    used_colors = {tile.color for tile in numbered}
    if len(used_colors) != len(numbered):
        return False, None
    if jokers > len(COLORS) - len(used_colors):
        return False, None
    if len(numbered) + jokers > len(COLORS):
        return False, None
    return True, numbered[0].number


def resolve_meld(tiles: Sequence[Tile]) -> Optional[MeldResolution]:
    """Classify a tile list as a group or run and compute its value.

    Groups are tried first: one numbered tile plus two jokers reads as a
    group worth ``number * 3``.
    """
    if len(tiles) < 3:
        return None
    is_group, number = _group_number(tiles)
    if is_group:
        value = number * len(tiles) if number is not None else 0
        return MeldResolution(MeldKind.GROUP, value, number=number)
    run = resolve_run(tiles)
    if run is not None:
        return MeldResolution(MeldKind.RUN, run.value(), run=run)
    return None


def is_valid_run(tiles: Sequence[Tile]) -> bool:
    return resolve_run(tiles) is not None


def is_valid_group(tiles: Sequence[Tile]) -> bool:
    return _group_number(tiles)[0]


def is_valid_set(tiles: Sequence[Tile]) -> bool:
    return resolve_meld(tiles) is not None


def calculate_set_value(tiles: Sequence[Tile]) -> int:
    resolution = resolve_meld(tiles)
    return resolution.value if resolution is not None else 0


def is_valid_partial_set(tiles: Sequence[Tile], strict: bool = True) -> bool:
    if not strict and len(tiles) < 3:
        return True
    return is_valid_set(tiles)


def arrange_meld(tiles: Sequence[Tile]) -> List[Tile]:
    """Order a run by position, with each joker in the slot it fills."""
    resolution = resolve_meld(tiles)
    if resolution is None or resolution.run is None:
        return list(tiles)
    numbered, _ = split_jokers(tiles)
    by_number = {tile.number: tile for tile in numbered}
    jokers = [tile for tile in tiles if isinstance(tile, Joker)]
    arranged: List[Tile] = []
    for pos in resolution.run.numbers():
        if pos in by_number:
            arranged.append(by_number[pos])
        else:
            arranged.append(jokers.pop(0))
    return arranged


def hand_penalty(tiles: Iterable[Tile], joker_penalty: int = 30) -> int:
    return sum(joker_penalty if isinstance(tile, Joker) else tile.number for tile in tiles)


@dataclass
class Meld:
    tiles: List[Tile] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tiles)

    def tile_ids(self) -> List[str]:
        return [tile.id for tile in self.tiles]

    def resolve(self) -> Optional[MeldResolution]:
        return resolve_meld(self.tiles)

    def value(self) -> int:
        return calculate_set_value(self.tiles)

    def is_valid(self, strict: bool = True) -> Tuple[bool, str]:
        if strict and len(self.tiles) < 3:
            return False, "meld too short"
        if not is_valid_partial_set(self.tiles, strict):
            return False, "not a run or group: " + ", ".join(tile_label(t) for t in self.tiles)
        return True, ""

    def copy(self) -> "Meld":
        return Meld(list(self.tiles))
