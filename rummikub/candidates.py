from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

import structlog

from .meld import calculate_set_value, is_valid_group, is_valid_run, is_valid_set
from .move import Move
from .rules import Ruleset
from .state import Player
from .table import Board
from .tiles import Color, Joker, NumberedTile, Tile, split_jokers, tile_label

logger = structlog.get_logger()


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


@dataclass(frozen=True)
class MeldCandidate:
    tiles: Tuple[Tile, ...]
    value: int

    @property
    def key(self) -> FrozenSet[str]:
        return frozenset(tile.id for tile in self.tiles)

    def tile_ids(self) -> List[str]:
        return [tile.id for tile in self.tiles]


def _jokers(hand: Sequence[Tile]) -> List[Tile]:
    return [tile for tile in hand if isinstance(tile, Joker)]


def _run_candidates(hand: Sequence[Tile]) -> Iterable[List[Tile]]:
    jokers = _jokers(hand)
    by_color: Dict[Color, List[NumberedTile]] = {}
    for tile in hand:
        if isinstance(tile, NumberedTile):
            by_color.setdefault(tile.color, []).append(tile)

    for color_tiles in by_color.values():
        color_tiles.sort(key=lambda t: t.number)
        for start in range(len(color_tiles)):
            run: List[Tile] = [color_tiles[start]]
            last = color_tiles[start].number
            jokers_used = 0
            for tile in color_tiles[start + 1 :]:
                if tile.number == last + 1:
                    run.append(tile)
                    last = tile.number
                elif tile.number > last + 1:
                    gap = tile.number - last - 1
                    if jokers_used + gap > len(jokers):
                        break
                    run.extend(jokers[jokers_used : jokers_used + gap])
                    jokers_used += gap
                    run.append(tile)
                    last = tile.number
            if len(run) < 3:
                continue
            yield list(run)
            for i in range(len(run) - 2):
                for j in range(i + 3, len(run) + 1):
                    if j - i != len(run):
                        yield run[i:j]


def _group_candidates(hand: Sequence[Tile]) -> Iterable[List[Tile]]:
    jokers = _jokers(hand)
    by_number: Dict[int, Dict[Color, NumberedTile]] = {}
    for tile in hand:
        if isinstance(tile, NumberedTile):
            by_number.setdefault(tile.number, {}).setdefault(tile.color, tile)

    for distinct in by_number.values():
        tiles = list(distinct.values())
        if len(tiles) >= 3:
            yield tiles
            if len(tiles) == 4:
                for combo in combinations(tiles, 3):
                    yield list(combo)
        elif len(tiles) == 2 and jokers:
            yield tiles + [jokers[0]]


def _scanned_candidates(hand: Sequence[Tile]) -> Iterable[List[Tile]]:
    for i, j, k in combinations(range(len(hand)), 3):
        triple = [hand[i], hand[j], hand[k]]
        if not is_valid_set(triple):
            continue
        yield triple
        for extra in hand[k + 1 :]:
            yield triple + [extra]


def find_possible_sets(hand: Sequence[Tile]) -> List[MeldCandidate]:
    """Every distinct valid meld that can be laid straight from ``hand``."""
    found: Dict[FrozenSet[str], MeldCandidate] = {}
    sources = (_run_candidates(hand), _group_candidates(hand), _scanned_candidates(hand))
    for source in sources:
        for tiles in source:
            key = frozenset(tile.id for tile in tiles)
            if key in found or len(key) != len(tiles):
                continue
            if not is_valid_set(tiles):
                continue
            found[key] = MeldCandidate(tuple(tiles), calculate_set_value(tiles))
    return list(found.values())


class BotStrategist:
    def __init__(self, difficulty: Difficulty = Difficulty.MEDIUM, ruleset: Optional[Ruleset] = None, rng: Optional[random.Random] = None) -> None:
        self.difficulty = Difficulty(difficulty)
        self.ruleset = ruleset or Ruleset()
        self.rng = rng or random.Random()

    def choose_action(self, player: Player, board: Board, deck_size: int) -> Move:
        move = self.play_complete_set(player)
        if move is None and board.melds:
            move = self.extend_board_meld(player, board)
        if move is None and player.consecutive_draws >= self.ruleset.aggressive_after_draws:
            move = self.aggressive_play(player, board)
        if move is not None:
            return move
        if deck_size > 0:
            return Move.draw()
        logger.info("bot has no play and the deck is empty", player_id=player.id)
        return Move.skip("passed with an empty deck")

    def choose_candidate(self, candidates: Sequence[MeldCandidate]) -> Optional[MeldCandidate]:
        if not candidates:
            return None
        ranked = sorted(candidates, key=lambda c: c.value, reverse=True)
        if self.difficulty == Difficulty.HARD:
            return ranked[0]
        if self.difficulty == Difficulty.EASY:
            return self.rng.choice(ranked[-3:])
        return self.rng.choice(ranked[:2])

    def play_complete_set(self, player: Player) -> Optional[Move]:
        candidates = find_possible_sets(player.hand)
        if not player.has_played_initial:
            candidates = [c for c in candidates if c.value >= self.ruleset.initial_meld_min_points]
        chosen = self.choose_candidate(candidates)
        if chosen is None:
            return None
        logger.debug(
            "bot chose set",
            player_id=player.id,
            tiles=[tile_label(t) for t in chosen.tiles],
            value=chosen.value,
            options=len(candidates),
        )
        return Move.play(chosen.tile_ids())

    def extend_board_meld(self, player: Player, board: Board) -> Optional[Move]:
        if not player.has_played_initial:
            return None
        for tile in player.hand:
            if isinstance(tile, Joker):
                continue
            move = self._attach(tile, board, "added to existing set")
            if move is not None:
                return move
        return None

    def aggressive_play(self, player: Player, board: Board) -> Optional[Move]:
        numbered, joker_count = split_jokers(player.hand)
        jokers = _jokers(player.hand)
        if not jokers:
            return None
        logger.info("bot playing aggressively", player_id=player.id, draws=player.consecutive_draws)

        if player.has_played_initial:
            move = self._attach(jokers[0], board, "added a joker to an existing set")
            if move is not None:
                return move

        for first, second in combinations(numbered, 2):
            bridged = first.color == second.color and abs(first.number - second.number) == 2
            paired = first.number == second.number and first.color != second.color
            if not (bridged or paired):
                continue
            tiles = [first, jokers[0], second] if bridged else [first, second, jokers[0]]
            if not is_valid_set(tiles):
                continue
            if not player.has_played_initial and calculate_set_value(tiles) < self.ruleset.initial_meld_min_points:
                continue
            return Move.play([t.id for t in tiles], description="made an aggressive play")

        if joker_count >= 2 and numbered:
            for tile in sorted(numbered, key=lambda t: t.number, reverse=True):
                tiles = [tile, jokers[0], jokers[1]]
                if not is_valid_set(tiles):
                    continue
                if not player.has_played_initial and calculate_set_value(tiles) < self.ruleset.initial_meld_min_points:
                    continue
                return Move.play([t.id for t in tiles], description="made a desperate play with two jokers")
        return None

    def _attach(self, tile: Tile, board: Board, description: str) -> Optional[Move]:
        for idx, meld in enumerate(board.melds):
            if is_valid_run(meld.tiles):
                if is_valid_run(meld.tiles + [tile]):
                    return Move.play([tile.id], idx, description)
            if is_valid_group(meld.tiles) and len(meld.tiles) < 4:
                if is_valid_group(meld.tiles + [tile]):
                    return Move.play([tile.id], idx, description)
        return None
