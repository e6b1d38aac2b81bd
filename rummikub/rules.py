from dataclasses import dataclass

from .tiles import COLORS


@dataclass(frozen=True)
class Ruleset:
    min_players: int = 2
    max_players: int = 4
    values: int = 13
    copies_per_tiletype: int = 2
    num_jokers: int = 2
    initial_hand_size: int = 14
    initial_meld_min_points: int = 30
    aggressive_after_draws: int = 3
    joker_penalty: int = 30

    def deck_size(self) -> int:
        normal_tiles = len(COLORS) * self.values * self.copies_per_tiletype
        return normal_tiles + self.num_jokers
