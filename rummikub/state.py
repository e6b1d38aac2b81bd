from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from .errors import InvariantViolation, PlayerNotFound
from .rules import Ruleset
from .table import Board, BoardSnapshot
from .tiles import Tile


class GamePhase(str, Enum):
    WAITING_FOR_PLAYERS = "WAITING_FOR_PLAYERS"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    ABANDONED = "ABANDONED"


@dataclass
class Player:
    id: str
    name: str
    hand: List[Tile] = field(default_factory=list)
    has_played_initial: bool = False
    score: int = 0
    is_bot: bool = False
    consecutive_draws: int = 0
    opened_this_turn: bool = False

    def find_tile(self, tile_id: str) -> Optional[Tile]:
        for tile in self.hand:
            if tile.id == tile_id:
                return tile
        return None

    def take_tiles(self, tile_ids: Iterable[str]) -> List[Tile]:
        wanted = set(tile_ids)
        taken = [tile for tile in self.hand if tile.id in wanted]
        self.hand = [tile for tile in self.hand if tile.id not in wanted]
        return taken


@dataclass
class GameEvent:
    player_id: str
    player_name: str
    action: str
    details: str = ""
    timestamp: float = field(default_factory=time.time)


@dataclass
class ChatMessage:
    player_id: str
    player_name: str
    message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class GameState:
    id: str
    ruleset: Ruleset
    players: List[Player] = field(default_factory=list)
    current_player_index: int = 0
    deck: List[Tile] = field(default_factory=list)
    board: Board = field(default_factory=Board)
    snapshot: BoardSnapshot = field(default_factory=BoardSnapshot)
    phase: GamePhase = GamePhase.WAITING_FOR_PLAYERS
    winner_id: Optional[str] = None
    turn_number: int = 0
    consecutive_passes: int = 0
    timer_enabled: bool = False
    turn_deadline: Optional[float] = None
    debug_mode: bool = False
    event_log: List[GameEvent] = field(default_factory=list)
    chat: List[ChatMessage] = field(default_factory=list)

    @property
    def started(self) -> bool:
        return self.phase != GamePhase.WAITING_FOR_PLAYERS

    def is_live(self) -> bool:
        return self.phase == GamePhase.IN_PROGRESS and self.winner_id is None

    def current_player(self) -> Optional[Player]:
        if not self.players:
            return None
        return self.players[self.current_player_index]

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def get_player(self, player_id: str) -> Player:
        player = self.find_player(player_id)
        if player is None:
            raise PlayerNotFound(f"player {player_id} is not in game {self.id}")
        return player

    def winner(self) -> Optional[Player]:
        if self.winner_id is None:
            return None
        return self.find_player(self.winner_id)

    def log(self, player: Player, action: str, details: str = "", limit: int = 50) -> None:
        self.event_log.append(GameEvent(player.id, player.name, action, details))
        if len(self.event_log) > limit:
            del self.event_log[: len(self.event_log) - limit]


def tile_owners(state: GameState) -> Dict[str, List[str]]:
    owners: Dict[str, List[str]] = {}
    for tile in state.deck:
        owners.setdefault(tile.id, []).append("deck")
    for player in state.players:
        for tile in player.hand:
            owners.setdefault(tile.id, []).append(f"hand:{player.id}")
    for idx, meld in enumerate(state.board.melds):
        for tile in meld.tiles:
            owners.setdefault(tile.id, []).append(f"board:{idx}")
    return owners


def assert_unique_ownership(state: GameState) -> None:
    """Raise if a tile sits in two places at once or tiles went missing."""
    owners = tile_owners(state)
    for tile_id, places in owners.items():
        if len(places) > 1:
            raise InvariantViolation(f"tile {tile_id} owned by {', '.join(places)}", tile_id=tile_id)
    if state.started and len(owners) != state.ruleset.deck_size():
        raise InvariantViolation(
            f"game {state.id} accounts for {len(owners)} tiles, expected {state.ruleset.deck_size()}"
        )


