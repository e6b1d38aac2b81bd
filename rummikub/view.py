"""Per-viewer projections of a game.

A viewer sees their own hand; every other hand is reduced to a count.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .state import ChatMessage, GameEvent, GameState
from .tiles import Tile, tile_to_dict


@dataclass(frozen=True)
class PlayerSummary:
    id: str
    name: str
    hand_size: int
    has_played_initial: bool
    score: int
    is_bot: bool


@dataclass(frozen=True)
class GameView:
    game_id: str
    phase: str
    viewer_id: Optional[str]
    players: List[PlayerSummary]
    current_player_index: int
    current_player_id: Optional[str]
    board: List[List[Tile]]
    board_snapshot: List[List[Tile]]
    hand: List[Tile]
    deck_size: int
    turn_number: int
    winner_id: Optional[str]
    timer_enabled: bool
    remaining_time: Optional[float]
    stalled: bool
    chat: List[ChatMessage] = field(default_factory=list)
    log: List[GameEvent] = field(default_factory=list)

    @property
    def is_my_turn(self) -> bool:
        return self.viewer_id is not None and self.viewer_id == self.current_player_id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.game_id,
            "phase": self.phase,
            "players": [
                {
                    "id": p.id,
                    "name": p.name,
                    "handSize": p.hand_size,
                    "hasPlayedInitial": p.has_played_initial,
                    "score": p.score,
                    "isBot": p.is_bot,
                }
                for p in self.players
            ],
            "currentPlayerIndex": self.current_player_index,
            "currentPlayerId": self.current_player_id,
            "board": [[tile_to_dict(t) for t in meld] for meld in self.board],
            "boardSnapshot": [[tile_to_dict(t) for t in meld] for meld in self.board_snapshot],
            "playerHand": [tile_to_dict(t) for t in self.hand],
            "deckSize": self.deck_size,
            "turnNumber": self.turn_number,
            "winner": self.winner_id,
            "timerEnabled": self.timer_enabled,
            "remainingTime": self.remaining_time,
            "stalled": self.stalled,
            "chatMessages": [
                {"playerId": m.player_id, "playerName": m.player_name, "message": m.message, "timestamp": m.timestamp}
                for m in self.chat
            ],
            "gameLog": [
                {"playerId": e.player_id, "playerName": e.player_name, "action": e.action, "details": e.details, "timestamp": e.timestamp}
                for e in self.log
            ],
        }


def project(state: GameState, viewer_id: Optional[str], remaining_time: Optional[float] = None) -> GameView:
    viewer = state.find_player(viewer_id) if viewer_id is not None else None
    current = state.current_player() if state.started else None
    return GameView(
        game_id=state.id,
        phase=state.phase.value,
        viewer_id=viewer.id if viewer else None,
        players=[
            PlayerSummary(p.id, p.name, len(p.hand), p.has_played_initial, p.score, p.is_bot)
            for p in state.players
        ],
        current_player_index=state.current_player_index,
        current_player_id=current.id if current else None,
        board=[list(meld.tiles) for meld in state.board.melds],
        board_snapshot=[list(tiles) for tiles in state.snapshot.melds],
        hand=list(viewer.hand) if viewer else [],
        deck_size=len(state.deck),
        turn_number=state.turn_number,
        winner_id=state.winner_id,
        timer_enabled=state.timer_enabled,
        remaining_time=remaining_time,
        stalled=is_stalled(state),
        chat=list(state.chat),
        log=list(state.event_log),
    )


def is_stalled(state: GameState) -> bool:
    """True once the deck is gone and every player has passed in a row."""
    return state.is_live() and not state.deck and state.consecutive_passes >= len(state.players)
