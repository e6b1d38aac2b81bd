"""Per-player facade over the registry, for transports and agents."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

import structlog

from .engine import GameEngine
from .errors import GameNotStarted, RummikubError
from .registry import GameRegistry
from .state import ChatMessage, GamePhase
from .table import BoardValidation
from .tiles import Tile
from .view import GameView

logger = structlog.get_logger()


class PlayerSession:
    """Operations on behalf of one connected player.

    The player id comes from whoever manages connections; the session only
    remembers which game that player is in.
    """

    def __init__(self, registry: GameRegistry, player_id: str) -> None:
        self.registry = registry
        self.player_id = player_id
        self.game_id: Optional[str] = None

    # Session lifecycle -------------------------------------------------

    def create_game(self, name: str, timer_enabled: bool = False, debug_mode: bool = False) -> Tuple[str, GameView]:
        engine = self.registry.create_game(timer_enabled=timer_enabled, debug_mode=debug_mode)
        engine.add_player(self.player_id, name)
        self.game_id = engine.game_id
        return engine.game_id, engine.get_state(self.player_id)

    def create_bot_game(self, name: str, bot_count: int = 1, difficulty: Optional[str] = None) -> Tuple[str, GameView]:
        engine = self.registry.create_game(bot_difficulty=difficulty)
        engine.add_player(self.player_id, name)
        for _ in range(bot_count):
            engine.add_bot_player()
        engine.start_game()
        self.game_id = engine.game_id
        logger.info("bot game created", game_id=engine.game_id, player_id=self.player_id, bots=bot_count)
        return engine.game_id, engine.get_state(self.player_id)

    def join_game(self, game_id: str, name: str) -> GameView:
        engine = self.registry.get(game_id)
        engine.add_player(self.player_id, name)
        self.game_id = engine.game_id
        return engine.get_state(self.player_id)

    def start_game(self) -> GameView:
        engine = self._engine()
        engine.start_game()
        return engine.get_state(self.player_id)

    def leave_game(self) -> None:
        """Leave the current game; a game that is already running is abandoned."""
        if self.game_id is None:
            return
        engine = self.registry.get(self.game_id)
        if engine.state.phase == GamePhase.WAITING_FOR_PLAYERS:
            engine.remove_player(self.player_id)
            if not engine.state.players:
                self.registry.delete(engine.game_id)
        else:
            self.registry.delete(engine.game_id)
        logger.info("player left", game_id=self.game_id, player_id=self.player_id)
        self.game_id = None

    # Turn actions ------------------------------------------------------

    def play_set(self, tile_ids: Sequence[str], set_index: Optional[int] = None) -> GameView:
        engine = self._engine()
        engine.play_set(self.player_id, tile_ids, set_index)
        return engine.get_state(self.player_id)

    def play_multiple_sets(self, set_arrays: Sequence[Sequence[str]]) -> GameView:
        engine = self._engine()
        engine.play_multiple_sets(self.player_id, set_arrays)
        return engine.get_state(self.player_id)

    def draw_tile(self) -> Tile:
        return self._engine().draw_tile(self.player_id)

    def update_board(self, layout: Sequence[Sequence[str]]) -> GameView:
        return self._engine().update_board(self.player_id, layout)

    def end_turn(self) -> GameView:
        return self._engine().end_turn(self.player_id)

    def request_undo_turn(self) -> List[Tile]:
        return self._engine().request_undo_turn(self.player_id)

    def validate_board(self, is_end_turn: bool = True) -> BoardValidation:
        return self._engine().validate_board_state(is_end_turn)

    # Reads and chat ----------------------------------------------------

    def get_state(self) -> GameView:
        return self._engine().get_state(self.player_id)

    def send_message(self, text: str) -> ChatMessage:
        if not text.strip():
            raise RummikubError("empty chat message")
        return self._engine().add_chat_message(self.player_id, text)

    def _engine(self) -> GameEngine:
        if self.game_id is None:
            raise GameNotStarted("not in a game")
        return self.registry.get(self.game_id)
