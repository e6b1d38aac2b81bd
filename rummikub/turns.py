"""Turn sequencing, dealing, snapshots and the per-game turn timer."""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import structlog

from .errors import GameAlreadyStarted, GameNotStarted, GameOver, InsufficientPlayers, NotYourTurn
from .scheduler import TURN_TIMER, TaskScheduler
from .state import GamePhase, GameState, Player
from .table import BoardSnapshot, BoardValidation, tiles_added_since
from .tiles import Color, Joker, NumberedTile, Tile

logger = structlog.get_logger()

# Three 13s, blue 1-2-3, three 4s, black 5-6-7, and red 10-11 with a joker.
DEBUG_HAND: Tuple[Tuple[Optional[Color], Optional[int]], ...] = (
    (Color.RED, 13), (Color.BLUE, 13), (Color.YELLOW, 13),
    (Color.BLUE, 1), (Color.BLUE, 2), (Color.BLUE, 3),
    (Color.RED, 4), (Color.BLUE, 4), (Color.YELLOW, 4),
    (Color.BLACK, 5), (Color.BLACK, 6), (Color.BLACK, 7),
    (Color.RED, 10), (Color.RED, 11), (None, None),
)


def _pull_from_deck(deck: List[Tile], color: Optional[Color], number: Optional[int]) -> Tile:
    for idx, tile in enumerate(deck):
        if color is None and isinstance(tile, Joker):
            return deck.pop(idx)
        if isinstance(tile, NumberedTile) and tile.color == color and tile.number == number:
            return deck.pop(idx)
    raise ValueError(f"deck has no {color} {number} left")


class TurnEngine:
    def __init__(
        self,
        state: GameState,
        scheduler: TaskScheduler,
        on_timeout: Callable[[int], None],
        turn_time_limit: float = 120.0,
    ) -> None:
        self.state = state
        self.scheduler = scheduler
        self.on_timeout = on_timeout
        self.turn_time_limit = turn_time_limit

    # Lifecycle ---------------------------------------------------------

    def start(self) -> None:
        state = self.state
        if state.started:
            raise GameAlreadyStarted(f"game {state.id} already started")
        if len(state.players) < state.ruleset.min_players:
            raise InsufficientPlayers(f"need at least {state.ruleset.min_players} players, have {len(state.players)}")

        if state.debug_mode:
            self._deal_debug_hand(state.players[0])
        for player in state.players:
            while len(player.hand) < state.ruleset.initial_hand_size and state.deck:
                player.hand.append(state.deck.pop())

        state.phase = GamePhase.IN_PROGRESS
        state.current_player_index = 0
        logger.info("game started", game_id=state.id, players=len(state.players), debug_mode=state.debug_mode)
        self.begin_turn()

    def _deal_debug_hand(self, player: Player) -> None:
        player.hand = [_pull_from_deck(self.state.deck, color, number) for color, number in DEBUG_HAND]
        logger.info("dealt debug hand", game_id=self.state.id, player_id=player.id, tiles=len(player.hand))

    def finish(self, winner: Player) -> None:
        self.state.winner_id = winner.id
        self.state.phase = GamePhase.COMPLETE
        self.cancel_timer()

    def abandon(self) -> None:
        self.cancel_timer()
        if self.state.phase != GamePhase.COMPLETE:
            self.state.phase = GamePhase.ABANDONED

    # Turns -------------------------------------------------------------

    def begin_turn(self) -> None:
        state = self.state
        state.snapshot = BoardSnapshot.take(state.board)
        for player in state.players:
            player.opened_this_turn = False
        player = state.current_player()
        state.log(player, "started_turn")
        if state.timer_enabled:
            self.arm_timer()

    def advance(self) -> Player:
        state = self.state
        previous = state.current_player()
        state.log(previous, "ended_turn")
        state.current_player_index = (state.current_player_index + 1) % len(state.players)
        state.turn_number += 1
        self.begin_turn()
        current = state.current_player()
        logger.debug("turn advanced", game_id=state.id, turn=state.turn_number, player_id=current.id)
        return current

    def require_turn(self, player_id: str) -> Player:
        state = self.state
        if state.phase == GamePhase.WAITING_FOR_PLAYERS:
            raise GameNotStarted(f"game {state.id} has not started")
        if not state.is_live():
            raise GameOver(f"game {state.id} is over")
        player = state.get_player(player_id)
        if state.current_player().id != player.id:
            raise NotYourTurn(f"it is not {player.name}'s turn")
        return player

    def undo_turn(self, player: Player) -> List[Tile]:
        """Return every tile laid this turn to ``player`` and restore the snapshot."""
        state = self.state
        returned = tiles_added_since(state.board, state.snapshot)
        state.board = state.snapshot.restore()
        player.hand.extend(returned)
        if player.opened_this_turn:
            player.has_played_initial = False
            player.opened_this_turn = False
        return returned

    def validate_board(self, strict: bool) -> BoardValidation:
        return self.state.board.validate(strict)

    # Timer -------------------------------------------------------------

    def arm_timer(self) -> None:
        turn = self.state.turn_number
        self.state.turn_deadline = self.scheduler.clock() + self.turn_time_limit
        self.scheduler.schedule(self.state.id, TURN_TIMER, self.turn_time_limit, lambda: self.on_timeout(turn))

    def cancel_timer(self) -> None:
        self.state.turn_deadline = None
        self.scheduler.cancel(self.state.id, TURN_TIMER)

    def remaining_time(self) -> Optional[float]:
        if self.state.turn_deadline is None:
            return None
        return max(0.0, self.state.turn_deadline - self.scheduler.clock())
