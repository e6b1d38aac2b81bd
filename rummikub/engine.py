from __future__ import annotations

import functools
import random
import threading
from collections import Counter
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from .candidates import BotStrategist, Difficulty
from .config import EngineSettings
from .errors import (
    DeckEmpty,
    GameAlreadyStarted,
    GameFull,
    IllegalRearrangement,
    InsufficientInitialValue,
    InvalidBoardState,
    InvalidSet,
    InvariantViolation,
    NotYourTurn,
    RummikubError,
    TileNotOwned,
)
from .meld import Meld, arrange_meld, calculate_set_value, hand_penalty, is_valid_set
from .move import Move, MoveKind
from .scheduler import BOT_MOVE, TaskScheduler, ThreadingScheduler
from .state import ChatMessage, GameState, Player, assert_unique_ownership
from .table import Board, BoardValidation, tiles_added_since
from .tiles import Tile, new_deck, tile_label
from .turns import TurnEngine
from .view import GameView, project

logger = structlog.get_logger()

BOT_NAMES = ("Ada", "Babbage", "Curie", "Dijkstra")

StateListener = Callable[[str, Dict[str, GameView]], None]


def _synchronized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            return method(self, *args, **kwargs)

    return wrapper


class GameEngine:
    """One Rummikub game: authorization, board and hand bookkeeping, bots.

    Every public method holds the game's lock, so concurrent requests for
    the same game are applied one at a time. Errors are raised before any
    state is touched.
    """

    def __init__(
        self,
        game_id: str,
        settings: Optional[EngineSettings] = None,
        *,
        scheduler: Optional[TaskScheduler] = None,
        timer_enabled: bool = False,
        debug_mode: bool = False,
        bot_difficulty: Optional[str] = None,
        rng: Optional[random.Random] = None,
        listener: Optional[StateListener] = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.ruleset = self.settings.rules.to_ruleset()
        self.rng = rng or random.Random()
        self.scheduler = scheduler or ThreadingScheduler()
        self.listener = listener
        self.lock = threading.RLock()
        deck = new_deck(
            self.ruleset.values,
            self.ruleset.copies_per_tiletype,
            self.ruleset.num_jokers,
            rng=self.rng,
        )
        self.state = GameState(
            id=game_id,
            ruleset=self.ruleset,
            deck=deck,
            timer_enabled=timer_enabled,
            debug_mode=debug_mode,
        )
        self.turns = TurnEngine(self.state, self.scheduler, self._on_timeout, self.settings.turn_time_limit)
        difficulty = Difficulty(bot_difficulty or self.settings.default_bot_difficulty)
        self.strategist = BotStrategist(difficulty, self.ruleset, self.rng)
        logger.info("game created", game_id=game_id, timer_enabled=timer_enabled, debug_mode=debug_mode)

    @property
    def game_id(self) -> str:
        return self.state.id

    # Players -----------------------------------------------------------

    @_synchronized
    def add_player(self, player_id: str, name: str, is_bot: bool = False) -> Player:
        state = self.state
        existing = state.find_player(player_id)
        if existing is not None:
            return existing
        if state.started:
            raise GameAlreadyStarted(f"game {state.id} already started")
        if len(state.players) >= self.ruleset.max_players:
            raise GameFull(f"game {state.id} is full")
        player = Player(player_id, name, is_bot=is_bot)
        state.players.append(player)
        logger.info("player joined", game_id=state.id, player_id=player_id, is_bot=is_bot)
        self._publish("playerJoined")
        return player

    @_synchronized
    def add_bot_player(self) -> Player:
        used = {p.name for p in self.state.players if p.is_bot}
        names = [name for name in BOT_NAMES if name not in used]
        if not names:
            raise GameFull(f"game {self.state.id} has no bot seats left")
        bot_id = "bot_%09x" % self.rng.getrandbits(36)
        return self.add_player(bot_id, names[0], is_bot=True)

    @_synchronized
    def remove_player(self, player_id: str) -> None:
        state = self.state
        if state.started:
            raise GameAlreadyStarted("players cannot leave a started game")
        state.get_player(player_id)
        state.players = [p for p in state.players if p.id != player_id]
        self._publish("playerLeft")

    # Lifecycle ---------------------------------------------------------

    @_synchronized
    def start_game(self) -> GameView:
        self.turns.start()
        self._publish("gameStarted")
        self._schedule_bot_turn(self.settings.bot_first_move_delay)
        return self.get_state(None)

    @_synchronized
    def abandon(self) -> None:
        self.turns.abandon()
        self.scheduler.cancel_game(self.state.id)
        logger.info("game abandoned", game_id=self.state.id)

    # Plays -------------------------------------------------------------

    @_synchronized
    def play_set(self, player_id: str, tile_ids: Sequence[str], set_index: Optional[int] = None) -> int:
        player = self.turns.require_turn(player_id)
        value = self._apply_set(player, tile_ids, set_index)
        self._publish("gameWon" if self.state.winner_id else "setPlayed")
        return value

    @_synchronized
    def play_multiple_sets(self, player_id: str, set_arrays: Sequence[Sequence[str]]) -> int:
        player = self.turns.require_turn(player_id)
        if not set_arrays:
            raise InvalidSet("no sets given")
        all_ids = [tile_id for tile_ids in set_arrays for tile_id in tile_ids]
        if len(set(all_ids)) != len(all_ids):
            raise InvalidSet("a tile is used in more than one set")

        melds: List[List[Tile]] = []
        for tile_ids in set_arrays:
            tiles = self._owned_tiles(player, tile_ids)
            if not is_valid_set(tiles):
                raise InvalidSet("not a valid run or group: " + ", ".join(tile_label(t) for t in tiles))
            melds.append(tiles)
        total = sum(calculate_set_value(tiles) for tiles in melds)
        self._check_initial_value(player, total)

        player.take_tiles(all_ids)
        for tiles in melds:
            self.state.board.melds.append(Meld(arrange_meld(tiles)))
        self._mark_opened(player)
        self._log(player, "played_sets", f"{len(melds)} sets ({total} points)")
        logger.info("sets played", game_id=self.state.id, player_id=player.id, sets=len(melds), value=total)
        self._check_win(player)
        self._publish("gameWon" if self.state.winner_id else "setPlayed")
        return total

    @_synchronized
    def draw_tile(self, player_id: str) -> Tile:
        player = self.turns.require_turn(player_id)
        if not self.state.deck:
            raise DeckEmpty("no tiles left to draw")
        self.turns.undo_turn(player)
        tile = self._draw_into(player)
        self._end_turn_and_continue("tileDrawn", self.settings.bot_move_delay)
        return tile

    @_synchronized
    def update_board(self, player_id: str, layout: Sequence[Sequence[str]]) -> GameView:
        """Replace the working board with ``layout`` (melds as tile ids).

        Tiles new to the board come out of the player's hand; tiles the
        player laid earlier this turn and left out of ``layout`` go back.
        """
        player = self.turns.require_turn(player_id)
        state = self.state
        on_board = state.board.tiles_by_id()
        in_hand = {tile.id: tile for tile in player.hand}

        seen = set()
        melds: List[Meld] = []
        for tile_ids in layout:
            tiles: List[Tile] = []
            for tile_id in tile_ids:
                if tile_id in seen:
                    raise IllegalRearrangement(f"tile {tile_id} appears twice in the layout")
                seen.add(tile_id)
                tile = on_board.get(tile_id) or in_hand.get(tile_id)
                if tile is None:
                    raise TileNotOwned(f"tile {tile_id} is neither on the board nor in {player.name}'s hand")
                tiles.append(tile)
            if tiles:
                melds.append(Meld(tiles))

        missing = state.snapshot.tile_ids() - seen
        if missing:
            raise IllegalRearrangement(f"tiles from the start of the turn must stay on the board: {sorted(missing)}")

        from_hand = [tile_id for tile_id in seen if tile_id in in_hand]
        back_to_hand = [tile for tile_id, tile in on_board.items() if tile_id not in seen]
        player.take_tiles(from_hand)
        player.hand.extend(back_to_hand)
        state.board = Board(melds)
        logger.debug(
            "board updated",
            game_id=state.id,
            player_id=player.id,
            from_hand=len(from_hand),
            to_hand=len(back_to_hand),
        )
        self._publish("boardUpdated")
        return self.get_state(player_id)

    @_synchronized
    def end_turn(self, player_id: str) -> GameView:
        player = self.turns.require_turn(player_id)
        if player.is_bot:
            raise NotYourTurn("bot turns end automatically")
        validation = self.turns.validate_board(strict=True)
        if not validation.valid:
            raise InvalidBoardState(validation.invalid_set_index, validation.reason)
        added = tiles_added_since(self.state.board, self.state.snapshot)
        if not player.has_played_initial or player.opened_this_turn:
            self._check_board_opening(player, added)

        if added:
            self.state.consecutive_passes = 0
        else:
            self.state.consecutive_passes += 1
        if self._check_win(player):
            self._publish("gameWon")
            return self.get_state(player_id)
        self._end_turn_and_continue("turnEnded", self.settings.bot_move_delay)
        return self.get_state(player_id)

    @_synchronized
    def request_undo_turn(self, player_id: str) -> List[Tile]:
        player = self.turns.require_turn(player_id)
        returned = self.turns.undo_turn(player)
        self._log(player, "undid_turn", f"{len(returned)} tiles returned")
        logger.info("turn undone", game_id=self.state.id, player_id=player.id, returned=len(returned))
        self._publish("turnUndone")
        return returned

    @_synchronized
    def validate_board_state(self, is_end_turn: bool = True) -> BoardValidation:
        return self.turns.validate_board(strict=is_end_turn)

    @_synchronized
    def add_chat_message(self, player_id: str, message: str) -> ChatMessage:
        player = self.state.get_player(player_id)
        chat = ChatMessage(player.id, player.name, message.strip())
        self.state.chat.append(chat)
        limit = self.settings.chat_history_limit
        if len(self.state.chat) > limit:
            del self.state.chat[: len(self.state.chat) - limit]
        self._publish("messageReceived")
        return chat

    @_synchronized
    def get_state(self, viewer_id: Optional[str]) -> GameView:
        return project(self.state, viewer_id, self.turns.remaining_time())

    # Bots --------------------------------------------------------------

    @_synchronized
    def play_bot_turn(self, expected_turn: Optional[int] = None) -> Optional[Move]:
        """Take the current bot's single action and end its turn.

        ``expected_turn`` guards scheduled calls against firing after the
        game has moved on or been abandoned.
        """
        state = self.state
        if not state.is_live():
            return None
        if expected_turn is not None and expected_turn != state.turn_number:
            return None
        player = state.current_player()
        if not player.is_bot:
            return None

        move = self.strategist.choose_action(player, state.board, len(state.deck))
        if move.kind == MoveKind.PLAY:
            try:
                self._apply_set(player, move.tile_ids, move.set_index)
                player.consecutive_draws = 0
            except RummikubError as exc:
                logger.warning("bot play rejected", game_id=state.id, player_id=player.id, error=str(exc))
                move = Move.draw() if state.deck else Move.skip("passed with an empty deck")
        if move.kind == MoveKind.DRAW:
            self._draw_into(player)
            player.consecutive_draws += 1
        elif move.kind == MoveKind.PASS:
            state.consecutive_passes += 1
            self._log(player, "passed", move.description)
        else:
            state.consecutive_passes = 0

        logger.info("bot moved", game_id=state.id, player_id=player.id, move=move.kind.value, description=move.description)
        if state.winner_id is not None:
            self._publish("gameWon")
            return move
        self._end_turn_and_continue("botMoved", self.settings.bot_followup_delay)
        return move

    def _schedule_bot_turn(self, delay: float) -> None:
        state = self.state
        if not state.is_live() or not state.current_player().is_bot:
            return
        turn = state.turn_number
        self.scheduler.schedule(state.id, BOT_MOVE, delay, lambda: self.play_bot_turn(turn))

    # Internals ---------------------------------------------------------

    def _owned_tiles(self, player: Player, tile_ids: Sequence[str]) -> List[Tile]:
        if not tile_ids:
            raise InvalidSet("no tiles given")
        if len(set(tile_ids)) != len(tile_ids):
            raise InvalidSet("a tile is listed twice")
        tiles = []
        for tile_id in tile_ids:
            tile = player.find_tile(tile_id)
            if tile is None:
                raise TileNotOwned(f"tile {tile_id} is not in {player.name}'s hand")
            tiles.append(tile)
        return tiles

    def _check_initial_value(self, player: Player, value: int) -> None:
        required = self.ruleset.initial_meld_min_points
        if not player.has_played_initial and value < required:
            raise InsufficientInitialValue(value, required)

    def _apply_set(self, player: Player, tile_ids: Sequence[str], set_index: Optional[int]) -> int:
        tiles = self._owned_tiles(player, tile_ids)
        board = self.state.board
        if set_index is None:
            if not is_valid_set(tiles):
                raise InvalidSet("not a valid run or group: " + ", ".join(tile_label(t) for t in tiles))
            value = calculate_set_value(tiles)
            self._check_initial_value(player, value)
            player.take_tiles(tile_ids)
            board.melds.append(Meld(arrange_meld(tiles)))
        else:
            if not 0 <= set_index < len(board.melds):
                raise InvalidSet(f"there is no set at index {set_index}")
            if not player.has_played_initial:
                raise InsufficientInitialValue(0, self.ruleset.initial_meld_min_points)
            if player.opened_this_turn and set(board.melds[set_index].tile_ids()) & self.state.snapshot.tile_ids():
                raise IllegalRearrangement("sets from earlier turns cannot be extended on the opening turn")
            combined = board.melds[set_index].tiles + tiles
            if not is_valid_set(combined):
                raise InvalidSet("the extended set is not a valid run or group")
            value = calculate_set_value(combined)
            player.take_tiles(tile_ids)
            board.melds[set_index] = Meld(arrange_meld(combined))

        self._mark_opened(player)
        self._log(player, "played_set", f"{len(tiles)} tiles ({value} points)")
        logger.info("set played", game_id=self.state.id, player_id=player.id, tiles=len(tiles), value=value)
        self._check_win(player)
        return value

    def _check_board_opening(self, player: Player, added: List[Tile]) -> None:
        """An opening made this turn: snapshot sets untouched, new sets worth 30 points."""
        snapshot_melds = Counter(frozenset(t.id for t in tiles) for tiles in self.state.snapshot.melds)
        board_melds = Counter(frozenset(meld.tile_ids()) for meld in self.state.board.melds)
        if snapshot_melds - board_melds:
            raise IllegalRearrangement("the board cannot be rearranged on the opening turn")
        if not added:
            if player.opened_this_turn:
                player.has_played_initial = False
                player.opened_this_turn = False
            return
        added_ids = {tile.id for tile in added}
        new_melds = [meld for meld in self.state.board.melds if added_ids & set(meld.tile_ids())]
        total = sum(meld.value() for meld in new_melds)
        required = self.ruleset.initial_meld_min_points
        if total < required:
            raise InsufficientInitialValue(total, required)
        self._mark_opened(player)

    def _mark_opened(self, player: Player) -> None:
        if not player.has_played_initial:
            player.has_played_initial = True
            player.opened_this_turn = True

    def _draw_into(self, player: Player) -> Tile:
        tile = self.state.deck.pop()
        player.hand.append(tile)
        self.state.consecutive_passes = 0
        self._log(player, "drew_tile", f"{len(self.state.deck)} tiles left")
        logger.debug("tile drawn", game_id=self.state.id, player_id=player.id, deck=len(self.state.deck))
        return tile

    def _check_win(self, player: Player) -> bool:
        if player.hand or not self.state.board.validate(strict=True).valid:
            return False
        winnings = 0
        for other in self.state.players:
            if other is player:
                continue
            penalty = hand_penalty(other.hand, self.ruleset.joker_penalty)
            other.score -= penalty
            winnings += penalty
        player.score += winnings
        self.turns.finish(player)
        self.scheduler.cancel_game(self.state.id)
        self._log(player, "won", f"{winnings} points")
        logger.info("game won", game_id=self.state.id, player_id=player.id, points=winnings)
        return True

    def _end_turn_and_continue(self, event: str, bot_delay: float) -> None:
        self.turns.advance()
        self._publish(event)
        self._schedule_bot_turn(bot_delay)

    def _on_timeout(self, turn: int) -> None:
        with self.lock:
            state = self.state
            if not state.is_live() or state.turn_number != turn:
                return
            player = state.current_player()
            returned = self.turns.undo_turn(player)
            logger.info("turn timed out", game_id=state.id, player_id=player.id, returned=len(returned))
            if state.deck:
                self._draw_into(player)
                self._log(player, "time_up", "drew a tile automatically")
            else:
                state.consecutive_passes += 1
                self._log(player, "time_up", "deck empty, turn passed")
                logger.warning("deck empty at timeout", game_id=state.id, player_id=player.id)
            self._end_turn_and_continue("turnTimedOut", self.settings.bot_move_delay)

    def _log(self, player: Player, action: str, details: str = "") -> None:
        self.state.log(player, action, details, limit=self.settings.game_log_limit)

    def _publish(self, event: str) -> None:
        try:
            assert_unique_ownership(self.state)
        except InvariantViolation as exc:
            logger.error("tile ownership invariant broken", game_id=self.state.id, error=str(exc), tile_id=exc.tile_id)
            raise
        if self.listener is None:
            return
        views = {player.id: self.get_state(player.id) for player in self.state.players if not player.is_bot}
        try:
            self.listener(event, views)
        except Exception:
            logger.exception("state listener failed", game_id=self.state.id, event_name=event)
