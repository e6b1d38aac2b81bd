"""Rummikub core engine package."""

from .rules import Ruleset
from .tiles import Color, Joker, NumberedTile, Tile, new_deck
from .meld import Meld, calculate_set_value, is_valid_group, is_valid_run, is_valid_set
from .table import Board, BoardSnapshot, BoardValidation
from .state import GameEvent, GamePhase, GameState, Player
from .move import Move, MoveKind
from .candidates import BotStrategist, Difficulty, find_possible_sets
from .config import EngineSettings, load_settings
from .engine import GameEngine
from .registry import GameRegistry
from .service import PlayerSession
from .view import GameView

__all__ = [
    "Ruleset",
    "Color",
    "Joker",
    "NumberedTile",
    "Tile",
    "new_deck",
    "Meld",
    "calculate_set_value",
    "is_valid_group",
    "is_valid_run",
    "is_valid_set",
    "Board",
    "BoardSnapshot",
    "BoardValidation",
    "GameEvent",
    "GamePhase",
    "GameState",
    "Player",
    "Move",
    "MoveKind",
    "BotStrategist",
    "Difficulty",
    "find_possible_sets",
    "EngineSettings",
    "load_settings",
    "GameEngine",
    "GameRegistry",
    "PlayerSession",
    "GameView",
]
