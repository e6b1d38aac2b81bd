from __future__ import annotations

import random
import string
import threading
from typing import Dict, List, Optional

import structlog

from .config import EngineSettings
from .engine import GameEngine, StateListener
from .errors import GameNotFound
from .scheduler import TaskScheduler, ThreadingScheduler

logger = structlog.get_logger()

GAME_ID_LENGTH = 6


class GameRegistry:
    """Thread-safe map of game id to engine.

    The registry lock only guards the map; each engine serializes its own
    requests with its own lock.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        scheduler: Optional[TaskScheduler] = None,
        rng: Optional[random.Random] = None,
        listener: Optional[StateListener] = None,
    ) -> None:
        self.settings = settings or EngineSettings()
        self.scheduler = scheduler or ThreadingScheduler()
        self.rng = rng or random.Random()
        self.listener = listener
        self._lock = threading.Lock()
        self._games: Dict[str, GameEngine] = {}

    def generate_game_id(self) -> str:
        alphabet = string.ascii_uppercase + string.digits
        while True:
            game_id = "".join(self.rng.choice(alphabet) for _ in range(GAME_ID_LENGTH))
            if game_id not in self._games:
                return game_id

    def create_game(
        self,
        *,
        timer_enabled: bool = False,
        debug_mode: bool = False,
        bot_difficulty: Optional[str] = None,
    ) -> GameEngine:
        with self._lock:
            game_id = self.generate_game_id()
            engine = GameEngine(
                game_id,
                self.settings,
                scheduler=self.scheduler,
                timer_enabled=timer_enabled,
                debug_mode=debug_mode,
                bot_difficulty=bot_difficulty,
                rng=random.Random(self.rng.getrandbits(64)),
                listener=self.listener,
            )
            self._games[game_id] = engine
        return engine

    def get(self, game_id: str) -> GameEngine:
        with self._lock:
            engine = self._games.get(game_id.upper())
        if engine is None:
            raise GameNotFound(game_id)
        return engine

    def delete(self, game_id: str) -> None:
        with self._lock:
            engine = self._games.pop(game_id.upper(), None)
        if engine is None:
            raise GameNotFound(game_id)
        engine.abandon()
        logger.info("game deleted", game_id=game_id)

    def game_ids(self) -> List[str]:
        with self._lock:
            return list(self._games)

    def __len__(self) -> int:
        with self._lock:
            return len(self._games)
