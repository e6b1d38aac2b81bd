"""Cancellable delayed tasks keyed by ``(game_id, purpose)``.

Scheduling a key replaces whatever was pending under it, so a game never
has two turn timers at once.
"""

from __future__ import annotations

import heapq
import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

import structlog

logger = structlog.get_logger()

TaskKey = Tuple[str, str]

TURN_TIMER = "turn-timer"
BOT_MOVE = "bot-move"


@dataclass
class ScheduledTask:
    key: TaskKey
    delay: float
    callback: Callable[[], None]
    due: float = 0.0
    cancelled: bool = False
    handle: Optional[threading.Timer] = field(default=None, repr=False)

    def cancel(self) -> None:
        self.cancelled = True
        if self.handle is not None:
            self.handle.cancel()


class TaskScheduler:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tasks: Dict[TaskKey, ScheduledTask] = {}

    def schedule(self, game_id: str, purpose: str, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        key = (game_id, purpose)
        task = ScheduledTask(key, delay, callback)
        with self._lock:
            previous = self._tasks.pop(key, None)
            if previous is not None:
                previous.cancel()
            self._tasks[key] = task
            self._start(task)
        return task

    def cancel(self, game_id: str, purpose: str) -> bool:
        with self._lock:
            task = self._tasks.pop((game_id, purpose), None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_game(self, game_id: str) -> int:
        with self._lock:
            keys = [key for key in self._tasks if key[0] == game_id]
            tasks = [self._tasks.pop(key) for key in keys]
        for task in tasks:
            task.cancel()
        return len(tasks)

    def pending(self, game_id: str, purpose: str) -> Optional[ScheduledTask]:
        with self._lock:
            return self._tasks.get((game_id, purpose))

    def pending_count(self, game_id: str) -> int:
        with self._lock:
            return sum(1 for key in self._tasks if key[0] == game_id)

    def shutdown(self) -> None:
        with self._lock:
            tasks = list(self._tasks.values())
            self._tasks.clear()
        for task in tasks:
            task.cancel()

    def _fire(self, task: ScheduledTask) -> None:
        with self._lock:
            if self._tasks.get(task.key) is task:
                del self._tasks[task.key]
            if task.cancelled:
                return
        try:
            task.callback()
        except Exception:
            logger.exception("scheduled task failed", game_id=task.key[0], purpose=task.key[1])
            raise

    def clock(self) -> float:
        return time.monotonic()

    def _start(self, task: ScheduledTask) -> None:
        raise NotImplementedError


class ThreadingScheduler(TaskScheduler):
    def _start(self, task: ScheduledTask) -> None:
        timer = threading.Timer(task.delay, self._fire, args=(task,))
        timer.daemon = True
        task.handle = timer
        timer.start()


class ManualScheduler(TaskScheduler):
    """Runs tasks on a virtual clock; used for simulations and tests."""

    def __init__(self) -> None:
        super().__init__()
        self.now = 0.0
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._seq = itertools.count()

    def clock(self) -> float:
        return self.now

    def _start(self, task: ScheduledTask) -> None:
        task.due = self.now + task.delay
        heapq.heappush(self._queue, (task.due, next(self._seq), task))

    def run_next(self) -> bool:
        while self._queue:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now = max(self.now, due)
            self._fire(task)
            return True
        return False

    def advance(self, seconds: float) -> int:
        target = self.now + seconds
        fired = 0
        while self._queue:
            due, _, task = self._queue[0]
            if due > target:
                break
            heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self.now = max(self.now, due)
            self._fire(task)
            fired += 1
        self.now = target
        return fired

    def run_until_idle(self, max_steps: int = 10_000) -> int:
        steps = 0
        while steps < max_steps and self.run_next():
            steps += 1
        return steps
