from __future__ import annotations

import argparse
import random
from typing import Optional

from .config import EngineSettings, configure_logging, load_settings
from .engine import GameEngine
from .scheduler import ManualScheduler
from .view import is_stalled


def run_game(
    seed: Optional[int] = None,
    bots: int = 2,
    difficulty: Optional[str] = None,
    settings: Optional[EngineSettings] = None,
    max_turns: int = 500,
) -> GameEngine:
    """Play an all-bot game to completion on a virtual clock."""
    scheduler = ManualScheduler()
    engine = GameEngine(
        "SIM%03d" % ((seed or 0) % 1000),
        settings,
        scheduler=scheduler,
        bot_difficulty=difficulty,
        rng=random.Random(seed),
    )
    for _ in range(bots):
        engine.add_bot_player()
    engine.start_game()

    state = engine.state
    while state.is_live() and state.turn_number < max_turns and not is_stalled(state):
        if not scheduler.run_next():
            break
    if state.is_live():
        engine.abandon()
    return engine


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate a Rummikub game between bots.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible deck order.")
    parser.add_argument("--bots", type=int, default=2, choices=(2, 3, 4), help="Number of bot players.")
    parser.add_argument("--difficulty", choices=("easy", "medium", "hard"), default=None)
    parser.add_argument("--config", default=None, help="YAML settings file.")
    parser.add_argument("--max-turns", type=int, default=500)
    args = parser.parse_args()

    settings = load_settings(args.config) if args.config else EngineSettings()
    configure_logging(settings.log_level)
    engine = run_game(
        seed=args.seed,
        bots=args.bots,
        difficulty=args.difficulty,
        settings=settings,
        max_turns=args.max_turns,
    )

    state = engine.state
    print(f"Game finished after {state.turn_number} turns")
    winner = state.winner()
    if winner is not None:
        print(f"Winner: {winner.name}")
    else:
        print("No winner (turn limit reached or deck exhausted)")
    for player in state.players:
        print(f"  {player.name}: {len(player.hand)} tiles, score {player.score}")
    print("Board melds:", len(state.board.melds))


if __name__ == "__main__":
    main()
