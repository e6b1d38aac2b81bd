import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rummikub.cli import run_game
from rummikub.state import GamePhase, assert_unique_ownership


def test_simulated_game_finishes_or_stops():
    engine = run_game(seed=4, bots=3, difficulty="hard", max_turns=300)
    state = engine.state
    assert state.phase in (GamePhase.COMPLETE, GamePhase.ABANDONED)
    assert_unique_ownership(state)
    if state.winner_id is not None:
        assert state.winner().hand == []
        assert sum(p.score for p in state.players) == 0


def test_simulation_is_reproducible():
    first = run_game(seed=12, bots=2, max_turns=60)
    second = run_game(seed=12, bots=2, max_turns=60)
    assert first.state.turn_number == second.state.turn_number
    assert [len(p.hand) for p in first.state.players] == [len(p.hand) for p in second.state.players]
    assert first.state.board.layout() == second.state.board.layout()
