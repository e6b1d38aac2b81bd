import pathlib
import random
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rummikub.candidates import BotStrategist, Difficulty, MeldCandidate, find_possible_sets
from rummikub.meld import Meld, is_valid_set
from rummikub.move import MoveKind
from rummikub.state import Player
from rummikub.table import Board
from rummikub.tiles import Color, Joker, NumberedTile


def t(color, number, copy=0):
    return NumberedTile(f"{color}_{number}_{copy}", Color(color), number)


def bot(hand, opened=False, draws=0):
    return Player("bot_1", "Ada", list(hand), has_played_initial=opened, is_bot=True, consecutive_draws=draws)


def test_found_sets_are_valid_and_unique():
    hand = [t("red", 1), t("red", 2), t("red", 3), t("red", 4), t("blue", 4), t("yellow", 4), Joker("joker_1")]
    found = find_possible_sets(hand)
    keys = [c.key for c in found]
    assert len(keys) == len(set(keys))
    assert all(is_valid_set(list(c.tiles)) for c in found)
    assert frozenset({"red_1_0", "red_2_0", "red_3_0", "red_4_0"}) in keys
    assert frozenset({"red_4_0", "blue_4_0", "yellow_4_0"}) in keys


def test_joker_bridges_run_gap():
    hand = [t("black", 5), t("black", 7), Joker("joker_1")]
    found = find_possible_sets(hand)
    assert [sorted(c.tile_ids()) for c in found] == [["black_5_0", "black_7_0", "joker_1"]]
    assert found[0].value == 18


def test_hard_bot_takes_highest_value():
    strategist = BotStrategist(Difficulty.HARD, rng=random.Random(1))
    candidates = [MeldCandidate((), value) for value in (6, 39, 12, 30)]
    assert strategist.choose_candidate(candidates).value == 39
    assert strategist.choose_candidate([]) is None


def test_easy_bot_picks_among_lowest_three():
    strategist = BotStrategist(Difficulty.EASY, rng=random.Random(2))
    candidates = [MeldCandidate((), value) for value in (6, 39, 12, 30, 9)]
    picks = {strategist.choose_candidate(candidates).value for _ in range(50)}
    assert picks <= {6, 9, 12}


def test_medium_bot_picks_among_top_two():
    strategist = BotStrategist(Difficulty.MEDIUM, rng=random.Random(3))
    candidates = [MeldCandidate((), value) for value in (6, 39, 12, 30, 9)]
    picks = {strategist.choose_candidate(candidates).value for _ in range(50)}
    assert picks <= {39, 30}


def test_unopened_bot_only_plays_thirty_points():
    strategist = BotStrategist(Difficulty.HARD)
    low = bot([t("red", 1), t("red", 2), t("red", 3), t("blue", 9)])
    assert strategist.choose_action(low, Board(), deck_size=10).kind == MoveKind.DRAW

    high = bot([t("red", 13), t("blue", 13), t("yellow", 13), t("blue", 1)])
    move = strategist.choose_action(high, Board(), deck_size=10)
    assert move.kind == MoveKind.PLAY
    assert sorted(move.tile_ids) == ["blue_13_0", "red_13_0", "yellow_13_0"]


def test_opened_bot_extends_board_melds():
    strategist = BotStrategist(Difficulty.HARD)
    board = Board([Meld([t("red", 4), t("red", 5), t("red", 6)]), Meld([t("blue", 9), t("yellow", 9), t("black", 9)])])
    player = bot([t("red", 9, 1), t("black", 1)], opened=True)
    move = strategist.choose_action(player, board, deck_size=10)
    assert move.kind == MoveKind.PLAY
    assert move.tile_ids == ("red_9_1",)
    assert move.set_index == 1


def test_unopened_bot_never_touches_board():
    strategist = BotStrategist(Difficulty.HARD)
    board = Board([Meld([t("red", 4), t("red", 5), t("red", 6)])])
    player = bot([t("red", 7), t("black", 1)])
    assert strategist.extend_board_meld(player, board) is None


def test_aggressive_play_after_repeated_draws():
    strategist = BotStrategist(Difficulty.HARD)
    hand = [t("red", 12), t("blue", 12), Joker("joker_1"), t("black", 2)]
    assert strategist.aggressive_play(bot(hand, draws=3), Board()).tile_ids == ("red_12_0", "blue_12_0", "joker_1")


def test_opened_bot_only_spends_joker_on_board_when_aggressive():
    strategist = BotStrategist(Difficulty.HARD)
    board = Board([Meld([t("red", 4), t("red", 5), t("red", 6)])])
    hand = [Joker("joker_1"), t("black", 2)]
    assert strategist.choose_action(bot(hand, opened=True, draws=1), board, deck_size=5).kind == MoveKind.DRAW
    move = strategist.choose_action(bot(hand, opened=True, draws=3), board, deck_size=5)
    assert move.kind == MoveKind.PLAY
    assert move.tile_ids == ("joker_1",)
    assert move.set_index == 0


def test_bot_with_no_play_and_empty_deck_passes():
    strategist = BotStrategist(Difficulty.MEDIUM)
    move = strategist.choose_action(bot([t("red", 1), t("blue", 5)]), Board(), deck_size=0)
    assert move.kind == MoveKind.PASS
