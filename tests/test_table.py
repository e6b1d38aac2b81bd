import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rummikub.meld import Meld
from rummikub.table import Board, BoardSnapshot, tiles_added_since, tiles_removed_since
from rummikub.tiles import Color, Joker, NumberedTile


def t(color, number, copy=0):
    return NumberedTile(f"{color}_{number}_{copy}", Color(color), number)


def sample_board():
    return Board(
        [
            Meld([t("red", 1), t("red", 2), t("red", 3)]),
            Meld([t("blue", 9), t("yellow", 9), Joker("joker_1")]),
        ]
    )


def test_snapshot_restore_reproduces_board():
    board = sample_board()
    snapshot = BoardSnapshot.take(board)
    assert snapshot.restore() == board


def test_snapshot_is_unaffected_by_later_edits():
    board = sample_board()
    snapshot = BoardSnapshot.take(board)
    board.melds[0].tiles.append(t("red", 4))
    board.melds.append(Meld([t("black", 5)]))
    restored = snapshot.restore()
    assert len(restored.melds) == 2
    assert len(restored.melds[0]) == 3


def test_diff_against_snapshot():
    board = sample_board()
    snapshot = BoardSnapshot.take(board)
    moved = board.melds[1].tiles.pop()
    board.melds[0].tiles.append(t("red", 4))
    assert [tile.id for tile in tiles_added_since(board, snapshot)] == ["red_4_0"]
    assert tiles_removed_since(board, snapshot) == [moved]


def test_validate_reports_first_invalid_index():
    board = sample_board()
    board.melds.append(Meld([t("black", 5), t("black", 6)]))
    strict = board.validate(strict=True)
    assert not strict.valid
    assert strict.invalid_set_index == 2
    assert board.validate(strict=False).valid


def test_layout_and_lookup():
    board = sample_board()
    assert board.layout() == [["red_1_0", "red_2_0", "red_3_0"], ["blue_9_0", "yellow_9_0", "joker_1"]]
    assert board.tiles_by_id()["joker_1"] == Joker("joker_1")
    copied = board.copy()
    copied.melds[0].tiles.pop()
    assert len(board.melds[0]) == 3
