from __future__ import annotations

import random

import pytest

import core
from core import DIRECTION, GameProgressState


def _random_board(rng: random.Random, size: int = 4) -> list[list[int]]:
    values = [0, 0, 0, 2, 2, 4, 4, 8, 16, 32]
    return [[rng.choice(values) for _ in range(size)] for _ in range(size)]


CHECKERBOARD = [
    [2, 4, 2, 4],
    [4, 2, 4, 2],
    [2, 4, 2, 4],
    [4, 2, 4, 2],
]


def test_move_left_merges_pair_into_leading_cell() -> None:
    board = [[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]]

    result = core.process_move(board, DIRECTION.LEFT)

    assert result.board[0] == [4, 0, 0, 0]
    assert result.moved is True
    assert result.score_delta == 4


def test_move_right_on_single_row() -> None:
    result = core.process_move([[2, 0, 2, 0]], DIRECTION.RIGHT)

    assert result.board == [[0, 0, 0, 4]]
    assert result.score_delta == 4


@pytest.mark.parametrize(
    "line, expected, score",
    [
        ([2, 2, 2, 2], [4, 4, 0, 0], 8),
        ([2, 2, 2, 0], [4, 2, 0, 0], 4),
        ([4, 4, 8, 0], [8, 8, 0, 0], 8),
        ([2, 0, 0, 2], [4, 0, 0, 0], 4),
        ([2, 4, 8, 16], [2, 4, 8, 16], 0),
        ([0, 0, 0, 2], [2, 0, 0, 0], 0),
        ([8, 8, 4, 4], [16, 8, 0, 0], 24),
    ],
)
def test_move_left_line_cases(line: list[int], expected: list[int], score: int) -> None:
    result = core.process_move([line], DIRECTION.LEFT)

    assert result.board == [expected]
    assert result.score_delta == score


def test_move_up_and_down_work_on_columns() -> None:
    board = [[2, 0], [2, 4], [4, 4], [0, 8]]

    up = core.process_move(board, DIRECTION.UP)
    down = core.process_move(board, DIRECTION.DOWN)

    assert up.board == [[4, 8], [4, 8], [0, 0], [0, 0]]
    assert up.score_delta == 4 + 8
    assert down.board == [[0, 0], [0, 0], [4, 8], [4, 8]]
    assert down.score_delta == 4 + 8


def test_move_without_change_reports_not_moved() -> None:
    board = [[2, 4, 0, 0], [8, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]]

    result = core.process_move(board, DIRECTION.LEFT)

    assert result.moved is False
    assert result.board == board
    assert result.score_delta == 0


def test_move_does_not_mutate_input() -> None:
    board = [[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]]
    before = [list(row) for row in board]

    core.process_move(board, DIRECTION.LEFT)

    assert board == before


def test_move_conserves_tile_sum() -> None:
    rng = random.Random(7)
    for _ in range(200):
        board = _random_board(rng)
        for direction in DIRECTION:
            result = core.process_move(board, direction)
            assert sum(map(sum, result.board)) == sum(map(sum, board))


def test_repeat_move_only_changes_board_by_merging() -> None:
    # After one move every line is compacted, so a second move in the same
    # direction can only change the board through a merge.
    rng = random.Random(11)
    for _ in range(200):
        board = _random_board(rng)
        for direction in DIRECTION:
            first = core.process_move(board, direction)
            second = core.process_move(first.board, direction)
            if second.moved:
                assert second.score_delta > 0


def test_blocked_board_cannot_move_in_any_direction() -> None:
    assert core.can_move(CHECKERBOARD) is False
    for direction in DIRECTION:
        assert core.process_move(CHECKERBOARD, direction).moved is False


def test_can_move_false_implies_no_direction_moves() -> None:
    rng = random.Random(3)
    values = [2, 4, 8, 16, 32, 64, 128, 256]
    blocked = 0
    for _ in range(1000):
        board = [[rng.choice(values) for _ in range(4)] for _ in range(4)]
        if core.can_move(board):
            continue
        blocked += 1
        assert core.available_directions(board) == []
        for direction in DIRECTION:
            assert core.process_move(board, direction).moved is False
    assert blocked > 0


def test_can_move_with_empty_cell_or_adjacent_pair() -> None:
    with_gap = [list(row) for row in CHECKERBOARD]
    with_gap[3][3] = 0
    with_pair = [list(row) for row in CHECKERBOARD]
    with_pair[0][1] = 2

    assert core.can_move(with_gap) is True
    assert core.can_move(with_pair) is True


def test_non_power_of_two_tile_is_a_defect() -> None:
    with pytest.raises(AssertionError):
        core.process_move([[3, 0], [0, 0]], DIRECTION.LEFT)


def test_check_for_win_uses_win_tile_threshold() -> None:
    board = [[0, 0], [0, 1024]]
    assert core.check_for_win(board) is False

    board[0][0] = 2048
    assert core.check_for_win(board) is True
    assert core.check_for_win([[4096, 0], [0, 0]]) is True
    assert core.check_for_win([[64, 0], [0, 0]], win_tile=64) is True


def test_add_random_tile_fills_one_empty_cell(rng: random.Random) -> None:
    board = [[2, 0], [0, 4]]

    new_board, cell = core.add_random_tile(board, rng)

    assert cell in [(0, 1), (1, 0)]
    assert new_board[cell[0]][cell[1]] in (2, 4)
    assert len(core.get_empty_cells(new_board)) == 1
    assert board == [[2, 0], [0, 4]]


def test_add_random_tile_on_full_board_is_a_no_op() -> None:
    new_board, cell = core.add_random_tile(CHECKERBOARD)

    assert cell is None
    assert new_board == CHECKERBOARD
    assert new_board is not CHECKERBOARD


def test_add_random_tile_spawns_mostly_twos() -> None:
    rng = random.Random(99)
    fours = 0
    for _ in range(2000):
        board, cell = core.add_random_tile([[0, 0], [0, 0]], rng)
        if board[cell[0]][cell[1]] == 4:
            fours += 1
    assert 120 < fours < 280


def test_initialize_board_places_two_tiles(rng: random.Random) -> None:
    board, score, progress = core.initialize_board(4, rng)

    assert len(board) == 4
    assert sum(1 for row in board for v in row if v) == 2
    assert score == 0
    assert progress is GameProgressState.IN_PROGRESS


@pytest.mark.parametrize("size", [0, -1, 2.5])
def test_initialize_board_rejects_bad_size(size) -> None:
    with pytest.raises(ValueError):
        core.initialize_board(size)


def test_board_shape_checks() -> None:
    assert core.get_board_shape([[0, 0, 0, 0]]) == (1, 4)
    with pytest.raises(ValueError):
        core.get_board_shape([])
    with pytest.raises(ValueError):
        core.get_board_shape([[2, 0], [0]])
    with pytest.raises(ValueError):
        core.get_board_size([[0, 0, 0, 0]])


def test_validate_board_rejects_invalid_tiles() -> None:
    assert core.validate_board([[0, 2], [4, 1024]]) == (2, 2)
    with pytest.raises(ValueError, match="power of two"):
        core.validate_board([[0, 6], [0, 0]])
    with pytest.raises(ValueError):
        core.validate_board([[0, -2], [0, 0]])


def test_line_coordinates_start_at_leading_edge() -> None:
    assert core.line_coordinates(2, 3, DIRECTION.LEFT) == [
        [(0, 0), (0, 1), (0, 2)],
        [(1, 0), (1, 1), (1, 2)],
    ]
    assert core.line_coordinates(2, 3, DIRECTION.RIGHT)[0] == [(0, 2), (0, 1), (0, 0)]
    assert core.line_coordinates(2, 3, DIRECTION.UP)[2] == [(0, 2), (1, 2)]
    assert core.line_coordinates(2, 3, DIRECTION.DOWN)[0] == [(1, 0), (0, 0)]


def test_available_directions() -> None:
    board = [[2, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]]

    assert core.available_directions(board) == [DIRECTION.DOWN, DIRECTION.RIGHT]
    assert core.is_move_possible_in_direction(board, DIRECTION.UP) is False


def test_determine_game_status() -> None:
    assert core.determine_game_status(CHECKERBOARD) is GameProgressState.GAME_OVER
    assert core.determine_game_status([[2048, 0], [0, 0]]) is GameProgressState.GAME_WON
    assert core.determine_game_status([[2, 0], [0, 0]]) is GameProgressState.IN_PROGRESS
