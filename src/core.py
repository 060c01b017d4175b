# core.py
# This file is intended to be the stateless core logic for a 2048 game.

import random
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

Board = List[List[int]]
Cell = Tuple[int, int]

DEFAULT_BOARD_SIZE = 4
DEFAULT_WIN_TILE = 2048
FOUR_TILE_PROBABILITY = 0.1


class GameProgressState(Enum):
    """Represents the current progress state of the game."""
    IN_PROGRESS = 1
    GAME_OVER = 2  # Lost
    GAME_WON = 3

class DIRECTION(Enum):
    """Represents the possible move directions."""
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4

class MoveResult(NamedTuple):
    """Outcome of applying one move to a board."""
    board: Board
    moved: bool
    score_delta: int

# --- Board Helper Functions ---

def get_board_shape(board: Board) -> Tuple[int, int]:
    """
    Gets the (rows, cols) shape of a rectangular board.
    Args:
        board (Board): The game board.
    Returns:
        Tuple[int, int]: Number of rows and number of columns.
    Raises:
        ValueError: If the board is empty or its rows differ in length.
    """
    if not board or not board[0] or not all(len(row) == len(board[0]) for row in board):
        raise ValueError("Board must be a non-empty rectangular matrix.")
    return len(board), len(board[0])

def get_board_size(board: Board) -> int:
    """
    Gets the size (N) of an N x N board.
    Args:
        board (Board): The game board.
    Returns:
        int: The dimension of the board.
    Raises:
        ValueError: If the board is not square or empty.
    """
    rows, cols = get_board_shape(board)
    if rows != cols:
        raise ValueError("Board must be a non-empty square matrix.")
    return rows

def is_power_of_two(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0

def validate_board(board: Board) -> Tuple[int, int]:
    """
    Checks that a board is rectangular and holds only empty cells or power-of-two tiles.
    Args:
        board (Board): The board to check.
    Returns:
        Tuple[int, int]: The board shape.
    Raises:
        ValueError: If the board is malformed or holds an invalid tile.
    """
    shape = get_board_shape(board)
    for r, row in enumerate(board):
        for c, value in enumerate(row):
            if not isinstance(value, int) or (value != 0 and not is_power_of_two(value)):
                raise ValueError(f"Invalid tile {value!r} at ({r}, {c}); tiles must be 0 or a power of two.")
    return shape

def copy_board(board: Board) -> Board:
    return [list(row) for row in board]

def get_empty_cells(board: Board) -> List[Cell]:
    """
    Get coordinates of empty (0-value) cells in the given board.
    Args:
        board (Board): The board to check.
    Returns:
        List[Cell]: List of (row, col) tuples for empty cells.
    """
    rows, cols = get_board_shape(board)
    empty_cells = []
    for row in range(rows):
        for col in range(cols):
            if board[row][col] == 0:
                empty_cells.append((row, col))
    return empty_cells

def add_random_tile(board: Board, rng: Optional[random.Random] = None) -> Tuple[Board, Optional[Cell]]:
    """
    Adds a new tile (90% chance of 2, 10% chance of 4) to an empty cell on a copy of the board.
    Args:
        board (Board): The current game board.
        rng (Optional[random.Random]): Source of randomness; the module-level generator if omitted.
    Returns:
        Tuple[Board, Optional[Cell]]: A new board with the added tile and the cell that
                                      received it. If there are no empty cells, returns a copy
                                      of the original board and None.
    """
    rng = rng or random
    empty_cells = get_empty_cells(board)
    new_board = copy_board(board)  # Work on a copy
    if not empty_cells:
        return new_board, None

    row, col = rng.choice(empty_cells)
    new_board[row][col] = 4 if rng.random() < FOUR_TILE_PROBABILITY else 2
    return new_board, (row, col)

def initialize_board(size: int = DEFAULT_BOARD_SIZE,
                     rng: Optional[random.Random] = None) -> Tuple[Board, int, GameProgressState]:
    """
    Initializes a new game board with two random tiles.
    Args:
        size (int): The dimension of the N x N game board. Default is 4.
        rng (Optional[random.Random]): Source of randomness for the two starting tiles.
    Returns:
        Tuple[Board, int, GameProgressState]: The initial board, score (0),
                                              and game state (IN_PROGRESS).
    Raises:
        ValueError: If board size is not a positive integer.
    """
    if not isinstance(size, int) or size <= 0:
        raise ValueError("Board size must be a positive integer.")

    current_board: Board = [[0] * size for _ in range(size)]

    # Add two initial tiles
    current_board, _ = add_random_tile(current_board, rng)
    current_board, _ = add_random_tile(current_board, rng)

    return current_board, 0, GameProgressState.IN_PROGRESS

# --- Line Traversal ---

def line_coordinates(rows: int, cols: int, direction: DIRECTION) -> List[List[Cell]]:
    """
    Lists the lines a move in `direction` operates on.
    Each line is ordered from the leading edge (the edge tiles move toward)
    to the trailing edge. Rows are listed top to bottom, columns left to right.
    Args:
        rows (int): Number of rows on the board.
        cols (int): Number of columns on the board.
        direction (DIRECTION): The move direction.
    Returns:
        List[List[Cell]]: One list of (row, col) coordinates per line.
    Raises:
        ValueError: If an invalid direction is specified.
    """
    if direction == DIRECTION.LEFT:
        return [[(r, c) for c in range(cols)] for r in range(rows)]
    if direction == DIRECTION.RIGHT:
        return [[(r, c) for c in reversed(range(cols))] for r in range(rows)]
    if direction == DIRECTION.UP:
        return [[(r, c) for r in range(rows)] for c in range(cols)]
    if direction == DIRECTION.DOWN:
        return [[(r, c) for r in reversed(range(rows))] for c in range(cols)]
    raise ValueError("Invalid direction specified for line_coordinates.")

# --- Line Manipulation (Core Move Logic Helpers) ---

def _compress_line(line: List[int]) -> Tuple[List[int], bool]:
    """
    Compresses a single line to the left (moves all non-zero tiles to the "start").
    Args:
        line (List[int]): The line to compress.
    Returns:
        Tuple[List[int], bool]: The compressed line and a boolean indicating if it changed.
    """
    n = len(line)
    original_line_tuple = tuple(line)
    new_line_compressed = [i for i in line if i != 0]
    new_line_compressed += [0] * (n - len(new_line_compressed))
    changed = (tuple(new_line_compressed) != original_line_tuple)
    return new_line_compressed, changed

def _merge_line(line: List[int]) -> Tuple[List[int], int, bool]:
    """
    Merge pass over a line moving left / towards index 0.
    Each position pulls in the nearest tile behind it: an empty position takes the
    tile and is scanned again, an equal position doubles and is done, anything
    else blocks. A merged tile is never merged a second time.
    Args:
        line (List[int]): The input line to be merged.
    Returns:
        Tuple[List[int], int, bool]: Merged line, score increase from merges,
                                     and a boolean indicating if changed by merging.
    """
    n = len(line)
    new_line_merged = list(line)
    score_increase = 0
    position = 0

    while position < n - 1:
        probe = position + 1
        while probe < n and new_line_merged[probe] == 0:
            probe += 1
        if probe == n:
            break  # Nothing left behind this position

        if new_line_merged[position] == 0:
            new_line_merged[position] = new_line_merged[probe]
            new_line_merged[probe] = 0
            continue  # The filled position may still accept a merge

        if new_line_merged[position] == new_line_merged[probe]:
            new_line_merged[position] *= 2
            new_line_merged[probe] = 0
            score_increase += new_line_merged[position]
        position += 1

    changed_by_merge = (tuple(new_line_merged) != tuple(line))
    return new_line_merged, score_increase, changed_by_merge

def _process_single_line_leftwise(line: List[int]) -> Tuple[List[int], int, bool]:
    """
    Applies the merge pass then the compaction pass to a single line, moving left.
    Args:
        line (List[int]): The line to process.
    Returns:
        Tuple[List[int], int, bool]: The processed line, score increase, and if the line changed.
    """
    original_line_tuple = tuple(line)

    # Step 1: Merge
    merged_line, score_delta_from_merge, _ = _merge_line(line)
    # Step 2: Compact
    final_processed_line, _ = _compress_line(merged_line)

    line_actually_changed = (tuple(final_processed_line) != original_line_tuple)

    return final_processed_line, score_delta_from_merge, line_actually_changed

# --- Core Game Move Processing ---

def process_move(board: Board, direction: DIRECTION) -> MoveResult:
    """
    Processes a move in the specified direction on a copy of the board.
    Args:
        board (Board): The current game board.
        direction (DIRECTION): The direction to move.
    Returns:
        MoveResult:
            - The new board state after the move.
            - A boolean indicating if the board changed as a result of the move.
            - The score gained from this move.
    Raises:
        ValueError: If the board is malformed or an invalid direction is specified.
    """
    rows, cols = get_board_shape(board)
    assert all(v == 0 or is_power_of_two(v) for row in board for v in row), \
        "board holds a tile that is not a power of two"

    board_to_operate_on = copy_board(board)  # Work on a copy
    score_gained = 0
    move_changed_board = False

    for coordinates in line_coordinates(rows, cols, direction):
        line_to_process = [board_to_operate_on[r][c] for r, c in coordinates]
        final_line, score_from_line, line_changed = _process_single_line_leftwise(line_to_process)

        if line_changed:
            for (r, c), value in zip(coordinates, final_line):
                board_to_operate_on[r][c] = value
            score_gained += score_from_line
            move_changed_board = True

    return MoveResult(board_to_operate_on, move_changed_board, score_gained)

# --- Game State Checks ---

def check_for_win(board: Board, win_tile: int = DEFAULT_WIN_TILE) -> bool:
    """
    Check if the game is won (a tile of at least win_tile value exists).
    Args:
        board (Board): The game board.
        win_tile (int): The tile value that signifies a win. Default is 2048.
    Returns:
        bool: True if the game is won, False otherwise.
    """
    return any(value >= win_tile for row in board for value in row)

def has_adjacent_pair(board: Board) -> bool:
    """True if two horizontally or vertically adjacent cells hold the same non-zero value."""
    rows, cols = get_board_shape(board)
    for r in range(rows):
        for c in range(cols):
            value = board[r][c]
            if value == 0:
                continue
            if c < cols - 1 and board[r][c + 1] == value:
                return True
            if r < rows - 1 and board[r + 1][c] == value:
                return True
    return False

def can_move(board: Board) -> bool:
    """
    Checks whether any move could still change the board.
    Args:
        board (Board): The game board.
    Returns:
        bool: True if an empty cell or an adjacent equal pair exists.
    """
    return bool(get_empty_cells(board)) or has_adjacent_pair(board)

def is_move_possible_in_direction(board: Board, direction: DIRECTION) -> bool:
    """
    Check if any tile can move or merge in the given specific direction.
    Args:
        board (Board): The game board.
        direction (DIRECTION): The direction to check.
    Returns:
       bool: True if at least one tile can move or merge in that direction, False otherwise.
    """
    rows, cols = get_board_shape(board)
    for coordinates in line_coordinates(rows, cols, direction):
        for (ahead_r, ahead_c), (r_idx, c_idx) in zip(coordinates, coordinates[1:]):
            value = board[r_idx][c_idx]
            if value == 0:
                continue  # Only non-empty tiles can initiate a move
            ahead = board[ahead_r][ahead_c]
            if ahead == 0 or ahead == value:
                return True
    return False

def available_directions(board: Board) -> List[DIRECTION]:
    """Lists the directions in which a move would change the board."""
    return [direction for direction in DIRECTION if is_move_possible_in_direction(board, direction)]

def determine_game_status(board: Board, win_tile: int = DEFAULT_WIN_TILE) -> GameProgressState:
    """
    Determines the current progress state of the game based on the board.
    Args:
        board (Board): The current game board.
        win_tile (int): The tile value that signifies a win. Default is 2048.
    Returns:
        GameProgressState: The current state (IN_PROGRESS, GAME_WON, GAME_OVER).
    """
    if check_for_win(board, win_tile):
        return GameProgressState.GAME_WON

    if not can_move(board):
        # Board is full AND no adjacent pair can merge
        return GameProgressState.GAME_OVER

    return GameProgressState.IN_PROGRESS
