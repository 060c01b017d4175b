# animation.py
# Rebuilds per-tile provenance for a move so a renderer can interpolate tiles
# from where they were to where they ended up.

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from core import DIRECTION, Board, Cell, get_board_shape, line_coordinates

logger = logging.getLogger(__name__)

MAX_MERGE_SOURCES = 2


class TransitionKind(Enum):
    """How a tile reached its destination."""
    MOVE = 1
    MERGE = 2

@dataclass(frozen=True)
class TileTransition:
    """A single tile travelling from one cell to another during a move.

    `value` is the tile's value before the move; for a MERGE the destination
    ends up holding twice that value.
    """
    from_row: int
    from_col: int
    to_row: int
    to_col: int
    value: int
    kind: TransitionKind

    @property
    def source(self) -> Cell:
        return self.from_row, self.from_col

    @property
    def destination(self) -> Cell:
        return self.to_row, self.to_col

    def position_at(self, progress: float) -> Tuple[float, float]:
        """Linearly interpolated (row, col) of the tile at `progress` in [0, 1]."""
        t = min(max(progress, 0.0), 1.0)
        return (self.from_row + (self.to_row - self.from_row) * t,
                self.from_col + (self.to_col - self.from_col) * t)


def _match_destination(candidates: Sequence[Cell],
                       value: int,
                       current_board: Board,
                       claims: Dict[Cell, TransitionKind],
                       merge_sources: Dict[Cell, int]) -> Optional[Tuple[Cell, TransitionKind]]:
    # Closest consistent destination in scan order wins.
    for cell in candidates:
        row, col = cell
        target = current_board[row][col]
        if target == 0:
            continue
        claim = claims.get(cell)
        if claim is None and target == value:
            return cell, TransitionKind.MOVE
        if claim is not TransitionKind.MOVE and target == value * 2 \
                and merge_sources.get(cell, 0) < MAX_MERGE_SOURCES:
            return cell, TransitionKind.MERGE
    return None

def reconcile_transitions(previous_board: Board,
                          current_board: Board,
                          direction: DIRECTION) -> List[TileTransition]:
    """
    Infers which tiles moved or merged between two boards.

    Sources are visited line by line in the same order the move engine uses,
    from the leading edge backwards. Each source takes the closest cell between
    the leading edge and its own position that still accepts it: an unclaimed
    cell of equal value (a slide) or a cell of twice the value with fewer than
    two merge sources (a merge). A slide onto its own cell means the tile did
    not move and produces no transition. Tiles whose cell holds the same value
    after the move are still scanned, since they may have merged away with a
    replacement sliding in behind them.

    Args:
        previous_board (Board): The board before the move.
        current_board (Board): The board after the move, before the spawn.
        direction (DIRECTION): The direction of the move.
    Returns:
        List[TileTransition]: Transitions in traversal order.
    Raises:
        ValueError: If the boards are malformed or differ in shape.
    """
    rows, cols = get_board_shape(previous_board)
    if get_board_shape(current_board) != (rows, cols):
        raise ValueError("Previous and current boards must have the same shape.")

    transitions: List[TileTransition] = []
    claims: Dict[Cell, TransitionKind] = {}
    merge_sources: Dict[Cell, int] = {}

    for coordinates in line_coordinates(rows, cols, direction):
        for index, (row, col) in enumerate(coordinates):
            value = previous_board[row][col]
            if value == 0:
                continue

            match = _match_destination(coordinates[:index + 1], value, current_board, claims, merge_sources)
            if match is None:
                logger.debug("No destination for tile %d at (%d, %d) moving %s", value, row, col, direction.name)
                continue

            destination, kind = match
            claims[destination] = kind
            if kind is TransitionKind.MERGE:
                merge_sources[destination] = merge_sources.get(destination, 0) + 1
            elif destination == (row, col):
                continue  # Stationary tile

            transitions.append(TileTransition(
                from_row=row,
                from_col=col,
                to_row=destination[0],
                to_col=destination[1],
                value=value,
                kind=kind,
            ))

    return transitions

def merged_cells(transitions: Sequence[TileTransition]) -> List[Cell]:
    """Destinations that received a merge, in the order they were first reached."""
    cells: List[Cell] = []
    for transition in transitions:
        if transition.kind is TransitionKind.MERGE and transition.destination not in cells:
            cells.append(transition.destination)
    return cells
