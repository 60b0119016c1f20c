from typing import List, NamedTuple, Optional

from .errors import InvalidMove

ROWS = 6
COLS = 7
CENTER_COLUMN = COLS // 2
WIN_LENGTH = 4

# One (row, col) step per axis: horizontal, vertical, both diagonals.
AXES = ((0, 1), (1, 0), (1, 1), (1, -1))


class Position(NamedTuple):
    row: int
    col: int

    def to_dict(self):
        return {'row': self.row, 'col': self.col}


class Board:
    """6x7 grid; row 0 is the top, row 5 the bottom. Empty cells are None."""

    def __init__(self, cells: Optional[List[List[Optional[str]]]] = None):
        if cells is None:
            cells = [[None] * COLS for _ in range(ROWS)]
        self.cells = cells

    def __getitem__(self, pos):
        row, col = pos
        return self.cells[row][col]

    def __eq__(self, other):
        return isinstance(other, Board) and self.cells == other.cells

    def copy(self) -> 'Board':
        return Board([list(row) for row in self.cells])

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < ROWS and 0 <= col < COLS

    def to_list(self):
        return [list(row) for row in self.cells]


def is_valid_column(board: Board, column) -> bool:
    if isinstance(column, bool) or not isinstance(column, int):
        return False
    return 0 <= column < COLS and board.cells[0][column] is None


def valid_columns(board: Board) -> List[int]:
    return [col for col in range(COLS) if board.cells[0][col] is None]


def apply_move(board: Board, column, token: str) -> Position:
    """Drop ``token`` into ``column`` and return where it landed.

    Raises InvalidMove without touching the board when the column is out of
    range, not an integer, or already full.
    """
    if not is_valid_column(board, column):
        raise InvalidMove()
    for row in range(ROWS - 1, -1, -1):
        if board.cells[row][column] is None:
            board.cells[row][column] = token
            return Position(row, column)
    raise InvalidMove()


def _run(board: Board, start: Position, dr: int, dc: int, token: str, limit: int = ROWS + COLS):
    cells = []
    row, col = start.row + dr, start.col + dc
    while len(cells) < limit and board.in_bounds(row, col) and board.cells[row][col] == token:
        cells.append(Position(row, col))
        row += dr
        col += dc
    return cells


def detect_win(board: Board, position: Position, token: str) -> Optional[List[Position]]:
    """Return the winning line through ``position`` or None.

    Each axis is extended both ways over contiguous ``token`` cells; the
    first axis holding four or more cells is reported, ordered end to end.
    """
    for dr, dc in AXES:
        backward = _run(board, position, -dr, -dc, token)
        forward = _run(board, position, dr, dc, token)
        if len(backward) + 1 + len(forward) >= WIN_LENGTH:
            return list(reversed(backward)) + [position] + forward
    return None


def count_connected(board: Board, position: Position, token: str) -> int:
    """Sum over the four axes of the run through ``position``.

    The piece itself counts once per axis and each direction looks at most
    three cells away, so a lone piece scores 4.
    """
    total = 0
    for dr, dc in AXES:
        total += 1
        total += len(_run(board, position, dr, dc, token, limit=WIN_LENGTH - 1))
        total += len(_run(board, position, -dr, -dc, token, limit=WIN_LENGTH - 1))
    return total


def is_full(board: Board) -> bool:
    return all(cell is not None for cell in board.cells[0])
