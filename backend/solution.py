# solution.py
from typing import List, Sequence

from puzzle_store import Puzzle


def expected_user_moves(puzzle: Puzzle) -> List[str]:
    """The player's moves: odd indices (1, 3, 5...) since the opponent moves first at index 0."""
    return [m for i, m in enumerate(puzzle.solution_moves) if i % 2 == 1]


def validate(puzzle: Puzzle, submitted: Sequence[str]) -> bool:
    return list(submitted) == expected_user_moves(puzzle)
