# puzzle_store.py
from __future__ import annotations

import json
import random
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from errors import StartupFailure


@dataclass(frozen=True)
class Puzzle:
    id: str
    position: str                   # FEN, opponent to move
    solution_moves: Tuple[str, ...]  # opponent move first, then alternating
    rating: int
    themes: FrozenSet[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": self.position,
            "rating": self.rating,
            "solutionMoves": list(self.solution_moves),
            "themes": sorted(self.themes),
        }


def parse_puzzle(raw: Any) -> Puzzle:
    """Build a Puzzle from one dataset record (Lichess-style keys, camelCase aliases accepted)."""
    if not isinstance(raw, dict):
        raise ValueError("puzzle record must be a JSON object")

    pid = raw.get("id")
    position = raw.get("fen", raw.get("position"))
    moves = raw.get("solution", raw.get("solutionMoves"))
    if not pid or not isinstance(pid, str):
        raise ValueError("missing id")
    if not position or not isinstance(position, str):
        raise ValueError(f"puzzle {pid}: missing fen")
    if not isinstance(moves, list) or not moves or not all(isinstance(m, str) for m in moves):
        raise ValueError(f"puzzle {pid}: solution must be a non-empty list of moves")

    themes = raw.get("themes") or []
    if isinstance(themes, str):
        # Lichess CSV exports keep themes space separated
        themes = themes.split()

    return Puzzle(
        id=pid,
        position=position,
        solution_moves=tuple(moves),
        rating=int(raw.get("rating", 0)),
        themes=frozenset(str(t) for t in themes),
    )


class PuzzleStore:
    def __init__(self, puzzles: List[Puzzle], rng: Optional[random.Random] = None):
        if not puzzles:
            raise StartupFailure("puzzle dataset is empty")
        self._puzzles = list(puzzles)
        self._by_id = {p.id: p for p in self._puzzles}
        self._rng = rng or random.SystemRandom()

    @classmethod
    def load(cls, path: str) -> "PuzzleStore":
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            raise StartupFailure(f"puzzle dataset '{path}' not found")
        except json.JSONDecodeError as e:
            raise StartupFailure(f"puzzle dataset '{path}' is not valid JSON: {e}")

        if not isinstance(data, list):
            raise StartupFailure("puzzle dataset must be a JSON array")
        try:
            puzzles = [parse_puzzle(r) for r in data]
        except (ValueError, TypeError) as e:
            raise StartupFailure(f"bad puzzle record in '{path}': {e}")

        store = cls(puzzles)
        print(f"[puzzles] loaded {len(store)} puzzles from {path}")
        return store

    def __len__(self) -> int:
        return len(self._puzzles)

    def get_random(self) -> Puzzle:
        return self._rng.choice(self._puzzles)

    def get_by_id(self, puzzle_id: str) -> Optional[Puzzle]:
        return self._by_id.get(puzzle_id)
