# client_demo.py
#
# Minimal Python client to:
#   1) fetch a random puzzle
#   2) submit the player's moves (taken from the puzzle's own solution)
#   3) print the ecash reward token
#
# Requirements:
#   pip install requests
#
# Server assumptions:
#   - FastAPI app running at BASE_URL
#   - the player's moves are the odd entries of the puzzle solution

import json
import os
import sys
from typing import Any, Dict, List

import requests
from dotenv import load_dotenv

load_dotenv()

# ---------------------------
# Config
# ---------------------------
BASE_URL = os.getenv("REWARDS_BASE_URL", "http://127.0.0.1:3000").rstrip("/")
VERBOSE = True


# ---------------------------
# API calls
# ---------------------------
def get_puzzle() -> Dict[str, Any]:
    r = requests.get(f"{BASE_URL}/puzzle", timeout=30)
    if r.status_code != 200:
        raise RuntimeError(f"puzzle failed {r.status_code}: {r.text}")
    data = r.json()
    if VERBOSE:
        print(f"[puzzle] id={data['id']} rating={data['rating']} fen={data['position']}")
    return data


def player_moves(solution: List[str]) -> List[str]:
    return solution[1::2]


def solve(puzzle_id: str, moves: List[str]) -> Dict[str, Any]:
    payload = {"puzzleId": puzzle_id, "moves": moves}
    r = requests.post(f"{BASE_URL}/puzzle/solve", json=payload, timeout=60)
    if r.status_code == 429:
        retry = r.json().get("retryAfterSeconds")
        raise RuntimeError(f"rate limited, retry in {retry}s")
    if r.status_code != 200:
        raise RuntimeError(f"solve failed {r.status_code}: {r.text}")
    return r.json()


def get_balance() -> Dict[str, Any]:
    r = requests.get(f"{BASE_URL}/balance", timeout=30)
    r.raise_for_status()
    return r.json()


# ---------------------------
# Demo main
# ---------------------------
def main() -> int:
    print("[balance]", json.dumps(get_balance()))

    puzzle = get_puzzle()
    moves = player_moves(puzzle["solutionMoves"])
    print(f"[solve] submitting {moves}")

    try:
        res = solve(puzzle["id"], moves)
    except RuntimeError as e:
        print(f"[solve] {e}")
        return 1

    print(f"[solve] reward={res['reward']} sats, pot left={res['remainingBalance']}")
    print(f"[token] {res['encodedToken']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
