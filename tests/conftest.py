from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from config import TEST_MINT_URL, Settings
from errors import WalletError
from wallet import MintQuote, WalletManager

TEST_SEED = "pytest-seed-not-a-real-wallet"

SAMPLE_PUZZLES = [
    {
        "id": "p1",
        "fen": "r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3",
        "solution": ["e7e5", "Nf3", "Nc6", "Bb5"],
        "rating": 900,
        "themes": ["opening", "short"],
    },
    {
        "id": "p2",
        "fen": "6k1/5ppp/8/8/8/8/r4PPP/3R2K1 b - - 0 1",
        "solution": ["a2a1", "d1d8"],
        "rating": 705,
        "themes": ["backRankMate", "mateIn1"],
    },
]


class FakeClock:
    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeWallet(WalletManager):
    """In-memory stand-in for the Cashu wallet."""

    def __init__(
        self,
        balances: Optional[Dict[str, int]] = None,
        fail_send: bool = False,
        fail_encode: bool = False,
    ):
        self.balances: Dict[str, int] = dict(balances or {})
        self.fail_send = fail_send
        self.fail_encode = fail_encode
        self.released: List[Dict[str, Any]] = []
        self.initialized = False
        self.closed = False
        self.mints: List[str] = []
        self.sent: List[Dict[str, Any]] = []
        self.quotes: Dict[str, tuple] = {}
        self.paid: set = set()

    async def init(self) -> None:
        self.initialized = True

    async def add_mint(self, mint: str) -> None:
        if mint in self.mints:
            return
        self.mints.append(mint)
        self.balances.setdefault(mint, 0)

    async def get_balances(self) -> Dict[str, int]:
        return dict(self.balances)

    async def send(self, mint: str, amount: int) -> Any:
        if self.fail_send:
            raise WalletError("mint unreachable")
        if self.balances.get(mint, 0) < amount:
            raise WalletError("not enough proofs")
        self.balances[mint] -= amount
        token = {"mint": mint, "amount": amount}
        self.sent.append(token)
        return token

    async def encode_token(self, token: Any) -> str:
        if self.fail_encode:
            raise ValueError("cannot serialize proofs")
        return f"cashuBfake{token['amount']}"

    async def release(self, token: Any) -> None:
        self.sent.remove(token)
        self.released.append(token)
        self.balances[token["mint"]] += token["amount"]

    async def receive(self, token: str) -> None:
        if not token.startswith("cashu"):
            raise WalletError("invalid token")
        self.balances[TEST_MINT_URL] = self.balances.get(TEST_MINT_URL, 0) + 21

    async def create_mint_quote(self, mint: str, amount: int) -> MintQuote:
        quote_id = f"quote{len(self.quotes) + 1}"
        self.quotes[quote_id] = (mint, amount)
        return MintQuote(quote=quote_id, request=f"lnbc{amount}n1fakeinvoice", amount=amount)

    async def redeem_mint_quote(self, mint: str, quote_id: str) -> None:
        if quote_id not in self.quotes:
            raise WalletError(f"unknown quote {quote_id}")
        if quote_id not in self.paid:
            raise WalletError("quote not paid")
        _, amount = self.quotes.pop(quote_id)
        self.balances[mint] = self.balances.get(mint, 0) + amount

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def puzzles_file(tmp_path: Path) -> Path:
    path = tmp_path / "puzzles.json"
    path.write_text(json.dumps(SAMPLE_PUZZLES), encoding="utf-8")
    return path


@pytest.fixture
def settings(puzzles_file: Path) -> Settings:
    return Settings(
        wallet_seed=TEST_SEED,
        puzzles_path=str(puzzles_file),
        puzzle_reward=10,
        rate_limit_seconds=5,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_wallet() -> FakeWallet:
    return FakeWallet(balances={TEST_MINT_URL: 100})


class UnreachableWallet(FakeWallet):
    """Registers mints fine, then every mint call fails with a raw network error."""

    async def create_mint_quote(self, mint: str, amount: int) -> MintQuote:
        raise ConnectionError("mint down")

    async def redeem_mint_quote(self, mint: str, quote_id: str) -> None:
        raise ConnectionError("mint down")

    async def receive(self, token: str) -> None:
        raise ConnectionError("mint down")
