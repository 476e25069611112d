# config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from errors import StartupFailure

BACKEND_DIR = Path(__file__).resolve().parent

# Load environment variables from .env file
load_dotenv(BACKEND_DIR / ".env")

# ---------------------------
# Defaults
# ---------------------------
TEST_MINT_URL = "https://nofees.testnut.cashu.space"
MAIN_MINT_URL = "https://mint.minibits.cash/Bitcoin"

# Used when WALLET_SEED is not set. Anyone who knows this string can derive the wallet keys.
INSECURE_DEFAULT_SEED = "test-seed-for-development-only-change-in-production"

MODES = ("test", "main")

DEFAULT_CORS_ORIGINS = [
    "http://127.0.0.1:3000",
    "http://localhost:3000",
]


@dataclass(frozen=True)
class Settings:
    active_mode: str = "test"
    test_mint: str = TEST_MINT_URL
    main_mint: str = MAIN_MINT_URL
    wallet_db: str = "data/wallet"
    wallet_seed: str = INSECURE_DEFAULT_SEED
    puzzles_path: str = str(BACKEND_DIR / "easy_puzzles.json")
    puzzle_reward: int = 10            # sats per puzzle solved
    rate_limit_seconds: int = 5        # seconds between solve attempts per IP
    rate_limit_sweep_sec: int = 3600   # how often stale rate-limit entries are dropped
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    host: str = "0.0.0.0"
    port: int = 3000

    @property
    def active_mint(self) -> str:
        return self.main_mint if self.active_mode == "main" else self.test_mint

    @property
    def mints(self) -> List[str]:
        return [self.test_mint, self.main_mint]

    @property
    def uses_insecure_seed(self) -> bool:
        return self.wallet_seed == INSECURE_DEFAULT_SEED


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise StartupFailure(f"{name} must be an integer, got {raw!r}")


def load_settings() -> Settings:
    """Read settings from the process environment."""
    mode = (os.getenv("ACTIVE_MODE", "test") or "test").strip().lower()
    if mode not in MODES:
        raise StartupFailure(f"ACTIVE_MODE must be one of {', '.join(MODES)}, got {mode!r}")

    seed: Optional[str] = os.getenv("WALLET_SEED")
    origins_raw = os.getenv("CORS_ORIGINS", "")
    origins = [o.strip() for o in origins_raw.split(",") if o.strip()] or list(DEFAULT_CORS_ORIGINS)

    puzzles_path = Path(os.getenv("PUZZLES_PATH", "easy_puzzles.json"))
    if not puzzles_path.is_absolute():
        puzzles_path = BACKEND_DIR / puzzles_path

    return Settings(
        active_mode=mode,
        test_mint=os.getenv("TEST_MINT_URL", TEST_MINT_URL).rstrip("/"),
        main_mint=os.getenv("MAIN_MINT_URL", MAIN_MINT_URL).rstrip("/"),
        wallet_db=os.getenv("WALLET_DB", "data/wallet"),
        wallet_seed=seed or INSECURE_DEFAULT_SEED,
        puzzles_path=str(puzzles_path),
        puzzle_reward=_int_env("PUZZLE_REWARD", 10),
        rate_limit_seconds=_int_env("RATE_LIMIT_SECONDS", 5),
        rate_limit_sweep_sec=_int_env("RATE_LIMIT_SWEEP_SEC", 3600),
        cors_origins=origins,
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int_env("PORT", 3000),
    )


def check_seed_policy(settings: Settings) -> None:
    """Refuse the built-in seed in main mode; warn loudly otherwise."""
    if not settings.uses_insecure_seed:
        return
    if settings.active_mode == "main":
        raise StartupFailure("WALLET_SEED must be set explicitly when ACTIVE_MODE=main")
    print("[startup] WARNING: WALLET_SEED not set, using the insecure development seed. "
          "Funds in this wallet are NOT safe.")
