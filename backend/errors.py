# errors.py
from typing import Any, Dict


class RewardsError(Exception):
    """Base class for per-request failures; rendered as a JSON error body."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(RewardsError):
    status_code = 400


class RateLimited(RewardsError):
    status_code = 429

    def __init__(self, message: str, retry_after_seconds: int):
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds

    def to_body(self) -> Dict[str, Any]:
        return {"error": self.message, "retryAfterSeconds": self.retry_after_seconds}


class IncorrectSolution(RewardsError):
    status_code = 400


class InsufficientFunds(RewardsError):
    # transient: the pot may be refilled by a donation
    status_code = 503


class WalletError(RewardsError):
    status_code = 500


class StartupFailure(Exception):
    """The service cannot start (missing puzzles, bad config, wallet init failed)."""
