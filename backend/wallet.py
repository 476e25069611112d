# wallet.py
#
# Capability interface the server needs from an ecash wallet. Anything that
# satisfies it (the Cashu adapter in cashu_wallet.py, a fake in tests) can be
# plugged into the app.
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class MintQuote:
    quote: str      # quote id, used later to redeem
    request: str    # payment request (bolt11 invoice) the donor has to pay
    amount: int


class WalletManager(ABC):
    """Multi-mint wallet. Implementations raise errors.WalletError on any failure."""

    @abstractmethod
    async def init(self) -> None:
        """Open the persistent repository. Called once at startup."""

    @abstractmethod
    async def add_mint(self, mint: str) -> None:
        """Register a mint. Registering a known mint again is a no-op."""

    @abstractmethod
    async def get_balances(self) -> Dict[str, int]:
        """Spendable balance in sats per registered mint."""

    @abstractmethod
    async def send(self, mint: str, amount: int) -> Any:
        """Split off `amount` sats from `mint` as a bearer token (opaque)."""

    @abstractmethod
    async def encode_token(self, token: Any) -> str:
        """Serialize a token returned by send() into its transport string."""

    @abstractmethod
    async def release(self, token: Any) -> None:
        """Return an unsent token from send() to the spendable balance."""

    @abstractmethod
    async def receive(self, token: str) -> None:
        """Redeem an encoded token into this wallet."""

    @abstractmethod
    async def create_mint_quote(self, mint: str, amount: int) -> MintQuote:
        ...

    @abstractmethod
    async def redeem_mint_quote(self, mint: str, quote_id: str) -> None:
        """Mint the quoted amount. Fails while the payment request is unpaid."""

    async def close(self) -> None:
        return None
