# rewards.py
from __future__ import annotations

import base64
from dataclasses import dataclass
from io import BytesIO

import qrcode

from errors import InsufficientFunds, RewardsError, WalletError
from wallet import WalletManager


def qr_data_url(text: str) -> str:
    """PNG QR code for `text` as a data: URL the browser can show directly."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_L,  # tokens are long; keep the code small
        box_size=6,
        border=2,
    )
    qr.add_data(text)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")
    buf = BytesIO()
    img.save(buf, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("utf-8")


@dataclass
class IssuedReward:
    amount: int
    encoded_token: str
    renderable: str
    remaining_balance: int


class RewardIssuer:
    """Pays out fixed-size ecash tokens from the active mint's pot."""

    def __init__(self, wallet: WalletManager, mint: str):
        self.wallet = wallet
        self.mint = mint

    async def balance(self) -> int:
        try:
            balances = await self.wallet.get_balances()
        except RewardsError:
            raise
        except Exception as e:
            raise WalletError(str(e)) from e
        return int(balances.get(self.mint, 0))

    async def _release(self, token, amount: int) -> None:
        # put the reserved proofs back into the pot; the user never got them
        try:
            await self.wallet.release(token)
        except Exception as e:
            print(f"[rewards] could not release {amount} sats from {self.mint}, still reserved: {e}")
            return
        print(f"[rewards] released {amount} unsent sats back to {self.mint}")

    async def issue(self, amount: int) -> IssuedReward:
        # Best-effort: another user of the same wallet could spend between
        # the check and send(); send() then fails with a WalletError.
        available = await self.balance()
        if available < amount:
            raise InsufficientFunds("Insufficient funds in puzzle pot. Please ask someone to donate!")

        try:
            token = await self.wallet.send(self.mint, amount)
        except RewardsError:
            raise
        except Exception as e:
            raise WalletError(f"failed to issue reward: {e}") from e

        try:
            encoded = await self.wallet.encode_token(token)
        except Exception as e:
            await self._release(token, amount)
            if isinstance(e, RewardsError):
                raise
            raise WalletError(f"failed to encode reward: {e}") from e

        remaining = await self.balance()
        print(f"[rewards] issued {amount} sats from {self.mint}, pot now {remaining}")
        return IssuedReward(
            amount=amount,
            encoded_token=encoded,
            renderable=qr_data_url(encoded),
            remaining_balance=remaining,
        )
