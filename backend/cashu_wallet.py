# cashu_wallet.py
#
# WalletManager backed by the nutshell `cashu` wallet. One cashu Wallet per
# mint, all sharing one SQLite wallet database.
from __future__ import annotations

import hashlib
from typing import Any, Dict, List

from cashu.core.helpers import sum_proofs
from cashu.wallet.crud import get_bolt11_mint_quote
from cashu.wallet.helpers import deserialize_token_from_string, receive
from cashu.wallet.wallet import Wallet
from mnemonic import Mnemonic

from errors import WalletError
from wallet import MintQuote, WalletManager


def mnemonic_from_seed(seed_phrase: str) -> str:
    """Deterministic BIP39 mnemonic for a seed phrase (same phrase -> same keys)."""
    entropy = hashlib.sha256(seed_phrase.encode()).digest()
    return Mnemonic("english").to_mnemonic(entropy)


class CashuWalletManager(WalletManager):
    def __init__(self, db_path: str, seed_phrase: str, name: str = "rewards"):
        self.db_path = db_path
        self.name = name
        self._mnemonic = mnemonic_from_seed(seed_phrase)
        self._wallets: Dict[str, Wallet] = {}

    async def init(self) -> None:
        # Wallets are opened lazily per mint in add_mint(); nothing is shared
        # besides the database directory.
        print(f"[wallet] using wallet db '{self.db_path}'")

    def _wallet(self, mint: str) -> Wallet:
        w = self._wallets.get(mint)
        if w is None:
            raise WalletError(f"mint not registered: {mint}")
        return w

    def _wallet_for_keyset(self, keyset_id: str) -> Wallet:
        # every proof of one send() comes from the same keyset, hence the same wallet
        for w in self._wallets.values():
            if keyset_id in w.keysets:
                return w
        raise WalletError(f"no wallet holds keyset {keyset_id}")

    async def add_mint(self, mint: str) -> None:
        if mint in self._wallets:
            return
        try:
            # skip_db_read: the seed-derived mnemonic is the one stored in the db
            w = await Wallet.with_db(url=mint, db=self.db_path, name=self.name, skip_db_read=True)
            await w._init_private_key(self._mnemonic)
            await w.load_mint()
            await w.load_proofs(reload=True)
        except Exception as e:
            raise WalletError(f"failed to register mint {mint}: {e}") from e
        # load_mint() logs mint errors instead of raising them
        if not w.keysets:
            raise WalletError(f"failed to register mint {mint}: no keysets loaded")
        self._wallets[mint] = w
        print(f"[wallet] registered mint {mint}")

    async def get_balances(self) -> Dict[str, int]:
        out: Dict[str, int] = {}
        for mint, w in self._wallets.items():
            spendable = [p for p in w.proofs if not p.reserved]
            out[mint] = int(sum_proofs(spendable))
        return out

    async def send(self, mint: str, amount: int) -> List[Any]:
        w = self._wallet(mint)
        try:
            proofs, _fees = await w.select_to_send(w.proofs, amount, set_reserved=True)
        except Exception as e:
            raise WalletError(f"send failed: {e}") from e
        return proofs

    async def encode_token(self, token: Any) -> str:
        if not token:
            raise WalletError("nothing to encode")
        w = self._wallet_for_keyset(token[0].id)
        return await w.serialize_proofs(token)

    async def release(self, token: Any) -> None:
        if not token:
            return
        w = self._wallet_for_keyset(token[0].id)
        try:
            await w.set_reserved_for_send(token, reserved=False)
        except Exception as e:
            raise WalletError(f"release failed: {e}") from e

    async def receive(self, token: str) -> None:
        try:
            tok = deserialize_token_from_string(token)
        except Exception as e:
            raise WalletError(f"invalid token: {e}") from e
        w = self._wallet(tok.mint.rstrip("/"))
        try:
            await receive(w, tok)
            await w.load_proofs(reload=True)
        except Exception as e:
            raise WalletError(f"receive failed: {e}") from e

    async def create_mint_quote(self, mint: str, amount: int) -> MintQuote:
        w = self._wallet(mint)
        try:
            q = await w.request_mint(amount)
        except Exception as e:
            raise WalletError(f"mint quote failed: {e}") from e
        return MintQuote(quote=q.quote, request=q.request, amount=amount)

    async def redeem_mint_quote(self, mint: str, quote_id: str) -> None:
        w = self._wallet(mint)
        # quotes live in the wallet db, so they survive restarts
        try:
            quote = await get_bolt11_mint_quote(w.db, quote=quote_id)
        except Exception as e:
            raise WalletError(f"quote lookup failed: {e}") from e
        if quote is None:
            raise WalletError(f"unknown quote {quote_id}")
        try:
            await w.mint(int(quote.amount), quote_id=quote_id)
        except Exception as e:
            raise WalletError(f"quote not redeemed: {e}") from e
