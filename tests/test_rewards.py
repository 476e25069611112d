import asyncio
import base64

import pytest

from config import TEST_MINT_URL
from errors import InsufficientFunds, WalletError
from rewards import RewardIssuer, qr_data_url

from conftest import FakeWallet


def test_issue_pays_out_and_reports_remaining(fake_wallet):
    issuer = RewardIssuer(fake_wallet, TEST_MINT_URL)
    reward = asyncio.run(issuer.issue(10))

    assert reward.amount == 10
    assert reward.encoded_token == "cashuBfake10"
    assert reward.renderable.startswith("data:image/png;base64,")
    assert reward.remaining_balance == 90
    assert fake_wallet.sent == [{"mint": TEST_MINT_URL, "amount": 10}]


def test_insufficient_funds_sends_nothing():
    wallet = FakeWallet(balances={TEST_MINT_URL: 5})
    issuer = RewardIssuer(wallet, TEST_MINT_URL)

    with pytest.raises(InsufficientFunds):
        asyncio.run(issuer.issue(10))

    assert wallet.sent == []
    assert wallet.balances[TEST_MINT_URL] == 5


def test_balance_of_unknown_mint_is_zero(fake_wallet):
    issuer = RewardIssuer(fake_wallet, "https://other.mint")
    assert asyncio.run(issuer.balance()) == 0


def test_wallet_failure_becomes_wallet_error():
    wallet = FakeWallet(balances={TEST_MINT_URL: 50}, fail_send=True)
    issuer = RewardIssuer(wallet, TEST_MINT_URL)

    with pytest.raises(WalletError):
        asyncio.run(issuer.issue(10))


def test_unexpected_collaborator_exception_is_wrapped():
    class BrokenWallet(FakeWallet):
        async def get_balances(self):
            raise ConnectionError("mint down")

    issuer = RewardIssuer(BrokenWallet(), TEST_MINT_URL)
    with pytest.raises(WalletError) as exc:
        asyncio.run(issuer.issue(10))
    assert "mint down" in exc.value.message


def test_qr_data_url_is_png():
    url = qr_data_url("lnbc10n1fakeinvoice")
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix)
    assert base64.b64decode(url[len(prefix):]).startswith(b"\x89PNG")


def test_encode_failure_returns_proofs_to_pot():
    wallet = FakeWallet(balances={TEST_MINT_URL: 50}, fail_encode=True)
    issuer = RewardIssuer(wallet, TEST_MINT_URL)

    with pytest.raises(WalletError) as exc:
        asyncio.run(issuer.issue(10))

    assert "cannot serialize proofs" in exc.value.message
    assert wallet.released == [{"mint": TEST_MINT_URL, "amount": 10}]
    assert wallet.sent == []
    assert wallet.balances[TEST_MINT_URL] == 50


def test_encode_failure_still_reported_when_release_fails(capsys):
    class StuckWallet(FakeWallet):
        async def release(self, token):
            raise WalletError("db locked")

    wallet = StuckWallet(balances={TEST_MINT_URL: 50}, fail_encode=True)
    issuer = RewardIssuer(wallet, TEST_MINT_URL)

    with pytest.raises(WalletError):
        asyncio.run(issuer.issue(10))
    assert "could not release 10 sats" in capsys.readouterr().out
