"""Pytest configuration and shared fixtures: a fake ledger and test wallets."""

from types import SimpleNamespace

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from token_creator.broadcast import BroadcastClient
from token_creator.config import Settings
from token_creator.errors import UserRejectedError
from token_creator.signer import KeypairWallet

ONE_SOL = 1_000_000_000
RENT = {82: 1_461_600, 165: 2_039_280}


class FakeRpc:
    """Stands in for ``AsyncClient``; records every call it receives."""

    def __init__(self, balance=ONE_SOL, send_errors=None, confirm=True, execution_error=None, block_height=0):
        self.balance_value = balance
        self.block_height = block_height
        # method name -> errors raised by successive calls, None lets a call through
        self.read_errors = {}
        self.send_errors = list(send_errors or [])
        self.confirm = confirm
        self.execution_error = execution_error
        self.status_errors = []
        self.calls = []
        self.sent = []
        self.blockhashes = []

    def _maybe_fail(self, method):
        errors = self.read_errors.get(method)
        error = errors.pop(0) if errors else None
        if error is not None:
            raise error

    async def get_minimum_balance_for_rent_exemption(self, size, commitment=None):
        self.calls.append("get_minimum_balance_for_rent_exemption")
        self._maybe_fail("get_minimum_balance_for_rent_exemption")
        return SimpleNamespace(value=RENT[size])

    async def get_balance(self, pubkey, commitment=None):
        self.calls.append("get_balance")
        self._maybe_fail("get_balance")
        return SimpleNamespace(value=self.balance_value)

    async def get_latest_blockhash(self, commitment=None):
        self.calls.append("get_latest_blockhash")
        self._maybe_fail("get_latest_blockhash")
        blockhash = Hash(bytes([len(self.blockhashes) + 1]) * 32)
        self.blockhashes.append(blockhash)
        return SimpleNamespace(
            value=SimpleNamespace(blockhash=blockhash, last_valid_block_height=1000 + len(self.blockhashes))
        )

    async def send_raw_transaction(self, txn, opts=None):
        self.calls.append("send_raw_transaction")
        error = self.send_errors.pop(0) if self.send_errors else None
        if error is not None:
            raise error
        transaction = Transaction.from_bytes(txn)
        self.sent.append(transaction)
        return SimpleNamespace(value=transaction.signatures[0])

    async def get_signature_statuses(self, signatures, search_transaction_history=False):
        self.calls.append("get_signature_statuses")
        if self.status_errors:
            raise self.status_errors.pop(0)
        if not self.confirm:
            return SimpleNamespace(value=[None])
        status = SimpleNamespace(
            slot=42,
            err=self.execution_error,
            confirmations=1,
            confirmation_status=TransactionConfirmationStatus.Confirmed,
        )
        return SimpleNamespace(value=[status])

    async def get_block_height(self, commitment=None):
        self.calls.append("get_block_height")
        return SimpleNamespace(value=self.block_height)


class RecordingWallet(KeypairWallet):
    """Signs like a real keypair wallet and remembers every plan it saw."""

    def __init__(self, keypair=None):
        super().__init__(keypair or Keypair())
        self.plans = []

    async def sign_transaction(self, plan):
        self.plans.append(plan)
        return await super().sign_transaction(plan)


class RejectingWallet(RecordingWallet):
    async def sign_transaction(self, plan):
        self.plans.append(plan)
        raise UserRejectedError("User rejected the request.")


class SilentWallet(RecordingWallet):
    """Approves but never actually signs."""

    async def sign_transaction(self, plan):
        self.plans.append(plan)
        return plan


@pytest.fixture
def settings() -> Settings:
    return Settings(confirm_timeout=0.05, poll_interval=0.0)


@pytest.fixture
def fake_rpc() -> FakeRpc:
    return FakeRpc()


@pytest.fixture
def make_rpc():
    return FakeRpc


@pytest.fixture
def client(fake_rpc, settings) -> BroadcastClient:
    return BroadcastClient(fake_rpc, settings)


@pytest.fixture
def wallet() -> RecordingWallet:
    return RecordingWallet()


@pytest.fixture
def rejecting_wallet() -> RejectingWallet:
    return RejectingWallet()


@pytest.fixture
def silent_wallet() -> SilentWallet:
    return SilentWallet()


@pytest.fixture
def make_wallet():
    return RecordingWallet
