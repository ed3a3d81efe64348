"""Tests for the local-then-wallet signing pipeline."""

import asyncio

import base58
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.signature import Signature
from spl.token.constants import MINT_LEN, TOKEN_PROGRAM_ID

from token_creator import instructions as ix
from token_creator.errors import IncompleteSignaturesError, InvalidInputError, UserRejectedError
from token_creator.signer import KeypairWallet, sign
from token_creator.transaction import FreshnessToken, assemble


def _mint_plan(owner, mint):
    instructions = [
        ix.create_account(owner, mint.pubkey(), MINT_LEN, 1_461_600, TOKEN_PROGRAM_ID),
        ix.initialize_mint(mint.pubkey(), 9, owner, owner),
    ]
    return assemble(instructions, owner, FreshnessToken(Hash(b"\x01" * 32), 100))


class ForgingWallet(KeypairWallet):
    async def sign_transaction(self, plan):
        plan.add_signature(self.public_key, Signature(b"\x01" * 64))
        return plan


class BrokenWallet(KeypairWallet):
    async def sign_transaction(self, plan):
        raise RuntimeError("popup closed")


class TestSign:
    def test_local_then_wallet(self, wallet):
        mint = Keypair()
        plan = _mint_plan(wallet.public_key, mint)
        signed = asyncio.run(sign(plan, [mint], wallet))
        assert signed.sealed
        assert wallet.plans == [plan]
        assert set(signed.signatures) == {wallet.public_key, mint.pubkey()}
        assert signed.invalid_signers() == []

    def test_user_rejection_propagates(self, rejecting_wallet):
        mint = Keypair()
        plan = _mint_plan(rejecting_wallet.public_key, mint)
        with pytest.raises(UserRejectedError):
            asyncio.run(sign(plan, [mint], rejecting_wallet))
        assert not plan.sealed

    def test_foreign_wallet_error_becomes_rejection(self):
        wallet = BrokenWallet(Keypair())
        mint = Keypair()
        with pytest.raises(UserRejectedError) as excinfo:
            asyncio.run(sign(_mint_plan(wallet.public_key, mint), [mint], wallet))
        assert "popup closed" in excinfo.value.message

    def test_missing_mint_signature(self, wallet):
        """Without the mint key the plan can never be complete."""
        plan = _mint_plan(wallet.public_key, Keypair())
        with pytest.raises(IncompleteSignaturesError) as excinfo:
            asyncio.run(sign(plan, [], wallet))
        assert len(excinfo.value.missing) == 1

    def test_wallet_that_does_not_sign(self, silent_wallet):
        mint = Keypair()
        plan = _mint_plan(silent_wallet.public_key, mint)
        with pytest.raises(IncompleteSignaturesError) as excinfo:
            asyncio.run(sign(plan, [mint], silent_wallet))
        assert excinfo.value.missing == [str(silent_wallet.public_key)]
        assert not plan.sealed

    def test_forged_signature_rejected(self):
        wallet = ForgingWallet(Keypair())
        mint = Keypair()
        with pytest.raises(IncompleteSignaturesError):
            asyncio.run(sign(_mint_plan(wallet.public_key, mint), [mint], wallet))

    def test_unrelated_local_key(self, wallet):
        mint = Keypair()
        plan = _mint_plan(wallet.public_key, mint)
        with pytest.raises(InvalidInputError):
            asyncio.run(sign(plan, [mint, Keypair()], wallet))
        assert wallet.plans == []


class TestKeypairWallet:
    def test_from_secret(self):
        keypair = Keypair()
        wallet = KeypairWallet.from_secret(base58.b58encode(bytes(keypair)).decode())
        assert wallet.public_key == keypair.pubkey()
        assert wallet.connected

    def test_from_bad_secret(self):
        with pytest.raises(InvalidInputError):
            KeypairWallet.from_secret("abc")
