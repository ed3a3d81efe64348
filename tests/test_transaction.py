"""Tests for plan assembly and sealing."""

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.transaction import Transaction
from spl.token.constants import MINT_LEN, TOKEN_PROGRAM_ID

from token_creator import instructions as ix
from token_creator.errors import EmptyPlanError, IncompleteSignaturesError, InvalidInputError
from token_creator.transaction import FreshnessToken, assemble


@pytest.fixture
def freshness():
    return FreshnessToken(blockhash=Hash(b"\x07" * 32), last_valid_block_height=500)


@pytest.fixture
def payer():
    return Keypair()


@pytest.fixture
def mint():
    return Keypair()


@pytest.fixture
def plan(payer, mint, freshness):
    instructions = [
        ix.create_account(payer.pubkey(), mint.pubkey(), MINT_LEN, 1_461_600, TOKEN_PROGRAM_ID),
        ix.initialize_mint(mint.pubkey(), 6, payer.pubkey(), payer.pubkey()),
    ]
    return assemble(instructions, payer.pubkey(), freshness)


class TestAssemble:
    def test_empty_plan(self, payer, freshness):
        with pytest.raises(EmptyPlanError) as excinfo:
            assemble([], payer.pubkey(), freshness)
        assert excinfo.value.kind == "EmptyPlan"

    def test_fee_payer_signs_first(self, plan, payer, mint):
        assert plan.required_signers[0] == payer.pubkey()
        # new mint account must co-sign its own creation
        assert mint.pubkey() in plan.required_signers
        assert len(plan.required_signers) == 2

    def test_carries_freshness_token(self, plan, freshness):
        assert plan.message.recent_blockhash == freshness.blockhash
        assert plan.freshness.last_valid_block_height == 500

    def test_rejects_malformed_fee_payer(self, freshness, mint):
        instruction = ix.initialize_mint(mint.pubkey(), 6, mint.pubkey(), None)
        with pytest.raises(InvalidInputError):
            assemble([instruction], "nope", freshness)


class TestSealing:
    def test_seal_requires_all_signatures(self, plan, mint):
        plan.add_signature(mint.pubkey(), mint.sign_message(plan.message_bytes()))
        with pytest.raises(IncompleteSignaturesError) as excinfo:
            plan.seal()
        assert len(excinfo.value.missing) == 1
        assert not plan.sealed

    def test_seal_orders_signatures_by_signer_slot(self, plan, payer, mint):
        # sign in reverse order on purpose
        plan.add_signature(mint.pubkey(), mint.sign_message(plan.message_bytes()))
        plan.add_signature(payer.pubkey(), payer.sign_message(plan.message_bytes()))
        transaction = plan.seal()
        assert plan.sealed
        assert transaction.signatures[0] == plan.signatures[payer.pubkey()]
        assert plan.signature_id == transaction.signatures[0]
        assert Transaction.from_bytes(plan.serialize()) == transaction

    def test_sealed_plan_is_frozen(self, plan, payer, mint):
        for key in (payer, mint):
            plan.add_signature(key.pubkey(), key.sign_message(plan.message_bytes()))
        plan.seal()
        with pytest.raises(IncompleteSignaturesError):
            plan.add_signature(payer.pubkey(), payer.sign_message(plan.message_bytes()))

    def test_unknown_signer_rejected(self, plan):
        stranger = Keypair()
        with pytest.raises(InvalidInputError):
            plan.add_signature(stranger.pubkey(), stranger.sign_message(plan.message_bytes()))

    def test_serialize_before_seal_fails(self, plan):
        with pytest.raises(IncompleteSignaturesError):
            plan.serialize()
