# transaction.py - groups instructions into one atomic, signable submission unit

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from solders.hash import Hash
from solders.instruction import Instruction
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from .errors import EmptyPlanError, IncompleteSignaturesError, InvalidInputError
from .keys import AddressLike, parse_address


@dataclass(frozen=True)
class FreshnessToken:
    """A recent blockhash and the last block height at which it is still accepted."""

    blockhash: Hash
    last_valid_block_height: int


class TransactionPlan:
    """
    Ordered instructions plus fee payer and freshness token, compiled to a message.

    Signatures are collected per signer while the plan is open; ``seal()`` turns
    a fully signed plan into a wire transaction and freezes it.
    """

    def __init__(self, instructions: Sequence[Instruction], fee_payer: Pubkey, freshness: FreshnessToken):
        self.instructions: Tuple[Instruction, ...] = tuple(instructions)
        self.fee_payer = fee_payer
        self.freshness = freshness
        self.message = Message.new_with_blockhash(
            list(self.instructions), fee_payer, freshness.blockhash
        )
        self.signatures: Dict[Pubkey, Signature] = {}
        self._sealed: Optional[Transaction] = None

    def __repr__(self):
        return (
            f"TransactionPlan(instructions={len(self.instructions)}, fee_payer={self.fee_payer}, "
            f"signed={len(self.signatures)}/{len(self.required_signers)}, sealed={self.sealed})"
        )

    @property
    def required_signers(self) -> List[Pubkey]:
        count = self.message.header.num_required_signatures
        return list(self.message.account_keys[:count])

    @property
    def sealed(self) -> bool:
        return self._sealed is not None

    def message_bytes(self) -> bytes:
        return bytes(self.message)

    def requires(self, signer: Pubkey) -> bool:
        return signer in self.required_signers

    def missing_signers(self) -> List[Pubkey]:
        return [key for key in self.required_signers if key not in self.signatures]

    def add_signature(self, signer: Pubkey, signature: Signature) -> None:
        if self.sealed:
            raise IncompleteSignaturesError("Plan is sealed; no further signatures accepted")
        if not self.requires(signer):
            raise InvalidInputError(f"{signer} is not a required signer of this plan", field="signer")
        self.signatures[signer] = signature

    def invalid_signers(self) -> List[Pubkey]:
        payload = self.message_bytes()
        return [
            key for key, signature in self.signatures.items()
            if not signature.verify(key, payload)
        ]

    def seal(self) -> Transaction:
        if self._sealed is not None:
            return self._sealed
        missing = self.missing_signers()
        if missing:
            raise IncompleteSignaturesError(
                f"Plan is missing {len(missing)} signature(s)",
                missing=[str(key) for key in missing],
            )
        ordered = [self.signatures[key] for key in self.required_signers]
        self._sealed = Transaction.populate(self.message, ordered)
        return self._sealed

    @property
    def transaction(self) -> Transaction:
        if self._sealed is None:
            raise IncompleteSignaturesError(
                "Plan has not been sealed",
                missing=[str(key) for key in self.missing_signers()],
            )
        return self._sealed

    @property
    def signature_id(self) -> Signature:
        # the fee payer's signature identifies the transaction on the ledger
        return self.transaction.signatures[0]

    def serialize(self) -> bytes:
        return bytes(self.transaction)


def assemble(
    instructions: Sequence[Instruction],
    fee_payer: AddressLike,
    freshness: FreshnessToken,
) -> TransactionPlan:
    """Build an open plan; freshness must have been fetched just before this call."""
    if not instructions:
        raise EmptyPlanError("Cannot assemble a transaction with no instructions")
    return TransactionPlan(instructions, parse_address(fee_payer, "fee_payer"), freshness)
