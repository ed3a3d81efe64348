"""
Two-phase signing: ephemeral local keys first, then the external wallet.

The wallet is an opaque capability. It may take as long as a human needs to
approve, and it may refuse; either way nothing reaches the ledger until every
required signature is present and verifies.
"""

from typing import Iterable, Optional, Protocol

import base58
import structlog
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .errors import (
    IncompleteSignaturesError,
    InvalidInputError,
    TokenCreationError,
    UserRejectedError,
)
from .transaction import TransactionPlan

logger = structlog.get_logger(__name__)


class ConnectedWallet(Protocol):
    """The wallet capability the workflow needs: an identity and a signer."""

    public_key: Optional[Pubkey]
    connected: bool

    async def sign_transaction(self, plan: TransactionPlan) -> TransactionPlan:
        ...


class KeypairWallet:
    """Wallet backed by a local keypair; approves every request."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair
        self.public_key: Optional[Pubkey] = keypair.pubkey()
        self.connected = True

    @classmethod
    def from_secret(cls, secret: str) -> "KeypairWallet":
        """Load from a base58 64-byte secret key, the format Phantom exports."""
        try:
            raw = base58.b58decode(secret.strip())
            keypair = Keypair.from_bytes(raw)
        except (ValueError, TypeError):
            raise InvalidInputError("SECRET_KEY is not a valid base58 keypair", field="secret_key") from None
        return cls(keypair)

    async def sign_transaction(self, plan: TransactionPlan) -> TransactionPlan:
        plan.add_signature(self.public_key, self._keypair.sign_message(plan.message_bytes()))
        return plan


def sign_locally(plan: TransactionPlan, local_keys: Iterable[Keypair]) -> None:
    for keypair in local_keys:
        pubkey = keypair.pubkey()
        if not plan.requires(pubkey):
            raise InvalidInputError(
                f"Local key {pubkey} is not a signer of this transaction", field="local_keys"
            )
        plan.add_signature(pubkey, keypair.sign_message(plan.message_bytes()))


async def sign(plan: TransactionPlan, local_keys: Iterable[Keypair], external_signer: ConnectedWallet) -> TransactionPlan:
    """Sign with ``local_keys``, then await the wallet, then seal the plan."""
    sign_locally(plan, local_keys)
    logger.debug("plan_signed_locally", signers=[str(k) for k in plan.signatures])

    try:
        signed = await external_signer.sign_transaction(plan)
    except TokenCreationError:
        raise
    except Exception as exc:
        # wallet adapters report refusal with their own exception types
        raise UserRejectedError(f"Wallet declined to sign: {exc}") from exc

    if signed is None:
        raise UserRejectedError("Wallet returned no signed transaction")
    if signed is not plan:
        for signer, signature in signed.signatures.items():
            if signer not in plan.signatures:
                plan.add_signature(signer, signature)

    missing = plan.missing_signers()
    if missing:
        raise IncompleteSignaturesError(
            f"Transaction is missing {len(missing)} signature(s)",
            missing=[str(key) for key in missing],
        )
    invalid = plan.invalid_signers()
    if invalid:
        raise IncompleteSignaturesError(
            "Signature(s) do not verify against the transaction message",
            missing=[str(key) for key in invalid],
        )

    plan.seal()
    logger.info("plan_signed", signature=str(plan.signature_id), signers=len(plan.signatures))
    return plan
