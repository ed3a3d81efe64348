"""
Broadcast & confirm: the only module that talks to the RPC endpoint.

The ``AsyncClient`` is injected by the caller and never created here, so one
connection serves a whole process (or a whole test) and no run mutates state
another run reads.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException, RPCNoResultException
from solana.rpc.types import TxOpts
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from .config import Settings
from .errors import (
    BlockhashExpiredError,
    ConfirmationTimeoutError,
    IncompleteSignaturesError,
    LedgerRejectedError,
    NetworkError,
)
from .transaction import FreshnessToken, TransactionPlan

logger = structlog.get_logger(__name__)

_CONFIRMATION_ORDER = (
    ("processed", TransactionConfirmationStatus.Processed),
    ("confirmed", TransactionConfirmationStatus.Confirmed),
    ("finalized", TransactionConfirmationStatus.Finalized),
)
_LEVEL_NAMES = [name for name, _ in _CONFIRMATION_ORDER]

TRANSPORT_ERRORS = (SolanaRpcException, httpx.HTTPError, OSError)
# JSON-RPC error responses: node behind, rate limited, bad params
RPC_ERRORS = (RPCException, RPCNoResultException)
# the request never left this process
_NOT_SENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout, ConnectionRefusedError)


@dataclass(frozen=True)
class SubmissionResult:
    signature: Signature
    commitment: str
    slot: Optional[int] = None

    @property
    def finalized(self) -> bool:
        return self.commitment == "finalized"


def _status_level(status) -> int:
    confirmation = status.confirmation_status
    if confirmation is None:
        # nodes that omit confirmation_status report rooted transactions with confirmations=None
        return len(_CONFIRMATION_ORDER) - 1 if status.confirmations is None else 0
    for index, (_, member) in enumerate(_CONFIRMATION_ORDER):
        if confirmation == member:
            return index
    return 0


def _describe(exc: Exception) -> str:
    # SolanaRpcException keeps its text in error_msg rather than args
    return getattr(exc, "error_msg", None) or str(exc) or type(exc).__name__


def _rpc_reason(exc: Exception) -> str:
    if exc.args:
        detail = exc.args[0]
        message = getattr(detail, "message", None)
        if message:
            return str(message)
        return str(detail)
    return repr(exc)


def _may_have_reached_node(exc: BaseException) -> bool:
    """
    Whether a failed send could still have delivered the transaction.

    solana-py wraps httpx failures in SolanaRpcException, so the cause chain
    is walked. Only a failure to open the connection proves nothing was sent;
    read timeouts and protocol errors happen after the request went out.
    """
    while exc is not None:
        if isinstance(exc, _NOT_SENT_ERRORS):
            return False
        exc = exc.__cause__
    return True


class BroadcastClient:
    def __init__(self, rpc: AsyncClient, settings: Settings):
        self.rpc = rpc
        self.settings = settings
        self.target_level = _LEVEL_NAMES.index(settings.commitment)

    # --- READS ---

    async def minimum_rent(self, size: int) -> int:
        try:
            resp = await self.rpc.get_minimum_balance_for_rent_exemption(size)
        except RPC_ERRORS as exc:
            raise NetworkError(f"Could not query rent exemption: {_rpc_reason(exc)}") from exc
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Could not query rent exemption: {_describe(exc)}") from exc
        return int(resp.value)

    async def balance(self, address: Pubkey) -> int:
        try:
            resp = await self.rpc.get_balance(address)
        except RPC_ERRORS as exc:
            raise NetworkError(f"Could not query balance of {address}: {_rpc_reason(exc)}") from exc
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Could not query balance of {address}: {_describe(exc)}") from exc
        return int(resp.value)

    async def latest_freshness_token(self) -> FreshnessToken:
        try:
            resp = await self.rpc.get_latest_blockhash()
        except RPC_ERRORS as exc:
            raise NetworkError(f"Could not fetch a recent blockhash: {_rpc_reason(exc)}") from exc
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(f"Could not fetch a recent blockhash: {_describe(exc)}") from exc
        return FreshnessToken(
            blockhash=resp.value.blockhash,
            last_valid_block_height=resp.value.last_valid_block_height,
        )

    async def _signature_status(self, signature: Signature):
        try:
            resp = await self.rpc.get_signature_statuses([signature])
        except RPC_ERRORS as exc:
            raise NetworkError(
                f"Could not query status of {signature}: {_rpc_reason(exc)}", submitted=True
            ) from exc
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(
                f"Lost connection while confirming {signature}: {_describe(exc)}", submitted=True
            ) from exc
        return resp.value[0] if resp.value else None

    async def _block_height(self, signature: Signature) -> int:
        try:
            resp = await self.rpc.get_block_height()
        except RPC_ERRORS as exc:
            raise NetworkError(
                f"Could not query block height while confirming {signature}: {_rpc_reason(exc)}",
                submitted=True,
            ) from exc
        except TRANSPORT_ERRORS as exc:
            raise NetworkError(
                f"Lost connection while confirming {signature}: {_describe(exc)}", submitted=True
            ) from exc
        return int(resp.value)

    # --- SUBMISSION ---

    async def submit(self, plan: TransactionPlan) -> SubmissionResult:
        """
        Send a sealed plan and wait until it reaches the configured commitment.

        Raises LedgerRejectedError for preflight or execution failures,
        BlockhashExpiredError once the plan can no longer land,
        ConfirmationTimeoutError if it is still pending when the wall-clock
        bound runs out, and NetworkError on transport failure (``submitted``
        tells whether the bytes may already have reached the node).
        """
        if not plan.sealed:
            raise IncompleteSignaturesError(
                "Refusing to submit a plan that is not fully signed",
                missing=[str(key) for key in plan.missing_signers()],
            )

        opts = TxOpts(
            skip_preflight=self.settings.skip_preflight,
            preflight_commitment=self.settings.commitment,
            max_retries=self.settings.max_retries,
        )
        expected = plan.signature_id
        try:
            resp = await self.rpc.send_raw_transaction(plan.serialize(), opts=opts)
        except RPCException as exc:
            reason = _rpc_reason(exc)
            logger.warning("transaction_rejected", signature=str(expected), reason=reason)
            raise LedgerRejectedError(reason, signature=str(expected)) from exc
        except (RPCNoResultException, *TRANSPORT_ERRORS) as exc:
            submitted = _may_have_reached_node(exc)
            logger.warning(
                "transaction_send_failed", signature=str(expected), submitted=submitted, error=_describe(exc)
            )
            raise NetworkError(
                f"Could not send transaction {expected}: {_describe(exc)}", submitted=submitted
            ) from exc

        signature = resp.value
        logger.info(
            "transaction_submitted",
            signature=str(signature),
            last_valid_block_height=plan.freshness.last_valid_block_height,
        )
        return await self.wait_for_confirmation(signature, plan.freshness.last_valid_block_height)

    async def wait_for_confirmation(
        self, signature: Signature, last_valid_block_height: Optional[int] = None
    ) -> SubmissionResult:
        """
        Poll until ``signature`` reaches the target commitment.

        With ``last_valid_block_height`` the chain's block height is polled
        too; once it is passed and the transaction is still unknown, it can
        never land and BlockhashExpiredError is raised.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.confirm_timeout

        while True:
            status = await self._signature_status(signature)
            if status is None and last_valid_block_height is not None:
                height = await self._block_height(signature)
                if height > last_valid_block_height:
                    # it may have landed between the two reads
                    status = await self._signature_status(signature)
                    if status is None:
                        logger.warning(
                            "transaction_expired",
                            signature=str(signature),
                            block_height=height,
                            last_valid_block_height=last_valid_block_height,
                        )
                        raise BlockhashExpiredError(str(signature), last_valid_block_height, height)

            if status is not None:
                if status.err is not None:
                    reason = str(status.err)
                    logger.warning("transaction_failed", signature=str(signature), reason=reason)
                    raise LedgerRejectedError(reason, signature=str(signature))
                level = _status_level(status)
                if level >= self.target_level:
                    logger.info("transaction_confirmed", signature=str(signature), slot=status.slot)
                    return SubmissionResult(signature=signature, commitment=_LEVEL_NAMES[level], slot=status.slot)

            if loop.time() >= deadline:
                logger.warning("transaction_unconfirmed", signature=str(signature))
                raise ConfirmationTimeoutError(str(signature), self.settings.confirm_timeout)
            await asyncio.sleep(self.settings.poll_interval)
