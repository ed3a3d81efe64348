"""
Error taxonomy for the token creation workflow.

Every failure carries a ``kind`` string matching the user-facing error
categories, a human message, and (once keys have been derived for a run) the
partial progress the run already achieved, so a caller can inspect or continue
manually instead of blindly retrying.
"""

from typing import Any, Dict, List, Optional


class TokenCreationError(Exception):
    """Base class for every failure surfaced by the workflow."""

    kind = "TokenCreationError"
    retryable = False

    def __init__(self, message: str, progress: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.progress = progress

    def details(self) -> Dict[str, Any]:
        return {}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"kind": self.kind, "message": self.message}
        data.update(self.details())
        data["retryable"] = self.retryable
        if self.progress is not None:
            data["progress"] = self.progress.to_dict()
        return data


class NotConnectedError(TokenCreationError):
    kind = "NotConnected"


class InvalidInputError(TokenCreationError):
    kind = "InvalidInput"

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field

    def details(self) -> Dict[str, Any]:
        return {"field": self.field} if self.field else {}


class InsufficientFundsError(TokenCreationError):
    """Wallet balance does not cover rent for the new accounts plus fees."""

    kind = "InsufficientFunds"

    def __init__(self, required: int, available: int, **kwargs):
        super().__init__(
            f"Insufficient balance: need more than {required} lamports, wallet has {available}",
            **kwargs,
        )
        self.required = required
        self.available = available

    def details(self) -> Dict[str, Any]:
        return {"required": self.required, "available": self.available}


class UserRejectedError(TokenCreationError):
    kind = "UserRejected"


class IncompleteSignaturesError(TokenCreationError):
    kind = "IncompleteSignatures"

    def __init__(self, message: str, missing: Optional[List[str]] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.missing = missing or []

    def details(self) -> Dict[str, Any]:
        return {"missing": list(self.missing)}


class EmptyPlanError(TokenCreationError):
    kind = "EmptyPlan"


class LedgerRejectedError(TokenCreationError):
    """The ledger refused the transaction, in preflight or on execution."""

    kind = "LedgerRejected"

    def __init__(self, reason: str, signature: Optional[str] = None, **kwargs):
        super().__init__(f"Ledger rejected transaction: {reason}", **kwargs)
        self.reason = reason
        self.signature = signature

    def details(self) -> Dict[str, Any]:
        return {"reason": self.reason, "signature": self.signature}


class BlockhashExpiredError(LedgerRejectedError):
    """
    The chain moved past the plan's last valid block height without the
    transaction landing. It can never be processed now, so a fresh run is
    safe as long as no earlier plan created the mint.
    """

    def __init__(self, signature: str, last_valid_block_height: int, block_height: int, **kwargs):
        super().__init__(
            f"blockhash expired at block height {block_height} "
            f"(last valid {last_valid_block_height})",
            signature=signature,
            **kwargs,
        )
        self.last_valid_block_height = last_valid_block_height
        self.block_height = block_height

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.progress is None or not self.progress.mint_created

    def details(self) -> Dict[str, Any]:
        return {
            **super().details(),
            "expired": True,
            "last_valid_block_height": self.last_valid_block_height,
            "block_height": self.block_height,
        }


class ConfirmationTimeoutError(TokenCreationError):
    kind = "Timeout"

    def __init__(self, signature: str, timeout: float, **kwargs):
        super().__init__(
            f"Transaction {signature} was not confirmed within {timeout:g}s", **kwargs
        )
        self.signature = signature
        self.timeout = timeout

    def details(self) -> Dict[str, Any]:
        return {"signature": self.signature, "timeout": self.timeout}


class NetworkError(TokenCreationError):
    """
    Transport failure talking to the RPC endpoint.

    ``submitted`` is True when the transaction bytes were already accepted by
    the endpoint before the failure (i.e. the failure happened while polling),
    in which case the transaction may still land and must not be resent.
    """

    kind = "NetworkError"

    def __init__(self, message: str, submitted: bool = False, **kwargs):
        super().__init__(message, **kwargs)
        self.submitted = submitted

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        if self.submitted:
            return False
        if self.progress is not None and self.progress.mint_created:
            return False
        return True

    def details(self) -> Dict[str, Any]:
        return {"submitted": self.submitted}
