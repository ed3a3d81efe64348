"""Create a fungible SPL token from a wallet: mint, holder account, initial supply."""

from .broadcast import BroadcastClient, SubmissionResult
from .config import Settings, load_settings
from .errors import (
    BlockhashExpiredError,
    ConfirmationTimeoutError,
    EmptyPlanError,
    IncompleteSignaturesError,
    InsufficientFundsError,
    InvalidInputError,
    LedgerRejectedError,
    NetworkError,
    NotConnectedError,
    TokenCreationError,
    UserRejectedError,
)
from .explorer import explorer_url
from .keys import derive_associated_address, generate_mint_keypair, parse_address
from .orchestrator import (
    CreationOptions,
    CreationProgress,
    Strategy,
    TokenCreationResult,
    TokenCreator,
    TokenInput,
)
from .signer import ConnectedWallet, KeypairWallet, sign
from .transaction import FreshnessToken, TransactionPlan, assemble

__all__ = [
    "BroadcastClient",
    "SubmissionResult",
    "Settings",
    "load_settings",
    "BlockhashExpiredError",
    "ConfirmationTimeoutError",
    "EmptyPlanError",
    "IncompleteSignaturesError",
    "InsufficientFundsError",
    "InvalidInputError",
    "LedgerRejectedError",
    "NetworkError",
    "NotConnectedError",
    "TokenCreationError",
    "UserRejectedError",
    "explorer_url",
    "derive_associated_address",
    "generate_mint_keypair",
    "parse_address",
    "CreationOptions",
    "CreationProgress",
    "Strategy",
    "TokenCreationResult",
    "TokenCreator",
    "TokenInput",
    "ConnectedWallet",
    "KeypairWallet",
    "sign",
    "FreshnessToken",
    "TransactionPlan",
    "assemble",
]
