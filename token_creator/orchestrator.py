"""
Token creation workflow.

Sequences mint keypair generation, instruction building, assembly, dual
signing and broadcast into one run:

    create mint account -> initialize mint -> create associated account
    -> mint initial supply -> (optionally) revoke freeze authority

Either as one atomic transaction (``Strategy.SINGLE``) or as two transactions
where the second gets its own freshly fetched blockhash (``Strategy.TWO_STEP``).
Nothing is retried automatically once the ledger may have been touched; every
failure after keys are derived carries the run's ``CreationProgress``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

import structlog
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import ACCOUNT_LEN, MINT_LEN, TOKEN_PROGRAM_ID
from spl.token.instructions import AuthorityType

from . import instructions as ix
from .broadcast import BroadcastClient
from .config import Settings, U64_MAX
from .errors import (
    InsufficientFundsError,
    InvalidInputError,
    NotConnectedError,
    TokenCreationError,
)
from .keys import derive_associated_address, generate_mint_keypair
from .signer import ConnectedWallet, sign
from .transaction import assemble

logger = structlog.get_logger(__name__)


class Strategy(str, Enum):
    SINGLE = "single"
    TWO_STEP = "two_step"


@dataclass(frozen=True)
class CreationOptions:
    strategy: Strategy = Strategy.SINGLE
    check_balance: bool = True
    fee_buffer_lamports: int = 15_000
    initial_supply: int = 1_000_000_000_000

    def __post_init__(self):
        try:
            object.__setattr__(self, "strategy", Strategy(self.strategy))
        except ValueError:
            raise InvalidInputError(f"Unknown strategy {self.strategy!r}", field="strategy") from None

    @classmethod
    def from_settings(cls, settings: Settings) -> "CreationOptions":
        return cls(
            strategy=Strategy(settings.strategy),
            check_balance=settings.check_balance,
            fee_buffer_lamports=settings.fee_buffer_lamports,
            initial_supply=settings.initial_supply,
        )


@dataclass(frozen=True)
class TokenInput:
    name: str
    symbol: str
    decimals: Union[int, str] = 9
    revoke_freeze: bool = False


@dataclass(frozen=True)
class TokenCreationResult:
    mint_address: Pubkey
    token_account_address: Pubkey
    name: str
    symbol: str
    decimals: int
    initial_supply: int
    freeze_authority_revoked: bool
    signatures: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mint_address": str(self.mint_address),
            "token_account_address": str(self.token_account_address),
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "initial_supply": self.initial_supply,
            "freeze_authority_revoked": self.freeze_authority_revoked,
            "signatures": list(self.signatures),
        }


@dataclass
class CreationProgress:
    """What one run has already achieved on the ledger."""

    mint_address: Pubkey
    token_account_address: Pubkey
    signatures: List[str] = field(default_factory=list)
    completed_steps: List[str] = field(default_factory=list)
    mint_created: bool = False

    def record(self, step: str, signature: str, creates_mint: bool) -> None:
        self.completed_steps.append(step)
        self.signatures.append(signature)
        if creates_mint:
            self.mint_created = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mint_address": str(self.mint_address),
            "token_account_address": str(self.token_account_address),
            "signatures": list(self.signatures),
            "completed_steps": list(self.completed_steps),
            "mint_created": self.mint_created,
        }


class _Step(NamedTuple):
    label: str
    instructions: Sequence[Instruction]
    local_keys: Sequence[Keypair]
    creates_mint: bool


def parse_decimals(value) -> int:
    if isinstance(value, bool):
        raise InvalidInputError("Decimals must be a whole number between 0 and 9", field="decimals")
    if isinstance(value, int):
        decimals = value
    elif isinstance(value, str):
        try:
            decimals = int(value.strip())
        except ValueError:
            raise InvalidInputError(
                f"Decimals must be a whole number between 0 and 9, got {value!r}", field="decimals"
            ) from None
    else:
        raise InvalidInputError("Decimals must be a whole number between 0 and 9", field="decimals")
    if not 0 <= decimals <= ix.MAX_DECIMALS:
        raise InvalidInputError(
            f"Decimals must be between 0 and {ix.MAX_DECIMALS}, got {decimals}", field="decimals"
        )
    return decimals


class TokenCreator:
    """Runs token creation against one injected ledger client."""

    def __init__(self, client: BroadcastClient, options: Optional[CreationOptions] = None):
        self.client = client
        self.options = options or CreationOptions()
        if not 0 < self.options.initial_supply <= U64_MAX:
            raise InvalidInputError("Initial supply must fit in an unsigned 64-bit integer", field="initial_supply")

    # --- PRECONDITIONS ---

    @staticmethod
    def _require_wallet(wallet: Optional[ConnectedWallet]) -> Pubkey:
        if (
            wallet is None
            or not getattr(wallet, "connected", False)
            or getattr(wallet, "public_key", None) is None
            or not callable(getattr(wallet, "sign_transaction", None))
        ):
            raise NotConnectedError("Please connect your wallet first")
        return wallet.public_key

    @staticmethod
    def _validate_input(token_input: TokenInput) -> Tuple[str, str, int]:
        name = (token_input.name or "").strip()
        symbol = (token_input.symbol or "").strip()
        if not name or not symbol:
            raise InvalidInputError(
                "Please fill in all fields", field="name" if not name else "symbol"
            )
        return name, symbol, parse_decimals(token_input.decimals)

    async def _check_funds(self, owner: Pubkey, mint_rent: int) -> None:
        account_rent = await self.client.minimum_rent(ACCOUNT_LEN)
        required = mint_rent + account_rent + self.options.fee_buffer_lamports
        available = await self.client.balance(owner)
        logger.debug("balance_checked", owner=str(owner), required=required, available=available)
        if available <= required:
            raise InsufficientFundsError(required=required, available=available)

    # --- PLANNING ---

    def _build_steps(
        self,
        owner: Pubkey,
        mint_keypair: Keypair,
        token_account: Pubkey,
        decimals: int,
        mint_rent: int,
        revoke_freeze: bool,
    ) -> List[_Step]:
        mint = mint_keypair.pubkey()
        mint_setup = [
            ix.create_account(owner, mint, MINT_LEN, mint_rent, TOKEN_PROGRAM_ID),
            ix.initialize_mint(mint, decimals, owner, owner),
        ]
        supply = [
            ix.create_associated_account(owner, token_account, owner, mint),
            ix.mint_to(mint, token_account, owner, self.options.initial_supply),
        ]
        if revoke_freeze:
            # must stay last: earlier steps rely on the wallet still holding the authority
            supply.append(ix.set_authority(mint, owner, AuthorityType.FREEZE_ACCOUNT, None))

        if self.options.strategy is Strategy.TWO_STEP:
            return [
                _Step("create_mint", mint_setup, [mint_keypair], True),
                _Step("mint_supply", supply, [], False),
            ]
        return [_Step("create_token", mint_setup + supply, [mint_keypair], True)]

    # --- WORKFLOW ---

    async def create_token(self, token_input: TokenInput, wallet: ConnectedWallet) -> TokenCreationResult:
        owner = self._require_wallet(wallet)
        name, symbol, decimals = self._validate_input(token_input)

        mint_rent = await self.client.minimum_rent(MINT_LEN)
        if self.options.check_balance:
            await self._check_funds(owner, mint_rent)

        mint_keypair = generate_mint_keypair()
        mint = mint_keypair.pubkey()
        token_account = derive_associated_address(mint, owner)
        progress = CreationProgress(mint_address=mint, token_account_address=token_account)
        log = logger.bind(mint=str(mint), owner=str(owner), strategy=self.options.strategy.value)
        log.info("token_creation_started", symbol=symbol, decimals=decimals)

        try:
            steps = self._build_steps(
                owner, mint_keypair, token_account, decimals, mint_rent, token_input.revoke_freeze
            )
            for step in steps:
                # one blockhash per transaction, fetched right before assembly
                freshness = await self.client.latest_freshness_token()
                plan = assemble(step.instructions, owner, freshness)
                log.debug("plan_assembled", step=step.label, instructions=len(plan.instructions))
                signed = await sign(plan, step.local_keys, wallet)
                result = await self.client.submit(signed)
                progress.record(step.label, str(result.signature), step.creates_mint)
                log.info("step_confirmed", step=step.label, signature=str(result.signature))
        except TokenCreationError as exc:
            if exc.progress is None:
                exc.progress = progress
            log.error("token_creation_failed", kind=exc.kind, error=exc.message, **progress.to_dict())
            raise

        log.info("token_created", token_account=str(token_account))
        return TokenCreationResult(
            mint_address=mint,
            token_account_address=token_account,
            name=name,
            symbol=symbol,
            decimals=decimals,
            initial_supply=self.options.initial_supply,
            freeze_authority_revoked=bool(token_input.revoke_freeze),
            signatures=tuple(progress.signatures),
        )
