"""Runtime settings, read from the environment (and a local .env file)."""

import math
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .errors import InvalidInputError

# --- DEFAULTS ---
DEFAULT_RPC_URL = "https://api.devnet.solana.com"
DEFAULT_CLUSTER = "devnet"
DEFAULT_INITIAL_SUPPLY = 1_000_000_000_000
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")
STRATEGIES = ("single", "two_step")
U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    cluster: str = DEFAULT_CLUSTER
    commitment: str = "confirmed"
    confirm_timeout: float = 30.0
    poll_interval: float = 0.5
    skip_preflight: bool = False
    max_retries: Optional[int] = None
    fee_buffer_lamports: int = 15_000
    initial_supply: int = DEFAULT_INITIAL_SUPPLY
    strategy: str = "single"
    check_balance: bool = True
    log_level: str = "INFO"
    log_json: bool = False

    def __post_init__(self):
        if self.commitment not in COMMITMENT_LEVELS:
            raise InvalidInputError(
                f"COMMITMENT must be one of {', '.join(COMMITMENT_LEVELS)}", field="commitment"
            )
        if self.strategy not in STRATEGIES:
            raise InvalidInputError(
                f"STRATEGY must be one of {', '.join(STRATEGIES)}", field="strategy"
            )
        if not (math.isfinite(self.confirm_timeout) and math.isfinite(self.poll_interval)):
            raise InvalidInputError("Confirmation timing must be a finite number", field="confirm_timeout")
        if self.confirm_timeout <= 0 or self.poll_interval < 0:
            raise InvalidInputError("Confirmation timing must be positive", field="confirm_timeout")
        if self.fee_buffer_lamports < 0:
            raise InvalidInputError("FEE_BUFFER_LAMPORTS cannot be negative", field="fee_buffer_lamports")
        if not 0 < self.initial_supply <= U64_MAX:
            raise InvalidInputError("INITIAL_SUPPLY must fit in an unsigned 64-bit integer", field="initial_supply")
        if self.max_retries is not None and self.max_retries < 0:
            raise InvalidInputError("MAX_RETRIES cannot be negative", field="max_retries")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise InvalidInputError(f"{name} must be a boolean, got {raw!r}", field=name.lower())


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip().replace("_", ""))
    except ValueError:
        raise InvalidInputError(f"{name} must be a number, got {raw!r}", field=name.lower()) from None


def load_settings(dotenv: bool = True) -> Settings:
    """Build ``Settings`` from environment variables, loading ``.env`` first."""
    if dotenv:
        load_dotenv()

    return Settings(
        rpc_url=os.getenv("RPC_URL", DEFAULT_RPC_URL),
        cluster=os.getenv("SOLANA_CLUSTER", DEFAULT_CLUSTER),
        commitment=os.getenv("COMMITMENT", "confirmed").lower(),
        confirm_timeout=_env_number("CONFIRM_TIMEOUT", 30.0, float),
        poll_interval=_env_number("POLL_INTERVAL", 0.5, float),
        skip_preflight=_env_bool("SKIP_PREFLIGHT", False),
        max_retries=_env_number("MAX_RETRIES", None, int),
        fee_buffer_lamports=_env_number("FEE_BUFFER_LAMPORTS", 15_000, int),
        initial_supply=_env_number("INITIAL_SUPPLY", DEFAULT_INITIAL_SUPPLY, int),
        strategy=os.getenv("STRATEGY", "single").lower(),
        check_balance=_env_bool("CHECK_BALANCE", True),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_json=_env_bool("LOG_JSON", False),
    )
