# instructions.py - builders for the ledger operations a token launch needs

from dataclasses import dataclass
from typing import Optional

from solders.instruction import Instruction
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams
from solders.system_program import create_account as _system_create_account
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    AuthorityType,
    InitializeMintParams,
    MintToParams,
    SetAuthorityParams,
)
from spl.token.instructions import create_associated_token_account as _spl_create_associated
from spl.token.instructions import initialize_mint as _spl_initialize_mint
from spl.token.instructions import mint_to as _spl_mint_to
from spl.token.instructions import set_authority as _spl_set_authority

from .config import U64_MAX
from .errors import InvalidInputError
from .keys import AddressLike, derive_associated_address, parse_address

MAX_DECIMALS = 9


@dataclass(frozen=True)
class MintParameters:
    decimals: int
    mint_authority: Pubkey
    freeze_authority: Optional[Pubkey] = None


def _check_u64(value, field: str, allow_zero: bool = True) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{field} must be an integer", field=field)
    low = 0 if allow_zero else 1
    if not low <= value <= U64_MAX:
        raise InvalidInputError(f"{field} out of range: {value}", field=field)
    return value


def create_account(
    payer: AddressLike,
    new_account: AddressLike,
    space: int,
    lamports: int,
    owner: AddressLike,
) -> Instruction:
    """System program: allocate ``new_account`` funded by ``payer`` and owned by ``owner``."""
    return _system_create_account(
        CreateAccountParams(
            from_pubkey=parse_address(payer, "payer"),
            to_pubkey=parse_address(new_account, "new_account"),
            lamports=_check_u64(lamports, "lamports"),
            space=_check_u64(space, "space"),
            owner=parse_address(owner, "owner"),
        )
    )


def initialize_mint(
    mint: AddressLike,
    decimals: int,
    mint_authority: AddressLike,
    freeze_authority: Optional[AddressLike] = None,
) -> Instruction:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= MAX_DECIMALS:
        raise InvalidInputError(
            f"decimals must be an integer between 0 and {MAX_DECIMALS}", field="decimals"
        )
    freeze = parse_address(freeze_authority, "freeze_authority") if freeze_authority is not None else None
    return _spl_initialize_mint(
        InitializeMintParams(
            decimals=decimals,
            program_id=TOKEN_PROGRAM_ID,
            mint=parse_address(mint, "mint"),
            mint_authority=parse_address(mint_authority, "mint_authority"),
            freeze_authority=freeze,
        )
    )


def initialize_mint_from_params(mint: AddressLike, params: MintParameters) -> Instruction:
    return initialize_mint(mint, params.decimals, params.mint_authority, params.freeze_authority)


def create_associated_account(
    payer: AddressLike,
    associated_address: AddressLike,
    owner: AddressLike,
    mint: AddressLike,
) -> Instruction:
    """
    Associated-token program: create ``owner``'s holding account for ``mint``.

    The program derives the address itself, so a caller-supplied address that
    is not the canonical derivation is rejected here rather than on chain.
    """
    expected = parse_address(associated_address, "associated_address")
    owner_key = parse_address(owner, "owner")
    mint_key = parse_address(mint, "mint")
    if derive_associated_address(mint_key, owner_key) != expected:
        raise InvalidInputError(
            f"{expected} is not the associated account of owner {owner_key} for mint {mint_key}",
            field="associated_address",
        )
    return _spl_create_associated(
        payer=parse_address(payer, "payer"), owner=owner_key, mint=mint_key
    )


def mint_to(
    mint: AddressLike,
    destination: AddressLike,
    authority: AddressLike,
    amount: int,
) -> Instruction:
    return _spl_mint_to(
        MintToParams(
            program_id=TOKEN_PROGRAM_ID,
            mint=parse_address(mint, "mint"),
            dest=parse_address(destination, "destination"),
            mint_authority=parse_address(authority, "authority"),
            amount=_check_u64(amount, "amount", allow_zero=False),
        )
    )


def set_authority(
    account: AddressLike,
    current_authority: AddressLike,
    authority_type: AuthorityType,
    new_authority: Optional[AddressLike] = None,
) -> Instruction:
    """Token program: hand ``authority_type`` to ``new_authority``, or revoke it with None."""
    if not isinstance(authority_type, AuthorityType):
        raise InvalidInputError(f"unknown authority type {authority_type!r}", field="authority_type")
    new_key = parse_address(new_authority, "new_authority") if new_authority is not None else None
    return _spl_set_authority(
        SetAuthorityParams(
            program_id=TOKEN_PROGRAM_ID,
            account=parse_address(account, "account"),
            authority=authority_type,
            current_authority=parse_address(current_authority, "current_authority"),
            new_authority=new_key,
        )
    )
