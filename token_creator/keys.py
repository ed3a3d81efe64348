# keys.py - mint keypair generation and associated account derivation

from typing import Union

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

from .errors import InvalidInputError

AddressLike = Union[Pubkey, str]


def parse_address(value: AddressLike, field: str = "address") -> Pubkey:
    """Accept a Pubkey or a base58 string; anything else is InvalidInput."""
    if isinstance(value, Pubkey):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} must be a base58 address", field=field)
    try:
        raw = base58.b58decode(value.strip())
    except ValueError:
        raise InvalidInputError(f"{field} is not valid base58: {value!r}", field=field) from None
    if len(raw) != 32:
        raise InvalidInputError(
            f"{field} must decode to 32 bytes, got {len(raw)}", field=field
        )
    return Pubkey(raw)


def generate_mint_keypair() -> Keypair:
    # 256-bit random key, no collision check needed
    return Keypair()


def derive_associated_address(mint: AddressLike, owner: AddressLike) -> Pubkey:
    """
    Derive the associated token account for (owner, mint).

    Same seeds the associated-token program uses on chain:
    [owner, token program, mint] under the associated-token program id.
    """
    mint_key = parse_address(mint, "mint")
    owner_key = parse_address(owner, "owner")
    address, _ = Pubkey.find_program_address(
        [bytes(owner_key), bytes(TOKEN_PROGRAM_ID), bytes(mint_key)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address
