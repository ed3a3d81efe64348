# create_token.py - launch a new SPL token from the wallet in your .env

import argparse
import asyncio
import dataclasses
import os
import sys

from solana.rpc.async_api import AsyncClient

from token_creator import (
    BroadcastClient,
    CreationOptions,
    KeypairWallet,
    Strategy,
    TokenCreationError,
    TokenCreator,
    TokenInput,
    explorer_url,
    load_settings,
)
from token_creator.logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create a new SPL token and mint its initial supply.")
    parser.add_argument("name", help="Token name")
    parser.add_argument("symbol", help="Token symbol")
    parser.add_argument("--decimals", default="9", help="Decimal places, 0-9 (default: 9)")
    parser.add_argument("--revoke-freeze", action="store_true", help="Revoke the freeze authority after minting")
    parser.add_argument("--two-step", action="store_true", help="Create the mint and mint the supply in separate transactions")
    parser.add_argument("--no-balance-check", action="store_true", help="Skip the wallet balance check")
    return parser


async def run_creation(args, settings, wallet) -> int:
    options = CreationOptions.from_settings(settings)
    overrides = {}
    if args.two_step:
        overrides["strategy"] = Strategy.TWO_STEP
    if args.no_balance_check:
        overrides["check_balance"] = False
    if overrides:
        options = dataclasses.replace(options, **overrides)

    token_input = TokenInput(
        name=args.name, symbol=args.symbol, decimals=args.decimals, revoke_freeze=args.revoke_freeze
    )

    print(f"👑 Using creator wallet: {wallet.public_key}")
    print(f"🚀 Creating {token_input.symbol} on {settings.cluster}...")

    async with AsyncClient(settings.rpc_url, commitment=settings.commitment) as rpc:
        creator = TokenCreator(BroadcastClient(rpc, settings), options)
        try:
            result = await creator.create_token(token_input, wallet)
        except TokenCreationError as exc:
            print(f"😿 {exc.kind}: {exc.message}")
            if exc.progress is not None:
                progress = exc.progress
                print(f"   Mint address (may not exist yet): {progress.mint_address}")
                print(f"   Token account: {progress.token_account_address}")
                for signature in progress.signatures:
                    print(f"   Confirmed: {explorer_url(signature, 'tx', settings.cluster)}")
                if progress.mint_created:
                    print("   The mint account already exists; do not rerun blindly.")
            return 1

    print(f"✅ Token Mint Created! Address: {result.mint_address}")
    print(f"✅ Your wallet's token account: {result.token_account_address}")
    print(f"   Minted {result.initial_supply / (10 ** result.decimals):,} {result.symbol}")
    if result.freeze_authority_revoked:
        print("   Freeze authority revoked.")
    print(f"🔗 {explorer_url(result.mint_address, 'token', settings.cluster)}")
    for signature in result.signatures:
        print(f"🔗 {explorer_url(signature, 'tx', settings.cluster)}")
    return 0


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = load_settings()
        configure_logging(settings.log_level, settings.log_json)

        secret_key_string = os.getenv("SECRET_KEY")
        if not secret_key_string:
            print("😿 SECRET_KEY not found in .env file!")
            return 1
        wallet = KeypairWallet.from_secret(secret_key_string)
    except TokenCreationError as exc:
        print(f"😿 {exc.kind}: {exc.message}")
        return 1

    return asyncio.run(run_creation(args, settings, wallet))


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
