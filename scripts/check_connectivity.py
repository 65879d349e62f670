"""Verify connectivity to the RPC endpoint and the wallet's on-chain state."""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from burnbot.chain.client import LAMPORTS_PER_SOL
from burnbot.config import Settings
from burnbot.wallet import WalletLoadError, load_keypair
from solana.rpc.api import Client
from spl.token.instructions import get_associated_token_address


def check_rpc(client: Client, settings: Settings) -> bool:
    """Verify the RPC endpoint is up."""
    print(f"Checking RPC endpoint {settings.rpc_endpoint}...")
    try:
        if not client.is_connected():
            raise ConnectionError("endpoint did not answer getHealth")
        slot = client.get_slot().value
        print(f"  Slot: {slot}")
        print("  RPC: OK")
        return True
    except Exception as e:
        print(f"  RPC: FAILED - {e}")
        return False


def check_wallet(client: Client, settings: Settings) -> bool:
    """Verify the wallet key decodes and report its balances."""
    print("\nChecking wallet...")
    try:
        keypair = load_keypair(settings.creator_private_key)
    except WalletLoadError as e:
        print(f"  Wallet: FAILED - {e}")
        return False

    owner = keypair.pubkey()
    token_account = get_associated_token_address(owner, settings.token_mint)
    try:
        sol = client.get_balance(owner).value / LAMPORTS_PER_SOL
        print(f"  Address: {owner}")
        print(f"  SOL balance: {sol:.6f}")
        print(f"  Below minimum: {'Yes' if sol < settings.min_sol_balance else 'No'}")

        if client.get_account_info(token_account).value is None:
            print(f"  Token account {token_account}: not created yet")
        else:
            amount = client.get_token_account_balance(token_account).value.amount
            print(f"  Token account {token_account}: {amount} raw units")
        print("  Wallet: OK")
        return True
    except Exception as e:
        print(f"  Wallet: FAILED - {e}")
        return False


def main():
    print("=" * 50)
    print("burnbot - Connectivity Check")
    print("=" * 50)

    try:
        settings = Settings()
    except Exception as e:
        print(f"\nFailed to load settings: {e}")
        print("Make sure CREATOR_PRIVATE_KEY and TOKEN_MINT_ADDRESS are set (env or .env)")
        sys.exit(1)

    client = Client(settings.rpc_endpoint, timeout=10)
    results = [
        check_rpc(client, settings),
        check_wallet(client, settings),
    ]

    print("\n" + "=" * 50)
    if all(results):
        print("All checks passed. Ready to burn.")
    else:
        print("Some checks failed. Fix the issues above.")
        sys.exit(1)


if __name__ == "__main__":
    main()
