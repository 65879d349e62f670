"""Solana RPC client construction and transaction broadcast."""

import structlog
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.signature import Signature

from burnbot.config import AppConfig, Settings

logger = structlog.get_logger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000


class TransactionFailedError(Exception):
    """Raised when a transaction confirms with an on-chain error."""


def create_client(config: AppConfig, settings: Settings) -> AsyncClient:
    """Build the RPC client used for balances, broadcasts and confirmations."""
    return AsyncClient(
        settings.rpc_endpoint,
        commitment=Confirmed,
        timeout=config.rpc.timeout_seconds,
    )


async def send_and_confirm(client: AsyncClient, raw_tx: bytes) -> str:
    """Broadcast a signed transaction and wait for `confirmed` commitment.

    Returns the transaction signature as a string.
    """
    resp = await client.send_raw_transaction(
        raw_tx,
        opts=TxOpts(skip_preflight=False, preflight_commitment=Confirmed),
    )
    signature: Signature = resp.value
    logger.debug("chain.transaction_sent", signature=str(signature))

    confirmation = await client.confirm_transaction(signature, commitment=Confirmed)
    status = confirmation.value[0] if confirmation.value else None
    if status is not None and status.err is not None:
        raise TransactionFailedError(f"Transaction {signature} failed: {status.err}")

    return str(signature)
