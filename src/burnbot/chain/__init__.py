"""On-chain access: RPC client, balances and burns."""

from burnbot.chain.balances import BalanceReader
from burnbot.chain.burn import BurnExecutor
from burnbot.chain.client import (
    LAMPORTS_PER_SOL,
    TransactionFailedError,
    create_client,
    send_and_confirm,
)

__all__ = [
    "BalanceReader",
    "BurnExecutor",
    "LAMPORTS_PER_SOL",
    "TransactionFailedError",
    "create_client",
    "send_and_confirm",
]
