"""SPL token burn: destroy everything held in the wallet's token account."""

import math

import structlog
from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction import Transaction
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import BurnParams, burn

from burnbot.chain.balances import BalanceReader
from burnbot.chain.client import send_and_confirm
from burnbot.logging_config import get_trade_logger
from burnbot.models import BurnResult

logger = structlog.get_logger(__name__)


class BurnExecutor:
    """Builds, signs and confirms a single burn instruction."""

    def __init__(
        self,
        client: AsyncClient,
        keypair: Keypair,
        mint: Pubkey,
        balances: BalanceReader,
    ):
        self._client = client
        self._keypair = keypair
        self._mint = mint
        self._balances = balances
        self._trade_log = get_trade_logger()

    async def burn(self) -> BurnResult:
        """Burn the full current token balance. Never raises."""
        try:
            balance = await self._balances.get_token_balance()
            if balance == 0:
                logger.error("burn.nothing_to_burn", mint=str(self._mint))
                return BurnResult(success=False, error="No tokens to burn")

            amount = math.floor(balance)
            logger.info("burn.submitting", amount=amount, mint=str(self._mint))

            raw_tx = await self._build_transaction(amount)
            signature = await send_and_confirm(self._client, raw_tx)

            self._trade_log.info(
                "burn.confirmed",
                amount=amount,
                mint=str(self._mint),
                signature=signature,
            )
            return BurnResult(success=True, amount=amount, signature=signature)

        except Exception as e:
            logger.error("burn.failed", mint=str(self._mint), error=str(e))
            return BurnResult(success=False, error=str(e))

    async def _build_transaction(self, amount: int) -> bytes:
        owner = self._keypair.pubkey()
        instruction = burn(
            BurnParams(
                program_id=TOKEN_PROGRAM_ID,
                account=self._balances.token_account,
                mint=self._mint,
                owner=owner,
                amount=amount,
                signers=[],
            )
        )

        blockhash_resp = await self._client.get_latest_blockhash()
        blockhash = blockhash_resp.value.blockhash

        message = Message.new_with_blockhash([instruction], owner, blockhash)
        tx = Transaction([self._keypair], message, blockhash)
        return bytes(tx)
