"""Native and token balance queries for the bot wallet."""

import structlog
from solana.rpc.async_api import AsyncClient
from solders.pubkey import Pubkey
from spl.token.instructions import get_associated_token_address
from tenacity import AsyncRetrying, retry_if_result, stop_after_delay, wait_fixed

from burnbot.chain.client import LAMPORTS_PER_SOL

logger = structlog.get_logger(__name__)


class BalanceReader:
    """Reads SOL and token balances. Query failures read as zero."""

    def __init__(self, client: AsyncClient, owner: Pubkey, mint: Pubkey):
        self._client = client
        self._owner = owner
        self._mint = mint
        self._token_account = get_associated_token_address(owner, mint)

    @property
    def token_account(self) -> Pubkey:
        return self._token_account

    async def get_sol_balance(self) -> float:
        """Spendable SOL. Returns 0.0 if the query fails."""
        try:
            resp = await self._client.get_balance(self._owner)
            return resp.value / LAMPORTS_PER_SOL
        except Exception as e:
            logger.error("balance.sol_query_failed", owner=str(self._owner), error=str(e))
            return 0.0

    async def get_token_balance(self) -> int:
        """Raw token amount held in the associated token account.

        An account that does not exist yet holds nothing, so it reads as 0.
        """
        try:
            info = await self._client.get_account_info(self._token_account)
            if info.value is None:
                return 0

            resp = await self._client.get_token_account_balance(self._token_account)
            return int(resp.value.amount)
        except Exception as e:
            logger.error(
                "balance.token_query_failed",
                token_account=str(self._token_account),
                error=str(e),
            )
            return 0

    async def wait_for_tokens(self, timeout: float, poll_interval: float) -> int:
        """Poll the token balance until it is non-zero or the timeout elapses."""
        retrying = AsyncRetrying(
            stop=stop_after_delay(timeout),
            wait=wait_fixed(poll_interval),
            retry=retry_if_result(lambda balance: balance == 0),
            retry_error_callback=lambda state: state.outcome.result(),
        )
        balance = await retrying(self.get_token_balance)

        if balance == 0:
            logger.warning(
                "balance.tokens_not_observed",
                token_account=str(self._token_account),
                timeout_s=timeout,
            )
        return balance
