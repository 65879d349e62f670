"""PumpPortal local-trade API: fetch an unsigned buy, sign and send it ourselves."""

import httpx
import structlog
from solana.rpc.async_api import AsyncClient
from solders.keypair import Keypair
from solders.transaction import VersionedTransaction

from burnbot.chain.client import send_and_confirm
from burnbot.config import AppConfig, Settings
from burnbot.logging_config import get_trade_logger
from burnbot.models import BuyResult
from burnbot.trading.base import BuyProvider

logger = structlog.get_logger(__name__)


class TradeRequestError(Exception):
    """Raised when the trade API answers with a non-success status."""


class PumpPortalBuyProvider(BuyProvider):
    """Buys through https://pumpportal.fun/api/trade-local."""

    def __init__(
        self,
        config: AppConfig,
        settings: Settings,
        client: AsyncClient,
        keypair: Keypair,
    ):
        self._config = config.trade
        self._mint = settings.token_mint_address
        self._client = client
        self._keypair = keypair
        self._http = httpx.AsyncClient(timeout=self._config.timeout_seconds)
        self._trade_log = get_trade_logger()

    def _request_body(self, sol_amount: float) -> dict:
        return {
            "publicKey": str(self._keypair.pubkey()),
            "action": "buy",
            "mint": self._mint,
            "amount": sol_amount,
            "denominatedInSol": "true",
            "slippage": self._config.slippage_pct,
            "priorityFee": self._config.priority_fee_sol,
            "pool": self._config.pool,
        }

    async def buy(self, sol_amount: float) -> BuyResult:
        """Request, sign, broadcast and confirm a buy. Never raises."""
        if sol_amount <= 0:
            return BuyResult(
                success=False,
                sol_amount=sol_amount,
                error=f"Buy amount must be positive, got {sol_amount}",
            )

        logger.info("buy.requesting", sol_amount=round(sol_amount, 6), mint=self._mint)

        try:
            response = await self._http.post(
                self._config.endpoint,
                json=self._request_body(sol_amount),
            )
            if not response.is_success:
                raise TradeRequestError(f"HTTP {response.status_code}: {response.text}")

            unsigned = VersionedTransaction.from_bytes(response.content)
            signed = VersionedTransaction(unsigned.message, [self._keypair])
            signature = await send_and_confirm(self._client, bytes(signed))

        except Exception as e:
            logger.error(
                "buy.failed",
                sol_amount=round(sol_amount, 6),
                mint=self._mint,
                error=str(e),
            )
            return BuyResult(success=False, sol_amount=sol_amount, error=str(e))

        self._trade_log.info(
            "buy.confirmed",
            sol_amount=round(sol_amount, 6),
            mint=self._mint,
            signature=signature,
        )
        return BuyResult(success=True, sol_amount=sol_amount, signature=signature)

    async def close(self) -> None:
        await self._http.aclose()
