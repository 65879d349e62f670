"""Main loop orchestrating the balance check, buy and burn cycle."""

import asyncio
import signal as signal_mod
from datetime import datetime, timezone
from typing import Optional

import structlog
from solders.keypair import Keypair

from burnbot.chain.balances import BalanceReader
from burnbot.chain.burn import BurnExecutor
from burnbot.chain.client import create_client
from burnbot.config import AppConfig, Settings
from burnbot.models import BurnStats, CycleOutcome, CycleResult
from burnbot.providers import create_buy_provider

logger = structlog.get_logger(__name__)


def compute_spend_amount(sol_balance: float, fee_reserve: float, min_buy: float) -> float:
    """SOL to spend on a buy: everything above the fee reserve, never below min_buy."""
    return max(sol_balance - fee_reserve, min_buy)


class BurnEngine:
    """Runs one buy-and-burn cycle per interval until shutdown."""

    def __init__(self, config: AppConfig, settings: Settings, keypair: Keypair):
        self._config = config
        self._settings = settings
        self._keypair = keypair
        self._mint = settings.token_mint

        self._client = create_client(config, settings)
        self._balances = BalanceReader(self._client, keypair.pubkey(), self._mint)
        self._buyer = create_buy_provider(config, settings, self._client, keypair)
        self._burner = BurnExecutor(self._client, keypair, self._mint, self._balances)

        self._stats = BurnStats()
        self._cycle_count = 0
        self._cycle_task: Optional[asyncio.Task] = None
        self._last_result: Optional[CycleResult] = None
        self._stop = asyncio.Event()
        self._running = False

    @property
    def stats(self) -> BurnStats:
        return self._stats

    @property
    def last_result(self) -> Optional[CycleResult]:
        return self._last_result

    async def start(self) -> None:
        """Start the engine. Runs until a shutdown signal is received."""
        logger.info(
            "burnbot.starting",
            wallet=str(self._keypair.pubkey()),
            token=self._settings.token_mint_address,
            token_account=str(self._balances.token_account),
            rpc=self._settings.rpc_endpoint,
            interval_s=self._config.cycle.interval_seconds,
            min_balance_sol=self._settings.min_sol_balance,
            buy_provider=self._config.providers.buy,
        )

        self._running = True
        self._register_signal_handlers()

        try:
            while self._running:
                self._dispatch_cycle()
                try:
                    await asyncio.wait_for(
                        self._stop.wait(), timeout=self._config.cycle.interval_seconds
                    )
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logger.info("burnbot.cancelled")
        finally:
            await self._shutdown()

    def _dispatch_cycle(self) -> None:
        """Start a cycle unless the previous one is still running."""
        if self._cycle_task is not None and not self._cycle_task.done():
            logger.warning(
                "engine.cycle_skipped",
                reason="previous_cycle_in_progress",
                cycle=self._cycle_count,
            )
            return
        self._cycle_task = asyncio.create_task(self.execute_cycle())

    async def execute_cycle(self) -> CycleResult:
        """Single balance check, buy, settle, burn iteration. Never raises."""
        self._cycle_count += 1
        result = CycleResult(cycle=self._cycle_count)
        log = logger.bind(cycle=self._cycle_count)
        cycle_cfg = self._config.cycle

        log.info("engine.cycle_starting")

        try:
            # Step 1: Check SOL balance
            sol_balance = await self._balances.get_sol_balance()
            result.sol_balance = sol_balance
            log.info("engine.balance", sol=round(sol_balance, 6))

            if sol_balance < self._settings.min_sol_balance:
                log.warning(
                    "engine.balance_too_low",
                    sol=round(sol_balance, 6),
                    required_sol=self._settings.min_sol_balance,
                )
                return self._finish(result, CycleOutcome.INSUFFICIENT_BALANCE)

            # Step 2: Reserve SOL for fees
            spend = compute_spend_amount(
                sol_balance, cycle_cfg.fee_reserve_sol, cycle_cfg.min_buy_sol
            )
            if spend <= 0:
                log.warning("engine.nothing_to_spend", sol=round(sol_balance, 6))
                return self._finish(result, CycleOutcome.NOTHING_TO_SPEND)

            # Step 3: Buy
            buy = await self._buyer.buy(spend)
            result.buy = buy
            if not buy.success:
                log.error("engine.buy_failed_skipping_burn", error=buy.error)
                return self._finish(result, CycleOutcome.BUY_FAILED)

            result.sol_spent = spend

            try:
                # Step 4: Wait for the bought tokens to show up
                observed = await self._balances.wait_for_tokens(
                    cycle_cfg.settle_timeout_seconds, cycle_cfg.settle_poll_seconds
                )
                log.info("engine.tokens_settled", tokens=observed)

                # Step 5: Burn
                burn = await self._burner.burn()
            except asyncio.CancelledError:
                log.critical(
                    "engine.bought_but_not_burned",
                    buy_signature=buy.signature,
                    sol_spent=round(spend, 6),
                    error="cancelled during shutdown",
                )
                raise
            result.burn = burn
            if not burn.success:
                log.critical(
                    "engine.bought_but_not_burned",
                    buy_signature=buy.signature,
                    sol_spent=round(spend, 6),
                    error=burn.error,
                )
                return self._finish(result, CycleOutcome.BURN_FAILED)

            # Step 6: Stats
            self._stats.record_burn(sol_spent=spend, tokens_burned=burn.amount)

            log.info(
                "engine.cycle_complete",
                sol_spent=round(spend, 6),
                tokens_burned=burn.amount,
                buy_signature=buy.signature,
                burn_signature=burn.signature,
                total_burns=self._stats.total_burns,
                total_tokens_burned=self._stats.total_tokens_burned,
                total_sol_spent=round(self._stats.total_sol_spent, 6),
            )
            return self._finish(result, CycleOutcome.COMPLETED)

        except Exception as e:
            log.error("engine.cycle_error", error=str(e), exc_info=True)
            return self._finish(result, CycleOutcome.ERROR)

    def _finish(self, result: CycleResult, outcome: CycleOutcome) -> CycleResult:
        result.outcome = outcome
        result.finished_at = datetime.now(timezone.utc)
        self._last_result = result

        duration = (result.finished_at - result.started_at).total_seconds()
        if duration > self._config.cycle.interval_seconds:
            logger.warning(
                "engine.slow_cycle",
                cycle=result.cycle,
                duration_s=round(duration, 2),
                interval_s=self._config.cycle.interval_seconds,
            )
        return result

    def _register_signal_handlers(self) -> None:
        """Register SIGINT/SIGTERM handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        for sig in (signal_mod.SIGINT, signal_mod.SIGTERM):
            loop.add_signal_handler(sig, self.request_shutdown)

    def request_shutdown(self) -> None:
        """Signal the main loop to stop."""
        logger.info("burnbot.shutdown_requested")
        self._running = False
        self._stop.set()

    async def _shutdown(self) -> None:
        """Cancel any in-flight cycle, log final stats, close clients."""
        logger.info("burnbot.shutting_down")

        if self._cycle_task is not None and not self._cycle_task.done():
            self._cycle_task.cancel()
            try:
                await self._cycle_task
            except asyncio.CancelledError:
                logger.warning("engine.cycle_cancelled", cycle=self._cycle_count)

        logger.info("burnbot.final_stats", **self._stats.model_dump(mode="json"))

        try:
            await self._buyer.close()
        finally:
            await self._client.close()
        logger.info("burnbot.stopped")
