"""Tests for the buy-and-burn cycle orchestration."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from structlog.testing import capture_logs

from burnbot.engine import BurnEngine, compute_spend_amount
from burnbot.models import BurnResult, BuyResult, CycleOutcome


def _buy_ok(amount: float) -> BuyResult:
    return BuyResult(success=True, sol_amount=amount, signature="buy-sig")


class TestComputeSpendAmount:
    def test_spends_everything_above_reserve(self):
        assert compute_spend_amount(0.01, 0.005, 0.001) == pytest.approx(0.005)

    def test_never_below_floor(self):
        assert compute_spend_amount(0.0055, 0.005, 0.001) == 0.001

    def test_large_balance(self):
        assert compute_spend_amount(2.5, 0.005, 0.001) == pytest.approx(2.495)


class TestBurnEngine:
    @pytest.fixture
    def engine(self, test_config, test_settings, keypair, rpc_client):
        buyer = MagicMock()
        buyer.buy = AsyncMock(side_effect=_buy_ok)
        buyer.close = AsyncMock()

        with patch("burnbot.engine.create_client", return_value=rpc_client), patch(
            "burnbot.engine.create_buy_provider", return_value=buyer
        ):
            e = BurnEngine(test_config, test_settings, keypair)

        e._balances = MagicMock()
        e._balances.token_account = "token-account"
        e._balances.get_sol_balance = AsyncMock(return_value=0.01)
        e._balances.wait_for_tokens = AsyncMock(return_value=1_000)
        e._burner = MagicMock()
        e._burner.burn = AsyncMock(
            return_value=BurnResult(success=True, amount=1_000, signature="burn-sig")
        )
        return e

    @pytest.mark.asyncio
    @pytest.mark.parametrize("balance", [0.0, 0.003, 0.0049])
    async def test_low_balance_never_buys(self, engine, balance):
        engine._balances.get_sol_balance.return_value = balance

        result = await engine.execute_cycle()

        assert result.outcome == CycleOutcome.INSUFFICIENT_BALANCE
        engine._buyer.buy.assert_not_awaited()
        engine._burner.burn.assert_not_awaited()
        assert engine.stats.total_burns == 0

    @pytest.mark.asyncio
    async def test_buys_balance_minus_reserve(self, engine):
        await engine.execute_cycle()

        engine._buyer.buy.assert_awaited_once()
        assert engine._buyer.buy.await_args.args[0] == pytest.approx(0.005)

    @pytest.mark.asyncio
    async def test_balance_at_minimum_buys_floor(self, engine):
        engine._balances.get_sol_balance.return_value = 0.005

        await engine.execute_cycle()

        assert engine._buyer.buy.await_args.args[0] == pytest.approx(0.001)

    @pytest.mark.asyncio
    async def test_successful_cycle_updates_stats(self, engine):
        result = await engine.execute_cycle()

        assert result.outcome == CycleOutcome.COMPLETED
        assert result.sol_spent == pytest.approx(0.005)
        assert result.burn.amount == 1_000
        assert engine.stats.total_burns == 1
        assert engine.stats.total_tokens_burned == 1_000
        assert engine.stats.total_sol_spent == pytest.approx(0.005)
        assert engine.stats.last_burn_time is not None
        assert engine.last_result is result

    @pytest.mark.asyncio
    async def test_stats_accumulate_across_cycles(self, engine):
        await engine.execute_cycle()
        engine._burner.burn.return_value = BurnResult(success=True, amount=2_500, signature="s2")
        await engine.execute_cycle()

        assert engine.stats.total_burns == 2
        assert engine.stats.total_tokens_burned == 3_500

    @pytest.mark.asyncio
    async def test_waits_for_settlement_before_burning(self, engine, test_config):
        order = []
        engine._balances.wait_for_tokens.side_effect = lambda *a: order.append("settle") or 1_000
        engine._burner.burn.side_effect = lambda: order.append("burn") or BurnResult(
            success=True, amount=1_000
        )

        await engine.execute_cycle()

        assert order == ["settle", "burn"]
        engine._balances.wait_for_tokens.assert_awaited_once_with(
            test_config.cycle.settle_timeout_seconds, test_config.cycle.settle_poll_seconds
        )

    @pytest.mark.asyncio
    async def test_buy_failure_skips_burn(self, engine):
        engine._buyer.buy.side_effect = None
        engine._buyer.buy.return_value = BuyResult(
            success=False, sol_amount=0.005, error="HTTP 500: down"
        )

        result = await engine.execute_cycle()

        assert result.outcome == CycleOutcome.BUY_FAILED
        engine._balances.wait_for_tokens.assert_not_awaited()
        engine._burner.burn.assert_not_awaited()
        assert engine.stats.total_burns == 0
        assert engine.stats.total_sol_spent == 0.0

    @pytest.mark.asyncio
    async def test_burn_failure_leaves_stats_unchanged(self, engine):
        engine._burner.burn.return_value = BurnResult(success=False, error="No tokens to burn")

        with capture_logs() as logs:
            result = await engine.execute_cycle()

        assert result.outcome == CycleOutcome.BURN_FAILED
        assert result.buy.success is True
        assert result.sol_spent == pytest.approx(0.005)
        critical = [e for e in logs if e["event"] == "engine.bought_but_not_burned"]
        assert len(critical) == 1
        assert critical[0]["log_level"] == "critical"
        assert critical[0]["error"] == "No tokens to burn"
        assert engine.stats.total_burns == 0
        assert engine.stats.total_tokens_burned == 0
        assert engine.stats.total_sol_spent == 0.0
        assert engine.stats.last_burn_time is None

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, engine):
        engine._balances.get_sol_balance.side_effect = RuntimeError("boom")

        result = await engine.execute_cycle()

        assert result.outcome == CycleOutcome.ERROR
        assert result.finished_at is not None
        engine._buyer.buy.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cycle_numbers_increase(self, engine):
        first = await engine.execute_cycle()
        second = await engine.execute_cycle()
        assert (first.cycle, second.cycle) == (1, 2)

    @pytest.mark.asyncio
    async def test_overlapping_tick_is_skipped(self, engine):
        release = asyncio.Event()

        async def slow_cycle():
            await release.wait()

        engine.execute_cycle = AsyncMock(side_effect=slow_cycle)

        engine._dispatch_cycle()
        await asyncio.sleep(0)
        engine._dispatch_cycle()

        assert engine.execute_cycle.call_count == 1

        release.set()
        await engine._cycle_task
        engine._dispatch_cycle()
        await engine._cycle_task
        assert engine.execute_cycle.call_count == 2

    @pytest.mark.asyncio
    async def test_start_runs_first_cycle_and_stops(self, engine, rpc_client):
        engine.execute_cycle = AsyncMock()
        asyncio.get_running_loop().call_later(0.05, engine.request_shutdown)

        with patch.object(engine, "_register_signal_handlers"):
            await asyncio.wait_for(engine.start(), timeout=5)

        engine.execute_cycle.assert_awaited_once()
        engine._buyer.close.assert_awaited_once()
        rpc_client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_start_repeats_every_interval(self, engine):
        engine._config.cycle.interval_seconds = 0.01
        engine.execute_cycle = AsyncMock()
        asyncio.get_running_loop().call_later(0.2, engine.request_shutdown)

        with patch.object(engine, "_register_signal_handlers"):
            await asyncio.wait_for(engine.start(), timeout=5)

        assert engine.execute_cycle.await_count >= 2

    @pytest.mark.asyncio
    async def test_shutdown_cancels_in_flight_cycle(self, engine):
        started = asyncio.Event()

        async def hung_cycle():
            started.set()
            await asyncio.sleep(3600)

        engine.execute_cycle = AsyncMock(side_effect=hung_cycle)

        async def stop_when_started():
            await started.wait()
            engine.request_shutdown()

        stopper = asyncio.create_task(stop_when_started())
        with patch.object(engine, "_register_signal_handlers"):
            await asyncio.wait_for(engine.start(), timeout=5)
        await stopper

        assert engine._cycle_task.cancelled()
        engine._buyer.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_after_buy_logs_bought_but_not_burned(self, engine):
        settling = asyncio.Event()

        async def hung_settle(*args):
            settling.set()
            await asyncio.sleep(3600)

        engine._balances.wait_for_tokens.side_effect = hung_settle

        async def stop_when_settling():
            await settling.wait()
            engine.request_shutdown()

        stopper = asyncio.create_task(stop_when_settling())
        with capture_logs() as logs, patch.object(engine, "_register_signal_handlers"):
            await asyncio.wait_for(engine.start(), timeout=5)
        await stopper

        critical = [e for e in logs if e["event"] == "engine.bought_but_not_burned"]
        assert len(critical) == 1
        assert critical[0]["log_level"] == "critical"
        assert critical[0]["buy_signature"] == "buy-sig"
        assert critical[0]["error"] == "cancelled during shutdown"
        engine._burner.burn.assert_not_awaited()
        assert engine.stats.total_burns == 0

    @pytest.mark.asyncio
    async def test_rpc_client_closed_when_buyer_close_fails(self, engine, rpc_client):
        engine.execute_cycle = AsyncMock()
        engine._buyer.close.side_effect = RuntimeError("http client already closed")
        asyncio.get_running_loop().call_later(0.01, engine.request_shutdown)

        with patch.object(engine, "_register_signal_handlers"):
            with pytest.raises(RuntimeError, match="already closed"):
                await asyncio.wait_for(engine.start(), timeout=5)

        rpc_client.close.assert_awaited_once()
