"""
Tests for the in-process ledger.

All tests use the static quote provider except one valuation test, which runs the
Yahoo provider over ``httpx.MockTransport`` (no network either way).
Tests verify:
  1. Buys and sells conserve value and update positions
  2. Business rejections never mutate the account
  3. Average cost and position removal
  4. Valuation, history window, performance and feasibility
  5. Concurrent orders never over-commit cash or oversell
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest

from models.config import LedgerConfig
from models.trade import TradeOrder, TradeSide
from simulation.ledger import Ledger
from simulation.quotes import QuoteUnavailableError, StaticQuoteProvider, YahooQuoteProvider


class YieldingQuoteProvider(StaticQuoteProvider):
    """Static provider that yields to the event loop, like a network call would."""

    async def get_quote(self, symbol):
        await asyncio.sleep(0)
        return await super().get_quote(symbol)


def buy(symbol, quantity):
    return TradeOrder(symbol=symbol, side=TradeSide.BUY, quantity=Decimal(str(quantity)))


def sell(symbol, quantity):
    return TradeOrder(symbol=symbol, side=TradeSide.SELL, quantity=Decimal(str(quantity)))


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def quotes() -> StaticQuoteProvider:
    return StaticQuoteProvider({"X": 100, "AAPL": "150.25"})


@pytest.fixture
def ledger(quotes: StaticQuoteProvider) -> Ledger:
    return Ledger(LedgerConfig(initial_cash=Decimal("10000")), quotes)


# =============================================================================
# 1. EXECUTION
# =============================================================================


class TestExecution:

    def test_buy_conserves_value(self, ledger: Ledger):
        result = asyncio.run(ledger.execute_trade(buy("X", 50)))

        assert result.success
        assert result.execution_price == Decimal("100")
        assert result.total_value == Decimal("5000")
        assert ledger.get_cash_balance() == Decimal("5000")
        position = ledger.get_positions()["X"]
        assert position.quantity == Decimal("50")
        assert position.average_price == Decimal("100")

    def test_sell_conserves_value(self, ledger: Ledger, quotes: StaticQuoteProvider):
        asyncio.run(ledger.execute_trade(buy("X", 50)))
        quotes.set_price("X", 120)

        result = asyncio.run(ledger.execute_trade(sell("X", 20)))

        assert result.success
        assert result.total_value == Decimal("2400")
        assert ledger.get_cash_balance() == Decimal("7400")

    def test_lowercase_symbol_addresses_same_position(self, ledger: Ledger):
        asyncio.run(ledger.execute_trade(buy("x", 10)))
        asyncio.run(ledger.execute_trade(buy(" X ", 10)))

        assert list(ledger.get_positions()) == ["X"]
        assert ledger.get_positions()["X"].quantity == Decimal("20")

    def test_money_arithmetic_is_exact(self, quotes: StaticQuoteProvider):
        quotes.set_price("PENNY", "0.1")
        ledger = Ledger(LedgerConfig(initial_cash=Decimal("1")), quotes)

        result = asyncio.run(ledger.execute_trade(buy("PENNY", 3)))

        assert result.total_value == Decimal("0.3")
        assert ledger.get_cash_balance() == Decimal("0.7")

    def test_trade_recorded(self, ledger: Ledger):
        result = asyncio.run(ledger.execute_trade(buy("AAPL", 2)))

        history = ledger.get_history()
        assert len(history) == 1
        assert history[0] == result.trade
        assert history[0].total_value == history[0].quantity * history[0].price
        assert history[0].status.value == "executed"

    def test_end_to_end_scenario(self, ledger: Ledger, quotes: StaticQuoteProvider):
        first = asyncio.run(ledger.execute_trade(buy("X", 50)))
        assert first.success
        assert ledger.get_cash_balance() == Decimal("5000")
        assert ledger.get_positions()["X"].quantity == Decimal("50")
        assert ledger.get_positions()["X"].average_price == Decimal("100")

        quotes.set_price("X", 120)
        second = asyncio.run(ledger.execute_trade(sell("X", 20)))
        assert second.success
        assert ledger.get_cash_balance() == Decimal("7400")
        position = ledger.get_positions()["X"]
        assert position.quantity == Decimal("30")
        assert position.average_price == Decimal("100")

        history = ledger.get_history()
        assert len(history) == 2
        assert history[0].side == TradeSide.SELL
        assert history[0].total_value == Decimal("2400")


# =============================================================================
# 2. REJECTIONS
# =============================================================================


class TestRejections:

    def test_insufficient_funds(self, ledger: Ledger):
        result = asyncio.run(ledger.execute_trade(buy("X", 101)))

        assert not result.success
        assert result.rejection == "insufficient_funds"
        assert "Insufficient funds" in result.error_message
        assert ledger.get_cash_balance() == Decimal("10000")
        assert ledger.get_positions() == {}
        assert ledger.get_history() == []

    def test_insufficient_shares(self, ledger: Ledger):
        asyncio.run(ledger.execute_trade(buy("X", 10)))

        result = asyncio.run(ledger.execute_trade(sell("X", 11)))

        assert not result.success
        assert result.rejection == "insufficient_shares"
        assert "Requested: 11, Available: 10" in result.error_message
        assert ledger.get_positions()["X"].quantity == Decimal("10")
        assert ledger.get_cash_balance() == Decimal("9000")

    def test_sell_without_position(self, ledger: Ledger):
        result = asyncio.run(ledger.execute_trade(sell("AAPL", 1)))

        assert not result.success
        assert result.rejection == "insufficient_shares"
        assert ledger.get_cash_balance() == Decimal("10000")

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_non_positive_quantity(self, ledger: Ledger, quantity):
        result = asyncio.run(ledger.execute_trade(buy("X", quantity)))

        assert not result.success
        assert result.rejection == "invalid_quantity"
        assert ledger.get_cash_balance() == Decimal("10000")

    def test_non_positive_quantity_skips_quote(self, ledger: Ledger):
        # No price for this symbol, but the quantity check comes first.
        result = asyncio.run(ledger.execute_trade(buy("NOPE", 0)))
        assert result.rejection == "invalid_quantity"

    def test_missing_quote_raises_without_mutation(self, ledger: Ledger):
        with pytest.raises(QuoteUnavailableError) as excinfo:
            asyncio.run(ledger.execute_trade(buy("NOPE", 1)))

        assert excinfo.value.symbol == "NOPE"
        assert ledger.get_cash_balance() == Decimal("10000")
        assert ledger.get_history() == []


# =============================================================================
# 3. POSITIONS
# =============================================================================


class TestPositions:

    def test_average_cost_recompute(self, ledger: Ledger, quotes: StaticQuoteProvider):
        quotes.set_price("X", 10)
        asyncio.run(ledger.execute_trade(buy("X", 10)))
        quotes.set_price("X", 20)
        asyncio.run(ledger.execute_trade(buy("X", 10)))

        position = ledger.get_positions()["X"]
        assert position.quantity == Decimal("20")
        assert position.average_price == Decimal("15")

    def test_partial_sell_keeps_average(self, ledger: Ledger, quotes: StaticQuoteProvider):
        asyncio.run(ledger.execute_trade(buy("X", 10)))
        quotes.set_price("X", 50)
        asyncio.run(ledger.execute_trade(sell("X", 4)))

        position = ledger.get_positions()["X"]
        assert position.quantity == Decimal("6")
        assert position.average_price == Decimal("100")

    def test_position_removed_at_zero(self, ledger: Ledger):
        asyncio.run(ledger.execute_trade(buy("X", 10)))
        asyncio.run(ledger.execute_trade(sell("X", 10)))

        assert "X" not in ledger.get_positions()
        assert ledger.get_cash_balance() == Decimal("10000")

    def test_positions_are_a_snapshot(self, ledger: Ledger):
        asyncio.run(ledger.execute_trade(buy("X", 10)))
        snapshot = ledger.get_positions()

        asyncio.run(ledger.execute_trade(buy("X", 5)))
        asyncio.run(ledger.execute_trade(buy("AAPL", 1)))

        assert snapshot["X"].quantity == Decimal("10")
        assert "AAPL" not in snapshot


# =============================================================================
# 4. QUERIES
# =============================================================================


class TestQueries:

    def test_summary_at_market(self, ledger: Ledger, quotes: StaticQuoteProvider):
        asyncio.run(ledger.execute_trade(buy("X", 50)))
        quotes.set_price("X", 120)

        summary = asyncio.run(ledger.get_summary())

        assert summary.cash_balance == Decimal("5000")
        assert summary.position_values == {"X": Decimal("6000")}
        assert summary.total_value == Decimal("11000")
        assert summary.total_return == Decimal("1000")
        assert summary.total_return_percent == Decimal("10")
        assert summary.position_count == 1

    def test_summary_falls_back_to_cost(self, ledger: Ledger, quotes: StaticQuoteProvider):
        asyncio.run(ledger.execute_trade(buy("X", 50)))
        asyncio.run(ledger.execute_trade(buy("AAPL", 4)))
        quotes.set_price("AAPL", 200)
        quotes.remove("X")

        summary = asyncio.run(ledger.get_summary())

        assert summary.position_values["X"] == Decimal("5000")
        assert summary.position_values["AAPL"] == Decimal("800")
        assert summary.total_value == summary.cash_balance + Decimal("5800")

    def test_summary_falls_back_when_feed_reports_no_price(self):
        prices = {"AAPL": 200}

        def handler(request: httpx.Request) -> httpx.Response:
            meta = {"regularMarketPrice": prices["AAPL"], "previousClose": 200}
            return httpx.Response(200, json={"chart": {"result": [{"meta": meta}]}})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        feed = YahooQuoteProvider(base_url="https://yahoo.test", client=client)
        ledger = Ledger(LedgerConfig(initial_cash=Decimal("10000")), feed)
        asyncio.run(ledger.execute_trade(buy("AAPL", 10)))
        prices["AAPL"] = None

        summary = asyncio.run(ledger.get_summary())

        assert summary.position_values == {"AAPL": Decimal("2000")}
        assert summary.total_value == Decimal("10000")

    def test_history_most_recent_first_and_windowed(self, quotes: StaticQuoteProvider):
        now = [datetime(2025, 3, 1, tzinfo=timezone.utc)]
        ledger = Ledger(LedgerConfig(), quotes, clock=lambda: now[0])

        asyncio.run(ledger.execute_trade(buy("X", 1)))
        now[0] += timedelta(days=10)
        asyncio.run(ledger.execute_trade(buy("AAPL", 1)))
        now[0] += timedelta(days=1)

        assert [t.symbol for t in ledger.get_history(30)] == ["AAPL", "X"]
        assert [t.symbol for t in ledger.get_history(5)] == ["AAPL"]

    def test_performance(self, ledger: Ledger, quotes: StaticQuoteProvider):
        asyncio.run(ledger.execute_trade(buy("X", 10)))
        quotes.set_price("X", 110)
        asyncio.run(ledger.execute_trade(sell("X", 5)))

        metrics = asyncio.run(ledger.calculate_performance(7))

        assert metrics.period_days == 7
        assert metrics.total_trades == 2
        assert metrics.total_volume == Decimal("1550")
        assert metrics.total_return == Decimal("100")

    def test_feasibility_buy(self, ledger: Ledger):
        ok = asyncio.run(ledger.check_feasibility("X", "buy", 100))
        too_big = asyncio.run(ledger.check_feasibility("X", "buy", 150))

        assert ok.feasible
        assert ok.portfolio_impact_percent == Decimal("100")
        assert not too_big.feasible
        assert too_big.shortfall == Decimal("5000")
        assert ledger.get_cash_balance() == Decimal("10000")

    def test_feasibility_sell(self, ledger: Ledger):
        asyncio.run(ledger.execute_trade(buy("X", 10)))

        report = asyncio.run(ledger.check_feasibility("x", TradeSide.SELL, 15))

        assert report.symbol == "X"
        assert not report.feasible
        assert report.shares_available == Decimal("10")
        assert report.shortfall == Decimal("5")


# =============================================================================
# 5. CONCURRENCY
# =============================================================================


class TestConcurrency:

    def test_concurrent_buys_never_overcommit(self):
        ledger = Ledger(LedgerConfig(initial_cash=Decimal("10000")), YieldingQuoteProvider({"X": 100}))

        async def scenario():
            return await asyncio.gather(*(ledger.execute_trade(buy("X", 10)) for _ in range(30)))

        results = asyncio.run(scenario())

        assert sum(r.success for r in results) == 10
        assert all(r.rejection == "insufficient_funds" for r in results if not r.success)
        assert ledger.get_cash_balance() == Decimal("0")
        assert ledger.get_positions()["X"].quantity == Decimal("100")

    def test_concurrent_sells_never_oversell(self):
        ledger = Ledger(LedgerConfig(initial_cash=Decimal("10000")), YieldingQuoteProvider({"X": 100}))

        async def scenario():
            await ledger.execute_trade(buy("X", 50))
            return await asyncio.gather(*(ledger.execute_trade(sell("X", 10)) for _ in range(8)))

        results = asyncio.run(scenario())

        assert sum(r.success for r in results) == 5
        assert "X" not in ledger.get_positions()
        assert ledger.get_cash_balance() == Decimal("10000")
