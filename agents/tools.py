"""Participant action surface and LangChain tool factories.

``ParticipantActions`` is a participant's capability-scoped view of the shared
ledger and quote provider.  ``make_participant_tools`` wraps the permitted
actions as ``StructuredTool`` objects that render results as text for an LLM.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, Decimal
from typing import Iterable

from langchain_core.tools import StructuredTool, ToolException
from pydantic import BaseModel, Field

from agents.base import Capability
from models.portfolio import PerformanceMetrics, PortfolioSummary, Position
from models.quote import MarketNews, Quote
from models.trade import FeasibilityReport, PositionSizing, Trade, TradeOrder, TradeResult, TradeSide
from simulation.ledger import Ledger
from simulation.quotes import QuoteUnavailableError


class CapabilityError(PermissionError):
    """Raised when a participant invokes an action outside its capability set."""


class ParticipantActions:
    """Capability-scoped access to the ledger and market data for one participant."""

    def __init__(self, ledger: Ledger, capabilities: Iterable[Capability]) -> None:
        self._ledger = ledger
        self._quotes = ledger.quotes
        self.capabilities = frozenset(capabilities)

    def allows(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def _require(self, capability: Capability) -> None:
        if capability not in self.capabilities:
            raise CapabilityError(f"Action requires the '{capability.value}' capability.")

    # --- portfolio ----------------------------------------------------

    async def get_summary(self) -> PortfolioSummary:
        self._require(Capability.PORTFOLIO)
        return await self._ledger.get_summary()

    def get_positions(self) -> dict[str, Position]:
        self._require(Capability.PORTFOLIO)
        return self._ledger.get_positions()

    def get_history(self, window_days: int = 30) -> list[Trade]:
        self._require(Capability.PORTFOLIO)
        return self._ledger.get_history(window_days)

    async def get_performance(self, days: int = 30) -> PerformanceMetrics:
        self._require(Capability.PORTFOLIO)
        return await self._ledger.calculate_performance(days)

    async def get_position_quotes(self) -> list[Quote]:
        """Best-effort quotes for every held symbol (for P&L of own holdings)."""
        self._require(Capability.PORTFOLIO)
        return await self._quotes.get_quotes(self._ledger.get_positions())

    async def calculate_position_size(
        self,
        symbol: str,
        risk_percent: Decimal | float = Decimal("5"),
    ) -> PositionSizing:
        """Largest whole share count whose value fits *risk_percent* of the portfolio."""
        self._require(Capability.PORTFOLIO)
        risk_percent = Decimal(str(risk_percent))
        summary = await self._ledger.get_summary()
        quote = await self._quotes.get_quote(symbol)
        risk_budget = summary.total_value * risk_percent / 100
        shares = (risk_budget / quote.price).to_integral_value(rounding=ROUND_FLOOR)
        position_value = shares * quote.price
        return PositionSizing(
            symbol=quote.symbol,
            price=quote.price,
            risk_percent=risk_percent,
            risk_budget=risk_budget,
            recommended_shares=shares,
            position_value=position_value,
            cash_available=summary.cash_balance,
            affordable=position_value <= summary.cash_balance,
        )

    # --- trading ------------------------------------------------------

    async def execute_trade(
        self,
        symbol: str,
        side: TradeSide | str,
        quantity: Decimal | float | int,
    ) -> TradeResult:
        self._require(Capability.TRADING)
        order = TradeOrder(symbol=symbol, side=side, quantity=Decimal(str(quantity)))
        return await self._ledger.execute_trade(order)

    async def check_feasibility(
        self,
        symbol: str,
        side: TradeSide | str,
        quantity: Decimal | float | int,
    ) -> FeasibilityReport:
        self._require(Capability.TRADING)
        return await self._ledger.check_feasibility(symbol, side, Decimal(str(quantity)))

    # --- market data --------------------------------------------------

    async def get_quote(self, symbol: str) -> Quote:
        self._require(Capability.MARKET_DATA)
        return await self._quotes.get_quote(symbol)

    async def get_quotes(self, symbols: Iterable[str]) -> list[Quote]:
        self._require(Capability.MARKET_DATA)
        return await self._quotes.get_quotes(symbols)

    async def search_symbols(self, query: str, limit: int = 10) -> list[str]:
        self._require(Capability.MARKET_DATA)
        return await self._quotes.search_symbols(query, limit)

    async def get_trending(self, limit: int = 20) -> list[str]:
        self._require(Capability.MARKET_DATA)
        return await self._quotes.get_trending(limit)

    async def get_market_news(self, limit: int = 10) -> list[MarketNews]:
        self._require(Capability.MARKET_DATA)
        return await self._quotes.get_market_news(limit)


# ------------------------------------------------------------------
# Tool input schemas
# ------------------------------------------------------------------

class SymbolInput(BaseModel):
    symbol: str = Field(description="Stock ticker symbol, e.g. 'AAPL'.")


class OrderInput(BaseModel):
    symbol: str = Field(description="Stock ticker symbol, e.g. 'AAPL'.")
    quantity: Decimal = Field(description="Number of shares (positive).")


class FeasibilityInput(BaseModel):
    symbol: str = Field(description="Stock ticker symbol, e.g. 'AAPL'.")
    side: TradeSide = Field(description="'buy' or 'sell'.")
    quantity: Decimal = Field(description="Number of shares (positive).")


class HistoryInput(BaseModel):
    days: int = Field(default=7, ge=1, description="Number of days to look back.")


class PositionSizeInput(BaseModel):
    symbol: str = Field(description="Stock ticker symbol to size.")
    risk_percent: float = Field(
        default=5.0, gt=0, le=20, description="Share of portfolio value to allocate (1-20)."
    )


class SearchInput(BaseModel):
    query: str = Field(description="Company name, industry or keyword.")


# ------------------------------------------------------------------
# Tool factory
# ------------------------------------------------------------------

def make_participant_tools(actions: ParticipantActions) -> list[StructuredTool]:
    """Create the tools a participant's capability set allows.

    Each participant should get its own tools so calls route through its own
    ``ParticipantActions``.  A missing quote is reported to the model as a tool
    error rather than raised into the agent loop.
    """
    tools: list[StructuredTool] = []

    if actions.allows(Capability.PORTFOLIO):

        async def get_portfolio_summary() -> str:
            return format_summary(await actions.get_summary())

        async def get_position_details() -> str:
            positions = actions.get_positions()
            if not positions:
                return "No active positions in portfolio."
            quotes = {q.symbol: q for q in await actions.get_position_quotes()}
            return format_positions(positions, quotes)

        async def get_trading_history(days: int = 7) -> str:
            trades = actions.get_history(days)
            if not trades:
                return f"No trades executed in the last {days} days."
            performance = await actions.get_performance(days)
            return format_history(trades, performance)

        async def calculate_position_size(symbol: str, risk_percent: float = 5.0) -> str:
            sizing = await _guard(actions.calculate_position_size(symbol, risk_percent))
            return format_position_sizing(sizing)

        tools += [
            _tool(get_portfolio_summary, "Get current portfolio value, cash, return and holdings."),
            _tool(get_position_details, "Get each held position with cost basis and current P&L."),
            _tool(get_trading_history, "Get recent executed trades and traded volume.", HistoryInput),
            _tool(
                calculate_position_size,
                "Recommend a share count for a symbol given a risk budget.",
                PositionSizeInput,
            ),
        ]

    if actions.allows(Capability.TRADING):

        async def buy_stock(symbol: str, quantity: Decimal) -> str:
            result = await _guard(actions.execute_trade(symbol, TradeSide.BUY, quantity))
            return format_trade_result(result, TradeSide.BUY, symbol)

        async def sell_stock(symbol: str, quantity: Decimal) -> str:
            result = await _guard(actions.execute_trade(symbol, TradeSide.SELL, quantity))
            return format_trade_result(result, TradeSide.SELL, symbol)

        async def check_trade_feasibility(symbol: str, side: TradeSide, quantity: Decimal) -> str:
            report = await _guard(actions.check_feasibility(symbol, side, quantity))
            return format_feasibility(report)

        tools += [
            _tool(buy_stock, "Execute a buy order at the current market price.", OrderInput),
            _tool(sell_stock, "Execute a sell order at the current market price.", OrderInput),
            _tool(
                check_trade_feasibility,
                "Check whether a buy or sell could execute right now, without trading.",
                FeasibilityInput,
            ),
        ]

    if actions.allows(Capability.MARKET_DATA):

        async def get_stock_quote(symbol: str) -> str:
            return format_quote(await _guard(actions.get_quote(symbol)))

        async def search_stocks(query: str) -> str:
            symbols = await actions.search_symbols(query)
            if not symbols:
                return f"No stocks found for search term '{query}'."
            quotes = await actions.get_quotes(symbols[:5])
            return f"Search results for '{query}':\n" + "\n".join(format_quote(q) for q in quotes)

        async def get_trending_stocks() -> str:
            symbols = await actions.get_trending()
            if not symbols:
                return "No trending stocks available at the moment."
            quotes = await actions.get_quotes(symbols[:8])
            return "Currently trending:\n" + "\n".join(format_quote(q) for q in quotes)

        async def get_market_news() -> str:
            news = await actions.get_market_news(5)
            if not news:
                return "No market news available at the moment."
            return "Market News & Trends:\n" + "\n".join(f"- {item.title}" for item in news)

        tools += [
            _tool(get_stock_quote, "Get the current quote for a stock symbol.", SymbolInput),
            _tool(search_stocks, "Search stocks by company name or keyword.", SearchInput),
            _tool(get_trending_stocks, "List currently trending stocks with quotes."),
            _tool(get_market_news, "Get current market news and trends to inform trading decisions."),
        ]

    return tools


def _tool(coroutine, description: str, args_schema: type[BaseModel] | None = None) -> StructuredTool:
    return StructuredTool.from_function(
        coroutine=coroutine,
        name=coroutine.__name__,
        description=description,
        args_schema=args_schema,
        handle_tool_error=True,
    )


async def _guard(awaitable):
    """Await *awaitable*, converting a missing quote into a ``ToolException``."""
    try:
        return await awaitable
    except QuoteUnavailableError as exc:
        raise ToolException(str(exc)) from exc


# ------------------------------------------------------------------
# Text rendering
# ------------------------------------------------------------------

def format_summary(summary: PortfolioSummary) -> str:
    lines = [
        "Portfolio Summary:",
        f"Total Value: ${summary.total_value:,.2f}",
        f"Cash Available: ${summary.cash_balance:,.2f}",
        f"Total Return: ${summary.total_return:,.2f} ({summary.total_return_percent:+.1f}%)",
        f"Number of Positions: {summary.position_count}",
    ]
    if summary.position_values:
        lines.append("Current Holdings:")
        for symbol, value in sorted(summary.position_values.items(), key=lambda kv: -kv[1]):
            share = value / summary.total_value * 100 if summary.total_value else Decimal("0")
            lines.append(f"{symbol}: ${value:,.2f} ({share:.1f}%)")
    else:
        lines.append("No current positions - portfolio is 100% cash.")
    return "\n".join(lines)


def format_positions(positions: dict[str, Position], quotes: dict[str, Quote]) -> str:
    lines = ["Position Details:"]
    for symbol in sorted(positions):
        position = positions[symbol]
        lines.append(f"{symbol}: {position.quantity} shares @ ${position.average_price:,.2f} avg cost")
        quote = quotes.get(symbol)
        if quote is None:
            lines.append("  Current price unavailable")
            continue
        market_value = position.quantity * quote.price
        gain = market_value - position.cost_basis
        gain_percent = gain / position.cost_basis * 100
        lines.append(f"  Current: ${quote.price:,.2f} | Market Value: ${market_value:,.2f}")
        lines.append(f"  P&L: ${gain:+,.2f} ({gain_percent:+.1f}%)")
    return "\n".join(lines)


def format_history(trades: list[Trade], performance: PerformanceMetrics) -> str:
    lines = [
        f"Trading History (last {performance.period_days} days):",
        f"Total Trades: {performance.total_trades} | Volume: ${performance.total_volume:,.2f}",
    ]
    for trade in trades[:10]:
        verb = "BOUGHT" if trade.side == TradeSide.BUY else "SOLD"
        lines.append(
            f"{trade.executed_at:%b %d %H:%M} - {verb} {trade.quantity} {trade.symbol} @ ${trade.price:,.2f}"
        )
    return "\n".join(lines)


def format_position_sizing(sizing: PositionSizing) -> str:
    lines = [
        f"Position Sizing for {sizing.symbol}:",
        f"Current Price: ${sizing.price:,.2f}",
        f"Risk Budget ({sizing.risk_percent}%): ${sizing.risk_budget:,.2f}",
        f"Recommended Shares: {sizing.recommended_shares}",
        f"Position Value: ${sizing.position_value:,.2f}",
    ]
    if sizing.affordable:
        lines.append(f"Feasible - ${sizing.cash_available - sizing.position_value:,.2f} cash remaining")
    else:
        lines.append(f"Insufficient cash - need ${sizing.position_value - sizing.cash_available:,.2f} more")
    return "\n".join(lines)


def format_trade_result(result: TradeResult, side: TradeSide, symbol: str) -> str:
    verb = side.value.upper()
    if not result.success:
        return f"{verb} ORDER FAILED: {result.error_message}"
    trade = result.trade
    return (
        f"{verb} ORDER EXECUTED:\n"
        f"Symbol: {trade.symbol}\n"
        f"Quantity: {result.executed_quantity} shares\n"
        f"Execution Price: ${result.execution_price:,.2f}\n"
        f"Total: ${result.total_value:,.2f}\n"
        f"Trade ID: {trade.trade_id[:8]}"
    )


def format_feasibility(report: FeasibilityReport) -> str:
    lines = [
        f"{report.side.value.upper()} Feasibility Check for {report.symbol}:",
        f"Current Price: ${report.price:,.2f}",
        f"Shares: {report.quantity}",
        f"Total Value: ${report.total_value:,.2f}",
    ]
    if report.side == TradeSide.BUY:
        lines.append(f"Available Cash: ${report.cash_available:,.2f}")
        if report.feasible:
            lines.append(f"FEASIBLE - ${report.cash_available - report.total_value:,.2f} cash remaining")
        else:
            lines.append(f"INSUFFICIENT FUNDS - need ${report.shortfall:,.2f} more")
    else:
        lines.append(f"Available Shares: {report.shares_available}")
        if report.feasible:
            lines.append(f"FEASIBLE - can sell {report.quantity} shares")
        else:
            lines.append(f"INSUFFICIENT SHARES - have {report.shares_available}, need {report.quantity}")
    return "\n".join(lines)


def format_quote(quote: Quote) -> str:
    return (
        f"{quote.symbol}: ${quote.price:,.2f} ({quote.change:+.2f}) "
        f"{quote.change_percent:+.1f}% | Volume: {quote.volume:,}"
    )
