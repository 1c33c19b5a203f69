"""Quote providers: the market-data collaborator consumed by the ledger and tools.

``QuoteProvider`` is the interface; ``StaticQuoteProvider`` serves an in-memory
price table (tests and offline runs) and ``YahooQuoteProvider`` calls the Yahoo
Finance HTTP endpoints.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable

import httpx

from models.config import LedgerConfig
from models.quote import MarketNews, Quote

logger = logging.getLogger(__name__)


class QuoteUnavailableError(RuntimeError):
    """Raised when a price cannot be obtained for a symbol."""

    def __init__(self, symbol: str, reason: str) -> None:
        super().__init__(f"Unable to get quote for {symbol}: {reason}")
        self.symbol = symbol
        self.reason = reason


def positive_price(value: Any) -> Decimal:
    """Parse *value* as a finite price above zero, else raise ``ValueError``."""
    if value is None or isinstance(value, bool):
        raise ValueError("price is missing")
    try:
        price = Decimal(str(value))
    except ArithmeticError as exc:
        raise ValueError(f"price {value!r} is not a number") from exc
    if not price.is_finite() or price <= 0:
        raise ValueError(f"price {value!r} is not positive")
    return price


class QuoteProvider(ABC):
    """Market data source.  Only ``get_quote`` may raise; discovery degrades to ``[]``."""

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Return a fresh quote for *symbol* or raise ``QuoteUnavailableError``."""

    @abstractmethod
    async def search_symbols(self, query: str, limit: int = 10) -> list[str]:
        """Return symbols matching a company name or keyword."""

    @abstractmethod
    async def get_trending(self, limit: int = 20) -> list[str]:
        """Return currently trending symbols."""

    async def get_quotes(self, symbols: Iterable[str]) -> list[Quote]:
        """Fetch quotes concurrently, keeping whatever succeeds.

        One failing symbol never fails the batch; failures are logged and skipped.
        """
        symbols = list(symbols)
        results = await asyncio.gather(
            *(self.get_quote(s) for s in symbols),
            return_exceptions=True,
        )
        quotes: list[Quote] = []
        failed: list[str] = []
        for symbol, result in zip(symbols, results):
            if isinstance(result, QuoteUnavailableError):
                failed.append(symbol)
            elif isinstance(result, BaseException):
                raise result
            else:
                quotes.append(result)
        if failed:
            logger.warning(
                "Quotes unavailable for %d of %d symbol(s): %s",
                len(failed),
                len(symbols),
                ", ".join(failed),
            )
        return quotes

    async def get_market_news(self, limit: int = 10) -> list[MarketNews]:
        """Headlines built from the trending list; ``[]`` when nothing is trending."""
        now = datetime.now(timezone.utc)
        return [
            MarketNews(
                title=f"Trending: {symbol}",
                summary=f"{symbol} is currently trending in the market",
                symbol=symbol,
                published_at=now,
            )
            for symbol in await self.get_trending(limit)
        ]


# ------------------------------------------------------------------
# In-memory provider
# ------------------------------------------------------------------

class StaticQuoteProvider(QuoteProvider):
    """Serves prices from a mutable table; symbols without a price are unavailable."""

    def __init__(
        self,
        prices: dict[str, Decimal | int | str] | None = None,
        volumes: dict[str, int] | None = None,
    ) -> None:
        self._prices: dict[str, Decimal] = {}
        self._previous: dict[str, Decimal] = {}
        self._volumes = {k.upper(): v for k, v in (volumes or {}).items()}
        for symbol, price in (prices or {}).items():
            self.set_price(symbol, price)

    def set_price(self, symbol: str, price: Decimal | int | str) -> None:
        """Move *symbol* to *price*; the old price becomes the previous close."""
        symbol = symbol.strip().upper()
        price = positive_price(price)
        self._previous[symbol] = self._prices.get(symbol, price)
        self._prices[symbol] = price

    def remove(self, symbol: str) -> None:
        """Make *symbol* unavailable (simulates a feed outage)."""
        self._prices.pop(symbol.strip().upper(), None)

    async def get_quote(self, symbol: str) -> Quote:
        symbol = symbol.strip().upper()
        price = self._prices.get(symbol)
        if price is None:
            raise QuoteUnavailableError(symbol, "no price available")
        previous = self._previous.get(symbol, price)
        change = price - previous
        change_percent = (change / previous * 100) if previous else Decimal("0")
        return Quote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change_percent,
            volume=self._volumes.get(symbol, 0),
            as_of=datetime.now(timezone.utc),
        )

    async def search_symbols(self, query: str, limit: int = 10) -> list[str]:
        needle = query.strip().upper()
        return [s for s in sorted(self._prices) if needle in s][:limit]

    async def get_trending(self, limit: int = 20) -> list[str]:
        quotes = await self.get_quotes(sorted(self._prices))
        quotes.sort(key=lambda q: abs(q.change_percent), reverse=True)
        return [q.symbol for q in quotes[:limit]]


# ------------------------------------------------------------------
# Yahoo Finance provider
# ------------------------------------------------------------------

_YAHOO_BASE_URL = "https://query1.finance.yahoo.com"
_USER_AGENT = "Mozilla/5.0 (compatible; trading-desk/0.1)"


class YahooQuoteProvider(QuoteProvider):
    """Quotes from the public Yahoo Finance chart, search and trending endpoints.

    Pass *client* to reuse a connection pool (or inject a mock transport in
    tests); otherwise a short-lived ``httpx.AsyncClient`` is opened per call.
    """

    def __init__(
        self,
        *,
        base_url: str = _YAHOO_BASE_URL,
        timeout_seconds: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client

    async def get_quote(self, symbol: str) -> Quote:
        symbol = symbol.strip().upper()
        try:
            payload = await self._get_json(f"/v8/finance/chart/{symbol}")
            meta = payload["chart"]["result"][0]["meta"]
            price = positive_price(meta.get("regularMarketPrice"))
            previous_close = meta.get("previousClose") or meta.get("chartPreviousClose")
            previous = positive_price(previous_close) if previous_close else price
            volume = int(meta.get("regularMarketVolume") or 0)
        except (httpx.HTTPError, KeyError, IndexError, AttributeError, TypeError, ValueError, ArithmeticError) as exc:
            logger.error("Failed to get quote for %s: %s", symbol, exc)
            raise QuoteUnavailableError(symbol, str(exc)) from exc

        change = price - previous
        return Quote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=(change / previous * 100) if previous else Decimal("0"),
            volume=volume,
            as_of=datetime.now(timezone.utc),
        )

    async def search_symbols(self, query: str, limit: int = 10) -> list[str]:
        try:
            payload = await self._get_json("/v1/finance/search", params={"q": query})
            matches = payload.get("quotes", [])
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to search symbols for query '%s': %s", query, exc)
            return []
        return _symbols_from(matches, limit)

    async def get_trending(self, limit: int = 20) -> list[str]:
        try:
            payload = await self._get_json("/v1/finance/trending/US")
            matches = payload["finance"]["result"][0]["quotes"]
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.warning("Failed to get trending symbols: %s", exc)
            return []
        return _symbols_from(matches, limit)

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict:
        url = f"{self._base_url}{path}"
        headers = {"User-Agent": _USER_AGENT}
        if self._client is not None:
            response = await self._client.get(url, params=params, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
        payload = response.json()
        if not isinstance(payload, dict):
            raise ValueError(f"Expected a JSON object from {path}, got {type(payload).__name__}")
        return payload


def _symbols_from(matches: Any, limit: int) -> list[str]:
    if not isinstance(matches, list):
        return []
    symbols = [
        str(item["symbol"]).upper()
        for item in matches
        if isinstance(item, dict) and item.get("symbol")
    ]
    return symbols[:limit]


def create_quote_provider(config: LedgerConfig) -> QuoteProvider:
    """Build the quote provider named in *config*."""
    if config.quote_provider == "yahoo":
        return YahooQuoteProvider(timeout_seconds=config.quote_timeout_seconds)
    return StaticQuoteProvider(config.static_prices)
