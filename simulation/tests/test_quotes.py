"""
Tests for the quote providers.

The Yahoo provider is exercised against ``httpx.MockTransport`` (no network).
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import httpx
import pytest
from pydantic import ValidationError

from models.config import LedgerConfig
from models.quote import Quote
from simulation.quotes import (
    QuoteUnavailableError,
    StaticQuoteProvider,
    YahooQuoteProvider,
    create_quote_provider,
    positive_price,
)


def _chart(price, previous, volume=1000):
    return {
        "chart": {
            "result": [
                {
                    "meta": {
                        "regularMarketPrice": price,
                        "previousClose": previous,
                        "regularMarketVolume": volume,
                    }
                }
            ]
        }
    }


def _yahoo(handler) -> YahooQuoteProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return YahooQuoteProvider(base_url="https://yahoo.test", client=client)


# =============================================================================
# STATIC PROVIDER
# =============================================================================


class TestStaticQuoteProvider:

    def test_quote_and_change(self):
        provider = StaticQuoteProvider({"aapl": 100})
        provider.set_price("AAPL", 110)

        quote = asyncio.run(provider.get_quote("aapl"))

        assert quote.symbol == "AAPL"
        assert quote.price == Decimal("110")
        assert quote.change == Decimal("10")
        assert quote.change_percent == Decimal("10")

    def test_unknown_symbol_raises(self):
        provider = StaticQuoteProvider()
        with pytest.raises(QuoteUnavailableError):
            asyncio.run(provider.get_quote("ZZZ"))

    def test_removed_symbol_raises(self):
        provider = StaticQuoteProvider({"X": 1})
        provider.remove("x")
        with pytest.raises(QuoteUnavailableError):
            asyncio.run(provider.get_quote("X"))

    def test_batch_keeps_partial_results(self, caplog):
        provider = StaticQuoteProvider({"AAPL": 1, "MSFT": 2})

        with caplog.at_level("WARNING"):
            quotes = asyncio.run(provider.get_quotes(["AAPL", "NOPE", "MSFT"]))

        assert [q.symbol for q in quotes] == ["AAPL", "MSFT"]
        assert "NOPE" in caplog.text

    def test_search_and_trending(self):
        provider = StaticQuoteProvider({"AAPL": 100, "AMZN": 100, "MSFT": 100})
        provider.set_price("MSFT", 90)
        provider.set_price("AMZN", 105)

        assert asyncio.run(provider.search_symbols("a")) == ["AAPL", "AMZN"]
        assert asyncio.run(provider.get_trending(limit=2)) == ["MSFT", "AMZN"]


# =============================================================================
# YAHOO PROVIDER
# =============================================================================


class TestYahooQuoteProvider:

    def test_quote_from_chart(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v8/finance/chart/AAPL"
            return httpx.Response(200, json=_chart(187.5, 180.0, 42))

        quote = asyncio.run(_yahoo(handler).get_quote("aapl"))

        assert quote.symbol == "AAPL"
        assert quote.price == Decimal("187.5")
        assert quote.change == Decimal("7.5")
        assert quote.volume == 42

    def test_http_error_becomes_unavailable(self):
        provider = _yahoo(lambda request: httpx.Response(404, json={}))
        with pytest.raises(QuoteUnavailableError) as excinfo:
            asyncio.run(provider.get_quote("NOPE"))
        assert excinfo.value.symbol == "NOPE"

    def test_malformed_payload_becomes_unavailable(self):
        provider = _yahoo(lambda request: httpx.Response(200, json={"chart": {"result": []}}))
        with pytest.raises(QuoteUnavailableError):
            asyncio.run(provider.get_quote("AAPL"))

    def test_search(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["q"] == "apple"
            return httpx.Response(200, json={"quotes": [{"symbol": "aapl"}, {"name": "no symbol"}]})

        assert asyncio.run(_yahoo(handler).search_symbols("apple")) == ["AAPL"]

    def test_discovery_degrades_to_empty(self):
        provider = _yahoo(lambda request: httpx.Response(500))

        assert asyncio.run(provider.search_symbols("apple")) == []
        assert asyncio.run(provider.get_trending()) == []

    def test_trending(self):
        payload = {"finance": {"result": [{"quotes": [{"symbol": "NVDA"}, {"symbol": "TSLA"}]}]}}
        provider = _yahoo(lambda request: httpx.Response(200, json=payload))

        assert asyncio.run(provider.get_trending(limit=1)) == ["NVDA"]

    @pytest.mark.parametrize("price", [None, "n/a", 0, -3.5])
    def test_unusable_price_becomes_unavailable(self, price):
        provider = _yahoo(lambda request: httpx.Response(200, json=_chart(price, 180.0)))
        with pytest.raises(QuoteUnavailableError):
            asyncio.run(provider.get_quote("AAPL"))

    def test_batch_skips_unusable_price(self):
        def handler(request: httpx.Request) -> httpx.Response:
            price = None if request.url.path.endswith("/BAD") else 10
            return httpx.Response(200, json=_chart(price, 10))

        quotes = asyncio.run(_yahoo(handler).get_quotes(["GOOD", "BAD"]))

        assert [q.symbol for q in quotes] == ["GOOD"]

    def test_market_news_from_trending(self):
        payload = {"finance": {"result": [{"quotes": [{"symbol": "NVDA"}, {"symbol": "TSLA"}]}]}}
        provider = _yahoo(lambda request: httpx.Response(200, json=payload))

        news = asyncio.run(provider.get_market_news(limit=5))

        assert [item.title for item in news] == ["Trending: NVDA", "Trending: TSLA"]
        assert news[0].symbol == "NVDA"

    def test_market_news_degrades_to_empty(self):
        provider = _yahoo(lambda request: httpx.Response(503))
        assert asyncio.run(provider.get_market_news()) == []


def test_create_quote_provider():
    static = create_quote_provider(LedgerConfig(static_prices={"X": Decimal("5")}))
    assert isinstance(static, StaticQuoteProvider)
    assert asyncio.run(static.get_quote("X")).price == Decimal("5")

    assert isinstance(create_quote_provider(LedgerConfig(quote_provider="yahoo")), YahooQuoteProvider)


# =============================================================================
# PRICE VALIDATION
# =============================================================================


class TestPriceValidation:

    @pytest.mark.parametrize("price", [0, "-1", "NaN"])
    def test_static_price_must_be_positive(self, price):
        with pytest.raises(ValueError):
            StaticQuoteProvider({"X": price})

    def test_config_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            LedgerConfig(static_prices={"X": "0"})

    def test_quote_price_must_be_positive(self):
        with pytest.raises(ValidationError):
            Quote(symbol="X", price=Decimal("0"), as_of=datetime.now(timezone.utc))

    def test_positive_price_parses_strings(self):
        assert positive_price("12.50") == Decimal("12.50")
