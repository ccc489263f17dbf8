"""Shared fixtures: a throwaway SQLite database and a fake market-data provider."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

import market_data
import setup_database
import storage
from app import app as flask_app


def make_bars(closes, stock_id=1, start=date(2024, 1, 1)):
    """Daily bars (oldest first) with the given closes."""
    return [
        {
            "stock_id": stock_id,
            "date": (start + timedelta(days=i)).isoformat(),
            "open": close,
            "high": close + 1,
            "low": close - 1,
            "close": close,
            "volume": 1000 + i,
        }
        for i, close in enumerate(closes)
    ]


class FakeMarket:
    """Stands in for market_data's provider calls; records what was asked."""

    def __init__(self) -> None:
        self.quotes: dict[str, dict] = {}
        self.history: dict[str, list[float]] = {}
        self.quote_calls: list[str] = []
        self.history_calls: list[tuple[str, str]] = []

    def add(self, symbol, price, closes=None, change=1.5, change_pct=0.75):
        self.quotes[symbol] = {
            "stock": {
                "symbol": symbol,
                "name": f"{symbol} Inc.",
                "sector": "Technology",
                "market_cap": 1e12,
                "pe_ratio": 25.0,
                "dividend_yield": 0.005,
                "fifty_two_week_high": price * 1.2,
                "fifty_two_week_low": price * 0.8,
            },
            "current_price": price,
            "price_change": change,
            "price_change_pct": change_pct,
        }
        self.history[symbol] = list(closes or [])

    def fetch_stock_quote(self, symbol):
        self.quote_calls.append(symbol)
        return self.quotes.get(symbol.upper())

    def fetch_historical_prices(self, symbol, stock_id, period="1y"):
        self.history_calls.append((symbol, period))
        return make_bars(self.history.get(symbol.upper(), []), stock_id=stock_id)

    def fetch_market_indices(self):
        return [
            dict(index, value=100.0, change=1.0, change_pct=1.0, previous_close=99.0)
            for index in market_data.MARKET_INDICES
        ]


@pytest.fixture()
def db_path(tmp_path, monkeypatch) -> str:
    path = str(tmp_path / "portfolio.db")
    setup_database.create_database(path)
    monkeypatch.setattr(storage, "DB_PATH", path)
    return path


@pytest.fixture()
def app_ctx(db_path):
    with flask_app.app_context():
        yield flask_app


@pytest.fixture()
def client(db_path):
    flask_app.config["TESTING"] = True
    with flask_app.test_client() as c:
        yield c


@pytest.fixture()
def fake_market(monkeypatch) -> FakeMarket:
    fake = FakeMarket()
    monkeypatch.setattr(market_data, "fetch_stock_quote", fake.fetch_stock_quote)
    monkeypatch.setattr(market_data, "fetch_historical_prices", fake.fetch_historical_prices)
    monkeypatch.setattr(market_data, "fetch_market_indices", fake.fetch_market_indices)
    return fake
