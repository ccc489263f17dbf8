"""Tests for the SQLite-backed storage layer."""

from __future__ import annotations

import pytest

import storage
from conftest import make_bars

pytestmark = pytest.mark.usefixtures("app_ctx")


def _stock(symbol="aapl"):
    return storage.create_stock({"symbol": symbol, "name": f"{symbol.upper()} Inc."})


class TestStocks:
    def test_create_uppercases_symbol(self) -> None:
        stock = _stock("msft")
        assert stock["id"] is not None
        assert stock["symbol"] == "MSFT"
        assert stock["last_updated"] is not None

    def test_lookup_by_symbol_ignores_case(self) -> None:
        stock = _stock()
        assert storage.get_stock_by_symbol("aApL")["id"] == stock["id"]
        assert storage.get_stock_by_symbol("NOPE") is None

    def test_update_ignores_unknown_columns(self) -> None:
        stock = _stock()
        updated = storage.update_stock(stock["id"], {"pe_ratio": 31.5, "bogus": 1, "symbol": "X"})
        assert updated["pe_ratio"] == 31.5
        assert updated["symbol"] == "AAPL"
        assert "bogus" not in updated

    def test_update_missing_row(self) -> None:
        assert storage.update_stock(999, {"name": "Ghost"}) is None

    def test_delete_cascades_to_prices(self) -> None:
        stock = _stock()
        storage.create_stock_prices(make_bars([1.0, 2.0], stock_id=stock["id"]))
        storage.delete_stock(stock["id"])
        assert storage.get_stock(stock["id"]) is None
        assert storage.get_stock_prices(stock["id"]) == []


class TestStockPrices:
    def test_newest_first_with_limit(self) -> None:
        stock = _stock()
        storage.create_stock_prices(make_bars([10.0, 11.0, 12.0, 13.0], stock_id=stock["id"]))
        prices = storage.get_stock_prices(stock["id"], limit=2)
        assert [p["close"] for p in prices] == [13.0, 12.0]
        assert prices[0]["date"] == "2024-01-04"

    def test_duplicate_dates_are_skipped(self) -> None:
        stock = _stock()
        bars = make_bars([10.0, 11.0], stock_id=stock["id"])
        assert storage.create_stock_prices(bars) == 2
        assert storage.create_stock_prices([dict(bars[1], close=99.0)]) == 0
        prices = storage.get_stock_prices(stock["id"])
        assert len(prices) == 2
        assert prices[0]["close"] == 11.0

    def test_bulk_insert_counts_only_new_rows(self) -> None:
        stock = _stock()
        storage.create_stock_prices(make_bars([10.0], stock_id=stock["id"]))
        assert storage.create_stock_prices(make_bars([10.0, 11.0, 12.0], stock_id=stock["id"])) == 2
        assert len(storage.get_stock_prices(stock["id"])) == 3

    def test_latest_price(self) -> None:
        stock = _stock()
        assert storage.get_latest_price(stock["id"]) is None
        storage.create_stock_prices(make_bars([10.0, 11.0], stock_id=stock["id"]))
        assert storage.get_latest_price(stock["id"])["close"] == 11.0

    def test_price_on_or_before(self) -> None:
        stock = _stock()
        bars = make_bars([10.0, 11.0, 12.0], stock_id=stock["id"])
        storage.create_stock_prices([bars[0], bars[2]])  # gap on 2024-01-02
        assert storage.get_price_on_or_before(stock["id"], "2024-01-03")["close"] == 12.0
        assert storage.get_price_on_or_before(stock["id"], "2024-01-02")["close"] == 10.0
        assert storage.get_price_on_or_before(stock["id"], "2023-12-31") is None

    def test_empty_bulk_insert(self) -> None:
        assert storage.create_stock_prices([]) == 0


class TestHoldingsAndTransactions:
    def test_holding_crud(self) -> None:
        stock = _stock()
        holding = storage.create_holding({"stock_id": stock["id"], "shares": 5, "average_cost": 10})
        assert storage.get_holding_by_stock(stock["id"])["id"] == holding["id"]

        updated = storage.update_holding(holding["id"], {"shares": 8})
        assert updated["shares"] == 8
        assert updated["average_cost"] == 10

        storage.delete_holding(holding["id"])
        assert storage.get_holding(holding["id"]) is None
        assert storage.get_all_holdings() == []

    def test_transactions_newest_first(self) -> None:
        stock = _stock()
        for day in ["2024-01-05", "2024-03-01", "2024-02-10"]:
            storage.create_transaction({
                "stock_id": stock["id"], "type": "buy", "shares": 1, "price": 10, "date": day,
            })
        dates = [tx["date"] for tx in storage.get_all_transactions()]
        assert dates == ["2024-03-01", "2024-02-10", "2024-01-05"]
        assert len(storage.get_transactions_by_stock(stock["id"])) == 3
        assert storage.get_all_transactions()[0]["fees"] == 0


class TestWatchlistAndRules:
    def test_watchlist_booleans(self) -> None:
        stock = _stock()
        item = storage.create_watchlist_item({"stock_id": stock["id"], "alert_enabled": False})
        assert item["alert_enabled"] is False

        updated = storage.update_watchlist_item(item["id"], {"alert_enabled": True})
        assert updated["alert_enabled"] is True
        assert storage.get_watchlist_by_stock(stock["id"])["id"] == item["id"]

    def test_rule_defaults(self) -> None:
        rule = storage.create_trading_rule({
            "name": "Stop loss", "rule_type": "exit", "condition": "price < stop_loss",
        })
        assert rule["is_active"] is True
        storage.update_trading_rule(rule["id"], {"is_active": False})
        assert storage.get_trading_rule(rule["id"])["is_active"] is False
        storage.delete_trading_rule(rule["id"])
        assert storage.get_all_trading_rules() == []


class TestStats:
    def test_counts_and_clear(self) -> None:
        assert storage.get_stats() == {
            "total_stocks": 0,
            "total_price_points": 0,
            "total_transactions": 0,
            "last_sync": None,
        }

        stock = _stock()
        storage.create_stock_prices(make_bars([1.0, 2.0, 3.0], stock_id=stock["id"]))
        storage.create_transaction({
            "stock_id": stock["id"], "type": "buy", "shares": 1, "price": 1, "date": "2024-01-01",
        })
        stats = storage.get_stats()
        assert stats["total_stocks"] == 1
        assert stats["total_price_points"] == 3
        assert stats["total_transactions"] == 1
        assert stats["last_sync"] == stock["last_updated"]

        storage.clear_all_data()
        assert storage.get_stats()["total_stocks"] == 0
        assert storage.get_stats()["total_price_points"] == 0
