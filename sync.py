"""
sync.py -- Pull stocks and daily bars from the provider into storage.

Used by the API (import on first lookup, manual refresh) and by
cron_refresh.py. Needs an app context like the rest of storage.
"""
import logging
import time

import market_data
import storage


def import_stock(symbol):
    """
    Return (stock, quote) for `symbol`, creating the stock with a year of bars
    if it is new. quote is the one fetched for the import, None when the stock
    was already stored. (None, None) when the provider does not know `symbol`.
    """
    existing = storage.get_stock_by_symbol(symbol)
    if existing:
        return existing, None

    quote = market_data.fetch_stock_quote(symbol)
    if not quote:
        return None, None

    stock = storage.create_stock(quote["stock"])
    prices = market_data.fetch_historical_prices(stock["symbol"], stock["id"], "1y")
    storage.create_stock_prices(prices)
    logging.info(f"Imported {stock['symbol']} with {len(prices)} bars")
    return stock, quote


def ensure_price_history(stock):
    """Fetch a year of bars for a stock that has none stored. Returns new bars stored."""
    if storage.get_latest_price(stock["id"]):
        return 0
    prices = market_data.fetch_historical_prices(stock["symbol"], stock["id"], "1y")
    return storage.create_stock_prices(prices)


def refresh_stock(stock, period="1mo"):
    quote = market_data.fetch_stock_quote(stock["symbol"])
    if not quote:
        logging.warning(f"No quote for {stock['symbol']}, skipping refresh")
        return False
    storage.update_stock(stock["id"], quote["stock"])
    prices = market_data.fetch_historical_prices(stock["symbol"], stock["id"], period)
    storage.create_stock_prices(prices)
    return True


def refresh_all_stocks(delay=0):
    """Re-quote every stock and store its latest month of bars."""
    stocks = storage.get_all_stocks()
    for i, stock in enumerate(stocks):
        if i and delay:
            time.sleep(delay)
        refresh_stock(stock)
    return len(stocks)
