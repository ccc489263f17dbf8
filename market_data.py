"""
market_data.py -- Quotes, daily history and index levels from yfinance.

Provider failures are logged and turned into None / [] / zeros so callers
can fall back to stored data.
"""
import logging
import math
from datetime import datetime
from zoneinfo import ZoneInfo

import yfinance as yf

HISTORY_PERIODS = ("1mo", "3mo", "6mo", "1y", "2y")

MARKET_INDICES = [
    {"symbol": "^GSPC", "name": "S&P 500"},
    {"symbol": "^IXIC", "name": "NASDAQ Composite"},
    {"symbol": "^DJI", "name": "Dow Jones Industrial Average"},
    {"symbol": "^RUT", "name": "Russell 2000"},
    {"symbol": "^VIX", "name": "CBOE Volatility Index"},
    {"symbol": "^TNX", "name": "10-Year Treasury Yield"},
]

NEW_YORK = ZoneInfo("America/New_York")


def _number(value):
    """Float, or None for missing/NaN provider values."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(value) else value


def fetch_stock_quote(symbol):
    """Fetch a quote plus stock metadata. Returns dict or None."""
    try:
        info = yf.Ticker(symbol).info or {}
    except Exception as e:
        logging.warning(f"yfinance quote failed for {symbol}: {e}")
        return None

    current_price = _number(info.get("regularMarketPrice") or info.get("currentPrice"))
    if not current_price:
        return None

    stock = {
        "symbol": (info.get("symbol") or symbol).upper(),
        "name": info.get("shortName") or info.get("longName") or symbol.upper(),
        "sector": info.get("sector"),
        "market_cap": _number(info.get("marketCap")),
        "pe_ratio": _number(info.get("trailingPE")),
        "dividend_yield": _number(info.get("dividendYield")),
        "fifty_two_week_high": _number(info.get("fiftyTwoWeekHigh")),
        "fifty_two_week_low": _number(info.get("fiftyTwoWeekLow")),
    }
    return {
        "stock": stock,
        "current_price": current_price,
        "price_change": _number(info.get("regularMarketChange")) or 0,
        "price_change_pct": _number(info.get("regularMarketChangePercent")) or 0,
    }


def fetch_historical_prices(symbol, stock_id, period="1y"):
    """Daily OHLCV bars for `period`, oldest first, shaped for stock_prices."""
    if period not in HISTORY_PERIODS:
        raise ValueError(f"Invalid period. Use: {', '.join(HISTORY_PERIODS)}")

    try:
        hist = yf.Ticker(symbol).history(period=period, interval="1d")
    except Exception as e:
        logging.warning(f"yfinance history failed for {symbol}/{period}: {e}")
        return []

    if hist is None or hist.empty:
        return []

    prices = []
    for idx, row in hist.iterrows():
        ohlc = [_number(row.get(col)) for col in ("Open", "High", "Low", "Close")]
        if any(v is None for v in ohlc):
            continue
        volume = _number(row.get("Volume"))
        prices.append({
            "stock_id": stock_id,
            "date": idx.date().isoformat() if hasattr(idx, "date") else str(idx)[:10],
            "open": ohlc[0],
            "high": ohlc[1],
            "low": ohlc[2],
            "close": ohlc[3],
            "volume": int(volume) if volume else None,
        })
    return prices


def fetch_market_indices():
    """Current level of each tracked index; a failed lookup reports zeros."""
    results = []
    for index in MARKET_INDICES:
        entry = dict(index, value=0, change=0, change_pct=0, previous_close=0)
        try:
            info = yf.Ticker(index["symbol"]).info or {}
            entry.update(
                value=_number(info.get("regularMarketPrice")) or 0,
                change=_number(info.get("regularMarketChange")) or 0,
                change_pct=_number(info.get("regularMarketChangePercent")) or 0,
                previous_close=_number(info.get("regularMarketPreviousClose")) or 0,
            )
        except Exception as e:
            logging.error(f"Error fetching index {index['symbol']}: {e}")
        results.append(entry)
    return results


def get_market_status(now=None):
    """'open', 'closed', 'pre-market' or 'after-hours' for US equities."""
    if now is None:
        now = datetime.now(NEW_YORK)
    elif now.tzinfo is not None:
        now = now.astimezone(NEW_YORK)

    if now.weekday() >= 5:
        return "closed"

    minutes = now.hour * 60 + now.minute
    if 240 <= minutes < 570:
        return "pre-market"
    if 570 <= minutes < 960:
        return "open"
    if 960 <= minutes < 1200:
        return "after-hours"
    return "closed"
