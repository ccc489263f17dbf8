"""
indicators.py -- Technical indicators and the buy/sell score.

Everything here is a pure function over a list of closing prices (oldest
first). Positions without enough history are None, never NaN.
"""
import math


# ── Moving averages ────────────────────────────────────────

def simple_moving_average(prices, window):
    """Mean of the trailing `window` prices at each index; None before that."""
    result = []
    for i in range(len(prices)):
        if i < window - 1:
            result.append(None)
        else:
            result.append(sum(prices[i - window + 1:i + 1]) / window)
    return result


def exponential_moving_average(prices, window):
    """
    EMA seeded with the simple average of the first `window` prices.

    Index window-1 holds the seed; every later value folds the next price
    into the previous EMA with multiplier 2 / (window + 1).
    """
    if len(prices) < window:
        return [None] * len(prices)

    multiplier = 2 / (window + 1)
    previous = sum(prices[:window]) / window
    result = [None] * (window - 1) + [previous]
    for price in prices[window:]:
        previous = (price - previous) * multiplier + previous
        result.append(previous)
    return result


def _last(series):
    return series[-1] if series else None


# ── Oscillators ────────────────────────────────────────────

def relative_strength_index(prices, period=14):
    """
    RSI over the trailing `period` day-over-day changes only (no Wilder
    smoothing). Returns 50 when there are fewer than period + 1 prices and
    100 when the window has no losses.
    """
    if len(prices) < period + 1:
        return 50

    changes = [prices[i] - prices[i - 1] for i in range(1, len(prices))]

    gains = 0
    losses = 0
    for change in changes[-period:]:
        if change > 0:
            gains += change
        else:
            losses += abs(change)

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100

    rs = avg_gain / avg_loss
    return 100 - (100 / (1 + rs))


def macd(prices):
    """
    MACD(12, 26) with a 9-period signal line.

    The signal EMA runs over the MACD values that exist, packed together,
    so its first value lines up with MACD index 8 rather than index 33.
    Missing values fall back to 0.
    """
    ema12 = exponential_moving_average(prices, 12)
    ema26 = exponential_moving_average(prices, 26)

    macd_line = [
        fast - slow
        for fast, slow in zip(ema12, ema26)
        if fast is not None and slow is not None
    ]
    signal_line = exponential_moving_average(macd_line, 9)

    current = _last(macd_line) or 0
    signal = _last(signal_line) or 0
    return {
        "macd": current,
        "signal": signal,
        "histogram": current - signal,
    }


# ── Snapshot ───────────────────────────────────────────────

def _closes(bars):
    return [bar["close"] for bar in bars]


def compute_indicator_snapshot(bars):
    """Latest value of every tracked indicator for bars sorted oldest first."""
    if not bars:
        return {}

    closes = _closes(bars)
    macd_result = macd(closes)
    return {
        "sma20": _last(simple_moving_average(closes, 20)),
        "sma50": _last(simple_moving_average(closes, 50)),
        "sma200": _last(simple_moving_average(closes, 200)),
        "ema12": _last(exponential_moving_average(closes, 12)),
        "ema26": _last(exponential_moving_average(closes, 26)),
        "rsi": relative_strength_index(closes, 14),
        "macd": macd_result["macd"],
        "macd_signal": macd_result["signal"],
        "macd_histogram": macd_result["histogram"],
    }


def sma_series_for_chart(bars):
    closes = _closes(bars)
    return {
        "sma20": simple_moving_average(closes, 20),
        "sma50": simple_moving_average(closes, 50),
    }


# ── Signal scoring ─────────────────────────────────────────
# Each rule returns (label, adjustment) or None when the snapshot lacks the
# inputs it needs. Rules are independent; their adjustments add up.

BASE_SCORE = 50


def _has(snapshot, *keys):
    return all(snapshot.get(key) is not None for key in keys)


def _trend_rule(price, snapshot):
    if not _has(snapshot, "sma20", "sma50", "sma200"):
        return None
    sma20, sma50 = snapshot["sma20"], snapshot["sma50"]
    if price > sma20 and sma20 > sma50:
        return "bullish", 15
    if price < sma20 and sma20 < sma50:
        return "bearish", -15
    return "neutral", 0


def _long_term_rule(price, snapshot):
    if not _has(snapshot, "sma20", "sma50", "sma200"):
        return None
    return None, 10 if price > snapshot["sma200"] else -10


def _rsi_rule(price, snapshot):
    if not _has(snapshot, "rsi"):
        return None
    rsi = snapshot["rsi"]
    if rsi < 30:
        return "oversold", 10
    if rsi > 70:
        return "overbought", -10
    return "neutral", 0


def _macd_rule(price, snapshot):
    if not _has(snapshot, "macd", "macd_signal"):
        return None
    line, signal = snapshot["macd"], snapshot["macd_signal"]
    histogram = snapshot.get("macd_histogram")
    if histogram is None:
        histogram = line - signal
    if line > signal and histogram > 0:
        return "buy", 10
    if line < signal and histogram < 0:
        return "sell", -10
    return "neutral", 0


# (result field the label goes to, rule); a None field only moves the score
SCORE_RULES = [
    ("trend", _trend_rule),
    (None, _long_term_rule),
    ("rsi_signal", _rsi_rule),
    ("macd_signal", _macd_rule),
]


def compute_signal(current_price, snapshot, rules=SCORE_RULES):
    """Trend/RSI/MACD labels plus an integer score clamped to 0-100."""
    result = {
        "trend": "neutral",
        "rsi_signal": "neutral",
        "macd_signal": "neutral",
    }
    score = BASE_SCORE
    for field, rule in rules:
        outcome = rule(current_price, snapshot)
        if outcome is None:
            continue
        label, adjustment = outcome
        if field is not None:
            result[field] = label
        score += adjustment

    score = max(0, min(100, score))
    # round half up
    result["overall_score"] = int(math.floor(score + 0.5))
    return result
