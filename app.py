"""
Investment Tracker -- Flask Backend
Portfolio, watchlist, trading rules and technical analysis over yfinance data.
Supports Postgres (Railway) and SQLite (local dev).
"""
import os
import logging
from datetime import datetime

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import ValidationError

import indicators
import market_data
import portfolio
import schemas
import storage
import sync

HISTORY_LIMIT = int(os.environ.get("HISTORY_LIMIT", 365))

app = Flask(__name__)
CORS(app)
app.teardown_appcontext(storage.close_db)


@app.errorhandler(ValidationError)
def handle_validation_error(e):
    return jsonify({"error": "Invalid request", "details": e.errors(include_url=False, include_context=False)}), 400


def _body(model):
    return model.model_validate(request.get_json(silent=True) or {})


# ── Helpers ────────────────────────────────────────────────

def _current_price(stock, fallback=0):
    """Latest stored close, else a live quote, else `fallback`."""
    latest = storage.get_latest_price(stock["id"])
    if latest:
        return latest["close"]
    quote = market_data.fetch_stock_quote(stock["symbol"])
    if quote:
        return quote["current_price"]
    return fallback


def _valued_holdings():
    stocks = {s["id"]: s for s in storage.get_all_stocks()}
    valued = []
    for holding in storage.get_all_holdings():
        stock = stocks.get(holding["stock_id"])
        if not stock:
            continue
        price = _current_price(stock, fallback=holding["average_cost"])
        valued.append(portfolio.value_holding(holding, stock, price))
    return valued


def _with_stock(rows):
    stocks = {s["id"]: s for s in storage.get_all_stocks()}
    return [dict(r, stock=stocks[r["stock_id"]]) for r in rows if r["stock_id"] in stocks]


# ── Dashboard ──────────────────────────────────────────────

@app.route("/api/health")
def api_health():
    return jsonify({
        "status": "ok",
        "database": "postgres" if storage.USE_POSTGRES else "sqlite",
    })


@app.route("/api/dashboard")
def api_dashboard():
    try:
        holdings = _valued_holdings()
        recent = _with_stock(storage.get_all_transactions()[:5])

        try:
            indices = market_data.fetch_market_indices()
        except Exception as e:
            logging.error(f"Failed to fetch indices: {e}")
            indices = []

        return jsonify({
            **portfolio.summarize_holdings(holdings),
            "day_change": 0,
            "day_change_pct": 0,
            "holdings": sorted(holdings, key=lambda h: h["total_value"], reverse=True),
            "recent_transactions": recent,
            "indices": indices,
        })
    except Exception as e:
        logging.error(f"Dashboard error: {e}")
        return jsonify({"error": "Failed to load dashboard data"}), 500


# ── Stocks ─────────────────────────────────────────────────

@app.route("/api/stocks", methods=["GET"])
def api_stocks():
    return jsonify(storage.get_all_stocks())


@app.route("/api/stocks", methods=["POST"])
def api_stocks_add():
    body = _body(schemas.StockCreate)
    try:
        stock, _ = sync.import_stock(body.symbol)
    except Exception as e:
        logging.error(f"Error adding stock {body.symbol}: {e}")
        return jsonify({"error": "Failed to add stock"}), 500
    if not stock:
        return jsonify({"error": "Stock not found"}), 404
    return jsonify(stock)


@app.route("/api/stocks/refresh", methods=["POST"])
def api_stocks_refresh():
    try:
        updated = sync.refresh_all_stocks()
    except Exception as e:
        logging.error(f"Error refreshing stocks: {e}")
        return jsonify({"error": "Failed to refresh stocks"}), 500
    return jsonify({"success": True, "updated": updated})


@app.route("/api/stocks/<int:stock_id>/price")
def api_stock_price(stock_id):
    """
    Closing price for a stock.
    Query params:
      - date: YYYY-MM-DD; the bar on that day or the closest earlier one.
        Without it: latest stored bar, else a live quote.
    """
    stock = storage.get_stock(stock_id)
    if not stock:
        return jsonify({"error": "Stock not found"}), 404

    day = request.args.get("date")
    if not day:
        latest = storage.get_latest_price(stock_id)
        if latest:
            return jsonify({"date": latest["date"], "close": latest["close"]})
        quote = market_data.fetch_stock_quote(stock["symbol"])
        if quote:
            return jsonify({"date": datetime.utcnow().isoformat(), "close": quote["current_price"]})
        return jsonify({"error": "No price available"}), 404

    try:
        datetime.strptime(day, "%Y-%m-%d")
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    bar = storage.get_price_on_or_before(stock_id, day)
    if bar:
        return jsonify({"date": bar["date"], "close": bar["close"]})
    return jsonify({"error": "No price available for the requested date"}), 404


# ── Portfolio ──────────────────────────────────────────────

@app.route("/api/portfolio")
def api_portfolio():
    try:
        holdings = _valued_holdings()
    except Exception as e:
        logging.error(f"Portfolio error: {e}")
        return jsonify({"error": "Failed to fetch portfolio"}), 500
    return jsonify({"holdings": holdings, **portfolio.summarize_holdings(holdings)})


@app.route("/api/portfolio/<int:holding_id>", methods=["DELETE"])
def api_portfolio_delete(holding_id):
    storage.delete_holding(holding_id)
    return jsonify({"success": True})


# ── Transactions ───────────────────────────────────────────

@app.route("/api/transactions", methods=["GET"])
def api_transactions():
    return jsonify(_with_stock(storage.get_all_transactions()))


@app.route("/api/transactions", methods=["POST"])
def api_transactions_add():
    body = _body(schemas.TransactionCreate)
    if not storage.get_stock(body.stock_id):
        return jsonify({"error": "Stock not found"}), 404

    tx = body.model_dump()
    tx["date"] = body.date.isoformat()
    transaction = storage.create_transaction(tx)

    holding = storage.get_holding_by_stock(body.stock_id)
    action, fields = portfolio.apply_transaction(holding, tx)
    if action == "create":
        storage.create_holding(fields)
    elif action == "update":
        storage.update_holding(holding["id"], fields)
    elif action == "delete":
        storage.delete_holding(holding["id"])

    return jsonify(transaction)


# ── Watchlist ──────────────────────────────────────────────

@app.route("/api/watchlist", methods=["GET"])
def api_watchlist():
    try:
        stocks = {s["id"]: s for s in storage.get_all_stocks()}
        items = []
        for item in storage.get_all_watchlist_items():
            stock = stocks.get(item["stock_id"])
            if not stock:
                continue
            latest = storage.get_latest_price(stock["id"])
            quote = market_data.fetch_stock_quote(stock["symbol"])
            current = (latest["close"] if latest else None) or (quote["current_price"] if quote else 0)
            items.append(dict(item, stock=dict(
                stock,
                current_price=current,
                price_change=quote["price_change"] if quote else 0,
                price_change_pct=quote["price_change_pct"] if quote else 0,
            )))
    except Exception as e:
        logging.error(f"Watchlist error: {e}")
        return jsonify({"error": "Failed to fetch watchlist"}), 500
    return jsonify(items)


@app.route("/api/watchlist", methods=["POST"])
def api_watchlist_add():
    body = _body(schemas.WatchlistCreate)
    if not storage.get_stock(body.stock_id):
        return jsonify({"error": "Stock not found"}), 404
    if storage.get_watchlist_by_stock(body.stock_id):
        return jsonify({"error": "Stock already in watchlist"}), 400

    item = storage.create_watchlist_item(dict(body.model_dump(), alert_enabled=False))
    return jsonify(item)


@app.route("/api/watchlist/<int:item_id>", methods=["PATCH"])
def api_watchlist_update(item_id):
    body = _body(schemas.WatchlistUpdate)
    updated = storage.update_watchlist_item(item_id, body.model_dump(exclude_unset=True))
    if not updated:
        return jsonify({"error": "Watchlist item not found"}), 404
    return jsonify(updated)


@app.route("/api/watchlist/<int:item_id>", methods=["DELETE"])
def api_watchlist_delete(item_id):
    storage.delete_watchlist_item(item_id)
    return jsonify({"success": True})


# ── Analysis ───────────────────────────────────────────────

@app.route("/api/analysis/<symbol>")
def api_analysis(symbol):
    """
    Technical analysis for a symbol, importing it on first request.
    Response: stock (with indicators, signals, score label), chronological
    price bars, and the SMA20/SMA50 series for charting (null where the
    window is not yet full).
    """
    symbol = symbol.strip().upper()
    try:
        stock, quote = sync.import_stock(symbol)
        if not stock:
            return jsonify({"error": "Stock not found"}), 404

        if quote is None:
            quote = market_data.fetch_stock_quote(symbol)
        sync.ensure_price_history(stock)

        # storage returns newest first; indicators want oldest first
        bars = list(reversed(storage.get_stock_prices(stock["id"], HISTORY_LIMIT)))

        snapshot = indicators.compute_indicator_snapshot(bars)
        if quote:
            current_price = quote["current_price"]
        elif bars:
            current_price = bars[-1]["close"]
        else:
            current_price = 0
        signals = indicators.compute_signal(current_price, snapshot)
        chart = indicators.sma_series_for_chart(bars)

        analysis = dict(
            stock,
            current_price=current_price,
            price_change=quote["price_change"] if quote else 0,
            price_change_pct=quote["price_change_pct"] if quote else 0,
            indicators=snapshot,
            signals=signals,
            score_label=portfolio.score_label(signals["overall_score"]),
        )
        return jsonify({
            "stock": analysis,
            "prices": bars,
            "sma20": chart["sma20"],
            "sma50": chart["sma50"],
        })
    except Exception as e:
        logging.error(f"Analysis error for {symbol}: {e}")
        return jsonify({"error": "Failed to analyze stock"}), 500


# ── Market ─────────────────────────────────────────────────

@app.route("/api/market")
def api_market():
    try:
        indices = market_data.fetch_market_indices()
    except Exception as e:
        logging.error(f"Market error: {e}")
        return jsonify({"error": "Failed to fetch market data"}), 500
    return jsonify({
        "indices": indices,
        "last_updated": datetime.utcnow().isoformat(),
        "market_status": market_data.get_market_status(),
    })


# ── Trading rules ──────────────────────────────────────────

@app.route("/api/trading-rules", methods=["GET"])
def api_trading_rules():
    return jsonify(storage.get_all_trading_rules())


@app.route("/api/trading-rules", methods=["POST"])
def api_trading_rules_add():
    body = _body(schemas.TradingRuleCreate)
    return jsonify(storage.create_trading_rule(body.model_dump()))


@app.route("/api/trading-rules/<int:rule_id>", methods=["PATCH"])
def api_trading_rules_update(rule_id):
    body = _body(schemas.TradingRuleUpdate)
    updated = storage.update_trading_rule(rule_id, body.model_dump(exclude_unset=True))
    if not updated:
        return jsonify({"error": "Trading rule not found"}), 404
    return jsonify(updated)


@app.route("/api/trading-rules/<int:rule_id>", methods=["DELETE"])
def api_trading_rules_delete(rule_id):
    storage.delete_trading_rule(rule_id)
    return jsonify({"success": True})


# ── Calculator ─────────────────────────────────────────────

@app.route("/api/calculator/position-size", methods=["POST"])
def api_position_size():
    body = _body(schemas.PositionSizeRequest)
    try:
        result = portfolio.position_size(
            body.portfolio_value, body.risk_percent, body.entry_price, body.stop_loss
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(result)


# ── Settings ───────────────────────────────────────────────

@app.route("/api/stats")
def api_stats():
    return jsonify(storage.get_stats())


@app.route("/api/data/all", methods=["DELETE"])
def api_clear_data():
    storage.clear_all_data()
    return jsonify({"success": True})


# ── Entry point ────────────────────────────────────────────

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    if not storage.USE_POSTGRES:
        import setup_database
        setup_database.create_database(storage.DB_PATH)

    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "false").lower() == "true"
    app.run(host="0.0.0.0", port=port, debug=debug)
