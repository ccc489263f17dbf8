"""
Portfolio storage -- Postgres (Railway) or SQLite (local dev).

One connection per request lives on flask.g; every function here needs an
app context. Rows come back as plain dicts ready for jsonify.
"""
import os
import sqlite3
from datetime import datetime

from flask import g

# ── Database config ────────────────────────────────────────
# If DATABASE_URL is set, use Postgres. Otherwise fall back to SQLite.
DATABASE_URL = os.environ.get("DATABASE_URL")
DB_PATH = os.environ.get("DB_PATH", "portfolio.db")

USE_POSTGRES = DATABASE_URL is not None

if USE_POSTGRES:
    import psycopg2

P = '%s' if USE_POSTGRES else '?'

# Columns each table accepts on insert/update (id is never written here).
TABLE_COLUMNS = {
    "stocks": [
        "symbol", "name", "sector", "market_cap", "pe_ratio", "dividend_yield",
        "fifty_two_week_high", "fifty_two_week_low", "last_updated",
    ],
    "stock_prices": ["stock_id", "date", "open", "high", "low", "close", "volume"],
    "portfolio_holdings": [
        "stock_id", "shares", "average_cost", "target_price", "stop_loss", "notes",
    ],
    "transactions": ["stock_id", "type", "shares", "price", "fees", "date", "notes"],
    "watchlist": ["stock_id", "target_buy_price", "notes", "alert_enabled"],
    "trading_rules": [
        "name", "rule_type", "condition", "value", "description", "is_active",
    ],
}

BOOLEAN_COLUMNS = {"alert_enabled", "is_active"}


# ── Connection helpers ─────────────────────────────────────

def get_db():
    if 'db' not in g:
        if USE_POSTGRES:
            g.db = psycopg2.connect(DATABASE_URL)
        else:
            g.db = sqlite3.connect(DB_PATH)
            g.db.execute("PRAGMA foreign_keys = ON")
    return g.db


def close_db(exc=None):
    db = g.pop('db', None)
    if db:
        db.close()


def _row_to_dict(columns, row):
    d = {}
    for i, col in enumerate(columns):
        val = row[i]
        # Decimal (Postgres NUMERIC) -> float
        if hasattr(val, 'as_tuple'):
            val = float(val)
        elif hasattr(val, 'isoformat'):
            val = val.isoformat()
        if col in BOOLEAN_COLUMNS and val is not None:
            val = bool(val)
        d[col] = val
    return d


def db_execute(query, params=None):
    """Execute a query, returning a list of row dicts."""
    db = get_db()
    cur = db.cursor()
    cur.execute(query, params or ())
    columns = [desc[0] for desc in cur.description] if cur.description else []
    return [_row_to_dict(columns, row) for row in cur.fetchall()]


def db_fetchone(query, params=None):
    """Fetch a single row dict, or None."""
    rows = db_execute(query, params)
    return rows[0] if rows else None


def db_execute_write(query, params=None):
    """Execute a write query (INSERT/UPDATE/DELETE) and commit."""
    db = get_db()
    cur = db.cursor()
    cur.execute(query, params or ())
    db.commit()
    return cur


def _writable(table, fields):
    allowed = TABLE_COLUMNS[table]
    return {k: v for k, v in fields.items() if k in allowed}


def _insert(table, fields):
    data = _writable(table, fields)
    columns = list(data.keys())
    placeholders = ','.join([P] * len(columns))
    query = f"INSERT INTO {table} ({','.join(columns)}) VALUES ({placeholders})"

    db = get_db()
    cur = db.cursor()
    if USE_POSTGRES:
        cur.execute(query + " RETURNING id", list(data.values()))
        new_id = cur.fetchone()[0]
    else:
        cur.execute(query, list(data.values()))
        new_id = cur.lastrowid
    db.commit()
    return _get(table, new_id)


def _update(table, row_id, fields):
    data = _writable(table, fields)
    if data:
        assignments = ','.join(f"{col} = {P}" for col in data)
        db_execute_write(
            f"UPDATE {table} SET {assignments} WHERE id = {P}",
            list(data.values()) + [row_id],
        )
    return _get(table, row_id)


def _get(table, row_id):
    return db_fetchone(f"SELECT * FROM {table} WHERE id = {P}", (row_id,))


def _delete(table, row_id):
    db_execute_write(f"DELETE FROM {table} WHERE id = {P}", (row_id,))


# ── Stocks ─────────────────────────────────────────────────

def get_all_stocks():
    return db_execute("SELECT * FROM stocks ORDER BY symbol")


def get_stock(stock_id):
    return _get("stocks", stock_id)


def get_stock_by_symbol(symbol):
    return db_fetchone(f"SELECT * FROM stocks WHERE symbol = {P}", (symbol.upper(),))


def create_stock(fields):
    data = dict(fields)
    data["symbol"] = data["symbol"].upper()
    data.setdefault("last_updated", datetime.utcnow().isoformat())
    return _insert("stocks", data)


def update_stock(stock_id, fields):
    data = dict(fields, last_updated=datetime.utcnow().isoformat())
    data.pop("symbol", None)
    return _update("stocks", stock_id, data)


def delete_stock(stock_id):
    _delete("stocks", stock_id)


# ── Stock prices ───────────────────────────────────────────

def get_stock_prices(stock_id, limit=365):
    """Most recent `limit` bars, newest first."""
    return db_execute(
        f"SELECT * FROM stock_prices WHERE stock_id = {P} ORDER BY date DESC LIMIT {P}",
        (stock_id, limit),
    )


def get_latest_price(stock_id):
    rows = get_stock_prices(stock_id, 1)
    return rows[0] if rows else None


def get_price_on_or_before(stock_id, day):
    """Bar for `day` (YYYY-MM-DD) or the closest one before it."""
    return db_fetchone(
        f"""SELECT * FROM stock_prices WHERE stock_id = {P} AND date <= {P}
            ORDER BY date DESC LIMIT 1""",
        (stock_id, day),
    )


def create_stock_price(bar):
    return _insert("stock_prices", bar)


def create_stock_prices(bars):
    """
    Bulk insert; bars already stored for the same (stock_id, date) are skipped.
    Returns the number of rows actually inserted.
    """
    if not bars:
        return 0
    columns = TABLE_COLUMNS["stock_prices"]
    placeholders = ','.join([P] * len(columns))
    if USE_POSTGRES:
        query = (f"INSERT INTO stock_prices ({','.join(columns)}) VALUES ({placeholders}) "
                 "ON CONFLICT (stock_id, date) DO NOTHING")
    else:
        query = f"INSERT OR IGNORE INTO stock_prices ({','.join(columns)}) VALUES ({placeholders})"

    db = get_db()
    cur = db.cursor()
    cur.executemany(query, [[bar.get(col) for col in columns] for bar in bars])
    db.commit()
    return cur.rowcount


# ── Portfolio holdings ─────────────────────────────────────

def get_all_holdings():
    return db_execute("SELECT * FROM portfolio_holdings ORDER BY id")


def get_holding(holding_id):
    return _get("portfolio_holdings", holding_id)


def get_holding_by_stock(stock_id):
    return db_fetchone(f"SELECT * FROM portfolio_holdings WHERE stock_id = {P}", (stock_id,))


def create_holding(fields):
    return _insert("portfolio_holdings", fields)


def update_holding(holding_id, fields):
    return _update("portfolio_holdings", holding_id, fields)


def delete_holding(holding_id):
    _delete("portfolio_holdings", holding_id)


# ── Transactions ───────────────────────────────────────────

def get_all_transactions():
    return db_execute("SELECT * FROM transactions ORDER BY date DESC, id DESC")


def get_transaction(transaction_id):
    return _get("transactions", transaction_id)


def get_transactions_by_stock(stock_id):
    return db_execute(
        f"SELECT * FROM transactions WHERE stock_id = {P} ORDER BY date DESC, id DESC",
        (stock_id,),
    )


def create_transaction(fields):
    return _insert("transactions", fields)


# ── Watchlist ──────────────────────────────────────────────

def get_all_watchlist_items():
    return db_execute("SELECT * FROM watchlist ORDER BY id")


def get_watchlist_item(item_id):
    return _get("watchlist", item_id)


def get_watchlist_by_stock(stock_id):
    return db_fetchone(f"SELECT * FROM watchlist WHERE stock_id = {P}", (stock_id,))


def create_watchlist_item(fields):
    return _insert("watchlist", fields)


def update_watchlist_item(item_id, fields):
    return _update("watchlist", item_id, fields)


def delete_watchlist_item(item_id):
    _delete("watchlist", item_id)


# ── Trading rules ──────────────────────────────────────────

def get_all_trading_rules():
    return db_execute("SELECT * FROM trading_rules ORDER BY id")


def get_trading_rule(rule_id):
    return _get("trading_rules", rule_id)


def create_trading_rule(fields):
    return _insert("trading_rules", fields)


def update_trading_rule(rule_id, fields):
    return _update("trading_rules", rule_id, fields)


def delete_trading_rule(rule_id):
    _delete("trading_rules", rule_id)


# ── Stats / maintenance ────────────────────────────────────

def _count(table):
    row = db_fetchone(f"SELECT COUNT(*) AS count FROM {table}")
    return int(row["count"]) if row else 0


def get_stats():
    last = db_fetchone("SELECT MAX(last_updated) AS last_sync FROM stocks")
    return {
        "total_stocks": _count("stocks"),
        "total_price_points": _count("stock_prices"),
        "total_transactions": _count("transactions"),
        "last_sync": last["last_sync"] if last else None,
    }


def clear_all_data():
    for table in ["watchlist", "transactions", "portfolio_holdings",
                  "stock_prices", "trading_rules", "stocks"]:
        db_execute_write(f"DELETE FROM {table}")
