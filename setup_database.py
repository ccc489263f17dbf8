import sqlite3

SQLITE_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS stocks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        symbol TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        sector TEXT,
        market_cap REAL,
        pe_ratio REAL,
        dividend_yield REAL,
        fifty_two_week_high REAL,
        fifty_two_week_low REAL,
        last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS stock_prices (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
        date DATE NOT NULL,
        open REAL NOT NULL,
        high REAL NOT NULL,
        low REAL NOT NULL,
        close REAL NOT NULL,
        volume INTEGER,
        UNIQUE(stock_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS portfolio_holdings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
        shares REAL NOT NULL,
        average_cost REAL NOT NULL,
        target_price REAL,
        stop_loss REAL,
        notes TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transactions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
        type TEXT NOT NULL,
        shares REAL NOT NULL,
        price REAL NOT NULL,
        fees REAL DEFAULT 0,
        date TIMESTAMP NOT NULL,
        notes TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS watchlist (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
        target_buy_price REAL,
        notes TEXT,
        alert_enabled BOOLEAN DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS trading_rules (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        rule_type TEXT NOT NULL,
        condition TEXT NOT NULL,
        value REAL,
        description TEXT,
        is_active BOOLEAN DEFAULT 1
    )
    """,
]

POSTGRES_SCHEMA = """
CREATE TABLE IF NOT EXISTS stocks (
    id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    symbol TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    sector TEXT,
    market_cap DOUBLE PRECISION,
    pe_ratio DOUBLE PRECISION,
    dividend_yield DOUBLE PRECISION,
    fifty_two_week_high DOUBLE PRECISION,
    fifty_two_week_low DOUBLE PRECISION,
    last_updated TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS stock_prices (
    id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
    date DATE NOT NULL,
    open DOUBLE PRECISION NOT NULL,
    high DOUBLE PRECISION NOT NULL,
    low DOUBLE PRECISION NOT NULL,
    close DOUBLE PRECISION NOT NULL,
    volume BIGINT,
    UNIQUE (stock_id, date)
);

CREATE TABLE IF NOT EXISTS portfolio_holdings (
    id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
    shares DOUBLE PRECISION NOT NULL,
    average_cost DOUBLE PRECISION NOT NULL,
    target_price DOUBLE PRECISION,
    stop_loss DOUBLE PRECISION,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    shares DOUBLE PRECISION NOT NULL,
    price DOUBLE PRECISION NOT NULL,
    fees DOUBLE PRECISION DEFAULT 0,
    date TIMESTAMP NOT NULL,
    notes TEXT
);

CREATE TABLE IF NOT EXISTS watchlist (
    id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    stock_id INTEGER NOT NULL REFERENCES stocks(id) ON DELETE CASCADE,
    target_buy_price DOUBLE PRECISION,
    notes TEXT,
    alert_enabled BOOLEAN DEFAULT FALSE
);

CREATE TABLE IF NOT EXISTS trading_rules (
    id INTEGER GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
    name TEXT NOT NULL,
    rule_type TEXT NOT NULL,
    condition TEXT NOT NULL,
    value DOUBLE PRECISION,
    description TEXT,
    is_active BOOLEAN DEFAULT TRUE
);
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_prices_stock_date ON stock_prices(stock_id, date)",
    "CREATE INDEX IF NOT EXISTS idx_holdings_stock ON portfolio_holdings(stock_id)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_stock ON transactions(stock_id)",
    "CREATE INDEX IF NOT EXISTS idx_transactions_date ON transactions(date)",
    "CREATE INDEX IF NOT EXISTS idx_watchlist_stock ON watchlist(stock_id)",
]


def create_database(db_path='portfolio.db'):
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    for statement in SQLITE_SCHEMA:
        cursor.execute(statement)
    for idx in INDEXES:
        cursor.execute(idx)

    conn.commit()
    conn.close()
    print(f"Database ready: {db_path}")


def create_postgres_schema(postgres_url):
    import psycopg2

    conn = psycopg2.connect(postgres_url)
    cur = conn.cursor()
    cur.execute(POSTGRES_SCHEMA)
    for idx in INDEXES:
        cur.execute(idx)
    conn.commit()
    conn.close()
    print("Postgres schema ready")


if __name__ == "__main__":
    import os
    import sys

    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        create_postgres_schema(database_url)
    else:
        create_database(sys.argv[1] if len(sys.argv) > 1 else os.environ.get("DB_PATH", "portfolio.db"))
