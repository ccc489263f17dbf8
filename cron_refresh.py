#!/usr/bin/env python3
"""
cron_refresh.py — Triggered by Railway cron to refresh quotes and daily bars.

Uses Postgres if DATABASE_URL is set, otherwise SQLite.

Railway cron setup:
  - Schedule: 30 21 * * 1-5   (weekdays, after the US close)
  - Command:  python cron_refresh.py
"""
import os
import sys
from datetime import datetime

import storage
import sync
from app import app

REFRESH_DELAY = float(os.environ.get("REFRESH_DELAY", "1.0"))


def main():
    db_type = "Postgres" if storage.USE_POSTGRES else f"SQLite ({storage.DB_PATH})"
    print(f"{'='*60}")
    print(f"  Portfolio Data Refresh — {datetime.now().isoformat()}")
    print(f"  Database: {db_type}")
    print(f"{'='*60}")

    with app.app_context():
        stocks = storage.get_all_stocks()
        if not stocks:
            print("ERROR: No stocks found!")
            sys.exit(1)

        print(f"Found {len(stocks)} stocks to refresh")
        start = datetime.now()
        updated = sync.refresh_all_stocks(delay=REFRESH_DELAY)
        duration = datetime.now() - start

        stats = storage.get_stats()

    print(f"Refreshed {updated} stocks in {duration}")
    print(f"  {stats['total_price_points']} price points stored")

    print(f"\n{'='*60}")
    print(f"  COMPLETE — {datetime.now().isoformat()}")
    print(f"{'='*60}")


if __name__ == "__main__":
    main()
