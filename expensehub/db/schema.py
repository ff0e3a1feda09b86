"""Database schema DDL definitions and initialization utilities.

Tables:
  - reports: monthly expense reports
  - expense_lines: typed expense lines (metadata kept as JSON text)
  - exchange_rates: last stored rate table (units per 1 EUR)
  - metadata: key/value store (schema version, rates last-updated marker)
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"

REPORTS_DDL = f"""
CREATE TABLE IF NOT EXISTS reports (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
    year INTEGER NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'draft' CHECK (status IN ('draft','submitted','approved')),
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

EXPENSE_LINES_DDL = f"""
CREATE TABLE IF NOT EXISTS expense_lines (
    id TEXT PRIMARY KEY,
    report_id TEXT NOT NULL,
    date TEXT NOT NULL, -- ISO date (YYYY-MM-DD)
    type TEXT NOT NULL,
    description TEXT NOT NULL,
    amount REAL NOT NULL CHECK (amount > 0),
    currency TEXT NOT NULL DEFAULT 'EUR',
    receipt_id TEXT,
    metadata TEXT, -- JSON
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    FOREIGN KEY (report_id) REFERENCES reports(id) ON DELETE CASCADE
);
"""

EXCHANGE_RATES_DDL = f"""
CREATE TABLE IF NOT EXISTS exchange_rates (
    currency TEXT PRIMARY KEY,
    rate REAL NOT NULL CHECK (rate > 0),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

METADATA_DDL = f"""
CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW})
);
"""

EXPENSE_LINES_REPORT_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_expense_lines_report ON expense_lines(report_id, date);"
)
REPORTS_PERIOD_INDEX_DDL = (
    "CREATE INDEX IF NOT EXISTS idx_reports_period ON reports(year, month);"
)

DDL_ORDER: Sequence[str] = (
    REPORTS_DDL,
    EXPENSE_LINES_DDL,
    EXCHANGE_RATES_DDL,
    METADATA_DDL,
    EXPENSE_LINES_REPORT_INDEX_DDL,
    REPORTS_PERIOD_INDEX_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
