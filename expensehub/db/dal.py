"""Data Access Layer for reports, expense lines and stored exchange rates.

Responsibilities
----------------
- CRUD helpers for reports and their expense lines.
- Hand the export pipeline an ordered snapshot of lines per report.
- Persist the rate table (units per 1 EUR) and its last-updated marker.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from expensehub.core.errors import ReportNotFoundError
from expensehub.models import ExpenseLine, ExpenseLineIn, ReportIn, RateTable

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"
RATES_UPDATED_KEY = "rates_last_updated"
RATES_SOURCE_KEY = "rates_source"

_LINE_COLUMNS = (
    "date",
    "type",
    "description",
    "amount",
    "currency",
    "receipt_id",
    "metadata",
)


def _new_id() -> str:
    return uuid.uuid4().hex


def _dump_metadata(metadata: Any) -> Optional[str]:
    if metadata is None:
        return None
    if isinstance(metadata, str):
        return metadata
    return json.dumps(metadata, ensure_ascii=False)


def _load_metadata(text: Optional[str]) -> Any:
    if text is None:
        return None
    try:
        return json.loads(text)
    except ValueError:
        # Legacy free text; the normalizer treats it as absent.
        return text


def row_to_expense_line(row: Mapping[str, Any]) -> ExpenseLine:
    return ExpenseLine(
        id=row["id"],
        report_id=row["report_id"],
        date=row["date"],
        type=row["type"],
        description=row["description"],
        amount=row["amount"],
        currency=row["currency"],
        receipt_id=row["receipt_id"],
        metadata=_load_metadata(row["metadata"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class Database:
    def __init__(self, db_path: Path):
        self.db_path = db_path

    # ------------------------------------------------------------------
    # Connection helpers
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _require_report(self, cur: sqlite3.Cursor, report_id: str) -> None:
        cur.execute("SELECT 1 FROM reports WHERE id = ?", (report_id,))
        if cur.fetchone() is None:
            raise ReportNotFoundError(report_id)

    # ------------------------------------------------------------------
    # Reports
    def create_report(self, report: ReportIn) -> str:
        report_id = _new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO reports (id, title, month, year, description)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    report_id,
                    report.title,
                    report.month,
                    report.year,
                    report.description,
                ),
            )
        return report_id

    _REPORT_SELECT = """
        SELECT r.*,
               COUNT(l.id) AS line_count,
               COALESCE(SUM(l.amount), 0) AS total_amount
        FROM reports r
        LEFT JOIN expense_lines l ON l.report_id = r.id
    """

    def get_report(self, report_id: str) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                self._REPORT_SELECT + " WHERE r.id = ? GROUP BY r.id", (report_id,)
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def list_reports(
        self, year: Optional[int] = None, month: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        clauses: List[str] = []
        params: List[Any] = []
        if year is not None:
            clauses.append("r.year = ?")
            params.append(year)
        if month is not None:
            clauses.append("r.month = ?")
            params.append(month)
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        sql = (
            self._REPORT_SELECT
            + where
            + " GROUP BY r.id ORDER BY r.year DESC, r.month DESC, r.created_at DESC"
        )
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            return [dict(r) for r in cur.fetchall()]

    def update_report_status(self, report_id: str, status: str) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"UPDATE reports SET status = ?, updated_at = ({UTC_NOW_SQL}) WHERE id = ?",
                (status, report_id),
            )
            if cur.rowcount == 0:
                raise ReportNotFoundError(report_id)

    def delete_report(self, report_id: str) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("DELETE FROM reports WHERE id = ?", (report_id,))
            if cur.rowcount == 0:
                raise ReportNotFoundError(report_id)

    # ------------------------------------------------------------------
    # Expense lines
    def add_expense_line(self, report_id: str, line: ExpenseLineIn) -> str:
        line_id = _new_id()
        with self._connect() as conn:
            cur = conn.cursor()
            self._require_report(cur, report_id)
            cur.execute(
                """
                INSERT INTO expense_lines
                    (id, report_id, date, type, description, amount, currency, receipt_id, metadata)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    line_id,
                    report_id,
                    line.date.isoformat(),
                    line.type,
                    line.description,
                    line.amount,
                    line.currency,
                    line.receipt_id,
                    _dump_metadata(line.metadata),
                ),
            )
            cur.execute(
                f"UPDATE reports SET updated_at = ({UTC_NOW_SQL}) WHERE id = ?",
                (report_id,),
            )
        return line_id

    def get_expense_line(
        self, report_id: str, line_id: str
    ) -> Optional[ExpenseLine]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM expense_lines WHERE id = ? AND report_id = ?",
                (line_id, report_id),
            )
            row = cur.fetchone()
            return row_to_expense_line(row) if row else None

    def list_expense_lines(self, report_id: str) -> List[ExpenseLine]:
        """Lines of one report in insertion order."""
        with self._connect() as conn:
            cur = conn.cursor()
            self._require_report(cur, report_id)
            cur.execute(
                "SELECT * FROM expense_lines WHERE report_id = ? ORDER BY rowid",
                (report_id,),
            )
            return [row_to_expense_line(r) for r in cur.fetchall()]

    def update_expense_line(
        self, report_id: str, line_id: str, changes: Mapping[str, Any]
    ) -> None:
        assignments: List[str] = []
        params: List[Any] = []
        for column in _LINE_COLUMNS:
            if column not in changes:
                continue
            value = changes[column]
            if column == "metadata":
                value = _dump_metadata(value)
            elif column == "date" and value is not None:
                value = value.isoformat()
            assignments.append(f"{column} = ?")
            params.append(value)
        if not assignments:
            return
        assignments.append(f"updated_at = ({UTC_NOW_SQL})")
        params += [line_id, report_id]
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"UPDATE expense_lines SET {', '.join(assignments)} WHERE id = ? AND report_id = ?",
                params,
            )
            if cur.rowcount == 0:
                raise ValueError("expense line not found")

    def delete_expense_line(self, report_id: str, line_id: str) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "DELETE FROM expense_lines WHERE id = ? AND report_id = ?",
                (line_id, report_id),
            )
            if cur.rowcount == 0:
                raise ValueError("expense line not found")

    def expenses_by_report(
        self, report_ids: Iterable[str]
    ) -> Dict[str, List[ExpenseLine]]:
        """Snapshot of lines per requested report; unknown ids raise."""
        return {rid: self.list_expense_lines(rid) for rid in report_ids}

    def list_lines_of_types(self, types: Iterable[str]) -> List[ExpenseLine]:
        wanted = sorted(set(types))
        if not wanted:
            return []
        placeholders = ",".join("?" for _ in wanted)
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"SELECT * FROM expense_lines WHERE type IN ({placeholders}) ORDER BY rowid",
                wanted,
            )
            return [row_to_expense_line(r) for r in cur.fetchall()]

    # ------------------------------------------------------------------
    # Exchange rates
    def _set_metadata_value(self, cur: sqlite3.Cursor, key: str, value: str) -> None:
        cur.execute(
            f"""
            INSERT INTO metadata (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                updated_at = ({UTC_NOW_SQL})
            """,
            (key, value),
        )

    def get_rates(self) -> Tuple[Dict[str, float], Optional[str], Optional[str]]:
        """Return (rates, last_updated ISO text or None, source or None)."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute("SELECT currency, rate FROM exchange_rates ORDER BY currency")
            rates = {r["currency"]: float(r["rate"]) for r in cur.fetchall()}
            cur.execute(
                "SELECT key, value FROM metadata WHERE key IN (?, ?)",
                (RATES_UPDATED_KEY, RATES_SOURCE_KEY),
            )
            meta = {r["key"]: r["value"] for r in cur.fetchall()}
        return rates, meta.get(RATES_UPDATED_KEY), meta.get(RATES_SOURCE_KEY)

    def store_rates(self, table: RateTable) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            for currency, rate in table.rates.items():
                cur.execute(
                    f"""
                    INSERT INTO exchange_rates (currency, rate) VALUES (?, ?)
                    ON CONFLICT(currency) DO UPDATE SET rate = excluded.rate,
                        updated_at = ({UTC_NOW_SQL})
                    """,
                    (currency, rate),
                )
            if table.last_updated is not None:
                self._set_metadata_value(
                    cur, RATES_UPDATED_KEY, table.last_updated.isoformat()
                )
            self._set_metadata_value(cur, RATES_SOURCE_KEY, table.source)
