"""Zip export bundling the spreadsheet with receipt files.

Layout::

    Expenses_{CCY}_{YYYY-MM-DD}.xlsx
    receipts/Receipt_{NN}_{TYPE}_{YYYY-MM-DD}.{ext}

Receipts follow the spreadsheet's date order. `NN` counts successfully fetched
receipts only, so numbering has no gaps when a fetch fails. A failed or slow
fetch skips that receipt and never fails the archive.
"""

from __future__ import annotations

import logging
import threading
import zipfile
from time import monotonic
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import date, datetime, time
from io import BytesIO
from typing import List, Mapping, Optional, Sequence

from expensehub.models.expense import ExpenseLineIn
from expensehub.services.receipts import FetchedReceipt, ReceiptFetcher, extension_for
from expensehub.services.spreadsheet import ExportLine, build_spreadsheet, flatten_expenses

logger = logging.getLogger("expensehub.export")

RECEIPTS_DIR = "receipts"


def spreadsheet_filename(target_currency: str, export_date: date) -> str:
    return f"Expenses_{target_currency.upper()}_{export_date.isoformat()}.xlsx"


def archive_filename(target_currency: str, export_date: date) -> str:
    return f"Expenses_{target_currency.upper()}_{export_date.isoformat()}.zip"


def receipt_filename(index: int, line: ExpenseLineIn, extension: str) -> str:
    return f"Receipt_{index:02d}_{line.type}_{line.date.isoformat()}.{extension}"


class _Attempt:
    """One submitted fetch; its timeout window opens when a worker runs it."""

    def __init__(self) -> None:
        self.started = threading.Event()
        self.started_at = 0.0

    def run(self, fetcher: ReceiptFetcher, receipt_id: str) -> FetchedReceipt:
        self.started_at = monotonic()
        self.started.set()
        return fetcher.fetch(receipt_id)

    def remaining(self, timeout: Optional[float]) -> Optional[float]:
        # Queued behind busy workers: the window has not opened yet.
        self.started.wait()
        if timeout is None:
            return None
        return max(0.0, self.started_at + timeout - monotonic())


def fetch_receipts(
    lines: Sequence[ExportLine],
    fetcher: ReceiptFetcher,
    *,
    max_workers: int = 4,
    timeout: Optional[float] = None,
) -> List[Optional[FetchedReceipt]]:
    """Fetch receipts concurrently; result i belongs to lines[i], None on failure.

    `timeout` bounds each fetch from the moment a worker picks it up, so a
    receipt queued behind slow fetches is still attempted. Fetchers enforce
    their own transport timeout, which bounds how long a worker stays busy.
    """
    if not lines:
        return []
    pool = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        attempts = [_Attempt() for _ in lines]
        futures = [
            pool.submit(attempt.run, fetcher, e.line.receipt_id)
            for attempt, e in zip(attempts, lines)
        ]
        results: List[Optional[FetchedReceipt]] = []
        for export_line, attempt, future in zip(lines, attempts, futures):
            try:
                results.append(future.result(timeout=attempt.remaining(timeout)))
            except FutureTimeout:
                logger.warning(
                    "receipt fetch timed out for %s (report %s)",
                    export_line.line.receipt_id,
                    export_line.report_id,
                    extra={"receipt_id": export_line.line.receipt_id},
                )
                results.append(None)
            except Exception as e:
                logger.warning(
                    "receipt fetch failed for %s (report %s): %s",
                    export_line.line.receipt_id,
                    export_line.report_id,
                    e,
                    extra={"receipt_id": export_line.line.receipt_id},
                )
                results.append(None)
        return results
    finally:
        # Do not block on fetches that already timed out.
        pool.shutdown(wait=False, cancel_futures=True)


def _add_entry(
    zf: zipfile.ZipFile, name: str, data: bytes, stamp: datetime, level: int
) -> None:
    info = zipfile.ZipInfo(name, date_time=stamp.timetuple()[:6])
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    zf.writestr(info, data, compress_type=zipfile.ZIP_DEFLATED, compresslevel=level)


def build_archive(
    report_ids: Sequence[str],
    target_currency: str,
    expenses_by_report: Mapping[str, Sequence[ExpenseLineIn]],
    receipt_fetcher: ReceiptFetcher,
    *,
    rates: Mapping[str, float],
    rate_timestamp: Optional[datetime],
    company: str,
    date_format: str = "%m/%d/%Y",
    export_date: Optional[date] = None,
    compression_level: int = 6,
    max_workers: int = 4,
    fetch_timeout: Optional[float] = None,
) -> bytes:
    export_date = export_date or date.today()
    stamp = datetime.combine(export_date, time())
    sheet = build_spreadsheet(
        report_ids,
        target_currency,
        expenses_by_report,
        rates,
        rate_timestamp,
        company=company,
        date_format=date_format,
        generated_at=stamp,
    )

    with_receipts = [
        e for e in flatten_expenses(report_ids, expenses_by_report) if e.line.receipt_id
    ]
    fetched = fetch_receipts(
        with_receipts, receipt_fetcher, max_workers=max_workers, timeout=fetch_timeout
    )

    buf = BytesIO()
    added = 0
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        _add_entry(
            zf, spreadsheet_filename(target_currency, export_date), sheet, stamp, compression_level
        )
        for export_line, receipt in zip(with_receipts, fetched):
            if receipt is None:
                continue
            added += 1
            name = receipt_filename(
                added, export_line.line, extension_for(receipt.content_type)
            )
            _add_entry(
                zf, f"{RECEIPTS_DIR}/{name}", receipt.content, stamp, compression_level
            )

    skipped = len(with_receipts) - added
    fields = {
        "export_kind": "archive",
        "report_count": len(report_ids),
        "receipts_bundled": added,
        "receipts_skipped": skipped,
    }
    if skipped:
        logger.warning(
            "archive export: %d of %d receipts skipped", skipped, len(with_receipts),
            extra=fields,
        )
    logger.info("archive export: %d receipts bundled", added, extra=fields)
    return buf.getvalue()
