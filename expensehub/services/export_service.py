"""Caller-facing export operations.

Loads the report snapshot and current rate table, then hands everything to the
pure builders. Unknown reports surface as ReportNotFoundError; anything that
prevents producing the document becomes a single ExportError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Sequence

from expensehub.core.errors import ExportError
from expensehub.db.dal import Database
from .archive import archive_filename, build_archive, spreadsheet_filename
from .rate_service import RateService
from .receipts import ReceiptFetcher
from .spreadsheet import build_spreadsheet


XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
ZIP_MEDIA_TYPE = "application/zip"


@dataclass(frozen=True)
class ExportFile:
    filename: str
    media_type: str
    content: bytes


@dataclass(frozen=True)
class ExportOptions:
    company: str = "Expert.AI"
    date_format: str = "%m/%d/%Y"
    compression_level: int = 6
    receipt_workers: int = 4
    receipt_timeout: Optional[float] = 10.0


class ExportService:
    def __init__(
        self,
        db: Database,
        rate_service: RateService,
        receipt_fetcher: ReceiptFetcher,
        options: ExportOptions = ExportOptions(),
    ):
        self._db = db
        self._rates = rate_service
        self._fetcher = receipt_fetcher
        self._options = options

    def export_spreadsheet(
        self,
        report_ids: Sequence[str],
        target_currency: str,
        today: Optional[date] = None,
    ) -> ExportFile:
        today = today or date.today()
        expenses = self._db.expenses_by_report(report_ids)
        table = self._rates.current()
        try:
            content = build_spreadsheet(
                report_ids,
                target_currency,
                expenses,
                table.rates,
                table.last_updated,
                company=self._options.company,
                date_format=self._options.date_format,
                generated_at=datetime.combine(today, time()),
            )
        except Exception as e:
            raise ExportError(f"failed to build spreadsheet: {e}") from e
        return ExportFile(
            filename=spreadsheet_filename(target_currency, today),
            media_type=XLSX_MEDIA_TYPE,
            content=content,
        )

    def export_archive_with_receipts(
        self,
        report_ids: Sequence[str],
        target_currency: str,
        today: Optional[date] = None,
    ) -> ExportFile:
        today = today or date.today()
        expenses = self._db.expenses_by_report(report_ids)
        table = self._rates.current()
        try:
            content = build_archive(
                report_ids,
                target_currency,
                expenses,
                self._fetcher,
                rates=table.rates,
                rate_timestamp=table.last_updated,
                company=self._options.company,
                date_format=self._options.date_format,
                export_date=today,
                compression_level=self._options.compression_level,
                max_workers=self._options.receipt_workers,
                fetch_timeout=self._options.receipt_timeout,
            )
        except Exception as e:
            raise ExportError(f"failed to build archive: {e}") from e
        return ExportFile(
            filename=archive_filename(target_currency, today),
            media_type=ZIP_MEDIA_TYPE,
            content=content,
        )
