"""Multi-currency spreadsheet export.

Lines from all requested reports are pooled, sorted by date (stable, so lines
sharing a date keep their input order), formatted and converted into a fixed
10-column sheet:

    row 1   merged banner with the rate table freshness
    row 2   column headers
    row 3+  one row per expense line
    last    TOTAL row: sum of the rounded converted amounts as displayed
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.xml.constants import ARC_CORE
from openpyxl.xml.functions import tostring

from expensehub.models.constants import DEFAULT_CURRENCY
from expensehub.models.expense import ExpenseLineIn
from expensehub.services.description_formatter import (
    extract_kilometers,
    format_description,
)
from expensehub.services.money import sum_amounts
from expensehub.services.rates.conversion import convert_line

logger = logging.getLogger("expensehub.export")

COLUMNS: Sequence[Tuple[str, int]] = (
    ("Date", 12),
    ("Expense Type", 15),
    ("Description", 40),
    ("Company", 15),
    ("Currency of Expense Line", 20),
    ("Total of Expense Line", 18),
    ("Exchange Rate", 15),
    ("Selected Currency", 18),
    ("Total in Selected Currency", 25),
    ("KM", 10),
)
HEADERS: List[str] = [name for name, _ in COLUMNS]

BANNER_ROW = 1
HEADER_ROW = 2
FIRST_DATA_ROW = 3
DESCRIPTION_COL = 3
AMOUNT_COLS = (6, 9)
RATE_COL = 7
CONVERTED_COL = 9

AMOUNT_FORMAT = "#,##0.00"
RATE_FORMAT = "0.0000"
HEADER_FILL = PatternFill("solid", fgColor="FFE0E0E0")
TOTAL_FILL = PatternFill("solid", fgColor="FFFFF2CC")


@dataclass(frozen=True)
class ExportLine:
    report_id: str
    line: ExpenseLineIn


@dataclass(frozen=True)
class ExportRow:
    date: str
    expense_type: str
    description: str
    company: str
    currency: str
    amount: float
    exchange_rate: float
    target_currency: str
    converted_amount: float
    kilometers: Optional[float]

    def values(self) -> List[Any]:
        return [
            self.date,
            self.expense_type,
            self.description,
            self.company,
            self.currency,
            self.amount,
            self.exchange_rate,
            self.target_currency,
            self.converted_amount,
            self.kilometers,
        ]


def flatten_expenses(
    report_ids: Sequence[str],
    expenses_by_report: Mapping[str, Sequence[ExpenseLineIn]],
) -> List[ExportLine]:
    """Pool lines of all reports and sort them by date, earliest first."""
    pooled = [
        ExportLine(report_id=rid, line=line)
        for rid in report_ids
        for line in expenses_by_report.get(rid, ())
    ]
    pooled.sort(key=lambda e: e.line.date)
    return pooled


def build_rows(
    lines: Sequence[ExportLine],
    target_currency: str,
    rates: Mapping[str, float],
    *,
    company: str,
    date_format: str = "%m/%d/%Y",
) -> Tuple[List[ExportRow], float]:
    """Rows for already sorted lines plus the total of their converted amounts."""
    rows: List[ExportRow] = []
    for export_line in lines:
        line = export_line.line
        conversion = convert_line(
            line.amount, line.currency or DEFAULT_CURRENCY, target_currency, rates
        )
        rows.append(
            ExportRow(
                date=line.date.strftime(date_format),
                expense_type=line.type,
                description=format_description(
                    line.type, line.description, line.metadata
                ),
                company=company,
                currency=conversion.currency,
                amount=line.amount,
                exchange_rate=conversion.rate,
                target_currency=conversion.target_currency,
                converted_amount=conversion.converted_amount,
                # A zero distance leaves the KM cell blank.
                kilometers=extract_kilometers(line.type, line.metadata) or None,
            )
        )
    return rows, sum_amounts(r.converted_amount for r in rows)


def rates_banner(rate_timestamp: Optional[datetime]) -> str:
    if rate_timestamp is None:
        return "Exchange rates: Using default values (not updated from API)"
    return f"Exchange rates last updated: {rate_timestamp.strftime('%Y-%m-%d %H:%M')}"


def _write_sheet(
    rows: Sequence[ExportRow], total: float, banner: str, generated_at: Optional[datetime]
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Expenses"
    if generated_at is not None:
        wb.properties.created = generated_at

    last_col = len(COLUMNS)
    banner_cell = ws.cell(row=BANNER_ROW, column=1, value=banner)
    banner_cell.font = Font(italic=True, size=10)
    banner_cell.alignment = Alignment(horizontal="left")
    ws.merge_cells(
        start_row=BANNER_ROW, start_column=1, end_row=BANNER_ROW, end_column=last_col
    )

    for col, (name, width) in enumerate(COLUMNS, 1):
        cell = ws.cell(row=HEADER_ROW, column=col, value=name)
        cell.font = Font(bold=True)
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center")
        ws.column_dimensions[get_column_letter(col)].width = width

    row_idx = FIRST_DATA_ROW
    for row in rows:
        for col, value in enumerate(row.values(), 1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            if col in AMOUNT_COLS:
                cell.number_format = AMOUNT_FORMAT
            elif col == RATE_COL:
                cell.number_format = RATE_FORMAT
        row_idx += 1

    for col in range(1, last_col + 1):
        ws.cell(row=row_idx, column=col).fill = TOTAL_FILL
    label = ws.cell(row=row_idx, column=DESCRIPTION_COL, value="TOTAL")
    label.font = Font(bold=True)
    total_cell = ws.cell(row=row_idx, column=CONVERTED_COL, value=total)
    total_cell.font = Font(bold=True)
    total_cell.number_format = AMOUNT_FORMAT

    ws.freeze_panes = f"A{FIRST_DATA_ROW}"

    buf = BytesIO()
    wb.save(buf)
    if generated_at is None:
        return buf.getvalue()
    # save() stamps core.xml and every member with the wall clock.
    wb.properties.modified = generated_at
    core_xml = tostring(wb.properties.to_tree())
    return _pin_timestamps(buf.getvalue(), core_xml, generated_at)


def _pin_timestamps(content: bytes, core_xml: bytes, stamp: datetime) -> bytes:
    src = zipfile.ZipFile(BytesIO(content))
    out = BytesIO()
    with zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as zf:
        for info in src.infolist():
            data = core_xml if info.filename == ARC_CORE else src.read(info)
            entry = zipfile.ZipInfo(info.filename, date_time=stamp.timetuple()[:6])
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = info.external_attr
            zf.writestr(entry, data)
    return out.getvalue()


def build_spreadsheet(
    report_ids: Sequence[str],
    target_currency: str,
    expenses_by_report: Mapping[str, Sequence[ExpenseLineIn]],
    rates: Mapping[str, float],
    rate_timestamp: Optional[datetime],
    *,
    company: str,
    date_format: str = "%m/%d/%Y",
    generated_at: Optional[datetime] = None,
) -> bytes:
    """Render the xlsx document for the requested reports.

    `generated_at` pins the document properties and every package member's
    timestamp, so two exports of the same data are byte-identical.
    """
    target_currency = target_currency.upper()
    lines = flatten_expenses(report_ids, expenses_by_report)
    rows, total = build_rows(
        lines, target_currency, rates, company=company, date_format=date_format
    )
    logger.info(
        "spreadsheet export: %d lines from %d reports, total %.2f %s",
        len(rows),
        len(report_ids),
        total,
        target_currency,
        extra={
            "export_kind": "spreadsheet",
            "report_count": len(report_ids),
            "line_count": len(rows),
            "target_currency": target_currency,
            "total": total,
        },
    )
    return _write_sheet(rows, total, rates_banner(rate_timestamp), generated_at)
