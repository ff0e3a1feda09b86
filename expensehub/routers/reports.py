from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from expensehub.db.dal import Database
from expensehub.models.expense import (
    ExpenseLine,
    ExpenseLineIn,
    ExpenseLineUpdate,
    ReportIn,
    ReportOut,
    ReportStatusUpdate,
)
from .deps import get_db

router = APIRouter(prefix="/reports", tags=["reports"])


# Helpers ----------------------------------------------------------


def _load_report(db: Database, report_id: str) -> ReportOut:
    row = db.get_report(report_id)
    if not row:
        raise HTTPException(status_code=404, detail="report not found")
    return ReportOut(**row)


def _load_line(db: Database, report_id: str, line_id: str) -> ExpenseLine:
    line = db.get_expense_line(report_id, line_id)
    if line is None:
        raise HTTPException(status_code=404, detail="expense line not found")
    return line


# Reports ----------------------------------------------------------
@router.post("/", response_model=ReportOut, status_code=201, summary="Create a report")
async def create_report(payload: ReportIn, db: Database = Depends(get_db)):
    report_id = db.create_report(payload)
    return _load_report(db, report_id)


@router.get("/", response_model=List[ReportOut], summary="List reports")
async def list_reports(
    year: Optional[int] = Query(None, description="Filter by year"),
    month: Optional[int] = Query(None, ge=1, le=12, description="Filter by month"),
    db: Database = Depends(get_db),
):
    return [ReportOut(**r) for r in db.list_reports(year=year, month=month)]


@router.get("/{report_id}", response_model=ReportOut, summary="Get a report")
async def get_report(report_id: str, db: Database = Depends(get_db)):
    return _load_report(db, report_id)


@router.patch(
    "/{report_id}/status", response_model=ReportOut, summary="Change report status"
)
async def update_status(
    report_id: str, payload: ReportStatusUpdate, db: Database = Depends(get_db)
):
    db.update_report_status(report_id, payload.status)
    return _load_report(db, report_id)


@router.delete("/{report_id}", status_code=204, summary="Delete a report and its lines")
async def delete_report(report_id: str, db: Database = Depends(get_db)):
    db.delete_report(report_id)
    return None


# Expense lines ----------------------------------------------------
@router.post(
    "/{report_id}/expenses",
    response_model=ExpenseLine,
    status_code=201,
    summary="Add an expense line",
)
async def add_expense(
    report_id: str, payload: ExpenseLineIn, db: Database = Depends(get_db)
):
    line_id = db.add_expense_line(report_id, payload)
    return _load_line(db, report_id, line_id)


@router.get(
    "/{report_id}/expenses",
    response_model=List[ExpenseLine],
    summary="List expense lines of a report",
)
async def list_expenses(report_id: str, db: Database = Depends(get_db)):
    return db.list_expense_lines(report_id)


@router.patch(
    "/{report_id}/expenses/{line_id}",
    response_model=ExpenseLine,
    summary="Edit an expense line (partial)",
)
async def patch_expense(
    report_id: str,
    line_id: str,
    payload: ExpenseLineUpdate,
    db: Database = Depends(get_db),
):
    changes = payload.model_dump(include=payload.model_fields_set)
    for required in ("date", "type", "description", "amount", "currency"):
        if required in changes and changes[required] is None:
            raise HTTPException(status_code=400, detail=f"{required} cannot be cleared")
    try:
        db.update_expense_line(report_id, line_id, changes)
    except ValueError:
        raise HTTPException(status_code=404, detail="expense line not found")
    return _load_line(db, report_id, line_id)


@router.delete(
    "/{report_id}/expenses/{line_id}", status_code=204, summary="Delete an expense line"
)
async def delete_expense(report_id: str, line_id: str, db: Database = Depends(get_db)):
    try:
        db.delete_expense_line(report_id, line_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="expense line not found")
    return None
