from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from typing import List, Optional

from expensehub.db.dal import Database
from expensehub.services.suggestions import suggest_colleagues, suggest_customers
from .deps import get_db

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


class SuggestionsOut(BaseModel):
    suggestions: List[str]


@router.get("/customers", response_model=SuggestionsOut, summary="Customer names")
async def customers(
    q: Optional[str] = Query(None, description="Case-insensitive substring"),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db),
):
    return SuggestionsOut(suggestions=suggest_customers(db, q, limit))


@router.get("/colleagues", response_model=SuggestionsOut, summary="Colleague names")
async def colleagues(
    q: Optional[str] = Query(None, description="Case-insensitive substring"),
    limit: int = Query(20, ge=1, le=100),
    db: Database = Depends(get_db),
):
    return SuggestionsOut(suggestions=suggest_colleagues(db, q, limit))
