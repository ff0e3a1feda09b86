from __future__ import annotations

import time
from datetime import date
from typing import Dict, List, Optional, Union

import pytest
from fastapi.testclient import TestClient

from expensehub.core.config import Settings
from expensehub.db.dal import Database
from expensehub.db.migrate import apply_migrations
from expensehub.main import create_app
from expensehub.models.expense import ExpenseLineIn
from expensehub.services.receipts import FetchedReceipt, ReceiptFetchError

RATES = {"EUR": 1.0, "USD": 1.10, "GBP": 0.85, "CHF": 0.95}


class FakeReceiptFetcher:
    """In-memory fetcher: maps receipt id -> receipt, exception, or delay."""

    def __init__(
        self,
        receipts: Optional[Dict[str, Union[FetchedReceipt, Exception]]] = None,
        delays: Optional[Dict[str, float]] = None,
    ):
        self.receipts = receipts or {}
        self.delays = delays or {}
        self.calls: List[str] = []

    def fetch(self, receipt_id: str) -> FetchedReceipt:
        self.calls.append(receipt_id)
        if receipt_id in self.delays:
            time.sleep(self.delays[receipt_id])
        found = self.receipts.get(receipt_id)
        if found is None:
            raise ReceiptFetchError(f"no receipt {receipt_id}")
        if isinstance(found, Exception):
            raise found
        return found


def make_line(
    day: date,
    type: str = "OTHER",
    description: str = "Misc",
    amount: float = 10.0,
    currency: str = "EUR",
    metadata=None,
    receipt_id: Optional[str] = None,
) -> ExpenseLineIn:
    return ExpenseLineIn(
        date=day,
        type=type,
        description=description,
        amount=amount,
        currency=currency,
        metadata=metadata,
        receipt_id=receipt_id,
    )


@pytest.fixture
def rates() -> Dict[str, float]:
    return dict(RATES)


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings(_env_file=None, data_dir=tmp_path, debug=False)
    s.init_post_load()
    return s


@pytest.fixture
def db(settings) -> Database:
    apply_migrations(settings.db_path)
    return Database(settings.db_path)


@pytest.fixture
def fetcher() -> FakeReceiptFetcher:
    return FakeReceiptFetcher()


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
