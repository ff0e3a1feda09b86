"""Shared FastAPI dependencies.

Settings live on `app.state` so tests can build an app against a temporary
database without touching the cached global settings.
"""

from fastapi import Depends, Request

from expensehub.core.config import Settings
from expensehub.db.dal import Database
from expensehub.services.export_service import ExportOptions, ExportService
from expensehub.services.rate_service import RateService
from expensehub.services.rates.providers import make_rate_provider
from expensehub.services.receipts import DefaultReceiptFetcher, ReceiptFetcher


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(settings: Settings = Depends(get_app_settings)) -> Database:
    return Database(settings.db_path)


def get_rate_service(
    settings: Settings = Depends(get_app_settings),
    db: Database = Depends(get_db),
) -> RateService:
    provider = make_rate_provider(
        settings.exchange_rate_provider,
        base_url=str(settings.exchange_api_base_url),
        currencies=settings.rate_currencies,
        timeout=settings.http_timeout_seconds,
    )
    return RateService(db, provider)


def get_receipt_fetcher(
    settings: Settings = Depends(get_app_settings),
) -> ReceiptFetcher:
    return DefaultReceiptFetcher(
        settings.receipts_dir,
        timeout=settings.receipt_fetch_timeout_seconds,
        allowed_hosts=settings.receipt_allowed_hosts,
    )


def get_export_service(
    settings: Settings = Depends(get_app_settings),
    db: Database = Depends(get_db),
    rate_service: RateService = Depends(get_rate_service),
    fetcher: ReceiptFetcher = Depends(get_receipt_fetcher),
) -> ExportService:
    options = ExportOptions(
        company=settings.company_name,
        date_format=settings.export_date_format,
        compression_level=settings.zip_compression_level,
        receipt_workers=settings.receipt_fetch_workers,
        receipt_timeout=settings.receipt_fetch_timeout_seconds,
    )
    return ExportService(db, rate_service, fetcher, options)
