from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG, DATA_DIR,
    DB_FILENAME, EXCHANGE_RATE_PROVIDER, COMPANY_NAME, RECEIPT_FETCH_TIMEOUT_SECONDS).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "Expense Reports"
    debug: bool = True
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "expenses.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided
    receipts_dir: Optional[Path] = None  # derived if not provided

    # Exchange rates
    base_currency: str = "EUR"
    exchange_rate_provider: str = "static"
    exchange_api_base_url: AnyHttpUrl = "https://api.frankfurter.app"
    rate_currencies: List[str] = ["USD", "GBP", "CHF"]
    http_timeout_seconds: float = 5.0

    # Export
    company_name: str = "Expert.AI"
    export_date_format: str = "%m/%d/%Y"
    zip_compression_level: int = 6

    # Receipts
    receipt_fetch_timeout_seconds: float = 10.0
    receipt_fetch_workers: int = 4
    # Empty list allows any host
    receipt_allowed_hosts: List[str] = []
    receipt_max_bytes: int = 10 * 1024 * 1024

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        if self.receipts_dir is None:
            self.receipts_dir = self.data_dir / "receipts"
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.receipts_dir.mkdir(parents=True, exist_ok=True)
        allowed = {"static", "frankfurter"}
        if self.exchange_rate_provider not in allowed:
            raise ValueError(
                f"Unsupported exchange_rate_provider '{self.exchange_rate_provider}'. Allowed: {allowed}"
            )
        if not 0 <= self.zip_compression_level <= 9:
            raise ValueError("zip_compression_level must be between 0 and 9")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
