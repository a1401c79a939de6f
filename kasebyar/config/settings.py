"""
Kasebyar settings.

Every group reads its own env prefix (``STORAGE_``, ``CURRENCY_``,
``STORE_``, ``API_``) and a ``.env`` file in the working directory.
Currency configs are JSON in ``CURRENCY_CONFIGS``.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

CurrencyCode = Literal["AFN", "USD", "IRT"]


class CurrencyConfig(BaseModel):
    """How a transactional currency maps onto the base currency."""

    code: CurrencyCode
    name: str
    symbol: str
    method: Literal["multiply", "divide"] = "multiply"


def _default_currency_configs() -> dict[str, CurrencyConfig]:
    # USD rates are quoted as AFN per dollar, IRT rates as toman per afghani
    return {
        "AFN": CurrencyConfig(code="AFN", name="Afghani", symbol="؋", method="multiply"),
        "USD": CurrencyConfig(code="USD", name="US Dollar", symbol="$", method="multiply"),
        "IRT": CurrencyConfig(code="IRT", name="Iranian Toman", symbol="T", method="divide"),
    }


class StorageSettings(BaseSettings):
    """Where the database and its pre-migration backups live."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "kasebyar.db"
    backup_dir_name: str = "backups"

    pool_size: int = Field(default=5, ge=1)
    busy_timeout: int = Field(default=30000, ge=0)  # ms

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def backup_dir(self) -> Path:
        return self.data_dir / self.backup_dir_name


class CurrencySettings(BaseSettings):
    """Base currency and conversion methods."""

    model_config = SettingsConfigDict(env_prefix="CURRENCY_")

    base_currency: CurrencyCode = "AFN"
    configs: dict[str, CurrencyConfig] = Field(default_factory=_default_currency_configs)

    @model_validator(mode="after")
    def check_base_configured(self) -> "CurrencySettings":
        if self.base_currency not in self.configs:
            raise ValueError(f"base currency {self.base_currency} has no config")
        return self


class StoreSettings(BaseSettings):
    """Shop-level preferences."""

    model_config = SettingsConfigDict(env_prefix="STORE_")

    store_name: str = "Kasebyar"
    default_cashier: str = "admin"
    low_stock_threshold: int = 10
    expiry_threshold_months: int = 3
    expense_categories: list[str] = ["rent", "utilities", "supplies", "salary", "other"]


class APISettings(BaseSettings):
    """HTTP server."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "Kasebyar POS"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool | None = None  # None: JSON everywhere except development

    storage: StorageSettings = Field(default_factory=StorageSettings)
    currency: CurrencySettings = Field(default_factory=CurrencySettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def ensure_data_dir(self) -> "Settings":
        self.storage.data_dir.mkdir(parents=True, exist_ok=True)
        return self

    @property
    def json_logs(self) -> bool:
        if self.log_json is not None:
            return self.log_json
        return self.environment != "development"


_settings: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next call reloads the environment."""
    global _settings
    _settings = None
