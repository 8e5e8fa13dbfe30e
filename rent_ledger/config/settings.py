"""
Configuration Management for Rent Ledger

Settings are read with pydantic-settings from RENT_LEDGER_* and
GOOGLE_SHEETS_* environment variables (or a .env file).

DESIGN DECISION: Ledger behaviour that an operator might reasonably tune
(receiver label, rent-due description, occupancy units) lives here rather
than in code, next to the choice of storage backend.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Credentials and target spreadsheet for the sheets ledger backend."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """A missing key file is only a warning; the sheets backend may not be in use yet."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "The sheets ledger backend will not connect without it."
            )
        return v


class LedgerSettings(BaseSettings):
    """
    Main ledger settings.

    Everything the ledger core reads from configuration.
    """

    model_config = SettingsConfigDict(
        env_prefix="RENT_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Storage
    storage_backend: str = Field(
        default="json",
        pattern="^(json|memory|sheets)$",
        description="Which ledger store to use"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the JSON file store and the demo user database"
    )
    scope_key_prefix: str = Field(
        default="myt_rentals_v1_",
        description="Prefix of every per-identity storage key"
    )
    seed_demo_data: bool = Field(
        default=True,
        description="Load demo properties/tenants when a scope has no data"
    )

    # Ledger behaviour
    default_receiver: str = Field(
        default="Primary Receiver",
        min_length=1,
        description="Receiver label for payments recorded without splits"
    )
    rent_due_description: str = Field(
        default="Monthly Rent Auto-Charge",
        description="Description on generated RENT_DUE events"
    )
    units_per_property: int = Field(
        default=2,
        ge=1,
        description="Capacity assumed by the occupancy heuristic"
    )
    ledger_history_months: int = Field(
        default=6,
        ge=1,
        le=24,
        description="Trailing months shown in a tenant's payment history"
    )
    max_amount: Decimal = Field(
        default=Decimal("10000000"),
        description="Largest single amount accepted (sanity check)"
    )
    currency_symbol: str = Field(default="₹")

    # Demo authentication
    auth_latency_seconds: float = Field(
        default=0.8,
        ge=0.0,
        le=10.0,
        description="Simulated network delay for login/signup"
    )

    @property
    def users_db_path(self) -> Path:
        return self.data_dir / "users.json"


class Settings(BaseSettings):
    """
    Root settings object.

    Sub-settings are built on access, so missing Google credentials only
    fail when the sheets backend is actually used.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily so the sheets backend stays optional

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings, built once.

    Tests call get_settings.cache_clear() after changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Check the active configuration before opening any ledger.

    Returns {section: ok}, plus a "<section>_error" message for each
    section that failed to load.
    """
    results = {}

    settings = get_settings()

    try:
        ledger = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)
        return results

    # Sheets credentials only matter when that backend is selected
    if ledger.storage_backend == "sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    return results
