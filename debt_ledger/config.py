"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="LEDGER_", extra="ignore"
    )

    # Database
    database_url: str = "sqlite:///./debt_ledger.db"

    # Service
    service_name: str = "debt-ledger"
    log_level: str = "INFO"

    # Display
    currency_symbol: str = "₦"

    # Reconciliation: repair runs discard their writes unless this is switched off
    reconcile_dry_run: bool = True


settings = Settings()
