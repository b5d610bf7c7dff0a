"""Pydantic settings for the lending engine."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Oracle
    oracle_max_staleness_seconds: int = Field(
        default=3600, ge=1, le=86400, description="Default price staleness window in seconds"
    )

    # Collateral pools
    collateral_withdraw_fee_bps: int = Field(
        default=0, ge=0, le=100, description="Withdrawal fee for new collateral pools (bps)"
    )
    min_strategy_deposit: int = Field(
        default=10**17, ge=0, description="Smallest idle surplus forwarded to a strategy"
    )

    # Ledger snapshots
    storage_dir: Path = Field(default=Path(".lending"), description="Ledger snapshot directory")

    @field_validator("storage_dir", mode="before")
    @classmethod
    def parse_storage_dir(cls, v):
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v)
        return v

    def ensure_storage_dir(self) -> Path:
        """Ensure storage directory exists and return it."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        return self.storage_dir


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
