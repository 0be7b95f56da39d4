"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from decimal import Decimal
import enum
from typing import List, Union


class NegativeBalancePolicy(str, enum.Enum):
    """How the aggregator treats a debtor/creditor pair driven below zero."""
    NORMALIZE = "normalize"  # swap debtor and creditor, keep amount positive
    FOLD = "fold"  # pass the signed amount through to netting


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    APP_NAME: str = "TripSettle"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:8080"]
    
    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v
    
    # Settlement
    DEFAULT_CURRENCY: str = "USD"  # Used when a trip has no expenses to take a currency from
    SETTLEMENT_TOLERANCE: Decimal = Decimal("0.01")  # Balances below this are treated as settled
    NEGATIVE_BALANCE_POLICY: NegativeBalancePolicy = NegativeBalancePolicy.NORMALIZE
    
    @field_validator("DEFAULT_CURRENCY")
    @classmethod
    def upper_currency(cls, v):
        return v.upper()
    
    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
