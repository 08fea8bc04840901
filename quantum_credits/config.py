"""Configuration management using Pydantic Settings"""

from decimal import Decimal
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Persisted store
    database_url: str = "sqlite:///./quantum_credits.db"
    ledger_namespace: str = "default"
    ledger_commit_attempts: int = Field(3, ge=1)

    # Credits
    conversion_rate: Decimal = Decimal("1")  # currency units per credit
    currency: str = "usd"

    # Quantum random source
    qrng_api_url: str = "https://qrng.anu.edu.au/API/jsonI.php"
    qrng_timeout_seconds: float = 3.0

    # Payouts
    payout_mode: Literal["simulated", "http"] = "simulated"
    payout_api_base: str = "http://localhost:8001"
    http_timeout_seconds: float = 5.0
    payout_max_retries: int = 3
    payout_backoff_base: float = 0.5  # Exponential backoff base in seconds

    # Service
    service_name: str = "quantum-credits"
    log_level: str = "INFO"
    admin_reset_enabled: bool = False


settings = Settings()
