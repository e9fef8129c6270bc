"""Centralised client settings loaded from environment / .env file."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Ride authority (remote backend)
    api_base_url: str = "http://localhost:8000/api/v1"
    api_timeout_seconds: float = 10.0
    api_token: Optional[str] = None

    # Live ride sync
    ride_poll_interval_seconds: float = 10.0
    ride_sync_max_failures: int = 3  # consecutive transient failures before giving up

    # Request form
    recent_locations_limit: int = 5

    # Sandbox authority
    sandbox_database_url: str = "sqlite+aiosqlite:///./ridebook.db"
    sandbox_rate_limit: str = "100/minute"
    sandbox_tax_rate: float = 0.08  # applied to the pre-discount subtotal
    sandbox_average_speed_kmh: float = 30.0
    sandbox_currency: str = "USD"

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
