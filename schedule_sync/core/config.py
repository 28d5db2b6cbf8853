# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Core configuration — all env-driven, zero hardcode.
Single source of truth for every tunable parameter.
"""

import os


class Settings:
    """Application settings loaded from environment variables."""

    SERVICE_NAME: str = os.getenv("SERVICE_NAME", "schedule-sync")
    SERVICE_VERSION: str = os.getenv("SERVICE_VERSION", "1.0.0")
    SERVICE_PORT: int = int(os.getenv("SERVICE_PORT", "8005"))

    PAGERDUTY_API_URL: str = os.getenv("PAGERDUTY_API_URL", "https://api.pagerduty.com")
    PAGERDUTY_TOKEN: str = os.getenv("PAGERDUTY_TOKEN", "")
    PAGERDUTY_TIMEOUT: float = float(os.getenv("PAGERDUTY_TIMEOUT", "10.0"))
    INCIDENT_PAGE_SIZE: int = int(os.getenv("INCIDENT_PAGE_SIZE", "100"))

    # Bounded retry around every remote call
    RETRY_INTERVAL_SECONDS: float = float(os.getenv("RETRY_INTERVAL_SECONDS", "2.0"))
    LOOKUP_TIMEOUT_SECONDS: float = float(os.getenv("LOOKUP_TIMEOUT_SECONDS", "10"))
    READ_TIMEOUT_SECONDS: float = float(os.getenv("READ_TIMEOUT_SECONDS", "30"))
    WRITE_TIMEOUT_SECONDS: float = float(os.getenv("WRITE_TIMEOUT_SECONDS", "120"))

    DEFAULT_DESCRIPTION: str = os.getenv("DEFAULT_DESCRIPTION", "Managed by Terraform")

    CORS_ORIGINS: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
