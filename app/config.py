from __future__ import annotations

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "RevOps Queue Engine"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database (hygiene commitments)
    database_url: str | None = None
    db_pool_min_size: int = 1
    db_pool_max_size: int = 5
    db_auto_create_schema: bool = False

    # Business calendar
    business_utc_offset_hours: int = -5
    company_email_domain: str = "opusbehavioral.com"

    # Queue rules
    new_deal_grace_business_days: int = 7
    week1_touch_target: int = 6
    week1_window_business_days: int = 5
    stalled_watch_days: int = 7
    stalled_warning_days: int = 10
    stalled_critical_days: int = 14
    stalled_min_age_days: int = 7

    # Metrics
    metrics_backend: str = "stdout"
    metrics_namespace: str = "revops"
    metrics_disable: bool = False
    metrics_sample_rate: float = 1.0
    metrics_statsd_host: str = "127.0.0.1"
    metrics_statsd_port: int = 8125

    # Security
    cors_origins: list[str] = []  # Empty by default for security

    # Sentry
    sentry_dsn: str | None = None

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def company_email_suffix(self) -> str:
        """Sender suffix used to recognise outbound emails logged without a direction."""
        domain = self.company_email_domain.strip().lstrip("@").lower()
        return f"@{domain}"

    model_config = ConfigDict(env_file=".env", case_sensitive=False)


settings = Settings()
