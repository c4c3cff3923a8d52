"""Configuration management for loanbook."""

from dataclasses import dataclass, field
from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from loanbook.exceptions import ConfigurationError


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "loanbook"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class ReportConfig:
    """Calendar settings used by the dashboard and the default clock."""

    timezone: str = "America/Sao_Paulo"
    alert_window_days: int = 3
    default_payment_day: int = 10

    def __post_init__(self) -> None:
        if self.alert_window_days < 0:
            raise ConfigurationError(
                f"alert_window_days must be >= 0, got {self.alert_window_days}"
            )
        if not 1 <= self.default_payment_day <= 31:
            raise ConfigurationError(
                f"default_payment_day must be between 1 and 31, got {self.default_payment_day}"
            )

    @property
    def tzinfo(self) -> ZoneInfo:
        """Resolve the configured timezone."""
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown timezone: {self.timezone}") from e

    def today(self) -> date:
        """Current calendar date in the configured timezone."""
        return datetime.now(self.tzinfo).date()


@dataclass
class LoanbookConfig:
    """Main configuration for loanbook."""

    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "LoanbookConfig":
        """Create config from environment variables."""
        import os

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "loanbook"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        report = ReportConfig(
            timezone=os.getenv("LOANBOOK_TIMEZONE", "America/Sao_Paulo"),
            alert_window_days=int(os.getenv("ALERT_WINDOW_DAYS", "3")),
        )

        return cls(
            postgres=postgres,
            report=report,
            seed=int(os.getenv("SEED")) if os.getenv("SEED") else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )
