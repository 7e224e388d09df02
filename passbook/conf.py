import enum
import pathlib
from urllib.parse import quote

from pydantic import PostgresDsn, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = pathlib.Path(__file__).parent.parent


class OpenTelemetryExporter(str, enum.Enum):
    AZURE_APP_INSIGHTS = "azure_app_insights"
    CONSOLE = "console"


class Settings(BaseSettings):
    """
    Project settings loaded from environment variables
    """

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        env_file_encoding="utf-8",
        env_prefix="passbook_",
        extra="ignore",
    )

    postgres_db: str = "passbook"
    postgres_user: str = "passbook"
    postgres_password: str = ""
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    # Full SQLAlchemy URL, takes precedence over the postgres_* pieces when set.
    database_url: str | None = None

    auth_jwt_secret: str
    auth_jwt_max_lifespan_minutes: int = 60

    policy_file: pathlib.Path = PROJECT_ROOT / "eras.json"
    policy_cache_ttl_seconds: int = 300

    purchase_validity_days: int = 730
    credit_validity_days: int = 730
    count_voucher_validity_days: int | None = None

    referral_signup_bonus: int = 10
    invite_grant_amount: int = 10
    invite_reward_passes: int = 1

    serve_host: str = "127.0.0.1"
    serve_port: int = 8000
    # Falls back to 2 * CPUs + 1 when unset.
    serve_workers: int | None = None
    serve_worker_timeout_seconds: int = 30

    cli_rich_logging: bool = True
    debug: bool = False

    opentelemetry_exporter: OpenTelemetryExporter | None = None
    opentelemetry_connection_string: str | None = None

    @computed_field
    def postgres_async_url(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=self.postgres_user,
            password=quote(self.postgres_password),
            host=self.postgres_host,
            port=self.postgres_port,
            path=self.postgres_db,
        )

    @computed_field
    def postgres_url(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql",
            username=self.postgres_user,
            password=quote(self.postgres_password),
            host=self.postgres_host,
            port=self.postgres_port,
            path=self.postgres_db,
        )

    @property
    def async_database_url(self) -> str:
        return self.database_url or str(self.postgres_async_url)


_settings = None


def get_settings() -> Settings:
    global _settings
    if not _settings:
        _settings = Settings()
    return _settings
