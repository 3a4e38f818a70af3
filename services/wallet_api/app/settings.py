from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class WalletSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="WALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = "wallet-api"
    environment: str = "local"
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8080

    # Connection details; `database_url` wins when set (e.g. sqlite for local runs)
    database_driver: str = "postgresql+asyncpg"
    database_host: str = "wallet-db"
    database_port: int = 5432
    database_user: str = "wallet_user"
    database_password: str = "wallet_password"
    database_name: str = "wallet_db"
    database_url: str | None = None
    database_echo: bool = False

    create_schema: bool = True
    db_connect_retries: int = 5
    db_connect_delay_seconds: float = 2.0

    otel_endpoint: str | None = None

    @property
    def async_db_url(self) -> str:
        if self.database_url:
            return self.database_url
        url = URL.create(
            self.database_driver,
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_name,
        )
        return url.render_as_string(hide_password=False)

    def safe_dict(self) -> dict[str, object]:
        """Settings suitable for startup logs, with credentials masked."""
        data = self.model_dump()
        data["database_password"] = "***"
        if self.database_url:
            data["database_url"] = make_url(self.database_url).render_as_string(hide_password=True)
        return data


@lru_cache
def wallet_settings() -> WalletSettings:
    return WalletSettings()
