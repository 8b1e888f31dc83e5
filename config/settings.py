"""Глобальные настройки Launchpad.

Настройки разделены по доменам (БД, бондинг-кривая, кастодиальный кошелёк,
Web Push, HTTP API), каждый сервис получает свою секцию при создании.
Вся конфигурация загружается из переменных окружения через Pydantic Settings,
поэтому сервис легко деплоить в любой инфраструктуре (Docker, Kubernetes, serverless).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    Field,
    PositiveFloat,
    PositiveInt,
    SecretStr,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent
ACCESSIBLE_ENV_FILE = BASE_DIR / "config" / "runtime.env"
DEFAULT_ENV_FILE = BASE_DIR / ".env"
ENV_FILE = ACCESSIBLE_ENV_FILE if ACCESSIBLE_ENV_FILE.exists() else DEFAULT_ENV_FILE


class DatabaseSettings(BaseModel):
    """SQLModel + aiosqlite (по умолчанию) и готовность к Postgres."""

    dsn: str = Field(
        "sqlite+aiosqlite:///./database/launchpad.db",
        description="Строка подключения SQLAlchemy/SQLModel",
    )
    echo: bool = False


class TradingSettings(BaseModel):
    """Параметры бондинг-кривой."""

    fee_bps: int = Field(
        100,
        ge=0,
        lt=10_000,
        description="Комиссия платформы в базисных пунктах (100 = 1%)",
    )
    max_commit_attempts: PositiveInt = Field(
        3, description="Сколько раз пересчитывать сделку при конкурентном апдейте пула"
    )


class LedgerSettings(BaseModel):
    """Кастодиальный кошелёк платформы и RPC для переводов."""

    transfers_enabled: bool = Field(
        False, description="Переводить токены/SOL с кошелька платформы после сделки"
    )
    rpc_endpoint: AnyHttpUrl | None = Field(
        None, description="JSON-RPC кастодиального релея (подписывает переводы)"
    )
    platform_wallet: str | None = Field(None, description="Адрес кошелька платформы")
    request_timeout: PositiveFloat = 15.0

    @field_validator("rpc_endpoint", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PushSettings(BaseModel):
    """VAPID ключи и параметры доставки Web Push."""

    vapid_public_key: str | None = Field(
        None, description="Публичный ключ VAPID (raw P-256, base64url)"
    )
    vapid_private_key: SecretStr | None = Field(
        None, description="Приватный ключ VAPID (PKCS#8 или raw scalar, base64url)"
    )
    subject: str = "mailto:notifications@noizlabs.com"
    ttl_seconds: int = 86_400
    request_timeout: PositiveFloat = 10.0
    record_size: int = 4096

    @property
    def is_configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)


class ApiSettings(BaseModel):
    """HTTP API (FastAPI)."""

    title: str = "Launchpad Trade API"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class AppSettings(BaseSettings):
    """Главный контейнер настроек Launchpad."""

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: Literal["dev", "prod"] = "dev"
    log_json: bool = False
    database: DatabaseSettings = DatabaseSettings()
    trading: TradingSettings = TradingSettings()
    ledger: LedgerSettings = LedgerSettings()
    push: PushSettings = PushSettings()
    api: ApiSettings = ApiSettings()

    @property
    def is_production(self) -> bool:
        """True, если сервис запущен в продовой среде."""

        return self.environment == "prod"


# Ленивый синглтон (избегаем глобальных переменных в модулях).
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Возвращает единый экземпляр настроек.

    Вызываем только на старте процесса (context, main). Значения кэшируются,
    поэтому инициализация .env происходит ровно один раз за процесс.
    """

    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


__all__ = [
    "ApiSettings",
    "AppSettings",
    "DatabaseSettings",
    "LedgerSettings",
    "PushSettings",
    "TradingSettings",
    "get_settings",
]
