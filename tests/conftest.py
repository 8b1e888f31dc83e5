from __future__ import annotations

import pytest
import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from sqlalchemy import create_engine
from sqlmodel import SQLModel

from config.settings import AppSettings, DatabaseSettings, PushSettings, TradingSettings
from launchpad.db import build_engine, build_session_maker
from launchpad.services.push.vapid import generate_vapid_keys
from launchpad.utils.encoding import b64url_encode


class FakeSubscriber:
    """Браузерная сторона подписки: P-256 ключ и auth secret."""

    def __init__(self) -> None:
        self.private_key = ec.generate_private_key(ec.SECP256R1())
        self.auth_secret = bytes(range(16))

    @property
    def p256dh(self) -> str:
        raw = self.private_key.public_key().public_bytes(
            serialization.Encoding.X962,
            serialization.PublicFormat.UncompressedPoint,
        )
        return b64url_encode(raw)

    @property
    def auth(self) -> str:
        return b64url_encode(self.auth_secret)


@pytest.fixture
def database_path(tmp_path):
    return tmp_path / "launchpad.db"


@pytest.fixture
def database_settings(database_path):
    return DatabaseSettings(dsn=f"sqlite+aiosqlite:///{database_path}")


@pytest.fixture
def engine(database_path, database_settings):
    # схема создаётся синхронно, чтобы не трогать event loop pytest-asyncio
    schema_engine = create_engine(f"sqlite:///{database_path}")
    SQLModel.metadata.create_all(schema_engine)
    schema_engine.dispose()
    return build_engine(database_settings)


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def vapid_keys():
    return generate_vapid_keys()


@pytest.fixture
def push_settings(vapid_keys):
    return PushSettings(
        vapid_public_key=vapid_keys.public_key,
        vapid_private_key=vapid_keys.private_key,
    )


@pytest.fixture
def trading_settings():
    return TradingSettings(fee_bps=100, max_commit_attempts=3)


@pytest.fixture
def app_settings(database_settings, push_settings, trading_settings):
    return AppSettings(
        database=database_settings,
        push=push_settings,
        trading=trading_settings,
    )


@pytest.fixture
def subscriber():
    return FakeSubscriber()
