"""Общие части SQLModel моделей Launchpad."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import BigInteger, Column
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def units_field(default: Any = ..., *, nullable: bool = False) -> Any:
    """Колонка под суммы в минимальных единицах.

    Резервы пула (до 10^15 base units) не помещаются в 32-битный INTEGER
    Postgres, поэтому всегда BIGINT. Column создаётся заново на каждое поле.
    """

    return Field(default=default, sa_column=Column(BigInteger, nullable=nullable))


class TimeStampedModel(SQLModel, table=False):
    """created_at / updated_at в UTC."""

    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=utcnow, nullable=False)

    def touch(self) -> None:
        self.updated_at = utcnow()


__all__ = ["TimeStampedModel", "units_field", "utcnow"]
