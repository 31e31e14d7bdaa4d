from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy import JSON as SAJSON
from sqlalchemy import Column, Date, DateTime, MetaData, Table, create_engine, select, text
from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine, Row

from .models import TpiRecord

DEFAULT_TABLE_NAME = "tpi_records"

# Dialects whose INSERT supports ON CONFLICT ... DO UPDATE.
_CONFLICT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TpiRecordRepository:
    """
    Interface for date-keyed TPI storage.

    Implementations raise ``sqlalchemy.exc.SQLAlchemyError`` (or a subclass)
    on backing-store failures; the service layer turns those into
    ``StorageError``.
    """

    def upsert(self, record_date: date, payload: Any) -> None:
        raise NotImplementedError

    def history(self) -> Dict[str, Any]:
        raise NotImplementedError

    def get(self, record_date: date) -> Optional[TpiRecord]:
        raise NotImplementedError

    def ping(self) -> None:
        raise NotImplementedError


class SQLTpiRepository(TpiRecordRepository):
    """
    Persist TPI payloads in a single table keyed by date.

    Expected table (created on first use when missing):
      - tpi_records(date PRIMARY KEY, data JSON/JSONB, updated_at TIMESTAMPTZ)
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str = DEFAULT_TABLE_NAME,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.engine = engine
        self.clock = clock
        self.metadata = MetaData()
        json_type = SAJSON().with_variant(JSONB, "postgresql")
        self.table = Table(
            table_name,
            self.metadata,
            Column("date", Date, primary_key=True),
            Column("data", json_type, nullable=False),
            Column("updated_at", DateTime(timezone=True), nullable=False),
        )
        self._table_ready = False

    def _ensure_table(self) -> None:
        # Constructing the repository never connects; the table is created on first use.
        if self._table_ready:
            return
        self.metadata.create_all(self.engine, checkfirst=True)
        self._table_ready = True

    def upsert_statement(self, dialect_name: str, record_date: date, payload: Any, updated_at: datetime):
        """Single-statement upsert for ``dialect_name``, or ``None`` when the dialect has none."""
        if dialect_name in _CONFLICT_INSERTS:
            statement = _CONFLICT_INSERTS[dialect_name](self.table).values(
                date=record_date,
                data=payload,
                updated_at=updated_at,
            )
            return statement.on_conflict_do_update(
                index_elements=[self.table.c.date],
                set_={
                    "data": statement.excluded.data,
                    "updated_at": statement.excluded.updated_at,
                },
            )
        if dialect_name in {"mysql", "mariadb"}:
            statement = mysql_insert(self.table).values(
                date=record_date,
                data=payload,
                updated_at=updated_at,
            )
            return statement.on_duplicate_key_update(
                data=statement.inserted.data,
                updated_at=statement.inserted.updated_at,
            )
        return None

    def upsert(self, record_date: date, payload: Any) -> None:
        self._ensure_table()
        updated_at = self.clock()
        with self.engine.begin() as connection:
            statement = self.upsert_statement(connection.dialect.name, record_date, payload, updated_at)
            if statement is not None:
                connection.execute(statement)
                return

            # Not atomic across concurrent first writes: the losing INSERT fails
            # on the primary key and surfaces as a storage error.
            result = connection.execute(
                self.table.update()
                .where(self.table.c.date == record_date)
                .values(data=payload, updated_at=updated_at)
            )
            if result.rowcount == 0:
                connection.execute(
                    self.table.insert().values(date=record_date, data=payload, updated_at=updated_at)
                )

    def history(self) -> Dict[str, Any]:
        self._ensure_table()
        query = select(self.table.c.date, self.table.c.data).order_by(self.table.c.date.desc())
        with self.engine.connect() as connection:
            rows = connection.execute(query).fetchall()
        return {row.date.isoformat(): row.data for row in rows}

    def get(self, record_date: date) -> Optional[TpiRecord]:
        self._ensure_table()
        query = select(self.table).where(self.table.c.date == record_date)
        with self.engine.connect() as connection:
            row = connection.execute(query).first()
        if row is None:
            return None
        return self._row_to_record(row)

    def ping(self) -> None:
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    @staticmethod
    def _row_to_record(row: Row) -> TpiRecord:
        return TpiRecord(date=row.date, payload=row.data, updated_at=row.updated_at)


@dataclass(frozen=True)
class RepositoryConfig:
    database_url: Optional[str] = None
    table_name: str = DEFAULT_TABLE_NAME

    @classmethod
    def from_env(cls) -> "RepositoryConfig":
        return cls(
            database_url=os.getenv("TPI_DATABASE_URL"),
            table_name=os.getenv("TPI_TABLE_NAME", DEFAULT_TABLE_NAME),
        )


def build_repository_from_env(config: Optional[RepositoryConfig] = None) -> Optional[TpiRecordRepository]:
    cfg = config or RepositoryConfig.from_env()
    if cfg.database_url:
        engine = create_engine(cfg.database_url, pool_pre_ping=True)
        return SQLTpiRepository(engine, table_name=cfg.table_name)
    return None
