# sqlidentity/db/models.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Integer, String, Text
from sqlalchemy.dialects import mysql, postgresql
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from sqlidentity.core.tokens import TOKEN_LENGTH

TABLE_NAME = "identities"


# Un MetaData por dialecto: cada backend tiene su propia definición de tabla
class SqliteBase(DeclarativeBase):
    pass


class MysqlBase(DeclarativeBase):
    pass


class PostgresBase(DeclarativeBase):
    pass


class IdentityColumns:
    """Columnas comunes a los tres dialectos."""

    userid: Mapped[str] = mapped_column(Text, nullable=False)
    ip: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    useragent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class SqliteIdentity(IdentityColumns, SqliteBase):
    __tablename__ = TABLE_NAME
    # Sólo INTEGER PRIMARY KEY es alias de ROWID en SQLite
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(String(TOKEN_LENGTH), unique=True, nullable=False)
    created: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    modified: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class MysqlIdentity(IdentityColumns, MysqlBase):
    __tablename__ = TABLE_NAME
    __table_args__ = {"mysql_engine": "InnoDB", "mysql_charset": "utf8mb4"}

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    # TEXT no se puede indexar sin longitud en MySQL
    token: Mapped[str] = mapped_column(mysql.CHAR(TOKEN_LENGTH), unique=True, nullable=False)
    created: Mapped[datetime] = mapped_column(mysql.DATETIME(fsp=6), nullable=False)
    modified: Mapped[datetime] = mapped_column(mysql.DATETIME(fsp=6), nullable=False)


class PostgresIdentity(IdentityColumns, PostgresBase):
    __tablename__ = TABLE_NAME

    # BIGINT + autoincrement -> BIGSERIAL
    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    token: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    created: Mapped[datetime] = mapped_column(
        postgresql.TIMESTAMP(timezone=False, precision=6), nullable=False
    )
    modified: Mapped[datetime] = mapped_column(
        postgresql.TIMESTAMP(timezone=False, precision=6), nullable=False
    )


@dataclass(frozen=True)
class Identity:
    """Fila de `identities`, independiente del dialecto."""

    id: int
    token: str
    userid: str
    ip: Optional[str]
    useragent: Optional[str]
    created: datetime
    modified: datetime


@dataclass(frozen=True)
class RecordHandle:
    id: int
    token: str
