# sqlidentity/db/store.py
"""
Token Store: CRUD sobre la tabla `identities` para SQLite, MySQL y PostgreSQL.

Cada operación recibe una sesión ya abierta (sacada del pool por el llamador)
y lanza una única sentencia. Todo el SQL específico de cada dialecto vive aquí.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import delete, func, literal, select, update
from sqlalchemy import exc as sa_exc
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from sqlidentity.core.errors import (
    ConnectionFailure,
    ConstraintViolation,
    NotFound,
    TokenStoreError,
    UnsupportedBackend,
)
from sqlidentity.db.models import (
    Identity,
    MysqlIdentity,
    PostgresIdentity,
    RecordHandle,
    SqliteIdentity,
)


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Convierte errores de SQLAlchemy/driver en la taxonomía propia, etiquetados con `operation`."""
    try:
        yield
    except sa_exc.IntegrityError as e:
        raise ConstraintViolation(operation, str(e.orig)) from e
    except (sa_exc.OperationalError, sa_exc.InterfaceError) as e:
        raise ConnectionFailure(operation, str(e.orig)) from e
    except (sa_exc.DisconnectionError, sa_exc.TimeoutError) as e:
        # TimeoutError aquí es el del pool (sin conexión libre)
        raise ConnectionFailure(operation, str(e)) from e
    except sa_exc.DBAPIError as e:
        if e.connection_invalidated:
            raise ConnectionFailure(operation, str(e.orig)) from e
        raise TokenStoreError(operation, str(e.orig)) from e


class TokenStore:
    """Superficie común. Las subclases fijan el modelo y las piezas de SQL propias del dialecto."""

    backend: str
    # Modelo declarativo del dialecto; lo fija cada subclase
    model: type[DeclarativeBase]

    def _latest(self, column, value: datetime):
        """max(column, value) escalar; mantiene `modified` no decreciente."""
        return func.greatest(column, literal(value, column.type))

    @staticmethod
    def _to_identity(row) -> Identity:
        return Identity(
            id=row.id,
            token=row.token,
            userid=row.userid,
            ip=row.ip,
            useragent=row.useragent,
            created=row.created,
            modified=row.modified,
        )

    async def insert(
        self,
        s: AsyncSession,
        userid: str,
        ip: Optional[str],
        useragent: Optional[str],
        token: str,
        created: datetime,
        modified: datetime,
    ) -> RecordHandle:
        row = self.model(
            token=token,
            userid=userid,
            ip=ip,
            useragent=useragent,
            created=created,
            modified=modified,
        )
        with translate_errors("insert"):
            s.add(row)
            await s.flush()
        return RecordHandle(id=row.id, token=row.token)

    async def find_by_token(self, s: AsyncSession, token: str) -> Optional[Identity]:
        with translate_errors("lookup"):
            res = await s.execute(select(self.model).where(self.model.token == token))
            row = res.scalar_one_or_none()
        return self._to_identity(row) if row is not None else None

    async def find_by_id(self, s: AsyncSession, identity_id: int) -> Optional[Identity]:
        with translate_errors("lookup"):
            res = await s.execute(select(self.model).where(self.model.id == identity_id))
            row = res.scalar_one_or_none()
        return self._to_identity(row) if row is not None else None

    def touch_statement(
        self,
        token: str,
        ip: Optional[str],
        useragent: Optional[str],
        modified: datetime,
    ):
        return (
            update(self.model)
            .where(self.model.token == token)
            .values(
                ip=ip,
                useragent=useragent,
                modified=self._latest(self.model.modified, modified),
            )
            .execution_options(synchronize_session=False)
        )

    async def touch(
        self,
        s: AsyncSession,
        token: str,
        ip: Optional[str],
        useragent: Optional[str],
        modified: datetime,
    ) -> None:
        stmt = self.touch_statement(token, ip, useragent, modified)
        with translate_errors("touch"):
            res = await s.execute(stmt)
        if res.rowcount == 0:
            raise NotFound("touch")

    async def delete(self, s: AsyncSession, token: str) -> bool:
        """Idempotente: devuelve si se borró algo, nunca NotFound."""
        stmt = (
            delete(self.model)
            .where(self.model.token == token)
            .execution_options(synchronize_session=False)
        )
        with translate_errors("delete"):
            res = await s.execute(stmt)
        return res.rowcount > 0

    async def delete_by_id(self, s: AsyncSession, identity_id: int) -> None:
        stmt = (
            delete(self.model)
            .where(self.model.id == identity_id)
            .execution_options(synchronize_session=False)
        )
        with translate_errors("delete_by_id"):
            res = await s.execute(stmt)
        if res.rowcount == 0:
            raise NotFound("delete_by_id", f"no identity with id {identity_id}")

    # DDL sólo para desarrollo/tests: en producción la tabla se provisiona fuera
    async def create_schema(self, conn: AsyncConnection) -> None:
        await conn.run_sync(self.model.metadata.create_all)


class SqliteTokenStore(TokenStore):
    backend = "sqlite"
    model = SqliteIdentity

    def _latest(self, column, value: datetime):
        # En SQLite max() con dos argumentos es escalar (no agregado);
        # DATETIME se guarda como texto ISO de ancho fijo, así que compara bien
        return func.max(column, literal(value, column.type))


class MysqlTokenStore(TokenStore):
    backend = "mysql"
    model = MysqlIdentity


class PostgresTokenStore(TokenStore):
    backend = "postgres"
    model = PostgresIdentity


STORES: dict[str, type[TokenStore]] = {
    "sqlite": SqliteTokenStore,
    "mysql": MysqlTokenStore,
    "postgres": PostgresTokenStore,
}

# Nombres que usa SQLAlchemy en las URLs (postgresql+asyncpg://, mariadb+aiomysql://...)
_ALIASES = {
    "postgresql": "postgres",
    "pg": "postgres",
    "mariadb": "mysql",
}


def normalize_backend(name: str) -> str:
    key = (name or "").strip().lower()
    key = _ALIASES.get(key, key)
    if key not in STORES:
        raise UnsupportedBackend(name)
    return key


def backend_from_url(db_url: str) -> str:
    return normalize_backend(make_url(db_url).get_backend_name())


def build_store(backend: str) -> TokenStore:
    return STORES[normalize_backend(backend)]()
