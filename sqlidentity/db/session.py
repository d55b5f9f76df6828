from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from sqlidentity.core.config import Settings, settings
from sqlidentity.core.errors import UnsupportedBackend
from sqlidentity.db.store import backend_from_url, build_store, normalize_backend


def _enable_sqlite_wal(dbapi_connection, connection_record):
    # WAL: los lectores no bloquean al escritor
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def build_engine(cfg: Settings = settings) -> AsyncEngine:
    """Engine async (y su pool) para el backend configurado."""
    backend = normalize_backend(cfg.backend)
    if backend_from_url(cfg.db_url) != backend:
        raise UnsupportedBackend(f"{cfg.backend} (DB_URL is {make_url(cfg.db_url).drivername})")

    url = make_url(cfg.db_url)
    kwargs = {"echo": cfg.db_echo, "pool_pre_ping": True}
    in_memory = backend == "sqlite" and url.database in (None, "", ":memory:")
    if backend == "sqlite":
        # Los escritores concurrentes esperan al lock en vez de fallar con "database is locked"
        kwargs["connect_args"] = {"timeout": cfg.db_busy_timeout}
    # SQLite en memoria usa StaticPool: no admite tamaño de pool
    if not in_memory:
        kwargs.update(pool_size=cfg.db_pool_size, pool_timeout=cfg.db_pool_timeout)

    engine = create_async_engine(url, **kwargs)
    if backend == "sqlite" and not in_memory:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_wal)
    return engine


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


engine = build_engine()
SessionLocal = build_sessionmaker(engine)
store = build_store(settings.backend)
