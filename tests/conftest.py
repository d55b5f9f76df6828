# tests/conftest.py
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# --- Asegurar que podemos importar 'sqlidentity' desde la raíz del repo ---
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _prepare_test_env() -> None:
    tmp = (ROOT / ".pytest_tmp").absolute()
    tmp.mkdir(exist_ok=True)

    # BD SQLite temporal para la app (se recrea en cada sesión de tests)
    db_file = tmp / "test.sqlite3"
    if db_file.exists():
        db_file.unlink()
    os.environ["IDENTITY_BACKEND"] = "sqlite"
    os.environ["DB_URL"] = f"sqlite+aiosqlite:///{db_file.as_posix()}"

    # Variables mínimas para que Settings funcione sin .env
    os.environ["AUTH_HEADER"] = "X-Auth-Token"
    os.environ["CREATE_SCHEMA"] = "true"
    os.environ["TOKEN_ATTEMPTS"] = "5"
    os.environ["ADMIN_ROUTES"] = "true"


# Antes de que cualquier test importe sqlidentity.core.config
_prepare_test_env()

from sqlidentity.core.config import Settings  # noqa: E402
from sqlidentity.core.policy import IdentityPolicy  # noqa: E402
from sqlidentity.db.session import build_engine, build_sessionmaker  # noqa: E402
from sqlidentity.db.store import SqliteTokenStore  # noqa: E402


@pytest.fixture
def store():
    return SqliteTokenStore()


@pytest.fixture
async def engine(tmp_path, store):
    """Engine aiosqlite sobre un fichero nuevo por test, con la tabla creada."""
    cfg = Settings(
        IDENTITY_BACKEND="sqlite",
        DB_URL=f"sqlite+aiosqlite:///{(tmp_path / 'identities.sqlite3').as_posix()}",
    )
    eng = build_engine(cfg)
    async with eng.begin() as conn:
        await store.create_schema(conn)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine):
    return build_sessionmaker(engine)


@pytest.fixture
def policy(sessions, store):
    return IdentityPolicy(sessions, store)


@pytest.fixture(scope="session")
def client():
    """
    Cliente de pruebas con la app completa:
    - BD sqlite en .pytest_tmp/test.sqlite3
    - la tabla se crea en el lifespan (CREATE_SCHEMA=true)
    """
    from sqlidentity.main import app
    # Con 'with' forzamos lifespan: crea tablas en startup y cierra engine en shutdown
    with TestClient(app) as c:
        yield c
