# tests/test_flow.py
from sqlidentity.core.config import settings


def _login(client, userid="mike"):
    r = client.post("/login", json={"userid": userid}, headers={"User-Agent": "pytest/1.0"})
    assert r.status_code == 200
    return r.headers[settings.auth_header]


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_get_index(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_no_identity(client):
    r = client.get("/profile")
    assert r.status_code == 401


def test_invalid_token(client):
    r = client.get("/profile", headers=_bearer("invalidtoken"))
    assert r.status_code == 401


def test_malformed_authorization_header(client):
    token = _login(client)
    # Sin esquema: no se reconoce ningún token
    r = client.get("/profile", headers={"Authorization": token})
    assert r.status_code == 401


def test_login_logout(client):
    # Ruta protegida sin token
    r = client.get("/profile")
    assert r.status_code == 401

    # Login (se asumen credenciales válidas)
    token = _login(client)
    assert len(token) == 32

    # Con token
    r = client.get("/profile", headers=_bearer(token))
    assert r.status_code == 200
    assert r.json() == {"userid": "mike"}

    # Logout sin token
    r = client.post("/logout")
    assert r.status_code == 401

    # Logout con token
    r = client.post("/logout", headers=_bearer(token))
    assert r.status_code == 200

    # Tras el logout el token ya no vale
    r = client.get("/profile", headers=_bearer(token))
    assert r.status_code == 401


def test_each_login_issues_a_new_token(client):
    a = _login(client, "alice")
    b = _login(client, "alice")
    assert a != b
    assert client.get("/profile", headers=_bearer(a)).json() == {"userid": "alice"}
    assert client.get("/profile", headers=_bearer(b)).json() == {"userid": "alice"}


def test_profile_records_user_agent(client):
    from sqlidentity.api.deps import policy

    token = _login(client, "carol")
    r = client.get("/profile", headers={**_bearer(token), "User-Agent": "curl/8"})
    assert r.status_code == 200

    rec = client.portal.call(policy.lookup, token)
    assert rec.useragent == "curl/8"
    assert rec.userid == "carol"

    detail = client.get(f"/identities/{rec.id}").json()
    assert detail["useragent"] == "curl/8"
    assert "token" not in detail


def test_revoke_by_id(client):
    from sqlidentity.api.deps import policy

    token = _login(client, "dave")
    rec = client.portal.call(policy.lookup, token)

    r = client.delete(f"/identities/{rec.id}")
    assert r.status_code == 200
    assert r.json()["status"] == "revoked"

    assert client.get("/profile", headers=_bearer(token)).status_code == 401
    assert client.delete(f"/identities/{rec.id}").status_code == 404
    assert client.get(f"/identities/{rec.id}").status_code == 404


def test_login_requires_userid(client):
    r = client.post("/login", json={})
    assert r.status_code == 422


def test_database_down_is_503(client, tmp_path):
    from sqlidentity.api.deps import get_policy
    from sqlidentity.core.config import Settings
    from sqlidentity.core.policy import IdentityPolicy
    from sqlidentity.db.session import build_engine, build_sessionmaker
    from sqlidentity.db.store import SqliteTokenStore
    from sqlidentity.main import app

    cfg = Settings(
        IDENTITY_BACKEND="sqlite",
        DB_URL=f"sqlite+aiosqlite:///{(tmp_path / 'missing' / 'db.sqlite3').as_posix()}",
    )
    engine = build_engine(cfg)
    broken = IdentityPolicy(build_sessionmaker(engine), SqliteTokenStore())
    app.dependency_overrides[get_policy] = lambda: broken
    try:
        r = client.get("/profile", headers=_bearer("0" * 32))
        assert r.status_code == 503
        r = client.post("/login", json={"userid": "mike"})
        assert r.status_code == 503
    finally:
        app.dependency_overrides.clear()
        client.portal.call(engine.dispose)
