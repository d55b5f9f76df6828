# sqlidentity/core/policy.py
"""
Identity Policy: traduce "recuerda a este usuario", "¿quién es?" y "olvida esta
sesión" en llamadas al Token Store.

No guarda estado entre peticiones. Cada llamada al store saca una sesión del
pool, ejecuta una operación en su propia transacción y la devuelve.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import async_sessionmaker

from sqlidentity.core.errors import ConstraintViolation, NotFound, TokenGenerationExhausted
from sqlidentity.core.tokens import generate_token, token_hint
from sqlidentity.db.models import Identity
from sqlidentity.db.store import TokenStore, translate_errors

logger = logging.getLogger(__name__)

T = TypeVar("T")


def utcnow() -> datetime:
    # Las columnas son sin zona horaria: todo se guarda en UTC naive
    return datetime.now(timezone.utc).replace(tzinfo=None)


class IdentityPolicy:
    def __init__(
        self,
        sessions: async_sessionmaker,
        store: TokenStore,
        *,
        token_attempts: int = 5,
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = generate_token,
    ):
        if token_attempts < 1:
            raise ValueError("token_attempts must be >= 1")
        self._sessions = sessions
        self._store = store
        self._token_attempts = token_attempts
        self._clock = clock
        self._token_factory = token_factory

    async def _run(self, operation: str, fn: Callable[..., Awaitable[T]], *args) -> T:
        # Errores al conectar o al hacer commit también quedan etiquetados
        async with self._sessions() as s:
            with translate_errors(operation):
                async with s.begin():
                    return await fn(s, *args)

    async def resolve(
        self,
        presented_token: Optional[str],
        ip: Optional[str],
        useragent: Optional[str],
    ) -> Optional[str]:
        """userid dueño del token (refrescando ip/useragent/modified), o None."""
        if not presented_token:
            return None

        record = await self._run("lookup", self._store.find_by_token, presented_token)
        if record is None:
            logger.debug("Unknown or expired token %s", token_hint(presented_token))
            return None

        try:
            await self._run(
                "touch", self._store.touch, presented_token, ip, useragent, self._clock()
            )
        except NotFound:
            # Borrada entre el lookup y el touch: equivale a no encontrada
            logger.warning("Identity %s vanished before touch", token_hint(presented_token))
            return None

        return record.userid

    async def remember(
        self,
        userid: str,
        ip: Optional[str],
        useragent: Optional[str],
    ) -> str:
        """Crea una identidad nueva para `userid` y devuelve su token."""
        if not isinstance(userid, str) or not userid:
            raise ValueError("userid must be a non-empty string")

        for attempt in range(1, self._token_attempts + 1):
            token = self._token_factory()
            now = self._clock()
            try:
                handle = await self._run(
                    "insert", self._store.insert, userid, ip, useragent, token, now, now
                )
            except ConstraintViolation:
                logger.warning(
                    "Token collision (attempt %d/%d), regenerating", attempt, self._token_attempts
                )
                continue
            logger.info("Remembered userid=%s id=%s token=%s", userid, handle.id, token_hint(token))
            return token

        logger.error("Token generation exhausted after %d attempts", self._token_attempts)
        raise TokenGenerationExhausted(self._token_attempts)

    async def forget(self, presented_token: Optional[str]) -> None:
        """Revoca el token. Si ya no existe no pasa nada."""
        if not presented_token:
            return
        removed = await self._run("delete", self._store.delete, presented_token)
        if removed:
            logger.info("Forgot token %s", token_hint(presented_token))
        else:
            logger.debug("Forget on absent token %s", token_hint(presented_token))

    async def revoke(self, identity_id: int) -> bool:
        """Revocación administrativa por id interno. False si no existía."""
        try:
            await self._run("delete_by_id", self._store.delete_by_id, identity_id)
        except NotFound:
            return False
        logger.info("Revoked identity id=%s", identity_id)
        return True

    async def lookup(self, presented_token: Optional[str]) -> Optional[Identity]:
        """Lectura sin touch (inspección/admin)."""
        if not presented_token:
            return None
        return await self._run("lookup", self._store.find_by_token, presented_token)

    async def lookup_id(self, identity_id: int) -> Optional[Identity]:
        return await self._run("lookup", self._store.find_by_id, identity_id)
