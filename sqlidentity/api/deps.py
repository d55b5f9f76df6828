# sqlidentity/api/deps.py
"""
Adaptador HTTP: saca el token del header Authorization, llama a la policy y
escribe el token emitido en el header de respuesta configurado.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status

from sqlidentity.core.config import settings
from sqlidentity.core.policy import IdentityPolicy
from sqlidentity.db.session import SessionLocal, store

policy = IdentityPolicy(SessionLocal, store, token_attempts=settings.token_attempts)


def get_policy() -> IdentityPolicy:
    return policy


def bearer_token(request: Request) -> Optional[str]:
    """`Authorization: <esquema> <token>` -> token. Header ausente o mal formado = sin token."""
    auth_header = request.headers.get("authorization")
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return parts[1]


def client_info(request: Request) -> tuple[Optional[str], Optional[str]]:
    ip = request.client.host if request.client else None
    return ip, request.headers.get("user-agent")


async def current_userid(
    request: Request,
    token: Optional[str] = Depends(bearer_token),
    policy: IdentityPolicy = Depends(get_policy),
) -> Optional[str]:
    ip, useragent = client_info(request)
    return await policy.resolve(token, ip, useragent)


async def require_userid(userid: Optional[str] = Depends(current_userid)) -> str:
    if userid is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing session token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return userid


def attach_token(response: Response, token: str) -> None:
    response.headers[settings.auth_header] = token
