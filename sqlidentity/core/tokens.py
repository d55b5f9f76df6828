# sqlidentity/core/tokens.py
from __future__ import annotations

import secrets

TOKEN_BYTES = 16
TOKEN_LENGTH = TOKEN_BYTES * 2


def generate_token() -> str:
    """
    Token opaco de sesión: 16 bytes aleatorios (128 bits) en hex -> 32 caracteres.
    No contiene nada del usuario; es una capacidad, no un claim.
    """
    return secrets.token_hex(TOKEN_BYTES)


def token_hint(token: str | None) -> str:
    # Para logs: nunca el token completo
    if not token:
        return "-"
    return f"{token[:6]}..."
