# sqlidentity/core/errors.py
from __future__ import annotations


class IdentityError(Exception):
    """Base de todos los errores de sqlidentity."""


class UnsupportedBackend(IdentityError):
    def __init__(self, backend: str):
        self.backend = backend
        super().__init__(f"sql backend not supported: {backend!r}")


class TokenStoreError(IdentityError):
    """
    Error de la capa SQL, etiquetado con la operación lógica que falló
    (insert / lookup / touch / delete / delete_by_id).
    """

    def __init__(self, operation: str, message: str = "token store error"):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class ConnectionFailure(TokenStoreError):
    """Backend inalcanzable o conexión perdida. Transitorio: el llamador puede reintentar."""

    def __init__(self, operation: str, message: str = "database unavailable"):
        super().__init__(operation, message)


class ConstraintViolation(TokenStoreError):
    """Violación de unicidad (token duplicado). No se arregla reintentando con la misma entrada."""

    def __init__(self, operation: str, message: str = "duplicate token"):
        super().__init__(operation, message)


class NotFound(TokenStoreError):
    def __init__(self, operation: str, message: str = "identity not found"):
        super().__init__(operation, message)


class TokenGenerationExhausted(IdentityError):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"could not generate a unique token after {attempts} attempts")
