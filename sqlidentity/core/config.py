from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # Base de datos
    backend: str = Field("sqlite", alias="IDENTITY_BACKEND")
    db_url: str = Field("sqlite+aiosqlite:///./identities.sqlite3", alias="DB_URL")
    db_pool_size: int = Field(3, alias="DB_POOL_SIZE")
    db_pool_timeout: float = Field(30.0, alias="DB_POOL_TIMEOUT")
    db_echo: bool = Field(False, alias="DB_ECHO")
    # SQLite: segundos que espera un escritor a que se libere el lock
    db_busy_timeout: float = Field(30.0, alias="DB_BUSY_TIMEOUT")

    # Tokens
    auth_header: str = Field("X-Auth-Token", alias="AUTH_HEADER")
    token_attempts: int = Field(5, alias="TOKEN_ATTEMPTS")

    # La app de ejemplo crea la tabla al arrancar
    create_schema: bool = Field(True, alias="CREATE_SCHEMA")
    # Rutas /identities sin autenticar: sólo para desarrollo
    admin_routes: bool = Field(False, alias="ADMIN_ROUTES")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,  # permite defaults si no hay variable de entorno
    )


settings = Settings()
