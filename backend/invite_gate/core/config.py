from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the invite gate.

    All values come from environment variables or backend/.env.
    This is the single source of truth for:
    - environment (dev/staging/prod)
    - database URL
    - admin token verification
    - invitation defaults (expiry, page sizes, token length)
    - observability budgets
    """

    # - env_file: backend/.env
    # - extra="ignore": tolerate unrelated env vars from the host
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # High-level environment flags
    environment: str = Field(
        default="dev",
        description="Deployment environment identifier (dev|staging|prod)",
    )
    debug: bool = Field(default=True)

    # Database
    database_url: str = Field(
        default="sqlite:///./invite_gate.db",
        description="SQLAlchemy-style DB URL (SQLite for dev, Postgres in prod).",
    )

    # Admin auth
    jwt_secret: str = Field(
        default="supersecret",
        description="Signing secret for admin bearer tokens; override in all non-dev environments.",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm. HS256 by default.",
    )
    admin_role: str = Field(
        default="admin",
        description="Realm role that grants invitation management.",
    )

    # Invitations
    invite_default_expiration_seconds: int = Field(
        default=86400,
        description="Lifetime of a generated token when the caller does not ask for one (24h).",
    )
    invite_default_page_size: int = Field(default=20)
    invite_max_page_size: int = Field(default=100)
    invite_token_bytes: int = Field(
        default=32,
        description="Entropy (bytes) fed to secrets.token_urlsafe for each token.",
    )

    # API docs toggle
    enable_docs: bool = Field(
        default=False,
        description="If true, exposes /api/v1/docs and /api/v1/redoc.",
    )

    # Observability budgets
    slow_http_ms: float = Field(default=1500.0)
    slow_db_query_ms: float = Field(default=250.0)
    slow_db_total_ms: float = Field(default=800.0)
    log_db_sql: bool = Field(default=False)

    @property
    def is_prod(self) -> bool:
        """
        Convenience flag: true if running in a production-like environment.
        """
        return self.environment.lower() in {"prod", "production"}


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance so the app only parses env once.
    """
    return Settings()


settings = get_settings()
