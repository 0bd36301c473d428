"""
accountsync Settings and Configuration.

Pydantic settings with environment variable support:
- Nested settings with env_prefix for organization
- Environment variables use double underscore delimiter (ENV__NESTED__VAR)
- Development defaults (localhost Mongo, CSRF enabled, no identity API key)
- Global settings singleton

Example .env file:
    # API Server
    API__HOST=0.0.0.0
    API__PORT=8000
    API__RELOAD=true
    API__LOG_LEVEL=info

    # Document store
    MONGO__URI=mongodb://localhost:27017
    MONGO__DATABASE=accountsync
    MONGO__MAX_POOL_SIZE=10

    # Identity provider (Clerk)
    CLERK__WEBHOOK_SECRET=whsec_...
    CLERK__SECRET_KEY=sk_test_...
    CLERK__JWKS_URL=https://<instance>.clerk.accounts.dev/.well-known/jwks.json

    # HTTP security
    SECURITY__ALLOWED_ORIGINS=["https://app.example.com"]
    SECURITY__CSRF_ENABLED=true

    # Environment
    ENVIRONMENT=development
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class APISettings(BaseSettings):
    """
    API server settings.

    Environment variables:
        API__HOST - Host to bind to (0.0.0.0 for Docker, 127.0.0.1 for local)
        API__PORT - Port to listen on
        API__RELOAD - Enable auto-reload for development
        API__WORKERS - Number of worker processes (production)
        API__LOG_LEVEL - Logging level (debug, info, warning, error)
    """

    model_config = SettingsConfigDict(
        env_prefix="API__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(
        default="0.0.0.0",
        description="Host to bind to (0.0.0.0 for Docker, 127.0.0.1 for local only)",
    )

    port: int = Field(
        default=8000,
        description="Port to listen on",
    )

    reload: bool = Field(
        default=True,
        description="Enable auto-reload for development (disable in production)",
    )

    workers: int = Field(
        default=1,
        description="Number of worker processes (use >1 in production)",
    )

    log_level: str = Field(
        default="info",
        description="Logging level (debug, info, warning, error, critical)",
    )


class MongoSettings(BaseSettings):
    """
    MongoDB settings.

    One pooled Motor client per process, opened lazily on first use.

    Environment variables:
        MONGO__URI - MongoDB connection URI
        MONGO__DATABASE - Database name
        MONGO__MAX_POOL_SIZE - Connection pool size
        MONGO__SERVER_SELECTION_TIMEOUT_MS - Server selection timeout
        MONGO__SOCKET_TIMEOUT_MS - Socket timeout
        MONGO__CREATE_INDEXES - Create indexes on first connection
    """

    model_config = SettingsConfigDict(
        env_prefix="MONGO__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI",
    )

    database: str = Field(
        default="accountsync",
        description="Database name",
    )

    max_pool_size: int = Field(
        default=10,
        description="Maximum number of pooled connections",
    )

    server_selection_timeout_ms: int = Field(
        default=5000,
        description="Time to wait for server selection in milliseconds",
    )

    socket_timeout_ms: int = Field(
        default=45000,
        description="Socket timeout in milliseconds",
    )

    create_indexes: bool = Field(
        default=True,
        description="Create unique/lookup indexes when the connection is first opened",
    )


class ClerkSettings(BaseSettings):
    """
    Identity provider (Clerk) settings.

    The webhook secret verifies inbound events; the secret key authenticates
    calls to the backend API (metadata sync, admin directory, account
    deletion); the JWKS URL verifies session tokens on user endpoints.

    Environment variables:
        CLERK__WEBHOOK_SECRET - Signing secret of the webhook endpoint (whsec_...)
        CLERK__SECRET_KEY - Backend API secret key (sk_...)
        CLERK__API_URL - Backend API base URL
        CLERK__JWKS_URL - JWKS document used to verify session tokens
        CLERK__AUTHORIZED_PARTIES - Accepted `azp` claims (empty accepts any)
        CLERK__TIMEOUT - Backend API timeout in seconds
        CLERK__WEBHOOK_TOLERANCE_SECONDS - Accepted webhook timestamp skew
    """

    model_config = SettingsConfigDict(
        env_prefix="CLERK__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    webhook_secret: str = Field(
        default="",
        description="Webhook signing secret (whsec_<base64>)",
    )

    secret_key: str = Field(
        default="",
        description="Backend API secret key; identity API features are disabled when empty",
    )

    api_url: str = Field(
        default="https://api.clerk.com/v1",
        description="Backend API base URL",
    )

    jwks_url: str = Field(
        default="",
        description="JWKS URL for session token verification",
    )

    authorized_parties: list[str] = Field(
        default_factory=list,
        description="Allowed `azp` claim values for session tokens",
    )

    timeout: float = Field(
        default=10.0,
        description="Backend API request timeout in seconds",
    )

    webhook_tolerance_seconds: int = Field(
        default=300,
        ge=1,
        description="Maximum age (and future skew) of a webhook timestamp",
    )


class SecuritySettings(BaseSettings):
    """
    HTTP security settings (CORS allow-list and CSRF tokens).

    Environment variables:
        SECURITY__ALLOWED_ORIGINS - JSON list of allowed origins (production)
        SECURITY__CSRF_ENABLED - Enforce CSRF tokens on state-changing requests
        SECURITY__CSRF_MAX_AGE - Token lifetime in seconds
        SECURITY__CSRF_COOKIE_SECURE - Mark the CSRF cookie as Secure
    """

    model_config = SettingsConfigDict(
        env_prefix="SECURITY__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    allowed_origins: list[str] = Field(
        default_factory=list,
        description="Allowed CORS origins in production",
    )

    csrf_enabled: bool = Field(
        default=True,
        description="Enforce double-submit CSRF tokens",
    )

    csrf_max_age: int = Field(
        default=3600,
        description="CSRF token lifetime in seconds",
    )

    csrf_cookie_secure: bool = Field(
        default=True,
        description="Send the CSRF cookie only over HTTPS",
    )


class Settings(BaseSettings):
    """
    Global application settings.

    Aggregates all nested settings groups with environment variable support.
    Uses double underscore delimiter for nested variables (MONGO__URI).

    Environment variables:
        ENVIRONMENT - Environment (development, staging, production)
        ROOT_PATH - Root path for reverse proxy
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    environment: str = Field(
        default="development",
        description="Environment (development, staging, production)",
    )

    root_path: str = Field(
        default="",
        description="Root path for reverse proxy",
    )

    # Nested settings groups
    api: APISettings = Field(default_factory=APISettings)
    mongo: MongoSettings = Field(default_factory=MongoSettings)
    clerk: ClerkSettings = Field(default_factory=ClerkSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)


# Global settings singleton
settings = Settings()
