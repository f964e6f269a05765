"""Application settings and configuration.

This module defines all configuration options for the Syspoints Stage
application. Settings are loaded from environment variables with sensible
defaults; security-relevant values have no default and are checked at the
point of use.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from syspoints_stage.core.errors import ConfigurationError


def _split_csv(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Syspoints Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./syspoints.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_secret: str | None = Field(default=None, alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_in: str = Field(default="1h", alias="JWT_EXPIRES_IN")

    # Sign-In-With-Ethereum challenge settings
    siwe_allowed_domains_raw: str = Field(default="", alias="SIWE_ALLOWED_DOMAINS")
    siwe_domain: str | None = Field(default=None, alias="SIWE_DOMAIN")
    siwe_statement: str = Field(
        default="Sign in to Syspoints with your wallet.",
        alias="SIWE_STATEMENT",
    )
    siwe_nonce_ttl_seconds: int = Field(default=300, alias="SIWE_NONCE_TTL_SECONDS")
    siwe_clock_skew_seconds: int = Field(default=60, alias="SIWE_CLOCK_SKEW_SECONDS")

    # Ledger access
    rpc_url: str | None = Field(default=None, alias="RPC_URL")
    rpc_fallback_urls_raw: str = Field(default="", alias="RPC_FALLBACK_URLS")
    rpc_timeout_seconds: float = Field(default=10.0, alias="RPC_TIMEOUT_SECONDS")
    chain_id: int | None = Field(default=None, alias="CHAIN_ID")
    contract_address: str | None = Field(default=None, alias="CONTRACT_ADDRESS")

    # User defaults
    default_avatar_url_template: str = Field(
        default="https://api.dicebear.com/7.x/identicon/svg?seed={address}",
        alias="DEFAULT_AVATAR_URL_TEMPLATE",
    )

    # Review content limits
    review_title_max_chars: int = Field(default=120, alias="REVIEW_TITLE_MAX_CHARS")
    review_description_max_chars: int = Field(
        default=2000,
        alias="REVIEW_DESCRIPTION_MAX_CHARS",
    )
    review_max_tags: int = Field(default=5, alias="REVIEW_MAX_TAGS")
    review_max_evidence_images: int = Field(default=3, alias="REVIEW_MAX_EVIDENCE_IMAGES")

    # In-process cache in front of the idempotency_keys table
    idempotency_cache_max_entries: int = Field(default=1024, alias="IDEMPOTENCY_CACHE_MAX_ENTRIES")
    idempotency_cache_ttl_seconds: int = Field(default=86_400, alias="IDEMPOTENCY_CACHE_TTL_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling such as Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def siwe_allowed_domains(self) -> list[str]:
        """Explicit SIWE domain allow-list (may be empty)."""
        return _split_csv(self.siwe_allowed_domains_raw)

    @property
    def rpc_fallback_urls(self) -> list[str]:
        """Additional read-only RPC endpoints, tried after the primary."""
        return _split_csv(self.rpc_fallback_urls_raw)

    def require_jwt_secret(self) -> str:
        """Return the JWT signing secret or fail loudly when it is unset."""
        if not self.jwt_secret:
            raise ConfigurationError("Missing required setting: JWT_SECRET")
        return self.jwt_secret

    def require_chain_id(self) -> int:
        if self.chain_id is None:
            raise ConfigurationError("Missing required setting: CHAIN_ID")
        return self.chain_id

    def require_rpc_url(self) -> str:
        if not self.rpc_url:
            raise ConfigurationError("Missing required setting: RPC_URL")
        return self.rpc_url

    def require_contract_address(self) -> str:
        if not self.contract_address:
            raise ConfigurationError("Missing required setting: CONTRACT_ADDRESS")
        return self.contract_address


settings = Settings()
