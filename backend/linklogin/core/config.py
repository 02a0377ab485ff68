"""Application configuration loaded from environment variables.

Settings for the Telegram bot, the public server URL, session signing,
the token store and the database. Uses pydantic-settings for validation
and .env file support.
"""

import secrets
from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "linklogin_dev_password"  # nosec B105

_DEFAULT_DATABASE_URL = (
    f"postgresql+asyncpg://linklogin:{_INSECURE_DEFAULT_PASSWORD}"
    "@localhost:5432/linklogin"
)

# Minimum length for SESSION_SECRET in production (256 bits = 32 bytes)
_MIN_SESSION_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # Public base URL used to build login links
    server_url: str = "http://localhost:8000"

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Database (durable token + session storage)
    database_url: str = _DEFAULT_DATABASE_URL

    # Token store backend: "database" survives restarts, "memory" is
    # process-local and intended for single-process development
    storage_backend: Literal["database", "memory"] = "database"
    token_ttl_minutes: int = 10
    token_sweep_interval_seconds: int = 60

    # Browser sessions
    # Empty secret outside production is replaced by a per-process random value
    session_secret: SecretStr = SecretStr("")
    session_cookie_name: str = "linklogin.session"
    session_max_age_hours: int = 24

    # Telegram bot
    bot_token: SecretStr = SecretStr("")
    bot_delivery: Literal["polling", "webhook", "disabled"] = "polling"
    telegram_api_base: str = "https://api.telegram.org"
    telegram_webhook_secret: SecretStr = SecretStr("")
    telegram_poll_timeout_seconds: int = 30
    bot_init_max_retries: int = 5
    bot_init_base_delay_ms: int = 500
    bot_init_max_delay_ms: int = 30_000

    # TLS verification for outbound Bot API calls can be relaxed for local
    # proxies and self-signed test endpoints. Never honored in production.
    allow_insecure_tls: bool = False

    @property
    def is_production(self) -> bool:
        """Whether the service runs in production mode."""
        return self.environment == "production"

    @property
    def session_cookie_secure(self) -> bool:
        """Cookies carry the Secure flag only in production (HTTPS)."""
        return self.is_production

    @property
    def telegram_verify_tls(self) -> bool:
        """TLS verification setting for the Bot API HTTP client."""
        return self.is_production or not self.allow_insecure_tls

    @property
    def bot_enabled(self) -> bool:
        """The bot runs only when a credential is configured."""
        return (
            self.bot_delivery != "disabled"
            and bool(self.bot_token.get_secret_value())
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate security requirements and fill development defaults.

        Checks:
        - Token TTL and sweep interval must be positive (all environments)
        - Database password must not be the default in production
        - SESSION_SECRET must be set and >= 32 chars in production
        - ALLOW_INSECURE_TLS must be false in production
        - Webhook delivery requires TELEGRAM_WEBHOOK_SECRET in production
        """
        if self.token_ttl_minutes <= 0:
            msg = f"TOKEN_TTL_MINUTES must be positive. Got: {self.token_ttl_minutes}"
            raise ValueError(msg)
        if self.token_sweep_interval_seconds <= 0:
            msg = (
                "TOKEN_SWEEP_INTERVAL_SECONDS must be positive. "
                f"Got: {self.token_sweep_interval_seconds}"
            )
            raise ValueError(msg)

        if self.is_production:
            if _INSECURE_DEFAULT_PASSWORD in self.database_url:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_URL to a connection string with a secure password."
                )
                raise ValueError(msg)

            secret_value = self.session_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "SESSION_SECRET must be set in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)
            if len(secret_value) < _MIN_SESSION_SECRET_LENGTH:
                msg = (
                    f"SESSION_SECRET must be at least {_MIN_SESSION_SECRET_LENGTH} "
                    "characters for adequate security."
                )
                raise ValueError(msg)

            if self.allow_insecure_tls:
                msg = "ALLOW_INSECURE_TLS cannot be enabled in production."
                raise ValueError(msg)

            if (
                self.bot_delivery == "webhook"
                and not self.telegram_webhook_secret.get_secret_value()
            ):
                msg = (
                    "TELEGRAM_WEBHOOK_SECRET must be set when BOT_DELIVERY=webhook "
                    "in production."
                )
                raise ValueError(msg)
        elif not self.session_secret.get_secret_value():
            # Sessions signed with this value do not survive a restart
            self.session_secret = SecretStr(secrets.token_hex(32))

        return self


settings = Settings()
