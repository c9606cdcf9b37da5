"""
Service configuration.

Settings are read from ``RBACD_*`` environment variables (or a ``.env`` file).
"""

from datetime import timedelta
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError


# Only ever used when dev_mode is enabled
DEV_JWT_SECRET = "rbacd-development-secret-not-for-production"

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "TRACE"]


class Settings(BaseSettings):
    """
    Runtime configuration for the RBAC service.

    Attributes:
        host: Interface to bind the HTTP server to
        port: HTTP port
        database_path: SQLite database file
        jwt_secret: Shared secret used to sign tokens
        jwt_algorithm: JWT signing algorithm
        access_token_ttl: Lifetime of access tokens
        refresh_token_ttl: Lifetime of refresh tokens
        dev_mode: Enables console logging and the development signing secret
        log_level: Minimum loguru level
        log_dir: Directory for rotated log files (non-dev only)
        admin_username: Seeded administrator username
        admin_password: Seeded administrator password (pre-hashed by clients)
        admin_email: Seeded administrator email
    """

    model_config = SettingsConfigDict(
        env_prefix="RBACD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    database_path: Path = Path("data/rbacd.db")

    jwt_secret: Optional[SecretStr] = None
    jwt_algorithm: str = "HS256"
    access_token_ttl: timedelta = timedelta(minutes=5)
    refresh_token_ttl: timedelta = timedelta(days=7)

    dev_mode: bool = False
    log_level: LogLevel = "INFO"
    log_dir: Path = Path("logs")

    admin_username: str = "administrator"
    # md5("123456"); clients hash before sending
    admin_password: SecretStr = SecretStr("e10adc3949ba59abbe56e057f20f883e")
    admin_email: str = "admin@example.com"

    def resolve_jwt_secret(self) -> str:
        """
        Return the signing secret for the token service.

        Returns:
            Configured secret, or the development secret when dev_mode is on

        Raises:
            ConfigurationError: If no secret is configured outside dev_mode
        """
        if self.jwt_secret is not None and self.jwt_secret.get_secret_value():
            return self.jwt_secret.get_secret_value()

        if self.dev_mode:
            return DEV_JWT_SECRET

        raise ConfigurationError(
            "RBACD_JWT_SECRET must be set (or enable RBACD_DEV_MODE for local use)"
        )
