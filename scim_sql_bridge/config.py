"""
Configuration module for SCIM SQL Bridge.

This module provides environment variable configuration and settings management
using Pydantic Settings for type-safe configuration. The database connection
block mirrors the endpoint configuration of the SQL plugin: a driver, a server,
and an ``authentication`` section holding the credentials that pass-through
mode may override per request.
"""
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthenticationOptions(BaseModel):
    """Credentials used when opening a database connection."""

    user_name: Optional[str] = None
    password: Optional[str] = None
    domain: Optional[str] = None


class Authentication(BaseModel):
    """Authentication block of the connection configuration."""

    type: Optional[str] = Field(
        "default",
        description="Authentication type (default, ntlm)"
    )
    options: AuthenticationOptions = Field(default_factory=AuthenticationOptions)


class ConnectionSettings(BaseModel):
    """
    Database connection configuration.

    A deep copy of this object is taken for every plugin call, so the
    configured credentials are never mutated by pass-through requests.
    """

    driver: str = Field(
        "mssql+pymssql",
        description="SQLAlchemy driver name (e.g. mssql+pymssql, mssql+pyodbc, sqlite)"
    )
    server: Optional[str] = Field(None, description="Database server host name")
    port: Optional[int] = Field(None, description="Database server port")
    database: Optional[str] = Field(None, description="Database name (file path for sqlite)")
    authentication: Optional[Authentication] = Field(default_factory=Authentication)
    options: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra driver options appended to the connection URL query"
    )


class SQLBridgeSettings(BaseSettings):
    """
    Configuration settings for SCIM SQL Bridge application.

    All settings are loaded from environment variables with validation.
    Nested connection settings use a double underscore, e.g.
    ``SCIM_SQL_CONNECTION__SERVER`` or
    ``SCIM_SQL_CONNECTION__AUTHENTICATION__OPTIONS__USER_NAME``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCIM_SQL_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    plugin_name: str = Field(
        "plugin-mssql",
        description="Plugin name used as log prefix"
    )

    log_level: str = Field(
        "INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    scim_bearer_token: Optional[str] = Field(
        None,
        description="Bearer token clients must present when pass-through is disabled"
    )

    auth_pass_through: bool = Field(
        False,
        description="Forward the inbound Authorization header as database credentials"
    )

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings)

    password_file: Optional[Path] = Field(
        None,
        description="File holding the database password (e.g. a mounted Docker secret)"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard Python logging levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator("scim_bearer_token")
    @classmethod
    def validate_token(cls, v):
        """Strip the token and treat blank values as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def require_token_unless_pass_through(self):
        """The gateway token may only be omitted when the database authenticates."""
        if not self.auth_pass_through and self.scim_bearer_token is None:
            raise ValueError("SCIM_BEARER_TOKEN is required unless AUTH_PASS_THROUGH is enabled")
        return self

    def resolve_secrets(self) -> "SQLBridgeSettings":
        """
        Inject the database password from ``password_file`` if configured.

        Called once at startup; the plugin receives the resolved settings and
        never reads secrets on its own.

        Returns:
            SQLBridgeSettings: self, for chaining

        Raises:
            ValueError: If the password file does not exist
        """
        if self.password_file is None:
            return self

        if not self.password_file.is_file():
            raise ValueError(f"Password file not found: {self.password_file}")

        password = self.password_file.read_text(encoding="utf-8").strip()
        if self.connection.authentication is None:
            self.connection.authentication = Authentication()
        self.connection.authentication.options.password = password
        return self


def load_settings(**overrides) -> SQLBridgeSettings:
    """
    Build settings from the environment and resolve secrets.

    A fresh instance is returned on every call; callers pass the result
    explicitly to whatever needs it.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        SQLBridgeSettings: Resolved settings

    Raises:
        ValueError: If environment variables are invalid or a secret is missing
    """
    return SQLBridgeSettings(**overrides).resolve_secrets()
