"""
Connection Service

Builds the per-call database connection configuration and opens single-use
connections. Every plugin operation gets its own engine with no pooling; the
engine is disposed when the operation leaves the ``open_connection`` block,
whether it succeeded or not.
"""

import base64
import binascii
import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from ..config import Authentication, AuthenticationOptions, ConnectionSettings
from ..errors import DatabaseConnectionError
from ..models import RequestContext

logger = logging.getLogger(__name__)


def get_ctx_auth(authorization: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract credentials from an Authorization header.

    ``Basic`` tokens are base64-decoded and split on the first ``:``. Anything
    else (``Bearer`` or an undecodable basic token) is returned as a password
    with no user name.

    Args:
        authorization: Raw header value, e.g. ``"Basic dXNlcjpwYXNz"``

    Returns:
        (username, password), both None when there is no header
    """
    if not authorization:
        return None, None

    auth_type, _, auth_token = authorization.strip().partition(" ")
    auth_token = auth_token.strip()

    username = password = None
    if auth_type.lower() == "basic":
        try:
            decoded = base64.b64decode(auth_token, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            decoded = ""
        username, _, password = decoded.partition(":")

    if username:
        return username, password
    return None, auth_token


def build_connection_config(
    static_config: ConnectionSettings, ctx: Optional[RequestContext] = None
) -> ConnectionSettings:
    """
    Derive the connection configuration for one operation.

    Always works on a deep copy; the static configuration is never modified.
    When the request context carries an Authorization header its credentials
    replace the configured ones.

    Args:
        static_config: Configured connection settings
        ctx: Request context from the host, if any

    Returns:
        ConnectionSettings: Configuration to connect with
    """
    config = static_config.model_copy(deep=True)

    if ctx is None or not ctx.authorization:
        return config

    if config.authentication is None:
        config.authentication = Authentication(options=AuthenticationOptions())
    if not config.authentication.type:
        config.authentication.type = "default"

    username, password = get_ctx_auth(ctx.authorization)
    config.authentication.options.password = password
    if username:
        config.authentication.options.user_name = username

    return config


def build_url(config: ConnectionSettings) -> URL:
    """Translate connection settings into a SQLAlchemy URL."""
    username = password = None
    if config.authentication is not None:
        options = config.authentication.options
        username = options.user_name
        password = options.password
        if config.authentication.type == "ntlm" and options.domain and username:
            username = f"{options.domain}\\{username}"

    return URL.create(
        drivername=config.driver,
        username=username,
        password=password,
        host=config.server,
        port=config.port,
        database=config.database,
        query=dict(config.options),
    )


@contextmanager
def open_connection(action: str, config: ConnectionSettings) -> Iterator[Connection]:
    """
    Open a single-use database connection.

    Args:
        action: Operation name used in error messages
        config: Connection configuration for this call

    Yields:
        Connection: An open SQLAlchemy connection

    Raises:
        DatabaseConnectionError: If the engine cannot be built or the
            database cannot be reached
    """
    try:
        engine = create_engine(build_url(config), poolclass=NullPool)
    except SQLAlchemyError as e:
        raise DatabaseConnectionError(action, f"SQL client connect error: {e}") from e

    try:
        try:
            connection = engine.connect()
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(action, f"SQL client connect error: {e}") from e

        with connection:
            yield connection
    finally:
        engine.dispose()
        logger.debug(f"{action}: connection released")
