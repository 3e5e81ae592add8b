"""
Authentication handler for SCIM SQL Bridge.

This module provides FastAPI dependencies for authenticating SCIM requests
with a bearer token, and for building the request context the plugin uses
in pass-through mode.

In pass-through mode the gateway performs no authentication of its own: the
inbound ``Authorization`` header is handed to the plugin, which uses it as the
database credentials, and the database decides.
"""

import secrets
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..config import SQLBridgeSettings
from ..models import RequestContext

# HTTP Bearer security scheme; missing credentials are handled below so that
# pass-through mode can accept Basic authorization too
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> SQLBridgeSettings:
    """Settings the application was created with."""
    return request.app.state.settings


def verify_bearer_token(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[str]:
    """
    Verify bearer token from SCIM request against configured token.

    Skipped entirely when pass-through is enabled. Performs constant-time
    comparison to prevent timing attacks.

    Args:
        request: Incoming request (used to reach the application settings)
        credentials: HTTP Authorization credentials extracted by FastAPI

    Returns:
        The verified token value, or None in pass-through mode

    Raises:
        HTTPException: 401 if the token is missing or doesn't match
    """
    settings = get_settings(request)
    if settings.auth_pass_through:
        return None

    # Settings validation guarantees a token outside pass-through mode
    expected_token = settings.scim_bearer_token

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Bearer token missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not secrets.compare_digest(expected_token, credentials.credentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return credentials.credentials


def get_request_context(request: Request) -> RequestContext:
    """
    Request context handed to plugin operations.

    The Authorization header is only forwarded in pass-through mode; a
    pass-through request without one is rejected.
    """
    settings = get_settings(request)
    if not settings.auth_pass_through:
        return RequestContext()

    authorization = request.headers.get("authorization")
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": 'Basic realm="scim"'},
        )
    return RequestContext(authorization=authorization)
