"""
Authentication and request handlers for SCIM SQL Bridge.
"""

from .auth import get_request_context, get_settings, verify_bearer_token

__all__ = ["get_request_context", "get_settings", "verify_bearer_token"]
