"""
SCIM SQL Bridge Services

Business logic services for provisioning SCIM users into a SQL user table.
"""

from .connection import build_connection_config, get_ctx_auth, open_connection
from .filters import parse_filter
from .patch import patch_to_modification
from .sql_plugin import SQLPlugin

__all__ = [
    "SQLPlugin",
    "build_connection_config",
    "get_ctx_auth",
    "open_connection",
    "parse_filter",
    "patch_to_modification",
]
